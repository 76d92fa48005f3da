from __future__ import annotations

import pytest

from couchclient.models import DocumentRevision, Index, SortField, SortOrder
from mcp_servers import couchdb_server as server


class FakeDatabase:
    def __init__(self) -> None:
        self.name = "documents"
        self.docs = {
            "a": DocumentRevision(id="a", rev="1-a", body={"type": "note", "title": "first"}),
            "b": DocumentRevision(id="b", rev="2-b", body={"type": "task", "title": "second"}),
        }
        self.queries: list[dict] = []

    def read(self, doc_id: str, rev: str | None = None) -> DocumentRevision:
        if doc_id not in self.docs:
            raise RuntimeError("missing")
        return self.docs[doc_id]

    def query(self, selector: dict, fields=None, limit=None) -> list[DocumentRevision]:
        self.queries.append({"selector": selector, "fields": fields, "limit": limit})
        return [
            doc
            for doc in self.docs.values()
            if all(doc.body.get(key) == value for key, value in selector.items())
        ]

    def list_indexes(self) -> list[Index]:
        return [Index(design_doc="d1", name="n1", type="json", fields=[SortField(name="age", order=SortOrder.DESC)])]


class FakeClient:
    def __init__(self, db: FakeDatabase) -> None:
        self.db = db
        self.closed = False
        self.requested: list[str] = []

    def database(self, name: str) -> FakeDatabase:
        self.requested.append(name)
        return self.db

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_db(monkeypatch) -> FakeDatabase:
    db = FakeDatabase()
    monkeypatch.setattr(server, "_with_database", lambda fn: fn(db))
    return db


def test_with_database_uses_configured_db_and_closes_client(monkeypatch):
    monkeypatch.setenv("COUCHDB_DB", "configured")
    client = FakeClient(FakeDatabase())
    monkeypatch.setattr(server.CouchClient, "from_settings", classmethod(lambda cls, settings=None: client))

    result = server._with_database(lambda db: db.name)

    assert result == "documents"
    assert client.requested == ["configured"]
    assert client.closed is True


def test_with_database_closes_client_on_error(monkeypatch):
    client = FakeClient(FakeDatabase())
    monkeypatch.setattr(server.CouchClient, "from_settings", classmethod(lambda cls, settings=None: client))

    def _boom(db):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        server._with_database(_boom)
    assert client.closed is True


def test_get_document_returns_wire_json(fake_db):
    payload = server.get_document("a")

    assert payload == {"_id": "a", "_rev": "1-a", "type": "note", "title": "first"}


def test_find_documents_bounds_limit(fake_db):
    payload = server.find_documents({"type": "task"}, limit=1000)

    assert payload["count"] == 1
    assert payload["docs"][0]["_id"] == "b"
    assert fake_db.queries[0]["limit"] == 200


def test_list_indexes_serializes_models(fake_db):
    payload = server.list_indexes()

    assert payload == {
        "database": "documents",
        "count": 1,
        "indexes": [
            {
                "design_doc": "d1",
                "name": "n1",
                "type": "json",
                "fields": [{"name": "age", "order": "desc"}],
            }
        ],
    }
