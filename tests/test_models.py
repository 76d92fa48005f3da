from __future__ import annotations

import pytest
from pydantic import ValidationError

from couchclient.models import (
    DocumentRevision,
    FindRequest,
    IndexDefinition,
    SortField,
    SortOrder,
    TextFieldType,
    TextIndexField,
)


def test_document_revision_defaults():
    revision = DocumentRevision()

    assert revision.id is None
    assert revision.rev is None
    assert revision.deleted is False
    assert revision.body == {}


def test_document_revision_strips_reserved_keys_from_body():
    body = {"_id": "ignored", "_rev": "1-x", "_deleted": True, "name": "doc"}

    revision = DocumentRevision(id="doc-1", rev="2-y", body=body)

    assert revision.id == "doc-1"
    assert revision.rev == "2-y"
    assert revision.deleted is True
    assert revision.body == {"name": "doc"}
    assert body == {"_id": "ignored", "_rev": "1-x", "_deleted": True, "name": "doc"}


def test_document_revision_keeps_plain_body_order():
    revision = DocumentRevision(body={"b": 1, "a": 2, "c": 3})

    assert list(revision.body) == ["b", "a", "c"]


def test_document_revision_equality_ignores_body_order():
    first = DocumentRevision(id="d", rev="1-a", body={"a": 1, "b": 2})
    second = DocumentRevision(id="d", rev="1-a", body={"b": 2, "a": 1})

    assert first == second
    assert first != DocumentRevision(id="d", rev="2-b", body={"a": 1, "b": 2})


def test_sort_field_payload():
    assert SortField(name="age", order=SortOrder.DESC).to_payload() == {"age": "desc"}
    assert SortField(name="age", order="asc").to_payload() == {"age": "asc"}
    assert SortField(name="name").to_payload() == "name"


def test_sort_field_rejects_unknown_order():
    with pytest.raises(ValidationError):
        SortField(name="age", order="sideways")


def test_text_index_field_type():
    field = TextIndexField(name="title", type="string")

    assert field.type is TextFieldType.STRING


def test_index_definition_omits_unset_name_and_ddoc():
    definition = IndexDefinition(type="json", index={"fields": ["a"]})

    assert definition.to_payload() == {"type": "json", "index": {"fields": ["a"]}}


def test_find_request_payload_omits_unset_options():
    request = FindRequest(selector={"type": "user"})

    assert request.to_payload() == {"selector": {"type": "user"}}


def test_find_request_payload_includes_every_option():
    request = FindRequest(
        selector={"age": {"$gt": 20}},
        fields=["_id", "_rev", "age"],
        limit=10,
        skip=5,
        sort=[SortField(name="age", order=SortOrder.DESC), SortField(name="name")],
        bookmark="g1AAAA",
        use_index="_design/ddoc",
        r=2,
    )

    assert request.to_payload() == {
        "selector": {"age": {"$gt": 20}},
        "fields": ["_id", "_rev", "age"],
        "limit": 10,
        "skip": 5,
        "sort": [{"age": "desc"}, "name"],
        "bookmark": "g1AAAA",
        "use_index": "_design/ddoc",
        "r": 2,
    }


def test_find_request_rejects_negative_limit():
    with pytest.raises(ValidationError):
        FindRequest(selector={}, limit=-1)
