from __future__ import annotations

"""Mapping between wire JSON and typed documents/indexes."""

from collections.abc import Iterable, Mapping
from typing import Any

import httpx
from pydantic import ValidationError

from .errors import DecodeFailure
from .models import DocumentRevision, Index, SortField, SortOrder

ID_KEY = "_id"
REV_KEY = "_rev"
DELETED_KEY = "_deleted"


def read_json(response: httpx.Response) -> Any:
    """Parse a response body as JSON, raising ``DecodeFailure`` otherwise."""

    try:
        return response.json()
    except ValueError as exc:
        raise DecodeFailure(
            f"Response from {response.request.method} {response.request.url.path} is not valid JSON"
        ) from exc


def _revision(doc_id: Any, rev: Any, deleted: bool, body: dict[str, Any]) -> DocumentRevision:
    try:
        return DocumentRevision(id=doc_id, rev=rev, deleted=deleted, body=body)
    except ValidationError as exc:
        raise DecodeFailure(f"Invalid document special fields: {exc}") from exc


def decode_document(obj: Any) -> DocumentRevision:
    """Route ``_id``/``_rev``/``_deleted`` out of a stored document.

    Every other key, including plain ``id``, ``rev`` and ``deleted``, is
    user data and stays in the body.
    """

    if not isinstance(obj, Mapping):
        raise DecodeFailure(f"Expected a JSON object for a document, got {type(obj).__name__}")

    doc_id: str | None = None
    rev: str | None = None
    deleted = False
    body: dict[str, Any] = {}
    for key, value in obj.items():
        if key == ID_KEY:
            doc_id = value
        elif key == REV_KEY:
            rev = value
        elif key == DELETED_KEY:
            deleted = bool(value)
        else:
            body[key] = value
    return _revision(doc_id, rev, deleted, body)


def decode_write_result(obj: Any) -> tuple[str, str]:
    """Return ``(id, rev)`` from a ``{"ok": true, "id": ..., "rev": ...}`` write response."""

    if not isinstance(obj, Mapping):
        raise DecodeFailure(f"Expected a JSON object for a write result, got {type(obj).__name__}")
    doc_id = obj.get("id")
    rev = obj.get("rev")
    if not isinstance(doc_id, str) or not doc_id or not isinstance(rev, str) or not rev:
        raise DecodeFailure("Write response did not contain an id and rev")
    return doc_id, rev


def encode_document(revision: DocumentRevision) -> dict[str, Any]:
    """Render a revision as the JSON object stored by the server."""

    payload: dict[str, Any] = {}
    if revision.id is not None:
        payload["_id"] = revision.id
    if revision.rev is not None:
        payload["_rev"] = revision.rev
    if revision.deleted:
        payload["_deleted"] = True
    payload.update(revision.body)
    return payload


def _require_list(payload: Any, key: str) -> list[Any]:
    if not isinstance(payload, Mapping):
        raise DecodeFailure(f"Expected a JSON object with '{key}'")
    items = payload.get(key)
    if not isinstance(items, list):
        raise DecodeFailure(f"Response is missing the '{key}' array")
    return items


def decode_documents(payload: Any) -> list[DocumentRevision]:
    """Decode the ``docs`` array of a query result."""

    documents: list[DocumentRevision] = []
    for item in _require_list(payload, "docs"):
        document = decode_document(item)
        if not document.id or not document.rev:
            raise DecodeFailure("Query result entry is missing its id or rev")
        documents.append(document)
    return documents


def decode_sort_fields(items: Any) -> list[SortField]:
    """Decode ``[{"name": "asc"}, ...]`` into sort fields."""

    if not isinstance(items, list):
        raise DecodeFailure("Index definition 'fields' must be an array")

    fields: list[SortField] = []
    for item in items:
        if not isinstance(item, Mapping) or len(item) != 1:
            raise DecodeFailure(f"Index field must be a single-key object, got {item!r}")
        ((name, order),) = item.items()
        try:
            fields.append(SortField(name=name, order=SortOrder(order)))
        except ValueError as exc:
            raise DecodeFailure(f"Unrecognized sort order {order!r} for field '{name}'") from exc
    return fields


def decode_indexes(payload: Any) -> list[Index]:
    """Decode the ``indexes`` array returned by ``GET {db}/_index``."""

    indexes: list[Index] = []
    for item in _require_list(payload, "indexes"):
        if not isinstance(item, Mapping):
            raise DecodeFailure(f"Index entry must be a JSON object, got {item!r}")
        definition = item.get("def") or {}
        if not isinstance(definition, Mapping):
            raise DecodeFailure(f"Index definition must be a JSON object, got {definition!r}")
        try:
            name = item["name"]
            index_type = item["type"]
        except KeyError as exc:
            raise DecodeFailure(f"Index entry is missing '{exc.args[0]}'") from exc
        indexes.append(
            Index(
                design_doc=item.get("ddoc"),
                name=name,
                type=index_type,
                fields=decode_sort_fields(definition.get("fields", [])),
            )
        )
    return indexes


def encode_sort_fields(fields: Iterable[SortField]) -> list[str | dict[str, str]]:
    """Render sort fields as ``{"name": "asc"}`` objects or bare names."""

    return [field.to_payload() for field in fields]
