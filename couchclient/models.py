from __future__ import annotations

"""Pydantic models for documents, indexes and request bodies.

These models define:
- the client-side representation of a stored document revision
- index descriptors returned by ``GET {db}/_index``
- explicit request bodies for index creation and ``_find`` queries
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

RESERVED_KEYS = ("_id", "_rev", "_deleted")


class DocumentRevision(BaseModel):
    """One version of a JSON document; reserved keys never live in ``body``."""

    id: str | None = None
    rev: str | None = None
    deleted: bool = False
    body: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def strip_reserved_keys(cls, data: Any) -> Any:
        """Move ``_deleted`` out of ``body`` and drop ``_id``/``_rev`` from it.

        The body mapping is copied so the caller's dict is left untouched.
        """

        if not isinstance(data, dict):
            return data
        body = data.get("body")
        if not isinstance(body, dict) or not any(key in body for key in RESERVED_KEYS):
            return data

        values = dict(data)
        cleaned = dict(body)
        cleaned.pop("_id", None)
        cleaned.pop("_rev", None)
        if "_deleted" in cleaned:
            values["deleted"] = bool(cleaned.pop("_deleted"))
        values["body"] = cleaned
        return values


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SortField(BaseModel):
    """A field name with an optional direction, used by indexes and sorts."""

    name: str
    order: SortOrder | None = None

    def to_payload(self) -> str | dict[str, str]:
        """Render as ``{"field": "asc"}`` or a bare field name."""

        if self.order is None:
            return self.name
        return {self.name: self.order.value}


class IndexType(str, Enum):
    JSON = "json"
    TEXT = "text"


class TextFieldType(str, Enum):
    NUMBER = "number"
    BOOLEAN = "boolean"
    STRING = "string"


class TextIndexField(BaseModel):
    """A field indexed by a text index, with its value type."""

    name: str
    type: TextFieldType


class Index(BaseModel):
    """Read-only descriptor of a secondary index listed by the server."""

    design_doc: str | None = None
    name: str
    type: str
    fields: list[SortField] = Field(default_factory=list)


class IndexDefinition(BaseModel):
    """Body of ``POST {db}/_index``."""

    type: Literal["json", "text"]
    index: dict[str, Any]
    name: str | None = None
    ddoc: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class FindRequest(BaseModel):
    """Body of ``POST {db}/_find``; unset options are left out of the payload."""

    selector: dict[str, Any]
    fields: list[str] | None = None
    limit: int | None = Field(default=None, ge=0)
    skip: int | None = Field(default=None, ge=0)
    sort: list[SortField] | None = None
    bookmark: str | None = None
    use_index: str | list[str] | None = None
    r: int | None = Field(default=None, ge=1)

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(exclude_none=True, exclude={"sort"})
        if self.sort is not None:
            payload["sort"] = [field.to_payload() for field in self.sort]
        return payload
