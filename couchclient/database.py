from __future__ import annotations

"""Database façade: documents, indexes and queries over the HTTP pipeline."""

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .codec import (
    decode_document,
    decode_documents,
    decode_indexes,
    decode_write_result,
    encode_document,
    encode_sort_fields,
    read_json,
)
from .errors import ArgumentValidationError, DecodeFailure, ModificationFailure, ReadFailure
from .http import HttpPipeline
from .models import (
    DocumentRevision,
    FindRequest,
    Index,
    IndexDefinition,
    IndexType,
    SortField,
    TextIndexField,
)

logger = logging.getLogger(__name__)

DB_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_$()+\-/]*$")


def validate_database_name(name: Any) -> str:
    """Return ``name`` if it is a legal database name, else raise."""

    if not isinstance(name, str) or not DB_NAME_PATTERN.match(name):
        raise ArgumentValidationError(
            "A database must be named with all lowercase letters (a-z), digits (0-9), "
            "or any of the _$()+-/ characters. The name has to start with a lowercase "
            "letter (a-z)."
        )
    return name


def encode_segment(value: str) -> str:
    """Percent-encode one path segment or query value (RFC 3986)."""

    return quote(value, safe="")


def _is_success(response: httpx.Response) -> bool:
    return 200 <= response.status_code < 300


def _failure(
    error_cls: type[ModificationFailure] | type[ReadFailure],
    message: str,
    response: httpx.Response,
) -> ModificationFailure | ReadFailure:
    return error_cls(
        message,
        status_code=response.status_code,
        reason=response.reason_phrase,
        body=response.text,
    )


class Database:
    """Operations scoped to one remote database."""

    def __init__(self, pipeline: HttpPipeline, name: str) -> None:
        """Validate the database name and precompute its encoded path."""

        self.name = validate_database_name(name)
        self._pipeline = pipeline
        self._path = encode_segment(name)

    def _document_path(self, doc_id: str) -> str:
        return f"{self._path}/{encode_segment(doc_id)}"

    def ensure_exists(self) -> None:
        """Create the database; an existing database (412) is not an error."""

        response = self._pipeline.put(self._path)
        if response.status_code not in (200, 201, 412):
            raise _failure(ModificationFailure, "Failed to create remote database.", response)
        logger.info("Database %s is available (status %s)", self.name, response.status_code)

    def delete(self) -> None:
        """Delete the database and all of its documents."""

        response = self._pipeline.delete(self._path)
        if response.status_code != 200:
            raise _failure(ModificationFailure, "Failed to delete remote database.", response)
        logger.info("Deleted database %s", self.name)

    def create(self, revision: DocumentRevision) -> DocumentRevision:
        """Store a new document; the server assigns an id when none is set."""

        if revision is None:
            raise ArgumentValidationError("The input parameter revision cannot be null.")

        payload = encode_document(revision)
        if revision.id is not None:
            response = self._pipeline.put(self._document_path(revision.id), body=payload)
        else:
            response = self._pipeline.post(self._path, body=payload)

        if not _is_success(response):
            raise _failure(ModificationFailure, "Failed to create a new document.", response)
        return self._saved_revision(response, revision)

    def update(self, revision: DocumentRevision) -> DocumentRevision:
        """Write a new revision of an existing document."""

        if revision is None:
            raise ArgumentValidationError("The input parameter revision cannot be null.")
        if not revision.rev:
            raise ArgumentValidationError("The document revision must contain a rev to perform an update")
        if not revision.id:
            raise ArgumentValidationError("The document revision must contain an id to perform an update")

        path = self._document_path(revision.id)
        response = self._pipeline.put(path, body=encode_document(revision))
        if not _is_success(response):
            raise _failure(ModificationFailure, "Failed to update document.", response)
        return self._saved_revision(response, revision)

    def _saved_revision(
        self,
        response: httpx.Response,
        revision: DocumentRevision,
    ) -> DocumentRevision:
        """Combine the server's id/rev with the body that was sent."""

        doc_id, rev = decode_write_result(read_json(response))
        return DocumentRevision(
            id=doc_id,
            rev=rev,
            deleted=revision.deleted,
            body=revision.body,
        )

    def read(self, doc_id: str, rev: str | None = None) -> DocumentRevision:
        """Fetch the current (or a specific) revision of a document."""

        if not isinstance(doc_id, str) or not doc_id.strip():
            raise ArgumentValidationError(
                "Unable to fetch document revision. documentId parameter must not be null or empty"
            )

        path = self._document_path(doc_id)
        if rev:
            path = f"{path}?rev={encode_segment(rev)}"
        response = self._pipeline.get(path)
        if response.status_code != 200:
            raise _failure(ReadFailure, f"Error occurred reading document '{doc_id}'.", response)
        return decode_document(read_json(response))

    def delete_document(self, revision: DocumentRevision) -> str:
        """Delete a document revision and return the tombstone revision."""

        if revision is None:
            raise ArgumentValidationError(
                "Unable to delete document revision. revision parameter must not be null"
            )
        if not revision.id or not revision.rev:
            raise ArgumentValidationError("A document id and rev are required for delete")

        path = f"{self._document_path(revision.id)}?rev={encode_segment(revision.rev)}"
        response = self._pipeline.delete(path)
        if not _is_success(response):
            raise _failure(ModificationFailure, "Failed to delete document revision.", response)

        payload = read_json(response)
        new_rev = payload.get("rev") if isinstance(payload, dict) else None
        if not new_rev:
            raise DecodeFailure("Document delete JSON response didn't contain a revision id.")
        return new_rev

    def create_json_index(
        self,
        fields: Iterable[SortField],
        name: str | None = None,
        design_doc: str | None = None,
    ) -> None:
        """Create a JSON index over ``fields``."""

        definition = IndexDefinition(
            type="json",
            index={"fields": encode_sort_fields(fields)},
            name=name,
            ddoc=design_doc,
        )
        self._create_index(definition)

    def create_text_index(
        self,
        fields: Iterable[TextIndexField] | None = None,
        name: str | None = None,
        design_doc: str | None = None,
        selector: Mapping[str, Any] | None = None,
        default_field_enabled: bool = False,
        default_field_analyzer: str | None = None,
    ) -> None:
        """Create a text index; an empty ``fields`` list indexes every field."""

        index: dict[str, Any] = {}
        if fields is not None:
            index["fields"] = [{"name": field.name, "type": field.type.value} for field in fields]
        if selector is not None:
            index["selector"] = dict(selector)
        default_field: dict[str, Any] = {"enabled": default_field_enabled}
        if default_field_analyzer is not None:
            default_field["analyzer"] = default_field_analyzer
        index["default_field"] = default_field

        self._create_index(IndexDefinition(type="text", index=index, name=name, ddoc=design_doc))

    def _create_index(self, definition: IndexDefinition) -> None:
        payload = definition.to_payload()
        response = self._pipeline.post(f"{self._path}/_index", body=payload)
        if response.status_code not in (200, 201):
            raise _failure(ModificationFailure, f"Error creating index: {payload}", response)
        logger.info("Created index %s on %s", payload, self.name)

    def list_indexes(self) -> list[Index]:
        """List every index defined on the database."""

        response = self._pipeline.get(f"{self._path}/_index/")
        if response.status_code != 200:
            raise _failure(ReadFailure, "Failed to list database indexes.", response)
        return decode_indexes(read_json(response))

    def delete_index(
        self,
        name: str,
        design_doc: str,
        index_type: IndexType = IndexType.JSON,
    ) -> None:
        """Delete an index; a missing index is reported as a failure."""

        if not name or not name.strip():
            raise ArgumentValidationError("indexName may not be null or empty.")
        if not design_doc or not design_doc.strip():
            raise ArgumentValidationError("designDocId may not be null or empty")

        ddoc = design_doc[len("_design/"):] if design_doc.startswith("_design/") else design_doc
        path = "/".join(
            [
                self._path,
                "_index",
                encode_segment(ddoc),
                IndexType(index_type).value,
                encode_segment(name),
            ]
        )
        response = self._pipeline.delete(path)
        if response.status_code == 200:
            logger.info("Deleted index %s from design doc %s", name, design_doc)
            return
        if response.status_code == 404:
            raise _failure(
                ModificationFailure,
                f"Index with name [{name}] and design doc [{design_doc}] does not exist.",
                response,
            )
        raise _failure(ModificationFailure, f"Error deleting index [{name}].", response)

    def query(
        self,
        selector: Mapping[str, Any],
        fields: list[str] | None = None,
        limit: int | None = None,
        skip: int | None = None,
        sort: list[SortField] | None = None,
        bookmark: str | None = None,
        use_index: str | list[str] | None = None,
        r: int | None = None,
    ) -> list[DocumentRevision]:
        """Run a ``_find`` query and return the matching revisions."""

        if selector is None:
            raise ArgumentValidationError("selector parameter cannot be null")

        try:
            request = FindRequest(
                selector=dict(selector),
                fields=fields,
                limit=limit,
                skip=skip,
                sort=sort,
                bookmark=bookmark,
                use_index=use_index,
                r=r,
            )
        except ValidationError as exc:
            raise ArgumentValidationError(f"Invalid query options: {exc}") from exc
        response = self._pipeline.post(f"{self._path}/_find", body=request.to_payload())
        if not _is_success(response):
            raise _failure(ReadFailure, "findByIndex failed.", response)
        return decode_documents(read_json(response))
