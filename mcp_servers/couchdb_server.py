from __future__ import annotations

"""MCP server exposing read-oriented document database tools.

The tools open a client per call, run one operation and close it again.
"""

import sys
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

# Ensure project root is importable when server is executed as a script.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from couchclient.client import CouchClient
from couchclient.codec import encode_document
from couchclient.config import get_settings
from couchclient.database import Database

mcp = FastMCP("couchdb-document-access")


def _with_database(fn):
    """Execute a function with a managed client and configured database."""

    settings = get_settings()
    client = CouchClient.from_settings(settings)
    try:
        return fn(client.database(settings.couchdb_db))
    finally:
        client.close()


@mcp.tool()
def get_document(doc_id: str, rev: str | None = None) -> dict[str, Any]:
    """Get a document by id, optionally at a specific revision."""

    def _run(db: Database) -> dict[str, Any]:
        return encode_document(db.read(doc_id, rev=rev))

    return _with_database(_run)


@mcp.tool()
def find_documents(
    selector: dict[str, Any],
    fields: list[str] | None = None,
    limit: int = 25,
) -> dict[str, Any]:
    """Run a selector query and return matching documents."""

    bounded_limit = max(1, min(limit, 200))

    def _run(db: Database) -> dict[str, Any]:
        docs = db.query(selector, fields=fields, limit=bounded_limit)
        return {
            "database": db.name,
            "count": len(docs),
            "docs": [encode_document(doc) for doc in docs],
        }

    return _with_database(_run)


@mcp.tool()
def list_indexes() -> dict[str, Any]:
    """List secondary indexes defined on the configured database."""

    def _run(db: Database) -> dict[str, Any]:
        indexes = db.list_indexes()
        return {
            "database": db.name,
            "count": len(indexes),
            "indexes": [index.model_dump(mode="json") for index in indexes],
        }

    return _with_database(_run)


if __name__ == "__main__":
    """Run the MCP server over stdio transport."""

    mcp.run(transport="stdio")
