from __future__ import annotations

"""Example MCP client script for exercising the document database tools."""

import asyncio
import json
import os
import sys
from pathlib import Path

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client


def _extract_text(result) -> str:
    """Concatenate text fragments from MCP tool call results."""

    parts: list[str] = []
    for item in getattr(result, "content", []):
        text = getattr(item, "text", None)
        if text:
            parts.append(text)
    return "\n".join(parts)


async def main() -> None:
    """Connect to local MCP server script and run a small tool sequence."""

    selector = json.loads(os.getenv("MCP_DEMO_SELECTOR", '{"_id": {"$gt": null}}'))
    server_script = Path(__file__).resolve().parents[1] / "mcp_servers" / "couchdb_server.py"
    params = StdioServerParameters(
        command=sys.executable,
        args=[str(server_script)],
        env={
            **os.environ,
            "COUCHDB_URL": os.getenv("COUCHDB_URL", "http://localhost:5984"),
            "COUCHDB_DB": os.getenv("COUCHDB_DB", "documents"),
        },
    )

    async with stdio_client(params) as (read, write):
        async with ClientSession(read, write) as session:
            await session.initialize()

            tools = await session.list_tools()
            tool_names = [tool.name for tool in tools.tools]
            print("Available MCP tools:", ", ".join(tool_names))

            indexes = await session.call_tool("list_indexes", arguments={})
            print("\nlist_indexes result:")
            print(_extract_text(indexes))

            found = await session.call_tool(
                "find_documents",
                arguments={"selector": selector, "limit": 5},
            )
            found_text = _extract_text(found)
            print("\nfind_documents result:")
            print(found_text)

            payload = json.loads(found_text) if found_text else {}
            docs = payload.get("docs", [])
            if not docs:
                print("\nNo documents matched the selector.")
                return

            detail = await session.call_tool("get_document", arguments={"doc_id": docs[0]["_id"]})
            print("\nget_document result (truncated to 900 chars):")
            print(_extract_text(detail)[:900])


if __name__ == "__main__":
    """Execute demo flow when run as a script."""

    asyncio.run(main())
