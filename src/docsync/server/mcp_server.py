"""FastMCP server exposing docsync search and sync status."""

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

from mcp.server.fastmcp import FastMCP

from docsync.config import load_config
from docsync.services import Services, open_services

logger = logging.getLogger(__name__)


def format_hits(query: str, hits) -> str:
    if not hits:
        return f"No results found for: {query}"

    lines = []
    for i, hit in enumerate(hits, 1):
        # Truncate long text snippets
        text = hit.text[:200].replace("\n", " ")
        if len(hit.text) > 200:
            text += "..."
        location = hit.relative_path
        if hit.start_line is not None:
            location += f":{hit.start_line}"
            if hit.end_line is not None and hit.end_line != hit.start_line:
                location += f"-{hit.end_line}"

        lines.append(f"{i}. [{hit.score:.3f}] {location}")
        lines.append(f"   {text}")
        lines.append("")

    return "\n".join(lines)


def create_mcp_server(
    db_path: Optional[Path] = None, services: Optional[Services] = None
) -> FastMCP:
    """Create an MCP server over a docsync index.

    Args:
        db_path: Database to serve. Ignored when ``services`` is given.
        services: Already-open components to reuse.

    Returns:
        Configured FastMCP server instance
    """
    if services is None:
        config = load_config()
        if db_path is not None:
            config = replace(config, db_path=Path(db_path))
        services = open_services(config)

    mcp = FastMCP(
        name="docsync",
    )

    @mcp.tool()
    def search(
        query: str,
        limit: int = 10,
        character_id: Optional[str] = None,
        folder_ids: Optional[list[str]] = None,
    ) -> str:
        """Hybrid search across synced folders.

        Combines semantic and keyword retrieval, so both concepts
        ("authentication logic") and identifiers ("parseConfig") work.

        Args:
            query: What you're looking for
            limit: Maximum number of results to return (default: 10)
            character_id: Only search this agent's folders
            folder_ids: Only search these folders

        Returns:
            Ranked chunks with file path, line range and score
        """
        result = services.searcher.try_search(
            query, character_id=character_id, folder_ids=folder_ids, top_k=limit
        )
        if not result.ok:
            return f"Error: search failed ({result.kind.value}): {result.message}"
        return format_hits(query, result.value)

    @mcp.tool()
    def sync_status(character_id: Optional[str] = None) -> str:
        """Summarize sync state: active, pending and failed folders.

        Args:
            character_id: Only report this agent's folders

        Returns:
            JSON status report
        """
        return json.dumps(services.status(character_id).to_dict(), indent=2)

    @mcp.tool()
    def list_folders(character_id: Optional[str] = None) -> str:
        """List registered sync folders with their status and counts.

        Args:
            character_id: Only list this agent's folders

        Returns:
            JSON list of folders
        """
        folders = services.store.list_folders(character_id)
        return json.dumps([f.to_dict() for f in folders], indent=2)

    @mcp.tool()
    def sync_folder(folder_id: str, wait: bool = False) -> str:
        """Trigger a sync cycle for a folder.

        Args:
            folder_id: Id of the folder (see list_folders)
            wait: Run the cycle now and return its outcome instead of
                  scheduling it in the background

        Returns:
            JSON with "mode" set to "completed" or "scheduled"
        """
        if services.store.get_folder(folder_id) is None:
            return f"Error: Unknown folder: {folder_id}"
        if not services.config.enabled:
            return "Error: folder sync is disabled"

        if wait:
            outcome = services.engine.sync_folder(folder_id)
            return json.dumps({"mode": "completed", **outcome.to_dict()}, indent=2)

        services.scheduler.schedule(folder_id)
        return json.dumps({"mode": "scheduled", "folderId": folder_id}, indent=2)

    return mcp
