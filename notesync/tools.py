"""
MCP Tools module for notesync.

Contains the MCP tool handlers (list_tools and call_tool) serving a note
listing backed by a single Session.
"""

import json
from pathlib import Path
from typing import Any

import aiofiles
from mcp.server import Server
from mcp.types import (
    Resource,
    TextContent,
    Tool,
)

from .config import settings
from .operations import archive_note, create_note, delete_note, move_note, rename_note
from .session import Session, create_session
from .utils import ConfigError, OperationError, validate_path_within_roots


class ListingView:
    """Text rendering target: keeps the last rendered listing."""

    def __init__(self) -> None:
        self.session: Session | None = None
        self.lines: list[str] = []
        self.renders = 0

    def render(self, files: list[Path]) -> None:
        if self.session is None:
            return
        self.lines = [
            f"{line} ({path})"
            for line, path in zip(self.session.format_files(files), files)
        ]
        self.renders += 1


# Initialize server
server = Server("notesync")

listing_view = ListingView()
session = create_session(settings, render=listing_view.render)
listing_view.session = session
_initialized = False


async def _ensure_session() -> Session:
    """Resolve roots and build the first listing on first use."""
    global _initialized
    if not _initialized:
        await session.initialize()
        _initialized = True
    return session


def _format_listing(active: Session) -> str:
    header = f"{len(active.current_files)} of {len(active.all_files)} notes"
    if active.query:
        header += f" | query: {active.query}"
    if active.filter_string:
        header += f" | filter: {active.filter_string}"
    if not listing_view.lines:
        return header + "\n\nNo notes."
    return header + "\n\n" + "\n".join(f"- {line}" for line in listing_view.lines)


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    path_property = {
        "type": "string",
        "description": "Absolute path of the note, or a path relative to the first note directory",
    }
    return [
        Tool(
            name="notes_list",
            description="List notes, newest first. An optional full-text query selects notes through the "
                        "search index; an optional filter keeps notes whose path, title, keywords and "
                        "summary contain every whitespace-separated word.",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "Full-text query; empty string clears it"
                    },
                    "filter": {
                        "type": "string",
                        "description": "Filter words (AND); empty string clears it"
                    }
                }
            }
        ),
        Tool(
            name="notes_refresh",
            description="Re-read the configured note directories and update the search index.",
            inputSchema={
                "type": "object",
                "properties": {
                    "force": {
                        "type": "boolean",
                        "description": "Rebuild the search index from scratch (default: false)",
                        "default": False
                    }
                }
            }
        ),
        Tool(
            name="notes_changed",
            description="Report note files changed outside this server so the listing stays current.",
            inputSchema={
                "type": "object",
                "properties": {
                    "paths": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Absolute paths of the changed files"
                    },
                    "removed": {
                        "type": "boolean",
                        "description": "The files were deleted or renamed away (default: false)",
                        "default": False
                    }
                },
                "required": ["paths"]
            }
        ),
        Tool(
            name="notes_gc",
            description="Drop cached metadata of note files that no longer exist.",
            inputSchema={
                "type": "object",
                "properties": {}
            }
        ),
        Tool(
            name="notes_read",
            description="Read the full content of a note.",
            inputSchema={
                "type": "object",
                "properties": {"path": path_property},
                "required": ["path"]
            }
        ),
        Tool(
            name="notes_create",
            description="Create a new note with a title header.",
            inputSchema={
                "type": "object",
                "properties": {
                    "title": {
                        "type": "string",
                        "description": "Title of the note (also used for the file name)"
                    },
                    "content": {
                        "type": "string",
                        "description": "Body text of the note"
                    },
                    "directory": {
                        "type": "string",
                        "description": "Optional target directory; defaults to the first note directory"
                    }
                },
                "required": ["title"]
            }
        ),
        Tool(
            name="notes_rename",
            description="Rename a note within its directory.",
            inputSchema={
                "type": "object",
                "properties": {
                    "path": path_property,
                    "new_name": {
                        "type": "string",
                        "description": "New file name; the extension is kept when omitted"
                    }
                },
                "required": ["path", "new_name"]
            }
        ),
        Tool(
            name="notes_move",
            description="Move a note to another directory under a note directory.",
            inputSchema={
                "type": "object",
                "properties": {
                    "path": path_property,
                    "directory": {
                        "type": "string",
                        "description": "Target directory"
                    }
                },
                "required": ["path", "directory"]
            }
        ),
        Tool(
            name="notes_archive",
            description="Move a note into the archive subdirectory next to it.",
            inputSchema={
                "type": "object",
                "properties": {"path": path_property},
                "required": ["path"]
            }
        ),
        Tool(
            name="notes_delete",
            description="Delete a note file.",
            inputSchema={
                "type": "object",
                "properties": {"path": path_property},
                "required": ["path"]
            }
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls."""
    try:
        active = await _ensure_session()
        return await _dispatch(active, name, arguments)
    except (OperationError, ConfigError) as e:
        return [TextContent(type="text", text=f"Error: {e}")]


async def _dispatch(active: Session, name: str, arguments: dict[str, Any]) -> list[TextContent]:
    if name == "notes_list":
        if "query" in arguments:
            await active.set_query(arguments.get("query") or None, flush=False)
        if "filter" in arguments:
            await active.set_filter(arguments.get("filter") or None, flush=False)
        await active.view_shown()
        return [TextContent(type="text", text=_format_listing(active))]

    elif name == "notes_refresh":
        await active.refresh(force=bool(arguments.get("force", False)))
        return [TextContent(type="text", text=_format_listing(active))]

    elif name == "notes_changed":
        paths = arguments.get("paths", [])
        if arguments.get("removed"):
            await active.notify_files_removed(paths)
        else:
            await active.notify_files_changed(paths)
        return [TextContent(type="text", text=_format_listing(active))]

    elif name == "notes_gc":
        removed = active.garbage_collect()
        output = f"Removed {len(removed)} stale cache entries.\n"
        for path in removed:
            output += f"- {path}\n"
        return [TextContent(type="text", text=output)]

    elif name == "notes_read":
        path = validate_path_within_roots(arguments.get("path", ""), active.roots)
        if not path.is_file():
            return [TextContent(type="text", text=f"Note not found: '{arguments.get('path', '')}'")]
        async with aiofiles.open(path, encoding="utf-8", errors="replace") as f:
            content = await f.read()
        await active.cache.refresh(path)
        note = active.cache.get(path)

        output = f"# {note.title if note and note.title else path.stem}\n\n"
        output += f"**Path:** {path}\n"
        if note and note.keywords:
            output += f"**Keywords:** {note.keywords}\n"
        output += "\n---\n\n"
        output += content
        return [TextContent(type="text", text=output)]

    elif name == "notes_create":
        path = await create_note(
            active,
            arguments.get("title", ""),
            arguments.get("content", ""),
            arguments.get("directory"),
        )
        return [TextContent(type="text", text=f"Created {path}")]

    elif name == "notes_rename":
        path = await rename_note(active, arguments.get("path", ""), arguments.get("new_name", ""))
        return [TextContent(type="text", text=f"Renamed to {path}")]

    elif name == "notes_move":
        path = await move_note(active, arguments.get("path", ""), arguments.get("directory", ""))
        return [TextContent(type="text", text=f"Moved to {path}")]

    elif name == "notes_archive":
        path = await archive_note(active, arguments.get("path", ""))
        return [TextContent(type="text", text=f"Archived to {path}")]

    elif name == "notes_delete":
        path = await delete_note(active, arguments.get("path", ""))
        return [TextContent(type="text", text=f"Deleted {path}")]

    return [TextContent(type="text", text=f"Unknown tool: {name}")]


# ============== Resources ==============

@server.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    return [
        Resource(
            uri="notes://listing",
            name="Note Listing",
            description="The current filtered note list",
            mimeType="application/json"
        ),
    ]


@server.read_resource()
async def read_resource(uri: str) -> str:
    """Read a resource."""
    if str(uri) == "notes://listing":
        active = await _ensure_session()
        await active.view_shown()
        return json.dumps({
            "query": active.query,
            "filter": active.filter_string,
            "roots": [str(root) for root in active.roots],
            "files": [str(path) for path in active.current_files],
        }, indent=2)

    return json.dumps({"error": f"Unknown resource: {uri}"})
