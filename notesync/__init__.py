# notesync: a live, filterable view over directories of plain-text notes
#
# Modular package structure:
# - config.py: Settings (pydantic-settings, NOTESYNC_ environment prefix)
# - models.py: CachedNote, UpdateLevel, ChangeEvent, root path expressions
# - utils.py: Exceptions, regex patterns, front matter and path helpers
# - resolver.py: Root specification evaluation and existence filtering
# - enumerator.py: Recursive note file discovery
# - parser.py: Title, summary and keyword extraction
# - cache.py: NoteCache, the per-file metadata cache
# - index.py: SearchIndex contract and the SQLite FTS5 backend
# - filtering.py: AND-of-substrings filter over cached metadata
# - coordinator.py: ViewCoordinator, pending update levels and flushing
# - session.py: Session, the state and entry points tying it together
# - formatting.py: Display formatter strategy
# - operations.py: Create/rename/move/archive/delete with cache invalidation
# - tools.py: MCP tool handlers and server instance
# - main.py: Entry point and server initialization
