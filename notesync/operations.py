"""
Note file-management functions for notesync.

Creates, renames, moves, archives and deletes note files. Every function
notifies the session about whatever part of the filesystem change actually
happened, even when it then raises OperationError.
"""

import os
from collections.abc import Iterable
from pathlib import Path

import aiofiles
import structlog
import yaml

from .session import Session
from .utils import (
    UNSAFE_CHARS_PATTERN,
    WHITESPACE_PATTERN,
    OperationError,
    validate_path_within_roots,
)

logger = structlog.get_logger(__name__)


def generate_filename(title: str, extension: str) -> str:
    """Generate a file name from a title: lowercase words joined by hyphens."""
    safe_title = UNSAFE_CHARS_PATTERN.sub('', title)
    safe_title = WHITESPACE_PATTERN.sub('-', safe_title.strip()).lower()
    if not safe_title:
        raise OperationError(f"Cannot derive a file name from title: {title!r}")
    return f"{safe_title}.{extension.lstrip('.')}"


def generate_header(title: str, extension: str) -> str:
    """Generate the title header for a new note.

    Org and plain text notes get a ``#+TITLE:`` line; Markdown notes get YAML
    front matter.
    """
    if extension.lstrip(".") == "md":
        yaml_content = yaml.dump({"title": title}, allow_unicode=True, default_flow_style=False, sort_keys=False)
        return f"---\n{yaml_content}---\n\n"
    return f"#+TITLE: {title}\n\n"


def _existing_note(session: Session, path: str | os.PathLike) -> Path:
    source = validate_path_within_roots(path, session.roots)
    if not source.is_file():
        raise OperationError(f"Note not found: {path}")
    return source


async def create_note(
    session: Session,
    title: str,
    content: str = "",
    directory: str | os.PathLike | None = None,
    extension: str | None = None,
) -> Path:
    """Create a new note file under a root.

    Args:
        session: Session to notify
        title: Note title, also used to build the file name
        content: Body text written after the title header
        directory: Target directory (absolute or relative to the first root)
        extension: File extension; defaults to the primary note extension

    Returns:
        Path of the created note

    Raises:
        OperationError: If the title is empty, the location is invalid or the file exists
    """
    if not title or not title.strip():
        raise OperationError("Title cannot be empty")
    title = title.strip()
    extension = extension or session.settings.extension

    if directory is None:
        if not session.roots:
            raise OperationError("No note directories are configured")
        folder_path = session.roots[0]
    else:
        folder_path = validate_path_within_roots(directory, session.roots)

    file_path = folder_path / generate_filename(title, extension)
    if file_path.exists():
        raise OperationError(f"File already exists: {file_path}")

    folder_path.mkdir(parents=True, exist_ok=True)
    try:
        async with aiofiles.open(file_path, mode="x", encoding="utf-8") as f:
            await f.write(generate_header(title, extension) + content)
    except FileExistsError:
        raise OperationError(f"File already exists: {file_path}") from None
    except OSError as e:
        logger.error("note_write_failed", path=str(file_path), error=str(e))
        raise OperationError(f"Failed to write file: {e}") from e

    logger.info("note_created", path=str(file_path))
    await session.notify_files_changed([file_path])
    return file_path


async def _move_notes(session: Session, moves: list[tuple[Path, Path]]) -> list[Path]:
    """Move files, notifying the session about the moves that completed."""
    done: list[tuple[Path, Path]] = []
    try:
        for source, target in moves:
            if target.exists():
                raise OperationError(f"Target already exists: {target}")
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                os.rename(source, target)
            except OSError as e:
                raise OperationError(f"Cannot move {source} to {target}: {e}") from e
            logger.info("note_moved", source=str(source), target=str(target))
            done.append((source, target))
    finally:
        if done:
            await session.notify_files_renamed(done)
    return [target for _, target in done]


async def rename_note(session: Session, path: str | os.PathLike, new_name: str) -> Path:
    """Rename a note within its directory.

    A new name without an extension keeps the old one.
    """
    source = _existing_note(session, path)
    if not new_name or not new_name.strip() or os.sep in new_name:
        raise OperationError(f"Invalid file name: {new_name!r}")
    new_name = new_name.strip()
    if not Path(new_name).suffix:
        new_name += source.suffix

    target = validate_path_within_roots(source.with_name(new_name), session.roots)
    if target == source:
        return source
    (moved,) = await _move_notes(session, [(source, target)])
    return moved


async def move_note(session: Session, path: str | os.PathLike, directory: str | os.PathLike) -> Path:
    """Move a note into another directory under a root."""
    source = _existing_note(session, path)
    target_dir = validate_path_within_roots(directory, session.roots)
    target = target_dir / source.name
    if target == source:
        return source
    (moved,) = await _move_notes(session, [(source, target)])
    return moved


async def archive_notes(session: Session, paths: Iterable[str | os.PathLike]) -> list[Path]:
    """Move notes into the archive subdirectory next to each of them.

    Raises:
        OperationError: On the first note that cannot be archived; the notes
            archived before it stay archived and are reported to the session
    """
    archive_name = session.settings.archive_directory
    moves = []
    for path in paths:
        source = _existing_note(session, path)
        if source.parent.name == archive_name:
            raise OperationError(f"Note is already archived: {source}")
        moves.append((source, source.parent / archive_name / source.name))
    return await _move_notes(session, moves)


async def archive_note(session: Session, path: str | os.PathLike) -> Path:
    """Archive a single note."""
    (archived,) = await archive_notes(session, [path])
    return archived


async def delete_notes(session: Session, paths: Iterable[str | os.PathLike]) -> list[Path]:
    """Delete note files, notifying the session about those actually deleted."""
    deleted: list[Path] = []
    try:
        for path in paths:
            source = _existing_note(session, path)
            try:
                source.unlink()
            except OSError as e:
                raise OperationError(f"Cannot delete {source}: {e}") from e
            logger.info("note_deleted", path=str(source))
            deleted.append(source)
    finally:
        if deleted:
            await session.notify_files_removed(deleted)
    return deleted


async def delete_note(session: Session, path: str | os.PathLike) -> Path:
    """Delete a single note."""
    (deleted,) = await delete_notes(session, [path])
    return deleted
