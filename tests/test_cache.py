"""
Tests for the note metadata cache.
"""

import pytest

from conftest import BASE_MTIME, set_mtime, write_note


@pytest.fixture
async def note_cache(notes_root):
    """A NoteCache primed with the three top-level notes."""
    from notesync.cache import NoteCache

    cache = NoteCache()
    await cache.refresh_many([
        notes_root / "meeting.org",
        notes_root / "plan.org",
        notes_root / "ideas.md",
    ])
    return cache


class TestNoteCacheRefresh:
    """Tests for NoteCache.refresh."""

    async def test_refresh_loads_fields(self, notes_root):
        """Test a first refresh parses the file into all fields."""
        from notesync.cache import NoteCache

        cache = NoteCache()
        path = notes_root / "plan.org"

        assert await cache.refresh(path) is True

        assert cache.title(path) == "Project Plan"
        assert cache.summary(path) == "Intro text here. Milestones follow."
        assert cache.keywords(path) == "roadmap quarterly"
        assert cache.mtime(path) == BASE_MTIME + 20
        assert cache.blob(path) == f"{path} Project Plan roadmap quarterly Intro text here. Milestones follow."

    async def test_refresh_twice_is_idempotent(self, note_cache, notes_root):
        """Test a second refresh without changes leaves every field identical."""
        path = notes_root / "meeting.org"
        before = note_cache.get(path)

        assert await note_cache.refresh(path) is False

        after = note_cache.get(path)
        assert after is before
        assert (after.title, after.summary, after.blob, after.mtime) == (
            before.title, before.summary, before.blob, before.mtime,
        )

    async def test_refresh_reloads_newer_file(self, note_cache, notes_root):
        """Test a strictly newer mtime triggers a reload of all fields at once."""
        path = notes_root / "meeting.org"
        write_note(path, "Standup\n\nShort sync.\n", mtime=BASE_MTIME + 100)

        assert await note_cache.refresh(path) is True

        note = note_cache.get(path)
        assert note.title == "Standup"
        assert note.summary == "Short sync."
        assert note.mtime == BASE_MTIME + 100
        assert "Standup" in note.blob and "budget" not in note.blob

    async def test_refresh_ignores_same_or_older_mtime(self, note_cache, notes_root):
        """Test content changes without a newer mtime are not picked up."""
        path = notes_root / "meeting.org"
        write_note(path, "Changed\n\nBut same mtime.\n", mtime=BASE_MTIME + 10)

        assert await note_cache.refresh(path) is False
        assert note_cache.title(path) == "Meeting Notes"

        set_mtime(path, BASE_MTIME + 5)
        assert await note_cache.refresh(path) is False
        assert note_cache.title(path) == "Meeting Notes"

    async def test_refresh_missing_file_keeps_entry(self, note_cache, notes_root):
        """Test a deleted file's entry is left in place by refresh."""
        path = notes_root / "meeting.org"
        path.unlink()

        assert await note_cache.refresh(path) is False
        assert note_cache.title(path) == "Meeting Notes"

    async def test_refresh_missing_file_without_entry(self, tmp_path):
        """Test refreshing a file that never existed creates nothing."""
        from notesync.cache import NoteCache

        cache = NoteCache()

        assert await cache.refresh(tmp_path / "nope.org") is False
        assert len(cache) == 0

    async def test_unreadable_file_skipped(self, tmp_path):
        """Test a path that cannot be read produces no entry."""
        from notesync.cache import NoteCache

        directory = tmp_path / "looks-like-a-note.org"
        directory.mkdir()
        cache = NoteCache()

        assert await cache.refresh(directory) is False
        assert directory not in cache

    async def test_oversized_file_skipped(self, tmp_path):
        """Test files above max_file_size are not parsed."""
        from notesync.cache import NoteCache

        path = write_note(tmp_path / "big.org", "Big\n\n" + "x" * 200)
        cache = NoteCache(max_file_size=100)

        assert await cache.refresh(path) is False
        assert cache.get(path) is None

    async def test_relative_and_absolute_paths_share_entry(self, note_cache, notes_root, monkeypatch):
        """Test paths are normalized to absolute keys."""
        monkeypatch.chdir(notes_root)

        assert note_cache.title("meeting.org") == "Meeting Notes"
        assert "meeting.org" in note_cache

    async def test_refresh_many_counts_reloads(self, notes_root):
        """Test refresh_many reports only the entries actually loaded."""
        from notesync.cache import NoteCache

        cache = NoteCache()
        paths = [notes_root / "meeting.org", notes_root / "plan.org", notes_root / "missing.org"]

        assert await cache.refresh_many(paths) == 2
        assert await cache.refresh_many(paths) == 0


class TestNoteCacheRemoval:
    """Tests for removal, garbage collection and clearing."""

    async def test_garbage_collect_removes_only_deleted(self, note_cache, notes_root):
        """Test GC returns exactly the deleted file and keeps the others."""
        meeting = notes_root / "meeting.org"
        plan = notes_root / "plan.org"
        ideas = notes_root / "ideas.md"
        plan_entry = note_cache.get(plan)
        plan.unlink()

        assert note_cache.garbage_collect() == [plan]

        assert note_cache.get(plan) is None
        assert note_cache.title(meeting) == "Meeting Notes"
        assert note_cache.title(ideas) == "Ideas"
        assert plan_entry.title == "Project Plan"

    async def test_garbage_collect_nothing_to_do(self, note_cache):
        """Test GC with every file present removes nothing."""
        assert note_cache.garbage_collect() == []
        assert len(note_cache) == 3

    async def test_remove(self, note_cache, notes_root):
        """Test explicit removal returns the paths that had entries."""
        removed = note_cache.remove([notes_root / "plan.org", notes_root / "unknown.org"])

        assert removed == [notes_root / "plan.org"]
        assert len(note_cache) == 2

    async def test_clear(self, note_cache):
        """Test clear drops all entries."""
        note_cache.clear()

        assert len(note_cache) == 0
        assert note_cache.paths() == []

    async def test_accessors_for_unknown_path(self, note_cache, tmp_path):
        """Test field accessors return None for uncached paths."""
        path = tmp_path / "unknown.org"

        assert note_cache.get(path) is None
        assert note_cache.title(path) is None
        assert note_cache.summary(path) is None
        assert note_cache.keywords(path) is None
        assert note_cache.blob(path) is None
        assert note_cache.mtime(path) is None
