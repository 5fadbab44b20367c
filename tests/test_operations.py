"""
Tests for note file operations.
"""

import pytest

from conftest import write_note


@pytest.fixture
async def session(make_settings, notes_root):
    """An initialized Session over notes_root."""
    from notesync.session import Session

    session = Session(make_settings(notes_root))
    await session.initialize()
    return session


class TestHelperFunctions:
    """Tests for file name and header generation."""

    def test_generate_filename(self):
        """Test titles become lowercase hyphenated file names."""
        from notesync.operations import generate_filename

        assert generate_filename("Weekly Review", "org") == "weekly-review.org"
        assert generate_filename("  What? Why!  ", ".md") == "what-why.md"

    def test_generate_filename_rejects_empty_result(self):
        """Test a title with nothing usable is rejected."""
        from notesync.operations import generate_filename
        from notesync.utils import OperationError

        with pytest.raises(OperationError):
            generate_filename("???", "org")

    def test_generate_header(self):
        """Test org notes get a TITLE directive and markdown notes front matter."""
        from notesync.operations import generate_header
        from notesync.parser import parse_note_content

        assert generate_header("Plan", "org") == "#+TITLE: Plan\n\n"
        assert parse_note_content(generate_header("Plan: v2", "md") + "Body\n").title == "Plan: v2"


class TestCreateNote:
    """Tests for create_note."""

    async def test_create_in_first_root(self, session, notes_root):
        """Test a created note is written and listed first."""
        from notesync.operations import create_note

        path = await create_note(session, "Weekly Review", "Went fine.\n")

        assert path == notes_root / "weekly-review.org"
        assert path.read_text(encoding="utf-8") == "#+TITLE: Weekly Review\n\nWent fine.\n"
        assert session.current_files[0] == path
        assert session.cache.title(path) == "Weekly Review"
        assert session.cache.summary(path) == "Went fine."

    async def test_create_markdown(self, session, notes_root):
        """Test a markdown note gets its title from front matter."""
        from notesync.operations import create_note

        path = await create_note(session, "Reading List", "Books.\n", extension="md")

        assert path.suffix == ".md"
        assert path.read_text(encoding="utf-8").startswith("---\ntitle: Reading List\n---\n")
        assert session.cache.title(path) == "Reading List"

    async def test_create_in_subdirectory(self, session, notes_root):
        """Test a relative directory is taken from the first root and created if needed."""
        from notesync.operations import create_note

        path = await create_note(session, "Seeds", directory="projects/spring")

        assert path == notes_root / "projects" / "spring" / "seeds.org"
        assert path in session.current_files

    async def test_create_existing_fails(self, session, notes_root):
        """Test an existing file is never overwritten."""
        from notesync.operations import create_note
        from notesync.utils import OperationError

        write_note(notes_root / "weekly-review.org", "Keep me\n")

        with pytest.raises(OperationError, match="already exists"):
            await create_note(session, "Weekly Review", "New text")

        assert (notes_root / "weekly-review.org").read_text(encoding="utf-8") == "Keep me\n"

    async def test_create_empty_title_fails(self, session):
        """Test an empty title is rejected."""
        from notesync.operations import create_note
        from notesync.utils import OperationError

        with pytest.raises(OperationError):
            await create_note(session, "   ")

    async def test_create_outside_roots_fails(self, session):
        """Test directories escaping the roots are rejected."""
        from notesync.operations import create_note
        from notesync.utils import PathValidationError

        with pytest.raises(PathValidationError):
            await create_note(session, "Escape", directory="../outside")


class TestMoveAndRename:
    """Tests for rename_note and move_note."""

    async def test_rename_keeps_extension(self, session, notes_root):
        """Test renaming without an extension keeps the old one."""
        from notesync.operations import rename_note

        target = await rename_note(session, notes_root / "plan.org", "roadmap")

        assert target == notes_root / "roadmap.org"
        assert target.is_file()
        assert notes_root / "plan.org" not in session.all_files
        assert notes_root / "plan.org" not in session.cache
        assert target in session.current_files

    async def test_rename_rejects_separators(self, session, notes_root):
        """Test new names cannot point into other directories."""
        from notesync.operations import rename_note
        from notesync.utils import OperationError

        with pytest.raises(OperationError):
            await rename_note(session, notes_root / "plan.org", "projects/plan.org")

    async def test_rename_missing_note(self, session):
        """Test renaming a note that does not exist fails."""
        from notesync.operations import rename_note
        from notesync.utils import OperationError

        with pytest.raises(OperationError, match="not found"):
            await rename_note(session, "missing.org", "other")

    async def test_move_relative_paths(self, session, notes_root):
        """Test relative note and directory paths resolve against the first root."""
        from notesync.operations import move_note

        target = await move_note(session, "plan.org", "projects")

        assert target == notes_root / "projects" / "plan.org"
        assert target in session.current_files
        assert notes_root / "plan.org" not in session.current_files

    async def test_move_onto_existing_fails(self, session, notes_root):
        """Test a move never overwrites an existing note."""
        from notesync.operations import move_note
        from notesync.utils import OperationError

        write_note(notes_root / "projects" / "plan.org", "Other plan\n")

        with pytest.raises(OperationError, match="already exists"):
            await move_note(session, "plan.org", "projects")

        assert (notes_root / "plan.org").is_file()


class TestArchive:
    """Tests for archive_note and archive_notes."""

    async def test_archive_removes_from_listing(self, session, notes_root):
        """Test an archived note moves next to it and leaves the listing."""
        from notesync.operations import archive_note

        target = await archive_note(session, "plan.org")

        assert target == notes_root / "_archive" / "plan.org"
        assert target.is_file()
        assert target not in session.all_files
        assert notes_root / "plan.org" not in session.all_files

    async def test_archive_in_subdirectory(self, session, notes_root):
        """Test the archive directory is created beside the note."""
        from notesync.operations import archive_note

        target = await archive_note(session, "projects/garden.txt")

        assert target == notes_root / "projects" / "_archive" / "garden.txt"

    async def test_already_archived(self, session, notes_root):
        """Test archiving an archived note fails."""
        from notesync.operations import archive_note
        from notesync.utils import OperationError

        with pytest.raises(OperationError, match="already archived"):
            await archive_note(session, notes_root / "_archive" / "old.org")

    async def test_partial_archive_is_reported(self, session, notes_root):
        """Test notes archived before a failure still leave the listing."""
        from notesync.operations import archive_notes
        from notesync.utils import OperationError

        write_note(notes_root / "_archive" / "plan.org", "Older plan\n")

        with pytest.raises(OperationError):
            await archive_notes(session, ["meeting.org", "plan.org"])

        assert (notes_root / "_archive" / "meeting.org").is_file()
        assert notes_root / "meeting.org" not in session.all_files
        assert notes_root / "plan.org" in session.all_files


class TestDelete:
    """Tests for delete_note and delete_notes."""

    async def test_delete(self, session, notes_root):
        """Test a deleted note leaves the disk, the listing and the cache."""
        from notesync.operations import delete_note

        path = await delete_note(session, "ideas.md")

        assert not path.exists()
        assert path not in session.all_files
        assert path not in session.cache

    async def test_partial_delete_is_reported(self, session, notes_root):
        """Test notes deleted before a failure still leave the listing."""
        from notesync.operations import delete_notes
        from notesync.utils import OperationError

        with pytest.raises(OperationError):
            await delete_notes(session, ["meeting.org", "missing.org"])

        assert not (notes_root / "meeting.org").exists()
        assert notes_root / "meeting.org" not in session.all_files

    async def test_delete_outside_roots(self, session, tmp_path):
        """Test files outside the roots cannot be deleted."""
        from notesync.operations import delete_note
        from notesync.utils import PathValidationError

        outside = write_note(tmp_path / "outside.org", "Keep\n")

        with pytest.raises(PathValidationError):
            await delete_note(session, outside)

        assert outside.exists()
