"""Tests for the note service and its persistence."""
import pytest

from notekeep.exceptions import AuthenticationRequiredError
from notekeep.models.schema import Attachment, NoteColor, SortKey, View, ViewState
from notekeep.services.note_service import NoteService


def make_attachment(name="a.png"):
    return Attachment(
        name=name, mime_type="image/png", data_url="data:image/png;base64,AAAA", size=3
    )


def reload(note_repository, user_id="user-1"):
    """What a fresh session would see."""
    service = NoteService(note_repository)
    service.open(user_id)
    return service.notes


class TestNoteService:
    """Tests for NoteService."""

    def test_create_note(self, note_service, note_repository):
        note = note_service.create_note(
            title="Groceries", content="milk, eggs", color=NoteColor.YELLOW, tags=["home"]
        )
        assert note_service.get_note(note.id) == note
        assert reload(note_repository) == (note,)

    def test_create_empty_note_writes_nothing(self, note_service, kv_store):
        assert note_service.create_note(title=" ", content="") is None
        assert note_service.notes == ()
        assert kv_store.get("notes:user-1") is None

    def test_update_note(self, note_service, note_repository):
        note = note_service.create_note(title="Draft", content="body")
        updated = note_service.update_note(note.id, title="Final", tags=["done"])
        assert updated.title == "Final"
        assert updated.content == "body"
        assert updated.tags == ["done"]
        assert updated.updated_at >= note.updated_at
        assert reload(note_repository)[0].title == "Final"

    def test_two_stage_delete(self, note_service, note_repository):
        note = note_service.create_note(title="Trash me")
        trashed = note_service.delete_note(note.id)
        assert trashed.deleted is True
        assert reload(note_repository)[0].deleted is True
        assert note_service.delete_note(note.id) is None
        assert note_service.notes == ()
        assert reload(note_repository) == ()

    def test_soft_delete_and_purge(self, note_service):
        note = note_service.create_note(title="x")
        assert note_service.soft_delete_note(note.id).deleted is True
        assert note_service.soft_delete_note(note.id).deleted is True
        note_service.purge_note(note.id)
        assert note_service.get_note(note.id) is None

    def test_toggles_and_restore(self, note_service, note_repository):
        note = note_service.create_note(title="x")
        assert note_service.toggle_archived(note.id).archived is True
        assert note_service.toggle_pinned(note.id).pinned is True
        note_service.delete_note(note.id)
        restored = note_service.restore_note(note.id)
        assert (restored.archived, restored.deleted, restored.pinned) == (False, False, True)
        assert reload(note_repository) == (restored,)

    def test_duplicate_note(self, note_service, note_repository):
        note = note_service.create_note(title="Plan", files=[make_attachment()])
        copy = note_service.duplicate_note(note.id)
        assert copy.title == "Plan (Copy)"
        assert [n.id for n in reload(note_repository)] == [copy.id, note.id]
        assert note_service.duplicate_note("missing") is None

    def test_attachments(self, note_service, note_repository):
        note = note_service.create_note(title="Files")
        first, second = make_attachment("1.png"), make_attachment("2.png")
        note = note_service.add_attachments(note.id, [first, second])
        assert note.files == [first, second]
        note = note_service.remove_attachment(note.id, first.id)
        assert note.files == [second]
        assert reload(note_repository)[0].files == [second]
        assert note_service.clear_attachments(note.id).files == []

    def test_unknown_ids_are_noops(self, note_service):
        note_service.create_note(title="Only")
        before = note_service.notes
        assert note_service.update_note("missing", title="x") is None
        assert note_service.toggle_archived("missing") is None
        assert note_service.delete_note("missing") is None
        assert note_service.notes == before

    def test_query(self, note_service):
        a = note_service.create_note(title="b note")
        b = note_service.create_note(title="a note")
        note_service.toggle_archived(a.id)
        assert note_service.query(ViewState()) == [b]
        state = ViewState(view=View.ARCHIVE, sort_key=SortKey.TITLE)
        assert [n.id for n in note_service.query(state)] == [a.id]

    def test_partitions_per_user(self, note_service, note_repository):
        note_service.create_note(title="Mine")
        note_service.close()
        note_service.open("user-2")
        assert note_service.notes == ()
        note_service.create_note(title="Theirs")
        assert [n.title for n in reload(note_repository, "user-1")] == ["Mine"]
        assert [n.title for n in reload(note_repository, "user-2")] == ["Theirs"]

    def test_closed_service_refuses_operations(self, note_repository):
        service = NoteService(note_repository)
        assert not service.is_open
        with pytest.raises(AuthenticationRequiredError):
            service.create_note(title="x")
        with pytest.raises(AuthenticationRequiredError):
            service.query(ViewState())
