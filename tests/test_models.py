"""Tests for the note data models."""
import re

import pytest
from pydantic import ValidationError as PydanticValidationError

from notekeep.exceptions import (
    ErrorCode,
    InvalidDestinationError,
    NoteNotFoundError,
    StorageError,
    ValidationError,
)
from notekeep.models.schema import (
    NOTE_FIELDS,
    Content,
    ContentPayload,
    Destination,
    Note,
    from_ms,
    generate_id,
    now_ms,
)


class TestIdGeneration:
    """Tests for generate_id."""

    def test_format(self):
        assert re.fullmatch(r"[0-9a-f]{24}", generate_id())

    def test_unique(self):
        ids = [generate_id() for _ in range(1000)]
        assert len(set(ids)) == 1000


class TestNote:
    """Tests for the Note model."""

    def test_defaults(self):
        note = Note()
        assert note.type == "note"
        assert note.title == ""
        assert note.tags == []
        assert note.notebooks is None
        assert note.pinned is False
        assert note.date_created <= now_ms()

    def test_none_values_normalized(self):
        note = Note(title=None, tags=None, color="", notebooks=[], date_created=None)
        assert note.title == ""
        assert note.tags == []
        assert note.color is None
        assert note.notebooks is None
        assert isinstance(note.date_created, int)

    def test_labels_trimmed(self):
        note = Note(tags=[" work", "  ", "", "work ", "home"], color="  ")
        assert note.tags == ["work", "home"]
        assert note.color is None
        assert Note(color=" red ").color == "red"

    def test_title_must_be_text(self):
        with pytest.raises(PydanticValidationError):
            Note(title=5)

    def test_flags_coerced(self):
        note = Note(pinned="yes", locked=0, favorite=[1], conflicted=None)
        assert (note.pinned, note.locked, note.favorite, note.conflicted) == (
            True, False, True, False
        )

    def test_unknown_keys_dropped(self):
        record = Note.model_validate({"id": "n1", "content": {"x": 1}, "deleted": True}).to_record()
        assert record["id"] == "n1"
        assert "content" not in record
        assert "deleted" not in record

    def test_to_record_omits_unfiled_notebooks(self):
        assert "notebooks" not in Note().to_record()
        record = Note(notebooks=[{"id": "nb", "topics": ["t"]}]).to_record()
        assert record["notebooks"] == [{"id": "nb", "topics": ["t"]}]

    def test_type_is_fixed(self):
        with pytest.raises(PydanticValidationError):
            Note(type="notebook")

    def test_note_fields(self):
        assert "title" in NOTE_FIELDS
        assert "content_id" in NOTE_FIELDS
        assert "content" not in NOTE_FIELDS


class TestPayloads:
    """Tests for content and destination models."""

    def test_content_payload_flags(self):
        payload = ContentPayload.model_validate({"type": "tiptap", "data": "", "conflicted": 1})
        assert payload.conflicted is True
        assert payload.resolved is False
        assert payload.data == ""

    def test_content_generates_id(self):
        content = Content(note_id="n1", type="tiptap", data="x")
        assert len(content.id) == 24

    def test_destination_requires_both_parts(self):
        assert Destination(id="nb", topic="t").topic == "t"
        with pytest.raises(PydanticValidationError):
            Destination.model_validate({"id": "nb"})
        with pytest.raises(PydanticValidationError):
            Destination(id="nb", topic="")

    def test_from_ms(self):
        assert from_ms(0).year == 1970
        assert from_ms(0).tzinfo is not None


class TestExceptions:
    """Tests for the error hierarchy."""

    def test_to_dict(self):
        error = NoteNotFoundError("n1")
        assert error.to_dict() == {
            "error": "NoteNotFoundError",
            "code": ErrorCode.NOTE_NOT_FOUND.value,
            "code_name": "NOTE_NOT_FOUND",
            "message": error.message,
            "details": {"note_id": "n1"},
        }

    def test_str_includes_details(self):
        error = ValidationError("bad", field="sort", value="up")
        assert "field=sort" in str(error)
        assert error.code == ErrorCode.VALIDATION_FAILED

    def test_destination_details(self):
        error = InvalidDestinationError("No such topic exists.", notebook_id="nb", topic_id="t")
        assert error.code == ErrorCode.INVALID_DESTINATION
        assert error.details == {"notebook_id": "nb", "topic_id": "t"}

    def test_storage_error_keeps_cause(self):
        error = StorageError("failed", operation="put", original_error=OSError("disk full"))
        assert error.details["original_error"] == "disk full"
