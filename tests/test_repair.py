"""Tests for index reconciliation after partial failures."""
from unittest.mock import patch

import pytest

from tests.fakes import tiptap


class TestIndexReconciler:
    """Tests for IndexReconciler.reconcile."""

    @pytest.mark.anyio
    async def test_consistent_store(self, db):
        await db.notes.add({"tags": ["a"], "color": "red", "content": tiptap("<p>x</p>")})

        report = await db.reconciler.reconcile()

        assert report.is_consistent
        assert report.repaired is False
        assert report.to_dict() == {
            "missing": {}, "stale": {}, "unresolved": {}, "repaired": False
        }

    @pytest.mark.anyio
    async def test_missing_entry_repaired(self, db):
        note_id = await db.notes.add({"tags": ["a"], "content": tiptap("<p>x</p>")})
        await db.tags.remove("a", note_id)

        report = await db.reconciler.reconcile()

        assert report.missing["tag"] == {"a": [note_id]}
        assert report.repaired is True
        assert [n["id"] for n in await db.notes.tagged("a")] == [note_id]
        assert (await db.reconciler.reconcile()).is_consistent

    @pytest.mark.anyio
    async def test_stale_entry_repaired(self, db, stores):
        note_id = await db.notes.add({"tags": ["a"], "content": tiptap("<p>x</p>")})
        await stores["notes"].delete(note_id)

        report = await db.reconciler.reconcile()

        assert report.stale["tag"] == {"a": [note_id]}
        assert await db.tags.lookup("a") is None

    @pytest.mark.anyio
    async def test_dry_run_changes_nothing(self, db):
        note_id = await db.notes.add({"tags": ["a"], "content": tiptap("<p>x</p>")})
        await db.tags.remove("a", note_id)

        report = await db.reconciler.reconcile(dry_run=True)

        assert not report.is_consistent
        assert report.repaired is False
        assert await db.notes.tagged("a") == []

    @pytest.mark.anyio
    async def test_failed_delete_leaves_repairable_state(self, db):
        """A failure while cleaning indexes is fixed by the next reconcile."""
        note_id = await db.notes.add(
            {"tags": ["a"], "color": "red", "content": tiptap("<p>x</p>")}
        )

        with patch.object(db.colors, "remove", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                await db.notes.delete(note_id)

        # Tag entry already cleaned, note itself still stored
        assert await db.notes.tagged("a") == []
        assert await db.notes.note(note_id) is not None

        report = await db.reconciler.reconcile()
        assert report.missing["tag"] == {"a": [note_id]}
        assert [n["id"] for n in await db.notes.tagged("a")] == [note_id]
        assert [n["id"] for n in await db.notes.colored("red")] == [note_id]

    @pytest.mark.anyio
    async def test_topic_membership_repaired(self, db):
        notebook_id = await db.notebooks.add({"title": "Work", "topics": ["A"]})
        topic_id = (await db.notebooks.notebook(notebook_id)).topics.all[0].id
        note_id = await db.notes.add({"content": tiptap("<p>x</p>")})
        await db.notes.move({"id": notebook_id, "topic": topic_id}, note_id)
        await db.notebooks.set_topic_notes(notebook_id, topic_id, [])

        report = await db.reconciler.reconcile()

        key = f"{notebook_id}/{topic_id}"
        assert report.missing["topic"] == {key: [note_id]}
        topic = (await db.notebooks.notebook(notebook_id)).topics.topic(topic_id)
        assert topic.notes == [note_id]

    @pytest.mark.anyio
    async def test_reference_to_missing_topic_is_unresolved(self, db):
        await db.notes.add(
            {"id": "n1", "remote": True, "type": "note",
             "notebooks": [{"id": "gone", "topics": ["t"]}]}
        )

        report = await db.reconciler.reconcile()

        assert report.unresolved == {"gone/t": ["n1"]}
        assert report.is_consistent
