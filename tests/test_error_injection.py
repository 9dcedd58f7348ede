"""Failure injection: item store errors in the middle of collection operations."""
import pytest

from notekeep.database import Database
from notekeep.exceptions import StorageError
from tests.fakes import FlakyItemStore, RecordingPublisher, tiptap


@pytest.fixture
def flaky_db():
    """Database whose notes store can be armed to fail on put."""
    def factory(name):
        if name == "notes":
            return FlakyItemStore(name, fail_on="put")
        return FlakyItemStore(name, fail_on="none")

    return Database(factory)


class TestErrorInjection:
    """Store failures propagate and leave a repairable state."""

    @pytest.mark.anyio
    async def test_note_write_failure_after_indexing(self, flaky_db):
        store = flaky_db.notes.store
        store.arm()

        with pytest.raises(OSError, match="disk full"):
            await flaky_db.notes.add(
                {"id": "n1", "tags": ["t"], "content": tiptap("<p>x</p>")}
            )

        assert store.attempts == 1
        # Body and index were written before the metadata record
        assert len(await flaky_db.content._store.list()) == 1
        assert (await flaky_db.tags.lookup("t"))["note_ids"] == ["n1"]
        assert await flaky_db.notes.note("n1") is None

        store.disarm()
        report = await flaky_db.reconciler.reconcile()
        assert report.stale["tag"] == {"t": ["n1"]}
        assert await flaky_db.tags.lookup("t") is None

    @pytest.mark.anyio
    async def test_retry_after_failure_succeeds(self, flaky_db):
        store = flaky_db.notes.store
        store.arm()
        with pytest.raises(OSError):
            await flaky_db.notes.add({"id": "n1", "content": tiptap("<p>x</p>")})
        store.disarm()

        assert await flaky_db.notes.add({"id": "n1", "content": tiptap("<p>x</p>")}) == "n1"
        assert (await flaky_db.notes.note("n1")).title == "x"

    @pytest.mark.anyio
    async def test_storage_error_propagates_unchanged(self):
        error = StorageError("Item store put failed", operation="put", collection="notes")
        db = Database(lambda name: FlakyItemStore(name, fail_on="put", error=error))
        db.notes.store.arm()

        with pytest.raises(StorageError) as exc_info:
            await db.notes.add({"content": tiptap("<p>x</p>")})
        assert exc_info.value is error

    @pytest.mark.anyio
    async def test_failed_restore_keeps_snapshot(self, flaky_db):
        note_id = await flaky_db.notes.add({"id": "n1", "content": tiptap("<p>x</p>")})
        await flaky_db.notes.delete(note_id)
        store = flaky_db.notes.store
        store.arm()

        with pytest.raises(OSError, match="disk full"):
            await flaky_db.trash.restore(note_id)

        assert await flaky_db.trash.get(note_id) is not None
        assert await flaky_db.notes.note(note_id) is None

        store.disarm()
        assert await flaky_db.trash.restore(note_id) == [note_id]
        assert (await flaky_db.notes.note(note_id)).title == "x"
        assert await flaky_db.trash.get(note_id) is None

    @pytest.mark.anyio
    async def test_failed_empty_delete_publishes_nothing(self, flaky_db):
        recorder = RecordingPublisher()
        recorder.attach(flaky_db.events)
        note_id = await flaky_db.notes.add({"title": "Draft", "content": tiptap("<p>x</p>")})
        trash_store = flaky_db.trash._store
        trash_store.fail_on = "put"
        trash_store.arm()

        with pytest.raises(OSError):
            await flaky_db.notes.add({"id": note_id, "title": "", "content": tiptap("<p></p>")})

        assert recorder.events == []
