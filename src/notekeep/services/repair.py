"""Index reconciliation: rebuild tag, color and topic indexes from the notes.

Collection operations have no rollback, so a failure part way through can
leave an index listing a note that no longer carries the label, or miss a
note that does. The reconciler treats live note records as the source of
truth.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List

from notekeep.observability import traced
from notekeep.storage.label_index import normalize_label

logger = logging.getLogger(__name__)

# kind -> label -> note IDs
Diff = Dict[str, Dict[str, List[str]]]


@dataclass
class RepairReport:
    """Differences found between notes and their indexes.

    Attributes:
        missing: Notes carrying a label that the index does not list.
        stale: Index entries pointing at notes that do not carry the label.
        unresolved: Topic memberships naming a notebook or topic that no
            longer exists; these cannot be fixed from the index side.
        repaired: Whether the differences were written back.
    """

    missing: Diff = field(default_factory=lambda: defaultdict(dict))
    stale: Diff = field(default_factory=lambda: defaultdict(dict))
    unresolved: Dict[str, List[str]] = field(default_factory=dict)
    repaired: bool = False

    @property
    def is_consistent(self) -> bool:
        return not any(self.missing.values()) and not any(self.stale.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "missing": {k: dict(v) for k, v in self.missing.items() if v},
            "stale": {k: dict(v) for k, v in self.stale.items() if v},
            "unresolved": dict(self.unresolved),
            "repaired": self.repaired,
        }


class IndexReconciler:
    """Compares live notes with the tag, color and topic indexes."""

    def __init__(self, notes):
        """Initialize the reconciler.

        Args:
            notes: The NoteCollection whose indexes are checked.
        """
        self.notes = notes

    async def _expected(self) -> Dict[str, Dict[str, List[str]]]:
        expected: Dict[str, Dict[str, List[str]]] = {
            "tag": defaultdict(list),
            "color": defaultdict(list),
            "topic": defaultdict(list),
        }
        for note in await self.notes.all():
            note_id = note["id"]
            for tag in note.get("tags") or []:
                expected["tag"][normalize_label(tag)].append(note_id)
            if note.get("color"):
                expected["color"][normalize_label(note["color"])].append(note_id)
            for ref in note.get("notebooks") or []:
                for topic_id in ref.get("topics", []):
                    expected["topic"][f"{ref['id']}/{topic_id}"].append(note_id)
        return expected

    async def _actual(self) -> Dict[str, Dict[str, List[str]]]:
        actual: Dict[str, Dict[str, List[str]]] = {"tag": {}, "color": {}, "topic": {}}
        for kind, index in (("tag", self.notes.tags), ("color", self.notes.colors)):
            for entry in await index.all():
                actual[kind][entry["id"]] = list(entry["note_ids"])
        for notebook in await self.notes.notebooks.all():
            for topic in notebook.get("topics", []):
                actual["topic"][f"{notebook['id']}/{topic['id']}"] = list(topic["notes"])
        return actual

    @traced("notes.reconcile")
    async def reconcile(self, dry_run: bool = False) -> RepairReport:
        """Find and, unless ``dry_run``, fix index entries that disagree with notes.

        Topic keys in the report have the form ``"<notebook_id>/<topic_id>"``.
        """
        expected = await self._expected()
        actual = await self._actual()
        report = RepairReport()

        for kind in ("tag", "color", "topic"):
            for label in sorted(set(expected[kind]) | set(actual[kind])):
                want = expected[kind].get(label, [])
                have = actual[kind].get(label)
                if kind == "topic" and have is None:
                    report.unresolved[label] = list(want)
                    continue
                have = have or []
                missing = [i for i in want if i not in have]
                stale = [i for i in have if i not in want]
                if missing:
                    report.missing[kind][label] = missing
                if stale:
                    report.stale[kind][label] = stale
                if (missing or stale) and not dry_run:
                    fixed = [i for i in have if i in want] + missing
                    await self._write(kind, label, fixed)

        report.repaired = not dry_run and not report.is_consistent
        if not report.is_consistent:
            logger.info(
                f"Index reconciliation {'found' if dry_run else 'repaired'} "
                f"differences: {report.to_dict()}"
            )
        if report.unresolved:
            logger.warning(
                f"Notes filed under missing topics: {sorted(report.unresolved)}"
            )
        return report

    async def _write(self, kind: str, label: str, note_ids: List[str]) -> None:
        if kind == "topic":
            notebook_id, topic_id = label.rsplit("/", 1)
            await self.notes.notebooks.set_topic_notes(notebook_id, topic_id, note_ids)
        elif kind == "tag":
            await self.notes.tags.replace(label, note_ids)
        else:
            await self.notes.colors.replace(label, note_ids)
