"""Per-document store of parsed TAP results.

A host re-parses a document on open and on every change, and drops it on
close.  The registry keeps the latest group forest for each document and
reports what changed between successive parses so a results view can
update only the affected entries.  Stored results are replaced wholesale;
records from an earlier parse are never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tapview.host.presentation import presentation_state, record_id
from tapview.parsing.structure import (
    PLAN_STACK,
    ParsedDocument,
    TestRecord,
    parse_document,
)


@dataclass
class ResultDiff:
    """Record ids added, removed, or changed by a re-parse."""

    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True if the re-parse changed nothing visible."""
        return not (self.added or self.removed or self.changed)


def _index_records(
    document_id: str, parsed: ParsedDocument | None,
) -> dict[str, TestRecord]:
    if parsed is None:
        return {}
    index: dict[str, TestRecord] = {}
    for group_index, group in enumerate(parsed.groups):
        for record in group.tests:
            index[record_id(document_id, group_index, record)] = record
    return index


def diff_documents(
    document_id: str,
    old: ParsedDocument | None,
    new: ParsedDocument | None,
    todo_pass_state: str = "passed",
) -> ResultDiff:
    """Compare two parses of the same document.

    A record counts as changed when its description, presentation state,
    line, duration, or output differ.
    """
    old_index = _index_records(document_id, old)
    new_index = _index_records(document_id, new)

    diff = ResultDiff()
    for rid, record in new_index.items():
        previous = old_index.get(rid)
        if previous is None:
            diff.added.append(rid)
        elif _visible_fields(previous, todo_pass_state) != _visible_fields(
            record, todo_pass_state,
        ):
            diff.changed.append(rid)
    diff.removed = [rid for rid in old_index if rid not in new_index]
    return diff


def _visible_fields(record: TestRecord, todo_pass_state: str) -> tuple:
    return (
        record.description,
        presentation_state(record, todo_pass_state),
        record.line,
        record.duration,
        tuple(record.output),
    )


class DocumentRegistry:
    """Latest parse results keyed by document identity."""

    def __init__(
        self,
        policy: str = PLAN_STACK,
        todo_pass_state: str = "passed",
    ) -> None:
        self.policy = policy
        self.todo_pass_state = todo_pass_state
        self._documents: dict[str, ParsedDocument] = {}

    def update(self, document_id: str, text: str) -> ResultDiff:
        """Re-parse a document and store the new results.

        Args:
            document_id: Host identity of the document (e.g. its URI).
            text: Full current text of the document.

        Returns:
            The :class:`ResultDiff` against the previously stored parse.
        """
        parsed = parse_document(text, self.policy)
        diff = diff_documents(
            document_id,
            self._documents.get(document_id),
            parsed,
            self.todo_pass_state,
        )
        self._documents[document_id] = parsed
        return diff

    def remove(self, document_id: str) -> ResultDiff:
        """Forget a closed document; every record it had is reported removed."""
        parsed = self._documents.pop(document_id, None)
        return diff_documents(
            document_id, parsed, None, self.todo_pass_state,
        )

    def get(self, document_id: str) -> ParsedDocument | None:
        """Latest parse for a document, or None if unknown."""
        return self._documents.get(document_id)

    def documents(self) -> list[str]:
        """Ids of all tracked documents, in insertion order."""
        return list(self._documents)
