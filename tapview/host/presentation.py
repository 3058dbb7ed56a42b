"""Presentation mapping for parsed TAP records.

Maps each :class:`TestRecord` to the state a results view shows
(passed, failed, skipped, warning), builds failure messages and inline
problem markers, and decodes the YAML side-block a record carries.

State table, first matching row wins:

=====================  =========================================
record                 state
=====================  =========================================
``has_skip``           skipped (also when ``has_todo`` is set)
todo, ``passed``       ``todo_pass_state`` (passed or warning)
todo, not passed       skipped (expected failure)
``passed``             passed
not passed             failed
=====================  =========================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import yaml

from tapview.parsing.structure import TestGroup, TestRecord

VALID_STATES = frozenset({"passed", "failed", "skipped", "warning"})


@dataclass(frozen=True)
class Diagnostic:
    """An inline problem marker on the line of a failing test."""

    line: int
    start_column: int
    end_column: int
    message: str
    severity: str = "error"


def presentation_state(
    record: TestRecord, todo_pass_state: str = "passed",
) -> str:
    """Map a record to its results-view state.

    Args:
        record: The parsed test record.
        todo_pass_state: State for passing TODO tests, ``"passed"`` or the
            stricter ``"warning"``.

    Raises:
        ValueError: If *todo_pass_state* is not passed or warning.
    """
    if todo_pass_state not in ("passed", "warning"):
        raise ValueError(f"Invalid todo_pass_state: {todo_pass_state!r}")

    if record.has_skip:
        return "skipped"
    if record.has_todo:
        return todo_pass_state if record.passed else "skipped"
    return "passed" if record.passed else "failed"


def failure_message(record: TestRecord) -> str:
    """Message shown for a failed record: its output, or a fallback."""
    if record.output:
        return "\n".join(record.output)
    return f"Test failed: {record.description}"


def record_id(document_id: str, group_index: int, record: TestRecord) -> str:
    """Stable identifier of a record within a document.

    Ordinals are unique inside a group, so the group position plus the
    ordinal identifies a record.
    """
    return f"{document_id}#{group_index}.{record.ordinal}"


def collect_diagnostics(
    groups: list[TestGroup], todo_pass_state: str = "passed",
) -> list[Diagnostic]:
    """Build problem markers for every record presented as failed."""
    diagnostics: list[Diagnostic] = []
    for group in groups:
        for record in group.tests:
            if presentation_state(record, todo_pass_state) != "failed":
                continue
            diagnostics.append(Diagnostic(
                line=record.line,
                start_column=record.indent,
                end_column=len(record.raw.rstrip("\r")),
                message=failure_message(record),
            ))
    return diagnostics


def decode_yaml_block(record: TestRecord) -> dict[str, Any] | None:
    """Decode the first ``---``/``...`` block in a record's output.

    Returns:
        The decoded mapping, or None when the record has no complete block,
        the block is not valid YAML, or it does not hold a mapping.
    """
    start: int | None = None
    for i, line in enumerate(record.output):
        stripped = line.strip()
        if start is None:
            if stripped == "---":
                start = i
        elif stripped == "...":
            body = "\n".join(record.output[start + 1:i])
            try:
                data = yaml.safe_load(_dedent(body))
            except yaml.YAMLError:
                return None
            return data if isinstance(data, dict) else None
    return None


def _dedent(body: str) -> str:
    """Remove the common leading indentation TAP producers add to blocks."""
    lines = body.split("\n")
    indents = [len(ln) - len(ln.lstrip(" ")) for ln in lines if ln.strip()]
    if not indents:
        return body
    cut = min(indents)
    return "\n".join(ln[cut:] for ln in lines)
