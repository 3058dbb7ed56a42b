"""Report generation for parsed TAP documents.

Generates JSON and YAML reports from the group forests of one or more
documents, using the four presentation states: passed, failed, skipped,
warning.  Each group carries an aggregated status and each failed test
carries its failure message.
"""

from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Any

import yaml

from tapview.host.presentation import (
    VALID_STATES,
    decode_yaml_block,
    failure_message,
    presentation_state,
)
from tapview.parsing.structure import TestGroup, TestRecord


class Reporter:
    """Collects parsed documents and generates JSON or YAML reports.

    Documents are reported in the order they were added.  Each document
    lists its groups in document order, and each group its tests.
    """

    def __init__(
        self,
        todo_pass_state: str = "passed",
        include_yaml_diagnostics: bool = True,
    ) -> None:
        self.todo_pass_state = todo_pass_state
        self.include_yaml_diagnostics = include_yaml_diagnostics
        self.documents: list[tuple[str, list[TestGroup]]] = []

    def add_document(self, name: str, groups: list[TestGroup]) -> None:
        """Add the parsed groups of one document to the report.

        Args:
            name: Display name of the document (usually its path).
            groups: Output of :func:`tapview.parsing.parse`.
        """
        self.documents.append((name, groups))

    def generate_report(self) -> dict[str, Any]:
        """Generate the report data structure.

        Returns:
            Dictionary representing the full report, suitable for
            JSON or YAML serialization.
        """
        now = datetime.datetime.now(tz=datetime.timezone.utc).isoformat()
        report: dict[str, Any] = {
            "generated_at": now,
            "summary": self._compute_summary(),
            "documents": [
                {
                    "name": name,
                    "groups": [self._format_group(g) for g in groups],
                }
                for name, groups in self.documents
            ],
        }
        return {"report": report}

    def write_report(self, path: Path) -> None:
        """Write the report as a JSON file.

        Args:
            path: File path to write the JSON report to.
        """
        report = self.generate_report()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(report, f, indent=2, default=str)

    def write_yaml(self, path: Path) -> None:
        """Write the report as a YAML file.

        Args:
            path: File path to write the YAML report to.
        """
        report = self.generate_report()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(report, f, sort_keys=False)

    def _all_records(self) -> list[TestRecord]:
        return [
            t for _, groups in self.documents for g in groups for t in g.tests
        ]

    def _compute_summary(self) -> dict[str, Any]:
        """Compute summary counts per presentation state.

        Returns:
            Dictionary with counts and total duration.
        """
        records = self._all_records()
        states = [presentation_state(r, self.todo_pass_state) for r in records]
        total_duration = sum(r.duration or 0.0 for r in records)

        summary: dict[str, Any] = {
            "documents": len(self.documents),
            "groups": sum(len(groups) for _, groups in self.documents),
            "total": len(records),
        }
        for state in sorted(VALID_STATES):
            summary[state] = states.count(state)
        summary["total_duration_ms"] = round(total_duration, 3)
        return summary

    def _format_group(self, group: TestGroup) -> dict[str, Any]:
        """Format one group with its tests and aggregated status."""
        tests = [self._format_record(t) for t in group.tests]
        entry: dict[str, Any] = {
            "name": group.name,
            "line": group.line,
            "status": _aggregate_status([t["status"] for t in tests]),
            "ok": group.passed_count,
            "not_ok": group.failed_count,
            "tests": tests,
        }
        if group.plan is not None:
            entry["plan"] = {"start": group.plan[0], "end": group.plan[1]}
        return entry

    def _format_record(self, record: TestRecord) -> dict[str, Any]:
        """Format a single test record for the report.

        Args:
            record: TestRecord to format.

        Returns:
            Dictionary representing one test entry in the report.
        """
        status = presentation_state(record, self.todo_pass_state)
        entry: dict[str, Any] = {
            "ordinal": record.ordinal,
            "description": record.description,
            "status": status,
            "line": record.line,
        }

        if record.duration is not None:
            entry["duration_ms"] = record.duration
        if record.has_todo:
            entry["todo"] = True
        if record.has_skip:
            entry["skip"] = True
        if status == "failed":
            entry["message"] = failure_message(record)

        # Include output only if non-empty
        if record.output:
            entry["output"] = list(record.output)
            if self.include_yaml_diagnostics:
                diagnostics = decode_yaml_block(record)
                if diagnostics is not None:
                    entry["diagnostics"] = diagnostics

        return entry


def _aggregate_status(statuses: list[str]) -> str:
    """Compute aggregated status from child statuses.

    Ignores ``skipped`` entries so that skipped and expected-failure tests
    do not influence the aggregated pass/fail verdict.

    Args:
        statuses: List of child test statuses.

    Returns:
        Aggregated status string.
    """
    active = [s for s in statuses if s != "skipped"]
    if not active:
        # All children skipped -> propagate skipped (vs truly empty)
        if statuses:
            return "skipped"
        return "no_tests"

    if "failed" in active:
        return "failed"
    if all(s == "passed" for s in active):
        return "passed"
    return "warning"
