"""TAP line classifier.

Decides, for a single line of TAP text, which kind of line it is and
extracts the structured fields of test-result and test-plan lines.
Predicates are applied in a fixed order and the first match wins:

1. test result (``ok 1 - description`` / ``not ok 2``)
2. test plan (``1..N``, optionally indented)
3. YAML block open (``---``)
4. YAML block close (``...``)
5. anything else is plain output

Classification never raises: a line that does not fit a structured kind
is returned as a :class:`PlainLine`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

RESULT_RE = re.compile(r"^(\s*)(ok|not ok)\s+(\d+)(?:\s+(?:-\s+)?(.*))?")
PLAN_RE = re.compile(r"^(\s*)(\d+)\.\.(\d+)\s*$")
TODO_RE = re.compile(r"# TODO", re.IGNORECASE)
SKIP_RE = re.compile(r"# SKIP", re.IGNORECASE)
DURATION_RE = re.compile(r"\s+in\s+(\d+(\.\d+)?)(ms|s)\s*$", re.IGNORECASE)

YAML_OPEN = "---"
YAML_CLOSE = "..."


@dataclass(frozen=True)
class TestResultLine:
    """An ``ok`` / ``not ok`` line with its extracted fields."""

    __test__ = False

    line: int
    indent: int
    passed: bool
    ordinal: int
    raw_remainder: str
    description: str
    has_todo: bool = False
    has_skip: bool = False
    duration: float | None = None  # milliseconds


@dataclass(frozen=True)
class TestPlanLine:
    """A ``N..M`` plan line."""

    __test__ = False

    line: int
    indent: int
    start_ordinal: int
    end_ordinal: int


@dataclass(frozen=True)
class YamlOpenLine:
    """A ``---`` line opening a YAML diagnostic block."""

    line: int


@dataclass(frozen=True)
class YamlCloseLine:
    """A ``...`` line closing a YAML diagnostic block."""

    line: int


@dataclass(frozen=True)
class PlainLine:
    """Any line without TAP structure (log output, comments, blanks)."""

    line: int
    text: str


ClassifiedLine = Union[
    TestResultLine, TestPlanLine, YamlOpenLine, YamlCloseLine, PlainLine,
]


def split_lines(text: str) -> list[str]:
    """Split document text into lines the way an editor numbers them.

    Only ``\\n`` separates lines, so the empty string is one empty line and
    a trailing newline yields a final empty line.
    """
    return text.split("\n")


def _strip_cr(text: str) -> str:
    if text.endswith("\r"):
        return text[:-1]
    return text


def _parse_int(digits: str) -> int | None:
    """Convert a run of digits, or None past the interpreter's digit limit."""
    try:
        return int(digits)
    except ValueError:
        return None


def extract_duration(description: str) -> tuple[str, float | None]:
    """Split a trailing ``in <n>ms`` / ``in <n>s`` clause off a description.

    Returns:
        ``(description, duration_ms)``; the description is unchanged and the
        duration is ``None`` when there is no clause.
    """
    match = DURATION_RE.search(description)
    if match is None:
        return description, None
    value = float(match.group(1))
    if match.group(3).lower() == "s":
        value *= 1000
    return description[:match.start()], value


def clean_description(raw_remainder: str, ordinal: int) -> str:
    """Drop the ``#`` comment from a remainder and apply the default name."""
    description = raw_remainder.split("#", 1)[0].strip()
    return description or f"Test {ordinal}"


def parse_result_line(text: str, index: int = 0) -> TestResultLine | None:
    """Parse a test-result line, or return None if *text* is not one."""
    text = _strip_cr(text)
    match = RESULT_RE.match(text)
    if match is None:
        return None

    ordinal = _parse_int(match.group(3))
    if ordinal is None:
        return None
    raw_remainder = match.group(4) or ""
    description, duration = extract_duration(
        clean_description(raw_remainder, ordinal),
    )

    return TestResultLine(
        line=index,
        indent=len(match.group(1)),
        passed=match.group(2) == "ok",
        ordinal=ordinal,
        raw_remainder=raw_remainder,
        description=description,
        has_todo=TODO_RE.search(text) is not None,
        has_skip=SKIP_RE.search(text) is not None,
        duration=duration,
    )


def parse_plan_line(text: str, index: int = 0) -> TestPlanLine | None:
    """Parse a ``N..M`` plan line, or return None if *text* is not one."""
    match = PLAN_RE.match(_strip_cr(text))
    if match is None:
        return None
    start = _parse_int(match.group(2))
    end = _parse_int(match.group(3))
    if start is None or end is None:
        return None
    return TestPlanLine(
        line=index,
        indent=len(match.group(1)),
        start_ordinal=start,
        end_ordinal=end,
    )


def classify_line(text: str, index: int = 0) -> ClassifiedLine:
    """Classify one line of TAP text.

    Args:
        text: The raw line, without its newline.
        index: Zero-based line number recorded on the result.

    Returns:
        One of the ``ClassifiedLine`` variants.
    """
    result = parse_result_line(text, index)
    if result is not None:
        return result

    plan = parse_plan_line(text, index)
    if plan is not None:
        return plan

    trimmed = text.strip()
    if trimmed == YAML_OPEN:
        return YamlOpenLine(line=index)
    if trimmed == YAML_CLOSE:
        return YamlCloseLine(line=index)
    return PlainLine(line=index, text=text)


def classify_lines(text: str) -> list[ClassifiedLine]:
    """Classify every line of a document in order."""
    return [
        classify_line(line, i) for i, line in enumerate(split_lines(text))
    ]
