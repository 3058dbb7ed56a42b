"""Structural TAP parser: fold regions and test groups.

Two independent passes run over the classified lines of a document:

* The folding pass produces :class:`FoldRegion` line ranges an editor can
  collapse.  YAML side-blocks always fold as ``"region"`` kind ranges;
  structural ranges follow the selected grouping policy.
* The grouping pass builds the :class:`TestGroup` / :class:`TestRecord`
  forest shown in a results view.

The passes may disagree about where groups start and end.  Folding serves
the editor gutter while grouping serves result reporting, so neither is
derived from the other.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tapview.parsing.line_classifier import (
    TestPlanLine,
    TestResultLine,
    YamlOpenLine,
    classify_lines,
    split_lines,
)

# Grouping policies for the folding pass
PLAN_STACK = "plan_stack"
CURRENT_TEST = "current_test"
VALID_POLICIES = frozenset({PLAN_STACK, CURRENT_TEST})

# Fold kind for YAML diagnostic blocks
REGION_KIND = "region"


@dataclass(frozen=True)
class FoldRegion:
    """A collapsible, inclusive line range."""

    start: int
    end: int
    kind: str | None = None


@dataclass
class TestRecord:
    """One test result together with the output that followed it."""

    __test__ = False

    line: int
    indent: int
    passed: bool
    ordinal: int
    description: str
    raw: str
    duration: float | None = None
    has_todo: bool = False
    has_skip: bool = False
    output: list[str] = field(default_factory=list)

    @classmethod
    def from_line(cls, result: TestResultLine, raw: str) -> TestRecord:
        return cls(
            line=result.line,
            indent=result.indent,
            passed=result.passed,
            ordinal=result.ordinal,
            description=result.description,
            raw=raw,
            duration=result.duration,
            has_todo=result.has_todo,
            has_skip=result.has_skip,
        )


@dataclass
class TestGroup:
    """An ordered run of test records, opened by a plan or an ordinal reset.

    ``plan`` holds the ``(start, end)`` ordinals when the group was opened
    by an explicit plan line, and is ``None`` for implicit groups.
    """

    __test__ = False

    name: str
    line: int
    tests: list[TestRecord] = field(default_factory=list)
    plan: tuple[int, int] | None = None

    @property
    def passed_count(self) -> int:
        """Number of records whose line reads ``ok``."""
        return sum(1 for t in self.tests if t.passed)

    @property
    def failed_count(self) -> int:
        """Number of records whose line reads ``not ok``."""
        return sum(1 for t in self.tests if not t.passed)

    @property
    def last_ordinal(self) -> int:
        """Ordinal of the most recent record, or 0 for an empty group."""
        return self.tests[-1].ordinal if self.tests else 0


@dataclass
class ParsedDocument:
    """Both structural views of one document."""

    groups: list[TestGroup] = field(default_factory=list)
    folds: list[FoldRegion] = field(default_factory=list)


def _check_policy(policy: str) -> None:
    if policy not in VALID_POLICIES:
        raise ValueError(
            f"Unknown grouping policy: {policy!r} "
            f"(expected one of {sorted(VALID_POLICIES)})"
        )


def _yaml_region(lines: list[str], start: int) -> FoldRegion | None:
    """Fold from a ``---`` line to the first following ``...`` line."""
    for j in range(start + 1, len(lines)):
        if lines[j].strip() == "...":
            return FoldRegion(start, j, REGION_KIND)
    return None


def compute_fold_regions(
    text: str, policy: str = PLAN_STACK,
) -> list[FoldRegion]:
    """Compute fold regions for a TAP document.

    Regions are returned in the order their closing condition is found,
    which is not necessarily sorted by start line.

    Args:
        text: Full document text.
        policy: ``PLAN_STACK`` folds plan-delimited subtrees by indentation;
            ``CURRENT_TEST`` folds each test result over the lines that
            follow it.

    Returns:
        List of :class:`FoldRegion`.

    Raises:
        ValueError: If *policy* is not a known grouping policy.
    """
    _check_policy(policy)

    lines = split_lines(text)
    last = len(lines) - 1
    regions: list[FoldRegion] = []

    # Plan-stack state: (start_line, indent) entries
    stack: list[tuple[int, int]] = []
    # Current-test state
    current: int | None = None

    for entry in classify_lines(text):
        i = entry.line

        if isinstance(entry, TestPlanLine):
            if policy == PLAN_STACK:
                while stack and stack[-1][1] >= entry.indent:
                    start, _ = stack.pop()
                    if start < i - 1:
                        regions.append(FoldRegion(start, i - 1))
                stack.append((i, entry.indent))
            else:
                if current is not None and i > current + 1:
                    regions.append(FoldRegion(current, i - 1))
                current = None
            continue

        if isinstance(entry, TestResultLine):
            if policy == CURRENT_TEST:
                if current is not None and i > current + 1:
                    regions.append(FoldRegion(current, i - 1))
                current = i
            continue

        if isinstance(entry, YamlOpenLine):
            region = _yaml_region(lines, i)
            if region is not None:
                regions.append(region)

    while stack:
        start, _ = stack.pop()
        if start < last:
            regions.append(FoldRegion(start, last))

    if current is not None and current < last:
        regions.append(FoldRegion(current, last))

    return regions


def parse(text: str) -> list[TestGroup]:
    """Group the test results of a TAP document.

    A plan line always seals the open group and starts a new one named
    after its range.  A result whose ordinal does not exceed the previous
    ordinal in the same group starts an implicit ``"group N"``.  Non-blank
    lines after a result are captured as that result's output.

    Args:
        text: Full document text.

    Returns:
        List of :class:`TestGroup` in document order.
    """
    lines = split_lines(text)
    groups: list[TestGroup] = []
    current_group: TestGroup | None = None
    active: TestRecord | None = None

    def _seal() -> None:
        nonlocal current_group
        if current_group is not None:
            groups.append(current_group)
            current_group = None

    def _implicit_group(line: int) -> TestGroup:
        # Numbered by the position the group will take in the output
        return TestGroup(name=f"group {len(groups) + 1}", line=line)

    for entry in classify_lines(text):
        if isinstance(entry, TestPlanLine):
            _seal()
            current_group = TestGroup(
                name=f"{entry.start_ordinal}..{entry.end_ordinal}",
                line=entry.line,
                plan=(entry.start_ordinal, entry.end_ordinal),
            )
            active = None
            continue

        if isinstance(entry, TestResultLine):
            if (
                current_group is not None
                and current_group.tests
                and entry.ordinal <= current_group.last_ordinal
            ):
                _seal()
            if current_group is None:
                current_group = _implicit_group(entry.line)
            active = TestRecord.from_line(entry, lines[entry.line])
            current_group.tests.append(active)
            continue

        raw = lines[entry.line]
        if active is not None and raw.strip():
            active.output.append(raw)

    _seal()
    return groups


def parse_document(text: str, policy: str = PLAN_STACK) -> ParsedDocument:
    """Run both passes over *text*.

    Raises:
        ValueError: If *policy* is not a known grouping policy.
    """
    return ParsedDocument(
        groups=parse(text),
        folds=compute_fold_regions(text, policy),
    )
