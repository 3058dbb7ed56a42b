"""Tests for the structural TAP parser."""

from __future__ import annotations

import pytest

from tapview.parsing.structure import (
    CURRENT_TEST,
    PLAN_STACK,
    REGION_KIND,
    FoldRegion,
    TestGroup,
    compute_fold_regions,
    parse,
    parse_document,
)

NESTED = "\n".join([
    "1..2",                     # 0
    "    1..2",                 # 1
    "    ok 1 - inner a",       # 2
    "    ok 2 - inner b",       # 3
    "ok 1 - outer a",           # 4
    "    1..1",                 # 5
    "    ok 1 - inner c",       # 6
    "ok 2 - outer b",           # 7
])


class TestGroupingBasics:
    """Tests for the grouping pass on simple documents."""

    def test_empty_text(self):
        """Empty text yields no groups."""
        assert parse("") == []

    def test_plan_scenario(self):
        """A plan with a passing and a failing todo test forms one group."""
        groups = parse("1..2\nok 1 - a\nnot ok 2 - b # TODO later\n")
        assert len(groups) == 1
        group = groups[0]
        assert group.name == "1..2"
        assert group.plan == (1, 2)
        assert group.line == 0
        assert len(group.tests) == 2

        first, second = group.tests
        assert first.passed is True
        assert first.description == "a"
        assert first.ordinal == 1
        assert second.passed is False
        assert second.has_todo is True
        assert second.description == "b"

    def test_no_plan_opens_default_group(self):
        """Results before any plan land in an auto-named group."""
        groups = parse("ok 1 - a\nok 2 - b")
        assert len(groups) == 1
        assert groups[0].name == "group 1"
        assert groups[0].plan is None
        assert groups[0].line == 0

    def test_record_fields_match_line(self):
        """Ordinal and passed come straight from the source line."""
        groups = parse("not ok 5 - five\nok 9 - nine")
        tests = groups[0].tests
        assert [(t.ordinal, t.passed) for t in tests] == [(5, False), (9, True)]
        assert tests[0].raw == "not ok 5 - five"
        assert tests[1].line == 1

    def test_duration_carried(self):
        """Durations are copied onto records."""
        groups = parse("ok 1 - done in 1.5s")
        assert groups[0].tests[0].duration == 1500
        assert groups[0].tests[0].description == "done"

    def test_empty_plan_group_is_kept(self):
        """A plan with no results still yields a group."""
        groups = parse("1..0\n")
        assert len(groups) == 1
        assert groups[0].name == "1..0"
        assert groups[0].tests == []


class TestGroupBoundaries:
    """Tests for plan resets and implicit ordinal resets."""

    def test_plan_starts_new_group(self):
        """Overlapping ordinals after a plan line form distinct groups."""
        groups = parse("1..2\nok 1\nok 2\n1..2\nok 1\nok 2\n")
        assert [g.name for g in groups] == ["1..2", "1..2"]
        assert [len(g.tests) for g in groups] == [2, 2]
        assert groups[1].line == 3

    def test_ordinal_reset_starts_implicit_group(self):
        """An ordinal <= the previous one starts a new group."""
        groups = parse("ok 1\nok 2\nok 1\nok 2\n")
        assert len(groups) == 2
        assert groups[0].name == "group 1"
        assert groups[1].name == "group 2"
        assert groups[1].line == 2

    def test_repeated_ordinal_resets(self):
        """An equal ordinal also counts as a reset."""
        groups = parse("ok 3\nok 3\n")
        assert len(groups) == 2

    def test_reset_inside_plan_group(self):
        """A reset within a plan group opens an implicit group after it."""
        groups = parse("1..3\nok 1\nok 2\nok 1\n")
        assert [g.name for g in groups] == ["1..3", "group 2"]
        assert groups[1].plan is None

    def test_gaps_in_ordinals_do_not_reset(self):
        """Increasing ordinals with gaps stay in one group."""
        groups = parse("ok 1\nok 5\nok 9\n")
        assert len(groups) == 1
        assert [t.ordinal for t in groups[0].tests] == [1, 5, 9]

    def test_ordinals_strictly_increase_in_groups(self):
        """Every produced group has strictly increasing ordinals."""
        groups = parse(NESTED)
        for group in groups:
            ordinals = [t.ordinal for t in group.tests]
            assert ordinals == sorted(set(ordinals))

    def test_nested_document(self):
        """Plans at any indentation start groups; indentation is ignored."""
        groups = parse(NESTED)
        assert [g.name for g in groups] == ["1..2", "1..2", "group 3", "1..1"]
        assert [len(g.tests) for g in groups] == [0, 2, 1, 2]
        assert groups[2].tests[0].description == "outer a"
        assert groups[3].tests[1].description == "outer b"

    def test_counts(self):
        """Group pass/fail counts follow the ok tokens."""
        group = parse("ok 1\nnot ok 2\nnot ok 3 # TODO\n")[0]
        assert group.passed_count == 1
        assert group.failed_count == 2


class TestOutputCapture:
    """Tests for output lines attached to records."""

    def test_output_attached_to_active_record(self):
        """Non-blank lines after a result become its output."""
        text = "\n".join([
            "not ok 1 - broken",
            "  ---",
            "  message: boom",
            "  ...",
            "ok 2 - fine",
        ])
        groups = parse(text)
        assert groups[0].tests[0].output == ["  ---", "  message: boom", "  ..."]
        assert groups[0].tests[1].output == []

    def test_blank_lines_dropped(self):
        """Blank and whitespace-only lines are never stored."""
        groups = parse("ok 1\n\n   \nlog line\n\n")
        assert groups[0].tests[0].output == ["log line"]

    def test_lines_before_any_record_dropped(self):
        """Output before the first record has no owner."""
        groups = parse("TAP version 13\n1..1\n# header\nok 1\n")
        assert groups[0].tests[0].output == []

    def test_plan_clears_active_record(self):
        """Lines after a plan are not attributed to the previous record."""
        groups = parse("ok 1\n1..1\n# stray\nok 1\n")
        assert groups[0].tests[0].output == []
        assert groups[1].tests[0].output == []

    def test_unterminated_yaml_is_output(self):
        """An unterminated YAML opener is ordinary output."""
        groups = parse("not ok 1\n---\nmessage: x\nok 2\n")
        assert groups[0].tests[0].output == ["---", "message: x"]
        assert groups[0].tests[1].ordinal == 2


class TestPlanStackFolding:
    """Tests for the plan-stack folding policy."""

    def test_empty_text(self):
        """Empty text yields no regions."""
        assert compute_fold_regions("") == []

    def test_single_plan_folds_to_end(self):
        """A lone plan folds to the last line."""
        regions = compute_fold_regions("1..2\nok 1\nok 2")
        assert regions == [FoldRegion(0, 2)]

    def test_trailing_newline_included(self):
        """The final empty line counts as the last line."""
        regions = compute_fold_regions("1..1\nok 1\n")
        assert regions == [FoldRegion(0, 2)]

    def test_nested_plans(self):
        """Deeper plans close when a shallower-or-equal plan appears."""
        regions = compute_fold_regions(NESTED)
        assert regions == [
            FoldRegion(1, 4),
            FoldRegion(5, 7),
            FoldRegion(0, 7),
        ]

    def test_adjacent_plans_not_folded(self):
        """A plan followed directly by another emits nothing."""
        regions = compute_fold_regions("1..0\n1..0")
        assert regions == []

    def test_results_alone_do_not_fold(self):
        """Without plans only YAML blocks fold."""
        assert compute_fold_regions("ok 1\nlog\nok 2\nlog") == []


class TestCurrentTestFolding:
    """Tests for the current-test folding policy."""

    def test_adjacent_results_not_folded(self):
        """Back-to-back results emit nothing between them."""
        regions = compute_fold_regions("ok 1\nok 2", CURRENT_TEST)
        assert regions == []

    def test_single_gap_line_folds(self):
        """One intervening line, even blank, is enough to fold."""
        regions = compute_fold_regions("ok 1\n\nok 2", CURRENT_TEST)
        assert regions == [FoldRegion(0, 1)]

    def test_last_test_folds_to_end(self):
        """The open test folds against the last line."""
        regions = compute_fold_regions("ok 1\nlog a\nlog b", CURRENT_TEST)
        assert regions == [FoldRegion(0, 2)]

    def test_plan_closes_without_opening(self):
        """A plan closes the open test and does not start a fold itself."""
        text = "ok 1\nlog\n1..1\n# comment\n"
        regions = compute_fold_regions(text, CURRENT_TEST)
        assert regions == [FoldRegion(0, 1)]

    def test_yaml_emitted_before_test_fold(self):
        """Regions appear in discovery order, not sorted by start."""
        text = "\n".join([
            "not ok 1",   # 0
            "  ---",      # 1
            "  a: 1",     # 2
            "  ...",      # 3
            "ok 2",       # 4
        ])
        regions = compute_fold_regions(text, CURRENT_TEST)
        assert regions == [
            FoldRegion(1, 3, REGION_KIND),
            FoldRegion(0, 3),
        ]


class TestYamlFolding:
    """Tests for YAML side-block regions under both policies."""

    @pytest.mark.parametrize("policy", [PLAN_STACK, CURRENT_TEST])
    def test_matched_block(self, policy):
        """A matched pair folds exactly between its delimiters."""
        text = "ok 1\n---\nfoo: bar\n...\nok 2"
        regions = compute_fold_regions(text, policy)
        assert FoldRegion(1, 3, REGION_KIND) in regions

    @pytest.mark.parametrize("policy", [PLAN_STACK, CURRENT_TEST])
    def test_unterminated_block(self, policy):
        """An opener without a close emits no region."""
        text = "1..2\nnot ok 1\n---\nfoo: bar\nok 2"
        regions = compute_fold_regions(text, policy)
        assert all(r.kind != REGION_KIND for r in regions)
        assert len(parse(text)[0].tests) == 2

    def test_first_close_wins(self):
        """The first following ... closes the block."""
        text = "---\na\n...\nb\n..."
        regions = compute_fold_regions(text)
        assert regions == [FoldRegion(0, 2, REGION_KIND)]


class TestPolicies:
    """Tests for policy selection."""

    def test_unknown_policy_rejected(self):
        """An unknown policy name is a caller error."""
        with pytest.raises(ValueError, match="Unknown grouping policy"):
            compute_fold_regions("ok 1", "flat")

    def test_parse_document_combines_passes(self):
        """parse_document returns groups and folds for the same text."""
        doc = parse_document("1..2\nok 1\nnot ok 2\n", CURRENT_TEST)
        assert [g.name for g in doc.groups] == ["1..2"]
        assert [t.ordinal for t in doc.groups[0].tests] == [1, 2]
        assert doc.folds == [FoldRegion(2, 3)]

    def test_deterministic(self):
        """Parsing the same text twice gives equal results."""
        assert parse(NESTED) == parse(NESTED)
        assert compute_fold_regions(NESTED) == compute_fold_regions(NESTED)

    def test_group_is_dataclass(self):
        """Groups compare by value."""
        assert TestGroup(name="x", line=0) == TestGroup(name="x", line=0)
