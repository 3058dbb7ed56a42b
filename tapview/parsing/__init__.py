"""TAP parsing core: line classification, folding, and grouping."""

from tapview.parsing.line_classifier import (
    ClassifiedLine,
    PlainLine,
    TestPlanLine,
    TestResultLine,
    YamlCloseLine,
    YamlOpenLine,
    classify_line,
    classify_lines,
)
from tapview.parsing.structure import (
    CURRENT_TEST,
    PLAN_STACK,
    VALID_POLICIES,
    FoldRegion,
    ParsedDocument,
    TestGroup,
    TestRecord,
    compute_fold_regions,
    parse,
    parse_document,
)

__all__ = [
    "CURRENT_TEST",
    "ClassifiedLine",
    "FoldRegion",
    "PLAN_STACK",
    "ParsedDocument",
    "PlainLine",
    "TestGroup",
    "TestPlanLine",
    "TestRecord",
    "TestResultLine",
    "VALID_POLICIES",
    "YamlCloseLine",
    "YamlOpenLine",
    "classify_line",
    "classify_lines",
    "compute_fold_regions",
    "parse",
    "parse_document",
]
