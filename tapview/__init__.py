"""TAP viewer: fold regions, test results, and problem markers for TAP output."""

from tapview.parsing import (
    CURRENT_TEST,
    PLAN_STACK,
    FoldRegion,
    TestGroup,
    TestRecord,
    compute_fold_regions,
    parse,
    parse_document,
)

__all__ = [
    "CURRENT_TEST",
    "FoldRegion",
    "PLAN_STACK",
    "TestGroup",
    "TestRecord",
    "compute_fold_regions",
    "parse",
    "parse_document",
]
