"""Host-side integration: presentation states, diagnostics, and the document registry."""

from tapview.host.presentation import (
    VALID_STATES,
    Diagnostic,
    collect_diagnostics,
    decode_yaml_block,
    failure_message,
    presentation_state,
    record_id,
)
from tapview.host.registry import DocumentRegistry, ResultDiff, diff_documents

__all__ = [
    "Diagnostic",
    "DocumentRegistry",
    "ResultDiff",
    "VALID_STATES",
    "collect_diagnostics",
    "decode_yaml_block",
    "diff_documents",
    "failure_message",
    "presentation_state",
    "record_id",
]
