"""Test result reporting: JSON and YAML report generation."""

from tapview.reporting.reporter import Reporter

__all__ = [
    "Reporter",
]
