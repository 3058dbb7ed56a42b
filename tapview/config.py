"""Viewer configuration file management.

Reads and writes the .tapview.json file holding the folding policy and
presentation options used when parsing TAP documents.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from tapview.parsing.structure import PLAN_STACK, VALID_POLICIES

# Presentation states a passing TODO test may map to
VALID_TODO_PASS_STATES = frozenset({"passed", "warning"})

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "grouping_policy": PLAN_STACK,
    "todo_pass_state": "passed",
    "include_yaml_diagnostics": True,
}


class TapConfig:
    """Manages the .tapview.json configuration file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        if path is not None and path.exists():
            self._load()

    def _load(self) -> None:
        """Load config from the file."""
        assert self.path is not None
        try:
            text = self.path.read_text()
            data = json.loads(text)
            if isinstance(data, dict):
                self._data = {**DEFAULT_CONFIG, **data}
        except (json.JSONDecodeError, OSError):
            self._data = dict(DEFAULT_CONFIG)

    def save(self) -> None:
        """Write config to the file."""
        if self.path is None:
            raise ValueError("No config file path specified")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._data, f, indent=2)
            f.write("\n")

    @property
    def config(self) -> dict[str, Any]:
        """Get the full configuration dict."""
        return dict(self._data)

    @property
    def grouping_policy(self) -> str:
        """Get the folding policy (``plan_stack`` or ``current_test``).

        Raises:
            ValueError: If the configured policy is unknown.
        """
        policy = str(self._data.get(
            "grouping_policy", DEFAULT_CONFIG["grouping_policy"],
        ))
        if policy not in VALID_POLICIES:
            raise ValueError(f"Invalid grouping_policy in config: {policy!r}")
        return policy

    @property
    def todo_pass_state(self) -> str:
        """Get the presentation state for passing TODO tests.

        Raises:
            ValueError: If the configured state is unknown.
        """
        state = str(self._data.get(
            "todo_pass_state", DEFAULT_CONFIG["todo_pass_state"],
        ))
        if state not in VALID_TODO_PASS_STATES:
            raise ValueError(f"Invalid todo_pass_state in config: {state!r}")
        return state

    @property
    def include_yaml_diagnostics(self) -> bool:
        """Whether reports decode YAML side-blocks of each test."""
        value = self._data.get(
            "include_yaml_diagnostics",
            DEFAULT_CONFIG["include_yaml_diagnostics"],
        )
        if not isinstance(value, bool):
            raise ValueError(
                f"Invalid include_yaml_diagnostics in config: {value!r}"
            )
        return value

    def validate(self) -> None:
        """Check every configured value.

        Raises:
            ValueError: If a configured value is not an accepted choice.
        """
        _ = (
            self.grouping_policy,
            self.todo_pass_state,
            self.include_yaml_diagnostics,
        )

    def set_config(
        self,
        grouping_policy: str | None = None,
        todo_pass_state: str | None = None,
        include_yaml_diagnostics: bool | None = None,
    ) -> None:
        """Update configuration values.

        Raises:
            ValueError: If a value is not one of the accepted choices.
        """
        if grouping_policy is not None:
            if grouping_policy not in VALID_POLICIES:
                raise ValueError(f"Invalid grouping_policy: {grouping_policy!r}")
            self._data["grouping_policy"] = grouping_policy
        if todo_pass_state is not None:
            if todo_pass_state not in VALID_TODO_PASS_STATES:
                raise ValueError(f"Invalid todo_pass_state: {todo_pass_state!r}")
            self._data["todo_pass_state"] = todo_pass_state
        if include_yaml_diagnostics is not None:
            if not isinstance(include_yaml_diagnostics, bool):
                raise ValueError(
                    f"Invalid include_yaml_diagnostics: {include_yaml_diagnostics!r}"
                )
            self._data["include_yaml_diagnostics"] = include_yaml_diagnostics
