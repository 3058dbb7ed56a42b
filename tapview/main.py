"""Command-line entry point for the TAP viewer.

Provides folds, tests, diagnostics, and report subcommands that parse TAP
files from disk and print or write what an editor integration would show.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from tapview.config import TapConfig
from tapview.host.presentation import collect_diagnostics, presentation_state
from tapview.parsing.structure import VALID_POLICIES, compute_fold_regions, parse
from tapview.reporting.reporter import Reporter


def _add_common_arguments(sub: argparse.ArgumentParser) -> None:
    sub.add_argument(
        "--config-file",
        type=Path,
        default=Path(".tapview.json"),
        help="Path to the viewer config JSON file (default: .tapview.json)",
    )
    sub.add_argument(
        "--policy",
        choices=sorted(VALID_POLICIES),
        default=None,
        help="Folding policy (overrides the config file)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="TAP viewer - folds, test results and problem markers for TAP files"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # folds subcommand
    folds_parser = subparsers.add_parser(
        "folds",
        help="Print fold regions of a TAP file as JSON",
    )
    folds_parser.add_argument("file", type=Path, help="TAP file to parse")
    _add_common_arguments(folds_parser)

    # tests subcommand
    tests_parser = subparsers.add_parser(
        "tests",
        help="Display test groups and results",
    )
    tests_parser.add_argument("file", type=Path, help="TAP file to parse")
    tests_parser.add_argument(
        "--state",
        choices=["passed", "failed", "skipped", "warning"],
        default=None,
        help="Filter by presentation state",
    )
    _add_common_arguments(tests_parser)

    # diagnostics subcommand
    diagnostics_parser = subparsers.add_parser(
        "diagnostics",
        help="Print problem markers for failing tests",
    )
    diagnostics_parser.add_argument("file", type=Path, help="TAP file to parse")
    _add_common_arguments(diagnostics_parser)

    # report subcommand
    report_parser = subparsers.add_parser(
        "report",
        help="Write a JSON or YAML report for one or more TAP files",
    )
    report_parser.add_argument(
        "files", type=Path, nargs="+", help="TAP files to include",
    )
    report_parser.add_argument(
        "--output",
        type=Path,
        required=True,
        help="Report path; .yaml or .yml writes YAML, anything else JSON",
    )
    _add_common_arguments(report_parser)

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    return _build_parser().parse_args(argv)


def _load_config(args: argparse.Namespace) -> TapConfig:
    """Load the config file and apply command-line overrides.

    Raises:
        ValueError: If the config holds an invalid value.
    """
    config = TapConfig(args.config_file)
    if args.policy is not None:
        config.set_config(grouping_policy=args.policy)
    config.validate()
    return config


def _read_text(path: Path) -> str:
    # newline="" keeps \r so line indices match the file on disk;
    # a BOM is dropped and undecodable bytes become U+FFFD
    with open(path, encoding="utf-8-sig", errors="replace", newline="") as f:
        return f.read()


def cmd_folds(args: argparse.Namespace, config: TapConfig) -> int:
    """Handle folds subcommand.

    Returns:
        Exit code (0 for success).
    """
    regions = compute_fold_regions(_read_text(args.file), config.grouping_policy)
    data = [
        {"start": r.start, "end": r.end, "kind": r.kind} for r in regions
    ]
    print(json.dumps(data, indent=2))
    return 0


def cmd_tests(args: argparse.Namespace, config: TapConfig) -> int:
    """Handle tests subcommand.

    Displays each group followed by its tests in tabular format.

    Returns:
        Exit code (0 for success).
    """
    groups = parse(_read_text(args.file))
    todo_state = config.todo_pass_state

    rows: list[tuple[str, int, str, str]] = []
    for group in groups:
        for record in group.tests:
            state = presentation_state(record, todo_state)
            if args.state and state != args.state:
                continue
            rows.append((group.name, record.ordinal, state, record.description))

    if not rows:
        print("No tests found")
        return 0

    group_width = max(max(len(r[0]) for r in rows), 5)  # minimum "Group"

    # Print header
    header = f"{'Group':<{group_width}}  {'#':>4}  {'State':<8}  {'Description'}"
    print(header)
    print("-" * len(header))

    for group_name, ordinal, state, description in rows:
        print(f"{group_name:<{group_width}}  {ordinal:>4}  {state:<8}  {description}")

    # Print summary
    print()
    state_counts: dict[str, int] = {}
    for _, _, state, _ in rows:
        state_counts[state] = state_counts.get(state, 0) + 1

    parts = [f"{count} {state}" for state, count in sorted(state_counts.items())]
    print(f"Total: {len(rows)} tests ({', '.join(parts)})")

    return 0


def cmd_diagnostics(args: argparse.Namespace, config: TapConfig) -> int:
    """Handle diagnostics subcommand.

    Prints one ``file:line:column: severity: message`` entry per failing
    test, using 1-based line and column numbers.

    Returns:
        Exit code (1 if any failure was found, 0 otherwise).
    """
    groups = parse(_read_text(args.file))
    diagnostics = collect_diagnostics(groups, config.todo_pass_state)
    for diag in diagnostics:
        first_line = diag.message.split("\n", 1)[0]
        print(
            f"{args.file}:{diag.line + 1}:{diag.start_column + 1}: "
            f"{diag.severity}: {first_line}"
        )
    return 1 if diagnostics else 0


def cmd_report(args: argparse.Namespace, config: TapConfig) -> int:
    """Handle report subcommand.

    Returns:
        Exit code (0 for success).
    """
    reporter = Reporter(
        todo_pass_state=config.todo_pass_state,
        include_yaml_diagnostics=config.include_yaml_diagnostics,
    )
    for path in args.files:
        reporter.add_document(str(path), parse(_read_text(path)))

    if args.output.suffix in (".yaml", ".yml"):
        reporter.write_yaml(args.output)
    else:
        reporter.write_report(args.output)
    print(f"Report written to: {args.output}")
    return 0


COMMANDS = {
    "folds": cmd_folds,
    "tests": cmd_tests,
    "diagnostics": cmd_diagnostics,
    "report": cmd_report,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    handler = COMMANDS.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        config = _load_config(args)
    except ValueError as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        return 1

    try:
        return handler(args, config)
    except FileNotFoundError as e:
        print(f"Error: File not found: {e.filename}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
