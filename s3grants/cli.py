"""Command-line interface for the S3 access grant tester.

Provides argument parsing and main entry point for running tests
from the command line.
"""

import argparse
import logging
import sys
from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table

from s3grants.config import ConfigError, load_config
from s3grants.logging_config import configure_logging
from s3grants.matrix import build_cases
from s3grants.reporters import ConsoleReporter, JsonReporter, Reporter
from s3grants.runner import GrantRunner
from s3grants.suites import SUITES

logger = logging.getLogger(__name__)


class CompositeReporter(Reporter):
    """Reporter that delegates to multiple reporters.

    Allows using both ConsoleReporter and JsonReporter simultaneously.
    """

    def __init__(self, reporters: list[Reporter]):
        self._reporters = reporters

    def on_suite_start(self, suite_title: str) -> None:
        for reporter in self._reporters:
            reporter.on_suite_start(suite_title)

    def on_case_start(self, suite_title: str, case) -> None:
        for reporter in self._reporters:
            reporter.on_case_start(suite_title, case)

    def on_case_complete(self, suite_title: str, result) -> None:
        for reporter in self._reporters:
            reporter.on_case_complete(suite_title, result)

    def on_suite_complete(self, result) -> None:
        for reporter in self._reporters:
            reporter.on_suite_complete(result)

    def on_run_complete(self, results: dict) -> None:
        for reporter in self._reporters:
            reporter.on_run_complete(results)


def split_list(value: Optional[str]) -> Optional[list[str]]:
    """Split a comma-separated option value, dropping blanks."""
    if not value:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="s3-grant-tester",
        description="Test S3-compatible storage for correct enforcement of bucket access grants",
    )

    parser.add_argument(
        "-c", "--config",
        default="config.json",
        help="Path to configuration file (default: config.json)",
    )

    parser.add_argument(
        "-s", "--suites",
        metavar="LIST",
        help=f"Comma-separated list of suites to run ({', '.join(SUITES)})",
    )

    parser.add_argument(
        "-g", "--grants",
        metavar="LIST",
        help="Comma-separated list of bucket grant keys to test",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress per-case output, show only summary",
    )

    parser.add_argument(
        "-j", "--json-output",
        metavar="PATH",
        help="Write JSON results to file",
    )

    parser.add_argument(
        "--github-actions",
        action="store_true",
        help="Enable GitHub Actions output mode",
    )

    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for diagnostic output on stderr (default: WARNING)",
    )

    parser.add_argument(
        "--log-dir",
        metavar="DIR",
        help="Also write rotating log files to this directory",
    )

    parser.add_argument(
        "--list",
        action="store_true",
        help="List suites and the cases they would generate, then exit",
    )

    return parser.parse_args(argv)


def create_reporters(args: argparse.Namespace) -> list[Reporter]:
    """Create reporters based on command-line arguments.

    Args:
        args: Parsed command-line arguments

    Returns:
        List of configured reporters
    """
    reporters: list[Reporter] = [ConsoleReporter(quiet=args.quiet)]

    if args.json_output or args.github_actions:
        reporters.append(JsonReporter(
            output_path=args.json_output,
            github_output=args.github_actions,
        ))

    return reporters


def print_plan(runner: GrantRunner, console: Optional[Console] = None) -> None:
    """Print every case the runner would execute, without touching storage."""
    console = console or Console(legacy_windows=True)
    table = Table(show_header=True, header_style="bold magenta", box=box.ASCII)
    table.add_column("Suite", style="cyan", no_wrap=True)
    table.add_column("Case", no_wrap=True)
    table.add_column("Grant", no_wrap=True)
    table.add_column("Expected", justify="center", no_wrap=True)

    for suite in runner.suites:
        for case in build_cases(suite, runner.buckets):
            table.add_row(suite.name, case.case_id, case.bucket.key, case.expected)

    console.print(table)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code: 0 for success, 1 for test failures, 2 for errors
    """
    args = parse_args(argv)
    configure_logging(args.log_level, args.log_dir)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    reporters = create_reporters(args)
    if len(reporters) == 1:
        reporter = reporters[0]
    else:
        reporter = CompositeReporter(reporters)

    try:
        runner = GrantRunner(
            config,
            suite_names=split_list(args.suites),
            grant_keys=split_list(args.grants),
            reporter=reporter,
        )
    except KeyError as e:
        print(f"Configuration error: {e.args[0]}", file=sys.stderr)
        return 2

    if args.list:
        print_plan(runner)
        return 0

    result = runner.run()
    logger.info("Finished: all_passed=%s", result.all_passed)

    return 0 if result.all_passed else 1


if __name__ == "__main__":
    sys.exit(main())
