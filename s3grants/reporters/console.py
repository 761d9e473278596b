"""Console reporter using Rich library for formatted CLI output.

Provides colorful, formatted output during test execution including:
- Suite headers and progress
- Per-case results with pass/fail indicators
- A grant x suite matrix comparing every configured bucket
- Summary metrics (success rate, timing, error categories)
"""

from rich import box
from rich.console import Console
from rich.rule import Rule
from rich.table import Table

from s3grants.models import ResultStatus, SuiteResult, TestCase, TestResult
from s3grants.reporters.base import Reporter
from s3grants.suites import SUITES
from s3grants.summary import summarize

STATUS_LABELS = {
    ResultStatus.PASS: "[green][PASS][/green]",
    ResultStatus.FAIL: "[red][FAIL][/red]",
    ResultStatus.ERROR: "[yellow][ERROR][/yellow]",
    ResultStatus.SKIP: "[dim][SKIP][/dim]",
}

MATRIX_SYMBOLS = {
    ResultStatus.PASS: "[green]OK[/green]",
    ResultStatus.FAIL: "[red]X[/red]",
    ResultStatus.ERROR: "[yellow]?[/yellow]",
    ResultStatus.SKIP: "[dim]s[/dim]",
}


def short_name(suite_name: str) -> str:
    suite = SUITES.get(suite_name)
    return suite.short_name if suite else suite_name


class ConsoleReporter(Reporter):
    """Rich-based console reporter for CLI output.

    Args:
        quiet: If True, suppress per-case output (only show summary)
        console: Console to print to; a new stdout console by default
    """

    def __init__(self, quiet: bool = False, console: Console = None):
        # Use legacy_windows=True for ASCII-safe output on Windows consoles
        self.console = console or Console(legacy_windows=True)
        self.quiet = quiet

    def on_suite_start(self, suite_title: str) -> None:
        self.console.print()
        self.console.print(
            Rule(f"[bold cyan]Testing: {suite_title}[/bold cyan]", style="cyan", characters="-")
        )

    def on_case_start(self, suite_title: str, case: TestCase) -> None:
        """Called when a test case starts.

        Currently a no-op for console reporter.
        """
        pass

    def on_case_complete(self, suite_title: str, result: TestResult) -> None:
        """Displays pass/fail indicator with case details."""
        if self.quiet:
            return

        status_text = STATUS_LABELS[result.status]
        self.console.print(f"  {status_text}: {result.case_id} {result.description}")

        if result.message and result.status != ResultStatus.PASS:
            self.console.print(f"     [dim]{result.message}[/dim]")

    def on_suite_complete(self, result: SuiteResult) -> None:
        if result.status == ResultStatus.PASS:
            status = "[bold green]PASSED[/bold green]"
        elif result.status == ResultStatus.FAIL:
            status = "[bold red]FAILED[/bold red]"
        else:
            status = "[bold yellow]ERROR[/bold yellow]"

        duration_str = ""
        if result.duration_seconds > 0:
            duration_str = f" in {result.duration_seconds:.1f}s"

        self.console.print()
        self.console.print(f"{result.title}: {status}{duration_str}")

        if result.error_message:
            self.console.print(f"   [dim red]{result.error_message}[/dim red]")

    def on_run_complete(self, results: dict[str, SuiteResult]) -> None:
        """Displays the grant matrix and summary metrics."""
        if not results:
            self.console.print("[yellow]No results to display.[/yellow]")
            return

        self.console.print()
        self.console.print(Rule("[bold]Permission Matrix[/bold]", style="magenta", characters="-"))
        self.console.print(self.build_matrix(results))
        self.console.print()
        self._print_summary(results)

    def build_matrix(self, results: dict[str, SuiteResult]) -> Table:
        """Build a table with one row per grant and one column per suite."""
        table = Table(
            title="",
            show_header=True,
            header_style="bold magenta",
            border_style="dim",
            box=box.ASCII,
        )

        # Add columns - use no_wrap to prevent Unicode ellipsis on Windows
        table.add_column("Grant", style="cyan", no_wrap=True)
        for suite_name in results:
            table.add_column(short_name(suite_name), justify="center", no_wrap=True)

        # Grants in the order they first appear
        cells: dict[str, dict[str, ResultStatus]] = {}
        for suite_name, suite_result in results.items():
            for case_result in suite_result.results.values():
                cells.setdefault(case_result.bucket_key, {})[suite_name] = case_result.status

        for bucket_key, statuses in cells.items():
            row_data = [bucket_key]
            for suite_name in results:
                status = statuses.get(suite_name)
                row_data.append(MATRIX_SYMBOLS[status] if status else "[dim]-[/dim]")
            table.add_row(*row_data)

        return table

    def _print_summary(self, results: dict[str, SuiteResult]) -> None:
        summary = summarize(r for s in results.values() for r in s.results.values())
        cases = summary["cases"]
        timing = summary["timing"]

        self.console.print(
            f"Cases: {cases['total']} total, [green]{cases['passed']} passed[/green], "
            f"[red]{cases['failed']} failed[/red], [yellow]{cases['errors']} errors[/yellow], "
            f"{cases['skipped']} skipped"
        )
        self.console.print(f"Success rate: {cases['success_rate']:.1f}%")
        self.console.print(
            f"Timing: avg {timing['avg_duration']:.2f}s, "
            f"min {timing['min_duration']:.2f}s, max {timing['max_duration']:.2f}s"
        )

        for entry in summary["error_types"]["most_common"]:
            self.console.print(f"  [dim]{entry['type']}: {entry['count']}[/dim]")

        self.console.print()
