"""JSON reporter for structured output and GitHub Actions integration.

Generates JSON output suitable for:
- CI artifacts and historical comparison
- GitHub Actions workflow outputs
"""

import json
import os
import time
from pathlib import Path
from typing import Optional

from s3grants.models import SuiteResult, TestCase, TestResult
from s3grants.reporters.base import Reporter
from s3grants.runner import RunResult


class JsonReporter(Reporter):
    """JSON reporter for structured output.

    Args:
        output_path: Optional file path to write JSON output
        github_output: If True, write to GITHUB_OUTPUT for Actions
    """

    def __init__(
        self,
        output_path: Optional[str] = None,
        github_output: bool = False,
    ):
        self.output_path = output_path
        self.github_output = github_output
        self._start_time: Optional[float] = None

    def on_suite_start(self, suite_title: str) -> None:
        """Marks the start of the run on the first suite."""
        if self._start_time is None:
            self._start_time = time.time()

    def on_case_start(self, suite_title: str, case: TestCase) -> None:
        """No-op for JSON reporter."""
        pass

    def on_case_complete(self, suite_title: str, result: TestResult) -> None:
        """No-op - data comes from the suite result."""
        pass

    def on_suite_complete(self, result: SuiteResult) -> None:
        """No-op - every suite arrives again in on_run_complete."""
        pass

    def on_run_complete(self, results: dict[str, SuiteResult]) -> dict:
        """Generates and outputs JSON data.

        Args:
            results: Dictionary of suite results

        Returns:
            The generated JSON data as a dictionary
        """
        output = self._generate_output(results)

        if self.output_path:
            self._write_to_file(output)

        if self.github_output:
            self._write_github_output(output)

        return output

    def _generate_output(self, results: dict[str, SuiteResult]) -> dict:
        total_duration = time.time() - self._start_time if self._start_time is not None else 0.0
        return RunResult(suites=results, total_duration=total_duration).to_dict()

    def _write_to_file(self, output: dict) -> None:
        path = Path(self.output_path)

        # Create parent directories if needed
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(output, f, indent=2)

    def _write_github_output(self, output: dict) -> None:
        """Append summary values and the full report to GITHUB_OUTPUT."""
        github_output_file = os.environ.get("GITHUB_OUTPUT")
        if not github_output_file:
            return

        summary = output["summary"]
        with open(github_output_file, "a", encoding="utf-8") as f:
            f.write(f"all_passed={str(summary['all_passed']).lower()}\n")
            f.write(f"total_suites={summary['total_suites']}\n")
            f.write(f"passed_suites={summary['passed']}\n")
            f.write(f"failed_suites={summary['failed']}\n")
            f.write(f"success_rate={summary['cases']['success_rate']}\n")

            # Write full JSON as multiline output
            f.write("results<<EOF\n")
            f.write(json.dumps(output))
            f.write("\nEOF\n")
