"""Base reporter interface."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from s3grants.models import SuiteResult, TestCase, TestResult


class Reporter(ABC):
    """Abstract base class for test result reporters."""

    @abstractmethod
    def on_suite_start(self, suite_title: str) -> None:
        """Called when a suite begins."""
        pass

    @abstractmethod
    def on_case_start(self, suite_title: str, case: "TestCase") -> None:
        """Called when a test case starts."""
        pass

    @abstractmethod
    def on_case_complete(self, suite_title: str, result: "TestResult") -> None:
        """Called when a test case completes."""
        pass

    @abstractmethod
    def on_suite_complete(self, result: "SuiteResult") -> None:
        """Called when every case of a suite has run."""
        pass

    @abstractmethod
    def on_run_complete(self, results: dict[str, "SuiteResult"]) -> None:
        """Called when all testing is complete."""
        pass
