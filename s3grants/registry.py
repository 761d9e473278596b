"""Test-case registry: named cases in, recorded results out."""

import logging
from collections import Counter
from typing import Any

from s3grants.models import ResultStatus, TestCase, TestResult

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Raised when a case is malformed or registered twice."""


class UnknownCaseError(KeyError):
    """Raised when looking up a case id that was never registered."""


class TestRegistry:
    """Holds the cases of one suite and the results recorded for them.

    Cases keep their registration order; results are recorded at most once
    per case.
    """

    __test__ = False

    def __init__(self, name: str = ""):
        self.name = name
        self._cases: dict[str, TestCase] = {}
        self._results: dict[str, TestResult] = {}

    def add_case(self, case: TestCase) -> None:
        if not case.case_id or not case.description:
            raise RegistryError("Test case must have id and description")
        if case.case_id in self._cases:
            raise RegistryError(f"Test case {case.case_id} already registered")
        self._cases[case.case_id] = case

    def get_case(self, case_id: str) -> TestCase:
        try:
            return self._cases[case_id]
        except KeyError:
            raise UnknownCaseError(f"Test case {case_id} not found") from None

    def cases(self) -> list[TestCase]:
        return list(self._cases.values())

    def record_result(self, result: TestResult) -> None:
        case = self.get_case(result.case_id)
        if result.case_id in self._results:
            raise RegistryError(f"Result for {result.case_id} already recorded")
        if not result.description:
            result.description = case.description
        self._results[result.case_id] = result
        logger.debug("[%s] %s %s: %s", self.name, result.case_id, result.status.value, result.message)

    def results(self) -> list[TestResult]:
        return list(self._results.values())

    def pending(self) -> list[TestCase]:
        return [c for c in self._cases.values() if c.case_id not in self._results]

    def summary(self) -> dict[str, Any]:
        counts = Counter(r.status for r in self._results.values())
        return {
            "total": len(self._results),
            "passed": counts[ResultStatus.PASS],
            "failed": counts[ResultStatus.FAIL],
            "errors": counts[ResultStatus.ERROR],
            "skipped": counts[ResultStatus.SKIP],
        }

    def __len__(self) -> int:
        return len(self._cases)
