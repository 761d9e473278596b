"""Result aggregation shared by the runner and the reporters."""

from collections import Counter
from typing import Any, Iterable

from s3grants.models import ResultStatus, SuiteResult, TestResult


def suite_status(results: Iterable[TestResult]) -> ResultStatus:
    """FAIL beats ERROR beats PASS; skipped cases never fail a suite."""
    statuses = {r.status for r in results}
    if ResultStatus.FAIL in statuses:
        return ResultStatus.FAIL
    if ResultStatus.ERROR in statuses:
        return ResultStatus.ERROR
    return ResultStatus.PASS


def summarize(results: Iterable[TestResult]) -> dict[str, Any]:
    """Tally case outcomes, timing and error categories.

    Args:
        results: Test results from any number of suites.

    Returns:
        Dict with ``cases``, ``timing`` and ``error_types`` sections.
    """
    results = list(results)
    counts = Counter(r.status for r in results)
    executed = len(results) - counts[ResultStatus.SKIP]
    passed = counts[ResultStatus.PASS]

    durations = [r.duration_seconds for r in results]
    error_types = Counter(
        r.error_type
        for r in results
        if r.error_type and r.status in (ResultStatus.FAIL, ResultStatus.ERROR)
    )

    return {
        "cases": {
            "total": len(results),
            "passed": passed,
            "failed": counts[ResultStatus.FAIL],
            "errors": counts[ResultStatus.ERROR],
            "skipped": counts[ResultStatus.SKIP],
            "success_rate": round(passed / executed * 100, 1) if executed else 0.0,
        },
        "timing": {
            "total_duration": round(sum(durations), 3),
            "avg_duration": round(sum(durations) / len(durations), 3) if durations else 0.0,
            "min_duration": round(min(durations), 3) if durations else 0.0,
            "max_duration": round(max(durations), 3) if durations else 0.0,
        },
        "error_types": {
            "total": sum(error_types.values()),
            "most_common": [{"type": t, "count": c} for t, c in error_types.most_common()],
        },
    }


def result_to_dict(result: TestResult) -> dict[str, Any]:
    data = {
        "description": result.description,
        "bucket": result.bucket_key,
        "status": result.status.value,
        "expected": result.expected,
        "actual": result.actual,
        "message": result.message,
        "duration_seconds": round(result.duration_seconds, 3),
    }
    if result.status_code is not None:
        data["status_code"] = result.status_code
    if result.error_type:
        data["error_type"] = result.error_type
    return data


def suites_to_dict(suites: dict[str, SuiteResult]) -> dict[str, Any]:
    """Serialize suite results plus an overall summary block."""
    suites_dict = {}
    for name, suite_result in suites.items():
        suites_dict[name] = {
            "title": suite_result.title,
            "status": suite_result.status.value,
            "cases": {case_id: result_to_dict(r) for case_id, r in suite_result.results.items()},
            "duration_seconds": round(suite_result.duration_seconds, 3),
        }
        if suite_result.error_message:
            suites_dict[name]["error"] = suite_result.error_message

    suite_counts = Counter(s.status for s in suites.values())
    all_results = [r for s in suites.values() for r in s.results.values()]
    summary = {
        "total_suites": len(suites),
        "passed": suite_counts[ResultStatus.PASS],
        "failed": suite_counts[ResultStatus.FAIL],
        "errors": suite_counts[ResultStatus.ERROR],
        "all_passed": bool(suites) and suite_counts[ResultStatus.PASS] == len(suites),
    }
    summary.update(summarize(all_results))

    return {"suites": suites_dict, "summary": summary}
