"""Main test runner and orchestrator.

Coordinates test execution across suites and configured buckets, managing:
- Case generation from the permission matrix
- Admin-side seeding, verification and cleanup
- S3 and HTTP client lifecycle
- Reporter callbacks
"""

import logging
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

import httpx

from s3grants.config import resolve_admin_credentials
from s3grants.errors import (
    AccessDeniedError,
    StorageError,
    VerificationError,
    classify_error,
    extract_status_code,
)
from s3grants.matrix import build_registry, missing_combinations
from s3grants.models import (
    BucketConfig,
    Credentials,
    GrantConfig,
    ResultStatus,
    RunSettings,
    SuiteResult,
    TestCase,
    TestResult,
)
from s3grants.retry import retry_with_backoff
from s3grants.storage import StorageFacade
from s3grants.suites import OperationSuite, SuiteContext, get_suites
from s3grants.summary import suite_status, suites_to_dict

logger = logging.getLogger(__name__)

FacadeFactory = Callable[[BucketConfig, RunSettings, Optional[Credentials]], StorageFacade]


@dataclass
class RunResult:
    """Result of running every selected suite."""

    suites: dict[str, SuiteResult]
    total_duration: float
    timestamp: str = field(default_factory=lambda: time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()))

    @property
    def all_passed(self) -> bool:
        """Check if all suites passed (skipped cases do not count against them)."""
        return bool(self.suites) and all(s.status == ResultStatus.PASS for s in self.suites.values())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = {"timestamp": self.timestamp}
        data.update(suites_to_dict(self.suites))
        data["summary"]["total_duration"] = round(self.total_duration, 3)
        return data


def select_buckets(buckets: dict[str, BucketConfig], grant_keys=None) -> list[BucketConfig]:
    """Filter configured buckets by grant key, keeping configuration order.

    Raises:
        KeyError: If a requested key is not configured.
    """
    if not grant_keys:
        return list(buckets.values())

    unknown = [k for k in grant_keys if k not in buckets]
    if unknown:
        raise KeyError(f"Unknown grants: {', '.join(unknown)}")
    return [bucket for key, bucket in buckets.items() if key in grant_keys]


def matches_skip_marker(error: Exception, markers) -> bool:
    message = str(error).lower()
    return any(marker.lower() in message for marker in markers)


class GrantRunner:
    """Runs every selected suite against every applicable bucket grant.

    Cases execute strictly one after another; a failing case never stops
    the ones after it.
    """

    def __init__(
        self,
        config: GrantConfig,
        suite_names: Optional[list[str]] = None,
        grant_keys: Optional[list[str]] = None,
        reporter: Optional[Any] = None,
        facade_factory: Optional[FacadeFactory] = None,
    ):
        """Initialize the test runner.

        Args:
            config: Loaded run configuration.
            suite_names: Suites to run; all registered suites when empty.
            grant_keys: Bucket keys to test; all configured buckets when empty.
            reporter: Optional reporter for progress callbacks.
            facade_factory: Builds storage façades; defaults to
                ``StorageFacade.for_bucket``.

        Raises:
            KeyError: If a suite name or grant key is unknown.
        """
        self.config = config
        self.settings = config.settings
        self.suites = get_suites(suite_names)
        self.buckets = select_buckets(config.buckets, grant_keys)
        self.reporter = reporter
        self.facade_factory = facade_factory or StorageFacade.for_bucket
        self.run_id = str(int(time.time()))
        self._facades: dict[tuple[str, str], StorageFacade] = {}

    def run(self) -> RunResult:
        """Run all selected suites.

        Returns:
            RunResult containing results for all suites
        """
        start_time = time.time()
        results: dict[str, SuiteResult] = {}

        missing = missing_combinations(self.buckets)
        if missing:
            logger.warning("No bucket configured for grant combinations: %s", ", ".join(missing))

        logger.info(
            "Starting run %s: %d suites, %d buckets", self.run_id, len(self.suites), len(self.buckets)
        )

        work_dir = Path(tempfile.mkdtemp(prefix="s3grants-"))
        http_client = httpx.Client(timeout=self.settings.read_timeout)

        try:
            for suite in self.suites:
                if self.reporter:
                    self.reporter.on_suite_start(suite.title)

                try:
                    result = self._run_suite(suite, work_dir, http_client)
                except Exception as e:
                    logger.exception("Suite %s aborted", suite.name)
                    result = SuiteResult(
                        suite_name=suite.name,
                        title=suite.title,
                        status=ResultStatus.ERROR,
                        error_message=str(e),
                    )

                results[suite.name] = result

                if self.reporter:
                    self.reporter.on_suite_complete(result)

        finally:
            http_client.close()
            shutil.rmtree(work_dir, ignore_errors=True)

        total_duration = time.time() - start_time
        run_result = RunResult(suites=results, total_duration=total_duration)
        logger.info("Run %s finished in %.1fs", self.run_id, total_duration)

        if self.reporter:
            self.reporter.on_run_complete(results)

        return run_result

    def _run_suite(self, suite: OperationSuite, work_dir: Path, http_client: httpx.Client) -> SuiteResult:
        start_time = time.time()
        registry = build_registry(suite, self.buckets)

        for case in registry.cases():
            if self.reporter:
                self.reporter.on_case_start(suite.title, case)

            ctx = SuiteContext(
                settings=self.settings,
                storage=self._storage_for(case.bucket),
                admin=self._admin_for(case.bucket),
                work_dir=work_dir,
                http_client=http_client,
                run_id=self.run_id,
            )
            result = self.run_case(suite, case, ctx)
            registry.record_result(result)

            if self.reporter:
                self.reporter.on_case_complete(suite.title, result)

        case_results = registry.results()
        return SuiteResult(
            suite_name=suite.name,
            title=suite.title,
            status=suite_status(case_results),
            results={r.case_id: r for r in case_results},
            duration_seconds=time.time() - start_time,
        )

    def _storage_for(self, bucket: BucketConfig) -> StorageFacade:
        return self._facade(bucket, bucket.credentials)

    def _admin_for(self, bucket: BucketConfig) -> StorageFacade:
        return self._facade(bucket, resolve_admin_credentials(self.config, bucket))

    def _facade(self, bucket: BucketConfig, credentials: Credentials) -> StorageFacade:
        cache_key = (bucket.key, credentials.aws_access_key_id)
        if cache_key not in self._facades:
            self._facades[cache_key] = self.facade_factory(bucket, self.settings, credentials)
        return self._facades[cache_key]

    def run_case(self, suite: OperationSuite, case: TestCase, ctx: SuiteContext) -> TestResult:
        """Prepare, execute and clean up a single case.

        Args:
            suite: Suite the case belongs to.
            case: The case to run.
            ctx: Façades and scratch space for this case.

        Returns:
            TestResult with the evaluated outcome.
        """
        start_time = time.time()
        state: dict[str, Any] = {}

        try:
            try:
                state = retry_with_backoff(
                    suite.prepare,
                    max_attempts=self.settings.max_attempts,
                    delays=self.settings.retry_delays,
                    args=(case, ctx),
                )
            except Exception as e:
                # prepare may have seeded objects before failing
                state = {"prefix": suite.case_prefix(case, ctx)}
                if matches_skip_marker(e, self.settings.skip_markers):
                    return self._result(case, ResultStatus.SKIP, f"Skipped: {e}", start_time, "skipped")
                logger.error("Setup for %s %s failed: %s", suite.name, case.case_id, e)
                return self._result(case, ResultStatus.ERROR, f"Setup failed: {e}", start_time, "error", e)

            return self._evaluate(suite, case, ctx, state, start_time)

        finally:
            try:
                suite.cleanup(case, ctx, state)
            except Exception as e:
                logger.warning("Cleanup for %s %s failed: %s", suite.name, case.case_id, e)

    def _evaluate(
        self,
        suite: OperationSuite,
        case: TestCase,
        ctx: SuiteContext,
        state: dict[str, Any],
        start_time: float,
    ) -> TestResult:
        required = ",".join(sorted(p.value for p in suite.requires)) or "public"

        try:
            detail = suite.execute(case, ctx, state)

        except AccessDeniedError as e:
            if case.expect_allowed:
                return self._result(
                    case, ResultStatus.FAIL, f"Denied despite {required} grant: {e}", start_time, "denied", e
                )
            try:
                note = suite.verify_denied(case, ctx, state)
            except VerificationError as ve:
                return self._result(case, ResultStatus.FAIL, f"Denied, but {ve}", start_time, "denied", ve)
            except StorageError as se:
                return self._result(
                    case, ResultStatus.ERROR, f"Could not verify denial: {se}", start_time, "denied", se
                )
            message = f"Denied as expected (HTTP {extract_status_code(e)})"
            if note:
                message = f"{message}; {note}"
            return self._result(
                case,
                ResultStatus.PASS,
                message,
                start_time,
                "denied",
                e,
            )

        except VerificationError as e:
            return self._result(case, ResultStatus.FAIL, str(e), start_time, "allowed", e)

        except Exception as e:
            if matches_skip_marker(e, self.settings.skip_markers):
                return self._result(case, ResultStatus.SKIP, f"Skipped: {e}", start_time, "skipped")
            status_code = extract_status_code(e)
            logger.error("%s %s errored (status=%s): %s", suite.name, case.case_id, status_code, e)
            return self._result(
                case, ResultStatus.ERROR, f"{e} (status={status_code})", start_time, "error", e
            )

        if not case.expect_allowed:
            return self._result(
                case,
                ResultStatus.FAIL,
                f"Allowed without {required} grant: {detail}",
                start_time,
                "allowed",
                error_type="Permission Error",
            )
        return self._result(case, ResultStatus.PASS, detail, start_time, "allowed")

    def _result(
        self,
        case: TestCase,
        status: ResultStatus,
        message: str,
        start_time: float,
        actual: str,
        error: Optional[Exception] = None,
        error_type: Optional[str] = None,
    ) -> TestResult:
        if error is not None and status != ResultStatus.PASS:
            error_type = error_type or classify_error(error)
        result = TestResult(
            case_id=case.case_id,
            description=case.description,
            status=status,
            message=message,
            bucket_key=case.bucket.key,
            expected=case.expected,
            actual=actual,
            duration_seconds=time.time() - start_time,
            status_code=extract_status_code(error) if error is not None else None,
            error_type=error_type,
        )
        log = logger.info if status in (ResultStatus.PASS, ResultStatus.SKIP) else logger.warning
        log("%s %s [%s]: %s", status.value.upper(), case.case_id, case.bucket.key, message)
        return result
