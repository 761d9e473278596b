"""Base class and execution context shared by the operation suites."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import httpx

from s3grants.models import BucketConfig, RunSettings, TestCase
from s3grants.storage import StorageFacade


@dataclass
class SuiteContext:
    """Collaborators available to a suite while one case runs.

    ``storage`` signs with the credentials under test; ``admin`` signs with
    full-access credentials and is only used for seeding, verification and
    cleanup.
    """

    settings: RunSettings
    storage: StorageFacade
    admin: StorageFacade
    work_dir: Path
    http_client: httpx.Client
    run_id: str


class OperationSuite:
    """One storage operation exercised against every applicable grant.

    Subclasses set the class attributes and implement ``execute``. The
    runner calls, in order: ``prepare`` (admin), ``execute`` (grant under
    test), ``verify_denied`` when the service refused, and ``cleanup``.
    """

    name = ""
    title = ""
    short_name = ""
    requires: frozenset = frozenset()

    def applies_to(self, bucket: BucketConfig) -> bool:
        return True

    def expect_allowed(self, bucket: BucketConfig) -> bool:
        return bucket.grants.allows(*self.requires)

    def describe_case(self, bucket: BucketConfig) -> str:
        return f"{self.title} with {bucket.key} permissions"

    def case_prefix(self, case: TestCase, ctx: SuiteContext) -> str:
        return f"{ctx.settings.key_prefix}{self.name}-{case.case_id.lower()}-{ctx.run_id}/"

    def prepare(self, case: TestCase, ctx: SuiteContext) -> dict[str, Any]:
        """Seed whatever the operation needs. Returns per-case state."""
        return {"prefix": self.case_prefix(case, ctx)}

    def execute(self, case: TestCase, ctx: SuiteContext, state: dict[str, Any]) -> str:
        """Run the operation with the grant under test.

        Returns:
            A message describing what was verified.

        Raises:
            AccessDeniedError: If the service refused the operation.
            VerificationError: If the operation succeeded without effect.
        """
        raise NotImplementedError

    def verify_denied(self, case: TestCase, ctx: SuiteContext, state: dict[str, Any]) -> Optional[str]:
        """Check that a refused operation left no trace.

        Returns:
            An optional note on partial side effects that do not fail the case.

        Raises:
            VerificationError: If the refused operation changed the bucket.
        """
        return None

    def cleanup(self, case: TestCase, ctx: SuiteContext, state: dict[str, Any]) -> None:
        prefix = state.get("prefix")
        if prefix:
            ctx.admin.clean_prefix(prefix)

        payload = state.get("payload")
        if payload and os.path.exists(payload):
            os.remove(payload)

    def __repr__(self) -> str:
        perms = ",".join(sorted(p.value for p in self.requires)) or "-"
        return f"<{type(self).__name__} {self.name} requires={perms}>"
