"""Permission-matrix generation.

Turns an operation suite and the configured buckets into registered test
cases, one per applicable bucket, each carrying the outcome the service is
expected to produce for that grant.
"""

import logging
from typing import Iterable

from s3grants.models import BucketConfig, BucketType, GrantSet, TestCase
from s3grants.registry import TestRegistry
from s3grants.suites.base import OperationSuite

logger = logging.getLogger(__name__)

# Every non-empty grant combination plus the two full-access account types
PERMISSION_COMBINATIONS = (
    "WRITE",
    "READ_WRITE",
    "LIST_WRITE",
    "WRITE_DELETE",
    "READ_WRITE_LIST",
    "READ_WRITE_DELETE",
    "WRITE_LIST_DELETE",
    "READ_WRITE_LIST_DELETE",
    "PUBLIC",
    "PRIVATE",
    "READ",
    "LIST",
    "DELETE",
    "LIST_READ",
    "READ_DELETE",
    "LIST_DELETE",
    "READ_LIST_DELETE",
)

ACCOUNT_TYPES = {"PUBLIC": BucketType.PUBLIC, "PRIVATE": BucketType.PRIVATE}


def combination_grants(label: str) -> GrantSet:
    if label in ACCOUNT_TYPES:
        return GrantSet.full()
    return GrantSet.from_label(label)


def is_covered(label: str, buckets: Iterable[BucketConfig]) -> bool:
    """Whether some configured bucket exercises the given combination."""
    if label in ACCOUNT_TYPES:
        return any(b.bucket_type == ACCOUNT_TYPES[label] for b in buckets)
    grants = combination_grants(label)
    return any(b.bucket_type == BucketType.LIMITED and b.grants == grants for b in buckets)


def missing_combinations(buckets: Iterable[BucketConfig]) -> list[str]:
    buckets = list(buckets)
    return [label for label in PERMISSION_COMBINATIONS if not is_covered(label, buckets)]


def expected_outcome(suite: OperationSuite, bucket: BucketConfig) -> bool:
    """True when the service should allow the suite's operation for this grant."""
    return suite.expect_allowed(bucket)


def build_cases(suite: OperationSuite, buckets: Iterable[BucketConfig]) -> list[TestCase]:
    """Generate one case per bucket the suite applies to.

    Case ids are ``TC01``, ``TC02``... in bucket order.
    """
    cases = []
    for bucket in buckets:
        if not suite.applies_to(bucket):
            continue
        cases.append(
            TestCase(
                case_id=f"TC{len(cases) + 1:02d}",
                description=suite.describe_case(bucket),
                suite=suite.name,
                bucket=bucket,
                expect_allowed=expected_outcome(suite, bucket),
            )
        )
    return cases


def build_registry(suite: OperationSuite, buckets: Iterable[BucketConfig]) -> TestRegistry:
    registry = TestRegistry(suite.name)
    for case in build_cases(suite, buckets):
        registry.add_case(case)
    logger.debug("Registered %d cases for %s", len(registry), suite.name)
    return registry
