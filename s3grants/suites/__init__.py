"""Operation suites, registered in execution order."""

from s3grants.suites.base import OperationSuite, SuiteContext
from s3grants.suites.buckets import AnonymousAccessSuite, BucketLifecycleSuite
from s3grants.suites.folders import CreateFolderSuite, DeleteFolderSuite
from s3grants.suites.listing import ListBucketsSuite, ListObjectsSuite
from s3grants.suites.objects import (
    DownloadSuite,
    LargeUploadSuite,
    MultiUploadSuite,
    ObjectInfoSuite,
    OverwriteSuite,
    UploadSuite,
)
from s3grants.suites.removal import DeleteSuite, MoveSuite

SUITES: dict[str, OperationSuite] = {
    suite.name: suite
    for suite in (
        CreateFolderSuite(),
        UploadSuite(),
        ListObjectsSuite(),
        DownloadSuite(),
        MoveSuite(),
        DeleteSuite(),
        OverwriteSuite(),
        ObjectInfoSuite(),
        DeleteFolderSuite(),
        LargeUploadSuite(),
        MultiUploadSuite(),
        ListBucketsSuite(),
        BucketLifecycleSuite(),
        AnonymousAccessSuite(),
    )
}


def get_suites(names=None) -> list[OperationSuite]:
    """Resolve suite names, keeping registration order.

    Raises:
        KeyError: If a name is not a registered suite.
    """
    if not names:
        return list(SUITES.values())

    unknown = [n for n in names if n not in SUITES]
    if unknown:
        raise KeyError(f"Unknown suites: {', '.join(unknown)}")
    return [suite for name, suite in SUITES.items() if name in names]


__all__ = ["OperationSuite", "SuiteContext", "SUITES", "get_suites"]
