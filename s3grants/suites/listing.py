"""Listing suites: objects under a prefix and the account's buckets."""

import logging

from s3grants.errors import VerificationError
from s3grants.models import Permission
from s3grants.suites.base import OperationSuite

logger = logging.getLogger(__name__)


class ListObjectsSuite(OperationSuite):
    name = "list-objects"
    title = "List Files"
    short_name = "List"
    requires = frozenset({Permission.LIST})

    def prepare(self, case, ctx):
        state = super().prepare(case, ctx)
        state["key"] = state["prefix"] + "test-file.txt"
        ctx.admin.upload_file(state["key"], b"listing test content", "text/plain")
        return state

    def execute(self, case, ctx, state):
        objects = ctx.storage.list_objects(state["prefix"])
        keys = [obj.key for obj in objects]
        if state["key"] not in keys:
            raise VerificationError(f"{state['key']} missing from listing of {state['prefix']}: {keys}")
        return f"Listed {len(keys)} objects under {state['prefix']}"


class ListBucketsSuite(OperationSuite):
    name = "list-buckets"
    title = "List Buckets"
    short_name = "Buckets"
    requires = frozenset({Permission.LIST})

    def prepare(self, case, ctx):
        # Nothing is written, so there is no prefix to clean
        return {}

    def execute(self, case, ctx, state):
        names = ctx.storage.list_buckets()
        if case.bucket.bucket_name not in names:
            logger.warning("%s not among %d listed buckets", case.bucket.bucket_name, len(names))
        return f"Listed {len(names)} buckets"
