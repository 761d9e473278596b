"""Bucket-level suites: bucket lifecycle and anonymous (public) access.

Both only make sense for full-access accounts, so they apply to PUBLIC and
PRIVATE buckets only.
"""

import logging

import httpx

from s3grants.errors import (
    AccessDeniedError,
    BucketNotFoundError,
    StorageConnectionError,
    StorageError,
    VerificationError,
)
from s3grants.models import BucketType, Permission
from s3grants.suites.base import OperationSuite

logger = logging.getLogger(__name__)

# S3 bucket names are limited to 63 characters
MAX_BUCKET_NAME_LENGTH = 63


def is_account_bucket(bucket) -> bool:
    return bucket.bucket_type in (BucketType.PUBLIC, BucketType.PRIVATE)


class BucketLifecycleSuite(OperationSuite):
    name = "bucket-lifecycle"
    title = "Bucket Lifecycle"
    short_name = "Lifecyc"
    requires = frozenset(Permission)

    def applies_to(self, bucket):
        return is_account_bucket(bucket)

    def prepare(self, case, ctx):
        suffix = f"-lc-{case.case_id.lower()}-{ctx.run_id}"
        base = case.bucket.bucket_name[: MAX_BUCKET_NAME_LENGTH - len(suffix)]
        return {"bucket": f"{base}{suffix}".lower()}

    def execute(self, case, ctx, state):
        name = state["bucket"]
        ctx.storage.create_bucket(name)

        if name not in ctx.storage.list_buckets():
            raise VerificationError(f"Bucket {name} missing from listing after creation")

        ctx.storage.delete_bucket(name)
        state["deleted"] = True
        return f"Created, listed and deleted bucket {name}"

    def cleanup(self, case, ctx, state):
        if state.get("deleted") or "bucket" not in state:
            return
        try:
            ctx.admin.delete_bucket(state["bucket"])
        except BucketNotFoundError:
            pass
        except StorageError as e:
            logger.warning("Could not remove bucket %s: %s", state["bucket"], e)


class AnonymousAccessSuite(OperationSuite):
    """Unauthenticated GET of an object: allowed only on public buckets."""

    name = "anonymous-access"
    title = "Anonymous Read"
    short_name = "Anon"
    requires = frozenset()

    CONTENT = b"Anonymous access test content"

    def applies_to(self, bucket):
        return is_account_bucket(bucket)

    def expect_allowed(self, bucket):
        return bucket.bucket_type == BucketType.PUBLIC

    def prepare(self, case, ctx):
        state = super().prepare(case, ctx)
        state["key"] = state["prefix"] + "public-file.txt"
        ctx.admin.upload_file(state["key"], self.CONTENT, "text/plain")
        return state

    def execute(self, case, ctx, state):
        url = ctx.storage.object_url(state["key"])
        try:
            response = ctx.http_client.get(url)
        except httpx.HTTPError as e:
            raise StorageConnectionError(f"Anonymous read failed: {e}", "Anonymous read") from e

        if response.status_code in (401, 403):
            raise AccessDeniedError(
                f"Access denied: anonymous read of {state['key']} not permitted",
                "Anonymous read",
                response.status_code,
            )
        if response.status_code != 200:
            raise StorageError(
                f"Anonymous read failed with HTTP {response.status_code}",
                "Anonymous read",
                response.status_code,
            )
        if response.content != self.CONTENT:
            raise VerificationError(f"Anonymous read of {state['key']} returned different content")
        return f"Read {state['key']} without credentials"
