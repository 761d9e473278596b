"""Shared fixtures: moto-backed S3 and façades bound to test buckets."""

import boto3
import httpx
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from s3grants.models import BucketConfig, BucketType, Credentials, GrantSet, RunSettings
from s3grants.storage import StorageFacade
from s3grants.suites import SuiteContext

BUCKET = "grant-test-bucket"


def client_error(code: str, status: int, operation: str = "PutObject") -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": code},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


def access_denied(operation: str = "PutObject") -> ClientError:
    return client_error("AccessDenied", 403, operation)


class DeniedClient:
    """Stand-in for a boto3 client that refuses every call with 403 AccessDenied."""

    def __init__(self):
        self.calls = []

    def __getattr__(self, name):
        def deny(*args, **kwargs):
            self.calls.append(name)
            raise access_denied(name)

        return deny


@pytest.fixture
def make_client_error():
    """Factory for botocore ClientErrors: ``make_client_error("NoSuchKey", 404)``."""
    return client_error


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so nothing can reach a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.delenv("AWS_PROFILE", raising=False)


@pytest.fixture
def settings():
    """Run settings with no retry delays and small payloads."""
    return RunSettings(
        retry_delays=(0.0,),
        small_file_size=256,
        large_file_size=6 * 1024 * 1024,
        multipart_threshold=5 * 1024 * 1024,
        multipart_chunksize=5 * 1024 * 1024,
    )


@pytest.fixture
def make_bucket():
    """Factory for bucket configs; LIMITED grants are derived from the key."""

    def _make(key="READ_WRITE", bucket_type=BucketType.LIMITED, grants=None, bucket_name=BUCKET):
        if grants is None:
            grants = GrantSet.full() if bucket_type != BucketType.LIMITED else GrantSet.from_label(key)
        return BucketConfig(
            key=key,
            bucket_name=bucket_name,
            bucket_type=bucket_type,
            grants=grants,
            credentials=Credentials(f"{key}-access", f"{key}-secret"),
        )

    return _make


@pytest.fixture
def s3(aws_credentials):
    """Moto S3 client with the test bucket already created.

    No endpoint_url, so moto intercepts every request.
    """
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket=BUCKET)
        yield client


@pytest.fixture
def admin(s3, make_bucket, settings):
    """Full-access façade over the moto bucket."""
    return StorageFacade(s3, make_bucket("PRIVATE", BucketType.PRIVATE), settings)


@pytest.fixture
def denied_client():
    return DeniedClient()


@pytest.fixture
def http_client():
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
    yield client
    client.close()


@pytest.fixture
def make_context(s3, admin, settings, tmp_path, http_client, denied_client):
    """Build a SuiteContext for a bucket.

    With ``denied=True`` the façade under test refuses every call while the
    admin façade keeps working against moto.
    """

    def _make(bucket, denied=False, http=None):
        client = denied_client if denied else s3
        return SuiteContext(
            settings=settings,
            storage=StorageFacade(client, bucket, settings),
            admin=admin,
            work_dir=tmp_path,
            http_client=http or http_client,
            run_id="1700000000",
        )

    return _make
