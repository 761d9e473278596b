"""S3 client factory for the grant tester.

Creates boto3 S3 clients bound to one set of credentials, with the endpoint,
region, addressing style, timeouts and SDK retry budget taken from the run
settings.
"""

import boto3
from botocore.client import Config

from s3grants.models import Credentials, RunSettings


def build_s3_client(settings: RunSettings, credentials: Credentials, region_name=None):
    """Build a boto3 S3 client for the given credentials.

    Args:
        settings: Run settings containing endpoint, addressing style,
                 timeouts and retry attempts.
        credentials: Access key pair the client signs requests with.
        region_name: Region override (defaults to ``settings.region_name``).

    Returns:
        A boto3 S3 client.
    """
    boto_config = Config(
        signature_version="s3v4",
        s3={"addressing_style": settings.addressing_style},
        connect_timeout=settings.connect_timeout,
        read_timeout=settings.read_timeout,
        retries={"max_attempts": settings.max_attempts, "mode": "standard"},
    )

    return boto3.client(
        "s3",
        endpoint_url=settings.endpoint_url,
        aws_access_key_id=credentials.aws_access_key_id,
        aws_secret_access_key=credentials.aws_secret_access_key,
        region_name=region_name or settings.region_name,
        config=boto_config,
    )
