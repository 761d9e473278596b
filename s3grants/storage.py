"""Storage façade: single-purpose wrappers over the boto3 S3 client.

Each method performs one storage intent against the bound bucket and
translates SDK failures into the exceptions in ``s3grants.errors``. The
façade never checks grants itself; the service is the only authority on
what a set of credentials may do.

Folders are emulated with key prefixes: a folder named ``docs`` is the
zero-byte marker object ``docs/`` plus every key starting with that prefix.
"""

import logging
import mimetypes
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union
from urllib.parse import quote

from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.exceptions import BotoCoreError, ClientError

from s3grants.errors import (
    ACCESS_DENIED_CODES,
    BUCKET_EXISTS_CODES,
    AccessDeniedError,
    ObjectNotFoundError,
    StorageError,
    VerificationError,
    extract_error_code,
    translate_error,
)
from s3grants.models import BucketConfig, Credentials, RunSettings
from s3grants.s3_client import build_s3_client

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
FOLDER_CONTENT_TYPE = "application/x-directory"

# DeleteObjects accepts at most 1000 keys per request
DELETE_BATCH_SIZE = 1000

DOWNLOAD_CHUNK_SIZE = 1024 * 1024

Body = Union[bytes, str, Path]


@dataclass
class ObjectInfo:
    """Object attributes as reported by HEAD/GET."""

    key: str
    content_type: Optional[str] = None
    content_length: Optional[int] = None
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_response(cls, key: str, response: dict) -> "ObjectInfo":
        return cls(
            key=key,
            content_type=response.get("ContentType"),
            content_length=response.get("ContentLength"),
            last_modified=response.get("LastModified"),
            etag=response.get("ETag"),
            metadata=dict(response.get("Metadata") or {}),
        )


@dataclass
class ObjectSummary:
    """One entry of a bucket listing."""

    key: str
    size: int = 0
    etag: Optional[str] = None
    last_modified: Optional[datetime] = None


def folder_key(name: str) -> str:
    """Return the marker key for a folder name (always ends with ``/``)."""
    return name if name.endswith("/") else f"{name}/"


def guess_content_type(key: str) -> str:
    content_type, _ = mimetypes.guess_type(key)
    return content_type or DEFAULT_CONTENT_TYPE


def read_body(body: Body) -> bytes:
    """Normalize an upload body: bytes as-is, text as UTF-8, paths read from disk."""
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    if isinstance(body, os.PathLike):
        return Path(body).read_bytes()
    raise TypeError(f"Unsupported body type: {type(body).__name__}")


class StorageFacade:
    """Storage operations against a single bucket with a single set of credentials.

    Args:
        client: boto3 S3 client signing with the credentials under test.
        bucket: Bucket configuration (name, type, grants).
        settings: Run settings (multipart thresholds, endpoint).
    """

    def __init__(self, client: Any, bucket: BucketConfig, settings: RunSettings):
        self.client = client
        self.bucket = bucket
        self.settings = settings

    @classmethod
    def for_bucket(
        cls,
        bucket: BucketConfig,
        settings: RunSettings,
        credentials: Optional[Credentials] = None,
    ) -> "StorageFacade":
        """Build a façade with a fresh client.

        Args:
            bucket: Target bucket.
            settings: Run settings.
            credentials: Credentials to sign with; defaults to the bucket's own.
        """
        client = build_s3_client(settings, credentials or bucket.credentials, bucket.region_name)
        return cls(client, bucket, settings)

    @property
    def bucket_name(self) -> str:
        return self.bucket.bucket_name

    def _call(self, operation: str, method: str, **params) -> dict:
        """Invoke one client method, translating and logging failures."""
        try:
            return getattr(self.client, method)(**params)
        except (ClientError, BotoCoreError, S3UploadFailedError) as e:
            raise self._fail(operation, e) from e

    def _fail(self, operation: str, error: Exception) -> StorageError:
        storage_error = translate_error(error, operation)
        if isinstance(storage_error, AccessDeniedError):
            logger.info("%s denied on %s (status=%s)", operation, self.bucket_name, storage_error.status_code)
        elif isinstance(storage_error, ObjectNotFoundError):
            logger.debug("%s: not found on %s", operation, self.bucket_name)
        else:
            logger.error(
                "%s failed on %s (status=%s, code=%s): %s",
                operation,
                self.bucket_name,
                storage_error.status_code,
                storage_error.code,
                storage_error,
            )
        return storage_error

    def _metadata(self, extra: Optional[dict] = None) -> dict[str, str]:
        metadata = {
            "custom-timestamp": datetime.now(timezone.utc).isoformat(),
            "bucket-type": self.bucket.bucket_type.value,
        }
        for key, value in (extra or {}).items():
            metadata[key.lower()] = str(value)
        return metadata

    # ==================== BUCKET OPERATIONS ====================

    def create_bucket(self, name: Optional[str] = None) -> str:
        """Create a bucket; an already existing bucket counts as success."""
        name = name or self.bucket_name
        params: dict[str, Any] = {"Bucket": name}
        if self.bucket.region_name and self.bucket.region_name != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": self.bucket.region_name}

        logger.info("Creating bucket %s", name)
        try:
            self.client.create_bucket(**params)
        except ClientError as e:
            if extract_error_code(e) in BUCKET_EXISTS_CODES:
                logger.info("Bucket %s already exists", name)
                return name
            raise self._fail("Create bucket", e) from e
        except BotoCoreError as e:
            raise self._fail("Create bucket", e) from e
        return name

    def delete_bucket(self, name: Optional[str] = None) -> str:
        name = name or self.bucket_name
        logger.info("Deleting bucket %s", name)
        self._call("Delete bucket", "delete_bucket", Bucket=name)
        return name

    def list_buckets(self) -> list[str]:
        response = self._call("List buckets", "list_buckets")
        names = [b["Name"] for b in response.get("Buckets", [])]
        logger.info("Found %d buckets", len(names))
        return names

    # ==================== OBJECT OPERATIONS ====================

    def upload_file(
        self,
        key: str,
        body: Body,
        content_type: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> Optional[str]:
        """Upload an object with a single PUT.

        Args:
            key: Object key.
            body: Bytes, text, or a ``Path`` to read.
            content_type: Content type; guessed from the key when omitted.
            metadata: Custom metadata merged over the default entries.

        Returns:
            The ETag reported by the service.
        """
        data = read_body(body)
        logger.info("Uploading %s (%d bytes) to %s", key, len(data), self.bucket_name)
        response = self._call(
            "Upload",
            "put_object",
            Bucket=self.bucket_name,
            Key=key,
            Body=data,
            ContentLength=len(data),
            ContentType=content_type or guess_content_type(key),
            Metadata=self._metadata(metadata),
        )
        return response.get("ETag")

    def upload_large_file(
        self,
        key: str,
        path: Union[str, Path],
        metadata: Optional[dict] = None,
        content_type: Optional[str] = None,
    ) -> int:
        """Upload a file through the managed transfer (multipart above the threshold).

        Returns:
            The uploaded size in bytes.
        """
        size = os.path.getsize(path)
        transfer_config = TransferConfig(
            multipart_threshold=self.settings.multipart_threshold,
            multipart_chunksize=self.settings.multipart_chunksize,
            max_concurrency=4,
        )
        extra_args = {
            "ContentType": content_type or DEFAULT_CONTENT_TYPE,
            "Metadata": self._metadata({"file-size": size, **(metadata or {})}),
        }

        logger.info(
            "Uploading large file %s (%d bytes, multipart=%s) to %s",
            key,
            size,
            size >= self.settings.multipart_threshold,
            self.bucket_name,
        )
        self._call(
            "Upload large file",
            "upload_file",
            Filename=str(path),
            Bucket=self.bucket_name,
            Key=key,
            ExtraArgs=extra_args,
            Config=transfer_config,
        )
        return size

    def download_file(self, key: str, destination: Union[str, Path]) -> ObjectInfo:
        """Stream an object to a local file, creating parent directories."""
        logger.info("Downloading %s to %s", key, destination)
        response = self._call("Download", "get_object", Bucket=self.bucket_name, Key=key)

        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(destination, "wb") as f:
                for chunk in response["Body"].iter_chunks(DOWNLOAD_CHUNK_SIZE):
                    f.write(chunk)
        except (ClientError, BotoCoreError) as e:
            raise self._fail("Download", e) from e

        return ObjectInfo.from_response(key, response)

    def get_object_info(self, key: str) -> Optional[ObjectInfo]:
        """Return object attributes, or None when the key does not exist."""
        try:
            response = self._call("Get object info", "head_object", Bucket=self.bucket_name, Key=key)
        except ObjectNotFoundError:
            return None
        return ObjectInfo.from_response(key, response)

    def get_object_content(self, key: str) -> bytes:
        response = self._call("Get content", "get_object", Bucket=self.bucket_name, Key=key)
        try:
            return response["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise self._fail("Get content", e) from e

    def object_exists(self, key: str) -> bool:
        return self.get_object_info(key) is not None

    def list_objects(self, prefix: str = "", delimiter: Optional[str] = None) -> list[ObjectSummary]:
        """List every object under a prefix, following continuation tokens."""
        params: dict[str, Any] = {"Bucket": self.bucket_name, "Prefix": prefix}
        if delimiter:
            params["Delimiter"] = delimiter

        objects = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(**params):
                for item in page.get("Contents", []):
                    objects.append(
                        ObjectSummary(
                            key=item["Key"],
                            size=item.get("Size", 0),
                            etag=item.get("ETag"),
                            last_modified=item.get("LastModified"),
                        )
                    )
        except (ClientError, BotoCoreError) as e:
            raise self._fail("List", e) from e

        logger.info("Found %d objects with prefix %r", len(objects), prefix)
        return objects

    def delete_object(self, key: str) -> None:
        logger.info("Deleting %s from %s", key, self.bucket_name)
        self._call("Delete", "delete_object", Bucket=self.bucket_name, Key=key)

    def delete_objects(self, prefix: str = "", keys: Optional[list[str]] = None) -> int:
        """Delete many objects with batched DeleteObjects requests.

        Args:
            prefix: Prefix to list when ``keys`` is not given.
            keys: Explicit keys to delete.

        Returns:
            Number of keys deleted.

        Raises:
            AccessDeniedError: If the service refused any key.
            StorageError: For any other per-key failure.
        """
        if keys is None:
            keys = [obj.key for obj in self.list_objects(prefix)]
        if not keys:
            return 0

        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start:start + DELETE_BATCH_SIZE]
            response = self._call(
                "Delete objects",
                "delete_objects",
                Bucket=self.bucket_name,
                Delete={"Objects": [{"Key": k} for k in batch], "Quiet": True},
            )
            errors = response.get("Errors", [])
            if errors:
                first = errors[0]
                code = first.get("Code", "")
                message = f"Delete objects failed for {len(errors)} keys: {first.get('Key')}: {first.get('Message', code)}"
                if code in ACCESS_DENIED_CODES:
                    raise AccessDeniedError(f"Access denied: {message}", "Delete objects", 403, code)
                raise StorageError(message, "Delete objects", code=code)

        logger.info("Deleted %d objects from %s", len(keys), self.bucket_name)
        return len(keys)

    def copy_object(self, source_key: str, destination_key: str) -> None:
        self._call(
            "Copy",
            "copy_object",
            Bucket=self.bucket_name,
            Key=destination_key,
            CopySource={"Bucket": self.bucket_name, "Key": source_key},
        )

    def move_object(self, source_key: str, destination_key: str) -> None:
        """Move (rename) an object: copy to the new key, then delete the original."""
        logger.info("Moving %s to %s", source_key, destination_key)
        self.copy_object(source_key, destination_key)
        self.delete_object(source_key)

    # ==================== FOLDER EMULATION ====================

    def create_folder(self, name: str, verify: bool = False) -> str:
        """Create a folder marker object.

        Args:
            name: Folder name; a trailing ``/`` is added when missing.
            verify: List the prefix afterwards and fail if the marker is absent.

        Returns:
            The marker key.
        """
        key = folder_key(name)
        logger.info("Creating folder %s in %s", key, self.bucket_name)
        self._call(
            "Create folder",
            "put_object",
            Bucket=self.bucket_name,
            Key=key,
            Body=b"",
            ContentLength=0,
            ContentType=FOLDER_CONTENT_TYPE,
            Metadata=self._metadata({"content-type": "folder"}),
        )
        if verify and not self.folder_exists(key):
            raise VerificationError(f"Folder {key} not found after creation")
        return key

    def folder_exists(self, name: str) -> bool:
        response = self._call(
            "Check folder",
            "list_objects_v2",
            Bucket=self.bucket_name,
            Prefix=folder_key(name),
            MaxKeys=1,
        )
        return len(response.get("Contents", [])) > 0

    def delete_folder(self, name: str) -> int:
        """Delete a folder marker and everything under its prefix."""
        key = folder_key(name)
        logger.info("Deleting folder %s from %s", key, self.bucket_name)
        return self.delete_objects(prefix=key)

    def clean_prefix(self, prefix: str) -> int:
        """Best-effort removal of everything under a prefix.

        Failures are logged and reported as zero deletions.
        """
        try:
            return self.delete_objects(prefix=prefix)
        except StorageError as e:
            logger.warning("Cleanup of %r in %s failed: %s", prefix, self.bucket_name, e)
            return 0

    def object_url(self, key: str) -> str:
        """Unsigned URL of an object, honoring the configured addressing style."""
        quoted = quote(key, safe="/")
        endpoint = self.settings.endpoint_url
        if not endpoint:
            return f"https://{self.bucket_name}.s3.{self.bucket.region_name}.amazonaws.com/{quoted}"
        endpoint = endpoint.rstrip("/")
        if self.settings.addressing_style == "virtual":
            scheme, _, host = endpoint.partition("://")
            return f"{scheme}://{self.bucket_name}.{host}/{quoted}"
        return f"{endpoint}/{self.bucket_name}/{quoted}"
