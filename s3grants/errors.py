"""Error types raised by the storage façade and helpers to inspect them.

SDK failures are translated into a small family of exceptions so suites can
tell a permission denial apart from a missing object or a broken connection
without digging into botocore response dictionaries.
"""

from typing import Optional

import httpx
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

ACCESS_DENIED_CODES = {"AccessDenied", "Forbidden", "AllAccessDisabled", "401", "403"}
NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}
BUCKET_NOT_FOUND_CODES = {"NoSuchBucket"}
BUCKET_EXISTS_CODES = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}


class StorageError(Exception):
    """Raised when a storage operation fails."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code
        self.code = code


class AccessDeniedError(StorageError):
    """The service refused the operation for the current credentials."""


class ObjectNotFoundError(StorageError):
    """The requested key does not exist."""


class BucketNotFoundError(StorageError):
    """The requested bucket does not exist."""


class StorageConnectionError(StorageError):
    """The service could not be reached or timed out."""


class VerificationError(Exception):
    """Raised when an operation succeeded but its effect is not observable."""


def extract_status_code(error: Exception) -> Optional[int]:
    """Return the HTTP status code carried by an error, if any."""
    if isinstance(error, StorageError):
        return error.status_code
    if isinstance(error, ClientError):
        return error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    return None


def extract_error_code(error: Exception) -> Optional[str]:
    if isinstance(error, StorageError):
        return error.code
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code")
    return None


def translate_error(error: Exception, operation: str) -> StorageError:
    """Convert an SDK exception into a StorageError subclass.

    Args:
        error: Exception raised by boto3/botocore.
        operation: Human-readable operation name used in the message.

    Returns:
        The matching StorageError. The original exception is not chained;
        callers should ``raise ... from error``.
    """
    if isinstance(error, StorageError):
        return error

    # Managed transfers wrap the ClientError that caused the failure
    if isinstance(error, S3UploadFailedError):
        inner = error.__cause__ or error.__context__
        if isinstance(inner, (ClientError, BotoCoreError)):
            return translate_error(inner, operation)
        if "AccessDenied" in str(error) or "403" in str(error):
            return AccessDeniedError(f"Access denied: {operation} not permitted ({error})", operation, 403)
        return StorageError(f"{operation} failed: {error}", operation)

    if isinstance(error, ClientError):
        status_code = extract_status_code(error)
        code = extract_error_code(error) or ""
        detail = error.response.get("Error", {}).get("Message") or code or str(error)
        message = f"{operation} failed: {detail}"

        if code in ACCESS_DENIED_CODES or status_code in (401, 403):
            return AccessDeniedError(
                f"Access denied: {operation} not permitted ({detail})",
                operation=operation,
                status_code=status_code,
                code=code,
            )
        if code in BUCKET_NOT_FOUND_CODES:
            return BucketNotFoundError(message, operation, status_code, code)
        if code in NOT_FOUND_CODES or status_code == 404:
            return ObjectNotFoundError(message, operation, status_code, code)
        return StorageError(message, operation, status_code, code)

    if isinstance(
        error,
        (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError, BotoConnectionError),
    ):
        return StorageConnectionError(f"{operation} failed: {error}", operation)

    return StorageError(f"{operation} failed: {error}", operation)


def classify_error(error) -> str:
    """Bucket an error (or error message) into a summary category."""
    if isinstance(error, AccessDeniedError):
        return "Permission Error"
    if isinstance(error, (ObjectNotFoundError, BucketNotFoundError)):
        return "Not Found Error"

    message = str(error).lower()
    if "access denied" in message or "permission" in message:
        return "Permission Error"
    if "not found" in message or "does not exist" in message:
        return "Not Found Error"
    if "failed" in message:
        return "Operation Error"
    return "Unknown Error"
