"""Data models for the S3 access grant tester."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class Permission(Enum):
    """A single capability an access grant can carry."""

    READ = "read"
    WRITE = "write"
    LIST = "list"
    DELETE = "delete"


# Canonical ordering used when describing a grant set
PERMISSION_ORDER = (Permission.READ, Permission.WRITE, Permission.LIST, Permission.DELETE)


class BucketType(Enum):
    """Kind of bucket a grant is bound to."""

    PUBLIC = "public"
    PRIVATE = "private"
    LIMITED = "limited"


class ResultStatus(Enum):
    """Status of a test case or suite."""

    PASS = "pass"
    FAIL = "fail"
    ERROR = "error"
    SKIP = "skip"


@dataclass(frozen=True)
class GrantSet:
    """Read/write/list/delete flags granted to a set of credentials."""

    read: bool = False
    write: bool = False
    list: bool = False
    delete: bool = False

    @classmethod
    def full(cls) -> "GrantSet":
        return cls(read=True, write=True, list=True, delete=True)

    @classmethod
    def from_names(cls, names) -> "GrantSet":
        """Build a grant set from permission names.

        Args:
            names: Iterable of names such as ``["read", "write"]``.

        Raises:
            ValueError: If a name is not a known permission.
        """
        flags = {}
        for name in names:
            permission = Permission(name.strip().lower())
            flags[permission.value] = True
        return cls(**flags)

    @classmethod
    def from_label(cls, label: str) -> "GrantSet":
        """Build a grant set from an underscore label like ``READ_WRITE``."""
        return cls.from_names(label.split("_"))

    @property
    def permissions(self) -> frozenset:
        return frozenset(p for p in PERMISSION_ORDER if getattr(self, p.value))

    def allows(self, *permissions: Permission) -> bool:
        return all(getattr(self, p.value) for p in permissions)

    def describe(self) -> str:
        """Comma-separated permission names, e.g. ``read,write``."""
        return ",".join(p.value for p in PERMISSION_ORDER if getattr(self, p.value))


@dataclass(frozen=True)
class Credentials:
    """Access key pair for the storage service."""

    aws_access_key_id: str
    aws_secret_access_key: str


@dataclass(frozen=True)
class BucketConfig:
    """A target bucket together with the grant its credentials carry."""

    key: str
    bucket_name: str
    bucket_type: BucketType
    grants: GrantSet
    credentials: Credentials
    region_name: str = "us-east-1"

    @property
    def is_full_access(self) -> bool:
        return self.bucket_type in (BucketType.PUBLIC, BucketType.PRIVATE) or self.grants == GrantSet.full()


@dataclass
class RunSettings:
    """Connection and payload settings shared by every suite."""

    endpoint_url: Optional[str] = None
    region_name: str = "us-east-1"
    addressing_style: str = "path"
    connect_timeout: float = 10.0
    read_timeout: float = 60.0
    max_attempts: int = 3
    multipart_threshold: int = 8 * 1024 * 1024
    multipart_chunksize: int = 5 * 1024 * 1024
    small_file_size: int = 1024
    large_file_size: int = 12 * 1024 * 1024
    key_prefix: str = "grant-tests/"
    download_dir: Optional[str] = None
    retry_delays: tuple = (1.0, 2.0, 3.0)
    skip_markers: tuple = ("Not enough balance",)


@dataclass
class GrantConfig:
    """Everything loaded from configuration for a single run."""

    settings: RunSettings
    buckets: dict[str, BucketConfig]
    admin: Optional[Credentials] = None


@dataclass
class TestCase:
    """A registered case: one suite run against one configured bucket."""

    __test__ = False

    case_id: str
    description: str
    suite: str
    bucket: BucketConfig
    expect_allowed: bool
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def bucket_type(self) -> BucketType:
        return self.bucket.bucket_type

    @property
    def expected(self) -> str:
        return "allowed" if self.expect_allowed else "denied"


@dataclass
class TestResult:
    """Result of a single test case execution."""

    __test__ = False

    case_id: str
    description: str
    status: ResultStatus
    message: str
    bucket_key: str = ""
    expected: str = ""
    actual: str = ""
    duration_seconds: float = 0.0
    status_code: Optional[int] = None
    error_type: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.status == ResultStatus.PASS


@dataclass
class SuiteResult:
    """Aggregated results for a single suite."""

    suite_name: str
    title: str
    status: ResultStatus
    results: dict[str, TestResult] = field(default_factory=dict)
    duration_seconds: float = 0.0
    error_message: Optional[str] = None
