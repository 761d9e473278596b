"""Configuration loading for the S3 access grant tester.

Supports two configuration sources:
1. Environment variables (for CI/CD) - takes priority
2. config.json file (for local development)

Environment Variable Format:
    GRANT_{KEY}=BucketName|BucketType|perm+perm
    {KEY}_ACCESS_KEY=xxx
    {KEY}_SECRET_KEY=xxx

Global overrides:
    S3_ENDPOINT_URL, S3_REGION, S3_ADDRESSING_STYLE,
    S3_ADMIN_ACCESS_KEY, S3_ADMIN_SECRET_KEY

Example:
    GRANT_READ_WRITE=testdata-1|limited|read+write
    READ_WRITE_ACCESS_KEY=your-access-key
    READ_WRITE_SECRET_KEY=your-secret-key
"""

import json
import os
from dataclasses import fields
from pathlib import Path
from typing import Optional

from s3grants.models import (
    BucketConfig,
    BucketType,
    Credentials,
    GrantConfig,
    GrantSet,
    RunSettings,
)


class ConfigError(Exception):
    """Raised when configuration loading fails."""

    pass


# Required fields for a bucket grant entry
REQUIRED_FIELDS = [
    "bucket_name",
    "bucket_type",
    "permissions",
    "aws_access_key_id",
    "aws_secret_access_key",
]

ENV_PREFIX = "GRANT_"

# RunSettings fields stored as tuples
TUPLE_SETTINGS = {"retry_delays", "skip_markers"}


def parse_bucket_type(value: str, key: str) -> BucketType:
    try:
        return BucketType(value.strip().lower())
    except (AttributeError, ValueError):
        raise ConfigError(f"Unknown bucket_type '{value}' for bucket '{key}'") from None


def parse_grants(value, bucket_type: BucketType, key: str) -> GrantSet:
    """Parse a permission list (or ``+``-joined string) into a GrantSet.

    Public and private buckets always carry the full grant.
    """
    if bucket_type in (BucketType.PUBLIC, BucketType.PRIVATE):
        return GrantSet.full()

    if isinstance(value, str):
        names = value.split("+")
    elif isinstance(value, list) and all(isinstance(n, str) for n in value):
        names = value
    else:
        raise ConfigError(f"Permissions for bucket '{key}' must be a string or a list of strings")
    names = [n for n in names if n.strip()]
    if not names:
        raise ConfigError(f"Bucket '{key}' must grant at least one permission")
    try:
        return GrantSet.from_names(names)
    except ValueError as e:
        raise ConfigError(f"Invalid permission for bucket '{key}': {e}") from e


def parse_tuple_setting(name: str, value) -> tuple:
    """Settings stored as tuples accept a list; a lone marker string is one marker."""
    if name == "skip_markers" and isinstance(value, str):
        return (value,)
    if not isinstance(value, list):
        raise ConfigError(f"Setting '{name}' must be a list")
    return tuple(value)


def parse_settings(data: dict) -> RunSettings:
    """Build RunSettings from the top-level config and its ``settings`` block."""
    known = {f.name for f in fields(RunSettings)}
    values = {}

    for name in ("endpoint_url", "region_name", "addressing_style"):
        if name in data:
            values[name] = data[name]

    settings_block = data.get("settings", {})
    if not isinstance(settings_block, dict):
        raise ConfigError("'settings' must be an object")

    for name, value in settings_block.items():
        if name not in known:
            raise ConfigError(f"Unknown setting '{name}'")
        values[name] = parse_tuple_setting(name, value) if name in TUPLE_SETTINGS else value

    return RunSettings(**values)


def load_from_json(config_path: str) -> GrantConfig:
    """Load run settings and bucket grants from a JSON file.

    S3_* environment overrides are applied to the settings before buckets
    are built, so buckets without their own region follow S3_REGION.

    Args:
        config_path: Path to the config.json file.

    Returns:
        GrantConfig with every enabled bucket, in file order.

    Raises:
        ConfigError: If file doesn't exist, contains invalid JSON,
                    or a bucket entry is missing required fields.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a JSON object")

    settings = parse_settings(data)

    admin = None
    if "admin" in data:
        admin_data = data["admin"]
        try:
            admin = Credentials(admin_data["aws_access_key_id"], admin_data["aws_secret_access_key"])
        except KeyError as e:
            raise ConfigError(f"Missing required field {e} for admin credentials") from e
        except TypeError:
            raise ConfigError("'admin' must be an object") from None

    # S3_* overrides apply before buckets inherit the default region
    admin = apply_env_overrides(settings, admin)

    buckets: dict[str, BucketConfig] = {}

    bucket_entries = data.get("buckets", {})
    if not isinstance(bucket_entries, dict):
        raise ConfigError("'buckets' must be an object keyed by grant name")

    for key, entry in bucket_entries.items():
        if not isinstance(entry, dict):
            raise ConfigError(f"Bucket '{key}' must be an object")

        # Skip disabled buckets
        if not entry.get("enabled", True):
            continue

        for field_name in REQUIRED_FIELDS:
            if field_name not in entry:
                raise ConfigError(
                    f"Missing required field '{field_name}' for bucket '{key}'"
                )

        bucket_type = parse_bucket_type(entry["bucket_type"], key)
        buckets[key] = BucketConfig(
            key=key,
            bucket_name=entry["bucket_name"],
            bucket_type=bucket_type,
            grants=parse_grants(entry["permissions"], bucket_type, key),
            credentials=Credentials(entry["aws_access_key_id"], entry["aws_secret_access_key"]),
            region_name=entry.get("region_name", settings.region_name),
        )

    return GrantConfig(settings=settings, buckets=buckets, admin=admin)


def load_from_env(settings: Optional[RunSettings] = None) -> dict[str, BucketConfig]:
    """Load bucket grants from environment variables.

    Discovers grants by looking for GRANT_* environment variables.
    For each grant, expects corresponding credential variables.

    Returns:
        Dictionary mapping grant keys to BucketConfig objects.

    Raises:
        ConfigError: If environment variables are malformed or
                    required credential variables are missing.
    """
    settings = settings or RunSettings()
    buckets: dict[str, BucketConfig] = {}

    for env_key, env_value in sorted(os.environ.items()):
        if not env_key.startswith(ENV_PREFIX):
            continue

        # "GRANT_READ_WRITE" -> "READ_WRITE"
        key = env_key[len(ENV_PREFIX):]

        parts = env_value.split("|")
        if len(parts) != 3:
            raise ConfigError(
                f"Invalid format for {env_key}. Expected: BucketName|BucketType|perm+perm"
            )

        bucket_name, type_name, permissions = parts

        access_key_var = f"{key}_ACCESS_KEY"
        secret_key_var = f"{key}_SECRET_KEY"

        access_key = os.environ.get(access_key_var)
        if not access_key:
            raise ConfigError(f"Missing environment variable: {access_key_var}")

        secret_key = os.environ.get(secret_key_var)
        if not secret_key:
            raise ConfigError(f"Missing environment variable: {secret_key_var}")

        bucket_type = parse_bucket_type(type_name, key)
        buckets[key] = BucketConfig(
            key=key,
            bucket_name=bucket_name,
            bucket_type=bucket_type,
            grants=parse_grants(permissions, bucket_type, key),
            credentials=Credentials(access_key, secret_key),
            region_name=settings.region_name,
        )

    return buckets


def has_env_grants() -> bool:
    """Check if any GRANT_* environment variables exist."""
    return any(key.startswith(ENV_PREFIX) for key in os.environ)


def apply_env_overrides(settings: RunSettings, admin: Optional[Credentials]) -> Optional[Credentials]:
    """Apply S3_* environment overrides in place; return the admin credentials."""
    if os.environ.get("S3_ENDPOINT_URL"):
        settings.endpoint_url = os.environ["S3_ENDPOINT_URL"]
    if os.environ.get("S3_REGION"):
        settings.region_name = os.environ["S3_REGION"]
    if os.environ.get("S3_ADDRESSING_STYLE"):
        settings.addressing_style = os.environ["S3_ADDRESSING_STYLE"]

    access_key = os.environ.get("S3_ADMIN_ACCESS_KEY")
    secret_key = os.environ.get("S3_ADMIN_SECRET_KEY")
    if access_key and secret_key:
        return Credentials(access_key, secret_key)
    return admin


def resolve_admin_credentials(config: GrantConfig, bucket: BucketConfig) -> Credentials:
    """Pick the credentials used to seed, verify and clean up a bucket.

    Explicit admin credentials win. Otherwise a full-access grant on the same
    bucket name is used, and as a last resort the bucket's own credentials.
    """
    if config.admin is not None:
        return config.admin

    for candidate in config.buckets.values():
        if candidate.bucket_name == bucket.bucket_name and candidate.is_full_access:
            return candidate.credentials

    return bucket.credentials


def load_config(config_path: str = "config.json") -> GrantConfig:
    """Load the run configuration with environment priority.

    Priority order:
    1. Environment variables (if any GRANT_* vars exist)
    2. config.json file

    Args:
        config_path: Path to config.json (used as fallback, and for settings).

    Returns:
        GrantConfig for the run.

    Raises:
        ConfigError: If no buckets are configured or all are disabled.
    """
    if Path(config_path).exists():
        config = load_from_json(config_path)
    else:
        settings = RunSettings()
        config = GrantConfig(settings=settings, buckets={}, admin=apply_env_overrides(settings, None))

    if has_env_grants():
        config.buckets = load_from_env(config.settings)

    if not config.buckets:
        raise ConfigError(
            "No buckets configured. Set GRANT_* environment variables "
            "or create a config.json file with at least one enabled bucket."
        )

    return config
