"""Tests for the operation suites against moto S3.

The façade under test shares moto's client with the admin façade when the
grant is allowed, and uses a client that refuses every call when it is not.
"""

from unittest.mock import patch

import httpx
import pytest

from s3grants.errors import AccessDeniedError, StorageError, VerificationError
from s3grants.models import BucketType, Permission, TestCase
from s3grants.suites import SUITES, get_suites
from s3grants.suites.objects import DEFAULT_METADATA


@pytest.fixture
def run_prepare(make_context):
    """Build a case and context for a suite, then run ``prepare``."""

    def _prepare(suite_name, bucket, denied=False, http=None):
        suite = SUITES[suite_name]
        case = TestCase("TC01", suite.describe_case(bucket), suite.name, bucket, suite.expect_allowed(bucket))
        ctx = make_context(bucket, denied=denied, http=http)
        state = suite.prepare(case, ctx)
        return suite, case, ctx, state

    return _prepare


class TestSuiteRegistration:
    """Tests for suite registration and lookup."""

    def test_execution_order(self):
        assert list(SUITES) == [
            "create-folder",
            "upload",
            "list-objects",
            "download",
            "move",
            "delete",
            "overwrite",
            "object-info",
            "delete-folder",
            "large-upload",
            "multi-upload",
            "list-buckets",
            "bucket-lifecycle",
            "anonymous-access",
        ]

    def test_get_suites_keeps_registration_order(self):
        suites = get_suites(["delete", "upload"])
        assert [s.name for s in suites] == ["upload", "delete"]

    def test_get_suites_unknown(self):
        with pytest.raises(KeyError, match="nope"):
            get_suites(["upload", "nope"])

    def test_every_suite_is_named(self):
        for suite in SUITES.values():
            assert suite.name and suite.title and suite.short_name

    def test_required_permissions(self):
        assert SUITES["upload"].requires == {Permission.WRITE}
        assert SUITES["download"].requires == {Permission.READ}
        assert SUITES["delete-folder"].requires == {Permission.LIST, Permission.DELETE}
        assert SUITES["bucket-lifecycle"].requires == set(Permission)

    def test_case_prefix_is_unique_per_case(self, make_context, make_bucket):
        bucket = make_bucket("WRITE")
        ctx = make_context(bucket)
        suite = SUITES["upload"]
        first = TestCase("TC01", "d", "upload", bucket, True)
        second = TestCase("TC02", "d", "upload", bucket, True)

        assert suite.case_prefix(first, ctx) == "grant-tests/upload-tc01-1700000000/"
        assert suite.case_prefix(first, ctx) != suite.case_prefix(second, ctx)


class TestObjectSuites:
    """Upload, overwrite, large upload, download and object info."""

    def test_upload_allowed(self, run_prepare, make_bucket, admin):
        suite, case, ctx, state = run_prepare("upload", make_bucket("WRITE"))

        message = suite.execute(case, ctx, state)
        suite.cleanup(case, ctx, state)

        assert "Uploaded and verified" in message
        assert admin.list_objects(state["prefix"]) == []
        assert not state["payload"].exists()

    def test_upload_denied_leaves_nothing(self, run_prepare, make_bucket):
        suite, case, ctx, state = run_prepare("upload", make_bucket("READ"), denied=True)

        with pytest.raises(AccessDeniedError):
            suite.execute(case, ctx, state)
        suite.verify_denied(case, ctx, state)

    def test_upload_denied_but_object_present(self, run_prepare, make_bucket, admin):
        suite, case, ctx, state = run_prepare("upload", make_bucket("READ"), denied=True)
        admin.upload_file(state["key"], b"leaked")

        with pytest.raises(VerificationError, match="exists although"):
            suite.verify_denied(case, ctx, state)

    def test_overwrite_allowed(self, run_prepare, make_bucket, admin):
        suite, case, ctx, state = run_prepare("overwrite", make_bucket("WRITE"))

        suite.execute(case, ctx, state)

        assert admin.get_object_content(state["key"]) == suite.UPDATED

    def test_overwrite_denied_keeps_original(self, run_prepare, make_bucket, admin):
        suite, case, ctx, state = run_prepare("overwrite", make_bucket("LIST"), denied=True)

        with pytest.raises(AccessDeniedError):
            suite.execute(case, ctx, state)
        suite.verify_denied(case, ctx, state)

        assert admin.get_object_content(state["key"]) == suite.ORIGINAL

    def test_large_upload_allowed(self, run_prepare, make_bucket, settings):
        suite, case, ctx, state = run_prepare("large-upload", make_bucket("WRITE"))

        message = suite.execute(case, ctx, state)
        suite.cleanup(case, ctx, state)

        assert str(settings.large_file_size) in message
        assert not state["payload"].exists()

    def test_large_upload_denied(self, run_prepare, make_bucket):
        suite, case, ctx, state = run_prepare("large-upload", make_bucket("READ"), denied=True)

        with pytest.raises(AccessDeniedError):
            suite.execute(case, ctx, state)
        suite.verify_denied(case, ctx, state)

    def test_multi_upload_allowed(self, run_prepare, make_bucket, admin):
        suite, case, ctx, state = run_prepare("multi-upload", make_bucket("WRITE"))

        message = suite.execute(case, ctx, state)

        assert "Uploaded and verified 12 files in 5 folders" == message
        special = state["prefix"] + "documents/filenamecontains#%!@%#$#&.pdf"
        assert admin.get_object_info(special).content_type == "application/pdf"
        assert admin.get_object_info(state["prefix"] + "others/no_extension").content_type == "application/octet-stream"
        assert admin.folder_exists(state["prefix"] + "images")

        suite.cleanup(case, ctx, state)
        assert admin.list_objects(state["prefix"]) == []

    def test_multi_upload_sizes_differ(self, run_prepare, make_bucket):
        suite, case, ctx, state = run_prepare("multi-upload", make_bucket("WRITE"))

        sizes = [len(body) for body in state["files"].values()]
        assert len(set(sizes)) == len(sizes)

    def test_multi_upload_content_type_mismatch(self, run_prepare, make_bucket):
        suite, case, ctx, state = run_prepare("multi-upload", make_bucket("WRITE"))
        upload_file = ctx.storage.upload_file

        def upload_as_binary(key, body, content_type=None, metadata=None):
            return upload_file(key, body, "application/octet-stream", metadata)

        with patch.object(ctx.storage, "upload_file", side_effect=upload_as_binary):
            with pytest.raises(VerificationError, match="Content type mismatch"):
                suite.execute(case, ctx, state)

    def test_multi_upload_denied(self, run_prepare, make_bucket):
        suite, case, ctx, state = run_prepare("multi-upload", make_bucket("READ"), denied=True)

        with pytest.raises(AccessDeniedError):
            suite.execute(case, ctx, state)
        suite.verify_denied(case, ctx, state)

    def test_multi_upload_denied_but_file_present(self, run_prepare, make_bucket, admin):
        suite, case, ctx, state = run_prepare("multi-upload", make_bucket("READ"), denied=True)
        admin.upload_file(next(iter(state["files"])), b"leaked")

        with pytest.raises(VerificationError, match="exist although"):
            suite.verify_denied(case, ctx, state)

    def test_download_allowed(self, run_prepare, make_bucket, tmp_path):
        suite, case, ctx, state = run_prepare("download", make_bucket("READ"))

        message = suite.execute(case, ctx, state)

        assert "matching checksum" in message
        assert list((tmp_path / "downloads").iterdir())

    def test_download_checksum_mismatch(self, run_prepare, make_bucket, admin):
        suite, case, ctx, state = run_prepare("download", make_bucket("READ"))
        admin.upload_file(state["key"], b"tampered")

        with pytest.raises(VerificationError, match="Checksum mismatch"):
            suite.execute(case, ctx, state)

    def test_download_to_configured_directory(self, run_prepare, make_bucket, tmp_path):
        suite, case, ctx, state = run_prepare("download", make_bucket("READ"))
        ctx.settings.download_dir = str(tmp_path / "custom")

        suite.execute(case, ctx, state)

        assert list((tmp_path / "custom").iterdir())

    def test_download_denied(self, run_prepare, make_bucket):
        suite, case, ctx, state = run_prepare("download", make_bucket("WRITE"), denied=True)

        with pytest.raises(AccessDeniedError):
            suite.execute(case, ctx, state)

    def test_object_info_allowed(self, run_prepare, make_bucket):
        suite, case, ctx, state = run_prepare("object-info", make_bucket("READ"))

        message = suite.execute(case, ctx, state)

        assert state["metadata"]["custom-category"] == DEFAULT_METADATA["custom-category"]
        assert "3 metadata entries" in message

    def test_object_info_metadata_mismatch(self, run_prepare, make_bucket, admin):
        suite, case, ctx, state = run_prepare("object-info", make_bucket("READ"))
        admin.upload_file(state["key"], suite.CONTENT, "text/plain", {"custom-category": "other"})

        with pytest.raises(VerificationError, match="Metadata mismatch"):
            suite.execute(case, ctx, state)


class TestFolderSuites:
    """Folder creation and deletion."""

    def test_create_folder_allowed(self, run_prepare, make_bucket, admin):
        suite, case, ctx, state = run_prepare("create-folder", make_bucket("WRITE"))

        suite.execute(case, ctx, state)

        assert admin.folder_exists(state["folder"])

    def test_create_folder_denied(self, run_prepare, make_bucket):
        suite, case, ctx, state = run_prepare("create-folder", make_bucket("READ"), denied=True)

        with pytest.raises(AccessDeniedError):
            suite.execute(case, ctx, state)
        suite.verify_denied(case, ctx, state)

    def test_delete_folder_allowed(self, run_prepare, make_bucket, admin):
        suite, case, ctx, state = run_prepare("delete-folder", make_bucket("LIST_DELETE"))

        message = suite.execute(case, ctx, state)

        assert "(3 objects)" in message
        assert not admin.folder_exists(state["folder"])

    def test_delete_folder_denied_keeps_files(self, run_prepare, make_bucket):
        suite, case, ctx, state = run_prepare("delete-folder", make_bucket("DELETE"), denied=True)

        with pytest.raises(AccessDeniedError):
            suite.execute(case, ctx, state)
        suite.verify_denied(case, ctx, state)

    def test_delete_folder_denied_but_files_gone(self, run_prepare, make_bucket, admin):
        suite, case, ctx, state = run_prepare("delete-folder", make_bucket("DELETE"), denied=True)
        admin.delete_object(state["files"][0])

        with pytest.raises(VerificationError, match="removed although"):
            suite.verify_denied(case, ctx, state)


class TestListingSuites:
    """Object and bucket listing."""

    def test_list_objects_allowed(self, run_prepare, make_bucket):
        suite, case, ctx, state = run_prepare("list-objects", make_bucket("LIST"))

        assert "Listed 1 objects" in suite.execute(case, ctx, state)

    def test_list_objects_denied(self, run_prepare, make_bucket):
        suite, case, ctx, state = run_prepare("list-objects", make_bucket("READ"), denied=True)

        with pytest.raises(AccessDeniedError):
            suite.execute(case, ctx, state)

    def test_list_buckets(self, run_prepare, make_bucket):
        suite, case, ctx, state = run_prepare("list-buckets", make_bucket("LIST"))

        assert state == {}
        assert suite.execute(case, ctx, state) == "Listed 1 buckets"
        suite.cleanup(case, ctx, state)


class TestRemovalSuites:
    """Delete and move."""

    def test_delete_allowed(self, run_prepare, make_bucket, admin):
        suite, case, ctx, state = run_prepare("delete", make_bucket("DELETE"))

        suite.execute(case, ctx, state)

        assert not admin.object_exists(state["key"])

    def test_delete_denied_keeps_object(self, run_prepare, make_bucket):
        suite, case, ctx, state = run_prepare("delete", make_bucket("READ"), denied=True)

        with pytest.raises(AccessDeniedError):
            suite.execute(case, ctx, state)
        suite.verify_denied(case, ctx, state)

    def test_move_allowed(self, run_prepare, make_bucket, admin):
        suite, case, ctx, state = run_prepare("move", make_bucket("READ_WRITE_DELETE"))

        suite.execute(case, ctx, state)

        assert admin.get_object_content(state["destination"]) == suite.CONTENT
        assert not admin.object_exists(state["source"])

    def test_move_denied_keeps_source(self, run_prepare, make_bucket, admin):
        suite, case, ctx, state = run_prepare("move", make_bucket("WRITE_DELETE"), denied=True)

        with pytest.raises(AccessDeniedError):
            suite.execute(case, ctx, state)
        suite.verify_denied(case, ctx, state)

        assert not admin.object_exists(state["destination"])

    def test_move_denied_after_copy_reports_leftover(self, run_prepare, make_bucket, admin):
        """Without DELETE the copy can land before the source delete is refused."""
        suite, case, ctx, state = run_prepare("move", make_bucket("READ_WRITE"))
        refused = AccessDeniedError("Access denied", "Delete object", 403)

        with patch.object(ctx.storage, "delete_object", side_effect=refused):
            with pytest.raises(AccessDeniedError):
                suite.execute(case, ctx, state)
        note = suite.verify_denied(case, ctx, state)

        assert note == f"copy {state['destination']} was left behind"
        assert admin.object_exists(state["source"])
        suite.cleanup(case, ctx, state)
        assert admin.list_objects(state["prefix"]) == []


class TestBucketSuites:
    """Bucket lifecycle and anonymous access."""

    def test_bucket_lifecycle_applies_to_account_buckets_only(self, make_bucket):
        suite = SUITES["bucket-lifecycle"]

        assert suite.applies_to(make_bucket("PUBLIC", BucketType.PUBLIC))
        assert suite.applies_to(make_bucket("PRIVATE", BucketType.PRIVATE))
        assert not suite.applies_to(make_bucket("READ_WRITE_LIST_DELETE"))

    def test_bucket_lifecycle(self, run_prepare, make_bucket, admin):
        suite, case, ctx, state = run_prepare("bucket-lifecycle", make_bucket("PRIVATE", BucketType.PRIVATE))

        message = suite.execute(case, ctx, state)
        suite.cleanup(case, ctx, state)

        assert state["bucket"].endswith("-lc-tc01-1700000000")
        assert len(state["bucket"]) <= 63
        assert state["deleted"] is True
        assert state["bucket"] in message
        assert state["bucket"] not in admin.list_buckets()

    def test_bucket_lifecycle_name_is_truncated(self, run_prepare, make_bucket):
        bucket = make_bucket("PRIVATE", BucketType.PRIVATE, bucket_name="b" * 63)
        suite, case, ctx, state = run_prepare("bucket-lifecycle", bucket)

        assert len(state["bucket"]) == 63

    def test_bucket_lifecycle_cleanup_removes_leftover(self, run_prepare, make_bucket, admin):
        suite, case, ctx, state = run_prepare("bucket-lifecycle", make_bucket("PRIVATE", BucketType.PRIVATE))
        admin.create_bucket(state["bucket"])

        suite.cleanup(case, ctx, state)

        assert state["bucket"] not in admin.list_buckets()

    def test_bucket_lifecycle_cleanup_ignores_missing_bucket(self, run_prepare, make_bucket):
        suite, case, ctx, state = run_prepare("bucket-lifecycle", make_bucket("PRIVATE", BucketType.PRIVATE))

        suite.cleanup(case, ctx, state)

    def _http(self, status_code, content=b""):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(status_code, content=content)

        return httpx.Client(transport=httpx.MockTransport(handler)), seen

    def test_anonymous_read_of_public_bucket(self, run_prepare, make_bucket):
        suite = SUITES["anonymous-access"]
        http, seen = self._http(200, suite.CONTENT)
        _, case, ctx, state = run_prepare("anonymous-access", make_bucket("PUBLIC", BucketType.PUBLIC), http=http)

        message = suite.execute(case, ctx, state)

        assert "without credentials" in message
        assert str(seen[0].url).endswith(state["key"])
        assert "authorization" not in seen[0].headers

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_anonymous_read_refused(self, run_prepare, make_bucket, status_code):
        http, _ = self._http(status_code)
        suite, case, ctx, state = run_prepare(
            "anonymous-access", make_bucket("PRIVATE", BucketType.PRIVATE), http=http
        )

        with pytest.raises(AccessDeniedError) as exc_info:
            suite.execute(case, ctx, state)
        assert exc_info.value.status_code == status_code
        assert case.expect_allowed is False

    def test_anonymous_read_server_error(self, run_prepare, make_bucket):
        http, _ = self._http(500)
        suite, case, ctx, state = run_prepare("anonymous-access", make_bucket("PUBLIC", BucketType.PUBLIC), http=http)

        with pytest.raises(StorageError) as exc_info:
            suite.execute(case, ctx, state)
        assert not isinstance(exc_info.value, AccessDeniedError)

    def test_anonymous_read_wrong_content(self, run_prepare, make_bucket):
        http, _ = self._http(200, b"something else")
        suite, case, ctx, state = run_prepare("anonymous-access", make_bucket("PUBLIC", BucketType.PUBLIC), http=http)

        with pytest.raises(VerificationError):
            suite.execute(case, ctx, state)
