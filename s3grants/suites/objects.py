"""Object suites: upload, overwrite, large and multi-file upload, download, object info."""

from pathlib import Path

from s3grants.errors import VerificationError
from s3grants.models import Permission
from s3grants.payloads import create_test_file, sha256_file
from s3grants.storage import guess_content_type
from s3grants.suites.base import OperationSuite

TEST_FILE_NAME = "test-file.txt"

# Custom metadata attached to seeded objects and checked for integrity
DEFAULT_METADATA = {
    "custom-category": "test-files",
    "custom-version": "1.0",
}


class UploadSuite(OperationSuite):
    name = "upload"
    title = "Upload File"
    short_name = "Upload"
    requires = frozenset({Permission.WRITE})

    def prepare(self, case, ctx):
        state = super().prepare(case, ctx)
        state["key"] = state["prefix"] + TEST_FILE_NAME
        state["payload"] = create_test_file(ctx.settings.small_file_size, str(ctx.work_dir), ".txt")
        return state

    def execute(self, case, ctx, state):
        key = state["key"]
        size = ctx.settings.small_file_size
        ctx.storage.upload_file(key, state["payload"], "text/plain", {"test-case": case.case_id})

        info = ctx.admin.get_object_info(key)
        if info is None:
            raise VerificationError(f"{key} not found after upload")
        if info.content_length != size:
            raise VerificationError(f"Size mismatch for {key}: expected {size}, got {info.content_length}")
        if info.metadata.get("test-case") != case.case_id:
            raise VerificationError(f"Metadata 'test-case' missing or wrong on {key}: {info.metadata}")
        return f"Uploaded and verified {key} ({size} bytes)"

    def verify_denied(self, case, ctx, state):
        if ctx.admin.object_exists(state["key"]):
            raise VerificationError(f"{state['key']} exists although the upload was denied")


class OverwriteSuite(OperationSuite):
    name = "overwrite"
    title = "Overwrite File"
    short_name = "Overwr"
    requires = frozenset({Permission.WRITE})

    ORIGINAL = b"Original content for overwrite test"
    UPDATED = b"Updated content for overwrite test, longer than the original"

    def prepare(self, case, ctx):
        state = super().prepare(case, ctx)
        state["key"] = state["prefix"] + TEST_FILE_NAME
        ctx.admin.upload_file(state["key"], self.ORIGINAL, "text/plain")
        return state

    def execute(self, case, ctx, state):
        key = state["key"]
        ctx.storage.upload_file(key, self.UPDATED, "text/plain", {"test-case": case.case_id})

        content = ctx.admin.get_object_content(key)
        if content != self.UPDATED:
            raise VerificationError(f"{key} still holds {len(content)} bytes of old content after overwrite")
        return f"Overwrote {key}"

    def verify_denied(self, case, ctx, state):
        content = ctx.admin.get_object_content(state["key"])
        if content != self.ORIGINAL:
            raise VerificationError(f"{state['key']} changed although the overwrite was denied")


class LargeUploadSuite(OperationSuite):
    name = "large-upload"
    title = "Upload Large File"
    short_name = "Large"
    requires = frozenset({Permission.WRITE})

    def prepare(self, case, ctx):
        state = super().prepare(case, ctx)
        state["key"] = state["prefix"] + "large-test.bin"
        state["payload"] = create_test_file(ctx.settings.large_file_size, str(ctx.work_dir))
        return state

    def execute(self, case, ctx, state):
        key = state["key"]
        size = ctx.storage.upload_large_file(key, state["payload"], {"test-case": case.case_id})

        info = ctx.admin.get_object_info(key)
        if info is None:
            raise VerificationError(f"{key} not found after large upload")
        if info.content_length != size:
            raise VerificationError(f"Size mismatch for {key}: expected {size}, got {info.content_length}")
        return f"Uploaded {size} bytes to {key}"

    def verify_denied(self, case, ctx, state):
        if ctx.admin.object_exists(state["key"]):
            raise VerificationError(f"{state['key']} exists although the large upload was denied")


class MultiUploadSuite(OperationSuite):
    """Upload a batch of typed files into folders, including awkward key names."""

    name = "multi-upload"
    title = "Upload Multiple Files"
    short_name = "Multi"
    requires = frozenset({Permission.WRITE})

    FILES_BY_FOLDER = {
        "documents": (
            "pdf_file.pdf",
            "filenamecontains#%!@%#$#&.pdf",
            "txt_file.txt",
            "json_file.json",
            "csv_file.csv",
        ),
        "images": ("png_file.png", "gif_file.gif"),
        "audio": ("mp3_file.mp3",),
        "archives": ("zip_file.zip", "tar_file.tar"),
        "others": ("hihi.txt", "no_extension"),
    }

    def prepare(self, case, ctx):
        state = super().prepare(case, ctx)
        state["folders"] = [state["prefix"] + folder for folder in self.FILES_BY_FOLDER]
        state["files"] = {}
        for folder, names in self.FILES_BY_FOLDER.items():
            for name in names:
                key = f"{state['prefix']}{folder}/{name}"
                # Padding grows per file so a swapped body shows up as a size mismatch
                padding = b"." * (64 * len(state["files"]))
                state["files"][key] = f"{key}\n".encode("utf-8") + padding
        return state

    def execute(self, case, ctx, state):
        for folder in state["folders"]:
            ctx.storage.create_folder(folder)
        for key, body in state["files"].items():
            ctx.storage.upload_file(key, body, metadata={"test-case": case.case_id})

        for key, body in state["files"].items():
            info = ctx.admin.get_object_info(key)
            if info is None:
                raise VerificationError(f"{key} not found after upload")
            if info.content_length != len(body):
                raise VerificationError(
                    f"Size mismatch for {key}: expected {len(body)}, got {info.content_length}"
                )
            expected_type = guess_content_type(key)
            if info.content_type != expected_type:
                raise VerificationError(
                    f"Content type mismatch for {key}: expected {expected_type}, got {info.content_type}"
                )
        return f"Uploaded and verified {len(state['files'])} files in {len(state['folders'])} folders"

    def verify_denied(self, case, ctx, state):
        present = [key for key in state["files"] if ctx.admin.object_exists(key)]
        if present:
            raise VerificationError(f"Objects exist although the uploads were denied: {present}")


class DownloadSuite(OperationSuite):
    name = "download"
    title = "Download File"
    short_name = "Down"
    requires = frozenset({Permission.READ})

    def prepare(self, case, ctx):
        state = super().prepare(case, ctx)
        payload = create_test_file(ctx.settings.small_file_size, str(ctx.work_dir), ".txt")
        state["key"] = state["prefix"] + TEST_FILE_NAME
        state["payload"] = payload
        state["digest"] = sha256_file(payload)
        ctx.admin.upload_file(state["key"], payload, "text/plain")
        return state

    def execute(self, case, ctx, state):
        if ctx.settings.download_dir:
            download_dir = Path(ctx.settings.download_dir)
        else:
            download_dir = ctx.work_dir / "downloads"
        destination = download_dir / f"{self.name}-{case.case_id}-{ctx.run_id}.txt"

        ctx.storage.download_file(state["key"], destination)
        digest = sha256_file(destination)
        if digest != state["digest"]:
            raise VerificationError(f"Checksum mismatch for {state['key']}")
        return f"Downloaded {state['key']} with matching checksum"


class ObjectInfoSuite(OperationSuite):
    name = "object-info"
    title = "Get Object Info"
    short_name = "Info"
    requires = frozenset({Permission.READ})

    CONTENT = b"Metadata integrity test content"

    def prepare(self, case, ctx):
        state = super().prepare(case, ctx)
        state["key"] = state["prefix"] + TEST_FILE_NAME
        state["metadata"] = {**DEFAULT_METADATA, "test-case": case.case_id}
        ctx.admin.upload_file(state["key"], self.CONTENT, "text/plain", state["metadata"])
        return state

    def execute(self, case, ctx, state):
        key = state["key"]
        info = ctx.storage.get_object_info(key)
        if info is None:
            raise VerificationError(f"{key} not found")
        if info.content_length != len(self.CONTENT):
            raise VerificationError(
                f"Size mismatch for {key}: expected {len(self.CONTENT)}, got {info.content_length}"
            )
        if not (info.content_type or "").startswith("text/plain"):
            raise VerificationError(f"Content type mismatch for {key}: {info.content_type}")

        mismatched = {
            name: info.metadata.get(name)
            for name, value in state["metadata"].items()
            if info.metadata.get(name) != value
        }
        if mismatched:
            raise VerificationError(f"Metadata mismatch for {key}: {mismatched}")
        return f"Verified {len(state['metadata'])} metadata entries on {key}"
