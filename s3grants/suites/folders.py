"""Folder suites: prefix-emulated folder creation and recursive deletion."""

from s3grants.errors import VerificationError
from s3grants.models import Permission
from s3grants.storage import folder_key
from s3grants.suites.base import OperationSuite


class CreateFolderSuite(OperationSuite):
    name = "create-folder"
    title = "Create Folder"
    short_name = "MkDir"
    requires = frozenset({Permission.WRITE})

    def prepare(self, case, ctx):
        state = super().prepare(case, ctx)
        state["folder"] = state["prefix"] + "test-folder"
        return state

    def execute(self, case, ctx, state):
        key = ctx.storage.create_folder(state["folder"])
        if not ctx.admin.folder_exists(key):
            raise VerificationError(f"Folder {key} not found after creation")
        return f"Created folder {key}"

    def verify_denied(self, case, ctx, state):
        key = folder_key(state["folder"])
        if ctx.admin.object_exists(key):
            raise VerificationError(f"Folder {key} exists although creation was denied")


class DeleteFolderSuite(OperationSuite):
    """Deleting a folder lists its prefix first, so it needs LIST as well."""

    name = "delete-folder"
    title = "Delete Folder"
    short_name = "RmDir"
    requires = frozenset({Permission.LIST, Permission.DELETE})

    FILES = ("file-1.txt", "file-2.txt")

    def prepare(self, case, ctx):
        state = super().prepare(case, ctx)
        folder = ctx.admin.create_folder(state["prefix"] + "test-folder")
        state["folder"] = folder
        state["files"] = [folder + name for name in self.FILES]
        for key in state["files"]:
            ctx.admin.upload_file(key, f"content of {key}", "text/plain")
        return state

    def execute(self, case, ctx, state):
        deleted = ctx.storage.delete_folder(state["folder"])
        if ctx.admin.folder_exists(state["folder"]):
            raise VerificationError(f"Folder {state['folder']} still has objects after deletion")
        return f"Deleted folder {state['folder']} ({deleted} objects)"

    def verify_denied(self, case, ctx, state):
        missing = [key for key in state["files"] if not ctx.admin.object_exists(key)]
        if missing:
            raise VerificationError(f"Objects removed although folder deletion was denied: {missing}")
