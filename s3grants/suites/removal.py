"""Removal suites: delete and move (copy + delete)."""

import logging

from s3grants.errors import VerificationError
from s3grants.models import Permission
from s3grants.suites.base import OperationSuite

logger = logging.getLogger(__name__)


class DeleteSuite(OperationSuite):
    name = "delete"
    title = "Delete File"
    short_name = "Delete"
    requires = frozenset({Permission.DELETE})

    def prepare(self, case, ctx):
        state = super().prepare(case, ctx)
        state["key"] = state["prefix"] + "test-file.txt"
        ctx.admin.upload_file(state["key"], b"delete test content", "text/plain", {"test-case": case.case_id})
        return state

    def execute(self, case, ctx, state):
        ctx.storage.delete_object(state["key"])
        if ctx.admin.object_exists(state["key"]):
            raise VerificationError(f"{state['key']} still exists after delete")
        return f"Deleted {state['key']}"

    def verify_denied(self, case, ctx, state):
        if not ctx.admin.object_exists(state["key"]):
            raise VerificationError(f"{state['key']} is gone although the delete was denied")


class MoveSuite(OperationSuite):
    """Move is copy + delete; the copy reads the source object."""

    name = "move"
    title = "Move File"
    short_name = "Move"
    requires = frozenset({Permission.READ, Permission.WRITE, Permission.DELETE})

    CONTENT = b"Test content for move operation"

    def prepare(self, case, ctx):
        state = super().prepare(case, ctx)
        state["source"] = state["prefix"] + "test-file.txt"
        state["destination"] = state["prefix"] + "moved-test-file.txt"
        ctx.admin.upload_file(state["source"], self.CONTENT, "text/plain")
        return state

    def execute(self, case, ctx, state):
        source, destination = state["source"], state["destination"]
        ctx.storage.move_object(source, destination)

        if not ctx.admin.object_exists(destination):
            raise VerificationError(f"{destination} not found after move")
        if ctx.admin.get_object_content(destination) != self.CONTENT:
            raise VerificationError(f"{destination} content differs from the moved object")
        if ctx.admin.object_exists(source):
            raise VerificationError(f"{source} still exists after move")
        return f"Moved {source} to {destination}"

    def verify_denied(self, case, ctx, state):
        if not ctx.admin.object_exists(state["source"]):
            raise VerificationError(f"{state['source']} is gone although the move was denied")
        if ctx.admin.object_exists(state["destination"]):
            # Copy went through but the delete of the source was refused
            logger.warning("Move of %s was denied after copying to %s", state["source"], state["destination"])
            return f"copy {state['destination']} was left behind"
        return None
