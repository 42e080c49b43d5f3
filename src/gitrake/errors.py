"""Error hierarchy for git-rake."""

from enum import Enum


class RakeError(Exception):
    """Base error for all git-rake operations."""


class NotAVersionedRepository(RakeError):
    """Raised when the working directory is not a usable git repository."""


class GatewayErrorReason(Enum):
    """Why a git plumbing call failed."""

    NOT_A_REPOSITORY = "not-a-repository"
    PERMISSION_DENIED = "permission-denied"
    REF_LOCK_CONTENTION = "ref-lock-contention"
    UNKNOWN_REF = "unknown-ref"
    REF_EXISTS = "ref-exists"
    COMMAND_FAILED = "command-failed"


class GatewayError(RakeError):
    """Git operation error."""

    def __init__(self, message: str, reason: GatewayErrorReason = GatewayErrorReason.COMMAND_FAILED) -> None:
        """Initialize error.

        Args:
            message: Error message
            reason: Classified cause of the failure
        """
        super().__init__(message)
        self.reason = reason


class BranchNotFound(RakeError):
    """Raised when a live branch is expected but does not exist."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Branch not found: {name}")


class NotFoundInTrash(RakeError):
    """Raised when restoring a name that has no trash entry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Branch {name} not found in trash")


class ExcludedBranch(RakeError):
    """Raised when an operation targets a protected branch."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Branch {name} is protected and cannot be trashed")


class CurrentBranchProtected(RakeError):
    """Raised when an operation targets the checked-out branch."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Branch {name} is currently checked out")


class PartialTrashAnomaly(RakeError):
    """A branch ended up both live and in trash.

    Never repaired automatically. The user has to inspect both refs and
    remove the one they do not want.
    """

    def __init__(self, name: str, live_ref: str, trash_ref: str) -> None:
        self.name = name
        self.live_ref = live_ref
        self.trash_ref = trash_ref
        super().__init__(
            f"Branch {name} may exist in two places ({live_ref} and {trash_ref}), please verify manually"
        )


class BranchExists(RakeError):
    """Raised when restoring over a live branch that points elsewhere."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Branch {name} already exists; rename or trash it before restoring")


class UnsupportedOperation(RakeError):
    """Raised for a batch operation type the executor does not know."""
