"""Dataclasses and enums shared across modules."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from fnmatch import fnmatch
from typing import Optional

DEFAULT_EXCLUDED_BRANCHES = ("main", "master", "trunk", "develop", "release", "staging")
DEFAULT_TRASH_NAMESPACE = "refs/rake-trash"

LOCAL_NAMESPACE = "refs/heads/"
REMOTE_NAMESPACE = "refs/remotes/"


class UpstreamTrack(Enum):
    """Relationship of a local branch to its upstream."""

    AHEAD = "ahead"
    BEHIND = "behind"
    DIVERGED = "diverged"
    IN_SYNC = "in sync"
    GONE = "gone"
    NONE = ""


class BranchState(Enum):
    """Where a branch name currently lives."""

    LIVE = "live"
    IN_TRASH = "in-trash"
    ABSENT = "absent"
    DUPLICATED = "duplicated"  # live and in trash at once, only after a failed move/restore


class OperationType(Enum):
    """Kinds of batch operation."""

    TRASH = "trash"
    RESTORE = "restore"
    PRUNE = "prune"


@dataclass(frozen=True)
class GitConfig:
    """Per-session engine configuration."""

    stale_days_threshold: int = 30
    trash_ttl_days: int = 90
    merge_compare_branch: Optional[str] = None
    excluded_branches: tuple[str, ...] = DEFAULT_EXCLUDED_BRANCHES
    trash_namespace: str = DEFAULT_TRASH_NAMESPACE
    auto_cleanup_trash: bool = True

    @property
    def trash_prefix(self) -> str:
        return self.trash_namespace.rstrip("/") + "/"

    def is_excluded(self, name: str) -> bool:
        """Check a branch name against the protected patterns."""
        return any(fnmatch(name, pattern.strip()) for pattern in self.excluded_branches)


@dataclass(frozen=True)
class Pointer:
    """A ref as listed by the gateway, before any commit lookup."""

    name: str
    ref: str
    target: str
    upstream: str = ""
    upstream_track: str = ""
    upstream_trackshort: str = ""


@dataclass(frozen=True)
class CommitInfo:
    """Metadata of the commit a ref points at."""

    hash: str
    date: datetime
    message: str
    author: Optional[str] = None


@dataclass(frozen=True)
class BranchRecord:
    """Derived state of a single branch at snapshot time."""

    name: str
    ref: str
    is_current: bool
    is_local: bool
    last_commit_hash: str
    last_commit_date: datetime
    last_commit_message: str
    last_commit_author: Optional[str] = None
    is_merged: bool = False
    is_stale: bool = False
    stale_days: int = 0
    upstream_branch: Optional[str] = None
    upstream_track: UpstreamTrack = UpstreamTrack.NONE
    ahead_by: Optional[int] = None
    behind_by: Optional[int] = None
    is_excluded: bool = False
    remote_name: Optional[str] = None

    @property
    def is_remote(self) -> bool:
        return not self.is_local


@dataclass(frozen=True)
class TrashEntry:
    """A trashed branch and the time it entered the trash."""

    branch: BranchRecord
    deletion_date: datetime

    @property
    def name(self) -> str:
        return self.branch.name


@dataclass(frozen=True)
class BranchOperation:
    """A single step of a batch."""

    type: OperationType
    branch: BranchRecord


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one batch operation."""

    operation: BranchOperation
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None
