"""Entry point for front ends.

`BranchEngine` wires the gateway, classifier, trash store and batch executor
together. It keeps no state between calls other than its collaborators;
every snapshot is read fresh from git.
"""

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from gitrake.batch import BatchExecutor, ErrorSink
from gitrake.classifier import BranchClassifier, utcnow
from gitrake.errors import BranchNotFound
from gitrake.git import GitGateway
from gitrake.models import (
    LOCAL_NAMESPACE,
    BranchOperation,
    BranchRecord,
    GitConfig,
    OperationResult,
    OperationType,
    TrashEntry,
)
from gitrake.query import BranchFilter, BranchFilterOptions, filter_options_for, search_branches
from gitrake.trash import TrashStore


class BranchEngine:
    """Branch lifecycle and trash operations for one repository."""

    def __init__(
        self,
        gateway: GitGateway,
        config: Optional[GitConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.gateway = gateway
        self.config = config or GitConfig()
        self.classifier = BranchClassifier(gateway, self.config, clock=clock)
        self.trash = TrashStore(gateway, self.config, clock=clock)
        self.executor = BatchExecutor(gateway, self.trash)

    @classmethod
    def open(cls, path: Union[Path, str], config: Optional[GitConfig] = None) -> "BranchEngine":
        """Open the repository at `path`.

        Raises:
            NotAVersionedRepository: If `path` is not a git repository
        """
        return cls(GitGateway(path), config)

    def snapshot(self, include_remote: bool = False) -> list[BranchRecord]:
        current = self.gateway.get_current_branch_name()
        local = self.gateway.list_local_pointers()
        remote = self.gateway.list_remote_pointers() if include_remote else []
        return self.classifier.classify(local, remote, current=current)

    def list_trash(self) -> list[TrashEntry]:
        return self.trash.list_trash()

    @staticmethod
    def apply_filter_preset(name: Union[BranchFilter, str]) -> BranchFilterOptions:
        return filter_options_for(name)

    @staticmethod
    def search(records: Sequence[BranchRecord], query: str) -> Sequence[BranchRecord]:
        return search_branches(records, query)

    def normalize_name(self, raw: str, namespace: str = "heads") -> str:
        """Strip ref prefixes from a user supplied branch name.

        Args:
            raw: Name as typed, e.g. `refs/heads/foo`, `heads/foo` or `rake-trash/foo`
            namespace: `heads` or `trash`, the namespace the name refers to
        """
        name = raw.strip()
        if namespace == "trash":
            full_prefix = self.config.trash_prefix
        else:
            full_prefix = LOCAL_NAMESPACE
        short_prefix = full_prefix[len("refs/") :] if full_prefix.startswith("refs/") else full_prefix
        for prefix in (full_prefix, short_prefix):
            if name.startswith(prefix):
                return name[len(prefix) :].strip()
        return name

    def move_to_trash(self, name: str) -> None:
        self.trash.move_to_trash(self.normalize_name(name, "heads"))

    def restore_from_trash(self, name: str) -> None:
        self.trash.restore_from_trash(self.normalize_name(name, "trash"))

    def execute_batch(
        self,
        operations: Iterable[BranchOperation],
        on_error: Optional[ErrorSink] = None,
    ) -> list[OperationResult]:
        return self.executor.run(operations, on_error=on_error)

    def trash_many(self, records: Iterable[BranchRecord], on_error: Optional[ErrorSink] = None) -> list[OperationResult]:
        """Build and run a trash batch for `records`."""
        return self.execute_batch([BranchOperation(OperationType.TRASH, record) for record in records], on_error)

    def restore_many(self, entries: Iterable[TrashEntry], on_error: Optional[ErrorSink] = None) -> list[OperationResult]:
        """Build and run a restore batch for trash entries."""
        return self.execute_batch([BranchOperation(OperationType.RESTORE, entry.branch) for entry in entries], on_error)

    def cleanup_expired(self) -> list[str]:
        return self.trash.cleanup_expired()

    def list_prunable(self, remote: str = "origin") -> list[str]:
        return self.gateway.list_prunable(remote)

    def branch_log(self, name: str, max_count: int = 10) -> str:
        """Recent history of a live or trashed branch, live first.

        Raises:
            BranchNotFound: If `name` is neither live nor in trash
        """
        live_name = self.normalize_name(name, "heads")
        trash_name = self.normalize_name(name, "trash")
        for ref in (self.trash.live_ref(live_name), self.trash.trash_ref(trash_name)):
            if self.gateway.pointer_exists(ref):
                return self.gateway.get_branch_log(ref, max_count)
        raise BranchNotFound(live_name)
