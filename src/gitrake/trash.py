"""Soft delete of branches into a dedicated ref namespace.

A trashed branch `feature/x` lives at `<trash namespace>/feature/x`, pointing
at the commit the branch pointed at. Moving and restoring are two-step
sequences that always create the new ref before removing the old one, so a
failure halfway leaves the branch in two places rather than nowhere.
"""

from collections.abc import Callable
from datetime import datetime, timedelta

from gitrake.classifier import BranchClassifier, utcnow
from gitrake.errors import (
    BranchExists,
    BranchNotFound,
    CurrentBranchProtected,
    ExcludedBranch,
    GatewayError,
    NotFoundInTrash,
    PartialTrashAnomaly,
)
from gitrake.git import GitGateway
from gitrake.log import get_logger
from gitrake.models import LOCAL_NAMESPACE, BranchState, GitConfig, TrashEntry

logger = get_logger(__name__)


class TrashStore:
    """Owner of the trash namespace."""

    def __init__(
        self,
        gateway: GitGateway,
        config: GitConfig,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.gateway = gateway
        self.config = config
        self.clock = clock

    def live_ref(self, name: str) -> str:
        return f"{LOCAL_NAMESPACE}{name}"

    def trash_ref(self, name: str) -> str:
        return f"{self.config.trash_prefix}{name}"

    def state_of(self, name: str) -> BranchState:
        """Locate a branch name across the live and trash namespaces.

        Both refs existing at the same commit is what a failed move or restore
        leaves behind. A live branch next to an older trash entry at a
        different commit is simply live; trashing it replaces that entry.
        """
        live = self.gateway.resolve_pointer(self.live_ref(name))
        trashed = self.gateway.resolve_pointer(self.trash_ref(name))
        if live and trashed:
            return BranchState.DUPLICATED if live == trashed else BranchState.LIVE
        if live:
            return BranchState.LIVE
        if trashed:
            return BranchState.IN_TRASH
        return BranchState.ABSENT

    def _duplicated(self, name: str) -> PartialTrashAnomaly:
        return PartialTrashAnomaly(name, self.live_ref(name), self.trash_ref(name))

    def move_to_trash(self, name: str) -> None:
        """Move a live branch into the trash.

        An older trash entry with the same name is replaced.

        Raises:
            ExcludedBranch: If `name` matches a protected pattern
            CurrentBranchProtected: If `name` is checked out
            BranchNotFound: If there is no live branch called `name`
            PartialTrashAnomaly: If the branch is, or ends up, both live and trashed
            GatewayError: If writing the trash ref fails; nothing was changed
        """
        if self.config.is_excluded(name):
            raise ExcludedBranch(name)
        if name == self.gateway.get_current_branch_name():
            raise CurrentBranchProtected(name)

        live_ref, trash_ref = self.live_ref(name), self.trash_ref(name)
        target = self.gateway.resolve_pointer(live_ref)
        if target is None:
            raise BranchNotFound(name)
        previous = self.gateway.resolve_pointer(trash_ref)
        if previous == target:
            raise self._duplicated(name)

        if previous is None:
            self.gateway.create_pointer(trash_ref, target)
        else:
            logger.info("Replacing older trash entry %s (was %s)", trash_ref, previous[:7])
            self.gateway.update_pointer(trash_ref, target, old_target=previous)
        try:
            self.gateway.delete_pointer(live_ref)
        except GatewayError as err:
            anomaly = self._duplicated(name)
            logger.error("%s (delete of %s failed: %s)", anomaly, live_ref, err)
            raise anomaly from err
        logger.info("Moved %s to trash at %s", name, trash_ref)

    def restore_from_trash(self, name: str) -> None:
        """Move a trashed branch back to the live namespace.

        Raises:
            NotFoundInTrash: If there is no trash entry for `name`
            BranchExists: If a live branch with that name points at another commit
            PartialTrashAnomaly: If the branch is, or ends up, both live and trashed
            GatewayError: If recreating the live ref fails; nothing was changed
        """
        live_ref, trash_ref = self.live_ref(name), self.trash_ref(name)
        target = self.gateway.resolve_pointer(trash_ref)
        if target is None:
            raise NotFoundInTrash(name)
        current = self.gateway.resolve_pointer(live_ref)
        if current == target:
            raise self._duplicated(name)
        if current is not None:
            raise BranchExists(name)

        self.gateway.create_pointer(live_ref, target)
        try:
            self.gateway.delete_pointer(trash_ref)
        except GatewayError as err:
            anomaly = self._duplicated(name)
            logger.error("%s (delete of %s failed: %s)", anomaly, trash_ref, err)
            raise anomaly from err
        logger.info("Restored %s from trash", name)

    def list_trash(self) -> list[TrashEntry]:
        """Enumerate trashed branches.

        The deletion date is the commit date of the trashed ref, the closest
        record git keeps of when the branch was set aside.
        """
        namespace = self.config.trash_prefix
        classifier = BranchClassifier(self.gateway, self.config, clock=self.clock)
        now = self.clock()
        entries = []
        for pointer in self.gateway.list_pointers(namespace):
            record = classifier.build_record(pointer, is_local=True, current="", now=now)
            if record is None:
                continue
            entries.append(TrashEntry(branch=record, deletion_date=record.last_commit_date))
        return entries

    def is_expired(self, entry: TrashEntry) -> bool:
        return self.clock() - entry.deletion_date > timedelta(days=self.config.trash_ttl_days)

    def cleanup_expired(self) -> list[str]:
        """Permanently delete trash entries older than the TTL.

        Best effort: a failing entry is logged and skipped.

        Returns:
            Names of the entries that were deleted
        """
        deleted = []
        for entry in self.list_trash():
            if not self.is_expired(entry):
                continue
            try:
                self.gateway.delete_pointer(self.trash_ref(entry.name))
            except GatewayError as err:
                logger.warning("Could not remove expired trash entry %s: %s", entry.name, err)
                continue
            logger.info("Removed expired trash entry %s", entry.name)
            deleted.append(entry.name)
        return deleted
