"""Derive branch records from raw refs."""

from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from gitrake.errors import GatewayError
from gitrake.git import GitGateway
from gitrake.log import get_logger
from gitrake.models import LOCAL_NAMESPACE, BranchRecord, GitConfig, Pointer, UpstreamTrack

logger = get_logger(__name__)

_TRACKSHORT = {
    ">": UpstreamTrack.AHEAD,
    "<": UpstreamTrack.BEHIND,
    "<>": UpstreamTrack.DIVERGED,
    "=": UpstreamTrack.IN_SYNC,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def days_between(now: datetime, then: datetime) -> int:
    """Whole days elapsed from `then` to `now`, never negative."""
    return max(0, (now - then).days)


def parse_upstream_track(pointer: Pointer) -> UpstreamTrack:
    """Translate git's upstream track markers."""
    if not pointer.upstream:
        return UpstreamTrack.NONE
    if pointer.upstream_track.strip() == "[gone]":
        return UpstreamTrack.GONE
    return _TRACKSHORT.get(pointer.upstream_trackshort.strip(), UpstreamTrack.NONE)


class BranchClassifier:
    """Turn ref listings into enriched `BranchRecord`s."""

    def __init__(
        self,
        gateway: GitGateway,
        config: GitConfig,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.gateway = gateway
        self.config = config
        self.clock = clock

    def compare_branch(self) -> Optional[str]:
        """The branch merged-ness and ahead/behind are measured against."""
        return self.config.merge_compare_branch or self.gateway.detect_default_branch()

    def compare_revision(self, compare: str) -> str:
        """Resolve a compare branch name to the revision git is given.

        A local branch wins; anything else, such as `origin/main` or a tag,
        is passed through as typed.
        """
        local_ref = f"{LOCAL_NAMESPACE}{compare}"
        if self.gateway.pointer_exists(local_ref):
            return local_ref
        return compare

    def classify(
        self,
        local: Iterable[Pointer],
        remote: Iterable[Pointer] = (),
        current: str = "",
    ) -> list[BranchRecord]:
        """Build records for local then remote pointers, in listing order.

        Pointers whose commit cannot be read are dropped.
        """
        now = self.clock()
        compare = self.compare_branch()
        compare_rev = self.compare_revision(compare) if compare else None
        records = []
        for pointer in local:
            record = self.build_record(pointer, is_local=True, current=current, now=now)
            if record is None:
                continue
            if not record.is_current and compare_rev:
                record = self._enrich(record, compare_rev)
            records.append(record)
        for pointer in remote:
            record = self.build_record(pointer, is_local=False, current=current, now=now)
            if record is not None:
                records.append(record)
        return records

    def build_record(self, pointer: Pointer, is_local: bool, current: str, now: datetime) -> Optional[BranchRecord]:
        """Describe one pointer without merge or ahead/behind state."""
        commit = self.gateway.get_latest_commit(pointer.ref)
        if commit is None:
            logger.debug("Skipping %s: no commit", pointer.ref)
            return None

        stale_days = days_between(now, commit.date)
        if is_local:
            remote_name = None
            protected_name = pointer.name
        else:
            remote_name, _, protected_name = pointer.name.partition("/")

        return BranchRecord(
            name=pointer.name,
            ref=pointer.ref,
            is_current=is_local and bool(current) and pointer.name == current,
            is_local=is_local,
            last_commit_hash=commit.hash,
            last_commit_date=commit.date,
            last_commit_message=commit.message,
            last_commit_author=commit.author,
            is_stale=stale_days > self.config.stale_days_threshold,
            stale_days=stale_days,
            upstream_branch=(pointer.upstream or None) if is_local else None,
            upstream_track=parse_upstream_track(pointer) if is_local else UpstreamTrack.NONE,
            is_excluded=self.config.is_excluded(protected_name),
            remote_name=remote_name,
        )

    def _enrich(self, record: BranchRecord, compare_ref: str) -> BranchRecord:
        """Add merged and ahead/behind state; failures leave the defaults."""
        try:
            is_merged = self.gateway.is_ancestor_merged(record.ref, compare_ref)
        except GatewayError as err:
            logger.warning("Could not determine merge state of %s: %s", record.name, err)
            return record

        counts = self.gateway.ahead_behind_count(compare_ref, record.ref)
        ahead_by, behind_by = counts if counts is not None else (None, None)
        return replace(record, is_merged=is_merged, ahead_by=ahead_by, behind_by=behind_by)
