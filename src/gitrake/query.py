"""Filtering, searching and sorting of branch snapshots.

Nothing in here talks to git. Callers hold the snapshot, the query and the
selection themselves and pass them in.
"""

from collections.abc import Collection, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from gitrake.models import BranchRecord


@dataclass(frozen=True)
class BranchFilterOptions:
    """Independent gates a record must pass to be shown."""

    show_merged: bool = True
    show_unmerged: bool = True
    show_stale: bool = True
    show_local: bool = True
    show_remote: bool = False


class BranchFilter(Enum):
    """Named filter presets."""

    ALL = "all"
    MERGED = "merged"
    STALE = "stale"
    UNMERGED = "unmerged"
    SELECTED = "selected"


_PRESETS = {
    BranchFilter.ALL: BranchFilterOptions(),
    BranchFilter.MERGED: BranchFilterOptions(show_unmerged=False),
    # Same gates as ALL: staleness is shown, not filtered on
    BranchFilter.STALE: BranchFilterOptions(),
    BranchFilter.UNMERGED: BranchFilterOptions(show_merged=False),
}


def parse_filter(preset: Union[BranchFilter, str]) -> BranchFilter:
    """Resolve a preset name; unknown names mean `all`."""
    try:
        return BranchFilter(preset)
    except ValueError:
        return BranchFilter.ALL


def filter_options_for(preset: Union[BranchFilter, str]) -> BranchFilterOptions:
    """Look up the gates of a preset."""
    return _PRESETS.get(parse_filter(preset), _PRESETS[BranchFilter.ALL])


def passes(record: BranchRecord, options: BranchFilterOptions) -> bool:
    if record.is_local and not options.show_local:
        return False
    if record.is_remote and not options.show_remote:
        return False
    if record.is_merged and not options.show_merged:
        return False
    if not record.is_merged and not options.show_unmerged:
        return False
    if record.is_stale and not options.show_stale:
        return False
    return True


def filter_branches(records: Sequence[BranchRecord], options: BranchFilterOptions) -> list[BranchRecord]:
    return [record for record in records if passes(record, options)]


def search_branches(records: Sequence[BranchRecord], query: str) -> Sequence[BranchRecord]:
    """Case-insensitive substring match on branch names.

    A blank query matches everything and hands back `records` itself.
    """
    needle = query.strip().casefold()
    if not needle:
        return records
    return [record for record in records if needle in record.name.casefold()]


def sort_branches(records: Sequence[BranchRecord]) -> list[BranchRecord]:
    """Current branch first, then most recently committed, then by name."""
    by_name = sorted(records, key=lambda record: record.name)
    by_date = sorted(by_name, key=lambda record: record.last_commit_date, reverse=True)
    return sorted(by_date, key=lambda record: not record.is_current)


def compute_visible_branches(
    records: Sequence[BranchRecord],
    query: str = "",
    preset: Union[BranchFilter, str] = BranchFilter.ALL,
    selected: Optional[Collection[str]] = None,
) -> list[BranchRecord]:
    """Apply a preset, then the search query, then sort."""
    if parse_filter(preset) is BranchFilter.SELECTED:
        visible = [record for record in records if selected and record.name in selected]
    else:
        visible = filter_branches(records, filter_options_for(preset))
    return sort_branches(search_branches(visible, query))


def branch_status(record: BranchRecord) -> str:
    """Short label for a record: merged wins over stale."""
    if record.is_merged:
        return "merged"
    if record.is_stale:
        return "stale"
    return "unmerged"


def compact_age(date: datetime, now: datetime) -> str:
    """Render the time since `date` as e.g. `3h ago`."""
    seconds = (now - date).total_seconds()
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)
    if minutes < 5:
        return "now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    if days < 30:
        return f"{days // 7}w ago"
    if days < 365:
        return f"{days // 30}mo ago"
    return f"{days // 365}y ago"
