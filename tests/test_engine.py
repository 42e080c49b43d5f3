"""Tests for the engine boundary."""

from pathlib import Path

import pytest
from git import Repo

from gitrake.engine import BranchEngine
from gitrake.errors import BranchNotFound, NotAVersionedRepository
from gitrake.models import GitConfig
from gitrake.query import BranchFilterOptions


def test_open_outside_repository(tmp_path: Path) -> None:
    """Test that a non-repository is fatal."""
    with pytest.raises(NotAVersionedRepository):
        BranchEngine.open(tmp_path)


def test_snapshot_is_never_cached(engine: BranchEngine, local_repo: Repo) -> None:
    """Test that each snapshot reflects the current refs."""
    before = {record.name for record in engine.snapshot()}
    local_repo.create_head("feature/new")
    after = {record.name for record in engine.snapshot()}
    assert after - before == {"feature/new"}

    engine.move_to_trash("feature/new")
    assert "feature/new" not in {record.name for record in engine.snapshot()}


def test_snapshot_from_subdirectory(test_env: tuple[Path, Path]) -> None:
    """Test that the repository is found from inside the work tree."""
    local_path, _ = test_env
    engine = BranchEngine.open(local_path / "feature")
    assert any(record.is_current for record in engine.snapshot())


def test_apply_filter_preset() -> None:
    """Test the preset lookup exposed on the engine."""
    assert BranchEngine.apply_filter_preset("merged") == BranchFilterOptions(show_unmerged=False)


def test_search(engine: BranchEngine) -> None:
    """Test the search exposed on the engine."""
    records = engine.snapshot()
    assert BranchEngine.search(records, "") is records
    assert {record.name for record in engine.search(records, "GONE")} == {"feature/gone"}


@pytest.mark.parametrize(
    "raw, namespace, expected",
    [
        ("feature/x", "heads", "feature/x"),
        ("refs/heads/feature/x", "heads", "feature/x"),
        ("heads/feature/x", "heads", "feature/x"),
        ("  feature/x  ", "heads", "feature/x"),
        ("refs/rake-trash/feature/x", "trash", "feature/x"),
        ("rake-trash/feature/x", "trash", "feature/x"),
        ("feature/x", "trash", "feature/x"),
    ],
)
def test_normalize_name(engine: BranchEngine, raw: str, namespace: str, expected: str) -> None:
    """Test stripping of namespace prefixes from typed names."""
    assert engine.normalize_name(raw, namespace) == expected


def test_trash_and_restore_accept_prefixed_names(engine: BranchEngine, local_repo: Repo) -> None:
    """Test that the engine normalizes names before acting."""
    sha = local_repo.heads["feature/test"].commit.hexsha
    engine.move_to_trash("refs/heads/feature/test")
    engine.restore_from_trash("rake-trash/feature/test")
    assert local_repo.heads["feature/test"].commit.hexsha == sha


def test_cleanup_expired_on_empty_trash(engine: BranchEngine) -> None:
    """Test that sweeping an empty trash is a no-op."""
    assert engine.cleanup_expired() == []
    assert engine.cleanup_expired() == []


def test_default_config(engine: BranchEngine) -> None:
    """Test the defaults an engine is created with."""
    assert engine.config == GitConfig()
    assert engine.config.stale_days_threshold == 30
    assert engine.config.trash_ttl_days == 90
    assert engine.config.trash_prefix == "refs/rake-trash/"


def test_branch_log_live_and_trashed(engine: BranchEngine) -> None:
    """Test previewing history of live and trashed branches."""
    assert "Add feature/test" in engine.branch_log("feature/test")
    engine.move_to_trash("feature/old")
    assert "Add feature/old" in engine.branch_log("feature/old", max_count=1)
    assert "Add feature/old" in engine.branch_log("rake-trash/feature/old")
    with pytest.raises(BranchNotFound):
        engine.branch_log("nonexistent")
