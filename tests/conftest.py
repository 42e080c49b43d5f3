"""Test configuration and fixtures."""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Generator, Optional

import pytest
from git import Actor, Repo

from gitrake.engine import BranchEngine
from gitrake.log import ROOT_LOGGER
from gitrake.models import GitConfig

AUTHOR = Actor("Test User", "test@example.com")


def git_date(days_ago: int) -> str:
    """Format a date `days_ago` days back in git's internal format."""
    moment = datetime.now(timezone.utc) - timedelta(days=days_ago)
    return f"{int(moment.timestamp())} +0000"


def commit_file(repo: Repo, relative: str, content: str, message: str, days_ago: Optional[int] = None) -> str:
    """Write a file, commit it and return the new commit hash."""
    path = Path(repo.working_tree_dir) / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    repo.index.add([relative])
    dates = {}
    if days_ago is not None:
        dates = {"author_date": git_date(days_ago), "commit_date": git_date(days_ago)}
    commit = repo.index.commit(message, author=AUTHOR, committer=AUTHOR, **dates)
    return commit.hexsha


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Undo handler setup done by CLI invocations so caplog keeps working."""
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def test_env(tmp_path: Path) -> Generator[tuple[Path, Path], None, None]:
    """Create a test environment with local and remote repositories.

    Branches in the local repository:
        main             compare branch, tracks origin/main, one commit ahead of it
        feature/merged   merged into main with a merge commit
        feature/test     one commit ahead of main, one behind
        feature/current  checked out
        feature/gone     upstream deleted on the remote
        feature/old      last commit 200 days ago, no upstream
        master           leftover from `git init`, protected

    Returns:
        Tuple of (local_repo_path, remote_repo_path)
    """
    remote_path = tmp_path / "remote"
    local_path = tmp_path / "local"
    remote_path.mkdir()
    local_path.mkdir()

    Repo.init(remote_path, bare=True)
    local_repo = Repo.init(local_path)
    local_repo.config_writer().set_value("user", "name", AUTHOR.name).release()
    local_repo.config_writer().set_value("user", "email", AUTHOR.email).release()

    commit_file(local_repo, "README.md", "# Test Repository", "Initial commit", days_ago=10)

    # Whatever the default branch is called, end up on main with master kept around
    current = local_repo.active_branch.name
    if current != "main":
        local_repo.git.branch("-m", current, "main")
    if "master" not in local_repo.heads:
        local_repo.create_head("master")
    main_branch = local_repo.heads.main
    main_branch.checkout()

    origin = local_repo.create_remote("origin", url=str(remote_path))
    origin.push("main")
    main_branch.set_tracking_branch(origin.refs.main)

    def create_branch(name: str, content: str, merge: bool = False, push: bool = True, days_ago: int = 1) -> None:
        """Create a branch off main with one commit."""
        main_branch.checkout()
        branch = local_repo.create_head(name)
        branch.checkout()
        commit_file(local_repo, f"{name}.txt", content, f"Add {name}", days_ago=days_ago)
        if push:
            origin.push(name)
            branch.set_tracking_branch(origin.refs[name])
        if merge:
            main_branch.checkout()
            local_repo.git.merge(name, "--no-ff", "-m", f"Merge {name}")
            origin.push("main")

    create_branch("feature/merged", "Merged branch content", merge=True, days_ago=3)
    create_branch("feature/test", "Test branch content", days_ago=2)
    create_branch("feature/gone", "Gone branch content", days_ago=5)
    origin.push(":feature/gone")
    create_branch("feature/old", "Old branch content", push=False, days_ago=200)

    # A branch that only exists on the remote
    create_branch("feature/remote", "Remote branch content", days_ago=4)
    main_branch.checkout()
    local_repo.delete_head("feature/remote", force=True)

    # Move main on so the feature branches are also behind it
    commit_file(local_repo, "CHANGELOG.md", "Unreleased", "Update changelog", days_ago=0)

    create_branch("feature/current", "Current branch content", push=False, days_ago=0)

    yield local_path, remote_path


@pytest.fixture
def local_repo(test_env: tuple[Path, Path]) -> Repo:
    local_path, _ = test_env
    return Repo(local_path)


@pytest.fixture
def engine(test_env: tuple[Path, Path]) -> BranchEngine:
    """Engine with default configuration on the test repository."""
    local_path, _ = test_env
    return BranchEngine.open(local_path, GitConfig())


@pytest.fixture
def aged_branch(local_repo: Repo) -> Callable[[str, int], str]:
    """Factory for branches off main whose only own commit is `days_ago` days old."""

    def create(name: str, days_ago: int) -> str:
        previous = local_repo.active_branch
        local_repo.heads.main.checkout()
        local_repo.create_head(name).checkout()
        sha = commit_file(local_repo, f"{name}.txt", name, f"Add {name}", days_ago=days_ago)
        previous.checkout()
        return sha

    return create
