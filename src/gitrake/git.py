"""Git repository operations.

Every public method of `GitGateway` maps to a single git plumbing call. The
gateway never composes calls into multi-step sequences; ordering and recovery
across steps belong to the callers (see `gitrake.trash`).
"""

import re
from pathlib import Path
from typing import Optional, Union

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo
from git.exc import BadName

from gitrake.errors import GatewayError, GatewayErrorReason, NotAVersionedRepository
from gitrake.log import get_logger
from gitrake.models import LOCAL_NAMESPACE, REMOTE_NAMESPACE, CommitInfo, Pointer

logger = get_logger(__name__)

_POINTER_FIELDS = (
    "%(refname)",
    "%(objectname)",
    "%(upstream:short)",
    "%(upstream:track)",
    "%(upstream:trackshort)",
    "%(symref)",
)
POINTER_FORMAT = "%09".join(_POINTER_FIELDS)

_PRUNE_LINE_RE = re.compile(r"\[(?:would prune|pruned)\]\s+(?P<ref>\S+)")


def classify_error(err: GitCommandError) -> GatewayErrorReason:
    """Map git's stderr onto a gateway error reason."""
    stderr = str(err.stderr or "").lower()
    if "not a git repository" in stderr:
        return GatewayErrorReason.NOT_A_REPOSITORY
    if "permission denied" in stderr:
        return GatewayErrorReason.PERMISSION_DENIED
    # "already exists" is reported as a lock failure too, so test it first
    if "already exists" in stderr:
        return GatewayErrorReason.REF_EXISTS
    if "cannot lock ref" in stderr or ("unable to create" in stderr and ".lock" in stderr):
        return GatewayErrorReason.REF_LOCK_CONTENTION
    if any(marker in stderr for marker in ("not a valid", "unknown revision", "bad revision", "does not exist")):
        return GatewayErrorReason.UNKNOWN_REF
    return GatewayErrorReason.COMMAND_FAILED


def _gateway_error(action: str, err: GitCommandError) -> GatewayError:
    return GatewayError(f"Failed to {action}: {str(err.stderr or err).strip()}", classify_error(err))


class GitGateway:
    """Thin adapter over git plumbing commands."""

    def __init__(self, path: Union[Path, str]) -> None:
        """Open the repository at `path`.

        Raises:
            NotAVersionedRepository: If `path` is not inside a non-bare git repository
        """
        try:
            self.repo: Repo = Repo(path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as err:
            raise NotAVersionedRepository(f"Not a git repository: {path}") from err
        except (GitCommandError, ValueError) as err:
            raise NotAVersionedRepository(f"Failed to open repository: {err}") from err
        if self.repo.bare:
            raise NotAVersionedRepository("Cannot operate on bare repository")

    def get_current_branch_name(self) -> str:
        """Get current branch name, or an empty string on a detached HEAD."""
        try:
            return self.repo.active_branch.name
        except TypeError:
            return ""
        except (GitCommandError, ValueError) as err:
            raise GatewayError(f"Failed to get current branch: {err}") from err

    def list_pointers(self, namespace: str) -> list[Pointer]:
        """List every ref under `namespace`, names relative to it."""
        prefix = namespace.rstrip("/") + "/"
        try:
            output = self.repo.git.for_each_ref(f"--format={POINTER_FORMAT}", prefix)
        except GitCommandError as err:
            raise _gateway_error(f"list refs under {prefix}", err) from err

        pointers = []
        for line in output.splitlines():
            if not line.strip():
                continue
            fields = line.split("\t")
            fields += [""] * (len(_POINTER_FIELDS) - len(fields))
            refname, target, upstream, track, trackshort, symref = fields[: len(_POINTER_FIELDS)]
            if symref:
                # origin/HEAD and friends are aliases, not branches
                continue
            pointers.append(
                Pointer(
                    name=refname[len(prefix) :],
                    ref=refname,
                    target=target,
                    upstream=upstream,
                    upstream_track=track,
                    upstream_trackshort=trackshort,
                )
            )
        return pointers

    def list_local_pointers(self) -> list[Pointer]:
        return self.list_pointers(LOCAL_NAMESPACE)

    def list_remote_pointers(self) -> list[Pointer]:
        return [p for p in self.list_pointers(REMOTE_NAMESPACE) if not p.name.endswith("/HEAD")]

    def get_latest_commit(self, ref: str) -> Optional[CommitInfo]:
        """Read the commit `ref` points at, or None if it does not resolve."""
        try:
            commit = self.repo.commit(ref)
            return CommitInfo(
                hash=commit.hexsha,
                date=commit.committed_datetime,
                message=str(commit.summary),
                author=commit.author.name or None,
            )
        except (BadName, ValueError, GitCommandError):
            logger.debug("No commit found for %s", ref)
            return None

    def resolve_pointer(self, ref: str) -> Optional[str]:
        """Get the object id a ref points at, or None if it does not exist."""
        try:
            return self.repo.git.rev_parse("--verify", "--quiet", ref).strip() or None
        except GitCommandError as err:
            if err.status == 1:
                return None
            raise _gateway_error(f"resolve {ref}", err) from err

    def pointer_exists(self, ref: str) -> bool:
        try:
            self.repo.git.show_ref("--verify", "--quiet", ref)
            return True
        except GitCommandError as err:
            if err.status == 1:
                return False
            raise _gateway_error(f"check {ref}", err) from err

    def is_ancestor_merged(self, candidate: str, compare_branch: str) -> bool:
        """Check whether candidate's tip is reachable from compare_branch."""
        try:
            self.repo.git.merge_base("--is-ancestor", candidate, compare_branch)
            return True
        except GitCommandError as err:
            # Exit status 1 is git's plain "no"; anything else is a real failure
            if err.status == 1:
                return False
            raise _gateway_error(f"check whether {candidate} is merged into {compare_branch}", err) from err

    def ahead_behind_count(self, base: str, branch: str) -> Optional[tuple[int, int]]:
        """Count commits between two tips.

        Returns:
            (ahead, behind) where ahead is the number of commits reachable from
            `branch` but not `base`, and behind the reverse. None if either
            side cannot be resolved.
        """
        try:
            output = self.repo.git.rev_list("--left-right", "--count", f"{base}...{branch}")
        except GitCommandError as err:
            logger.debug("Cannot count ahead/behind for %s against %s: %s", branch, base, err)
            return None
        counts = output.split()
        if len(counts) != 2:
            return None
        behind, ahead = (int(count) for count in counts)
        return ahead, behind

    def create_pointer(self, ref: str, target: str) -> None:
        """Create `ref` at `target`; fails if `ref` already exists."""
        # An all-zero old value makes update-ref refuse to overwrite
        zero = "0" * len(target) if len(target) in (40, 64) else "0" * 40
        try:
            self.repo.git.update_ref("-m", "git-rake: create", ref, target, zero)
        except GitCommandError as err:
            raise _gateway_error(f"create {ref}", err) from err
        logger.debug("Created %s at %s", ref, target)

    def update_pointer(self, ref: str, target: str, old_target: Optional[str] = None) -> None:
        """Point `ref` at `target`, only if it still points at `old_target` when given."""
        args = [ref, target] + ([old_target] if old_target else [])
        try:
            self.repo.git.update_ref("-m", "git-rake: update", *args)
        except GitCommandError as err:
            raise _gateway_error(f"update {ref}", err) from err
        logger.debug("Updated %s to %s", ref, target)

    def delete_pointer(self, ref: str) -> None:
        try:
            self.repo.git.update_ref("-d", ref)
        except GitCommandError as err:
            raise _gateway_error(f"delete {ref}", err) from err
        logger.debug("Deleted %s", ref)

    def get_branch_log(self, ref: str, max_count: int = 10) -> str:
        """Render the recent history of `ref` as a one-line-per-commit graph."""
        try:
            return self.repo.git.log("--oneline", "--graph", "--decorate", f"--max-count={max_count}", ref, "--")
        except GitCommandError as err:
            raise _gateway_error(f"read log of {ref}", err) from err

    def detect_default_branch(self) -> Optional[str]:
        """Find the branch merges are compared against.

        Prefers the target of origin/HEAD when it exists locally, then main,
        then master.
        """
        try:
            ref = self.repo.git.symbolic_ref("--quiet", f"{REMOTE_NAMESPACE}origin/HEAD").strip()
            candidate = ref[len(f"{REMOTE_NAMESPACE}origin/") :]
            if candidate and self.pointer_exists(f"{LOCAL_NAMESPACE}{candidate}"):
                return candidate
        except GitCommandError:
            pass
        for fallback in ("main", "master"):
            if self.pointer_exists(f"{LOCAL_NAMESPACE}{fallback}"):
                return fallback
        return None

    def _prune(self, remote: str, dry_run: bool) -> list[str]:
        args = ["prune", remote]
        if dry_run:
            args.append("--dry-run")
        try:
            output = self.repo.git.remote(*args)
        except GitCommandError as err:
            raise _gateway_error(f"prune remote {remote}", err) from err
        return [match.group("ref") for match in _PRUNE_LINE_RE.finditer(output)]

    def list_prunable(self, remote: str = "origin") -> list[str]:
        """Remote-tracking branches that no longer exist on `remote`."""
        return self._prune(remote, dry_run=True)

    def prune_remote(self, remote: str = "origin") -> list[str]:
        """Delete remote-tracking branches that no longer exist on `remote`."""
        pruned = self._prune(remote, dry_run=False)
        logger.info("Pruned %d remote-tracking branch(es) from %s", len(pruned), remote)
        return pruned
