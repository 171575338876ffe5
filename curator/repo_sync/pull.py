"""Fast-forward pull of an existing local repository."""

import logging
from dataclasses import dataclass
from typing import Optional

from git import GitCommandError

from .credentials import GitCredentials
from .error_strategies import categorize_git_error
from .repository_info import LocalRepositoryHandle
from .utils import SyncStatus, short_hash


@dataclass
class PullResult:
    """Result of pulling one repository or submodule."""
    status: SyncStatus
    message: str
    old_commit: Optional[str] = None
    new_commit: Optional[str] = None
    error_code: Optional[str] = None
    failure_kind: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status != SyncStatus.FAILED


def _failed(message: str, error_code: str, failure_kind: Optional[str] = None) -> PullResult:
    return PullResult(status=SyncStatus.FAILED, message=message,
                      error_code=error_code, failure_kind=failure_kind)


def pull_repository(handle: LocalRepositoryHandle, credentials: GitCredentials,
                    remote_name: str = "origin") -> PullResult:
    """
    Fast-forward the current branch from its upstream.

    The branch HEAD points to is pulled from its configured upstream, or
    from the same-named branch on ``remote_name`` when no upstream is
    configured. A pull that brings no new commits is reported as
    ``ALREADY_UP_TO_DATE``, never as a failure.

    Args:
        handle: Open repository or submodule
        credentials: Transport credentials for the fetch
        remote_name: Remote used when the branch has no upstream

    Returns:
        PullResult with short old/new commit ids when new commits arrived
    """
    logger = logging.getLogger('curator.repo_sync.pull')
    repo = handle.repo

    try:
        old_commit = handle.head_commit
        if old_commit is None:
            return _failed("Repository has no commits to pull onto", "EMPTY_REPOSITORY")

        if repo.head.is_detached:
            return _failed("HEAD is detached, no branch to pull", "DETACHED_HEAD")

        branch = repo.active_branch
        tracking = branch.tracking_branch()
        if tracking is not None:
            remote, remote_branch = tracking.remote_name, tracking.remote_head
        else:
            remote, remote_branch = remote_name, branch.name

        logger.debug(f"{handle.display_name}: pulling {remote}/{remote_branch} into {branch.name}")
        with repo.git.custom_environment(**credentials.git_env()):
            repo.git.pull("--no-rebase", "--ff-only", remote, remote_branch)

        new_commit = handle.head_commit
        if new_commit == old_commit:
            logger.info(f"{handle.display_name}: already up-to-date")
            return PullResult(status=SyncStatus.ALREADY_UP_TO_DATE, message="Already up-to-date")

        logger.info(f"{handle.display_name}: {short_hash(old_commit)} --> {short_hash(new_commit)}")
        return PullResult(
            status=SyncStatus.PULLED,
            message=f"{short_hash(old_commit)} --> {short_hash(new_commit)}",
            old_commit=short_hash(old_commit),
            new_commit=short_hash(new_commit)
        )

    except GitCommandError as e:
        error_msg = f"Failed to pull changes from remote: {e.stderr.strip() if e.stderr else e}"
        logger.error(f"{handle.display_name}: {error_msg}")
        return _failed(error_msg, "PULL_FAILED", categorize_git_error(str(e)).value)

    except Exception as e:
        error_msg = f"Unexpected error during pull: {e}"
        logger.error(f"{handle.display_name}: {error_msg}", exc_info=True)
        return _failed(error_msg, "PULL_UNEXPECTED_ERROR")
