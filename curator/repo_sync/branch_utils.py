"""Branch utilities for repository synchronization using GitPython."""

import logging
from typing import List, Optional, Tuple

from git import GitCommandError

from ..errors import ErrorCategory, SyncError
from .credentials import GitCredentials
from .repository_info import BranchScope, LocalRepositoryHandle


def list_branch_names(handle: LocalRepositoryHandle, scope: BranchScope,
                      remote_name: str = "origin") -> Tuple[List[str], Optional[SyncError]]:
    """List local or remote tracking branch names of a repository."""
    logger = logging.getLogger('curator.repo_sync.branch_utils')
    try:
        return [ref.name for ref in handle.branch_refs(scope, remote_name)], None
    except Exception as e:
        logger.debug(f"Error listing {scope.value} branches of {handle.display_name}: {e}")
        return [], SyncError(ErrorCategory.BRANCH, f"Get local repository branch ({scope.value}): {e}")


def reconcile_branches(handle: LocalRepositoryHandle, remote_name: str = "origin") -> List[SyncError]:
    """
    Create a local branch for every remote tracking branch missing locally.

    Each new branch points at the commit of its remote tracking branch and
    records it as upstream. Branches are independent: a failure on one is
    recorded and the others are still created. Running this again creates
    nothing and reports nothing for branches already reconciled.

    Args:
        handle: Open repository or submodule
        remote_name: Remote whose tracking branches are mirrored locally

    Returns:
        List of errors, one per branch that could not be created
    """
    logger = logging.getLogger('curator.repo_sync.branch_utils')
    repo = handle.repo
    errors: List[SyncError] = []

    try:
        remote_refs = handle.remote_branch_refs(remote_name)
        local_names = set(handle.local_branch_names())
    except Exception as e:
        logger.debug(f"Error reading branches of {handle.display_name}: {e}")
        return [SyncError(ErrorCategory.BRANCH, f"Get local repository branch (remote): {e}")]

    for remote_ref in remote_refs:
        name = remote_ref.remote_head
        if name in local_names:
            continue

        try:
            new_branch = repo.create_head(name, remote_ref.commit)
        except Exception as e:
            logger.debug(f"Failed to create branch '{name}' in {handle.display_name}: {e}")
            errors.append(SyncError(ErrorCategory.BRANCH, f"Create local branch '{name}': {e}"))
            continue

        try:
            new_branch.set_tracking_branch(remote_ref)
        except Exception as e:
            logger.debug(f"Failed to set upstream of '{name}' in {handle.display_name}: {e}")
            errors.append(SyncError(ErrorCategory.BRANCH, f"Set upstream of branch '{name}': {e}"))
            continue

        local_names.add(name)
        logger.debug(f"{handle.display_name}: created branch '{name}' tracking {remote_ref.name}")

    return errors


def _ordered_remotes(handle: LocalRepositoryHandle, primary_remote: str) -> List[str]:
    remotes = handle.remote_names()
    if primary_remote in remotes:
        remotes.remove(primary_remote)
        remotes.insert(0, primary_remote)
    return remotes


def detect_default_branch(handle: LocalRepositoryHandle, credentials: GitCredentials,
                          primary_remote: str = "origin") -> Tuple[Optional[str], List[SyncError]]:
    """
    Detect the default branch from the symbolic HEAD advertised by a remote.

    The primary remote is asked first, then the remaining remotes in
    configuration order; the first symbolic HEAD found wins.

    Returns:
        Tuple of (short branch name or None, errors from remotes that could not be listed)
    """
    logger = logging.getLogger('curator.repo_sync.branch_utils')
    repo = handle.repo
    errors: List[SyncError] = []

    for remote in _ordered_remotes(handle, primary_remote):
        try:
            with repo.git.custom_environment(**credentials.git_env()):
                output = repo.git.ls_remote("--symref", remote, "HEAD")
        except GitCommandError as e:
            message = e.stderr.strip() if e.stderr else str(e)
            errors.append(SyncError(ErrorCategory.BRANCH, f"Failed to list references: {message}"))
            continue

        for line in output.splitlines():
            if line.startswith("ref: refs/heads/") and line.rstrip().endswith("HEAD"):
                branch_name = line[len("ref: refs/heads/"):].split("\t")[0].strip()
                logger.debug(f"{handle.display_name}: default branch of {remote} is {branch_name}")
                return branch_name, errors

    return None, errors


def checkout_branch(handle: LocalRepositoryHandle, branch_name: str) -> Optional[SyncError]:
    """Switch to a local branch without discarding uncommitted changes."""
    logger = logging.getLogger('curator.repo_sync.branch_utils')

    try:
        branch = handle.repo.heads[branch_name]
    except IndexError:
        return SyncError(ErrorCategory.BRANCH, f"Checkout to default branch: no local branch '{branch_name}'")

    try:
        branch.checkout(force=False)
        logger.debug(f"{handle.display_name}: checked out {branch_name}")
        return None
    except GitCommandError as e:
        message = e.stderr.strip() if e.stderr else str(e)
        logger.debug(f"{handle.display_name}: checkout of {branch_name} failed: {message}")
        return SyncError(ErrorCategory.BRANCH, f"Checkout to default branch: {message}")
