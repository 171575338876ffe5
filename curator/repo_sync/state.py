"""Local path state detection for repository synchronization."""

import logging
import shutil
from pathlib import Path
from typing import Optional, Tuple

from git import InvalidGitRepositoryError, NoSuchPathError

from .repository_info import HandleKind, LocalPathState, LocalRepositoryHandle


def is_directory_empty(path: Path) -> bool:
    """Check whether a directory has no entries, hidden files included."""
    try:
        return not any(path.iterdir())
    except OSError:
        return False


def open_local_repository(path: Path, name: str, kind: HandleKind = HandleKind.REPOSITORY,
                          parent: Optional[str] = None) -> Optional[LocalRepositoryHandle]:
    """Open ``path`` as a repository, None when it is not one."""
    logger = logging.getLogger('curator.repo_sync.state')
    try:
        return LocalRepositoryHandle.open(path, name, kind=kind, parent=parent)
    except (InvalidGitRepositoryError, NoSuchPathError) as e:
        logger.debug(f"{path} is not a local repository: {e}")
        return None


def classify_local_path(path: Path, name: str) -> Tuple[LocalPathState, Optional[LocalRepositoryHandle]]:
    """
    Detect the state of a repository's local path.

    Classification never touches the filesystem; when the path opens as a
    repository the open handle is returned with the state so the caller
    does not have to open it again.

    Returns:
        Tuple of (state, handle or None)
    """
    logger = logging.getLogger('curator.repo_sync.state')

    if not path.exists():
        logger.debug(f"{name}: local path {path} does not exist")
        return LocalPathState.MISSING, None

    handle = open_local_repository(path, name) if path.is_dir() else None
    if handle is not None:
        logger.debug(f"{name}: local repository found at {path}")
        return LocalPathState.REPOSITORY, handle

    if path.is_dir() and is_directory_empty(path):
        logger.debug(f"{name}: {path} is an empty folder")
        return LocalPathState.EMPTY_DIRECTORY, None

    logger.debug(f"{name}: {path} is not a local repository and not empty")
    return LocalPathState.NOT_REPOSITORY, None


def remove_empty_directory(path: Path) -> Optional[str]:
    """Delete a folder found empty before cloning; returns an error message on failure."""
    logger = logging.getLogger('curator.repo_sync.state')
    try:
        shutil.rmtree(path)
        logger.debug(f"Removed empty folder {path}")
        return None
    except OSError as e:
        logger.error(f"Unable to delete {path}: {e}")
        return f"Unable to delete file: {e}"
