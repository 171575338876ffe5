"""Repository cloning for synchronization using GitPython."""

import logging
from dataclasses import dataclass
from typing import Optional

from git import Repo, GitCommandError

from .credentials import GitCredentials
from .error_strategies import categorize_git_error
from .providers import RepositoryDescriptor
from .repository_info import HandleKind, LocalRepositoryHandle


@dataclass
class CloneResult:
    """Result of cloning one repository."""
    success: bool
    message: str
    handle: Optional[LocalRepositoryHandle] = None
    error_code: Optional[str] = None
    failure_kind: Optional[str] = None


def clone_repository(descriptor: RepositoryDescriptor, credentials: GitCredentials) -> CloneResult:
    """
    Clone a repository from its source provider into its local path.

    Submodules are cloned recursively by git during the clone. The local
    path must not exist (or must have been emptied and removed) before
    calling this.

    Args:
        descriptor: Repository to clone
        credentials: Transport credentials for the clone

    Returns:
        CloneResult carrying the open handle on success
    """
    logger = logging.getLogger('curator.repo_sync.clone')
    clone_url = descriptor.clone_url

    try:
        logger.info(f"Cloning {descriptor.name} from {clone_url}")
        descriptor.local_path.parent.mkdir(parents=True, exist_ok=True)

        repo = Repo.clone_from(
            clone_url,
            descriptor.local_path,
            env=credentials.git_env(),
            multi_options=["--recurse-submodules"]
        )
        logger.info(f"Repository {descriptor.name} cloned successfully")

        return CloneResult(
            success=True,
            message="Receive object completed",
            handle=LocalRepositoryHandle(kind=HandleKind.REPOSITORY, name=descriptor.name, repo=repo)
        )

    except GitCommandError as e:
        error_msg = f"Unable to clone repository: {e.stderr.strip() if e.stderr else e}"
        logger.error(f"{descriptor.name}: {error_msg}")
        return CloneResult(
            success=False,
            message=error_msg,
            error_code="GIT_CLONE_FAILED",
            failure_kind=categorize_git_error(str(e)).value
        )

    except Exception as e:
        error_msg = f"Unexpected error during repository clone: {e}"
        logger.error(f"{descriptor.name}: {error_msg}", exc_info=True)
        return CloneResult(
            success=False,
            message=error_msg,
            error_code="CLONE_UNEXPECTED_ERROR"
        )
