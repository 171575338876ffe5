"""Repository handles and local state data structures."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

from git import Repo, RemoteReference


class LocalPathState(Enum):
    """State of a repository's local path before any action is taken."""
    MISSING = "missing"                   # Nothing at the path, needs cloning
    REPOSITORY = "repository"             # Opens as a git repository
    EMPTY_DIRECTORY = "empty_directory"   # Empty folder, deletable before cloning
    NOT_REPOSITORY = "not_repository"     # Non-empty folder (or file) that is not a repository


class HandleKind(Enum):
    """Whether a handle wraps a top-level repository or one of its submodules."""
    REPOSITORY = "repository"
    SUBMODULE = "submodule"


class BranchScope(Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class BranchRef:
    """A branch name in a given scope, optionally qualified by a submodule."""
    name: str
    scope: BranchScope
    submodule: Optional[str] = None


@dataclass
class LocalRepositoryHandle:
    """
    An open local repository, owned by a single repository iteration.

    Repositories and submodules share the same capabilities; ``kind`` tells
    them apart and ``parent`` names the owning repository of a submodule.
    """
    kind: HandleKind
    name: str
    repo: Repo
    parent: Optional[str] = None

    @classmethod
    def open(cls, path: Path, name: str, kind: HandleKind = HandleKind.REPOSITORY,
             parent: Optional[str] = None) -> "LocalRepositoryHandle":
        """
        Open ``path`` as a repository.

        Raises:
            git.InvalidGitRepositoryError, git.NoSuchPathError: path is not a repository
        """
        return cls(kind=kind, name=name, repo=Repo(path), parent=parent)

    @property
    def is_submodule(self) -> bool:
        return self.kind == HandleKind.SUBMODULE

    @property
    def display_name(self) -> str:
        if self.parent:
            return f"{self.parent}/{self.name}"
        return self.name

    @property
    def working_tree(self) -> Path:
        return Path(self.repo.working_tree_dir)

    @property
    def git_dir(self) -> Path:
        return Path(self.repo.git_dir)

    @property
    def config_path(self) -> Path:
        """Persisted remote configuration file (``.git/config`` or ``.git/modules/<name>/config``)."""
        return self.git_dir / "config"

    @property
    def head_ref(self) -> Optional[str]:
        """Name of the branch HEAD points to, None when detached."""
        if self.repo.head.is_detached:
            return None
        return self.repo.head.ref.name

    @property
    def head_commit(self) -> Optional[str]:
        """Full hash of the HEAD commit, None for a repository without commits."""
        if not self.repo.head.is_valid():
            return None
        return self.repo.head.commit.hexsha

    def remote_names(self) -> List[str]:
        return [remote.name for remote in self.repo.remotes]

    def local_branch_names(self) -> List[str]:
        return [head.name for head in self.repo.heads]

    def remote_branch_refs(self, remote_name: str) -> List[RemoteReference]:
        """Remote tracking branches of ``remote_name``, without the symbolic HEAD."""
        refs = []
        for ref in self.repo.references:
            if not isinstance(ref, RemoteReference) or ref.remote_name != remote_name:
                continue
            if ref.remote_head == "HEAD":
                continue
            refs.append(ref)
        return refs

    def remote_branch_names(self, remote_name: str) -> List[str]:
        return [ref.remote_head for ref in self.remote_branch_refs(remote_name)]

    def branch_refs(self, scope: BranchScope, remote_name: str = "origin") -> List[BranchRef]:
        submodule = self.name if self.is_submodule else None
        if scope == BranchScope.LOCAL:
            names = self.local_branch_names()
        else:
            names = self.remote_branch_names(remote_name)
        return [BranchRef(name=name, scope=scope, submodule=submodule) for name in names]

    def close(self) -> None:
        self.repo.close()
