"""Result types for repository synchronization."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..errors import SyncError

SHORT_HASH_LENGTH = 6


class SyncMode(Enum):
    CLONE = "clone"
    PULL = "pull"


class SyncStatus(Enum):
    """Terminal state of one repository (or submodule) in a run."""
    ALREADY_UP_TO_DATE = "already-up-to-date"
    ALREADY_EXISTS = "already-exists"
    CLONED = "cloned"
    PULLED = "pulled-with-changes"
    SKIPPED = "skipped-non-empty-non-repo"
    NOT_A_REPOSITORY = "not-a-repository"
    FAILED = "failed"


def short_hash(hexsha: Optional[str], length: int = SHORT_HASH_LENGTH) -> Optional[str]:
    if not hexsha:
        return None
    return hexsha[:length]


@dataclass
class SubmoduleOutcome:
    """Result of processing one submodule of a repository."""
    name: str
    path: str
    status: SyncStatus
    message: str
    old_commit: Optional[str] = None
    new_commit: Optional[str] = None
    local_branches: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "name": self.name,
            "path": self.path,
            "status": self.status.value,
            "message": self.message,
        }
        if self.old_commit or self.new_commit:
            result["old_commit"] = self.old_commit
            result["new_commit"] = self.new_commit
        if self.local_branches:
            result["local_branches"] = list(self.local_branches)
        return result


@dataclass
class SyncOutcome:
    """Result of processing one repository.

    ``errors`` holds secondary failures (branches, config, hooks,
    submodules) in the order they happened; they never change ``status``.
    """
    name: str
    status: SyncStatus
    message: str
    error_code: Optional[str] = None
    failure_kind: Optional[str] = None
    old_commit: Optional[str] = None
    new_commit: Optional[str] = None
    local_branches: List[str] = field(default_factory=list)
    errors: List[SyncError] = field(default_factory=list)
    submodules: List[SubmoduleOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status != SyncStatus.FAILED

    @property
    def error_messages(self) -> List[str]:
        return [str(error) for error in self.errors]

    def to_dict(self) -> Dict[str, Any]:
        """Convert outcome to dictionary format."""
        result = {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "errors": [error.to_dict() for error in self.errors],
            "submodules": [submodule.to_dict() for submodule in self.submodules],
        }
        if self.error_code:
            result["error_code"] = self.error_code
        if self.failure_kind:
            result["failure_kind"] = self.failure_kind
        if self.old_commit or self.new_commit:
            result["old_commit"] = self.old_commit
            result["new_commit"] = self.new_commit
        if self.local_branches:
            result["local_branches"] = list(self.local_branches)
        return result


@dataclass
class SyncReport:
    """All outcomes of a run, in processing order."""
    mode: str
    source: str
    outcomes: List[SyncOutcome] = field(default_factory=list)
    cancelled: bool = False

    @property
    def failed(self) -> List[SyncOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status == SyncStatus.FAILED]

    def count(self, status: SyncStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "source": self.source,
            "cancelled": self.cancelled,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


def create_failed_outcome(
    name: str,
    message: str,
    error_code: str,
    failure_kind: Optional[str] = None
) -> SyncOutcome:
    """
    Helper function to create a failed SyncOutcome.

    Args:
        name: Repository name
        message: Descriptive message about the failure
        error_code: Machine readable failure code
        failure_kind: Optional git error category (network, authentication...)

    Returns:
        SyncOutcome with status FAILED
    """
    return SyncOutcome(
        name=name,
        status=SyncStatus.FAILED,
        message=message,
        error_code=error_code,
        failure_kind=failure_kind
    )
