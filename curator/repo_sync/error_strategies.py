"""Categorization of git failures for reporting."""

from enum import Enum
from typing import Dict


class FailureKind(Enum):
    """Categories of primary clone/pull failures."""
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    REPOSITORY_ACCESS = "repository_access"
    DIVERGED = "diverged"
    LOCAL_CHANGES = "local_changes"
    REPOSITORY_CORRUPTION = "repository_corruption"
    UNKNOWN = "unknown"


def build_error_patterns() -> Dict[str, FailureKind]:
    """Build mapping of git error output fragments to categories."""
    return {
        # Network errors
        "connection refused": FailureKind.NETWORK,
        "network is unreachable": FailureKind.NETWORK,
        "connection timed out": FailureKind.NETWORK,
        "no route to host": FailureKind.NETWORK,
        "could not resolve hostname": FailureKind.NETWORK,
        "temporary failure in name resolution": FailureKind.NETWORK,

        # Authentication errors
        "permission denied (publickey": FailureKind.AUTHENTICATION,
        "authentication failed": FailureKind.AUTHENTICATION,
        "host key verification failed": FailureKind.AUTHENTICATION,

        # Repository access errors
        "repository not found": FailureKind.REPOSITORY_ACCESS,
        "does not appear to be a git repository": FailureKind.REPOSITORY_ACCESS,
        "could not read from remote repository": FailureKind.REPOSITORY_ACCESS,
        "couldn't find remote ref": FailureKind.REPOSITORY_ACCESS,

        # Fast-forward only pulls
        "not possible to fast-forward": FailureKind.DIVERGED,
        "diverging branches": FailureKind.DIVERGED,
        "non-fast-forward": FailureKind.DIVERGED,

        # Dirty work trees
        "would be overwritten": FailureKind.LOCAL_CHANGES,
        "please commit your changes or stash them": FailureKind.LOCAL_CHANGES,

        # Repository corruption
        "corrupt": FailureKind.REPOSITORY_CORRUPTION,
        "invalid object": FailureKind.REPOSITORY_CORRUPTION,
        "loose object": FailureKind.REPOSITORY_CORRUPTION,
    }


_ERROR_PATTERNS = build_error_patterns()


def categorize_git_error(message: str) -> FailureKind:
    """Return the category of a git error message.

    Specific categories are checked before generic ones, so an
    authentication failure that also says "could not read from remote
    repository" is reported as authentication.
    """
    lowered = (message or "").lower()
    for kind in (FailureKind.AUTHENTICATION, FailureKind.NETWORK, FailureKind.DIVERGED,
                 FailureKind.LOCAL_CHANGES, FailureKind.REPOSITORY_ACCESS,
                 FailureKind.REPOSITORY_CORRUPTION):
        for pattern, pattern_kind in _ERROR_PATTERNS.items():
            if pattern_kind == kind and pattern in lowered:
                return kind
    return FailureKind.UNKNOWN
