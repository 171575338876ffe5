"""Error handling framework for Curator."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, Optional


class ErrorCategory(Enum):
    """Pipeline stage an error was raised in."""
    CREDENTIALS = "credentials"
    CONFIGURATION = "configuration"
    CLONE = "clone"
    PULL = "pull"
    LOCAL_PATH = "local_path"
    BRANCH = "branch"
    CONFIG_REWRITE = "config_rewrite"
    HOOK = "hook"
    SUBMODULE = "submodule"


class CuratorError(Exception):
    """Base class for errors that abort a whole run."""


class ConfigurationError(CuratorError, ValueError):
    """Configuration could not be loaded or is invalid."""


class CredentialError(CuratorError):
    """No authenticated transport could be obtained for the run."""


@dataclass
class SyncError:
    """A secondary error recorded against one repository.

    Secondary errors never turn a successful clone or pull into a failure;
    they are reported after the primary result.
    """
    category: ErrorCategory
    message: str
    submodule: Optional[str] = None

    def __str__(self) -> str:
        if self.submodule:
            return f"{self.submodule}: {self.message}"
        return self.message

    def with_submodule(self, submodule: str) -> "SyncError":
        """Return a copy of this error qualified by a submodule name."""
        return SyncError(category=self.category, message=self.message, submodule=submodule)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary format."""
        result = {
            "category": self.category.value,
            "message": self.message,
        }
        if self.submodule:
            result["submodule"] = self.submodule
        return result


def log_sync_error(logger: logging.Logger, repository: str, error: SyncError) -> None:
    """Log a secondary error with structured context."""
    logger.warning(
        f"{repository}: {error}",
        extra={
            'operation': error.category.value,
            'repository': repository,
            'submodule': error.submodule
        }
    )
