"""Remote hosting providers and source selection."""

import logging
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ProviderSource:
    """A remote hosting endpoint identified by host URL and username."""
    url: str
    username: str

    @property
    def identity_link(self) -> str:
        """The ``host:username`` string used to rewrite ownership references."""
        return f"{self.url}:{self.username}"

    def clone_url(self, repository_name: str) -> str:
        """SSH clone URL of a repository hosted by this provider."""
        return f"git@{self.url}:{self.username}/{repository_name}.git"


@dataclass(frozen=True)
class SourceSelection:
    """The provider to sync from and the provider to mirror pushes to."""
    name: str
    source: ProviderSource
    target: ProviderSource

    @property
    def original_link(self) -> str:
        return self.source.identity_link

    @property
    def new_link(self) -> str:
        return self.target.identity_link


@dataclass(frozen=True)
class RepositoryDescriptor:
    """A configured repository for the current run."""
    name: str
    local_path: Path
    source: ProviderSource

    @property
    def clone_url(self) -> str:
        return self.source.clone_url(self.name)


def select_source(origin: ProviderSource, mirror: ProviderSource, source: str = "origin") -> SourceSelection:
    """
    Decide which provider is synced from.

    ``"mirror"`` clones from the mirror provider and mirrors pushes to the
    origin provider; anything else uses the origin provider.
    """
    choice = (source or "origin").lower()
    if choice == "mirror":
        return SourceSelection(name="mirror", source=mirror, target=origin)

    if choice != "origin":
        logging.getLogger('curator.repo_sync.providers').warning(
            f"Unknown source '{source}', using the origin provider"
        )
    return SourceSelection(name="origin", source=origin, target=mirror)
