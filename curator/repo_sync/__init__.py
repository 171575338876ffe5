"""Repository synchronization for Curator."""

from .credentials import GitCredentials, SSHCredentials, get_ssh_credentials
from .orchestrator import (
    RepositorySyncOrchestrator,
    SyncEvent,
    SyncEventKind,
    sync_from_config,
    sync_repositories
)
from .providers import ProviderSource, RepositoryDescriptor, SourceSelection, select_source
from .reporting import LoggingReporter
from .utils import SubmoduleOutcome, SyncMode, SyncOutcome, SyncReport, SyncStatus

__all__ = [
    'GitCredentials',
    'SSHCredentials',
    'get_ssh_credentials',
    'RepositorySyncOrchestrator',
    'SyncEvent',
    'SyncEventKind',
    'sync_from_config',
    'sync_repositories',
    'ProviderSource',
    'RepositoryDescriptor',
    'SourceSelection',
    'select_source',
    'LoggingReporter',
    'SubmoduleOutcome',
    'SyncMode',
    'SyncOutcome',
    'SyncReport',
    'SyncStatus'
]
