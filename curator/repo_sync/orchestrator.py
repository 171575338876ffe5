"""Batch synchronization of configured repositories."""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Union

from ..config import Config
from ..errors import ConfigurationError, ErrorCategory, SyncError, log_sync_error
from ..platform import get_platform_specific_defaults
from .branch_utils import list_branch_names, reconcile_branches
from .clone import clone_repository
from .config_rewriter import rewrite_remote_config
from .credentials import CredentialProvider, GitCredentials, get_ssh_credentials
from .hooks import run_hook_scripts
from .providers import ProviderSource, RepositoryDescriptor, SourceSelection, select_source
from .pull import pull_repository
from .repository_info import BranchScope, LocalPathState, LocalRepositoryHandle
from .state import classify_local_path, remove_empty_directory
from .submodules import walk_submodules
from .utils import SyncMode, SyncOutcome, SyncReport, SyncStatus, create_failed_outcome


class SyncEventKind(Enum):
    STARTED = "repository-started"
    FINISHED = "repository-finished"


@dataclass
class SyncEvent:
    """Progress notification sent to the listener of a run."""
    kind: SyncEventKind
    name: str
    index: int
    total: int
    outcome: Optional[SyncOutcome] = None


SyncListener = Callable[[SyncEvent], None]


class RepositorySyncOrchestrator:
    """
    Runs clone or pull synchronization over a list of repositories.

    Repositories are processed one at a time in the order given. A failure
    on one repository is recorded in its outcome and never stops the batch;
    only credential errors, raised before any repository is started, end
    the run.
    """

    def __init__(
        self,
        storage_root: Union[str, Path],
        origin: ProviderSource,
        mirror: ProviderSource,
        source: str = "origin",
        mode: Union[SyncMode, str] = SyncMode.CLONE,
        private_key_path: Optional[Union[str, Path]] = None,
        credential_provider: CredentialProvider = get_ssh_credentials,
        script_run_queue: Sequence[str] = (),
        script_interpreter: str = "bash",
        script_timeout: Optional[float] = None,
        remote_name: str = "origin",
        inter_repository_delay: float = 0.0,
        listener: Optional[SyncListener] = None,
        should_cancel: Optional[Callable[[], bool]] = None
    ):
        self.storage_root = Path(storage_root).expanduser()
        self.selection: SourceSelection = select_source(origin, mirror, source)
        self.mode = SyncMode(mode)
        if private_key_path is None:
            private_key_path = get_platform_specific_defaults()['private_key_path']
        self.private_key_path = Path(private_key_path).expanduser()
        self.credential_provider = credential_provider
        self.script_run_queue = list(script_run_queue)
        self.script_interpreter = script_interpreter
        self.script_timeout = script_timeout
        self.remote_name = remote_name
        self.inter_repository_delay = inter_repository_delay
        self.listener = listener
        self.should_cancel = should_cancel
        self.logger = logging.getLogger('curator.repo_sync.orchestrator')

    @property
    def mirror_configured(self) -> bool:
        target = self.selection.target
        return bool(target.url and target.username)

    def descriptor(self, name: str) -> RepositoryDescriptor:
        return RepositoryDescriptor(name=name, local_path=self.storage_root / name, source=self.selection.source)

    def run(self, repositories: Iterable[str], sort_repositories: bool = False) -> SyncReport:
        """
        Synchronize every repository of ``repositories``.

        Raises:
            CredentialError: credentials could not be obtained; no
                repository has been touched
        """
        names = sorted(repositories) if sort_repositories else list(repositories)
        report = SyncReport(mode=self.mode.value, source=self.selection.name)

        credentials = self.credential_provider(self.private_key_path)

        self.logger.info(
            f"Starting {self.mode.value} of {len(names)} repositories from {self.selection.name}",
            extra={'operation': self.mode.value}
        )

        for index, name in enumerate(names):
            if self.should_cancel is not None and self.should_cancel():
                self.logger.info(f"Synchronization cancelled before {name}", extra={'operation': self.mode.value})
                report.cancelled = True
                break

            if index > 0 and self.inter_repository_delay > 0:
                time.sleep(self.inter_repository_delay)

            self._emit(SyncEvent(SyncEventKind.STARTED, name, index, len(names)))
            outcome = self.sync_repository(name, credentials)
            report.outcomes.append(outcome)
            self._emit(SyncEvent(SyncEventKind.FINISHED, name, index, len(names), outcome))

        self.logger.info(
            f"Finished {self.mode.value}: {len(report.outcomes)} processed, {len(report.failed)} failed",
            extra={'operation': self.mode.value}
        )
        return report

    def sync_repository(self, name: str, credentials: GitCredentials) -> SyncOutcome:
        """Run the clone or pull pipeline for one repository."""
        descriptor = self.descriptor(name)
        try:
            if self.mode == SyncMode.CLONE:
                return self._clone(descriptor, credentials)
            return self._pull(descriptor, credentials)
        except Exception as e:
            self.logger.error(f"{name}: unexpected error during {self.mode.value}: {e}", exc_info=True)
            return create_failed_outcome(name, f"Unexpected error: {e}", "SYNC_UNEXPECTED_ERROR")

    def _emit(self, event: SyncEvent) -> None:
        if self.listener is not None:
            self.listener(event)

    def _clone(self, descriptor: RepositoryDescriptor, credentials: GitCredentials) -> SyncOutcome:
        name = descriptor.name
        state, handle = classify_local_path(descriptor.local_path, name)

        if state == LocalPathState.REPOSITORY:
            handle.close()
            self.logger.info(f"{name}: local repository already exists")
            return SyncOutcome(name=name, status=SyncStatus.ALREADY_EXISTS, message="Local repository already exists")

        if state == LocalPathState.NOT_REPOSITORY:
            return self._skipped(name)

        if state == LocalPathState.EMPTY_DIRECTORY:
            delete_error = remove_empty_directory(descriptor.local_path)
            if delete_error:
                return create_failed_outcome(name, delete_error, "DELETE_FAILED")

        result = clone_repository(descriptor, credentials)
        if not result.success:
            return create_failed_outcome(name, result.message, result.error_code, result.failure_kind)

        handle = result.handle
        try:
            outcome = SyncOutcome(name=name, status=SyncStatus.CLONED, message=result.message)
            self._post_process_clone(handle, outcome, credentials)
            return outcome
        finally:
            handle.close()

    def _post_process_clone(self, handle: LocalRepositoryHandle, outcome: SyncOutcome,
                            credentials: GitCredentials) -> None:
        outcome.errors.extend(reconcile_branches(handle, self.remote_name))

        selection = self.selection if self.mirror_configured else None
        if selection is None:
            outcome.errors.append(SyncError(
                ErrorCategory.CONFIG_REWRITE,
                "Update repository git config (main): mirror provider not configured"
            ))
        else:
            rewrite = rewrite_remote_config(
                handle.config_path, selection.original_link, selection.new_link, self.remote_name
            )
            if rewrite.error:
                outcome.errors.append(rewrite.error)

        hooks = run_hook_scripts(handle.working_tree, self.script_run_queue,
                                 self.script_interpreter, self.script_timeout)
        outcome.errors.extend(hooks.errors)

        walk = walk_submodules(handle, SyncMode.CLONE, credentials, selection, self.remote_name)
        outcome.submodules.extend(walk.outcomes)
        outcome.errors.extend(walk.errors)

        local_branches, list_error = list_branch_names(handle, BranchScope.LOCAL)
        if list_error:
            outcome.errors.append(list_error)
        outcome.local_branches = local_branches

        for error in outcome.errors:
            log_sync_error(self.logger, outcome.name, error)

    def _pull(self, descriptor: RepositoryDescriptor, credentials: GitCredentials) -> SyncOutcome:
        name = descriptor.name
        state, handle = classify_local_path(descriptor.local_path, name)

        if state == LocalPathState.NOT_REPOSITORY:
            return self._skipped(name)

        if state != LocalPathState.REPOSITORY:
            self.logger.error(f"{name}: local repository does not exist")
            return create_failed_outcome(name, "Local repository does not exist", "NO_LOCAL_REPO")

        try:
            pull = pull_repository(handle, credentials, self.remote_name)
            if not pull.success:
                return create_failed_outcome(name, pull.message, pull.error_code, pull.failure_kind)

            outcome = SyncOutcome(
                name=name,
                status=pull.status,
                message=pull.message,
                old_commit=pull.old_commit,
                new_commit=pull.new_commit
            )

            walk = walk_submodules(handle, SyncMode.PULL, credentials, remote_name=self.remote_name)
            outcome.submodules.extend(walk.outcomes)
            outcome.errors.extend(walk.errors)

            for error in outcome.errors:
                log_sync_error(self.logger, name, error)
            return outcome
        finally:
            handle.close()

    def _skipped(self, name: str) -> SyncOutcome:
        self.logger.warning(f"{name}: folder is not empty and not a local repository, skipping")
        return SyncOutcome(
            name=name,
            status=SyncStatus.SKIPPED,
            message="Folder is not empty and not a local repository",
            error_code="NOT_A_REPOSITORY"
        )


def sync_repositories(
    repositories: Iterable[str],
    storage_root: Union[str, Path],
    origin: ProviderSource,
    mirror: ProviderSource,
    source: str = "origin",
    mode: Union[SyncMode, str] = SyncMode.CLONE,
    private_key_path: Optional[Union[str, Path]] = None,
    credential_provider: CredentialProvider = get_ssh_credentials,
    script_run_queue: Sequence[str] = (),
    script_interpreter: str = "bash",
    script_timeout: Optional[float] = None,
    remote_name: str = "origin",
    sort_repositories: bool = False,
    inter_repository_delay: float = 0.0,
    listener: Optional[SyncListener] = None,
    should_cancel: Optional[Callable[[], bool]] = None
) -> SyncReport:
    """
    Clone or pull a batch of repositories.

    Args:
        repositories: Repository names, processed in this order
        storage_root: Folder holding one subfolder per repository
        origin: Origin provider
        mirror: Mirror provider
        source: ``"origin"`` or ``"mirror"``, the provider synced from
        mode: CLONE or PULL
        private_key_path: SSH key handed to ``credential_provider``
        credential_provider: Builds git credentials from the key path
        script_run_queue: Setup scripts run in each freshly cloned repository
        script_interpreter: Program used to run the setup scripts
        script_timeout: Optional per-script timeout in seconds
        remote_name: Remote used for branches, pulls and config rewrites
        sort_repositories: Process repositories in name order
        inter_repository_delay: Seconds to wait between two repositories
        listener: Receives a SyncEvent before and after each repository
        should_cancel: Checked before each repository; True stops the run

    Returns:
        SyncReport with one outcome per processed repository

    Raises:
        CredentialError: credentials could not be obtained
    """
    orchestrator = RepositorySyncOrchestrator(
        storage_root=storage_root,
        origin=origin,
        mirror=mirror,
        source=source,
        mode=mode,
        private_key_path=private_key_path,
        credential_provider=credential_provider,
        script_run_queue=script_run_queue,
        script_interpreter=script_interpreter,
        script_timeout=script_timeout,
        remote_name=remote_name,
        inter_repository_delay=inter_repository_delay,
        listener=listener,
        should_cancel=should_cancel
    )
    return orchestrator.run(repositories, sort_repositories=sort_repositories)


def select_repositories(config: Config, repositories: Optional[Iterable[str]] = None) -> List[str]:
    """Resolve a selection against the configured repositories, keeping the requested order."""
    if repositories is None:
        return list(config.repositories)

    wanted = list(repositories)
    unknown = [name for name in wanted if name not in config.repositories]
    if unknown:
        raise ConfigurationError(f"Repositories not configured: {', '.join(unknown)}")
    return list(dict.fromkeys(wanted))


def sync_from_config(
    config: Config,
    mode: Union[SyncMode, str],
    repositories: Optional[Iterable[str]] = None,
    source: Optional[str] = None,
    credential_provider: CredentialProvider = get_ssh_credentials,
    listener: Optional[SyncListener] = None,
    should_cancel: Optional[Callable[[], bool]] = None
) -> SyncReport:
    """Run a synchronization with the settings of a loaded configuration."""
    return sync_repositories(
        select_repositories(config, repositories),
        storage_root=config.storage_path,
        origin=ProviderSource(config.origin_url, config.origin_username),
        mirror=ProviderSource(config.mirror_url, config.mirror_username),
        source=source or config.source,
        mode=mode,
        private_key_path=config.private_key_path,
        credential_provider=credential_provider,
        script_run_queue=config.script_run_queue,
        script_interpreter=config.script_interpreter,
        script_timeout=config.script_timeout,
        remote_name=config.remote_name,
        inter_repository_delay=config.inter_repository_delay,
        listener=listener,
        should_cancel=should_cancel
    )
