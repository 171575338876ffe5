"""Submodule processing for cloned and pulled repositories."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..errors import ErrorCategory, SyncError
from .branch_utils import checkout_branch, detect_default_branch, list_branch_names, reconcile_branches
from .config_rewriter import rewrite_remote_config
from .credentials import GitCredentials
from .providers import SourceSelection
from .pull import pull_repository
from .repository_info import BranchScope, HandleKind, LocalRepositoryHandle
from .state import open_local_repository
from .utils import SubmoduleOutcome, SyncMode, SyncStatus


@dataclass
class SubmoduleWalkResult:
    """Outcomes of every submodule of a repository, plus their errors."""
    outcomes: List[SubmoduleOutcome] = field(default_factory=list)
    errors: List[SyncError] = field(default_factory=list)


class SubmoduleWalker:
    """
    Applies clone or pull post-processing to each submodule of a repository.

    Only direct submodules are processed; submodules of submodules are not
    walked.
    """

    def __init__(self, credentials: GitCredentials, selection: Optional[SourceSelection] = None,
                 remote_name: str = "origin"):
        self.credentials = credentials
        self.selection = selection
        self.remote_name = remote_name
        self.logger = logging.getLogger('curator.repo_sync.submodules')

    def walk(self, parent: LocalRepositoryHandle, mode: SyncMode) -> SubmoduleWalkResult:
        """
        Process the submodules of ``parent`` in ``.gitmodules`` order.

        Args:
            parent: Open top-level repository
            mode: CLONE reconciles branches, checks out the default branch and
                rewrites the submodule config; PULL fast-forwards the submodule

        Returns:
            SubmoduleWalkResult; errors are qualified with the submodule name
        """
        result = SubmoduleWalkResult()

        try:
            submodules = list(parent.repo.submodules)
        except Exception as e:
            self.logger.warning(f"{parent.name}: unable to read submodules: {e}")
            result.errors.append(SyncError(ErrorCategory.SUBMODULE, f"Get local repository submodules: {e}"))
            return result

        for submodule in submodules:
            path = parent.working_tree / submodule.path
            handle = open_local_repository(path, submodule.name, kind=HandleKind.SUBMODULE, parent=parent.name)

            if handle is None:
                self.logger.warning(f"{parent.name}: submodule {submodule.name} is not a local repository")
                result.outcomes.append(SubmoduleOutcome(
                    name=submodule.name,
                    path=submodule.path,
                    status=SyncStatus.NOT_A_REPOSITORY,
                    message="Folder is not a local repository"
                ))
                continue

            try:
                if mode == SyncMode.CLONE:
                    outcome, errors = self._process_cloned(handle, submodule.path)
                else:
                    outcome, errors = self._process_pulled(handle, submodule.path)
            except Exception as e:
                self.logger.error(f"{handle.display_name}: unexpected error: {e}", exc_info=True)
                outcome = SubmoduleOutcome(name=submodule.name, path=submodule.path,
                                           status=SyncStatus.FAILED, message=str(e))
                errors = [SyncError(ErrorCategory.SUBMODULE, f"Unexpected error: {e}")]
            finally:
                handle.close()

            result.outcomes.append(outcome)
            result.errors.extend(error.with_submodule(submodule.name) for error in errors)

        return result

    def _process_cloned(self, handle: LocalRepositoryHandle, path: str):
        errors: List[SyncError] = []

        errors.extend(reconcile_branches(handle, self.remote_name))

        default_branch, branch_errors = detect_default_branch(handle, self.credentials, self.remote_name)
        errors.extend(branch_errors)
        if default_branch:
            checkout_error = checkout_branch(handle, default_branch)
            if checkout_error:
                errors.append(checkout_error)
        else:
            errors.append(SyncError(ErrorCategory.BRANCH, "Checkout to default branch: default branch not found"))

        if self.selection is not None:
            rewrite = rewrite_remote_config(
                handle.config_path,
                self.selection.original_link,
                self.selection.new_link,
                self.remote_name,
                submodule=handle.name
            )
            if rewrite.error:
                # Qualified by the walker, keep the message unprefixed here
                errors.append(SyncError(rewrite.error.category, rewrite.error.message))

        local_branches, list_error = list_branch_names(handle, BranchScope.LOCAL)
        if list_error:
            errors.append(list_error)

        self.logger.info(f"{handle.display_name}: [{' '.join(local_branches)}]")
        outcome = SubmoduleOutcome(
            name=handle.name,
            path=path,
            status=SyncStatus.CLONED,
            message=f"[{' '.join(local_branches)}]",
            local_branches=local_branches
        )
        return outcome, errors

    def _process_pulled(self, handle: LocalRepositoryHandle, path: str):
        pull = pull_repository(handle, self.credentials, self.remote_name)
        outcome = SubmoduleOutcome(
            name=handle.name,
            path=path,
            status=pull.status,
            message=pull.message,
            old_commit=pull.old_commit,
            new_commit=pull.new_commit
        )
        errors = []
        if not pull.success:
            errors.append(SyncError(ErrorCategory.SUBMODULE, pull.message))
        return outcome, errors


def walk_submodules(parent: LocalRepositoryHandle, mode: SyncMode, credentials: GitCredentials,
                    selection: Optional[SourceSelection] = None,
                    remote_name: str = "origin") -> SubmoduleWalkResult:
    """Process the direct submodules of ``parent``; see ``SubmoduleWalker.walk``."""
    return SubmoduleWalker(credentials, selection, remote_name).walk(parent, mode)
