"""Post-clone setup scripts shipped inside repositories."""

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from ..errors import ErrorCategory, SyncError
from ..platform import get_platform_info


@dataclass
class HookRunResult:
    """Scripts executed and skipped for one repository, with their failures."""
    executed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    errors: List[SyncError] = field(default_factory=list)


def run_hook_scripts(
    repo_path: Path,
    scripts: Sequence[str],
    interpreter: str = "bash",
    timeout: Optional[float] = None
) -> HookRunResult:
    """
    Run the scripts of ``scripts`` that exist directly under ``repo_path``.

    Scripts run in queue order with ``repo_path`` as working directory;
    the working directory of this process is left alone. A missing script
    is skipped without error, and a failing script does not stop the
    scripts after it.

    Args:
        repo_path: Local repository path
        scripts: Script file names, in run order
        interpreter: Program the scripts are passed to
        timeout: Optional per-script timeout in seconds

    Returns:
        HookRunResult
    """
    logger = logging.getLogger('curator.repo_sync.hooks')
    platform_info = get_platform_info()
    result = HookRunResult()

    for script in scripts:
        script_path = repo_path / script
        if not script_path.is_file():
            result.skipped.append(script)
            continue

        logger.info(f"Running script {script} in {repo_path}")
        try:
            completed = subprocess.run(
                [interpreter, script],
                cwd=repo_path,
                capture_output=True,
                text=True,
                timeout=timeout,
                shell=platform_info.is_windows
            )
        except subprocess.TimeoutExpired:
            result.errors.append(SyncError(ErrorCategory.HOOK, f"Run script {script}: timed out after {timeout}s"))
            continue
        except OSError as e:
            result.errors.append(SyncError(ErrorCategory.HOOK, f"Run script {script}: {e}"))
            continue

        result.executed.append(script)
        if completed.returncode != 0:
            detail = completed.stderr.strip().splitlines()[-1] if completed.stderr.strip() else ""
            message = f"Run script {script}: exit status {completed.returncode}"
            if detail:
                message = f"{message} ({detail})"
            result.errors.append(SyncError(ErrorCategory.HOOK, message))
            logger.warning(message)
        else:
            logger.debug(f"Script {script} finished")

    return result
