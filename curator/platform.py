"""Host platform details: defaults, git executable and temporary files."""

import platform
import subprocess
import tempfile
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Dict, Any, Union


@dataclass(frozen=True)
class PlatformInfo:
    """Operating system the synchronization runs on."""
    system: str

    @property
    def is_windows(self) -> bool:
        return self.system == "windows"

    @property
    def is_macos(self) -> bool:
        return self.system == "darwin"

    def get_platform_name(self) -> str:
        return "macos" if self.is_macos else self.system or "unknown"


@lru_cache(maxsize=None)
def get_platform_info() -> PlatformInfo:
    return PlatformInfo(system=platform.system().lower())


def normalize_path(path: Union[str, Path]) -> Path:
    """Absolute form of ``path`` with ``~`` expanded."""
    return Path(path).expanduser().resolve()


def get_platform_specific_defaults() -> Dict[str, Any]:
    """
    Configuration defaults for the current platform.

    Repositories live under ``~/Documents/Repos`` and the default SSH key is
    ``~/.ssh/id_rsa``. Setup scripts are shell scripts, run with the bash
    shipped by Git for Windows on Windows.
    """
    home = Path.home()
    return {
        'storage_path': home / "Documents" / "Repos",
        'private_key_path': home / ".ssh" / "id_rsa",
        'script_run_queue': ["create-git-hook.sh"],
        'script_interpreter': "bash.exe" if get_platform_info().is_windows else "bash",
        'log_level': "INFO",
        'inter_repository_delay': 0.0,
    }


def create_secure_temp_file(directory: Path, suffix: str = '.tmp') -> tuple[int, Path]:
    """
    Create a temporary file next to the file it will replace.

    The file is created in ``directory`` so that a later ``os.replace``
    stays on the same filesystem.

    Returns:
        Tuple of (file_descriptor, file_path)
    """
    directory.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(dir=str(directory), suffix=suffix, prefix='.curator-')
    return fd, Path(temp_path)


def get_git_executable() -> str:
    return "git.exe" if get_platform_info().is_windows else "git"


def validate_git_availability() -> tuple[bool, Optional[str]]:
    """
    Check that a git executable can be run.

    Returns:
        Tuple of (is_available, error_message)
    """
    git_cmd = get_git_executable()

    try:
        result = subprocess.run([git_cmd, "--version"], capture_output=True, text=True, timeout=10)
    except FileNotFoundError:
        return False, f"Git executable '{git_cmd}' not found"
    except subprocess.TimeoutExpired:
        return False, "Git command timed out"
    except OSError as e:
        return False, f"Error checking Git availability: {e}"

    if result.returncode != 0:
        return False, f"Git command failed: {result.stderr.strip()}"
    return True, None
