"""SSH credentials for git transports."""

import logging
import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Protocol, Union

from ..errors import CredentialError


class GitCredentials(Protocol):
    """Anything that can authenticate git commands through their environment."""

    def git_env(self) -> Dict[str, str]:
        ...


CredentialProvider = Callable[[Path], GitCredentials]


@dataclass(frozen=True)
class SSHCredentials:
    """Authenticates git over SSH with a specific private key.

    Passphrase-protected keys must be loaded in ssh-agent: ssh runs in
    batch mode and fails instead of prompting.
    """
    private_key_path: Path

    def git_env(self) -> Dict[str, str]:
        command = f"ssh -i {shlex.quote(str(self.private_key_path))} -o IdentitiesOnly=yes -o BatchMode=yes"
        return {"GIT_SSH_COMMAND": command}


def get_ssh_credentials(private_key_path: Union[str, Path]) -> SSHCredentials:
    """
    Build SSH credentials for a private key.

    Raises:
        CredentialError: the key does not exist or cannot be read
    """
    logger = logging.getLogger('curator.repo_sync.credentials')
    key_path = Path(private_key_path).expanduser()

    if not key_path.is_file():
        raise CredentialError(f"Unable to get public key: {key_path}: no such file")
    if not os.access(key_path, os.R_OK):
        raise CredentialError(f"Unable to get public key: {key_path}: permission denied")

    logger.debug(f"Using SSH private key {key_path}")
    return SSHCredentials(private_key_path=key_path)
