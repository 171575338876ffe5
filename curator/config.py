"""Configuration management for Curator."""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List, Dict, Any

from dotenv import load_dotenv

from .errors import ConfigurationError
from .platform import get_platform_specific_defaults, normalize_path

load_dotenv()  # Load .env file if it exists


VALID_SOURCES = ("origin", "mirror")


@dataclass
class Config:
    """Configuration class for Curator with validation and defaults."""

    # Storage
    storage_path: Path = field(default_factory=lambda: Path.home() / "Documents" / "Repos")

    # Repositories, processed in this order
    repositories: List[str] = field(default_factory=list)

    # Providers
    origin_url: str = "github.com"
    origin_username: str = ""
    mirror_url: str = ""
    mirror_username: str = ""
    source: str = "origin"
    remote_name: str = "origin"

    # Post-clone scripts
    script_run_queue: List[str] = field(default_factory=list)
    script_interpreter: str = "bash"
    script_timeout: Optional[float] = None

    # SSH
    private_key_path: Path = field(default_factory=lambda: Path.home() / ".ssh" / "id_rsa")

    # Presentation
    inter_repository_delay: float = 0.0
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.storage_path, str):
            self.storage_path = Path(self.storage_path)
        self.storage_path = normalize_path(self.storage_path)

        if isinstance(self.private_key_path, str):
            self.private_key_path = Path(self.private_key_path)
        self.private_key_path = self.private_key_path.expanduser()

        # Repository names form an ordered set
        seen = set()
        unique = []
        for name in self.repositories:
            name = name.strip()
            if name and name not in seen:
                seen.add(name)
                unique.append(name)
        self.repositories = unique

        self.source = self.source.lower()
        self.log_level = self.log_level.upper()

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level not in valid_log_levels:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {valid_log_levels}")

        if not self.remote_name:
            raise ValueError("remote_name must not be empty")

        if self.inter_repository_delay < 0:
            raise ValueError("inter_repository_delay must be non-negative")

        if self.script_timeout is not None and self.script_timeout <= 0:
            raise ValueError("script_timeout must be positive")

    def repository_path(self, name: str) -> Path:
        """Local path of a configured repository."""
        return self.storage_path / name


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def load_configuration_file(file_path: Path) -> Dict[str, Any]:
    """
    Read a TOML configuration file into Config keyword arguments.

    The file uses the sections ``[git]``, ``[script]``, ``[ssh]`` and
    ``[storage]``; unknown keys are ignored.
    """
    if not file_path.exists():
        raise ConfigurationError(f"Open {file_path}: no such file or directory")
    if file_path.suffix != ".toml":
        raise ConfigurationError(f"Open {file_path}: is not a toml file")

    try:
        with open(file_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Unable to load config {file_path}: {e}")

    git = data.get("git", {})
    script = data.get("script", {})
    ssh = data.get("ssh", {})
    storage = data.get("storage", {})

    values = {
        'origin_url': git.get("origin_url"),
        'origin_username': git.get("origin_username"),
        'mirror_url': git.get("mirror_url"),
        'mirror_username': git.get("mirror_username"),
        'repositories': git.get("repos"),
        'remote_name': git.get("remote_name"),
        'script_run_queue': script.get("run_queue"),
        'private_key_path': ssh.get("rsa_file"),
        'storage_path': storage.get("path"),
    }
    return {key: value for key, value in values.items() if value is not None}


def load_configuration() -> Config:
    """Load configuration from an optional TOML file and environment variables."""
    try:
        defaults = get_platform_specific_defaults()

        values: Dict[str, Any] = {
            'storage_path': defaults['storage_path'],
            'private_key_path': defaults['private_key_path'],
            'script_run_queue': defaults['script_run_queue'],
            'script_interpreter': defaults['script_interpreter'],
            'inter_repository_delay': defaults['inter_repository_delay'],
            'log_level': defaults['log_level'],
        }

        config_file = os.getenv("CURATOR_CONFIG_FILE")
        if config_file:
            values.update(load_configuration_file(Path(config_file).expanduser()))

        env_strings = {
            'storage_path': "CURATOR_STORAGE_PATH",
            'origin_url': "CURATOR_ORIGIN_URL",
            'origin_username': "CURATOR_ORIGIN_USERNAME",
            'mirror_url': "CURATOR_MIRROR_URL",
            'mirror_username': "CURATOR_MIRROR_USERNAME",
            'source': "CURATOR_SOURCE",
            'remote_name': "CURATOR_REMOTE_NAME",
            'private_key_path': "CURATOR_PRIVATE_KEY",
            'script_interpreter': "CURATOR_SCRIPT_INTERPRETER",
            'log_level': "CURATOR_LOG_LEVEL",
        }
        for key, variable in env_strings.items():
            value = os.getenv(variable)
            if value:
                values[key] = value

        if os.getenv("CURATOR_REPOS"):
            values['repositories'] = _split_list(os.getenv("CURATOR_REPOS"))
        if os.getenv("CURATOR_SCRIPT_RUN_QUEUE") is not None:
            values['script_run_queue'] = _split_list(os.getenv("CURATOR_SCRIPT_RUN_QUEUE"))
        if os.getenv("CURATOR_SCRIPT_TIMEOUT"):
            values['script_timeout'] = float(os.getenv("CURATOR_SCRIPT_TIMEOUT"))
        if os.getenv("CURATOR_REPOSITORY_DELAY"):
            values['inter_repository_delay'] = float(os.getenv("CURATOR_REPOSITORY_DELAY"))

        return Config(**values)
    except (ValueError, TypeError) as e:
        if isinstance(e, ConfigurationError):
            raise
        raise ConfigurationError(f"Configuration error: {e}")


def validate_configuration(config: Config) -> List[str]:
    """Validate configuration and return any errors or warnings."""
    logger = logging.getLogger('curator.config')
    errors = []

    try:
        config.storage_path.mkdir(parents=True, exist_ok=True)
        if not os.access(config.storage_path, os.W_OK):
            errors.append(f"ERROR: No write permission for storage directory: {config.storage_path}")
    except OSError as e:
        errors.append(f"ERROR: Cannot access storage directory {config.storage_path}: {e}")

    if not config.private_key_path.is_file():
        errors.append(f"ERROR: SSH private key not found: {config.private_key_path}")

    if config.source not in VALID_SOURCES:
        errors.append(f"WARNING: Unknown source '{config.source}', falling back to 'origin'")

    source_prefix = "mirror" if config.source == "mirror" else "origin"
    if not getattr(config, f"{source_prefix}_url") or not getattr(config, f"{source_prefix}_username"):
        errors.append(f"ERROR: The {source_prefix} provider needs both a url and a username")

    for prefix in VALID_SOURCES:
        url = getattr(config, f"{prefix}_url")
        if url and url.startswith(("http://", "https://", "ssh://", "git@")):
            errors.append(f"WARNING: {prefix}_url should be a bare host name, got: {url}")

    if not config.mirror_url or not config.mirror_username:
        errors.append("WARNING: Mirror provider is incomplete; push URLs will not be rewritten to it")

    if not config.repositories:
        errors.append("WARNING: No repositories configured")

    logger.debug(f"Configuration validation produced {len(errors)} issue(s)")
    return errors
