"""Rewriting of persisted remote configuration to add mirror push URLs."""

import logging
import os
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Pattern, Tuple

from ..errors import ErrorCategory, SyncError
from ..platform import create_secure_temp_file

# Same rule for a repository's .git/config and a submodule's .git/modules/<name>/config
URL_LINE_PATTERN = re.compile(r'url\s*=\s*.*[:/].*\.git')

_URL_ASSIGNMENT = re.compile(r'^(\s*)url(\s*=\s*)(.*?)\s*$')
_PUSHURL_ASSIGNMENT = re.compile(r'^\s*pushurl\s*=')
_SECTION_HEADER = re.compile(r'^\s*\[([^\]]*)\]')
_REMOTE_SECTION = re.compile(r'^\s*remote\s+"([^"]*)"\s*$')
_SCP_HOST_PATH = re.compile(r'^([^/:]+)/(.+)$')


@dataclass
class ConfigRewriteResult:
    """Result of rewriting one configuration file."""
    changed: bool
    lines_added: List[str] = field(default_factory=list)
    error: Optional[SyncError] = None

    @property
    def success(self) -> bool:
        return self.error is None


def normalize_url(value: str) -> str:
    """
    Normalize a remote URL to the ``user@host:owner/repo.git`` form.

    The first ``ssh://`` is dropped; when the remainder still has two or
    more ``/`` and its host is followed by a ``/``, that first separator
    becomes ``:``.
    """
    value = value.replace("ssh://", "", 1)
    if value.count("/") >= 2:
        match = _SCP_HOST_PATH.match(value)
        if match:
            value = f"{match.group(1)}:{match.group(2)}"
    return value


def _in_remote_section(header: str, remote_name: str) -> bool:
    match = _REMOTE_SECTION.match(header)
    return bool(match) and match.group(1) == remote_name


def rewrite_config_lines(
    lines: List[str],
    original_link: str,
    new_link: str,
    remote_name: str = "origin",
    url_pattern: Pattern = URL_LINE_PATTERN
) -> Tuple[List[str], List[str]]:
    """
    Add two push URLs after the fetch URL of a remote.

    The first line of the ``[remote "<remote_name>"]`` section matching
    ``url_pattern`` is normalized (see ``normalize_url``) and followed by
    a ``pushurl`` duplicating it and a ``pushurl`` where ``original_link``
    is replaced by ``new_link``. Nothing happens when the section already
    holds a ``pushurl``. Other lines are never reordered or removed.

    Returns:
        Tuple of (resulting lines, lines added)
    """
    in_remote = False
    match_index = None
    has_pushurl = False

    for index, line in enumerate(lines):
        header = _SECTION_HEADER.match(line)
        if header:
            in_remote = _in_remote_section(header.group(1), remote_name)
            continue
        if not in_remote:
            continue
        if _PUSHURL_ASSIGNMENT.match(line):
            has_pushurl = True
        elif match_index is None and url_pattern.search(line) and _URL_ASSIGNMENT.match(line):
            match_index = index

    if match_index is None or has_pushurl:
        return list(lines), []

    indent, separator, value = _URL_ASSIGNMENT.match(lines[match_index]).groups()
    value = normalize_url(value)

    url_line = f"{indent}url{separator}{value}"
    push_line = f"{indent}pushurl{separator}{value}"
    mirror_line = f"{indent}pushurl{separator}{value.replace(original_link, new_link)}"

    added = [push_line, mirror_line]
    return lines[:match_index] + [url_line] + added + lines[match_index + 1:], added


def _write_atomic(config_path: Path, lines: List[str]) -> None:
    """Replace ``config_path`` with ``lines`` in one rename."""
    fd, temp_file = create_secure_temp_file(config_path.parent, suffix='.tmp')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            for line in lines:
                f.write(line + "\n")
            f.flush()
            os.fsync(f.fileno())
        shutil.copymode(config_path, temp_file)
        os.replace(temp_file, config_path)
    except BaseException:
        temp_file.unlink(missing_ok=True)
        raise


def rewrite_remote_config(
    config_path: Path,
    original_link: str,
    new_link: str,
    remote_name: str = "origin",
    submodule: Optional[str] = None
) -> ConfigRewriteResult:
    """
    Rewrite a repository configuration file to push to both providers.

    Args:
        config_path: ``.git/config`` of a repository or a submodule
        original_link: Identity link of the provider cloned from
        new_link: Identity link of the mirror provider
        remote_name: Remote whose URL is rewritten
        submodule: Submodule name used to qualify errors

    Returns:
        ConfigRewriteResult; I/O failures are carried as a secondary error
    """
    logger = logging.getLogger('curator.repo_sync.config_rewriter')
    scope = "submodule" if submodule else "main"

    try:
        lines = config_path.read_text(encoding='utf-8').splitlines()
        new_lines, added = rewrite_config_lines(lines, original_link, new_link, remote_name)

        if not added:
            logger.debug(f"No push URL added to {config_path}")
            return ConfigRewriteResult(changed=False)

        _write_atomic(config_path, new_lines)
        logger.debug(f"Added push URLs to {config_path}")
        return ConfigRewriteResult(changed=True, lines_added=added)

    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Failed to update {config_path}: {e}")
        return ConfigRewriteResult(
            changed=False,
            error=SyncError(
                ErrorCategory.CONFIG_REWRITE,
                f"Update repository git config ({scope}): {e}",
                submodule=submodule
            )
        )
