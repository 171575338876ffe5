#!/usr/bin/env python3
"""
Helpers for building real git repositories in tests.

Remote repositories are bare repositories under a temporary folder. The
persisted remote URLs keep the ``git@<host>:<user>/<name>.git`` form used
in production; git is redirected to the local bare repositories through
``url.<base>.insteadOf`` entries passed in the environment, the same way
real credentials reach git.
"""

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional

from curator.platform import get_git_executable, get_platform_info
from curator.repo_sync.providers import ProviderSource

ORIGIN = ProviderSource("github.com", "acme")
MIRROR = ProviderSource("git.example.com", "acme")

GIT_IDENTITY = {
    "GIT_AUTHOR_NAME": "Curator Tests",
    "GIT_AUTHOR_EMAIL": "tests@example.com",
    "GIT_COMMITTER_NAME": "Curator Tests",
    "GIT_COMMITTER_EMAIL": "tests@example.com",
}


def run_git(*args: str, cwd: Path, env: Optional[Dict[str, str]] = None) -> str:
    """Run a git command and return its stripped standard output."""
    full_env = os.environ.copy()
    full_env["GIT_CONFIG_GLOBAL"] = os.devnull
    full_env["GIT_CONFIG_NOSYSTEM"] = "1"
    full_env.update(GIT_IDENTITY)
    if env:
        full_env.update(env)

    result = subprocess.run(
        [get_git_executable(), *args],
        cwd=cwd,
        env=full_env,
        check=True,
        capture_output=True,
        text=True,
        shell=get_platform_info().is_windows
    )
    return result.stdout.strip()


@dataclass(frozen=True)
class RedirectCredentials:
    """Credentials whose environment points provider URLs at local bare repositories."""
    env: Dict[str, str]

    def git_env(self) -> Dict[str, str]:
        return dict(self.env)


class GitFixture:
    """Bare remotes plus seed working copies used to push new commits."""

    def __init__(self, root: Path, providers: Iterable[ProviderSource] = (ORIGIN, MIRROR)):
        self.root = root
        self.remotes_dir = root / "remotes"
        self.seeds_dir = root / "seeds"
        self.storage_dir = root / "storage"
        self.key_path = root / "id_rsa"
        for directory in (self.remotes_dir, self.seeds_dir, self.storage_dir):
            directory.mkdir(parents=True, exist_ok=True)
        self.key_path.write_text("not a real key\n")
        self.providers = list(providers)
        self.credential_calls = []

    def redirect_env(self) -> Dict[str, str]:
        """GIT_CONFIG_* variables sending every provider URL to ``remotes_dir``."""
        entries = [
            (f"url.{self.remotes_dir.as_posix()}/.insteadOf", f"git@{provider.url}:{provider.username}/")
            for provider in self.providers
        ]
        entries.append(("protocol.file.allow", "always"))

        env = {
            "GIT_CONFIG_GLOBAL": os.devnull,
            "GIT_CONFIG_NOSYSTEM": "1",
            "GIT_CONFIG_COUNT": str(len(entries)),
        }
        for index, (key, value) in enumerate(entries):
            env[f"GIT_CONFIG_KEY_{index}"] = key
            env[f"GIT_CONFIG_VALUE_{index}"] = value
        return env

    def credential_provider(self, private_key_path: Path) -> RedirectCredentials:
        """Stands in for ``get_ssh_credentials`` in orchestrator runs."""
        self.credential_calls.append(private_key_path)
        return RedirectCredentials(self.redirect_env())

    def credentials(self) -> RedirectCredentials:
        return RedirectCredentials(self.redirect_env())

    def remote_path(self, name: str) -> Path:
        return self.remotes_dir / f"{name}.git"

    def seed_path(self, name: str) -> Path:
        return self.seeds_dir / name

    def local_path(self, name: str) -> Path:
        return self.storage_dir / name

    def create_remote(self, name: str, branches: Iterable[str] = ("main",),
                      files: Optional[Dict[str, str]] = None) -> Path:
        """
        Create a bare remote with one commit on ``main`` and one per extra branch.

        Returns:
            Path of the bare repository
        """
        bare = self.remote_path(name)
        bare.mkdir(parents=True)
        run_git("init", "--bare", "-b", "main", cwd=bare)

        seed = self.seed_path(name)
        seed.mkdir(parents=True)
        run_git("init", "-b", "main", cwd=seed)
        run_git("remote", "add", "origin", f"git@{ORIGIN.url}:{ORIGIN.username}/{name}.git", cwd=seed)

        for file_name, content in (files or {"README.md": f"# {name}\n"}).items():
            (seed / file_name).write_text(content)
        run_git("add", "-A", cwd=seed)
        run_git("commit", "-m", "Initial commit", cwd=seed)
        run_git("push", "origin", "main", cwd=seed, env=self.redirect_env())

        for branch in branches:
            if branch == "main":
                continue
            run_git("checkout", "-b", branch, "main", cwd=seed)
            (seed / f"{branch.replace('/', '_')}.txt").write_text(f"{branch}\n")
            run_git("add", "-A", cwd=seed)
            run_git("commit", "-m", f"Start {branch}", cwd=seed)
            run_git("push", "origin", branch, cwd=seed, env=self.redirect_env())
        run_git("checkout", "main", cwd=seed)

        return bare

    def push_commit(self, name: str, file_name: str = "CHANGES.md", content: str = "change\n",
                    branch: str = "main") -> str:
        """Commit a change in the seed of ``name`` and push it; returns the new commit hash."""
        seed = self.seed_path(name)
        run_git("checkout", branch, cwd=seed)
        (seed / file_name).write_text(content)
        run_git("add", "-A", cwd=seed)
        run_git("commit", "-m", f"Update {file_name}", cwd=seed)
        run_git("push", "origin", branch, cwd=seed, env=self.redirect_env())
        return run_git("rev-parse", "HEAD", cwd=seed)

    def add_submodule(self, name: str, submodule: str) -> None:
        """Register the remote ``submodule`` as a submodule of ``name`` and push."""
        seed = self.seed_path(name)
        url = f"git@{ORIGIN.url}:{ORIGIN.username}/{submodule}.git"
        run_git("submodule", "add", url, submodule, cwd=seed, env=self.redirect_env())
        run_git("commit", "-m", f"Add submodule {submodule}", cwd=seed)
        run_git("push", "origin", "main", cwd=seed, env=self.redirect_env())

    def set_remote_head(self, name: str, branch: str) -> None:
        run_git("symbolic-ref", "HEAD", f"refs/heads/{branch}", cwd=self.remote_path(name))

    def sync_kwargs(self, **overrides) -> dict:
        """Keyword arguments for ``sync_repositories`` wired to this fixture."""
        kwargs = {
            "storage_root": self.storage_dir,
            "origin": ORIGIN,
            "mirror": MIRROR,
            "private_key_path": self.key_path,
            "credential_provider": self.credential_provider,
        }
        kwargs.update(overrides)
        return kwargs
