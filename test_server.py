#!/usr/bin/env python3
"""Tests for the MCP tool server helpers and tool registration."""

import asyncio
import shutil
import sys
import tempfile
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from mcp.server.fastmcp import FastMCP

from curator.config import Config
from curator.repo_sync import SyncMode, sync_repositories
from curator.server import list_repository_states, register_tools, run_sync
from git_test_helpers import GitFixture


class TestServerHelpers(unittest.TestCase):
    """Test cases for the functions behind the MCP tools."""

    def setUp(self):
        print(f"\nSetting up test: {self._testMethodName}")
        self.temp_dir = Path(tempfile.mkdtemp())
        self.fixture = GitFixture(self.temp_dir)
        self.config = Config(
            storage_path=self.fixture.storage_dir,
            repositories=["cloned", "empty", "absent"],
            origin_username="acme",
            mirror_url="git.example.com",
            mirror_username="acme",
            private_key_path=self.temp_dir / "no_such_key"
        )

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def test_list_repository_states(self):
        self.fixture.create_remote("cloned")
        sync_repositories(["cloned"], **self.fixture.sync_kwargs())
        self.fixture.local_path("empty").mkdir()

        result = list_repository_states(self.config)

        self.assertEqual(result["cloned"], 1)
        self.assertEqual(result["total"], 3)
        self.assertEqual(
            [(entry["name"], entry["state"]) for entry in result["repositories"]],
            [("cloned", "repository"), ("empty", "empty_directory"), ("absent", "missing")]
        )

    def test_missing_key_is_reported_not_raised(self):
        result = run_sync(self.config, SyncMode.PULL, None, None)

        self.assertFalse(result["success"])
        self.assertEqual(result["error_code"], "CREDENTIALS_UNAVAILABLE")

    def test_unknown_repository_is_reported(self):
        result = run_sync(self.config, SyncMode.CLONE, ["other"], None)

        self.assertFalse(result["success"])
        self.assertEqual(result["error_code"], "INVALID_SELECTION")

    def test_tools_are_registered(self):
        server = FastMCP("Curator Test")
        register_tools(server, self.config)

        tools = asyncio.run(server.list_tools())

        self.assertEqual(
            sorted(tool.name for tool in tools),
            ["clone_repositories", "list_repositories", "pull_repositories"]
        )


if __name__ == "__main__":
    unittest.main(verbosity=2)
