#!/usr/bin/env python3
"""
Integration tests for clone-mode synchronization.

Each test builds real bare remotes, runs ``sync_repositories`` in clone
mode and inspects the resulting local repositories.
"""

import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent))

from git import Repo

from curator.errors import ErrorCategory
from curator.repo_sync import ProviderSource, SyncMode, SyncStatus, sync_repositories
from curator.repo_sync.repository_info import LocalPathState
from curator.repo_sync.state import classify_local_path, is_directory_empty
from git_test_helpers import GitFixture, run_git


class TestRepositoryCloning(unittest.TestCase):
    """Test cases for cloning repositories through the orchestrator."""

    def setUp(self):
        print(f"\nSetting up test: {self._testMethodName}")
        self.temp_dir = Path(tempfile.mkdtemp())
        self.fixture = GitFixture(self.temp_dir)
        print(f"  Test directory: {self.temp_dir}")

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def _clone(self, names, **overrides):
        return sync_repositories(names, mode=SyncMode.CLONE, **self.fixture.sync_kwargs(**overrides))

    def test_clone_adds_mirror_push_urls(self):
        """Absent repository is cloned and pushes to both providers."""
        print("Testing clone of an absent repository")
        self.fixture.create_remote("foo")

        report = self._clone(["foo"])

        outcome = report.outcomes[0]
        self.assertEqual(outcome.status, SyncStatus.CLONED)
        self.assertEqual(outcome.errors, [])

        config = (self.fixture.local_path("foo") / ".git" / "config").read_text().splitlines()
        url_index = config.index("\turl = git@github.com:acme/foo.git")
        self.assertEqual(config[url_index + 1], "\tpushurl = git@github.com:acme/foo.git")
        self.assertEqual(config[url_index + 2], "\tpushurl = git@git.example.com:acme/foo.git")

        push_urls = run_git("config", "--get-all", "remote.origin.pushurl", cwd=self.fixture.local_path("foo"))
        self.assertEqual(push_urls.splitlines(), ["git@github.com:acme/foo.git", "git@git.example.com:acme/foo.git"])
        print("  ✓ Push URLs configured for origin and mirror")

    def test_clone_creates_local_branches(self):
        self.fixture.create_remote("foo", branches=("main", "develop"))

        report = self._clone(["foo"])

        outcome = report.outcomes[0]
        self.assertEqual(sorted(outcome.local_branches), ["develop", "main"])
        repo = Repo(self.fixture.local_path("foo"))
        try:
            self.assertEqual(repo.heads["develop"].tracking_branch().name, "origin/develop")
            self.assertEqual(repo.active_branch.name, "main")
        finally:
            repo.close()

    def test_empty_directory_is_replaced_by_clone(self):
        """An empty folder at the local path is deleted and the clone proceeds."""
        self.fixture.create_remote("foo")
        self.fixture.local_path("foo").mkdir()

        report = self._clone(["foo"])

        self.assertEqual(report.outcomes[0].status, SyncStatus.CLONED)
        self.assertTrue((self.fixture.local_path("foo") / "README.md").exists())

    def test_non_empty_folder_is_skipped(self):
        """A non-empty folder that is not a repository is never deleted or cloned into."""
        self.fixture.create_remote("foo")
        local = self.fixture.local_path("foo")
        local.mkdir()
        (local / "notes.txt").write_text("keep me\n")

        report = self._clone(["foo"])

        outcome = report.outcomes[0]
        self.assertEqual(outcome.status, SyncStatus.SKIPPED)
        self.assertTrue(outcome.succeeded)
        self.assertEqual((local / "notes.txt").read_text(), "keep me\n")
        self.assertFalse((local / ".git").exists())
        self.assertFalse((local / "README.md").exists())

    def test_existing_repository_is_left_untouched(self):
        self.fixture.create_remote("foo")
        self._clone(["foo"])
        config_before = (self.fixture.local_path("foo") / ".git" / "config").read_text()
        self.fixture.push_commit("foo")

        report = self._clone(["foo"])

        self.assertEqual(report.outcomes[0].status, SyncStatus.ALREADY_EXISTS)
        self.assertEqual((self.fixture.local_path("foo") / ".git" / "config").read_text(), config_before)
        self.assertFalse((self.fixture.local_path("foo") / "CHANGES.md").exists())

    def test_absent_hook_script_is_not_an_error(self):
        self.fixture.create_remote("foo")

        report = self._clone(["foo"], script_run_queue=["setup.sh"])

        self.assertEqual(report.outcomes[0].status, SyncStatus.CLONED)
        self.assertEqual(report.outcomes[0].errors, [])

    @unittest.skipUnless(shutil.which("bash"), "bash is required to run hook scripts")
    def test_hook_scripts_run_in_clone(self):
        self.fixture.create_remote("foo", files={
            "README.md": "# foo\n",
            "setup.sh": "echo ran > hook-ran.txt\n",
            "broken.sh": "exit 2\n",
        })

        report = self._clone(["foo"], script_run_queue=["setup.sh", "broken.sh"])

        outcome = report.outcomes[0]
        self.assertEqual(outcome.status, SyncStatus.CLONED)
        self.assertTrue((self.fixture.local_path("foo") / "hook-ran.txt").exists())
        self.assertEqual(outcome.error_messages, ["Run script broken.sh: exit status 2"])

    def test_clone_failure_does_not_stop_batch(self):
        self.fixture.create_remote("bar")

        report = self._clone(["missing", "bar"])

        failed, cloned = report.outcomes
        self.assertEqual(failed.status, SyncStatus.FAILED)
        self.assertEqual(failed.error_code, "GIT_CLONE_FAILED")
        self.assertTrue(failed.message.startswith("Unable to clone repository:"))
        self.assertEqual(cloned.status, SyncStatus.CLONED)
        self.assertEqual(report.failed, [failed])

    def test_incomplete_mirror_skips_config_rewrite(self):
        self.fixture.create_remote("foo")

        report = self._clone(["foo"], mirror=ProviderSource("", ""))

        outcome = report.outcomes[0]
        self.assertEqual(outcome.status, SyncStatus.CLONED)
        self.assertEqual(len(outcome.errors), 1)
        self.assertEqual(outcome.errors[0].category, ErrorCategory.CONFIG_REWRITE)
        config = (self.fixture.local_path("foo") / ".git" / "config").read_text()
        self.assertNotIn("pushurl", config)

    def test_clone_from_mirror(self):
        """Cloning from the mirror pushes back to the origin provider."""
        self.fixture.create_remote("foo")

        report = self._clone(["foo"], source="mirror")

        self.assertEqual(report.source, "mirror")
        config = (self.fixture.local_path("foo") / ".git" / "config").read_text()
        self.assertIn("\turl = git@git.example.com:acme/foo.git\n", config)
        self.assertIn("\tpushurl = git@git.example.com:acme/foo.git\n", config)
        self.assertIn("\tpushurl = git@github.com:acme/foo.git\n", config)

    def test_submodules_are_prepared(self):
        """Submodules get local branches, their default branch and push URLs."""
        print("Testing clone with a submodule")
        self.fixture.create_remote("lib", branches=("main", "develop"))
        self.fixture.create_remote("app")
        self.fixture.add_submodule("app", "lib")

        report = self._clone(["app"])

        outcome = report.outcomes[0]
        self.assertEqual(outcome.status, SyncStatus.CLONED)
        self.assertEqual(outcome.errors, [])
        self.assertEqual(len(outcome.submodules), 1)

        submodule = outcome.submodules[0]
        self.assertEqual(submodule.name, "lib")
        self.assertEqual(submodule.status, SyncStatus.CLONED)
        self.assertEqual(sorted(submodule.local_branches), ["develop", "main"])

        lib = Repo(self.fixture.local_path("app") / "lib")
        try:
            self.assertFalse(lib.head.is_detached)
            self.assertEqual(lib.active_branch.name, "main")
        finally:
            lib.close()

        module_config = self.fixture.local_path("app") / ".git" / "modules" / "lib" / "config"
        self.assertIn("pushurl = git@git.example.com:acme/lib.git", module_config.read_text())
        print("  ✓ Submodule reconciled and configured")

    def test_uninitialized_submodule_is_reported(self):
        """A declared submodule without a checkout does not fail its parent."""
        self.fixture.create_remote("lib")
        self.fixture.create_remote("app")
        self.fixture.add_submodule("app", "lib")
        clone_from = Repo.clone_from

        def clone_without_submodules(url, to_path, **kwargs):
            kwargs.pop("multi_options", None)
            return clone_from(url, to_path, **kwargs)

        with patch.object(Repo, "clone_from", side_effect=clone_without_submodules):
            report = self._clone(["app"])

        outcome = report.outcomes[0]
        self.assertEqual(outcome.status, SyncStatus.CLONED)
        self.assertEqual(outcome.errors, [])
        self.assertEqual([(sub.name, sub.status) for sub in outcome.submodules],
                         [("lib", SyncStatus.NOT_A_REPOSITORY)])

    def test_unreadable_folder_is_skipped_not_deleted(self):
        local = self.fixture.local_path("foo")
        local.mkdir(parents=True)

        with patch.object(Path, "iterdir", side_effect=PermissionError("Permission denied")):
            self.assertFalse(is_directory_empty(local))
            state, handle = classify_local_path(local, "foo")

        self.assertEqual(state, LocalPathState.NOT_REPOSITORY)
        self.assertIsNone(handle)
        self.assertTrue(local.is_dir())

    def test_credentials_obtained_once_per_run(self):
        self.fixture.create_remote("foo")
        self.fixture.create_remote("bar")

        self._clone(["foo", "bar"])

        self.assertEqual(self.fixture.credential_calls, [self.fixture.key_path])

    def test_local_commits_are_not_touched_by_second_clone(self):
        self.fixture.create_remote("foo")
        self._clone(["foo"])
        local = self.fixture.local_path("foo")
        (local / "local.txt").write_text("work in progress\n")
        run_git("add", "local.txt", cwd=local)
        run_git("commit", "-m", "Local work", cwd=local)
        head = run_git("rev-parse", "HEAD", cwd=local)

        self._clone(["foo"])

        self.assertEqual(run_git("rev-parse", "HEAD", cwd=local), head)


def run_tests():
    """Run all repository cloning tests."""
    print("Running Repository Cloning Tests")
    print("=" * 60)

    suite = unittest.TestLoader().loadTestsFromTestCase(TestRepositoryCloning)
    runner = unittest.TextTestRunner(verbosity=2, stream=sys.stdout)
    result = runner.run(suite)

    print("\n" + "=" * 60)
    print("Test Summary:")
    print(f"  Tests run: {result.testsRun}")
    print(f"  Failures: {len(result.failures)}")
    print(f"  Errors: {len(result.errors)}")

    success = len(result.failures) == 0 and len(result.errors) == 0
    print(f"\nOverall result: {'PASS' if success else 'FAIL'}")
    return success


if __name__ == "__main__":
    success = run_tests()
    sys.exit(0 if success else 1)
