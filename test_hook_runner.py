#!/usr/bin/env python3
"""
Unit tests for the post-clone hook runner.

Scripts are real shell scripts run with bash inside a temporary folder.
"""

import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from curator.errors import ErrorCategory
from curator.repo_sync.hooks import run_hook_scripts


@unittest.skipUnless(shutil.which("bash"), "bash is required to run hook scripts")
class TestHookRunner(unittest.TestCase):
    """Test cases for run_hook_scripts."""

    def setUp(self):
        print(f"\nSetting up test: {self._testMethodName}")
        self.temp_dir = Path(tempfile.mkdtemp())
        self.repo_path = self.temp_dir / "foo"
        self.repo_path.mkdir()

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def _write_script(self, name: str, body: str) -> None:
        (self.repo_path / name).write_text(f"#!/usr/bin/env bash\n{body}\n")

    def test_absent_script_is_skipped_silently(self):
        """A queued script missing from the repository is neither run nor an error."""
        print("Testing absent hook script")
        result = run_hook_scripts(self.repo_path, ["setup.sh"])

        self.assertEqual(result.executed, [])
        self.assertEqual(result.skipped, ["setup.sh"])
        self.assertEqual(result.errors, [])
        print("  ✓ Absent script skipped without error")

    def test_script_runs_inside_repository(self):
        """Scripts run with the repository as working directory; ours is unchanged."""
        cwd_before = os.getcwd()
        self._write_script("setup.sh", "pwd > hook-ran.txt")

        result = run_hook_scripts(self.repo_path, ["setup.sh"])

        self.assertEqual(result.executed, ["setup.sh"])
        self.assertEqual(result.errors, [])
        marker = self.repo_path / "hook-ran.txt"
        self.assertTrue(marker.exists())
        self.assertEqual(Path(marker.read_text().strip()).resolve(), self.repo_path.resolve())
        self.assertEqual(os.getcwd(), cwd_before)

    def test_failing_script_does_not_stop_the_queue(self):
        self._write_script("first.sh", "echo broken >&2\nexit 3")
        self._write_script("second.sh", "touch second-ran")

        result = run_hook_scripts(self.repo_path, ["first.sh", "second.sh"])

        self.assertEqual(result.executed, ["first.sh", "second.sh"])
        self.assertEqual(len(result.errors), 1)
        self.assertEqual(result.errors[0].category, ErrorCategory.HOOK)
        self.assertEqual(result.errors[0].message, "Run script first.sh: exit status 3 (broken)")
        self.assertTrue((self.repo_path / "second-ran").exists())

    def test_queue_order_is_kept(self):
        self._write_script("a.sh", "echo a >> order.txt")
        self._write_script("b.sh", "echo b >> order.txt")

        run_hook_scripts(self.repo_path, ["b.sh", "a.sh"])

        self.assertEqual((self.repo_path / "order.txt").read_text().split(), ["b", "a"])

    def test_directory_with_script_name_is_skipped(self):
        (self.repo_path / "setup.sh").mkdir()

        result = run_hook_scripts(self.repo_path, ["setup.sh"])

        self.assertEqual(result.skipped, ["setup.sh"])
        self.assertEqual(result.errors, [])

    def test_timeout_is_reported(self):
        self._write_script("slow.sh", "sleep 5")

        result = run_hook_scripts(self.repo_path, ["slow.sh"], timeout=0.5)

        self.assertEqual(len(result.errors), 1)
        self.assertIn("timed out", result.errors[0].message)

    def test_missing_interpreter_is_reported(self):
        self._write_script("setup.sh", "true")

        result = run_hook_scripts(self.repo_path, ["setup.sh"], interpreter="curator-no-such-shell")

        self.assertEqual(result.executed, [])
        self.assertEqual(len(result.errors), 1)
        self.assertTrue(result.errors[0].message.startswith("Run script setup.sh:"))


def run_tests():
    """Run all hook runner tests."""
    print("Running Hook Runner Tests")
    print("=" * 60)

    suite = unittest.TestLoader().loadTestsFromTestCase(TestHookRunner)
    runner = unittest.TextTestRunner(verbosity=2, stream=sys.stdout)
    result = runner.run(suite)

    success = len(result.failures) == 0 and len(result.errors) == 0
    print(f"\nOverall result: {'PASS' if success else 'FAIL'}")
    return success


if __name__ == "__main__":
    success = run_tests()
    sys.exit(0 if success else 1)
