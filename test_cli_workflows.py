from __future__ import annotations

import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path
from typing import Dict


def _build_fixture_tree(root: Path) -> Dict[str, bytes]:
    files: Dict[str, bytes] = {
        "readme.txt": b"hello world\n" * 20,
        "binary.bin": os.urandom(2048),
        "empty.txt": b"",
        "nul.bin": b"\x00\x01\x02",
    }
    for name, data in files.items():
        (root / name).write_bytes(data)
    return files


class CLIIntegrationTests(unittest.TestCase):
    def run_cli(self, args, *, expect: int | None = 0, cwd: Path | None = None):
        cmd = [sys.executable, "-m", "flatarc.cli"] + list(args)
        env = os.environ.copy()
        repo_root = Path(__file__).resolve().parent
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(repo_root) if not existing else f"{repo_root}{os.pathsep}{existing}"
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=env,
        )
        if expect is not None and proc.returncode != expect:
            raise AssertionError(
                f"CLI exited {proc.returncode}, expected {expect}\nCommand: {' '.join(cmd)}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}"
            )
        return proc

    def make_workspace(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        root = Path(tmp.name)
        src = root / "src"
        src.mkdir()
        data = _build_fixture_tree(src)
        return root, src, data

    def test_archive_unarchive_roundtrip(self):
        root, src, data = self.make_workspace()
        archive = root / "out.arc"

        proc = self.run_cli(["-a", str(src), str(archive)])
        self.assertIn("Archiving complete", proc.stdout)
        self.assertTrue(archive.exists())

        out = root / "extract"
        proc = self.run_cli(["-u", str(archive), str(out)])
        self.assertIn("Unarchiving complete", proc.stdout)
        for name, content in data.items():
            self.assertEqual((out / name).read_bytes(), content)

    def test_second_archive_is_skipped(self):
        root, src, _data = self.make_workspace()
        archive = root / "out.arc"
        self.run_cli(["-a", str(src), str(archive)])
        proc = self.run_cli(["-a", str(src), str(archive)])
        self.assertIn("Skipping archiving", proc.stdout)

        proc = self.run_cli(["-a", str(src), str(archive), "--force", "--quiet"])
        self.assertIn("Archiving complete", proc.stdout)
        self.assertNotIn("added:", proc.stdout)

    def test_check_and_list(self):
        root, src, data = self.make_workspace()
        archive = root / "out.arc"
        self.run_cli(["-a", str(src), str(archive)])

        proc = self.run_cli(["-c", str(archive), str(src)])
        self.assertIn("OK", proc.stdout)

        proc = self.run_cli(["-l", str(archive)])
        listed = dict(line.split("\t")[::-1] for line in proc.stdout.splitlines())
        self.assertEqual({k: int(v) for k, v in listed.items()}, {k: len(v) for k, v in data.items()})

        (src / "readme.txt").write_bytes(b"changed")
        proc = self.run_cli(["-c", str(archive), str(src)])
        self.assertIn("MISMATCH", proc.stdout)
        self.run_cli(["-c", str(archive), str(src), "--strict"], expect=3)

    def test_usage_errors_exit_1(self):
        root, src, _data = self.make_workspace()
        self.run_cli([], expect=1)
        self.run_cli(["-a", str(src)], expect=1)
        self.run_cli(["-x", str(src), str(root / "out.arc")], expect=1)
        self.run_cli(["-a", "-u", str(src), str(root / "out.arc")], expect=1)

    def test_surplus_positionals_are_ignored(self):
        root, src, data = self.make_workspace()
        archive = root / "out.arc"
        proc = self.run_cli(["-a", str(src), str(archive), "extra", "more"])
        self.assertIn("Archiving complete", proc.stdout)
        self.assertTrue(archive.exists())
        self.run_cli(["-a", str(src), str(archive), "--bogus"], expect=1)

    def test_missing_archive_exit_codes(self):
        root, _src, _data = self.make_workspace()
        missing = root / "missing.arc"
        proc = self.run_cli(["-u", str(missing), str(root / "out")], expect=0)
        self.assertIn("Error:", proc.stderr)
        self.run_cli(["-u", str(missing), str(root / "out"), "--strict"], expect=2)

    def test_native_sizes_flag(self):
        root, src, data = self.make_workspace()
        archive = root / "native.arc"
        self.run_cli(["-a", str(src), str(archive), "--native-sizes"])
        out = root / "extract"
        self.run_cli(["-u", str(archive), str(out), "--native-sizes"])
        for name, content in data.items():
            self.assertEqual((out / name).read_bytes(), content)


if __name__ == "__main__":
    unittest.main()
