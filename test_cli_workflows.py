from __future__ import annotations

import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path
from typing import Dict

from arstream.build import read_members
from arstream.constants import AR_MAGIC, PORTABLE_MTIME
from arstream.header import Header, encode_header


def _build_fixture_files(root: Path) -> Dict[str, bytes]:
    files = {
        "debian-binary": b"2.0\n",
        "control.tar.gz": b"control data " * 11,
        "data.tar.xz": os.urandom(3001),
    }
    for name, content in files.items():
        (root / name).write_bytes(content)
        os.chmod(root / name, 0o644)
    return files


class CLIIntegrationTests(unittest.TestCase):
    def run_cli(self, args, *, expect: int | None = 0, cwd: Path | None = None):
        cmd = [sys.executable, "-m", "arstream.cli"] + list(args)
        env = os.environ.copy()
        repo_root = Path(__file__).resolve().parent
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(repo_root) if not existing else f"{repo_root}{os.pathsep}{existing}"
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=env,
        )
        if expect is not None and proc.returncode != expect:
            raise AssertionError(
                f"CLI exited {proc.returncode}, expected {expect}\nCommand: {' '.join(cmd)}\n"
                f"STDOUT:\n{proc.stdout.decode(errors='replace')}\nSTDERR:\n{proc.stderr.decode(errors='replace')}"
            )
        return proc

    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.root = Path(tmp.name)
        self.src = self.root / "src"
        self.src.mkdir()
        self.files = _build_fixture_files(self.src)
        self.archive = self.root / "pkg.deb"
        self.order = ["debian-binary", "control.tar.gz", "data.tar.xz"]

    def create(self, *extra):
        self.run_cli(["create", "--quiet", *extra, str(self.archive)] + [str(self.src / n) for n in self.order])

    def test_create_list_extract_roundtrip(self):
        self.create()
        self.assertEqual(self.archive.read_bytes()[:8], AR_MAGIC)

        proc = self.run_cli(["list", str(self.archive)])
        self.assertEqual(proc.stdout.decode().splitlines(), self.order)

        outdir = self.root / "out"
        self.run_cli(["extract", "--quiet", "--outdir", str(outdir), str(self.archive)])
        for name, content in self.files.items():
            self.assertEqual((outdir / name).read_bytes(), content)

    def test_extract_selected_and_missing(self):
        self.create()
        outdir = self.root / "sel"
        self.run_cli(["extract", "--quiet", "--outdir", str(outdir), str(self.archive), "debian-binary"])
        self.assertEqual(sorted(os.listdir(outdir)), ["debian-binary"])

        proc = self.run_cli(["extract", "--outdir", str(outdir), str(self.archive), "nope"], expect=1)
        self.assertIn("nope: not found", proc.stderr.decode())

    def test_print_member(self):
        self.create()
        proc = self.run_cli(["print", str(self.archive), "data.tar.xz"])
        self.assertEqual(proc.stdout, self.files["data.tar.xz"])
        self.run_cli(["print", str(self.archive), "missing"], expect=1)

    def test_verbose_list_and_deterministic(self):
        self.create("-D")
        for h, _ in read_members(str(self.archive)):
            self.assertEqual((h.uid, h.gid, h.mtime, h.mode), (0, 0, 0, 0o644))
        proc = self.run_cli(["list", "-v", str(self.archive)])
        lines = proc.stdout.decode().splitlines()
        self.assertEqual(len(lines), 3)
        self.assertTrue(lines[0].startswith("rw-r--r-- 0/0"))
        self.assertTrue(lines[0].endswith(" debian-binary"))

    def test_portable_mtime(self):
        self.create("--mtime", "portable")
        self.assertTrue(all(h.mtime == PORTABLE_MTIME for h, _ in read_members(str(self.archive))))

    def test_bad_mtime_rejected_by_argparse(self):
        self.run_cli(["create", "--mtime", "yesterday", str(self.archive), str(self.src / "debian-binary")], expect=2)

    def test_errors_exit_2(self):
        notar = self.root / "not.ar"
        notar.write_bytes(b"hello world, not an archive")
        proc = self.run_cli(["list", str(notar)], expect=2)
        self.assertIn("Error:", proc.stderr.decode())

        self.run_cli(["list", str(self.root / "absent.ar")], expect=2)

        # Name longer than 16 bytes: create fails and leaves nothing behind
        long_name = self.src / "a-very-long-member-name.bin"
        long_name.write_bytes(b"x")
        self.run_cli(["create", str(self.archive), str(long_name)], expect=2)
        self.assertFalse(self.archive.exists())

    def test_extract_refuses_unsafe_names(self):
        data = AR_MAGIC + encode_header(Header(name="../evil", size=2)) + b"no"
        data += encode_header(Header(name="fine", size=2)) + b"ok"
        self.archive.write_bytes(data)
        outdir = self.root / "x" / "out"
        proc = self.run_cli(["extract", "--quiet", "--outdir", str(outdir), str(self.archive)], expect=1)
        self.assertIn("unsafe member name", proc.stderr.decode())
        self.assertFalse((self.root / "x" / "evil").exists())
        self.assertEqual((outdir / "fine").read_bytes(), b"ok")


if __name__ == "__main__":
    unittest.main()
