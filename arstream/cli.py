from __future__ import annotations

import argparse
import os
import shutil
import stat
import sys
import time
from typing import List, Optional

from arstream.build import build_archive
from arstream.constants import PORTABLE_MTIME
from arstream.errors import ArError
from arstream.header import Header
from arstream.reader import ArReader
from arstream.sources import FileSource


def _safe_chmod(path: str, mode: int) -> None:
    """Best-effort chmod that never raises."""
    try:
        os.chmod(path, mode)
    except OSError as exc:
        print(f"Warning: failed to set mode on {path}: {exc}", file=sys.stderr)


def _safe_utime(path: str, mtime: int) -> None:
    """Best-effort utime that never raises."""
    try:
        os.utime(path, (mtime, mtime))
    except OSError as exc:
        print(f"Warning: failed to set timestamps on {path}: {exc}", file=sys.stderr)


def _member_path(outdir: str, name: str) -> str:
    """Map a member name to a path under ``outdir``.

    Raises ValueError for names that would escape ``outdir``.
    """
    parts = [p for p in name.replace("\\", "/").split("/") if p not in ("", ".")]
    if not parts or ".." in parts or name.startswith("/"):
        raise ValueError(f"unsafe member name: {name!r}")
    return os.path.join(outdir, *parts)


def _parse_mtime(value: str) -> int:
    if value == "portable":
        return PORTABLE_MTIME
    try:
        mtime = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected seconds since epoch or 'portable', got {value!r}") from None
    if mtime < 0:
        raise argparse.ArgumentTypeError("mtime must not be negative")
    return mtime


def format_header(h: Header) -> str:
    """Render a header like ``ar tv`` does."""
    perms = stat.filemode(stat.S_IFREG | h.mode)[1:]
    when = time.strftime("%b %d %H:%M %Y", time.localtime(h.mtime))
    return f"{perms} {h.uid}/{h.gid} {h.size:>10} {when} {h.name}"


def cmd_create(
    output: str,
    inputs: List[str],
    *,
    deterministic: bool = False,
    mtime: Optional[int] = None,
    quiet: bool = False,
) -> bool:
    """Create an archive from regular files; members are named by basename.

    Args:
        output: Archive path to write.
        inputs: Files to add, in order.
        deterministic: Zero uid/gid/mtime and use mode 0644.
        mtime: Timestamp applied to every member.
        quiet: Suppress per-member output.
    """
    sources = [FileSource(p) for p in inputs]
    if not quiet:
        for src in sources:
            print(f"   adding: {src.archive_path}")
    count = build_archive(output, sources, deterministic=deterministic, mtime=mtime)
    if not quiet:
        print(f"Wrote {count} member(s) to {output}")
    return True


def cmd_list(archive: str, *, verbose: bool = False) -> bool:
    """List archive members."""
    with ArReader.open(archive) as r:
        for h in r:
            print(format_header(h) if verbose else h.name)
    return True


def cmd_extract(archive: str, *, outdir: str = ".", names: Optional[List[str]] = None, quiet: bool = False) -> bool:
    """Extract members (all, or only ``names``) into ``outdir``.

    Returns False when a requested name was not found or a member was skipped.
    """
    wanted = set(names or [])
    found = set()
    ok = True
    with ArReader.open(archive) as r:
        for h in r:
            if wanted and h.name not in wanted:
                continue
            found.add(h.name)
            try:
                dst = _member_path(outdir, h.name)
            except ValueError as exc:
                print(f"Warning: skipping {exc}", file=sys.stderr)
                ok = False
                continue
            os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
            with open(dst, "wb") as out:
                shutil.copyfileobj(r, out)
            _safe_chmod(dst, h.mode)
            _safe_utime(dst, h.mtime)
            if not quiet:
                print(f" extracting: {h.name}")
    for missing in sorted(wanted - found):
        print(f"Warning: {missing}: not found in archive", file=sys.stderr)
        ok = False
    return ok


def cmd_print(archive: str, name: str) -> bool:
    """Write one member's payload to stdout."""
    out = sys.stdout.buffer
    with ArReader.open(archive) as r:
        for h in r:
            if h.name == name:
                shutil.copyfileobj(r, out)
                out.flush()
                return True
    print(f"Error: {name}: not found in archive", file=sys.stderr)
    return False


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="arstream",
        description="Unix ar archive tool (the container format of .deb packages)",
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_create = sub.add_parser("create", help="Create archive")
    ap_create.add_argument("output", help="Output archive path")
    ap_create.add_argument("inputs", nargs="+", help="Input files, added in order")
    ap_create.add_argument(
        "-D", "--deterministic", action="store_true", help="Zero uid/gid/mtime and use mode 0644 for every member"
    )
    ap_create.add_argument(
        "--mtime", type=_parse_mtime, help="Timestamp for every member: seconds since epoch, or 'portable' (2000-01-01)"
    )
    ap_create.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_list = sub.add_parser("list", help="List archive contents")
    ap_list.add_argument("archive", help="Archive path")
    ap_list.add_argument("-v", "--verbose", action="store_true", help="Show mode, owner, size and time")

    ap_extract = sub.add_parser("extract", help="Extract members")
    ap_extract.add_argument("archive", help="Archive path")
    ap_extract.add_argument("names", nargs="*", help="Members to extract (default: all)")
    ap_extract.add_argument("--outdir", default=".", help="Output directory")
    ap_extract.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_print = sub.add_parser("print", help="Write one member to stdout")
    ap_print.add_argument("archive", help="Archive path")
    ap_print.add_argument("name", help="Member name")

    args = ap.parse_args(argv)
    try:
        if args.cmd == "create":
            success = cmd_create(
                args.output, args.inputs, deterministic=args.deterministic, mtime=args.mtime, quiet=args.quiet
            )
        elif args.cmd == "list":
            success = cmd_list(args.archive, verbose=args.verbose)
        elif args.cmd == "extract":
            success = cmd_extract(args.archive, outdir=args.outdir, names=args.names, quiet=args.quiet)
        elif args.cmd == "print":
            success = cmd_print(args.archive, args.name)
        else:
            raise RuntimeError("Unknown command")
    except (ArError, OSError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
