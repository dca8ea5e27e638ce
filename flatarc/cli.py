from __future__ import annotations

import sys
import time
import argparse
import struct
from typing import List

from flatarc.constants import SIZE_LE64, SIZE_NATIVE
from flatarc.errors import FlatArcError
from flatarc.reader import ArchiveReader, compare_archive, extract_archive
from flatarc.writer import archive_folder


def _warn(msg: str) -> None:
    print(msg, file=sys.stderr)


def _size_struct(native: bool) -> struct.Struct:
    return SIZE_NATIVE if native else SIZE_LE64


def cmd_archive(
    source: str,
    archive: str,
    *,
    force: bool = False,
    native_sizes: bool = False,
    quiet: bool = False,
) -> bool:
    """Archive every regular file under ``source`` into ``archive``.

    Args:
        source: Folder to pack (walked recursively, structure is flattened).
        archive: Container path to create or replace.
        force: Rewrite even when the container already matches the folder.
        native_sizes: Use the legacy native-width size field.
        quiet: Limit output to summaries only.

    Returns:
        True when every file was archived (or the write was skipped).
    """
    t0 = time.time()
    res = archive_folder(source, archive, size_struct=_size_struct(native_sizes), force=force, reporter=_warn)
    if res.skipped:
        print("Archive already exists and contains identical files. Skipping archiving.")
        return True
    if not quiet:
        for name in res.written:
            print(f" added: {name}")
    dt = max(0.000001, time.time() - t0)
    mib = res.total_bytes / (1024 * 1024)
    print(f"Archiving complete: {len(res.written)} files ({mib:.2f} MiB), {len(res.failures)} skipped in {dt:.1f}s")
    return res.ok


def cmd_unarchive(archive: str, outdir: str, *, native_sizes: bool = False, quiet: bool = False) -> bool:
    """Extract every record of ``archive`` into ``outdir``."""
    res = extract_archive(archive, outdir, size_struct=_size_struct(native_sizes), reporter=_warn)
    if not quiet:
        for name in res.extracted:
            print(f" extracted: {name}")
    print(f"Unarchiving complete: {len(res.extracted)} files, {len(res.failures)} skipped")
    return res.ok


def cmd_check(archive: str, source: str, *, native_sizes: bool = False) -> bool:
    """Report whether ``archive`` already matches ``source``."""
    m = compare_archive(archive, source, size_struct=_size_struct(native_sizes))
    if m.matched:
        print(f"OK: archive matches folder ({m.records} files)")
    else:
        print(f"MISMATCH: {m.reason}")
    return m.matched


def cmd_list(archive: str, *, native_sizes: bool = False) -> bool:
    """List the records of ``archive`` (size and name)."""
    with ArchiveReader(archive, size_struct=_size_struct(native_sizes)) as r:
        for hdr in r.headers():
            print(f"{hdr.size}\t{hdr.name}")
    return True


class _ArgumentParser(argparse.ArgumentParser):
    # Usage errors exit 1 rather than argparse's 2.
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    ap = _ArgumentParser(
        prog="flatarc",
        description="Pack a folder's files into one flat container, or unpack it again.",
        epilog="Positional arguments after the second are ignored.",
    )
    mode = ap.add_mutually_exclusive_group(required=True)
    mode.add_argument("-a", dest="mode", action="store_const", const="archive", help="archive <sourceFolder> into <archivePath>")
    mode.add_argument("-u", dest="mode", action="store_const", const="unarchive", help="unarchive <archivePath> into <targetFolder>")
    mode.add_argument("-c", dest="mode", action="store_const", const="check", help="check whether <archivePath> matches <sourceFolder>")
    mode.add_argument("-l", dest="mode", action="store_const", const="list", help="list records of <archivePath>")
    ap.add_argument("source", help="Source folder (-a) or archive path (-u, -c, -l)")
    ap.add_argument("destination", nargs="?", help="Archive path (-a), target folder (-u) or source folder (-c)")
    ap.add_argument("--force", action="store_true", help="Archive even when the container already matches")
    ap.add_argument(
        "--native-sizes",
        action="store_true",
        help="Use the legacy native byte order/width size field instead of little-endian u64",
    )
    ap.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")
    ap.add_argument(
        "--strict",
        action="store_true",
        help="Exit 2 on archive-level errors and 3 on per-file failures or a failed check",
    )
    return ap


def main(argv: List[str] | None = None):
    ap = build_parser()
    args, extras = ap.parse_known_args(argv)
    unknown = [a for a in extras if a.startswith("-") and a != "-"]
    if unknown:
        ap.error(f"unrecognized arguments: {' '.join(unknown)}")
    # surplus positionals are ignored
    if args.mode != "list" and args.destination is None:
        ap.error("too few arguments")

    ok = True
    try:
        if args.mode == "archive":
            ok = cmd_archive(args.source, args.destination, force=args.force, native_sizes=args.native_sizes, quiet=args.quiet)
        elif args.mode == "unarchive":
            ok = cmd_unarchive(args.source, args.destination, native_sizes=args.native_sizes, quiet=args.quiet)
        elif args.mode == "check":
            ok = cmd_check(args.source, args.destination, native_sizes=args.native_sizes)
        elif args.mode == "list":
            ok = cmd_list(args.source, native_sizes=args.native_sizes)
        else:
            raise RuntimeError("Unknown mode")
    except (FlatArcError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2 if args.strict else 0)
    if args.strict and not ok:
        sys.exit(3)
    sys.exit(0)


if __name__ == "__main__":
    main()
