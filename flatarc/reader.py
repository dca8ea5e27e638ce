from __future__ import annotations

import os
import struct
from typing import BinaryIO, Callable, Iterator, List, Optional

from .constants import SIZE_LE64, DEFAULT_BUFFER_SIZE
from .errors import (
    ArchiveAbsent,
    ArchiveOpenFailed,
    CorruptRecord,
    InvalidRecordName,
    TargetFileUncreatable,
)
from .records import (
    RecordHeader,
    Record,
    read_exact,
    read_payload,
    read_record_header,
    iter_payload,
    skip_payload,
)
from .results import ExtractResult, FileFailure, MatchResult
from .walk import count_files, ensure_dir


Reporter = Callable[[str], None]


def check_member_name(name: str) -> str:
    """Reject record names that would escape the target directory."""
    if name in (".", ".."):
        raise InvalidRecordName(f"Refusing record name {name!r}")
    for sep in ("/", os.sep, os.altsep):
        if sep and sep in name:
            raise InvalidRecordName(f"Record name contains a path separator: {name!r}")
    return name


class ArchiveReader:
    """Sequential reader over a flatarc container."""

    def __init__(self, path: str, size_struct: struct.Struct = SIZE_LE64):
        self.path = path
        self.size_struct = size_struct
        self.f: Optional[BinaryIO] = None
        self.records_read = 0

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self.f is not None:
            return
        try:
            self.f = open(self.path, "rb")
        except FileNotFoundError as exc:
            raise ArchiveAbsent(f"Archive not found: {self.path}") from exc
        except OSError as exc:
            raise ArchiveOpenFailed(f"Failed to open archive for reading: {self.path}: {exc}") from exc

    def close(self):
        if self.f is not None:
            self.f.close()
            self.f = None

    def next_header(self) -> Optional[RecordHeader]:
        """Decode the next record header; the caller must consume its payload."""
        if self.f is None:
            raise RuntimeError("Archive not open")
        hdr = read_record_header(self.f, self.size_struct)
        if hdr is not None:
            self.records_read += 1
        return hdr

    def headers(self) -> Iterator[RecordHeader]:
        """Yield each record header, skipping over the payloads."""
        while True:
            hdr = self.next_header()
            if hdr is None:
                return
            yield hdr
            skip_payload(self.f, hdr.size)

    __iter__ = headers

    def records(self) -> Iterator[Record]:
        while True:
            hdr = self.next_header()
            if hdr is None:
                return
            yield Record(name=hdr.name, size=hdr.size, payload=read_payload(self.f, hdr.size))

    def list(self) -> List[RecordHeader]:
        return [h for h in self.headers()]


def extract_archive(
    archive_path: str,
    target_dir: str,
    *,
    size_struct: struct.Struct = SIZE_LE64,
    reporter: Optional[Reporter] = None,
) -> ExtractResult:
    """Write every record of ``archive_path`` as a file directly under ``target_dir``.

    Per-record failures (unsafe name, target not creatable or writable) are
    recorded and skipped. A truncated container stops the loop and is
    reported through ``ExtractResult.corrupt``; records already written stay.

    Raises:
        ArchiveOpenFailed: The container cannot be opened.
    """
    res = ExtractResult(archive_path=archive_path, target_dir=target_dir)

    def _fail(name: str, path: str, err) -> None:
        res.failures.append(FileFailure(name=name, path=path, error=err))
        if reporter is not None:
            reporter(f"Warning: {err}")

    with ArchiveReader(archive_path, size_struct=size_struct) as r:
        ensure_dir(target_dir)
        try:
            while True:
                hdr = r.next_header()
                if hdr is None:
                    break
                dest = os.path.join(target_dir, hdr.name)
                try:
                    check_member_name(hdr.name)
                except InvalidRecordName as exc:
                    _fail(hdr.name, dest, exc)
                    skip_payload(r.f, hdr.size)
                    continue
                chunks = iter_payload(r.f, hdr.size)
                try:
                    with open(dest, "wb") as out:
                        for chunk in chunks:
                            out.write(chunk)
                except OSError as exc:
                    err = TargetFileUncreatable(f"Failed to write file: {dest}: {exc}")
                    err.__cause__ = exc
                    _fail(hdr.name, dest, err)
                    # keep the stream aligned on the next record
                    for _chunk in chunks:
                        pass
                    continue
                res.extracted.append(hdr.name)
        except CorruptRecord as exc:
            res.corrupt = exc
            if reporter is not None:
                reporter(f"Warning: archive is corrupt, stopped after {len(res.extracted)} file(s): {exc}")
    return res


def _same_content(f: BinaryIO, fs_path: str, size: int) -> bool:
    # Fixed-length buffer equality over exactly ``size`` bytes from each side.
    with open(fs_path, "rb") as src:
        for chunk in iter_payload(f, size, DEFAULT_BUFFER_SIZE):
            try:
                other = read_exact(src, len(chunk))
            except EOFError:
                return False
            if chunk != other:
                return False
    return True


def compare_archive(
    archive_path: str,
    source_dir: str,
    *,
    size_struct: struct.Struct = SIZE_LE64,
) -> MatchResult:
    """Check whether ``archive_path`` holds exactly the files under ``source_dir``.

    Every record needs a same-named regular file directly under
    ``source_dir`` with the same size and the same bytes, and the number of
    regular files under ``source_dir`` (recursively) must equal the number of
    records. Stops at the first difference. Never raises for an absent or
    damaged archive; those are reported as a mismatch.
    """
    if not os.path.isdir(source_dir):
        return MatchResult(False, reason=f"not a directory: {source_dir}")
    try:
        r = ArchiveReader(archive_path, size_struct=size_struct)
        r.open()
    except ArchiveAbsent:
        return MatchResult(False, reason="archive absent")
    except ArchiveOpenFailed as exc:
        return MatchResult(False, reason=str(exc))

    with r:
        try:
            while True:
                hdr = r.next_header()
                if hdr is None:
                    break
                try:
                    check_member_name(hdr.name)
                except InvalidRecordName as exc:
                    return MatchResult(False, reason=str(exc), records=r.records_read)
                fs_path = os.path.join(source_dir, hdr.name)
                if not os.path.isfile(fs_path):
                    return MatchResult(False, reason=f"missing file: {hdr.name}", records=r.records_read)
                try:
                    fs_size = os.path.getsize(fs_path)
                except OSError as exc:
                    return MatchResult(False, reason=f"cannot stat {hdr.name}: {exc}", records=r.records_read)
                if fs_size != hdr.size:
                    return MatchResult(
                        False,
                        reason=f"size mismatch: {hdr.name} ({fs_size} != {hdr.size})",
                        records=r.records_read,
                    )
                try:
                    same = _same_content(r.f, fs_path, hdr.size)
                except OSError as exc:
                    return MatchResult(False, reason=f"cannot read {hdr.name}: {exc}", records=r.records_read)
                if not same:
                    return MatchResult(False, reason=f"content mismatch: {hdr.name}", records=r.records_read)
        except CorruptRecord as exc:
            return MatchResult(False, reason=f"corrupt archive: {exc}", records=r.records_read)
        n_records = r.records_read

    n_files = count_files(source_dir, exclude=archive_path)
    if n_files != n_records:
        return MatchResult(False, reason=f"file count mismatch ({n_files} != {n_records})", records=n_records)
    return MatchResult(True, records=n_records)


def archive_matches(archive_path: str, source_dir: str, **kwargs) -> bool:
    return compare_archive(archive_path, source_dir, **kwargs).matched
