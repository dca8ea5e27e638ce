from __future__ import annotations

import os
import struct
from typing import BinaryIO, Callable, List, Optional

from .constants import SIZE_LE64
from .errors import ArchiveOpenFailed, CorruptRecord, SourceFileUnreadable
from .reader import archive_matches
from .records import write_record
from .results import ArchiveResult, FileFailure
from .walk import list_files


class ArchiveWriter:
    """Streaming writer that appends one record per file to a new container."""

    def __init__(self, out_path: str, size_struct: struct.Struct = SIZE_LE64):
        self.out_path = out_path
        self.size_struct = size_struct
        self.f: Optional[BinaryIO] = None
        self.names: List[str] = []
        self.bytes_written = 0

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self.f is not None:
            return
        try:
            self.f = open(self.out_path, "wb")
        except OSError as exc:
            raise ArchiveOpenFailed(f"Failed to open archive for writing: {self.out_path}: {exc}") from exc

    def close(self):
        if self.f is not None:
            self.f.close()
            self.f = None

    def add_file(self, name: str, fs_path: str) -> int:
        """Append ``fs_path`` as a record called ``name``.

        The size is taken from the open handle so that header and payload
        agree. A read error partway through the copy rolls the container back
        to the start of the record and raises SourceFileUnreadable. Returns the
        number of container bytes written.
        """
        if self.f is None:
            raise RuntimeError("Archive not open")
        try:
            src = open(fs_path, "rb")
        except OSError as exc:
            raise SourceFileUnreadable(f"Failed to open file: {fs_path}: {exc}") from exc
        start = self.f.tell()
        with src:
            size = os.fstat(src.fileno()).st_size
            try:
                n = write_record(self.f, name, size, src, self.size_struct)
            except (OSError, CorruptRecord) as exc:
                # drop the partial record so the container stays well formed
                self.f.seek(start)
                self.f.truncate()
                raise SourceFileUnreadable(f"Failed to read file: {fs_path}: {exc}") from exc
        self.names.append(name)
        self.bytes_written += n
        return n


def archive_folder(
    source_dir: str,
    archive_path: str,
    *,
    size_struct: struct.Struct = SIZE_LE64,
    force: bool = False,
    reporter: Optional[Callable[[str], None]] = None,
) -> ArchiveResult:
    """Pack every regular file under ``source_dir`` into ``archive_path``.

    Skips the write entirely when the existing container already matches the
    folder (unless ``force``). Files that cannot be read are recorded in the
    result and left out; the rest of the folder is still archived.

    Raises:
        NotADirectoryError: ``source_dir`` is not a directory.
        ArchiveOpenFailed: The container cannot be created.
    """
    if not os.path.isdir(source_dir):
        raise NotADirectoryError(f"Not a directory: {source_dir}")
    if not force and archive_matches(archive_path, source_dir, size_struct=size_struct):
        return ArchiveResult(archive_path=archive_path, status="skipped")

    res = ArchiveResult(archive_path=archive_path, status="written")
    files = list_files(source_dir, exclude=archive_path)
    with ArchiveWriter(archive_path, size_struct=size_struct) as w:
        for fd in files:
            try:
                w.add_file(fd.name, fd.path)
            except SourceFileUnreadable as exc:
                res.failures.append(FileFailure(name=fd.name, path=fd.path, error=exc))
                if reporter is not None:
                    reporter(f"Warning: {exc}")
                continue
            res.written.append(fd.name)
            res.total_bytes += fd.size
    return res
