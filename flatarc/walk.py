from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterator, List, Optional


@dataclass
class FileDescriptor:
    name: str  # base name, used as the record name
    path: str  # absolute filesystem path
    size: int


def iter_files(root: str, exclude: Optional[str] = None) -> Iterator[FileDescriptor]:
    """Yield every regular file transitively under ``root``.

    Symlinked directories are not descended into; a symlink to a regular file
    counts as a regular file. Order is whatever os.walk produces.

    Args:
        root: Directory to enumerate.
        exclude: Optional path left out of the results (the container itself
            when it lives inside the folder being packed).
    """
    root = os.path.abspath(root)
    skip = os.path.realpath(exclude) if exclude else None
    for dirpath, dirnames, filenames in os.walk(root):
        # prune symlink directories to avoid walking into them
        dirnames[:] = [d for d in dirnames if not os.path.islink(os.path.join(dirpath, d))]
        for fn in filenames:
            full = os.path.join(dirpath, fn)
            if not os.path.isfile(full):
                continue
            if skip is not None and os.path.realpath(full) == skip:
                continue
            try:
                size = os.path.getsize(full)
            except OSError:
                size = 0
            yield FileDescriptor(name=fn, path=full, size=size)


def list_files(root: str, exclude: Optional[str] = None) -> List[FileDescriptor]:
    return list(iter_files(root, exclude))


def count_files(root: str, exclude: Optional[str] = None) -> int:
    return sum(1 for _ in iter_files(root, exclude))


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)
