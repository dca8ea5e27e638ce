from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .errors import FlatArcError


@dataclass
class FileFailure:
    name: str
    path: str
    error: FlatArcError

    def __str__(self) -> str:
        return f"{self.name}: {self.error}"


@dataclass
class ArchiveResult:
    archive_path: str
    status: str  # "written" or "skipped"
    written: List[str] = field(default_factory=list)
    failures: List[FileFailure] = field(default_factory=list)
    # Source bytes of the written files, as seen while walking the folder
    total_bytes: int = 0

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass
class ExtractResult:
    archive_path: str
    target_dir: str
    extracted: List[str] = field(default_factory=list)
    failures: List[FileFailure] = field(default_factory=list)
    # Set when the record stream was cut short; records before it are on disk.
    corrupt: Optional[FlatArcError] = None

    @property
    def ok(self) -> bool:
        return self.corrupt is None and not self.failures


@dataclass
class MatchResult:
    matched: bool
    reason: str = ""
    records: int = 0

    def __bool__(self) -> bool:
        return self.matched
