from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .errors import GlobberError, PartialFailure


@dataclass
class ArchiveEntry:
    path: str
    content: bytes
    is_binary: bool = False
    signature: Optional[str] = None


@dataclass
class ArchiveRecord:
    """One finalized entry as recovered by the reader."""
    path: str
    content: bytes = b""
    is_binary: bool = False
    signature: Optional[str] = None
    terminated: bool = True
    line_no: int = 0

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class GlobStats:
    processed: int = 0
    failed: int = 0
    binary: int = 0
    bytes_written: int = 0


@dataclass
class GlobResult:
    output_path: Path
    stats: GlobStats
    public_key: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.stats.failed == 0

    def check(self) -> "GlobResult":
        if self.stats.failed and self.stats.processed:
            raise PartialFailure(self.stats.processed, self.stats.failed)
        return self


@dataclass
class EntryFailure:
    path: str
    error: GlobberError


@dataclass
class UnglobResult:
    extracted: int = 0
    binary: int = 0
    skipped: int = 0
    renamed: int = 0
    failures: List[EntryFailure] = field(default_factory=list)
    anomalies: List[str] = field(default_factory=list)
    written: List[Path] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)
