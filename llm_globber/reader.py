"""Streaming parser for the flat text archive.

:class:`ArchiveReader` walks the archive one ``\\n``-terminated line at a
time and yields an :class:`~llm_globber.entries.ArchiveRecord` per entry,
so memory use is bounded by the largest single entry rather than the whole
archive. The parser is a two-state machine:

- ``_Scanning``: outside any entry. Blank separators and preamble text are
  skipped; a public-key record is only legal here, before any file record.
- ``_InEntry``: collecting content lines for the most recent header. A
  terminator closes the content, but the entry is only handed out when the
  next header arrives or the stream ends.
"""

from __future__ import annotations

import io
import os
from dataclasses import dataclass, field
from typing import BinaryIO, Iterator, List, Optional, Union

from .constants import IO_BUFFER_SIZE
from .context import Context, default_context
from .entries import ArchiveRecord
from .errors import IoFailure, MalformedHeader, SignatureError
from .records import (
    HEADER_KIND_KEY,
    is_header,
    is_sentinel,
    is_terminator,
    join_lines,
    parse_header,
    unescape_line,
)
from .signing import decode_public_key, encode_public_key


@dataclass
class _Scanning:
    pass


@dataclass
class _InEntry:
    path: str
    signature: Optional[str]
    line_no: int
    lines: List[bytes] = field(default_factory=list)
    terminated: bool = False

    def to_record(self) -> ArchiveRecord:
        return ArchiveRecord(
            path=self.path,
            content=join_lines(self.lines),
            signature=self.signature,
            terminated=self.terminated,
            line_no=self.line_no,
        )


_State = Union[_Scanning, _InEntry]


class ArchiveReader:
    """Read entries back out of an archive file or binary stream."""

    def __init__(self, source: Union[str, os.PathLike, BinaryIO], context: Optional[Context] = None):
        self.source = source
        self.f: Optional[BinaryIO] = None
        self._owns_file = False
        self.ctx = default_context(context)
        self.public_key: Optional[bytes] = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @classmethod
    def from_bytes(cls, data: bytes, context: Optional[Context] = None) -> "ArchiveReader":
        return cls(io.BytesIO(data), context=context)

    @property
    def public_key_b64(self) -> Optional[str]:
        return encode_public_key(self.public_key) if self.public_key is not None else None

    def open(self):
        if self.f is not None:
            return
        if isinstance(self.source, (str, os.PathLike)):
            try:
                self.f = open(self.source, "rb", buffering=IO_BUFFER_SIZE)
            except OSError as exc:
                raise IoFailure(f"Error opening archive: {self.source}: {exc}", exc) from exc
            self._owns_file = True
        else:
            self.f = self.source

    def close(self):
        if self.f is not None and self._owns_file:
            self.f.close()
        self.f = None
        self._owns_file = False

    def records(self) -> Iterator[ArchiveRecord]:
        """Yield every entry in archive order.

        Raises:
            MalformedHeader: a header line cannot be parsed, or the public key
                record is misplaced, duplicated or unterminated. Parsing
                cannot resynchronise after this, so the whole read stops.
        """
        if self.f is None:
            raise RuntimeError("Archive not open")
        self.public_key = None
        state: _State = _Scanning()
        seen_file = False
        key_line = 0
        line_no = 0
        for raw in self.f:
            line_no += 1
            line = raw[:-1] if raw.endswith(b"\n") else raw
            if key_line:
                if not is_terminator(line):
                    raise MalformedHeader("public key record is missing its terminator", key_line)
                key_line = 0
                continue
            if is_header(line):
                header = parse_header(line, line_no)
                if header.kind == HEADER_KIND_KEY:
                    if seen_file or self.public_key is not None:
                        raise MalformedHeader("public key record must appear once, before any file record", line_no)
                    self.public_key = self._decode_key(header.key or "", line_no)
                    self.ctx.debug(f"Found public key: {header.key}")
                    key_line = line_no
                    continue
                if isinstance(state, _InEntry):
                    yield state.to_record()
                seen_file = True
                state = _InEntry(path=header.path, signature=header.signature, line_no=line_no)
                continue
            if isinstance(state, _Scanning) or state.terminated:
                continue
            if is_terminator(line):
                state.terminated = True
                continue
            if not state.lines and is_sentinel(line):
                yield ArchiveRecord(path=state.path, is_binary=True, line_no=state.line_no)
                state = _Scanning()
                continue
            state.lines.append(unescape_line(line))
        if key_line:
            raise MalformedHeader("public key record is missing its terminator", key_line)
        if isinstance(state, _InEntry):
            if not state.terminated:
                self.ctx.warn(f"{state.path}: entry has no closing marker; using content up to end of archive")
            yield state.to_record()

    @staticmethod
    def _decode_key(text: str, line_no: int) -> bytes:
        try:
            return decode_public_key(text)
        except SignatureError as exc:
            raise MalformedHeader(f"invalid public key: {exc}", line_no) from exc
