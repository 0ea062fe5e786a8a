"""Line-level building blocks of the archive text format.

Every record starts with a header line beginning with ``'''--- ``. Text
records end with a ``'''`` terminator line; binary records carry a single
sentinel line instead of content. Content lines that would read as one of
these delimiters are escaped with one extra leading backslash, which the
reader strips again, so any text survives a round trip.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .constants import (
    BINARY_SENTINEL,
    ESCAPE_CHAR,
    HEADER_END,
    HEADER_MARKER,
    KEY_OPEN,
    PUBLIC_KEY_NAME,
    RECORD_CLOSE,
    SIGNATURE_OPEN,
    TERMINATOR,
)
from .errors import MalformedHeader


_ENC = "utf-8"
_ERRORS = "surrogateescape"

HEADER_MARKER_B = HEADER_MARKER.encode(_ENC)
TERMINATOR_B = TERMINATOR.encode(_ENC)
SENTINEL_B = BINARY_SENTINEL.encode(_ENC)
_ESC_B = ESCAPE_CHAR.encode(_ENC)

HEADER_KIND_FILE = "file"
HEADER_KIND_KEY = "key"


@dataclass
class Header:
    kind: str
    path: str = ""
    signature: Optional[str] = None
    key: Optional[str] = None


def file_header(path: str, signature: Optional[str] = None) -> bytes:
    if not path:
        raise ValueError("Entry path may not be empty")
    if "\n" in path:
        raise ValueError(f"Entry path may not contain a newline: {path!r}")
    if signature is None:
        line = f"{HEADER_MARKER}{path}{HEADER_END}"
    else:
        line = f"{HEADER_MARKER}{path}{SIGNATURE_OPEN}{signature}{RECORD_CLOSE}"
    return line.encode(_ENC, _ERRORS) + b"\n"


def key_header(key_b64: str) -> bytes:
    return f"{HEADER_MARKER}{PUBLIC_KEY_NAME}{KEY_OPEN}{key_b64}{RECORD_CLOSE}\n".encode(_ENC)


def is_header(line: bytes) -> bool:
    return line.startswith(HEADER_MARKER_B)


def is_terminator(line: bytes) -> bool:
    return line == TERMINATOR_B


def is_sentinel(line: bytes) -> bool:
    return line == SENTINEL_B


def parse_header(line: bytes, line_no: int = 0) -> Header:
    """Split a header line into its path and optional signature or key.

    For the signed form the signature is whatever follows the last
    ``--- [SIGNATURE:`` delimiter up to the closing bracket, so paths may
    themselves contain the delimiter text.
    """
    if not is_header(line):
        raise MalformedHeader("not a header line", line_no)
    body = line[len(HEADER_MARKER_B):].decode(_ENC, _ERRORS)
    key_prefix = PUBLIC_KEY_NAME + KEY_OPEN
    if body.startswith(key_prefix) and body.endswith(RECORD_CLOSE):
        key = body[len(key_prefix):-1]
        # A signed file whose path starts like a key record has a second delimiter.
        if HEADER_END + " " not in key:
            return Header(kind=HEADER_KIND_KEY, path=PUBLIC_KEY_NAME, key=key)
    if body.endswith(RECORD_CLOSE):
        idx = body.rfind(SIGNATURE_OPEN)
        if idx > 0:
            return Header(
                kind=HEADER_KIND_FILE,
                path=body[:idx],
                signature=body[idx + len(SIGNATURE_OPEN):-1],
            )
    if body.endswith(HEADER_END) and len(body) > len(HEADER_END):
        return Header(kind=HEADER_KIND_FILE, path=body[: -len(HEADER_END)])
    raise MalformedHeader(f"unrecognised header {body[:80]!r}", line_no)


def _collides(line: bytes) -> bool:
    rest = line.lstrip(_ESC_B)
    return rest == TERMINATOR_B or rest == SENTINEL_B or rest.startswith(HEADER_MARKER_B)


def escape_line(line: bytes) -> bytes:
    return _ESC_B + line if _collides(line) else line


def unescape_line(line: bytes) -> bytes:
    if line.startswith(_ESC_B) and _collides(line):
        return line[1:]
    return line


def escape_content(content: bytes) -> bytes:
    lines: List[bytes] = content.split(b"\n")
    return b"\n".join(escape_line(ln) for ln in lines)


def join_lines(lines: List[bytes]) -> bytes:
    """Rejoin captured content lines exactly as the writer split them."""
    return b"\n".join(lines)
