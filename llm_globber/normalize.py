from __future__ import annotations

import os
import stat
import tempfile
from typing import BinaryIO, Optional

from .constants import IO_BUFFER_SIZE, MAX_CONSECUTIVE_BLANK_LINES
from .context import Context, default_context
from .errors import IoFailure
from .records import is_header, is_sentinel, is_terminator


def _collapse(src: BinaryIO, dst: BinaryIO, max_consecutive: int, preserve_entries: bool) -> int:
    blank_run = 0
    dropped = 0
    in_entry = False
    after_header = False
    for raw in src:
        line = raw.rstrip(b"\n")
        if is_header(line):
            in_entry, after_header = True, True
            blank_run = 0
            dst.write(raw)
            continue
        if in_entry:
            if is_terminator(line) or (after_header and is_sentinel(line)):
                in_entry = False
            after_header = False
            if preserve_entries:
                dst.write(raw)
                continue
        if raw.strip() == b"":
            blank_run += 1
            if blank_run > max_consecutive:
                dropped += 1
                continue
        else:
            blank_run = 0
        dst.write(raw)
    return dropped


def collapse_blank_lines(
    path: str,
    max_consecutive: int = MAX_CONSECUTIVE_BLANK_LINES,
    *,
    preserve_entries: bool = True,
    context: Optional[Context] = None,
) -> int:
    """Collapse runs of whitespace-only lines in a finished archive.

    The archive is streamed into a temporary file next to it, which then
    atomically replaces the original (permissions carried over). With
    ``preserve_entries`` the content of text entries is copied untouched so
    signatures keep verifying; only the space between records is collapsed.

    Returns:
        The number of lines dropped.
    """
    ctx = default_context(context)
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp_path = tempfile.mkstemp(prefix=".llm-globber-", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "wb", buffering=IO_BUFFER_SIZE) as dst, open(path, "rb") as src:
            dropped = _collapse(src, dst, max_consecutive, preserve_entries)
        os.chmod(tmp_path, stat.S_IMODE(os.stat(path).st_mode))
        os.replace(tmp_path, path)
    except OSError as exc:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        raise IoFailure(f"Error cleaning up file: {path}: {exc}", exc) from exc
    ctx.debug(f"Collapsed {dropped} blank lines in {path}")
    return dropped
