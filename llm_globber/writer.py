from __future__ import annotations

import itertools
import os
from pathlib import Path
from typing import BinaryIO, Iterable, Optional, Tuple

from .classify import is_binary_data
from .constants import ARCHIVE_FILE_MODE, IO_BUFFER_SIZE, NON_UTF8_PLACEHOLDER
from .context import Context, default_context
from .entries import ArchiveEntry, GlobResult, GlobStats
from .errors import IoFailure, NoFilesProcessed, NoInputMatched
from .normalize import collapse_blank_lines
from .records import SENTINEL_B, TERMINATOR_B, escape_content, file_header, key_header
from .signing import KeyPair, generate_keypair, sign


class ArchiveWriter:
    """Streaming writer for the flat text archive.

    Entries are appended in call order and flushed one at a time. With
    ``signing`` enabled a fresh Ed25519 keypair is generated on ``open()``,
    its public half is written as the first record, and every text entry
    carries a signature over its content.
    """

    def __init__(
        self,
        out_path: str,
        *,
        signing: bool = False,
        stats: Optional[GlobStats] = None,
        context: Optional[Context] = None,
    ):
        self.out_path = str(out_path)
        self.f: Optional[BinaryIO] = None
        self.signing = signing
        self.keypair: Optional[KeyPair] = None
        self.stats = stats if stats is not None else GlobStats()
        self.ctx = default_context(context)

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def public_key_b64(self) -> Optional[str]:
        return self.keypair.public_key_b64 if self.keypair is not None else None

    def open(self):
        if self.f is not None:
            return
        try:
            self.f = open(self.out_path, "wb", buffering=IO_BUFFER_SIZE)
            os.chmod(self.out_path, ARCHIVE_FILE_MODE)
        except OSError as exc:
            self.close()
            raise IoFailure(f"Error creating output file: {self.out_path}: {exc}", exc) from exc
        if self.signing:
            self.keypair = generate_keypair()
            self._write(key_header(self.keypair.public_key_b64) + TERMINATOR_B + b"\n\n")
            self.ctx.debug(f"Public key: {self.keypair.public_key_b64}")

    def close(self):
        if self.f is not None:
            self.f.close()
            self.f = None

    def add_entry(self, path: str, content: bytes) -> ArchiveEntry:
        """Serialize one ``(path, content)`` pair.

        The record is assembled in full before the single write call, so a
        failure never leaves half a header behind.

        Text that is not valid UTF-8 is stored as ``NON_UTF8_PLACEHOLDER`` and
        the signature is computed over that placeholder, not the original
        bytes, so the stored entry still verifies on extraction.
        """
        if self.f is None:
            raise RuntimeError("Archive not open")
        content = bytes(content)
        entry = ArchiveEntry(path=path, content=content, is_binary=is_binary_data(content))
        if entry.is_binary:
            record = file_header(path) + SENTINEL_B + b"\n"
        else:
            try:
                content.decode("utf-8")
            except UnicodeDecodeError:
                self.ctx.warn(f"{path} is not valid UTF-8; storing placeholder text")
                content = NON_UTF8_PLACEHOLDER.encode("utf-8")
                entry.content = content
            if self.keypair is not None:
                entry.signature = sign(self.keypair, content)
            record = file_header(path, entry.signature) + escape_content(content) + b"\n" + TERMINATOR_B + b"\n\n"
        self._write(record)
        self.stats.processed += 1
        self.stats.bytes_written += len(record)
        if entry.is_binary:
            self.stats.binary += 1
        self.ctx.debug(f"Wrote {path} ({len(content)} bytes{', binary' if entry.is_binary else ''})")
        return entry

    def _write(self, data: bytes):
        assert self.f is not None
        self.f.write(data)
        self.f.flush()


def glob_entries(
    entries: Iterable[Tuple[str, bytes]],
    out_path: str,
    *,
    signing: bool = False,
    abort_on_error: bool = False,
    normalize: bool = True,
    stats: Optional[GlobStats] = None,
    context: Optional[Context] = None,
) -> GlobResult:
    """Write ``entries`` into a new archive at ``out_path``.

    Per-entry failures are counted in ``stats.failed`` and skipped unless
    ``abort_on_error`` is set. An archive that ends up with no entries is
    removed again.

    Raises:
        NoInputMatched: ``entries`` was empty.
        NoFilesProcessed: every entry failed.
        IoFailure: the archive could not be created, or an entry failed
            with ``abort_on_error``.
    """
    ctx = default_context(context)
    stats = stats if stats is not None else GlobStats()
    it = iter(entries)
    first = next(it, None)
    if first is None:
        if stats.failed:
            raise NoFilesProcessed("No files were processed")
        raise NoInputMatched("No files found matching criteria")

    with ArchiveWriter(out_path, signing=signing, stats=stats, context=ctx) as w:
        for path, content in itertools.chain([first], it):
            try:
                w.add_entry(path, content)
            except (OSError, ValueError) as exc:
                stats.failed += 1
                ctx.warn(f"Failed to write {path}: {exc}")
                if abort_on_error:
                    raise IoFailure(f"Aborting on error while writing {path}: {exc}") from exc
        public_key = w.public_key_b64

    if stats.processed == 0:
        try:
            os.remove(out_path)
        except OSError as exc:
            ctx.warn(f"No files processed, and could not remove empty output file: {out_path}: {exc}")
        raise NoFilesProcessed("No files were processed")

    if normalize:
        try:
            collapse_blank_lines(out_path, context=ctx)
        except IoFailure as exc:
            ctx.error(str(exc))
    if stats.failed:
        ctx.warn(f"Failed to process {stats.failed} files")
    return GlobResult(output_path=Path(out_path), stats=stats, public_key=public_key)
