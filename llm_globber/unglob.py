from __future__ import annotations

import os
import posixpath
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .context import Context, default_context
from .entries import ArchiveRecord, EntryFailure, UnglobResult
from .errors import (
    ContainmentViolation,
    IoFailure,
    NoFilesExtracted,
    SignatureError,
    SignatureVerificationFailed,
)
from .reader import ArchiveReader
from .signing import verify as verify_signature


EXISTS_POLICIES = ("overwrite", "skip", "rename", "fail")


def _next_nonconflicting_path(path: Path) -> Path:
    if not os.path.lexists(path):
        return path
    root, ext = os.path.splitext(path.name)
    i = 1
    while True:
        candidate = path.with_name(f"{root} ({i}){ext}")
        if not os.path.lexists(candidate):
            return candidate
        i += 1


def _clean_prefix(prefix: str) -> Optional[str]:
    p = posixpath.normpath(str(prefix).replace("\\", "/"))
    if p in (".", "/", ""):
        return None
    return p.rstrip("/") + "/"


class Unglobber:
    """Materialize archive records as files under ``outdir``.

    Recorded paths are untrusted: a known input-root prefix is stripped, the
    remainder is joined under ``outdir`` and anything that resolves outside
    it is refused. In strict mode the first failing entry aborts the run;
    otherwise failures are collected on the result and extraction goes on.
    """

    def __init__(
        self,
        outdir: Union[str, os.PathLike],
        *,
        verify: bool = False,
        strict: bool = False,
        exists: str = "overwrite",
        strip_prefixes: Iterable[str] = (),
        context: Optional[Context] = None,
    ):
        if exists not in EXISTS_POLICIES:
            raise ValueError(f"exists must be one of {', '.join(EXISTS_POLICIES)}")
        self.outdir = Path(outdir)
        self.root = self.outdir.resolve()
        self.verify = verify
        self.strict = strict
        self.exists = exists
        self.ctx = default_context(context)
        prefixes = list(strip_prefixes) + [str(outdir), str(self.root)]
        cleaned = {p for p in (_clean_prefix(x) for x in prefixes) if p}
        self.prefixes: List[str] = sorted(cleaned, key=len, reverse=True)
        self.result = UnglobResult()

    def destination_for(self, path: str) -> Path:
        rel = posixpath.normpath(path.replace("\\", "/"))
        for prefix in self.prefixes:
            if rel.startswith(prefix):
                rel = rel[len(prefix):]
                break
        parts = [q for q in rel.split("/") if q not in ("", ".")]
        if not parts:
            raise ContainmentViolation(f"Archive path {path!r} does not name a file")
        dest = self.root.joinpath(*parts).resolve()
        try:
            dest.relative_to(self.root)
        except ValueError:
            raise ContainmentViolation(f"Refusing to write outside {self.root}: {path!r}") from None
        if dest == self.root:
            raise ContainmentViolation(f"Archive path {path!r} resolves to the output directory itself")
        return dest

    def run(self, reader: ArchiveReader) -> UnglobResult:
        try:
            self.outdir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise IoFailure(f"Could not create output directory: {self.outdir}: {exc}", exc) from exc
        for record in reader.records():
            try:
                self.extract(record, reader.public_key)
            except (SignatureVerificationFailed, ContainmentViolation) as exc:
                self._fail(record, exc)
            except OSError as exc:
                self._fail(record, IoFailure(f"Could not write {record.path}: {exc}", exc))
        if self.verify and reader.public_key is None:
            self._anomaly("signature verification requested but the archive carries no public key")
        if self.result.extracted + self.result.skipped == 0:
            raise NoFilesExtracted(failures=self.result.failures)
        return self.result

    def extract(self, record: ArchiveRecord, public_key: Optional[bytes] = None) -> Optional[Path]:
        dest = self.destination_for(record.path)
        if self.verify and public_key is not None and not record.is_binary:
            if record.signature is None:
                self._anomaly(f"{record.path}: entry is not signed")
            else:
                try:
                    verify_signature(public_key, record.content, record.signature)
                except SignatureError as exc:
                    raise SignatureVerificationFailed(record.path, exc) from exc
                self.ctx.debug(f"Signature verified for {record.path}")

        data = record.content
        if data and not data.endswith(b"\n"):
            data += b"\n"

        if os.path.lexists(dest):
            if self.exists == "skip":
                self.ctx.info(f"    skipping: {record.path} (exists)")
                self.result.skipped += 1
                return None
            if self.exists == "rename":
                dest = _next_nonconflicting_path(dest)
                self.result.renamed += 1
            elif self.exists == "fail":
                raise FileExistsError(f"Destination exists: {dest}")
            elif dest.is_dir():
                raise IsADirectoryError(f"Cannot overwrite directory with file: {dest}")

        dest.parent.mkdir(parents=True, exist_ok=True)
        with open(dest, "wb") as fh:
            fh.write(data)
        self.result.extracted += 1
        if record.is_binary:
            self.result.binary += 1
        self.result.written.append(dest)
        self.ctx.debug(f"Extracted {record.path} -> {dest}")
        return dest

    def _fail(self, record: ArchiveRecord, exc: Exception):
        if self.strict:
            raise exc
        self.ctx.warn(str(exc))
        self.result.failures.append(EntryFailure(path=record.path, error=exc))

    def _anomaly(self, msg: str):
        self.ctx.warn(msg)
        self.result.anomalies.append(msg)


def unglob_archive(
    archive: Union[str, os.PathLike],
    outdir: Union[str, os.PathLike],
    *,
    verify: bool = False,
    strict: bool = False,
    exists: str = "overwrite",
    strip_prefixes: Iterable[str] = (),
    context: Optional[Context] = None,
) -> UnglobResult:
    """Extract every entry of the archive at ``archive`` into ``outdir``.

    Raises:
        MalformedHeader: the archive has a header that cannot be parsed.
        SignatureVerificationFailed, ContainmentViolation, IoFailure: an entry
            failed and ``strict`` is set.
        NoFilesExtracted: nothing was written.
    """
    unglobber = Unglobber(
        outdir, verify=verify, strict=strict, exists=exists, strip_prefixes=strip_prefixes, context=context
    )
    try:
        with ArchiveReader(archive, context=context) as reader:
            return unglobber.run(reader)
    except OSError as exc:
        raise IoFailure(f"Error reading archive: {archive}: {exc}", exc) from exc


def unglob_bytes(
    data: bytes,
    outdir: Union[str, os.PathLike],
    *,
    verify: bool = False,
    strict: bool = False,
    exists: str = "overwrite",
    strip_prefixes: Iterable[str] = (),
    context: Optional[Context] = None,
) -> UnglobResult:
    unglobber = Unglobber(
        outdir, verify=verify, strict=strict, exists=exists, strip_prefixes=strip_prefixes, context=context
    )
    with ArchiveReader.from_bytes(data, context=context) as reader:
        return unglobber.run(reader)
