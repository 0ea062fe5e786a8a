"""Select input files from the filesystem and load their bytes.

Selection mirrors the command line filters: an extension allow-list, a glob
pattern on the base name, a dot-file policy and a size limit. Recorded
archive paths are the paths as discovered (input path joined with the
relative walk path), not normalized.
"""

from __future__ import annotations

import fnmatch
import mmap
import os
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Tuple

from .constants import DEFAULT_MAX_FILE_SIZE, MAX_FILES, MMAP_THRESHOLD
from .context import Context, default_context
from .entries import GlobStats


@dataclass
class CollectOptions:
    file_types: List[str] = field(default_factory=list)
    filter_files: bool = True
    recursive: bool = False
    name_pattern: str = ""
    include_dot_files: bool = False
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    max_files: int = MAX_FILES


def parse_file_types(types_str: str) -> List[str]:
    """Turn ``"c, .h,txt"`` into ``[".c", ".h", ".txt"]``."""
    exts = []
    for ext in types_str.split(","):
        ext = ext.strip()
        if ext:
            exts.append(ext if ext.startswith(".") else "." + ext)
    return exts


def is_allowed_file_type(opts: CollectOptions, path: str) -> bool:
    if not opts.filter_files or not opts.file_types:
        return True
    ext = os.path.splitext(path)[1]
    return bool(ext) and ext in opts.file_types


def should_process_file(opts: CollectOptions, path: str, ctx: Optional[Context] = None) -> bool:
    ctx = default_context(ctx)
    base = os.path.basename(path)
    if base.startswith(".") and not opts.include_dot_files:
        ctx.debug(f"Skipping dot file: {path}")
        return False
    try:
        size = os.path.getsize(path)
    except OSError:
        return False
    if size > opts.max_file_size:
        ctx.warn(f"Skipping file {path}: size exceeds limit ({size} > {opts.max_file_size})")
        return False
    if opts.name_pattern and not fnmatch.fnmatch(base, opts.name_pattern):
        return False
    return is_allowed_file_type(opts, path)


def _walk(opts: CollectOptions, top: str, ctx: Context) -> Iterator[str]:
    for root, dirnames, filenames in os.walk(top):
        if not opts.include_dot_files:
            dirnames[:] = [d for d in dirnames if not d.startswith(".")]
        dirnames.sort()
        for name in sorted(filenames):
            full = os.path.join(root, name)
            if os.path.isfile(full) and should_process_file(opts, full, ctx):
                yield full


def collect_inputs(inputs: Iterable[str], opts: CollectOptions, context: Optional[Context] = None) -> List[str]:
    """Expand files and directories into the ordered list of files to archive."""
    ctx = default_context(context)
    files: List[str] = []

    def _add(path: str) -> bool:
        if len(files) >= opts.max_files:
            ctx.warn(f"Maximum file limit reached ({opts.max_files})")
            return False
        files.append(path)
        return True

    for p in inputs:
        if not os.path.exists(p):
            ctx.warn(f"Could not access path {p}: Path does not exist")
            continue
        if os.path.isdir(p):
            if not opts.recursive:
                ctx.warn(f"{p} is a directory. Use -r to process recursively.")
                continue
            for full in _walk(opts, p, ctx):
                if not _add(full):
                    return files
        elif os.path.isfile(p) and should_process_file(opts, p, ctx):
            if not _add(p):
                return files
    return files


def read_input(path: str) -> bytes:
    with open(path, "rb") as fh:
        size = os.fstat(fh.fileno()).st_size
        if size >= MMAP_THRESHOLD:
            with mmap.mmap(fh.fileno(), 0, access=mmap.ACCESS_READ) as mm:
                return bytes(mm)
        return fh.read()


def iter_contents(
    paths: Iterable[str], stats: GlobStats, context: Optional[Context] = None
) -> Iterator[Tuple[str, bytes]]:
    """Yield ``(path, bytes)`` pairs, counting unreadable files as failed."""
    ctx = default_context(context)
    for path in paths:
        try:
            data = read_input(path)
        except OSError as exc:
            stats.failed += 1
            ctx.warn(f"Failed to read {path}: {exc}")
            continue
        ctx.debug(f"Processing file {path}: size {len(data)} bytes")
        yield path, data
