from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

from llm_globber.collect import CollectOptions, collect_inputs, iter_contents, parse_file_types
from llm_globber.constants import DEFAULT_MAX_FILE_SIZE
from llm_globber.context import Context, default_context
from llm_globber.entries import GlobResult, GlobStats, UnglobResult
from llm_globber.errors import GlobberError, NoInputMatched, PartialFailure
from llm_globber.reader import ArchiveReader
from llm_globber.unglob import EXISTS_POLICIES, unglob_archive
from llm_globber.writer import glob_entries


def _with_progress(
    items: Iterable[Tuple[str, bytes]], total: int, stats: GlobStats, ctx: Context, t0: float
) -> Iterator[Tuple[str, bytes]]:
    for i, item in enumerate(items):
        if i % 10 == 0:
            elapsed = time.time() - t0
            if elapsed >= 0.1:
                rate = stats.processed / elapsed
                ctx.progress(f"Processed {stats.processed}/{total} files ({rate:.1f} files/sec), {stats.failed} failed")
        yield item


def cmd_glob(
    inputs: List[str],
    *,
    output_dir: str,
    name: str,
    file_types: Optional[str] = None,
    all_files: bool = False,
    recursive: bool = False,
    pattern: str = "",
    max_size_mb: Optional[int] = None,
    dot_files: bool = False,
    abort_on_error: bool = False,
    signature: bool = False,
    progress: bool = False,
    context: Optional[Context] = None,
) -> GlobResult:
    """Collect files and write them into ``<output_dir>/<name>_<unix time>.txt``.

    Args:
        inputs: Files and/or directories to archive.
        output_dir: Directory for the archive (created when missing).
        name: Archive file name stem.
        file_types: Comma separated extensions to include, e.g. ".c,.h".
        all_files: Disable extension filtering.
        recursive: Walk directories.
        pattern: Glob matched against each file's base name.
        max_size_mb: Skip files larger than this many MiB.
        dot_files: Include hidden files and directories.
        abort_on_error: Stop at the first entry that fails to write.
        signature: Sign every text entry with a fresh Ed25519 key.
        progress: Print a progress line while writing.

    Raises:
        NoInputMatched: no file passed the filters.
    """
    ctx = default_context(context)
    opts = CollectOptions(
        file_types=parse_file_types(file_types) if file_types else [],
        filter_files=not all_files,
        recursive=recursive,
        name_pattern=pattern,
        include_dot_files=dot_files,
        max_file_size=(max_size_mb * 1024 * 1024) if max_size_mb is not None else DEFAULT_MAX_FILE_SIZE,
    )
    files = collect_inputs(inputs, opts, ctx)
    if not files:
        raise NoInputMatched("No files found matching criteria")

    out_dir = Path(output_dir)
    if not out_dir.exists():
        out_dir.mkdir(parents=True)
        ctx.info(f"Created output directory: {out_dir}")
    out_path = out_dir / f"{name}_{int(time.time())}.txt"

    stats = GlobStats()
    t0 = time.time()
    entries = iter_contents(files, stats, ctx)
    if progress:
        entries = _with_progress(entries, len(files), stats, ctx, t0)
    result = glob_entries(
        entries, str(out_path), signing=signature, abort_on_error=abort_on_error, stats=stats, context=ctx
    )
    if progress and not ctx.quiet:
        print(file=ctx.out)

    dt = max(0.000001, time.time() - t0)
    if not ctx.quiet:
        print(
            f"Done: {stats.processed} files ({stats.binary} binary) in {dt:.2f}s "
            f"({stats.processed / dt:.1f} files/sec); failed={stats.failed}. Output: {result.output_path}"
        )
    return result


def cmd_unglob(
    archive: str,
    *,
    outdir: str = ".",
    signature: bool = False,
    strict: bool = False,
    exists: str = "overwrite",
    strip_prefixes: Optional[List[str]] = None,
    context: Optional[Context] = None,
) -> UnglobResult:
    """Extract an archive into ``outdir``, optionally verifying signatures."""
    ctx = default_context(context)
    t0 = time.time()
    result = unglob_archive(
        archive,
        outdir,
        verify=signature,
        strict=strict,
        exists=exists,
        strip_prefixes=strip_prefixes or (),
        context=ctx,
    )
    dt = max(0.000001, time.time() - t0)
    if not ctx.quiet:
        print(
            f"Done: extracted {result.extracted} files ({result.binary} binary) in {dt:.2f}s; "
            f"failed={result.failed} skipped={result.skipped} renamed={result.renamed} "
            f"anomalies={len(result.anomalies)}"
        )
    return result


def cmd_list(archive: str, *, context: Optional[Context] = None) -> int:
    """Print ``kind<TAB>size<TAB>path`` for every entry; returns the entry count."""
    ctx = default_context(context)
    count = 0
    with ArchiveReader(archive, context=ctx) as r:
        for rec in r.records():
            kind = "binary" if rec.is_binary else ("signed" if rec.signature else "text")
            print(f"{kind}\t{rec.size}\t{rec.path}")
            count += 1
        if r.public_key_b64:
            print(f"public key: {r.public_key_b64}")
    return count


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="llm-globber",
        description="Collect source files into one text archive for LLMs, and extract them again",
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    ap.add_argument("-q", "--quiet", action="store_true", help="Quiet mode (errors only)")
    # Also accepted after the subcommand; SUPPRESS keeps the top-level value when absent
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS, help="Verbose output")
    common.add_argument("-q", "--quiet", action="store_true", default=argparse.SUPPRESS, help="Quiet mode (errors only)")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_glob = sub.add_parser("glob", parents=[common], help="Write files into a new archive")
    ap_glob.add_argument("inputs", nargs="+", help="Files or directories to process")
    ap_glob.add_argument("-o", "--output", required=True, help="Output directory path")
    ap_glob.add_argument("-n", "--name", required=True, help="Output filename (without extension)")
    ap_glob.add_argument("-t", "--types", help="File types to include (comma separated, e.g. '.c,.h,.txt')")
    ap_glob.add_argument("-a", "--all", action="store_true", help="Include all files (no filtering by type)")
    ap_glob.add_argument("-r", "--recursive", action="store_true", help="Recursively process directories")
    ap_glob.add_argument("--pattern", default="", help="Filter files by name pattern (glob syntax, e.g. '*.c')")
    ap_glob.add_argument(
        "-s",
        "--size",
        type=int,
        help=f"Maximum file size in MB (default: {DEFAULT_MAX_FILE_SIZE // (1024 * 1024)})",
    )
    ap_glob.add_argument("-d", "--dot", action="store_true", help="Include dot files (hidden files)")
    ap_glob.add_argument("-e", "--abort-on-error", action="store_true", help="Abort on errors (default is to continue)")
    ap_glob.add_argument("-p", "--progress", action="store_true", help="Show progress indicators")
    ap_glob.add_argument("--signature", action="store_true", help="Sign every text entry (Ed25519)")

    ap_unglob = sub.add_parser("unglob", parents=[common], help="Extract files from an archive")
    ap_unglob.add_argument("archive", help="Archive path")
    ap_unglob.add_argument("-o", "--outdir", default=".", help="Output directory")
    ap_unglob.add_argument("--signature", action="store_true", help="Verify entry signatures")
    ap_unglob.add_argument("--strict", action="store_true", help="Abort the whole run on the first failing entry")
    ap_unglob.add_argument(
        "--exists",
        choices=list(EXISTS_POLICIES),
        default="overwrite",
        help="What to do if a destination file exists (default: overwrite)",
    )
    ap_unglob.add_argument(
        "--strip-prefix",
        action="append",
        default=[],
        help="Path prefix to remove from recorded paths (repeatable; the output directory is always tried)",
    )

    ap_list = sub.add_parser("list", parents=[common], help="List archive entries")
    ap_list.add_argument("archive", help="Archive path")

    args = ap.parse_args(argv)
    ctx = Context(verbose=args.verbose, quiet=args.quiet)
    try:
        if args.cmd == "glob":
            if args.size is not None and args.size <= 0:
                raise ValueError("Invalid value for -s option. Must be a positive integer")
            result = cmd_glob(
                args.inputs,
                output_dir=args.output,
                name=args.name,
                file_types=args.types,
                all_files=args.all,
                recursive=args.recursive,
                pattern=args.pattern,
                max_size_mb=args.size,
                dot_files=args.dot,
                abort_on_error=args.abort_on_error,
                signature=args.signature,
                progress=args.progress,
                context=ctx,
            )
            result.check()
        elif args.cmd == "unglob":
            result = cmd_unglob(
                args.archive,
                outdir=args.outdir,
                signature=args.signature,
                strict=args.strict,
                exists=args.exists,
                strip_prefixes=args.strip_prefix,
                context=ctx,
            )
            if result.failures:
                sys.exit(1)
        elif args.cmd == "list":
            cmd_list(args.archive, context=ctx)
        else:
            raise RuntimeError("Unknown command")
    except PartialFailure as e:
        ctx.warn(str(e))
        sys.exit(1)
    except (GlobberError, OSError, ValueError, RuntimeError) as e:
        ctx.error(str(e))
        sys.exit(2)


if __name__ == "__main__":
    main()
