"""
LLM Globber: pack source trees into one flat text archive for language models,
and unpack them again.

Features:

- Line-oriented archive with ``'''--- path ---`` headers, ``'''`` terminators
  and a sentinel for binary files; delimiter-like content lines are escaped.
- Optional per-file Ed25519 signatures (PyCryptodomex) with the public key
  embedded once at the top of the archive.
- Streaming writer and single-pass reader; extraction refuses paths that
  escape the destination directory.
- Blank-line normalization of finished archives via atomic replace.

Programmatic API: ``llm_globber.writer.glob_entries`` to encode,
``llm_globber.unglob.unglob_archive`` / ``unglob_bytes`` to decode, and the
``cmd_*`` functions in ``llm_globber.cli``.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "context",
    "entries",
    "errors",
    "classify",
    "signing",
    "records",
    "writer",
    "reader",
    "unglob",
    "normalize",
    "collect",
]
