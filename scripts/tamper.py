from __future__ import annotations

import argparse
import os
import random
import sys
from typing import Optional, Tuple

from llm_globber.errors import GlobberError
from llm_globber.constants import SIGNATURE_OPEN
from llm_globber.records import is_header, parse_header


def _flip_byte(path: str, offset: int, xor_val: int = 0x01) -> None:
    if offset < 0:
        raise ValueError("Offset must be non-negative")
    with open(path, "r+b") as f:
        f.seek(offset)
        b = f.read(1)
        if not b:
            raise ValueError("Offset beyond end of file")
        f.seek(offset)
        f.write(bytes([b[0] ^ (xor_val & 0xFF)]))
        f.flush()
        os.fsync(f.fileno())


def find_entry(archive: str, entry_path: str) -> Tuple[int, bytes]:
    """Return (offset of the header line, header line) for ``entry_path``."""
    offset = 0
    with open(archive, "rb") as f:
        for raw in f:
            line = raw.rstrip(b"\n")
            if is_header(line):
                header = parse_header(line)
                if header.path == entry_path:
                    return offset, line
            offset += len(raw)
    raise ValueError(f"Entry not found in archive: {entry_path}")


def cmd_by_offset(args: argparse.Namespace) -> None:
    _flip_byte(args.archive, args.offset, xor_val=args.xor)
    print(f"Flipped 1 byte at offset {args.offset}")


def cmd_content(args: argparse.Namespace) -> None:
    off, line = find_entry(args.archive, args.path)
    target = off + len(line) + 1 + args.within
    _flip_byte(args.archive, target, xor_val=args.xor)
    print(f"Flipped 1 content byte of {args.path} at archive offset {target}")


def cmd_signature(args: argparse.Namespace) -> None:
    off, line = find_entry(args.archive, args.path)
    idx = line.rfind(SIGNATURE_OPEN.encode("utf-8"))
    if idx < 0:
        raise ValueError(f"Entry is not signed: {args.path}")
    target = off + idx + len(SIGNATURE_OPEN) + args.within
    with open(args.archive, "r+b") as f:
        f.seek(target)
        ch = f.read(1)
        f.seek(target)
        # Swap within the base64 alphabet so the text stays decodable
        f.write(b"B" if ch == b"A" else b"A")
    print(f"Changed 1 signature character of {args.path} at archive offset {target}")


def cmd_random(args: argparse.Namespace) -> None:
    rng = random.Random(args.seed)
    size = os.path.getsize(args.archive)
    for _ in range(args.count):
        _flip_byte(args.archive, rng.randrange(0, size), xor_val=args.xor)
    print(f"Flipped {args.count} byte(s) at random offsets")


def main(argv: Optional[list[str]] = None) -> None:
    ap = argparse.ArgumentParser(prog="tamper", description="Tamper with llm-globber archives for testing")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_off = sub.add_parser("by-offset", help="Flip one byte at an absolute archive offset")
    p_off.add_argument("archive", help="Archive path")
    p_off.add_argument("--offset", type=int, required=True, help="Absolute byte offset in archive")
    p_off.add_argument("--xor", type=lambda x: int(x, 0), default=0x01, help="XOR mask to apply (default 0x01)")
    p_off.set_defaults(func=cmd_by_offset)

    p_content = sub.add_parser("content", help="Flip a byte in the stored content of one entry")
    p_content.add_argument("archive", help="Archive path")
    p_content.add_argument("path", help="Entry path as recorded in the archive")
    p_content.add_argument("--within", type=int, default=0, help="Byte offset within the content (default 0)")
    p_content.add_argument("--xor", type=lambda x: int(x, 0), default=0x01, help="XOR mask to apply (default 0x01)")
    p_content.set_defaults(func=cmd_content)

    p_sig = sub.add_parser("signature", help="Change one character of an entry's signature")
    p_sig.add_argument("archive", help="Archive path")
    p_sig.add_argument("path", help="Entry path as recorded in the archive")
    p_sig.add_argument("--within", type=int, default=0, help="Character offset within the signature (default 0)")
    p_sig.set_defaults(func=cmd_signature)

    p_rand = sub.add_parser("random", help="Flip N random bytes anywhere in the archive")
    p_rand.add_argument("archive", help="Archive path")
    p_rand.add_argument("--count", type=int, default=1, help="Number of random byte flips (default 1)")
    p_rand.add_argument("--seed", type=int, default=None, help="PRNG seed for reproducibility")
    p_rand.add_argument("--xor", type=lambda x: int(x, 0), default=0x01, help="XOR mask to apply (default 0x01)")
    p_rand.set_defaults(func=cmd_random)

    args = ap.parse_args(argv)
    try:
        args.func(args)
    except (GlobberError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
