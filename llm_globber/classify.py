from __future__ import annotations

from .constants import BINARY_MIN_COUNT, BINARY_MIN_PERCENT, BINARY_SAMPLE_SIZE

_PRINTABLE_CONTROLS = frozenset(b"\n\r\t")


def is_binary_data(data: bytes) -> bool:
    """Heuristic text/binary test over the first 4 KiB of ``data``.

    A sample is binary when its NUL and control bytes (other than newline,
    carriage return and tab) number more than five and make up more than
    10% of the sample.
    """
    sample = memoryview(data)[:BINARY_SAMPLE_SIZE]
    n = len(sample)
    if n == 0:
        return False
    non_printable = sum(1 for b in sample if b < 32 and b not in _PRINTABLE_CONTROLS)
    return non_printable > BINARY_MIN_COUNT and (non_printable * 100 // n) > BINARY_MIN_PERCENT


def is_binary_file(path: str) -> bool:
    with open(path, "rb") as fh:
        return is_binary_data(fh.read(BINARY_SAMPLE_SIZE))
