from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Optional, TextIO


@dataclass
class Context:
    """Run-scoped reporting settings handed to every component.

    Messages go to ``stream``, or to whatever ``sys.stderr`` is at the time of
    printing when no stream is set. ``quiet`` silences everything except
    errors; ``verbose`` enables debug lines.
    """

    verbose: bool = False
    quiet: bool = False
    stream: Optional[TextIO] = field(default=None, repr=False)

    @property
    def out(self) -> TextIO:
        return self.stream if self.stream is not None else sys.stderr

    def debug(self, msg: str) -> None:
        if self.verbose and not self.quiet:
            print(f"Debug: {msg}", file=self.out)

    def info(self, msg: str) -> None:
        if not self.quiet:
            print(msg, file=self.out)

    def warn(self, msg: str) -> None:
        if not self.quiet:
            print(f"Warning: {msg}", file=self.out)

    def error(self, msg: str) -> None:
        print(f"Error: {msg}", file=self.out)

    def progress(self, msg: str) -> None:
        if not self.quiet:
            print(msg, end="\r", file=self.out, flush=True)


def default_context(ctx: Context | None) -> Context:
    return ctx if ctx is not None else Context()
