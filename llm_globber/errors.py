from __future__ import annotations


class GlobberError(Exception):
    """Base class for llm_globber errors."""


class IoFailure(GlobberError):
    """A create/open/read/write/rename step failed; wraps the OSError."""

    def __init__(self, message: str, cause: OSError | None = None):
        super().__init__(message)
        self.cause = cause


# Encode side
class NoInputMatched(GlobberError):
    pass


class NoFilesProcessed(GlobberError):
    pass


class PartialFailure(GlobberError):
    def __init__(self, processed: int, failed: int):
        super().__init__(f"{failed} of {processed + failed} entries failed")
        self.processed = processed
        self.failed = failed


# Decode side
class MalformedHeader(GlobberError):
    def __init__(self, message: str, line_no: int = 0):
        super().__init__(f"line {line_no}: {message}" if line_no else message)
        self.line_no = line_no


class ContainmentViolation(GlobberError):
    pass


class NoFilesExtracted(GlobberError):
    def __init__(self, message: str = "No files were extracted", failures=None):
        super().__init__(message)
        self.failures = list(failures or [])


# Signatures
class SignatureError(GlobberError):
    pass


class InvalidEncoding(SignatureError):
    pass


class InvalidLength(SignatureError):
    pass


class VerificationFailed(SignatureError):
    pass


class SignatureVerificationFailed(GlobberError):
    """An entry's signature did not check out; ``cause`` holds the engine error."""

    def __init__(self, path: str, cause: SignatureError):
        super().__init__(f"Signature verification failed for {path}: {cause}")
        self.path = path
        self.cause = cause
