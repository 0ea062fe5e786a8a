# Record delimiters
HEADER_MARKER = "'''--- "
HEADER_END = " ---"
TERMINATOR = "'''"
SIGNATURE_OPEN = " --- [SIGNATURE:"
KEY_OPEN = " --- [KEY:"
RECORD_CLOSE = "]"
PUBLIC_KEY_NAME = "PUBLIC_KEY"
BINARY_SENTINEL = "[Binary file - contents omitted]"
NON_UTF8_PLACEHOLDER = "Non-UTF8 content"
ESCAPE_CHAR = "\\"

# Binary classification
BINARY_SAMPLE_SIZE = 4096
BINARY_MIN_COUNT = 5
BINARY_MIN_PERCENT = 10

# Ed25519 sizes
PUBLIC_KEY_SIZE = 32
SIGNATURE_SIZE = 64

# Collection / output
MMAP_THRESHOLD = 1 << 20  # 1 MiB
MAX_FILES = 100_000
DEFAULT_MAX_FILE_SIZE = 1 << 30  # 1 GiB
IO_BUFFER_SIZE = 1 << 18  # 256 KiB
ARCHIVE_FILE_MODE = 0o600
MAX_CONSECUTIVE_BLANK_LINES = 2
