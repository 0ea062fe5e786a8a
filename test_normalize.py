from __future__ import annotations

import os
import stat
import tempfile
import unittest
from pathlib import Path

from llm_globber.context import Context
from llm_globber.errors import IoFailure
from llm_globber.normalize import collapse_blank_lines


QUIET = Context(quiet=True)


class CollapseTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "archive.txt"

    def tearDown(self):
        self._tmp.cleanup()

    def collapse(self, data: bytes, **kw) -> bytes:
        self.path.write_bytes(data)
        collapse_blank_lines(str(self.path), context=QUIET, **kw)
        return self.path.read_bytes()

    def test_runs_collapsed_to_two(self):
        self.assertEqual(self.collapse(b"a\n\n\n\n\nb\n"), b"a\n\n\nb\n")

    def test_short_runs_untouched(self):
        data = b"a\n\nb\n\n\nc\n"
        self.assertEqual(self.collapse(data), data)

    def test_whitespace_only_lines_count_as_blank(self):
        self.assertEqual(self.collapse(b"a\n \n\t\n  \n\nb\n"), b"a\n \n\t\nb\n")

    def test_idempotent(self):
        once = self.collapse(b"x\n\n\n\n\n\ny\n\n\n\n")
        self.assertEqual(self.collapse(once), once)

    def test_returns_dropped_count(self):
        self.path.write_bytes(b"a\n\n\n\n\nb\n")
        self.assertEqual(collapse_blank_lines(str(self.path), context=QUIET), 2)

    def test_custom_limit(self):
        self.assertEqual(self.collapse(b"a\n\n\n\nb\n", max_consecutive=1), b"a\n\nb\n")

    def test_entry_content_preserved(self):
        data = b"'''--- a.txt ---\nx\n\n\n\n\ny\n'''\n\n\n\n\n'''--- b.txt ---\nz\n'''\n\n"
        expected = b"'''--- a.txt ---\nx\n\n\n\n\ny\n'''\n\n\n'''--- b.txt ---\nz\n'''\n\n"
        self.assertEqual(self.collapse(data), expected)

    def test_binary_record_closes_entry(self):
        data = b"'''--- a.bin ---\n[Binary file - contents omitted]\n\n\n\n\n'''--- b.txt ---\nz\n'''\n"
        expected = b"'''--- a.bin ---\n[Binary file - contents omitted]\n\n\n'''--- b.txt ---\nz\n'''\n"
        self.assertEqual(self.collapse(data), expected)

    def test_collapse_everywhere(self):
        data = b"'''--- a.txt ---\nx\n\n\n\n\ny\n'''\n"
        expected = b"'''--- a.txt ---\nx\n\n\ny\n'''\n"
        self.assertEqual(self.collapse(data, preserve_entries=False), expected)

    def test_mode_preserved(self):
        self.path.write_bytes(b"a\n\n\n\nb\n")
        os.chmod(self.path, 0o640)
        collapse_blank_lines(str(self.path), context=QUIET)
        self.assertEqual(stat.S_IMODE(os.stat(self.path).st_mode), 0o640)

    def test_no_temp_files_left(self):
        self.collapse(b"a\n\n\n\nb\n")
        self.assertEqual(os.listdir(self._tmp.name), ["archive.txt"])

    def test_missing_file(self):
        with self.assertRaises(IoFailure):
            collapse_blank_lines(str(self.path), context=QUIET)
        self.assertEqual(os.listdir(self._tmp.name), [])


if __name__ == "__main__":
    unittest.main()
