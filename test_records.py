from __future__ import annotations

import unittest

from llm_globber.errors import MalformedHeader
from llm_globber.records import (
    HEADER_KIND_FILE,
    HEADER_KIND_KEY,
    escape_content,
    escape_line,
    file_header,
    is_header,
    is_sentinel,
    is_terminator,
    join_lines,
    key_header,
    parse_header,
    unescape_line,
)


class HeaderTests(unittest.TestCase):
    def test_unsigned_header(self):
        line = file_header("src/a.c")
        self.assertEqual(line, b"'''--- src/a.c ---\n")
        h = parse_header(line.rstrip(b"\n"))
        self.assertEqual(h.kind, HEADER_KIND_FILE)
        self.assertEqual(h.path, "src/a.c")
        self.assertIsNone(h.signature)

    def test_signed_header(self):
        line = file_header("b.h", "QUJD")
        self.assertEqual(line, b"'''--- b.h --- [SIGNATURE:QUJD]\n")
        h = parse_header(line.rstrip(b"\n"))
        self.assertEqual((h.path, h.signature), ("b.h", "QUJD"))

    def test_signature_taken_after_last_delimiter(self):
        odd = "weird --- [SIGNATURE:name"
        h = parse_header(file_header(odd, "c2ln").rstrip(b"\n"))
        self.assertEqual(h.path, odd)
        self.assertEqual(h.signature, "c2ln")

    def test_unsigned_path_that_looks_signed(self):
        odd = "x --- [SIGNATURE:y]"
        h = parse_header(file_header(odd).rstrip(b"\n"))
        self.assertEqual(h.path, odd)
        self.assertIsNone(h.signature)

    def test_public_key_header(self):
        line = key_header("S0VZ")
        self.assertEqual(line, b"'''--- PUBLIC_KEY --- [KEY:S0VZ]\n")
        h = parse_header(line.rstrip(b"\n"))
        self.assertEqual(h.kind, HEADER_KIND_KEY)
        self.assertEqual(h.key, "S0VZ")

    def test_file_named_public_key_is_a_file(self):
        h = parse_header(file_header("PUBLIC_KEY").rstrip(b"\n"))
        self.assertEqual(h.kind, HEADER_KIND_FILE)
        self.assertEqual(h.path, "PUBLIC_KEY")

    def test_signed_file_shaped_like_key_record(self):
        odd = "PUBLIC_KEY --- [KEY:x]"
        h = parse_header(file_header(odd, "c2ln").rstrip(b"\n"))
        self.assertEqual(h.kind, HEADER_KIND_FILE)
        self.assertEqual((h.path, h.signature), (odd, "c2ln"))
        h = parse_header(file_header(odd).rstrip(b"\n"))
        self.assertEqual((h.kind, h.path), (HEADER_KIND_FILE, odd))

    def test_non_utf8_path_survives(self):
        path = b"caf\xe9.txt".decode("utf-8", "surrogateescape")
        self.assertEqual(parse_header(file_header(path).rstrip(b"\n")).path, path)

    def test_malformed_headers(self):
        for bad in (b"'''--- no trailer", b"'''--- ---", b"'''--- a --- [SIG:abc]", b"'''---  ---x"):
            with self.assertRaises(MalformedHeader):
                parse_header(bad, 7)
        with self.assertRaises(MalformedHeader):
            parse_header(b"plain line")

    def test_malformed_header_reports_line(self):
        with self.assertRaises(MalformedHeader) as cm:
            parse_header(b"'''--- broken", 12)
        self.assertEqual(cm.exception.line_no, 12)
        self.assertIn("line 12", str(cm.exception))

    def test_header_rejects_bad_paths(self):
        with self.assertRaises(ValueError):
            file_header("")
        with self.assertRaises(ValueError):
            file_header("two\nlines")

    def test_line_predicates(self):
        self.assertTrue(is_header(b"'''--- a ---"))
        self.assertFalse(is_header(b"'''"))
        self.assertTrue(is_terminator(b"'''"))
        self.assertFalse(is_terminator(b"''' "))
        self.assertFalse(is_terminator(b"'''\r"))
        self.assertTrue(is_sentinel(b"[Binary file - contents omitted]"))


class EscapeTests(unittest.TestCase):
    def test_colliding_lines_are_escaped(self):
        self.assertEqual(escape_line(b"'''"), b"\\'''")
        self.assertEqual(escape_line(b"'''--- x ---"), b"\\'''--- x ---")
        self.assertEqual(escape_line(b"[Binary file - contents omitted]"), b"\\[Binary file - contents omitted]")
        self.assertEqual(escape_line(b"\\'''"), b"\\\\'''")

    def test_ordinary_lines_untouched(self):
        for line in (b"", b"'''docstring'''", b"''' ", b"\\n", b"int x;", b"'''---no-space"):
            self.assertEqual(escape_line(line), line)
            self.assertEqual(unescape_line(line), line)

    def test_unescape_inverts_escape(self):
        for line in (b"'''", b"\\'''", b"\\\\'''--- y ---", b"[Binary file - contents omitted]", b"plain"):
            self.assertEqual(unescape_line(escape_line(line)), line)

    def test_escaped_lines_never_read_as_delimiters(self):
        for line in (b"'''", b"'''--- x ---", b"[Binary file - contents omitted]"):
            esc = escape_line(line)
            self.assertFalse(is_header(esc))
            self.assertFalse(is_terminator(esc))
            self.assertFalse(is_sentinel(esc))

    def test_escape_content_and_join(self):
        content = b"a\n'''\nb\n"
        escaped = escape_content(content)
        self.assertEqual(escaped, b"a\n\\'''\nb\n")
        lines = [unescape_line(ln) for ln in escaped.split(b"\n")]
        self.assertEqual(join_lines(lines), content)


if __name__ == "__main__":
    unittest.main()
