"""Tests for writing an mdbook project to disk"""

import shutil
import tempfile
import unittest
from pathlib import Path

from ccsess2mdbook.book import NoConversationError, build_book, default_title
from ccsess2mdbook.conversation import SessionMetadata
from ccsess2mdbook.models import parse_record
from ccsess2mdbook.render import BookConfig, RenderOptions
from fixtures.sample_sessions import (
    assistant_entry,
    read_file_session,
    snapshot,
    tool_use,
    user_entry,
)


class TestBuildBook(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.output_dir = self.temp_dir / "book"

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_writes_project(self):
        records = [parse_record(e) for e in read_file_session()]
        result = build_book(records, self.output_dir, BookConfig(title="Test Book"))

        self.assertEqual(result.turn_count, 1)
        self.assertEqual(result.page_count, 3)
        self.assertEqual(len(result.files), 5)

        self.assertTrue((self.output_dir / "book.toml").is_file())
        summary = (self.output_dir / "src" / "SUMMARY.md").read_text(encoding="utf-8")
        self.assertTrue(summary.startswith("# Test Book"))

        src = self.output_dir / "src"
        self.assertEqual(
            sorted(p.name for p in src.iterdir()),
            ["SUMMARY.md", "turn_1_text_3.md", "turn_1_tool_2.md", "turn_1_user.md"],
        )
        tool_page = (src / "turn_1_tool_2.md").read_text(encoding="utf-8")
        self.assertIn("*Read: `/test.txt` (contents omitted)*", tool_page)

    def test_options_are_applied(self):
        records = [parse_record(e) for e in read_file_session()]
        build_book(records, self.output_dir, BookConfig(title="T"), RenderOptions(hide_read_results=False))
        tool_page = (self.output_dir / "src" / "turn_1_tool_2.md").read_text(encoding="utf-8")
        self.assertIn("file content", tool_page)

    def test_duplicate_tool_ids_reported(self):
        records = [
            parse_record(user_entry("u1", "Go")),
            parse_record(assistant_entry("a1", [tool_use("dup", "Bash")])),
            parse_record(assistant_entry("a2", [tool_use("dup", "Read")])),
        ]
        result = build_book(records, self.output_dir, BookConfig(title="T"))
        self.assertEqual(result.duplicate_tool_ids, ("dup",))

        clean = build_book([parse_record(e) for e in read_file_session()], self.output_dir, BookConfig(title="T"))
        self.assertEqual(clean.duplicate_tool_ids, ())

    def test_no_conversation(self):
        with self.assertRaises(NoConversationError):
            build_book([snapshot("m1")], self.output_dir, BookConfig(title="Empty"))
        self.assertFalse(self.output_dir.exists())


class TestDefaultTitle(unittest.TestCase):

    def test_short_session_id(self):
        metadata = SessionMetadata(session_id="abcdef12-3456-7890")
        self.assertEqual(default_title(metadata, "/x/session.jsonl"), "abcdef12")

    def test_file_stem_fallback(self):
        self.assertEqual(default_title(SessionMetadata(), "/x/session.jsonl"), "session")


if __name__ == "__main__":
    unittest.main()
