"""Tests for turn segmentation, session merging and the tool index"""

import unittest
from datetime import datetime, timezone

from ccsess2mdbook.conversation import (
    SessionSource,
    build_tool_index,
    extract_user_text,
    find_duplicate_tool_ids,
    first_timestamp,
    merge_sessions,
    segment_turns,
    session_metadata,
)
from ccsess2mdbook.models import SnapshotMarker, SummaryMarker
from fixtures.sample_sessions import (
    assistant,
    snapshot,
    summary,
    text,
    thinking,
    tool_result,
    tool_results,
    tool_use,
    user,
)


class TestExtractUserText(unittest.TestCase):

    def test_string_content(self):
        self.assertEqual(extract_user_text(user("u1", "Hello")), "Hello")

    def test_first_text_block(self):
        record = user("u1", [text("first"), text("second")])
        self.assertEqual(extract_user_text(record), "first")

    def test_tool_result_carrier_has_no_text(self):
        self.assertEqual(extract_user_text(tool_results("u1", tool_result("t1"))), "")


class TestSegmentTurns(unittest.TestCase):
    """Grouping records into turns"""

    def test_empty_input(self):
        self.assertEqual(segment_turns([]), [])

    def test_only_markers(self):
        self.assertEqual(segment_turns([snapshot("m1"), summary()]), [])

    def test_single_turn(self):
        turns = segment_turns([
            user("u1", "Hello"),
            assistant("a1", [text("Hi!")]),
        ])
        self.assertEqual(len(turns), 1)
        self.assertEqual(turns[0].index, 1)
        self.assertEqual([m.uuid for m in turns[0].messages], ["u1", "a1"])
        self.assertEqual(turns[0].user.uuid, "u1")

    def test_multiple_turns(self):
        turns = segment_turns([
            user("u1", "First"),
            assistant("a1", [text("Response 1")]),
            user("u2", "Second"),
            assistant("a2", [text("Response 2")]),
        ])
        self.assertEqual([t.index for t in turns], [1, 2])
        self.assertEqual(turns[1].user.uuid, "u2")

    def test_tool_results_stay_in_turn(self):
        turns = segment_turns([
            user("u1", "Read a file"),
            assistant("a1", [tool_use("t1", "Read", file_path="/test.txt")]),
            tool_results("u2", tool_result("t1", "file content")),
            assistant("a2", [text("Done!")]),
        ])
        self.assertEqual(len(turns), 1)
        self.assertEqual(len(turns[0].messages), 4)

    def test_turn_without_assistant(self):
        turns = segment_turns([user("u1", "Anyone there?")])
        self.assertEqual(len(turns), 1)
        self.assertEqual(len(turns[0].messages), 1)

    def test_whitespace_only_text_does_not_start_turn(self):
        turns = segment_turns([
            user("u1", "Hello"),
            user("u2", "   \n"),
            assistant("a1", [text("Hi")]),
        ])
        self.assertEqual(len(turns), 1)
        self.assertEqual([m.uuid for m in turns[0].messages], ["u1", "u2", "a1"])

    def test_records_before_first_turn_are_dropped(self):
        turns = segment_turns([
            tool_results("orphan", tool_result("t0")),
            assistant("a0", [text("stray")]),
            user("u1", "Hello"),
        ])
        self.assertEqual(len(turns), 1)
        self.assertEqual([m.uuid for m in turns[0].messages], ["u1"])

    def test_markers_are_ignored(self):
        turns = segment_turns([
            summary(),
            user("u1", "Hello"),
            snapshot("m1"),
            assistant("a1", [text("Hi")]),
        ])
        self.assertEqual([m.uuid for m in turns[0].messages], ["u1", "a1"])

    def test_first_message_always_has_text(self):
        turns = segment_turns([
            user("u1", "one"),
            tool_results("r1", tool_result("t1")),
            user("u2", [text("two")]),
            assistant("a1", [thinking("...")]),
        ])
        for turn in turns:
            self.assertTrue(extract_user_text(turn.user).strip())


class TestMergeSessions(unittest.TestCase):
    """Merging several session files"""

    def test_sources_ordered_by_first_timestamp(self):
        later = SessionSource("later", (user("u2", "Second", timestamp="2025-01-02T00:00:00Z"),))
        earlier = SessionSource("earlier", (user("u1", "First", timestamp="2025-01-01T00:00:00Z"),))
        merged = merge_sessions([later, earlier])
        self.assertEqual([r.uuid for r in merged], ["u1", "u2"])

    def test_record_order_within_source_is_kept(self):
        source = SessionSource("s", (
            user("u1", "b", timestamp="2025-01-01T10:00:00Z"),
            user("u2", "a", timestamp="2025-01-01T09:00:00Z"),
        ))
        self.assertEqual([r.uuid for r in merge_sessions([source])], ["u1", "u2"])

    def test_sources_without_timestamp_go_first(self):
        dated = SessionSource("dated", (user("u1", "dated", timestamp="2025-01-01T00:00:00Z"),))
        undated = SessionSource("undated", (user("u2", "undated", timestamp=None),))
        merged = merge_sessions([dated, undated])
        self.assertEqual([r.uuid for r in merged], ["u2", "u1"])

    def test_equal_timestamps_keep_input_order(self):
        a = SessionSource("a", (user("ua", "a"),))
        b = SessionSource("b", (user("ub", "b"),))
        self.assertEqual([r.uuid for r in merge_sessions([a, b])], ["ua", "ub"])
        self.assertEqual([r.uuid for r in merge_sessions([b, a])], ["ub", "ua"])

    def test_duplicates_dropped_first_wins(self):
        first = SessionSource("first", (
            user("u1", "original", timestamp="2025-01-01T00:00:00Z"),
            snapshot("m1"),
        ))
        second = SessionSource("second", (
            user("u1", "copy", timestamp="2025-01-02T00:00:00Z"),
            snapshot("m1"),
            user("u2", "new", timestamp="2025-01-02T00:00:01Z"),
        ))
        merged = merge_sessions([second, first])
        self.assertEqual(len(merged), 3)
        self.assertEqual(merged[0].content, "original")
        self.assertEqual(sum(isinstance(r, SnapshotMarker) for r in merged), 1)
        self.assertEqual(merged[-1].uuid, "u2")

    def test_summary_markers_dropped(self):
        source = SessionSource("s", (summary("Compacted"), user("u1", "Hello")))
        merged = merge_sessions([source])
        self.assertFalse(any(isinstance(r, SummaryMarker) for r in merged))
        self.assertEqual(len(merged), 1)

    def test_records_without_key_are_kept(self):
        source = SessionSource("s", (user("", "one"), user("", "two")))
        self.assertEqual(len(merge_sessions([source])), 2)

    def test_first_timestamp_skips_markers(self):
        records = [snapshot("m1"), user("u1", "Hi", timestamp="2025-03-01T12:00:00Z")]
        self.assertEqual(first_timestamp(records), datetime(2025, 3, 1, 12, tzinfo=timezone.utc))
        self.assertIsNone(first_timestamp([snapshot("m1")]))


class TestSessionMetadata(unittest.TestCase):

    def test_metadata_from_records(self):
        metadata = session_metadata([
            snapshot("m1"),
            user("u1", "Hello", session_id="abc12345-xyz", timestamp="2025-01-01T10:00:00Z"),
            assistant("a1", [text("Hi")], session_id="other", timestamp="2025-01-01T10:05:00Z"),
        ])
        self.assertEqual(metadata.session_id, "abc12345-xyz")
        self.assertEqual(metadata.start_time, datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc))
        self.assertEqual(metadata.end_time, datetime(2025, 1, 1, 10, 5, tzinfo=timezone.utc))

    def test_empty(self):
        metadata = session_metadata([])
        self.assertIsNone(metadata.session_id)
        self.assertIsNone(metadata.start_time)
        self.assertIsNone(metadata.end_time)


class TestToolIndex(unittest.TestCase):

    def test_index_spans_turns(self):
        turns = segment_turns([
            user("u1", "one"),
            assistant("a1", [tool_use("t1", "Read", file_path="/a")]),
            user("u2", "two"),
            assistant("a2", [tool_use("t2", "Bash", command="ls"), tool_use("t3", "Grep")]),
        ])
        index = build_tool_index(turns)
        self.assertEqual(set(index), {"t1", "t2", "t3"})
        self.assertEqual(index["t2"].name, "Bash")

    def test_duplicate_ids_last_wins(self):
        turns = segment_turns([
            user("u1", "one"),
            assistant("a1", [tool_use("dup", "Read")]),
            assistant("a2", [tool_use("dup", "Bash")]),
        ])
        self.assertEqual(build_tool_index(turns)["dup"].name, "Bash")
        self.assertEqual(find_duplicate_tool_ids(turns), ["dup"])

    def test_no_duplicates(self):
        turns = segment_turns([user("u1", "one"), assistant("a1", [tool_use("t1")])])
        self.assertEqual(find_duplicate_tool_ids(turns), [])


if __name__ == "__main__":
    unittest.main()
