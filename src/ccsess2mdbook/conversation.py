#!/usr/bin/env python3
"""Rebuild conversation structure from a flat stream of session records.

A turn starts at a user record carrying text and runs until the next one.
User records that only carry tool results stay inside the current turn.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from .models import (
    AssistantRecord, MessageRecord, Record, SnapshotMarker, SummaryMarker,
    TextBlock, ToolUseBlock, UserRecord, load_records,
)


# =============================================================================
# TURNS
# =============================================================================

@dataclass(frozen=True)
class Turn:
    """One user prompt plus all assistant/tool activity until the next prompt."""
    index: int  # 1-based
    messages: tuple[MessageRecord, ...]

    @property
    def user(self) -> UserRecord:
        return self.messages[0]


def extract_user_text(user: UserRecord) -> str:
    """Text of a user record: the string content, or its first text block.

    Only the first text block is consulted. Tool-result carriers give "".
    """
    if isinstance(user.content, str):
        return user.content
    for block in user.content:
        if isinstance(block, TextBlock):
            return block.text
    return ""


def has_user_text(user: UserRecord) -> bool:
    return bool(extract_user_text(user).strip())


def segment_turns(records: Iterable[Record]) -> list[Turn]:
    """Group user/assistant records into turns.

    Snapshot and summary markers are ignored. Records arriving before the first
    text-bearing user record have no turn to join and are dropped.
    """
    turns: list[Turn] = []
    current: list[MessageRecord] | None = None
    turn_index = 1

    for record in records:
        if isinstance(record, UserRecord):
            if has_user_text(record):
                if current:
                    turns.append(Turn(index=turn_index, messages=tuple(current)))
                    turn_index += 1
                current = [record]
            elif current is not None:
                current.append(record)
        elif isinstance(record, AssistantRecord):
            if current is not None:
                current.append(record)

    if current:
        turns.append(Turn(index=turn_index, messages=tuple(current)))

    return turns


# =============================================================================
# MERGING MULTIPLE SESSION FILES
# =============================================================================

@dataclass(frozen=True)
class SessionSource:
    """The records of one session file."""
    source_id: str
    records: tuple[Record, ...]


_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def first_timestamp(records: Iterable[Record]) -> datetime | None:
    """Timestamp of the first user/assistant record, or None."""
    for record in records:
        if isinstance(record, (UserRecord, AssistantRecord)) and record.timestamp is not None:
            return record.timestamp
    return None


def record_key(record: Record) -> str | None:
    """Identity used to drop records repeated across overlapping logs."""
    if isinstance(record, (UserRecord, AssistantRecord)):
        return record.uuid or None
    if isinstance(record, SnapshotMarker):
        return record.message_id or None
    return None


def _source_order(source: SessionSource) -> tuple[int, datetime]:
    ts = first_timestamp(source.records)
    # Sources without a timestamp go first
    if ts is None:
        return (0, _EPOCH)
    return (1, ts)


def merge_sessions(sources: Sequence[SessionSource]) -> list[Record]:
    """Merge several session logs into one chronological, duplicate-free stream.

    Sources are ordered by their first timestamp (stable for ties). Summary
    markers are dropped. For records sharing a key the first occurrence wins.
    """
    seen: set[str] = set()
    merged: list[Record] = []

    for source in sorted(sources, key=_source_order):
        for record in source.records:
            if isinstance(record, SummaryMarker):
                continue
            key = record_key(record)
            if key is not None:
                if key in seen:
                    continue
                seen.add(key)
            merged.append(record)

    return merged


def load_sessions(jsonl_paths: Iterable[str]) -> list[SessionSource]:
    """Read each session file into a SessionSource, in the given order."""
    return [
        SessionSource(source_id=str(path), records=tuple(load_records(path)))
        for path in jsonl_paths
    ]


# =============================================================================
# SESSION METADATA
# =============================================================================

@dataclass(frozen=True)
class SessionMetadata:
    session_id: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None


def session_metadata(records: Iterable[Record]) -> SessionMetadata:
    """First session id plus first/last timestamps of the user/assistant records."""
    session_id: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None

    for record in records:
        if not isinstance(record, (UserRecord, AssistantRecord)):
            continue
        if session_id is None and record.session_id:
            session_id = record.session_id
        if record.timestamp is not None:
            if start_time is None:
                start_time = record.timestamp
            end_time = record.timestamp

    return SessionMetadata(session_id=session_id, start_time=start_time, end_time=end_time)


# =============================================================================
# TOOL CORRELATION INDEX
# =============================================================================

def _tool_uses(turns: Iterable[Turn]) -> Iterable[ToolUseBlock]:
    for turn in turns:
        for msg in turn.messages:
            if isinstance(msg, AssistantRecord):
                for block in msg.content:
                    if isinstance(block, ToolUseBlock):
                        yield block


def build_tool_index(turns: Iterable[Turn]) -> dict[str, ToolUseBlock]:
    """Map tool_use id -> ToolUseBlock across every turn. Later ids overwrite earlier ones."""
    return {block.id: block for block in _tool_uses(turns)}


def find_duplicate_tool_ids(turns: Iterable[Turn]) -> list[str]:
    """tool_use ids that occur more than once, in first-seen order."""
    seen: set[str] = set()
    duplicates: dict[str, None] = {}
    for block in _tool_uses(turns):
        if block.id in seen:
            duplicates[block.id] = None
        seen.add(block.id)
    return list(duplicates)
