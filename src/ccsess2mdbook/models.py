"""
Claude Code JSONL Session Records
=================================

Data models for the session logs Claude Code writes to
~/.claude/projects/<project>/<session>.jsonl.

JSONL STRUCTURE OVERVIEW
------------------------

Each line is one record with a `type` field. Four kinds carry meaning here:

    {"type": "user", "uuid": "...", "parentUuid": "...", "sessionId": "...",
     "timestamp": "...", "message": {"role": "user", "content": ...}}
    {"type": "assistant", "uuid": "...", ..., "message": {"role": "assistant",
     "content": [...], "model": "...", "stop_reason": "..."}}
    {"type": "file-history-snapshot", "messageId": "...", "snapshot": {...}}
    {"type": "summary", "summary": "...", "leafUuid": "..."}

Anything else (progress, system, queue-operation, ...) is skipped by the reader.

User content is either a plain string or a list of content blocks. Assistant
content is always a list of blocks (text, thinking, tool_use, ...).

TOOL USE/RESULT RELATIONSHIP
----------------------------

A tool invocation spans two records:

1. Assistant record with a tool_use block:
   {"type": "tool_use", "id": "toolu_abc123", "name": "Read", "input": {...}}

2. A later user record carrying only the matching tool_result block:
   {"type": "tool_result", "tool_use_id": "toolu_abc123", "content": "..."}

Join them via tool_use.id == tool_result.tool_use_id.

USAGE
-----

    from ccsess2mdbook.models import load_records

    records = load_records("session.jsonl")
"""

import json
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import ClassVar


# =============================================================================
# CONTENT BLOCKS (inside message.content list)
# =============================================================================

@dataclass(frozen=True)
class TextBlock:
    """Plain text content from Claude or user."""
    type: ClassVar[str] = "text"
    text: str

    @classmethod
    def from_dict(cls, d: dict) -> "TextBlock":
        return cls(text=d.get("text", "") or "")


@dataclass(frozen=True)
class ThinkingBlock:
    """Claude's internal reasoning (extended thinking mode)."""
    type: ClassVar[str] = "thinking"
    thinking: str

    @classmethod
    def from_dict(cls, d: dict) -> "ThinkingBlock":
        return cls(thinking=d.get("thinking", "") or "")


@dataclass(frozen=True)
class ImageBlock:
    """Image content (screenshots, pasted images)."""
    type: ClassVar[str] = "image"
    source: dict  # {"type": "base64", "media_type": "image/png", "data": "..."}

    @classmethod
    def from_dict(cls, d: dict) -> "ImageBlock":
        return cls(source=d.get("source", {}) or {})


@dataclass(frozen=True)
class ToolUseBlock:
    """Tool invocation by Claude."""
    type: ClassVar[str] = "tool_use"
    id: str  # e.g. "toolu_01ABC..."
    name: str  # e.g. "Read", "Write", "Edit", "Bash"
    input: dict  # Tool-specific input parameters

    @classmethod
    def from_dict(cls, d: dict) -> "ToolUseBlock":
        tool_input = d.get("input")
        return cls(
            id=d.get("id", ""),
            name=d.get("name", ""),
            input=tool_input if isinstance(tool_input, dict) else {},
        )


@dataclass(frozen=True)
class ToolResultBlock:
    """Result of a tool execution.

    `content` keeps the shape of the log: a plain string, or the text parts of
    a `[{"type": "text", "text": ...}, ...]` list.
    """
    type: ClassVar[str] = "tool_result"
    tool_use_id: str  # Links back to ToolUseBlock.id
    content: str | tuple[str, ...]
    is_error: bool = False

    @classmethod
    def from_dict(cls, d: dict) -> "ToolResultBlock":
        content = d.get("content", "")
        if isinstance(content, list):
            parts = []
            for item in content:
                if isinstance(item, dict) and item.get("type") == "text":
                    parts.append(item.get("text", ""))
                elif isinstance(item, str):
                    parts.append(item)
            content = tuple(parts)
        elif content is None:
            content = ""
        elif not isinstance(content, str):
            content = json.dumps(content, indent=2)
        return cls(
            tool_use_id=d.get("tool_use_id", ""),
            content=content,
            is_error=bool(d.get("is_error", False)),
        )

    def text(self, sep: str = "\n") -> str:
        """Result content as a single string, list parts joined with `sep`."""
        if isinstance(self.content, str):
            return self.content
        return sep.join(self.content)


@dataclass(frozen=True)
class UnknownBlock:
    """A content block of a type this tool does not know how to render."""
    type: ClassVar[str] = "unknown"
    block_type: str
    raw: dict


ContentBlock = TextBlock | ThinkingBlock | ImageBlock | ToolUseBlock | ToolResultBlock | UnknownBlock


def parse_content_block(d: dict) -> ContentBlock:
    """Parse a content block dict into the appropriate type."""
    if not isinstance(d, dict):
        return UnknownBlock(block_type="", raw={"value": d})
    block_type = d.get("type", "")
    if block_type == "text":
        return TextBlock.from_dict(d)
    elif block_type == "thinking":
        return ThinkingBlock.from_dict(d)
    elif block_type == "image":
        return ImageBlock.from_dict(d)
    elif block_type == "tool_use":
        return ToolUseBlock.from_dict(d)
    elif block_type == "tool_result":
        return ToolResultBlock.from_dict(d)
    return UnknownBlock(block_type=block_type, raw=d)


def _parse_blocks(raw_content) -> tuple[ContentBlock, ...]:
    if not isinstance(raw_content, list):
        return ()
    return tuple(parse_content_block(block) for block in raw_content)


def parse_timestamp(value) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware datetime (naive means UTC)."""
    if not value or not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# =============================================================================
# RECORDS (a single line in the JSONL)
# =============================================================================

@dataclass(frozen=True)
class UserRecord:
    """
    A user message. Either a real prompt (text) or a carrier for tool results.

    Key fields:
    - uuid: Unique identifier for this record
    - parent_uuid: Links to parent record (conversation threading)
    - content: A plain string, or a tuple of content blocks
    """
    type: ClassVar[str] = "user"
    uuid: str
    content: str | tuple[ContentBlock, ...]
    timestamp: datetime | None = None
    session_id: str = ""
    parent_uuid: str | None = None
    cwd: str | None = None

    @classmethod
    def from_dict(cls, d: dict) -> "UserRecord":
        message = d.get("message") or {}
        raw_content = message.get("content", "") if isinstance(message, dict) else ""
        if isinstance(raw_content, str):
            content: str | tuple[ContentBlock, ...] = raw_content
        else:
            content = _parse_blocks(raw_content)
        return cls(
            uuid=d.get("uuid", "") or "",
            content=content,
            timestamp=parse_timestamp(d.get("timestamp")),
            session_id=d.get("sessionId", d.get("session_id", "")) or "",
            parent_uuid=d.get("parentUuid", d.get("parent_uuid")),
            cwd=d.get("cwd"),
        )

    @property
    def blocks(self) -> tuple[ContentBlock, ...]:
        """Content as blocks; plain string content has none."""
        if isinstance(self.content, str):
            return ()
        return self.content


@dataclass(frozen=True)
class AssistantRecord:
    """An assistant message: text, thinking and tool_use blocks."""
    type: ClassVar[str] = "assistant"
    uuid: str
    content: tuple[ContentBlock, ...]
    timestamp: datetime | None = None
    session_id: str = ""
    parent_uuid: str | None = None
    model: str | None = None
    stop_reason: str | None = None
    cwd: str | None = None

    @classmethod
    def from_dict(cls, d: dict) -> "AssistantRecord":
        message = d.get("message") or {}
        if not isinstance(message, dict):
            message = {}
        raw_content = message.get("content", [])
        if isinstance(raw_content, str):
            # Sometimes content is just a string
            content: tuple[ContentBlock, ...] = (TextBlock(text=raw_content),)
        else:
            content = _parse_blocks(raw_content)
        return cls(
            uuid=d.get("uuid", "") or "",
            content=content,
            timestamp=parse_timestamp(d.get("timestamp")),
            session_id=d.get("sessionId", d.get("session_id", "")) or "",
            parent_uuid=d.get("parentUuid", d.get("parent_uuid")),
            model=message.get("model"),
            stop_reason=message.get("stop_reason"),
            cwd=d.get("cwd"),
        )


@dataclass(frozen=True)
class SnapshotMarker:
    """File-history snapshot. Opaque; never part of the conversation."""
    type: ClassVar[str] = "file-history-snapshot"
    message_id: str
    snapshot: dict

    @classmethod
    def from_dict(cls, d: dict) -> "SnapshotMarker":
        return cls(message_id=d.get("messageId", "") or "", snapshot=d.get("snapshot", {}) or {})


@dataclass(frozen=True)
class SummaryMarker:
    """Compaction summary left behind when a session is continued."""
    type: ClassVar[str] = "summary"
    summary: str
    leaf_uuid: str | None = None

    @classmethod
    def from_dict(cls, d: dict) -> "SummaryMarker":
        return cls(summary=d.get("summary", "") or "", leaf_uuid=d.get("leafUuid"))


Record = UserRecord | AssistantRecord | SnapshotMarker | SummaryMarker
MessageRecord = UserRecord | AssistantRecord

_RECORD_TYPES: dict[str, type] = {
    UserRecord.type: UserRecord,
    AssistantRecord.type: AssistantRecord,
    SnapshotMarker.type: SnapshotMarker,
    SummaryMarker.type: SummaryMarker,
}


def parse_record(d: dict) -> Record | None:
    """Parse a decoded JSONL line. Returns None for record kinds we don't model."""
    type_name = d.get("type")
    record_type = _RECORD_TYPES.get(type_name) if isinstance(type_name, str) else None
    if record_type is None:
        return None
    return record_type.from_dict(d)


# =============================================================================
# LINE READER
# =============================================================================

class SessionDecodeError(Exception):
    """Raised when a line of a session file is not a JSON object."""

    def __init__(self, path: str, line_number: int, reason: str) -> None:
        self.path = path
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"{path}:{line_number}: {reason}")


def iter_records(jsonl_path: str) -> Iterator[Record]:
    """
    Stream the records of a session JSONL file.

    Blank lines and record kinds without a model are skipped. A malformed line
    aborts the whole read.

    Raises:
        SessionDecodeError: if a line is not valid UTF-8 JSON or not a JSON object.
    """
    with open(jsonl_path, "rb") as f:
        for line_number, raw in enumerate(f, start=1):
            try:
                line = raw.decode("utf-8").strip()
            except UnicodeDecodeError as e:
                raise SessionDecodeError(str(jsonl_path), line_number, f"invalid UTF-8: {e.reason}") from e
            if not line:
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError as e:
                raise SessionDecodeError(str(jsonl_path), line_number, e.msg) from e
            if not isinstance(data, dict):
                raise SessionDecodeError(str(jsonl_path), line_number, "expected a JSON object")

            record = parse_record(data)
            if record is not None:
                yield record


def load_records(jsonl_path: str) -> list[Record]:
    """Load every record of a session JSONL file, in file order."""
    return list(iter_records(jsonl_path))


def list_session_files(project_dir: Path) -> list[Path]:
    """List *.jsonl files in a Claude project directory, sorted oldest first."""
    return sorted(project_dir.glob("*.jsonl"), key=lambda p: p.stat().st_mtime)
