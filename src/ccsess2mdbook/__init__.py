"""ccsess2mdbook - Convert Claude Code session logs into mdbook projects.

Library usage:
    from ccsess2mdbook import load_sessions, merge_sessions, segment_turns
    from ccsess2mdbook import partition_turns, build_tool_index, build_book
"""

from .models import (
    # Content blocks
    TextBlock,
    ThinkingBlock,
    ImageBlock,
    ToolUseBlock,
    ToolResultBlock,
    UnknownBlock,
    ContentBlock,
    # Records
    UserRecord,
    AssistantRecord,
    SnapshotMarker,
    SummaryMarker,
    Record,
    # Reading
    SessionDecodeError,
    parse_content_block,
    parse_record,
    iter_records,
    load_records,
)

from .conversation import (
    Turn,
    SessionSource,
    SessionMetadata,
    extract_user_text,
    segment_turns,
    merge_sessions,
    load_sessions,
    session_metadata,
    build_tool_index,
    find_duplicate_tool_ids,
)
from .pages import (
    ToolInteraction,
    UserPage,
    TextPage,
    ToolPage,
    Page,
    TurnPages,
    partition_turns,
    page_filename,
    turn_title,
)
from .render import BookConfig, RenderOptions, render_page, generate_summary, generate_book_toml
from .book import build_book, BookResult, NoConversationError

__all__ = [
    # Content blocks
    "TextBlock", "ThinkingBlock", "ImageBlock", "ToolUseBlock", "ToolResultBlock",
    "UnknownBlock", "ContentBlock",
    # Records
    "UserRecord", "AssistantRecord", "SnapshotMarker", "SummaryMarker", "Record",
    # Reading
    "SessionDecodeError", "parse_content_block", "parse_record", "iter_records", "load_records",
    # Conversation structure
    "Turn", "SessionSource", "SessionMetadata", "extract_user_text", "segment_turns",
    "merge_sessions", "load_sessions", "session_metadata", "build_tool_index",
    "find_duplicate_tool_ids",
    # Pages
    "ToolInteraction", "UserPage", "TextPage", "ToolPage", "Page", "TurnPages",
    "partition_turns", "page_filename", "turn_title",
    # Rendering
    "BookConfig", "RenderOptions", "render_page", "generate_summary", "generate_book_toml",
    "build_book", "BookResult", "NoConversationError",
]
