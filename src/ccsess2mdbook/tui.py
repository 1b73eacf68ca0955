#!/usr/bin/env python3
"""Textual session picker for `ccsess2mdbook --project`."""

from __future__ import annotations

import json
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from rich.console import Group
from rich.panel import Panel
from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.theme import Theme
from textual.widgets import SelectionList, Static
from textual.widgets.selection_list import Selection

from .conversation import extract_user_text
from .models import (
    AssistantRecord, Record, SummaryMarker, TextBlock, ToolResultBlock, ToolUseBlock,
    UserRecord, parse_record,
)


# =============================================================================
# SHARED
# =============================================================================

_THEME = Theme(
    name="ccsess2mdbook",
    primary="rgb(90, 187, 92)",
    accent="rgb(90, 187, 92)",
    background="rgb(33, 33, 33)",
    surface="rgb(33, 33, 33)",
    panel="rgb(33, 33, 33)",
    dark=True,
)

_RUN = dict(inline=True, mouse=True)

_BASE_CSS = """
Screen {
    height: auto;
    padding: 0 1;
    border-top: tall $primary;
    border-bottom: tall $primary;
}
Static {
    background: $background;
}
#title {
    color: $text-muted;
    margin-bottom: 1;
}
"""


class _BaseApp(App):
    """Base app with the ccsess2mdbook theme and shared settings."""

    INLINE_PADDING = 1
    CSS = _BASE_CSS
    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", show=False, system=True),
    ]

    def __init__(self, **kwargs) -> None:
        super().__init__(ansi_color=True, **kwargs)
        self.register_theme(_THEME)
        self.theme = "ccsess2mdbook"


def fmt_date(dt: datetime) -> str:
    """Format datetime as 'Feb 4, 2026 4:16 PM' in local time."""
    local = dt.astimezone(datetime.now().astimezone().tzinfo)
    hour = local.hour % 12 or 12
    return f"{local.strftime('%b')} {local.day}, {local.year} {hour}:{local.strftime('%M')} {local.strftime('%p')}"


# =============================================================================
# SESSION METADATA
# =============================================================================

@dataclass(frozen=True)
class RecordPreview:
    """Preview of a single record for display."""
    role: str  # "user", "claude", "tool", "system"
    text: str
    tool_name: str = ""


@dataclass(frozen=True)
class SessionInfo:
    """Lightweight metadata about a session file, read without building turns."""
    session_id: str
    path: Path
    first_message: str
    record_count: int
    timestamp: datetime | None
    previews: tuple[RecordPreview, ...] = ()  # first 2 + last 2


def _record_preview(record: Record) -> RecordPreview | None:
    if isinstance(record, SummaryMarker) and record.summary:
        return RecordPreview(role="system", text=f"[summary] {record.summary}")

    if isinstance(record, AssistantRecord):
        tool_uses = [b for b in record.content if isinstance(b, ToolUseBlock)]
        if tool_uses:
            return RecordPreview(role="tool", text="", tool_name=", ".join(b.name for b in tool_uses))
        for block in record.content:
            if isinstance(block, TextBlock) and block.text.strip():
                return RecordPreview(role="claude", text=block.text.strip())
        return None

    if isinstance(record, UserRecord):
        text = extract_user_text(record).strip()
        if text:
            return RecordPreview(role="user", text=text)
        for block in record.blocks:
            if isinstance(block, ToolResultBlock) and block.text().strip():
                return RecordPreview(role="tool", text=block.text().strip())

    return None


def scan_session(jsonl_path: Path, n: int = 2) -> SessionInfo:
    """Collect the first and last n previews of a session file in one pass.

    Unreadable lines are skipped here; the real conversion rejects them.
    """
    head: list[RecordPreview] = []
    tail: deque[RecordPreview] = deque(maxlen=n)
    timestamp: datetime | None = None
    first_text = ""
    record_count = 0

    with open(jsonl_path, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            stripped = line.strip()
            if not stripped:
                continue
            try:
                data = json.loads(stripped)
            except json.JSONDecodeError:
                continue
            record = parse_record(data) if isinstance(data, dict) else None
            if record is None:
                continue
            record_count += 1

            if timestamp is None and isinstance(record, (UserRecord, AssistantRecord)):
                timestamp = record.timestamp

            preview = _record_preview(record)
            if preview is None:
                continue
            if not first_text and preview.role == "user":
                first_line = preview.text.split("\n")[0]
                first_text = first_line[:80] + ("..." if len(first_line) > 80 else "")
            if len(head) < n:
                head.append(preview)
            else:
                tail.append(preview)

    return SessionInfo(
        session_id=jsonl_path.stem,
        path=jsonl_path,
        first_message=first_text or "(empty session)",
        record_count=record_count,
        timestamp=timestamp,
        previews=tuple(head) + tuple(tail),
    )


def scan_sessions(jsonl_files: list[Path]) -> list[SessionInfo]:
    """Scan all sessions, oldest first (the order they get merged in)."""
    sessions = [scan_session(p) for p in jsonl_files]
    sessions.sort(key=lambda s: s.timestamp.timestamp() if s.timestamp else 0.0)
    return sessions


# =============================================================================
# PREVIEW RENDERING
# =============================================================================

def _mid_truncate(text: str, max_lines: int = 5) -> str:
    lines = text.split("\n")
    if len(lines) <= max_lines:
        return text
    head_n = max_lines // 2
    tail_n = max_lines - head_n
    trimmed = len(lines) - max_lines
    return "\n".join(lines[:head_n] + [f"<{trimmed} lines trimmed>"] + lines[-tail_n:])


def _border_style(role: str) -> str:
    if role == "tool":
        return "#2A5A6B"
    if role == "claude":
        return "#6F3A2B"
    return "grey50"


def render_preview(preview: RecordPreview) -> Panel:
    """Render a RecordPreview as a Rich Panel."""
    title = f"tool: {preview.tool_name}" if preview.tool_name else preview.role
    return Panel(
        _mid_truncate(preview.text) if preview.text else Text(preview.tool_name, style="dim"),
        title=f"[bold white]{title}[/bold white]",
        title_align="left",
        border_style=_border_style(preview.role),
        padding=(0, 3),
    )


def render_previews(session: SessionInfo) -> Group:
    """First 2 + last 2 previews with a gap marker between them."""
    parts: list = [render_preview(p) for p in session.previews[:2]]
    between = session.record_count - len(session.previews)
    if between > 0:
        parts.append(Text(f"< {between} other records >", style="dim", justify="center"))
    parts.extend(render_preview(p) for p in session.previews[2:])
    return Group(*parts)


def _session_label(session: SessionInfo) -> Text:
    date_str = fmt_date(session.timestamp) if session.timestamp else "(no timestamp)"
    return Text.assemble(
        (session.session_id[:8], "bold"),
        f"  {date_str:<24} {session.record_count:>4} records  {session.first_message}",
    )


# =============================================================================
# TUI: MULTI-SELECT SESSION PICKER
# =============================================================================

class MultiSessionPicker(_BaseApp):
    """Pick the sessions to merge into one book."""

    CSS = _BASE_CSS + """
    SelectionList {
        height: auto;
        max-height: 20;
        border: none;
        background: $background;
        padding: 0;
    }
    #preview {
        margin-top: 1;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("escape", "quit", "Back"),
        Binding("enter", "confirm", "Confirm"),
    ]

    def __init__(self, sessions: list[SessionInfo]) -> None:
        super().__init__()
        self.sessions = sessions

    def compose(self) -> ComposeResult:
        yield Static("Select sessions to merge (space to toggle, enter to confirm):", id="title")
        yield SelectionList(*[
            Selection(_session_label(s), i, True)  # all selected by default
            for i, s in enumerate(self.sessions)
        ])
        yield Static("", id="preview")

    def on_selection_list_selection_highlighted(self, event: SelectionList.SelectionHighlighted) -> None:
        session = self.sessions[event.selection_index]
        self.query_one("#preview", Static).update(render_previews(session))

    def action_confirm(self) -> None:
        selected = sorted(self.query_one(SelectionList).selected)
        self.exit(selected if selected else None)


def pick_sessions(jsonl_files: list[Path]) -> list[Path]:
    """Let the user choose which session files to convert. Empty if cancelled."""
    print("Scanning sessions...", end="", flush=True)
    sessions = scan_sessions(jsonl_files)
    print(f" {len(sessions)} found")

    selected = MultiSessionPicker(sessions).run(**_RUN)
    if not selected:
        return []
    return [sessions[i].path for i in selected]
