#!/usr/bin/env python3
"""Turn session records into an mdbook project on disk."""

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from .conversation import SessionMetadata, build_tool_index, find_duplicate_tool_ids, segment_turns
from .models import Record
from .pages import page_filename, partition_turns
from .render import BookConfig, RenderOptions, generate_book_toml, generate_summary, render_page


class NoConversationError(Exception):
    """Raised when the session records contain no conversation turns."""
    pass


@dataclass(frozen=True)
class BookResult:
    output_dir: Path
    turn_count: int
    page_count: int
    files: tuple[Path, ...]
    duplicate_tool_ids: tuple[str, ...] = ()  # ids the tool index resolved last-wins


def default_title(metadata: SessionMetadata, first_path: str) -> str:
    """Short session id, falling back to the first input's file name."""
    if metadata.session_id:
        return metadata.session_id[:8]
    return Path(first_path).stem


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    return path


def build_book(
    records: Sequence[Record],
    output_dir: Path,
    config: BookConfig,
    options: RenderOptions = RenderOptions(),
) -> BookResult:
    """Write book.toml, src/SUMMARY.md and one page file per page.

    Raises:
        NoConversationError: if segmentation finds no turns.
    """
    turns = segment_turns(records)
    if not turns:
        raise NoConversationError("No conversation turns found in session file(s)")

    turn_pages = partition_turns(turns)
    tool_index = build_tool_index(turns)

    src_dir = output_dir / "src"
    files: list[Path] = [
        _write(output_dir / "book.toml", generate_book_toml(config)),
        _write(src_dir / "SUMMARY.md", generate_summary(turn_pages, config.title)),
    ]

    page_count = 0
    for turn in turn_pages:
        for page in turn.pages:
            markdown = render_page(page, turn.title, options, tool_index)
            files.append(_write(src_dir / page_filename(page), markdown))
            page_count += 1

    return BookResult(
        output_dir=output_dir,
        turn_count=len(turns),
        page_count=page_count,
        files=tuple(files),
        duplicate_tool_ids=tuple(find_duplicate_tool_ids(turns)),
    )
