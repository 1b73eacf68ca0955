#!/usr/bin/env python3
"""Split conversation turns into pages.

Each turn becomes an ordered list of pages:

    UserPage   the user prompt
    TextPage   an assistant record that opens with narrative text
    ToolPage   a run of tool-invoking assistant records, each paired with
               the tool results that came back for it

Page indices are shared across kinds and start at 1 in every turn.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import ClassVar

from .conversation import Turn, extract_user_text, has_user_text
from .models import AssistantRecord, ThinkingBlock, TextBlock, ToolResultBlock, UserRecord


# =============================================================================
# PAGES
# =============================================================================

@dataclass(frozen=True)
class ToolInteraction:
    """One tool-invoking assistant record and the results attributed to it."""
    tool_use: AssistantRecord  # kept whole; may hold several tool_use blocks
    tool_results: tuple[ToolResultBlock, ...] = ()


@dataclass(frozen=True)
class UserPage:
    kind: ClassVar[str] = "user"
    turn_index: int
    page_index: int
    user: UserRecord


@dataclass(frozen=True)
class TextPage:
    kind: ClassVar[str] = "text"
    turn_index: int
    page_index: int
    assistant: AssistantRecord


@dataclass(frozen=True)
class ToolPage:
    kind: ClassVar[str] = "tool"
    turn_index: int
    page_index: int
    interactions: tuple[ToolInteraction, ...]


Page = UserPage | TextPage | ToolPage


@dataclass(frozen=True)
class TurnPages:
    turn_index: int
    title: str
    pages: tuple[Page, ...]


PAGE_SUFFIX = ".md"


def page_filename(page: Page) -> str:
    """File name of a page inside the book's src/ directory."""
    if isinstance(page, UserPage):
        return f"turn_{page.turn_index}_user{PAGE_SUFFIX}"
    if isinstance(page, TextPage):
        return f"turn_{page.turn_index}_text_{page.page_index}{PAGE_SUFFIX}"
    return f"turn_{page.turn_index}_tool_{page.page_index}{PAGE_SUFFIX}"


def page_title(page: Page) -> str:
    """Display title of a page in the table of contents."""
    if isinstance(page, UserPage):
        return "User"
    if isinstance(page, TextPage):
        return f"Assistant (Text {page.page_index})"
    return f"Assistant (Tools {page.page_index})"


# =============================================================================
# CLASSIFICATION
# =============================================================================

def starts_with_text(assistant: AssistantRecord) -> bool:
    """True if the first non-thinking block is text."""
    for block in assistant.content:
        if isinstance(block, ThinkingBlock):
            continue
        return isinstance(block, TextBlock)
    return False


def tool_results_of(user: UserRecord) -> tuple[ToolResultBlock, ...]:
    return tuple(b for b in user.blocks if isinstance(b, ToolResultBlock))


# =============================================================================
# TOOL PAGE STATE
#
#   NoToolPage --tool record--> InteractionOpen --tool record--> InteractionOpen
#        ^                           |
#        +------ flush --------------+
#
# Flushing pushes the open interaction into its page before the page is
# emitted, so a ToolPage never loses its last interaction.
# =============================================================================

@dataclass(frozen=True)
class _NoToolPage:
    pass


@dataclass(frozen=True)
class _ToolPageOpen:
    page_index: int
    interactions: tuple[ToolInteraction, ...] = ()


@dataclass(frozen=True)
class _InteractionOpen:
    page_index: int
    interactions: tuple[ToolInteraction, ...]
    current: ToolInteraction


_ToolState = _NoToolPage | _ToolPageOpen | _InteractionOpen

_NO_TOOL_PAGE = _NoToolPage()


def _close_interaction(state: _ToolState) -> _ToolState:
    if isinstance(state, _InteractionOpen):
        return _ToolPageOpen(state.page_index, state.interactions + (state.current,))
    return state


def _flush(state: _ToolState, turn_index: int) -> list[ToolPage]:
    state = _close_interaction(state)
    if isinstance(state, _ToolPageOpen) and state.interactions:
        return [ToolPage(turn_index=turn_index, page_index=state.page_index, interactions=state.interactions)]
    return []


def _attach_results(state: _ToolState, results: tuple[ToolResultBlock, ...]) -> _ToolState:
    if isinstance(state, _InteractionOpen):
        current = ToolInteraction(state.current.tool_use, state.current.tool_results + results)
        return _InteractionOpen(state.page_index, state.interactions, current)
    return state


def _start_interaction(state: _ToolPageOpen | _InteractionOpen, assistant: AssistantRecord) -> _InteractionOpen:
    page = _close_interaction(state)
    return _InteractionOpen(page.page_index, page.interactions, ToolInteraction(assistant))


# =============================================================================
# PARTITIONING
# =============================================================================

def paginate_turn(turn: Turn) -> tuple[Page, ...]:
    """Split a single turn into pages."""
    pages: list[Page] = []
    page_index = 1
    state: _ToolState = _NO_TOOL_PAGE

    for msg in turn.messages:
        if isinstance(msg, UserRecord):
            if has_user_text(msg):
                pages.extend(_flush(state, turn.index))
                state = _NO_TOOL_PAGE
                pages.append(UserPage(turn_index=turn.index, page_index=page_index, user=msg))
                page_index += 1
            else:
                state = _attach_results(state, tool_results_of(msg))

        elif starts_with_text(msg):
            pages.extend(_flush(state, turn.index))
            state = _NO_TOOL_PAGE
            pages.append(TextPage(turn_index=turn.index, page_index=page_index, assistant=msg))
            page_index += 1

        else:
            if isinstance(state, _NoToolPage):
                state = _ToolPageOpen(page_index)
                page_index += 1
            state = _start_interaction(state, msg)

    pages.extend(_flush(state, turn.index))
    return tuple(pages)


_TITLE_STRIP = re.compile(r"[#\[\]`*_]")
_TITLE_MAX = 50


def turn_title(turn: Turn) -> str:
    """Title from the first user text in the turn, or 'Turn N'."""
    text = ""
    for msg in turn.messages:
        if isinstance(msg, UserRecord) and has_user_text(msg):
            text = extract_user_text(msg)
            break
    title = _TITLE_STRIP.sub("", re.sub(r"\r?\n", " ", text)).strip()[:_TITLE_MAX]
    return title or f"Turn {turn.index}"


def partition_turns(turns: Iterable[Turn]) -> list[TurnPages]:
    """Convert turns into the page structure rendered as a book."""
    return [
        TurnPages(turn_index=turn.index, title=turn_title(turn), pages=paginate_turn(turn))
        for turn in turns
    ]
