#!/usr/bin/env python3
"""Render pages, the table of contents and book.toml as mdbook sources."""

import json
from dataclasses import dataclass

from .models import (
    AssistantRecord, ContentBlock, TextBlock, ThinkingBlock, ToolResultBlock, ToolUseBlock,
)
from .pages import Page, TextPage, ToolPage, TurnPages, UserPage, page_filename, page_title


@dataclass(frozen=True)
class RenderOptions:
    hide_thinking: bool = False
    hide_tool_results: bool = False
    hide_read_results: bool = True  # Read results are whole files; show only the path
    collapse_tools: bool = False


@dataclass(frozen=True)
class BookConfig:
    title: str
    authors: tuple[str, ...] = ()
    description: str | None = None
    language: str = "ja"


RESULT_MAX_LEN = 2000


# =============================================================================
# BOOK.TOML / SUMMARY.MD
# =============================================================================

def _escape_toml(s: str) -> str:
    return s.replace("\\", "\\\\").replace('"', '\\"')


def generate_book_toml(config: BookConfig) -> str:
    """Contents of book.toml for the given config."""
    lines = [
        "[book]",
        f'title = "{_escape_toml(config.title)}"',
    ]
    if config.authors:
        authors = ", ".join(f'"{_escape_toml(a)}"' for a in config.authors)
        lines.append(f"authors = [{authors}]")
    if config.description:
        lines.append(f'description = "{_escape_toml(config.description)}"')
    lines.append(f'language = "{_escape_toml(config.language or "ja")}"')
    lines.append("")
    lines.append("[build]")
    lines.append('build-dir = "book"')
    return "\n".join(lines)


def generate_summary(turn_pages: list[TurnPages], title: str) -> str:
    """SUMMARY.md: one chapter per turn, one sub-chapter per page."""
    lines = [f"# {title}", ""]
    for turn in turn_pages:
        lines.append(f"- [{turn.title}]()")
        for page in turn.pages:
            lines.append(f"  - [{page_title(page)}](./{page_filename(page)})")
    return "\n".join(lines)


# =============================================================================
# CODE FENCES
# =============================================================================

_LANGUAGES = {
    # Web
    "js": "javascript", "jsx": "jsx", "ts": "typescript", "tsx": "tsx",
    "html": "html", "css": "css", "scss": "scss", "sass": "sass", "less": "less",
    "json": "json",
    # Programming
    "py": "python", "rb": "ruby", "pl": "perl", "pm": "perl", "php": "php",
    "java": "java", "kt": "kotlin", "scala": "scala", "go": "go", "rs": "rust",
    "c": "c", "cpp": "cpp", "cc": "cpp", "h": "c", "hpp": "cpp", "cs": "csharp",
    "swift": "swift", "m": "objectivec",
    # Shell/Config
    "sh": "bash", "bash": "bash", "zsh": "zsh", "fish": "fish", "ps1": "powershell",
    "yaml": "yaml", "yml": "yaml", "toml": "toml", "ini": "ini", "xml": "xml",
    # Documentation
    "md": "markdown", "markdown": "markdown", "rst": "rst", "tex": "latex",
    # Data
    "sql": "sql", "graphql": "graphql",
    # Other
    "dockerfile": "dockerfile", "makefile": "makefile", "vim": "vim", "lua": "lua",
    "r": "r", "jl": "julia", "ex": "elixir", "exs": "elixir", "erl": "erlang",
    "hs": "haskell", "clj": "clojure", "lisp": "lisp", "el": "elisp",
}

_C_STYLE = {
    "javascript", "jsx", "typescript", "tsx", "java", "kotlin", "scala", "go", "rust",
    "c", "cpp", "csharp", "swift", "objectivec", "php", "graphql",
}
_BLOCK_MARKUP = {"html", "xml", "markdown"}
_BLOCK_CSS = {"css", "scss", "sass", "less"}
_DOUBLE_DASH = {"lua", "haskell", "sql", "elisp"}


def language_from_extension(file_path: str) -> str:
    """Code fence language for a file path, e.g. 'src/app.py' -> 'python'."""
    name = file_path.rsplit("/", 1)[-1]
    ext = name.rsplit(".", 1)[-1].lower() if "." in name else name.lower()
    return _LANGUAGES.get(ext, ext)


def comment_prefix(language: str) -> tuple[str, str]:
    """(start, end) of a line comment in the given language. `end` may be ''."""
    if language in _C_STYLE:
        return ("// ", "")
    if language in _BLOCK_MARKUP:
        return ("<!-- ", " -->")
    if language in _BLOCK_CSS:
        return ("/* ", " */")
    if language in _DOUBLE_DASH:
        return ("-- ", "")
    return ("# ", "")


def backquote_count(content: str, is_markdown: bool = False) -> int:
    """Fence length that can't collide with backtick runs inside the content."""
    longest = 0
    run = 0
    for ch in content:
        run = run + 1 if ch == "`" else 0
        longest = max(longest, run)
    return max(4 if is_markdown else 3, longest + 1)


# =============================================================================
# BLOCKS
# =============================================================================

def _details(summary: str, content: str) -> str:
    return f"<details>\n<summary>{summary}</summary>\n\n{content}\n\n</details>"


def render_thinking(thinking: str) -> str:
    return "\n".join(f"> {line}" for line in thinking.split("\n"))


def _render_write(block: ToolUseBlock) -> str:
    file_path = str(block.input.get("file_path", "") or "")
    file_content = str(block.input.get("content", "") or "")

    lang = language_from_extension(file_path)
    fence = "`" * backquote_count(file_content, lang == "markdown")
    start, end = comment_prefix(lang)

    return (
        f"**Tool: Write** `{file_path}`\n\n"
        f"{fence}{lang}\n{start}{file_path}{end}\n{file_content}\n{fence}"
    )


def render_tool_use(block: ToolUseBlock, collapse: bool = False) -> str:
    if block.name == "Write":
        content = _render_write(block)
    else:
        input_json = json.dumps(block.input, indent=2, ensure_ascii=False)
        content = f"**Tool: {block.name}**\n\n```json\n{input_json}\n```"

    if collapse:
        return _details(f"Tool: {block.name}", content)
    return content


def render_tool_result_generic(block: ToolResultBlock, collapse: bool = False) -> str:
    result_text = block.text("\n")
    if len(result_text) > RESULT_MAX_LEN:
        result_text = result_text[:RESULT_MAX_LEN] + "\n... (truncated)"

    error = " (Error)" if block.is_error else ""
    fence = "`" * backquote_count(result_text)
    content = f"**Result{error}:**\n\n{fence}\n{result_text}\n{fence}"

    if collapse:
        return _details(f"Tool Result{error}", content)
    return content


def render_task_result(block: ToolResultBlock) -> str:
    """Task (sub-agent) results are Markdown already."""
    prefix = "**Error:**\n\n" if block.is_error else ""
    return prefix + block.text("\n\n")


def render_tool_result(
    block: ToolResultBlock,
    tool_index: dict[str, ToolUseBlock],
    options: RenderOptions,
) -> str | None:
    """Render a tool result, using its invocation to decide how."""
    tool_use = tool_index.get(block.tool_use_id)
    tool_name = tool_use.name if tool_use else "Unknown"

    if options.hide_read_results and tool_name == "Read":
        file_path = (tool_use.input.get("file_path") if tool_use else None) or "(unknown file)"
        return f"*Read: `{file_path}` (contents omitted)*"

    if options.hide_tool_results:
        return None

    if tool_name == "Task":
        return render_task_result(block)

    return render_tool_result_generic(block, options.collapse_tools)


def render_content_block(block: ContentBlock, options: RenderOptions) -> str | None:
    if isinstance(block, TextBlock):
        return block.text
    if isinstance(block, ThinkingBlock):
        if options.hide_thinking:
            return None
        return render_thinking(block.thinking)
    if isinstance(block, ToolUseBlock):
        return render_tool_use(block, options.collapse_tools)
    if isinstance(block, ToolResultBlock):
        # tool_result inside an assistant message; not expected in practice
        if options.hide_tool_results:
            return None
        return render_tool_result_generic(block, options.collapse_tools)
    return None


def render_assistant(assistant: AssistantRecord, options: RenderOptions) -> str:
    parts = []
    for block in assistant.content:
        rendered = render_content_block(block, options)
        if rendered:
            parts.append(rendered)
    return "\n\n".join(parts)


# =============================================================================
# PAGES
# =============================================================================

def _footer(uuid_text: str) -> list[str]:
    return ["", "---", "", f'<small style="color: gray">uuid: {uuid_text}</small>']


def render_user_page(page: UserPage, turn_title: str, options: RenderOptions) -> str:
    lines = [f"# {turn_title}", "", "## User", ""]

    content = page.user.content
    if isinstance(content, str):
        lines.append(content)
    else:
        for block in content:
            if isinstance(block, TextBlock):
                lines.append(block.text)

    lines.extend(_footer(page.user.uuid))
    return "\n".join(lines)


def render_text_page(page: TextPage, turn_title: str, options: RenderOptions) -> str:
    lines = [f"# {turn_title}", "", "## Assistant", ""]
    lines.append(render_assistant(page.assistant, options))
    lines.extend(_footer(page.assistant.uuid))
    return "\n".join(lines)


def render_tool_page(
    page: ToolPage,
    turn_title: str,
    options: RenderOptions,
    tool_index: dict[str, ToolUseBlock],
) -> str:
    lines = [f"# {turn_title}", "", "## Tool Interactions", ""]
    uuids: list[str] = []

    for interaction in page.interactions:
        lines.append(render_assistant(interaction.tool_use, options))
        lines.append("")
        uuids.append(f"assistant: {interaction.tool_use.uuid}")

        if interaction.tool_results:
            lines.append("### Results")
            lines.append("")
            for result in interaction.tool_results:
                rendered = render_tool_result(result, tool_index, options)
                if rendered:
                    lines.append(rendered)
                    lines.append("")

    lines.extend(_footer(", ".join(uuids)))
    return "\n".join(lines)


def render_page(
    page: Page,
    turn_title: str,
    options: RenderOptions,
    tool_index: dict[str, ToolUseBlock],
) -> str:
    """Render any page kind to Markdown."""
    if isinstance(page, UserPage):
        return render_user_page(page, turn_title, options)
    if isinstance(page, TextPage):
        return render_text_page(page, turn_title, options)
    return render_tool_page(page, turn_title, options, tool_index)
