#!/usr/bin/env python3
"""CLI entry point for ccsess2mdbook."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .book import NoConversationError, build_book, default_title
from .conversation import load_sessions, merge_sessions, session_metadata
from .models import SessionDecodeError, list_session_files
from .render import BookConfig, RenderOptions


class ProjectNotFoundError(Exception):
    """Raised when no Claude project directory can be found for a given path."""
    pass


class UsageError(Exception):
    """Raised for command lines that parse but can't be acted on."""
    pass


def _read_cwd_from_project(project_dir: Path) -> str | None:
    """Read the real project path from the first JSONL entry's cwd field."""
    for jsonl in list_session_files(project_dir):
        with open(jsonl, "r", encoding="utf-8", errors="replace") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError:
                    continue
                cwd = data.get("cwd", "") if isinstance(data, dict) else ""
                if cwd:
                    return cwd
    return None


def find_claude_project_dir(project_path: str, projects_dir: Path | None = None) -> Path:
    """Auto-detect the Claude project directory for a given project path.

    Mangles the absolute path by replacing / with - to match
    ~/.claude/projects/<mangled>/ naming convention, then falls back to
    matching the cwd recorded in each project's session files.

    Raises:
        ProjectNotFoundError: if no matching project directory is found.
    """
    projects_dir = projects_dir or Path.home() / ".claude" / "projects"
    resolved = Path(project_path).resolve()
    claude_dir = projects_dir / str(resolved).replace("/", "-")
    if claude_dir.exists():
        return claude_dir

    available: list[str] = []
    if projects_dir.exists():
        for p in sorted(projects_dir.iterdir()):
            if not p.is_dir():
                continue
            real_path = _read_cwd_from_project(p)
            if real_path == str(resolved):
                return p
            available.append(f"  {real_path or p.name}")

    msg = f"No Claude data found for {resolved}\nExpected: {claude_dir}\n"
    if available:
        msg += "\nAvailable projects:\n" + "\n".join(available)
    raise ProjectNotFoundError(msg)


def _project_inputs(args: argparse.Namespace) -> list[str]:
    """Session files to convert for --project mode."""
    claude_dir = find_claude_project_dir(args.project)
    jsonl_files = list_session_files(claude_dir)
    if not jsonl_files:
        raise UsageError(f"No session files found in {claude_dir}")

    if args.session:
        matches = [f for f in jsonl_files if f.stem == args.session]
        if not matches:
            raise UsageError(f"Session not found: {args.session}")
        return [str(matches[0])]

    if len(jsonl_files) == 1:
        return [str(jsonl_files[0])]

    from .tui import pick_sessions
    return [str(p) for p in pick_sessions(jsonl_files)]


def convert(input_files: list[str], args: argparse.Namespace) -> None:
    """Load, merge and render the given session files into an mdbook project."""
    for input_file in input_files:
        if not Path(input_file).is_file():
            raise UsageError(f"Input file not found: {input_file}")

    print(f"Loading {len(input_files)} session file(s)...")
    sources = load_sessions(input_files)
    for source in sources:
        print(f"  Loaded {source.source_id}: {len(source.records)} entries")

    records = merge_sessions(sources)
    print(f"Total: {len(records)} entries after merging")

    metadata = session_metadata(records)
    config = BookConfig(
        title=args.title or default_title(metadata, input_files[0]),
        authors=tuple(args.author or ()),
        description=args.description,
        language=args.language,
    )
    options = RenderOptions(
        hide_thinking=args.hide_thinking,
        hide_tool_results=args.hide_tool_results,
        hide_read_results=not args.show_read_results,
        collapse_tools=args.collapse_tools,
    )

    output_dir = Path(args.output)
    result = build_book(records, output_dir, config, options)
    for tool_id in result.duplicate_tool_ids:
        print(f"warning: duplicate tool_use id {tool_id}; the last one wins", file=sys.stderr)

    print(f"Extracted {result.turn_count} conversation turns")
    print(f"Generated {result.page_count} pages")
    print(f"Created: {output_dir / 'book.toml'}")
    print(f"Created: {output_dir / 'src' / 'SUMMARY.md'}")
    print(f"Created {result.page_count} page files")

    print(f"\nDone! mdbook project created at: {output_dir}")
    print("\nTo build the book, run:")
    print(f"  cd {output_dir} && mdbook build")
    print("\nTo serve the book locally:")
    print(f"  cd {output_dir} && mdbook serve")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ccsess2mdbook",
        description="Convert Claude Code session files to an mdbook project.",
        epilog=(
            "Multiple input files are merged in chronological order "
            "(e.g. a session continued after compaction)."
        ),
    )
    parser.add_argument("inputs", nargs="*", metavar="INPUT.jsonl", help="Claude Code session file(s)")
    parser.add_argument("-o", "--output", default="./book", help="Output directory (default: ./book)")
    parser.add_argument("-t", "--title", default="", help="Book title (default: short session id)")
    parser.add_argument("--author", action="append", metavar="NAME", help="Book author (repeatable)")
    parser.add_argument("--description", default=None, help="Book description")
    parser.add_argument("--language", default="ja", help="Book language (default: ja)")
    parser.add_argument("--hide-thinking", action="store_true", help="Hide thinking blocks")
    parser.add_argument("--hide-tool-results", action="store_true", help="Hide tool result blocks")
    parser.add_argument("--show-read-results", action="store_true", help="Show Read tool results (hidden by default)")
    parser.add_argument("--collapse-tools", action="store_true", help="Collapse tool blocks in <details> tags")
    parser.add_argument(
        "--project", metavar="PATH",
        help="Pick sessions from the Claude data of this project instead of naming files",
    )
    parser.add_argument("--session", metavar="ID", help="With --project: convert this session only")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    try:
        if args.project:
            if args.inputs:
                raise UsageError("--project cannot be combined with input files")
            input_files = _project_inputs(args)
            if not input_files:
                print("No sessions selected.")
                return
        elif args.session:
            raise UsageError("--session requires --project")
        else:
            input_files = args.inputs
            if not input_files:
                raise UsageError("At least one input file is required")

        convert(input_files, args)
    except (UsageError, ProjectNotFoundError, SessionDecodeError, NoConversationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
