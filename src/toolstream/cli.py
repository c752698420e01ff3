"""Command-line interface: stream a saved assistant message through the parser."""

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .blocks import ContentBlock, TextBlock, blocks_to_json
from .config import ParserConfig
from .logger import get_logger, init_logging, log_exception
from .parser import AssistantMessageParser, MessageTooLargeError
from .streaming import parse_stream, split_chunks

log = get_logger("cli")


def render_block(block: ContentBlock) -> Panel:
    """Render one content block as a rich panel."""
    state = "partial" if block.partial else "complete"
    if isinstance(block, TextBlock):
        return Panel(Text(block.content), title=f"text ({state})", border_style="white")

    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("param", style="cyan", no_wrap=True)
    table.add_column("value")
    for name, value in block.params.items():
        table.add_row(name, Text(value))
    border = "yellow" if block.partial else "green"
    return Panel(table, title=f"{block.name} ({state})", border_style=border)


def render_blocks(blocks: Sequence[ContentBlock]) -> Group:
    if not blocks:
        return Group(Text("(no content)", style="dim"))
    return Group(*(render_block(b) for b in blocks))


def read_input(path: Optional[str]) -> str:
    if path and path != "-":
        return Path(path).read_text(encoding="utf-8")
    return sys.stdin.read()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="toolstream",
        description="Parse an assistant message into text and tool-use blocks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Parse a saved response, 16 chars per simulated chunk
  toolstream response.txt

  # Pipe input and print JSON
  cat response.txt | toolstream --json

  # Watch blocks form as the stream arrives
  toolstream response.txt --live --chunk-size 4

  # Recognize a runtime-registered tool
  toolstream response.txt --extra-tool extension:calc/add
        """,
    )
    parser.add_argument(
        "file",
        nargs="?",
        default=None,
        help="File containing the assistant message (default: stdin)",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="Characters per simulated chunk (default: from config, 16)",
    )
    parser.add_argument(
        "--extra-tool",
        action="append",
        default=[],
        metavar="NAME",
        help="Additional tool name to recognize (repeatable)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the final blocks as JSON",
    )
    parser.add_argument(
        "--live",
        action="store_true",
        help="Re-render the block list after every chunk",
    )
    parser.add_argument(
        "--workspace",
        type=str,
        default=None,
        help="Workspace directory for config and logs (default: current directory)",
    )
    parser.add_argument(
        "-e", "--env",
        type=str,
        default=".env",
        help="Path to .env file (default: .env)",
    )
    return parser


def run(args: argparse.Namespace, console: Optional[Console] = None) -> int:
    console = console or Console()
    workspace = Path(args.workspace).resolve() if args.workspace else None

    try:
        config = ParserConfig.from_env(Path(args.env), workspace=workspace)
        if args.chunk_size is not None:
            config.chunk_size = args.chunk_size
        config.extra_tool_names = config.extra_tool_names + list(args.extra_tool)
        config.validate()
    except ValueError as e:
        console.print(Panel(str(e), title="Configuration error", border_style="red"))
        return 2

    init_logging(str(workspace) if workspace else None, debug=config.debug)

    message = read_input(args.file)
    parser = AssistantMessageParser(extra_tool_names=config.extra_tool_names)
    chunks = split_chunks(message, config.chunk_size)
    log.info(
        "parsing %d chars, chunk_size=%d, extra_tools=%s",
        len(message), config.chunk_size, config.extra_tool_names,
    )

    try:
        if args.live and not args.json:
            with Live(render_blocks([]), console=console, refresh_per_second=12) as live:
                blocks = parse_stream(chunks, parser, on_update=lambda b: live.update(render_blocks(b)))
                live.update(render_blocks(blocks))
        else:
            blocks = parse_stream(chunks, parser)
    except MessageTooLargeError as e:
        log_exception(log, "message rejected", e)
        console.print(Panel(str(e), title="Message too large", border_style="red"))
        return 1

    if args.json:
        console.print_json(blocks_to_json(blocks))
    elif not args.live:
        console.print(render_blocks(blocks))
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_arg_parser().parse_args(argv)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
