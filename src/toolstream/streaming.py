"""Adapters between chunk sources and the parser.

The transport that produces chunks (an SSE reader, a websocket, a
replayed recording) is not part of this package.  Anything that yields
``str`` chunks, synchronously or asynchronously, can be fed through here.
"""

from typing import AsyncIterable, Callable, Iterable, Iterator, List, Optional

from .blocks import ContentBlock, ToolUseBlock
from .logger import get_logger
from .parser import AssistantMessageParser

log = get_logger("streaming")

UpdateCallback = Callable[[List[ContentBlock]], None]


def parse_assistant_message(
    message: str,
    extra_tool_names: Iterable[str] = (),
) -> List[ContentBlock]:
    """Parse a complete message in one call and return the finalized blocks."""
    parser = AssistantMessageParser(extra_tool_names=extra_tool_names)
    parser.process_chunk(message)
    parser.finalize()
    return parser.content_blocks


def parse_stream(
    chunks: Iterable[str],
    parser: Optional[AssistantMessageParser] = None,
    on_update: Optional[UpdateCallback] = None,
) -> List[ContentBlock]:
    """Feed every chunk through the parser, then finalize.

    on_update receives the block snapshot after each chunk.  A
    MessageTooLargeError from the parser propagates unchanged.
    """
    parser = parser or AssistantMessageParser()
    count = 0
    for chunk in chunks:
        if not chunk:
            continue
        blocks = parser.process_chunk(chunk)
        count += 1
        if on_update:
            on_update(blocks)
    parser.finalize()
    log.debug("stream done: %d chunks, %d chars", count, len(parser.accumulated_text))
    return parser.content_blocks


async def parse_async_stream(
    chunks: AsyncIterable[str],
    parser: Optional[AssistantMessageParser] = None,
    on_update: Optional[UpdateCallback] = None,
) -> List[ContentBlock]:
    """Async counterpart of parse_stream() for an LLM response stream."""
    parser = parser or AssistantMessageParser()
    count = 0
    async for chunk in chunks:
        if not chunk:
            continue
        blocks = parser.process_chunk(chunk)
        count += 1
        if on_update:
            on_update(blocks)
    parser.finalize()
    log.debug("async stream done: %d chunks, %d chars", count, len(parser.accumulated_text))
    return parser.content_blocks


def completed_tool_uses(blocks: Iterable[ContentBlock]) -> List[ToolUseBlock]:
    """Tool invocations that are complete and ready to hand to an executor."""
    return [b for b in blocks if isinstance(b, ToolUseBlock) and not b.partial]


def split_chunks(text: str, size: int) -> Iterator[str]:
    """Cut text into fixed-size pieces, simulating a token stream."""
    if size <= 0:
        raise ValueError("chunk size must be positive")
    for i in range(0, len(text), size):
        yield text[i:i + size]
