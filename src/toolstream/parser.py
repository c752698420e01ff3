"""Streaming parser for assistant messages.

Turns an incrementally arriving text stream into an ordered list of
content blocks: plain text runs and tool invocations with named
parameters.  State is kept between chunks so the stream is never
re-scanned from the start.

    parser = AssistantMessageParser()
    for chunk in stream:
        blocks = parser.process_chunk(chunk)   # snapshot, safe to keep
    parser.finalize()
    blocks = parser.content_blocks

Tags are matched purely as suffixes of the whole accumulated text, so a
tag split across two chunks is recognized exactly like one that arrives
whole.  Only a ``>`` can complete a tag, which lets the scanner jump
from one ``>`` to the next instead of stepping through every character.
"""

from typing import Iterable, List, Optional

from .blocks import ContentBlock, TextBlock, ToolUseBlock, snapshot_blocks
from .logger import get_logger, truncate
from .registry import NEWLINE_TRIMMED_PARAMS, TagRegistry

log = get_logger("parser")

MAX_ACCUMULATOR_SIZE = 1024 * 1024  # 1 MB per message
MAX_PARAM_LENGTH = 1024 * 100       # 100 KB per parameter value


class MessageTooLargeError(ValueError):
    """The stream would grow past MAX_ACCUMULATOR_SIZE.  Not recoverable."""

    def __init__(self, size: int, limit: int = MAX_ACCUMULATOR_SIZE):
        super().__init__(
            f"Assistant message exceeds maximum allowed size ({size:,} > {limit:,} chars)"
        )
        self.size = size
        self.limit = limit


def _strip_wrapping_newline(value: str) -> str:
    """Drop exactly one leading and one trailing newline; keep the rest verbatim."""
    if value.startswith("\n"):
        value = value[1:]
    if value.endswith("\n"):
        value = value[:-1]
    return value


def clean_param_value(name: str, raw: str) -> str:
    """Normalize a completed parameter value the way its name requires."""
    if name in NEWLINE_TRIMMED_PARAMS:
        return _strip_wrapping_newline(raw)
    return raw.strip()


class AssistantMessageParser:
    """Incremental parser for one assistant response stream.

    One instance per in-flight stream; instances share nothing.  The
    returned block lists are deep copies, so callers may hold on to them
    while the parser keeps extending its own last (partial) block.
    """

    def __init__(
        self,
        extra_tool_names: Iterable[str] = (),
        registry: Optional[TagRegistry] = None,
    ):
        # Copied so that parsers never share tag state.
        self._registry = registry.copy() if registry is not None else TagRegistry()
        if extra_tool_names:
            self._registry.set_extra_tool_names(extra_tool_names)
        self.reset()

    # ── public API ───────────────────────────────────────────────

    def reset(self) -> None:
        """Clear all parse state.  Registered extra tool names are kept."""
        self._buffer = ""
        self._blocks: List[ContentBlock] = []

        self._text: Optional[TextBlock] = None
        self._text_start = 0

        self._tool: Optional[ToolUseBlock] = None
        self._tool_start = 0
        self._tool_close = ""
        self._tool_greedy: List[str] = []

        self._param: Optional[str] = None
        self._param_start = 0
        self._param_close = ""

        self._finalized = False

    def set_extra_tool_names(self, names: Iterable[str]) -> None:
        """Register runtime tool names on top of the built-in ones."""
        self._registry.set_extra_tool_names(names)

    @property
    def registry(self) -> TagRegistry:
        return self._registry

    @property
    def content_blocks(self) -> List[ContentBlock]:
        """Snapshot of the current block list."""
        return snapshot_blocks(self._blocks)

    @property
    def accumulated_text(self) -> str:
        return self._buffer

    @property
    def finalized(self) -> bool:
        return self._finalized

    def process_chunk(self, chunk: str) -> List[ContentBlock]:
        """Append chunk to the stream and return a snapshot of all blocks.

        Raises MessageTooLargeError, before consuming anything, when the
        chunk would push the message past MAX_ACCUMULATOR_SIZE.
        """
        if self._finalized:
            raise RuntimeError("parser already finalized; call reset() before reuse")

        new_size = len(self._buffer) + len(chunk)
        if new_size > MAX_ACCUMULATOR_SIZE:
            log.warning("message too large: %d chars (limit %d)", new_size, MAX_ACCUMULATOR_SIZE)
            raise MessageTooLargeError(new_size)

        pos = len(self._buffer)
        self._buffer += chunk
        self._scan(pos)
        self._publish_live_values()
        return self.content_blocks

    def finalize(self) -> None:
        """Close every open block.  Call once, after the last chunk."""
        if self._finalized:
            return
        if self._text is not None:
            self._seal_text(self._buffer[self._text_start:])
        if self._tool is not None:
            log.debug(
                "finalize: tool %s left open (param=%s)", self._tool.name, self._param
            )
        for block in self._blocks:
            block.partial = False
            if isinstance(block, TextBlock):
                block.content = block.content.strip()
        self._tool = None
        self._param = None
        self._finalized = True
        log.debug("finalized: %d blocks from %d chars", len(self._blocks), len(self._buffer))

    # ── scanning ─────────────────────────────────────────────────

    def _scan(self, pos: int) -> None:
        buf = self._buffer
        n = len(buf)
        while pos < n:
            if self._tool is None and self._text is None:
                self._open_text(pos)

            gt = buf.find(">", pos)
            limit = n if gt == -1 else gt + 1

            if self._param is not None:
                overflow_end = self._param_start + MAX_PARAM_LENGTH + 1
                if overflow_end <= limit:
                    self._drop_param()
                    pos = overflow_end
                    continue

            if gt == -1:
                break
            self._step(buf, limit)
            pos = limit

    def _step(self, buf: str, end: int) -> None:
        """Handle the '>' at buf[end - 1]."""
        if self._tool is None:
            name = self._registry.match_tool_tag(buf, end)
            if name is not None:
                self._open_tool(name, buf, end)
        elif self._param is not None:
            if buf.endswith(self._param_close, self._param_start, end):
                self._close_param(buf, end)
        else:
            self._step_tool_body(buf, end)

    def _step_tool_body(self, buf: str, end: int) -> None:
        tool = self._tool
        if buf.endswith(self._tool_close, self._tool_start, end):
            for param in self._tool_greedy:
                self._recover_greedy(param, buf, end)
            tool.partial = False
            log.debug("tool closed: %s params=%s", tool.name, list(tool.params))
            self._tool = None
            return

        name = self._registry.match_param_tag(buf, end)
        if name is not None:
            self._param = name
            self._param_start = end
            self._param_close = f"</{name}>"
            return

        # Parameter already closed on an embedded closing tag; widen it to
        # this later one.
        for param in self._tool_greedy:
            if buf.endswith(f"</{param}>", self._tool_start, end):
                self._recover_greedy(param, buf, end)

    # ── text blocks ──────────────────────────────────────────────

    def _open_text(self, pos: int) -> None:
        self._text = TextBlock(content="", partial=True)
        self._text_start = pos
        self._blocks.append(self._text)

    def _seal_text(self, content: str) -> None:
        text = self._text
        self._text = None
        content = content.strip()
        if not content:
            # Whitespace between tools; withdraw instead of emitting an empty block.
            if self._blocks and self._blocks[-1] is text:
                self._blocks.pop()
            return
        text.content = content
        text.partial = False

    # ── tool blocks ──────────────────────────────────────────────

    def _open_tool(self, name: str, buf: str, end: int) -> None:
        if self._text is not None:
            tag_start = max(self._text_start, end - len(name) - 2)
            self._seal_text(buf[self._text_start:tag_start])

        tool = ToolUseBlock(name=name, params={}, partial=True)
        self._blocks.append(tool)
        self._tool = tool
        self._tool_start = end
        self._tool_close = f"</{name}>"
        self._tool_greedy = self._registry.greedy_params(name)
        log.debug("tool opened: %s at %d", name, end)

    # ── parameters ───────────────────────────────────────────────

    def _close_param(self, buf: str, end: int) -> None:
        name = self._param
        raw = buf[self._param_start:end - len(self._param_close)]
        self._tool.params[name] = clean_param_value(name, raw)
        self._param = None
        log.debug("param closed: %s.%s = %s", self._tool.name, name, truncate(raw, 80))

    def _drop_param(self) -> None:
        log.warning(
            "dropping parameter %s of %s: value exceeds %d chars",
            self._param, self._tool.name, MAX_PARAM_LENGTH,
        )
        self._tool.params.pop(self._param, None)
        self._param = None

    def _recover_greedy(self, param: str, buf: str, end: int) -> None:
        body = buf[self._tool_start:end]
        open_tag = f"<{param}>"
        first = body.find(open_tag)
        if first == -1:
            return
        value_start = first + len(open_tag)
        last = body.rfind(f"</{param}>")
        if last < value_start or last - value_start > MAX_PARAM_LENGTH:
            return
        self._tool.params[param] = clean_param_value(param, body[value_start:last])

    def _publish_live_values(self) -> None:
        """Expose still-open text and parameter values to snapshot readers."""
        if self._text is not None:
            self._text.content = self._buffer[self._text_start:]
        if self._tool is not None and self._param is not None:
            self._tool.params[self._param] = self._buffer[self._param_start:]
