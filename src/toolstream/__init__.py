"""Streaming parser that splits assistant output into text and tool-use blocks."""

from .blocks import ContentBlock, TextBlock, ToolUseBlock, blocks_from_json, blocks_to_json, dump_blocks
from .config import ParserConfig
from .parser import (
    MAX_ACCUMULATOR_SIZE,
    MAX_PARAM_LENGTH,
    AssistantMessageParser,
    MessageTooLargeError,
)
from .registry import PARAM_NAMES, TOOL_DEFS, ParamPolicy, TagRegistry, ToolDef, get_tool_names
from .streaming import (
    completed_tool_uses,
    parse_assistant_message,
    parse_async_stream,
    parse_stream,
)

__version__ = "0.1.0"
__all__ = [
    "AssistantMessageParser",
    "MessageTooLargeError",
    "MAX_ACCUMULATOR_SIZE",
    "MAX_PARAM_LENGTH",
    "ContentBlock",
    "TextBlock",
    "ToolUseBlock",
    "blocks_from_json",
    "blocks_to_json",
    "dump_blocks",
    "ParserConfig",
    "PARAM_NAMES",
    "TOOL_DEFS",
    "ParamPolicy",
    "TagRegistry",
    "ToolDef",
    "get_tool_names",
    "completed_tool_uses",
    "parse_assistant_message",
    "parse_async_stream",
    "parse_stream",
]
