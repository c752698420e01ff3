"""Content block models produced by the streaming parser."""

from typing import Annotated, Any, Dict, List, Literal, Sequence, Union

from pydantic import BaseModel, Field, TypeAdapter


class TextBlock(BaseModel):
    """A run of plain text between or around tool invocations."""

    kind: Literal["text"] = "text"
    content: str = ""
    partial: bool = True


class ToolUseBlock(BaseModel):
    """One tool invocation. params keeps insertion order."""

    kind: Literal["tool_use"] = "tool_use"
    name: str
    params: Dict[str, str] = Field(default_factory=dict)
    partial: bool = True


ContentBlock = Annotated[Union[TextBlock, ToolUseBlock], Field(discriminator="kind")]

_blocks_adapter = TypeAdapter(List[ContentBlock])


def snapshot_blocks(blocks: Sequence[ContentBlock]) -> List[ContentBlock]:
    """Deep-copy blocks so the caller never sees later in-place mutation."""
    return [block.model_copy(deep=True) for block in blocks]


def dump_blocks(blocks: Sequence[ContentBlock]) -> List[Dict[str, Any]]:
    return _blocks_adapter.dump_python(list(blocks), mode="json")


def blocks_to_json(blocks: Sequence[ContentBlock], indent: int = 2) -> str:
    return _blocks_adapter.dump_json(list(blocks), indent=indent).decode("utf-8")


def blocks_from_json(data: Union[str, bytes]) -> List[ContentBlock]:
    """Load blocks previously written by blocks_to_json()."""
    return _blocks_adapter.validate_json(data)
