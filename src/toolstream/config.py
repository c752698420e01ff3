"""Configuration management for toolstream."""

import os
import json
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, List, Optional
from dotenv import load_dotenv

DEFAULT_CHUNK_SIZE = 16


def get_global_config_path() -> Path:
    """Get path to global config: ~/.toolstream.json"""
    return Path.home() / ".toolstream.json"


def get_workspace_config_path(workspace: Optional[Path] = None) -> Path:
    """Get path to workspace config: workspace/.toolstream/config.json"""
    ws = workspace or Path.cwd()
    return ws / ".toolstream" / "config.json"


def load_json_config(path: Path) -> dict:
    """Load config from JSON file if it exists."""
    if path.exists():
        try:
            data = json.loads(path.read_text())
        except (json.JSONDecodeError, IOError):
            return {}
        if isinstance(data, dict):
            return data
    return {}


def _split_names(value: Any) -> List[str]:
    if isinstance(value, str):
        return [n.strip() for n in value.split(",") if n.strip()]
    if isinstance(value, (list, tuple)):
        return [str(n).strip() for n in value if n and str(n).strip()]
    return []


def _as_chunk_size(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"chunk_size must be an integer, got {value!r}") from None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass
class ParserConfig:
    """Settings for the parser and the command-line tool."""

    extra_tool_names: List[str] = field(default_factory=list)
    chunk_size: int = DEFAULT_CHUNK_SIZE
    debug: bool = False

    @classmethod
    def from_json(cls, workspace: Optional[Path] = None) -> "ParserConfig":
        """Load configuration from JSON files.

        Priority (later overrides earlier):
        1. ~/.toolstream.json (global)
        2. workspace/.toolstream/config.json (workspace-specific)
        """
        config_data = {}
        config_data.update(load_json_config(get_global_config_path()))
        config_data.update(load_json_config(get_workspace_config_path(workspace)))

        return cls(
            extra_tool_names=_split_names(config_data.get("extra_tool_names", [])),
            chunk_size=_as_chunk_size(config_data.get("chunk_size", DEFAULT_CHUNK_SIZE)),
            debug=_as_bool(config_data.get("debug", False)),
        )

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None, workspace: Optional[Path] = None) -> "ParserConfig":
        """Load configuration from environment variables, falling back to JSON."""
        if env_path and env_path.exists():
            load_dotenv(env_path)
        else:
            load_dotenv()

        base = cls.from_json(workspace)

        names = os.getenv("TOOLSTREAM_EXTRA_TOOL_NAMES")
        chunk_size = os.getenv("TOOLSTREAM_CHUNK_SIZE")
        debug = os.getenv("TOOLSTREAM_DEBUG")

        return cls(
            extra_tool_names=_split_names(names) if names is not None else base.extra_tool_names,
            chunk_size=_as_chunk_size(chunk_size) if chunk_size else base.chunk_size,
            debug=_as_bool(debug) if debug is not None else base.debug,
        )

    def validate(self) -> bool:
        """Validate the configuration."""
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        return True
