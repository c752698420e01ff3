"""Single source of truth for the tags the parser recognizes.

Every built-in tool is defined ONCE here.  The parser derives its
opening-tag lookups, the closed parameter-name set, and the greedy
content-recovery policy from this module.

Adding a new built-in tool?  Add it to TOOL_DEFS.  Tools that only exist
at runtime (extensions, MCP bridges) are registered per parser through
TagRegistry.set_extra_tool_names().
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .logger import get_logger

log = get_logger("registry")


# ── Tool Definition ──────────────────────────────────────────────

@dataclass
class ToolDef:
    """Canonical definition of a built-in tool.

    greedy_params names the parameters whose value may legitimately
    contain that parameter's own closing tag (file contents and the like).
    For those, the value runs from the FIRST opening tag to the LAST
    closing tag inside the tool body.
    """
    name: str
    group: str = "read"               # read, edit, browser, command, mcp, modes, memory
    greedy_params: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ParamPolicy:
    """How a (tool, parameter) pair is recovered when its body is ambiguous."""
    greedy: bool = False


# ── The Registry ─────────────────────────────────────────────────

TOOL_DEFS: List[ToolDef] = [
    # --- Read ---
    ToolDef("read_file",                  group="read"),
    ToolDef("fetch_instructions",         group="read"),
    ToolDef("search_files",               group="read"),
    ToolDef("list_files",                 group="read"),
    ToolDef("list_code_definition_names", group="read"),
    ToolDef("codebase_search",            group="read"),

    # --- Edit ---
    ToolDef("write_to_file",      group="edit", greedy_params=("content",)),
    ToolDef("apply_diff",         group="edit"),
    ToolDef("insert_content",     group="edit"),
    ToolDef("search_and_replace", group="edit"),
    ToolDef("generate_image",     group="edit"),

    # --- Browser / command / MCP ---
    ToolDef("browser_action",      group="browser"),
    ToolDef("execute_command",     group="command"),
    ToolDef("run_slash_command",   group="command"),
    ToolDef("use_mcp_tool",        group="mcp"),
    ToolDef("access_mcp_resource", group="mcp"),

    # --- Modes / conversation flow ---
    ToolDef("ask_followup_question", group="modes"),
    ToolDef("attempt_completion",    group="modes"),
    ToolDef("switch_mode",           group="modes"),
    ToolDef("new_task",              group="modes"),
    ToolDef("update_todo_list",      group="modes"),

    # --- Roleplay memory ---
    ToolDef("add_episodic_memory", group="memory"),
    ToolDef("add_semantic_memory", group="memory"),
    ToolDef("update_traits",       group="memory"),
    ToolDef("update_goals",        group="memory"),
    ToolDef("search_memories",     group="memory"),
    ToolDef("get_memory_stats",    group="memory"),
    ToolDef("get_recent_memories", group="memory"),
    ToolDef("cleanup_memories",    group="memory"),
]

# Closed set: parameter tags outside this list are never tracked.
PARAM_NAMES: Tuple[str, ...] = (
    "command", "path", "content", "line_count", "regex", "file_pattern",
    "recursive", "action", "url", "coordinate", "text", "server_name",
    "tool_name", "arguments", "uri", "question", "result", "diff",
    "mode_slug", "reason", "line", "mode", "message", "cwd", "follow_up",
    "task", "size", "search", "replace", "use_regex", "ignore_case",
    "args", "start_line", "end_line", "query", "todos", "prompt", "image",
    "xml_memory", "user_message", "xml_traits", "xml_goals", "search_text",
    "memory_types", "limit", "max_results", "max_age_days", "dry_run",
)

# Params whose value keeps its whitespace except one wrapping newline each side.
NEWLINE_TRIMMED_PARAMS = frozenset({"content"})

# Derived lookups (computed once at import time)
TOOL_NAMES: List[str] = [t.name for t in TOOL_DEFS]
TOOL_BY_NAME: Dict[str, ToolDef] = {t.name: t for t in TOOL_DEFS}
PARAM_POLICIES: Dict[Tuple[str, str], ParamPolicy] = {
    (t.name, p): ParamPolicy(greedy=True) for t in TOOL_DEFS for p in t.greedy_params
}

EXTENSION_TOOL_NAME_RE = re.compile(r"^extension:[a-zA-Z0-9/_-]+$")


def get_tool_names() -> List[str]:
    """Return canonical list of built-in tool names."""
    return TOOL_NAMES


def get_tool_def(name: str) -> Optional[ToolDef]:
    """Return tool definition by name, or None if unknown."""
    return TOOL_BY_NAME.get(name)


def is_extension_tool_name(name: str) -> bool:
    """True for runtime tool names of the form ``extension:<ext-id>/<tool-id>``."""
    return bool(EXTENSION_TOOL_NAME_RE.match(name))


def _tag_table(names: Iterable[str]) -> Dict[str, str]:
    return {f"<{name}>": name for name in names}


class TagRegistry:
    """Per-parser view of the known tags.

    Opening-tag literals are precomputed into dicts so that the parser can
    test a candidate suffix with a single lookup instead of rebuilding
    every ``<name>`` string on every character.
    """

    def __init__(
        self,
        extra_tool_names: Iterable[str] = (),
        param_names: Iterable[str] = PARAM_NAMES,
        policies: Optional[Dict[Tuple[str, str], ParamPolicy]] = None,
    ):
        self._param_names: Tuple[str, ...] = tuple(param_names)
        self._param_tags = _tag_table(self._param_names)
        self._param_tag_max = max((len(t) for t in self._param_tags), default=0)
        self._policies = dict(PARAM_POLICIES if policies is None else policies)
        self._extra: List[str] = []
        self._tool_tags: Dict[str, str] = {}
        self._tool_tag_max = 0
        self.set_extra_tool_names(extra_tool_names)

    # ── tool names ──

    def set_extra_tool_names(self, names: Iterable[str]) -> None:
        """Replace the runtime tool names.

        Falsy entries and duplicates are dropped.  Names containing a tag
        delimiter could never be matched, so they are dropped with a warning.
        """
        extra: List[str] = []
        for name in names:
            if not name or name in extra:
                continue
            if "<" in name or ">" in name:
                log.warning("ignoring extra tool name with tag delimiter: %r", name)
                continue
            extra.append(name)
        for name in extra:
            if name not in TOOL_BY_NAME and not is_extension_tool_name(name):
                log.debug("extra tool name is not extension-style: %s", name)
        self._extra = extra
        self._tool_tags = _tag_table(self.known_tool_names())
        self._tool_tag_max = max((len(t) for t in self._tool_tags), default=0)

    def copy(self) -> "TagRegistry":
        """Independent registry with the same params, policies and extra names."""
        return TagRegistry(
            extra_tool_names=self._extra,
            param_names=self._param_names,
            policies=self._policies,
        )

    @property
    def extra_tool_names(self) -> List[str]:
        return list(self._extra)

    def known_tool_names(self) -> List[str]:
        """Built-in names followed by extra names, without duplicates."""
        names = list(TOOL_NAMES)
        names.extend(n for n in self._extra if n not in TOOL_BY_NAME)
        return names

    def is_known_tool(self, name: str) -> bool:
        return f"<{name}>" in self._tool_tags

    # ── parameters ──

    @property
    def param_names(self) -> Tuple[str, ...]:
        return self._param_names

    def is_param(self, name: str) -> bool:
        return f"<{name}>" in self._param_tags

    def policy(self, tool_name: str, param_name: str) -> ParamPolicy:
        return self._policies.get((tool_name, param_name), ParamPolicy())

    def greedy_params(self, tool_name: str) -> List[str]:
        return [p for (t, p), pol in self._policies.items() if t == tool_name and pol.greedy]

    # ── suffix lookups ──

    def match_tool_tag(self, buffer: str, end: int) -> Optional[str]:
        """Return the tool whose opening tag ends at buffer[end - 1], if any."""
        return self._match(self._tool_tags, self._tool_tag_max, buffer, end)

    def match_param_tag(self, buffer: str, end: int) -> Optional[str]:
        """Return the parameter whose opening tag ends at buffer[end - 1], if any."""
        return self._match(self._param_tags, self._param_tag_max, buffer, end)

    @staticmethod
    def _match(table: Dict[str, str], max_len: int, buffer: str, end: int) -> Optional[str]:
        # Every tag ends with '>' and names never contain '<', so the only
        # candidate is the span from the last '<' to the end.
        if end == 0 or buffer[end - 1] != ">":
            return None
        start = buffer.rfind("<", max(0, end - max_len), end)
        if start == -1:
            return None
        return table.get(buffer[start:end])
