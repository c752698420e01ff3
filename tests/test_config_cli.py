"""Tests for configuration loading and the command-line tool."""

import io
import json
import logging
import sys
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest
from rich.console import Console

# Ensure src is on path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from toolstream import cli, config
from toolstream.config import ParserConfig
from toolstream.logger import ROOT_LOGGER, close_logging, get_logger, init_logging
from toolstream.parser import MAX_ACCUMULATOR_SIZE

ENV_VARS = ("TOOLSTREAM_EXTRA_TOOL_NAMES", "TOOLSTREAM_CHUNK_SIZE", "TOOLSTREAM_DEBUG")


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """Point global config at tmp_path and clear toolstream env vars."""
    monkeypatch.setattr(config, "get_global_config_path", lambda: tmp_path / "global.json")
    for name in ENV_VARS:
        # setenv first so the variable is restored (removed) after the test
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    yield tmp_path
    close_logging()


class TestParserConfig:
    def test_defaults(self, isolated):
        cfg = ParserConfig.from_json(isolated)
        assert cfg.extra_tool_names == []
        assert cfg.chunk_size == 16
        assert cfg.debug is False

    def test_workspace_overrides_global(self, isolated):
        (isolated / "global.json").write_text(json.dumps({"chunk_size": 8, "extra_tool_names": ["a"]}))
        ws_dir = isolated / ".toolstream"
        ws_dir.mkdir()
        (ws_dir / "config.json").write_text(json.dumps({"chunk_size": 32}))
        cfg = ParserConfig.from_json(isolated)
        assert cfg.chunk_size == 32
        assert cfg.extra_tool_names == ["a"]

    def test_bad_json_ignored(self, isolated):
        (isolated / "global.json").write_text("{not json")
        assert ParserConfig.from_json(isolated).chunk_size == 16

    def test_env_overrides_json(self, isolated, monkeypatch):
        (isolated / "global.json").write_text(json.dumps({"chunk_size": 8}))
        env_file = isolated / ".env"
        env_file.write_text("")
        monkeypatch.setenv("TOOLSTREAM_EXTRA_TOOL_NAMES", "extension:x/y, other ,")
        monkeypatch.setenv("TOOLSTREAM_DEBUG", "yes")
        cfg = ParserConfig.from_env(env_file, workspace=isolated)
        assert cfg.extra_tool_names == ["extension:x/y", "other"]
        assert cfg.chunk_size == 8
        assert cfg.debug is True

    def test_dotenv_file_loaded(self, isolated):
        env_file = isolated / ".env"
        env_file.write_text("TOOLSTREAM_CHUNK_SIZE=4\n")
        cfg = ParserConfig.from_env(env_file, workspace=isolated)
        assert cfg.chunk_size == 4

    def test_validate(self):
        assert ParserConfig().validate()
        with pytest.raises(ValueError):
            ParserConfig(chunk_size=0).validate()


def run_cli(argv):
    out = io.StringIO()
    console = Console(file=out, width=120, color_system=None)
    args = cli.build_arg_parser().parse_args(argv)
    code = cli.run(args, console=console)
    return code, out.getvalue()


class TestCli:
    def test_json_output(self, isolated):
        path = isolated / "msg.txt"
        path.write_text("Hi <read_file><path>a.txt</path></read_file>")
        code, output = run_cli([str(path), "--json", "--chunk-size", "3"])
        assert code == 0
        assert json.loads(output) == [
            {"kind": "text", "content": "Hi", "partial": False},
            {"kind": "tool_use", "name": "read_file", "params": {"path": "a.txt"}, "partial": False},
        ]

    def test_extra_tool_flag(self, isolated):
        path = isolated / "msg.txt"
        path.write_text("<extension:calc/add><args>1 2</args></extension:calc/add>")
        code, output = run_cli([str(path), "--json", "--extra-tool", "extension:calc/add"])
        assert code == 0
        assert json.loads(output)[0]["name"] == "extension:calc/add"

    def test_human_output(self, isolated):
        path = isolated / "msg.txt"
        path.write_text("<execute_command><command>ls</command></execute_command>")
        code, output = run_cli([str(path)])
        assert code == 0
        assert "execute_command" in output
        assert "command" in output

    def test_live_output(self, isolated):
        path = isolated / "msg.txt"
        path.write_text("Streaming <list_files><path>.</path></list_files>")
        code, output = run_cli([str(path), "--live", "--chunk-size", "2"])
        assert code == 0
        assert "list_files" in output

    def test_too_large(self, isolated):
        path = isolated / "big.txt"
        path.write_text("a" * (MAX_ACCUMULATOR_SIZE + 1))
        code, output = run_cli([str(path), "--chunk-size", "4096"])
        assert code == 1
        assert "too large" in output.lower()

    def test_bad_chunk_size(self, isolated):
        path = isolated / "msg.txt"
        path.write_text("hi")
        code, output = run_cli([str(path), "--chunk-size", "0"])
        assert code == 2

    def test_non_numeric_env_chunk_size(self, isolated, monkeypatch):
        monkeypatch.setenv("TOOLSTREAM_CHUNK_SIZE", "abc")
        path = isolated / "msg.txt"
        path.write_text("hi")
        code, output = run_cli([str(path)])
        assert code == 2
        assert "Configuration error" in output
        assert "'abc'" in output

    def test_non_numeric_json_chunk_size(self, isolated):
        (isolated / "global.json").write_text(json.dumps({"chunk_size": "big"}))
        path = isolated / "msg.txt"
        path.write_text("hi")
        code, output = run_cli([str(path)])
        assert code == 2
        assert "chunk_size must be an integer" in output


def toolstream_handlers():
    return [
        h for h in logging.getLogger(ROOT_LOGGER).handlers
        if not isinstance(h, logging.NullHandler)
    ]


class TestLogging:
    def test_get_logger_does_not_touch_filesystem(self, isolated):
        close_logging()
        log = get_logger("scratch")
        log.warning("nothing configured yet")
        assert log.name == "toolstream.scratch"
        assert get_logger("toolstream.scratch") is log
        assert not (isolated / ".toolstream_output").exists()
        assert toolstream_handlers() == []

    def test_cli_debug_and_workspace(self, isolated):
        (isolated / "global.json").write_text(json.dumps({"debug": True}))
        ws = isolated / "ws"
        ws.mkdir()
        path = isolated / "msg.txt"
        path.write_text("<read_file><path>a</path></read_file>")
        code, _ = run_cli([str(path), "--json", "--workspace", str(ws)])
        assert code == 0

        handlers = toolstream_handlers()
        stderr = [h for h in handlers if type(h) is logging.StreamHandler]
        files = [h for h in handlers if isinstance(h, RotatingFileHandler)]
        assert len(stderr) == 1
        assert len(files) == 1
        log_file = Path(files[0].baseFilename)
        assert log_file == (ws / ".toolstream_output" / "toolstream.log").resolve()
        assert log_file.exists()

    def test_reconfigure_drops_debug_handler(self, isolated):
        init_logging(str(isolated / "first"), debug=True)
        second = init_logging(str(isolated / "second"))
        handlers = toolstream_handlers()
        assert [type(h) for h in handlers] == [RotatingFileHandler]
        assert Path(handlers[0].baseFilename) == second
        assert second == isolated / "second" / ".toolstream_output" / "toolstream.log"
