"""Tests for the luabundle command line."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from luabundle import __version__
from luabundle.cli import build_config, build_parser, main
from luabundle.core.config import MangleMode


@pytest.fixture(autouse=True)
def reset_luabundle_logger():
    """main() configures the package logger; drop its handlers after each test."""
    yield
    logger = logging.getLogger("luabundle")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def entry(tmp_path: Path) -> Path:
    (tmp_path / "lib.lua").write_text(
        "local lib = {}\nlib._secret = VALUE\nreturn lib\n", encoding="utf-8"
    )
    path = tmp_path / "main.lua"
    path.write_text("local lib = require 'lib'\nprint(lib._secret)\n", encoding="utf-8")
    return path


class TestParser:
    """Argument parsing and config merging."""

    def test_defaults(self, entry: Path):
        args = build_parser().parse_args([str(entry)])
        config = build_config(args)

        assert args.output is None
        assert args.log_level == "INFO"
        assert config.mangle_mode is MangleMode.DISABLED
        assert config.defines == {}
        assert config.minify is True

    def test_overrides(self, entry: Path):
        args = build_parser().parse_args([
            str(entry),
            "-D", "A=1",
            "--define", "B=x=y",
            "--mangle", "auto",
            "--naming-scheme", "lowercase",
            "--no-sentinel-protection",
            "--seed", "5",
            "--validate-modules",
            "--no-minify",
            "--log-level", "debug",
        ])
        config = build_config(args)

        assert config.defines == {"A": "1", "B": "x=y"}
        assert config.mangle_mode is MangleMode.AUTO
        assert config.naming_scheme == "lowercase"
        assert config.protect_sentinel is False
        assert config.random_seed == 5
        assert config.validate_modules is True
        assert config.minify is False
        assert args.log_level == "DEBUG"

    def test_command_line_overrides_config_file(self, entry: Path, tmp_path: Path):
        config_path = tmp_path / "bundle.json"
        config_path.write_text(
            json.dumps({"mangle_mode": "manual", "defines": {"A": "file", "C": "3"}}),
            encoding="utf-8",
        )
        args = build_parser().parse_args(
            [str(entry), "--config", str(config_path), "-D", "A=cli"]
        )
        config = build_config(args)

        assert config.mangle_mode is MangleMode.MANUAL
        assert config.defines == {"A": "cli", "C": "3"}


class TestMain:
    """Exit codes and files produced by main()."""

    def test_success(self, entry: Path):
        assert main([str(entry), "--seed", "1"]) == 0

        output = entry.with_name("main.min.lua")
        assert output.exists()
        assert "lib._secret=VALUE" in output.read_text(encoding="utf-8")

    def test_no_minify(self, entry: Path):
        assert main([str(entry), "--seed", "1", "--no-minify"]) == 0

        text = entry.with_name("main.min.lua").read_text(encoding="utf-8")
        assert "lib._secret = VALUE" in text
        assert "\n" in text

    def test_defines_and_mangle(self, entry: Path, tmp_path: Path):
        output = tmp_path / "out" / "game.lua"
        code = main([str(entry), "-o", str(output), "-D", "VALUE=42", "--mangle", "manual"])

        assert code == 0
        text = output.read_text(encoding="utf-8")
        assert "_secret" not in text
        # defines only touch the entry file, not inlined modules
        assert "VALUE" in text

    def test_missing_entry(self, tmp_path: Path):
        assert main([str(tmp_path / "nope.lua")]) == 1
        assert list(tmp_path.iterdir()) == []

    def test_bad_define(self, entry: Path):
        assert main([str(entry), "-D", "NOEQUALS"]) == 1
        assert not entry.with_name("main.min.lua").exists()

    def test_unknown_mangle_mode(self, entry: Path):
        assert main([str(entry), "--mangle", "sometimes"]) == 1

    def test_missing_config_file(self, entry: Path, tmp_path: Path):
        assert main([str(entry), "--config", str(tmp_path / "missing.json")]) == 1
        assert not entry.with_name("main.min.lua").exists()

    def test_invalid_config_file(self, entry: Path, tmp_path: Path):
        config_path = tmp_path / "bundle.json"
        config_path.write_text("{broken", encoding="utf-8")
        assert main([str(entry), "--config", str(config_path)]) == 1

    def test_log_file(self, entry: Path, tmp_path: Path):
        log_file = tmp_path / "logs" / "run.log"
        assert main([str(entry), "--log-file", str(log_file), "--log-level", "DEBUG"]) == 0
        assert log_file.exists()
        assert "Bundled 1 module(s)" in log_file.read_text(encoding="utf-8")

    def test_version(self, capsys):
        assert main(["--version"]) == 0
        assert __version__ in capsys.readouterr().out
