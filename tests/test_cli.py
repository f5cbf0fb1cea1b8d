"""Tests for the command-line interface."""

import logging

import pytest
from click.testing import CliRunner

from machobin import __version__
from machobin.cli import hexdump, main


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo the root logger setup done by the CLI group."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def image_path(symbol_image, write_image):
    return str(write_image(symbol_image))


class TestCli:
    """Tests for the machobin command group."""

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_info(self, runner, image_path):
        """Test the header and command table listing."""
        result = runner.invoke(main, ["info", image_path])

        assert result.exit_code == 0, result.output
        assert "X86 / ALL" in result.output
        assert "EXECUTE" in result.output
        assert "little-endian" in result.output
        assert "LC_SEGMENT" in result.output
        assert "LC_SYMTAB" in result.output
        assert "LC_UUID" in result.output

    def test_commands(self, runner, image_path):
        result = runner.invoke(main, ["commands", image_path])

        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert len(lines) == 3
        assert lines[1].startswith("LC_LOAD_DYLIB")

    def test_symbols(self, runner, image_path):
        result = runner.invoke(main, ["symbols", image_path])

        assert result.exit_code == 0, result.output
        assert "main" in result.output
        assert "0x1000" in result.output
        assert "GLOBAL" in result.output

    def test_dump(self, runner, image_path):
        """Test hex dumping a symbol."""
        result = runner.invoke(main, ["dump", image_path, "main", "-n", "4"])

        assert result.exit_code == 0, result.output
        assert result.output.startswith("00001000  de ad be ef")

    def test_dump_missing_symbol(self, runner, image_path):
        result = runner.invoke(main, ["dump", image_path, "_missing"])

        assert result.exit_code == 1
        assert "Symbol not found: _missing" in result.output

    def test_not_macho(self, runner, write_image):
        """Test that load errors exit with status 1."""
        path = write_image(b"\x7fELF" + b"\x00" * 60, name="elf")
        result = runner.invoke(main, ["info", str(path)])

        assert result.exit_code == 1
        assert "unexpected magic value" in result.output

    def test_verbose_logging(self, runner, image_path):
        """Test that --verbose emits decoder debug records."""
        result = runner.invoke(main, ["--verbose", "commands", image_path])

        assert result.exit_code == 0, result.output
        assert "load command 0:" in result.output
        assert logging.getLogger().level == logging.DEBUG

    def test_default_level_is_quiet(self, runner, image_path):
        result = runner.invoke(main, ["commands", image_path])

        assert result.exit_code == 0, result.output
        assert "load command 0:" not in result.output


class TestHexdump:
    """Tests for hex dump formatting."""

    def test_lines(self):
        lines = hexdump(b"ABCDEFGHIJKLMNOP\x00\x01", 0x100)

        assert lines[0] == "00000100  " + " ".join(f"{b:02x}" for b in b"ABCDEFGHIJKLMNOP") + "  ABCDEFGHIJKLMNOP"
        assert lines[1].startswith("00000110  00 01 ")
        assert lines[1].endswith("  ..")

    def test_empty(self):
        assert hexdump(b"", 0) == []
