"""Tests for CLI tool."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

import pytest

from shapewire import __version__
from shapewire.cli.main import main

RECORDS = '''
from typing import Annotated, ClassVar

from shapewire import FixedInt, Float32, Record, UInt8, UInt32


class Flags(Record):
    mode: Annotated[int, FixedInt(3)]
    armed: bool
    spare: Annotated[int, FixedInt(4)] = 0

    wire_packed_bits: ClassVar[int | None] = 8


class Status(Record):
    vehicle: UInt8
    depth: Float32
    flags: Flags
    log: list[UInt32]

    wire_max_bytes: ClassVar[int | None] = 64
'''


@pytest.fixture
def records_file(tmp_path: Path) -> Path:
    path = tmp_path / "records.py"
    path.write_text(RECORDS)
    return path


def test_cli_help() -> None:
    """Test CLI --help flag."""
    result = subprocess.run(
        [sys.executable, "-m", "shapewire.cli.main", "--help"],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0
    assert "shapewire: shape-directed binary serialization" in result.stdout
    assert "--analyze" in result.stdout
    assert "--verbose" in result.stdout


def test_cli_version() -> None:
    """Test CLI --version flag."""
    result = subprocess.run(
        [sys.executable, "-m", "shapewire.cli.main", "--version"],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0
    assert f"shapewire {__version__}" in result.stdout


def test_cli_analyze(records_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test CLI --analyze on a file with records."""
    assert main(["--analyze", str(records_file)]) == 0
    out = capsys.readouterr().out
    assert "2 records loaded." in out
    assert "Flags" in out
    assert "Packed into: u8" in out
    assert "Encoded size: 1 bytes" in out
    assert "Encoded size: variable" in out
    assert "Allowed maximum size: 64 bytes" in out
    assert "1. vehicle: u8" in out
    assert "3 bits" in out
    assert "item: u32" in out


def test_cli_analyze_subprocess(records_file: Path) -> None:
    """Test CLI --analyze end to end."""
    result = subprocess.run(
        [sys.executable, "-m", "shapewire.cli.main", "--analyze", str(records_file)],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0
    assert "Status" in result.stdout


def test_cli_analyze_no_records(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "empty.py"
    path.write_text("X = 1\n")
    assert main(["--analyze", str(path)]) == 0
    assert "No Record classes found" in capsys.readouterr().out


def test_cli_analyze_bad_record(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """A record without wire widths is reported as an error."""
    path = tmp_path / "bad.py"
    path.write_text("from shapewire import Record\n\n\nclass Bad(Record):\n    count: int\n")
    assert main(["--analyze", str(path)]) == 1
    assert "Bad.count" in capsys.readouterr().err


def test_cli_analyze_missing_file() -> None:
    """Test CLI --analyze with missing file."""
    result = subprocess.run(
        [sys.executable, "-m", "shapewire.cli.main", "--analyze", "nonexistent.py"],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 1
    assert "not found" in result.stderr.lower()


def test_cli_no_args() -> None:
    """Test CLI with no arguments (should show help)."""
    result = subprocess.run(
        [sys.executable, "-m", "shapewire.cli.main"],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0
    assert "shapewire: shape-directed binary serialization" in result.stdout


def test_cli_help_in_process(capsys: pytest.CaptureFixture[str]) -> None:
    """Test --help through main() without a subprocess."""
    with pytest.raises(SystemExit) as exc_info:
        main(["--help"])
    assert exc_info.value.code == 0
    out = capsys.readouterr().out
    assert "--analyze FILE" in out
    assert "--version" in out
