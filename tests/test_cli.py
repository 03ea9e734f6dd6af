import json
import logging
from pathlib import Path

import pytest

from image_builders import put_u32
from gmfind import cli, gm80


def _write_gm80(tmp_path: Path) -> Path:
    buf = bytearray(gm80.HEADER_OFFSET + 64)
    put_u32(buf, gm80.HEADER_OFFSET, gm80.HEADER_MAGIC)
    put_u32(buf, gm80.HEADER_OFFSET + 4, gm80.HEADER_VERSION)
    path = tmp_path / "game.exe"
    path.write_bytes(bytes(buf))
    return path


def test_identifies_plain_runner(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write_gm80(tmp_path)
    output = tmp_path / "report.json"
    assert cli.main([str(path), "--output", str(output)]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["version"] == "gm80"
    assert data["branch"] == "gm80"
    assert data["header_offset"] == gm80.HEADER_OFFSET + 12
    assert "upx" not in data
    assert json.loads(output.read_text(encoding="utf-8")) == data


def test_unknown_format_exit_code(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "tiny.exe"
    path.write_bytes(bytes(4096))
    assert cli.main([str(path), "--upx", "off"]) == 1
    data = json.loads(capsys.readouterr().out)
    assert data["version"] is None
    assert "unknown" in data["error"]


def test_missing_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main([str(tmp_path / "absent.exe")]) == 2
    assert "cannot read" in capsys.readouterr().err


def test_log_file_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    log_path = tmp_path / "logs" / "diag.txt"
    monkeypatch.setenv(cli.LOG_FILE_ENV, str(log_path))
    path = _write_gm80(tmp_path)
    assert cli.main([str(path)]) == 0
    text = log_path.read_text(encoding="utf-8")
    assert "Checking for standard GM8.0 format" in text
    assert not [h for h in logging.getLogger(cli.DIAGNOSTICS_LOGGER).handlers if getattr(h, "_gmfind_debug_file", False)]


def test_verbose_prints_diagnostics(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "tiny.exe"
    path.write_bytes(bytes(64))
    assert cli.main([str(path), "-v"]) == 1
    err = capsys.readouterr().err
    assert "Checking for lazy GM8.1 format" in err


def test_explicit_upx_hint(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "packed.exe"
    path.write_bytes(bytes(64))
    # The payload offset points past the end, so unpacking fails on its first read.
    assert cli.main([str(path), "--upx-max-size", "0x1000", "--upx-offset", "0x80"]) == 2
    data = json.loads(capsys.readouterr().out)
    assert data["upx"] == {"max_size": 0x1000, "disk_offset": 0x80}


def test_upx_arguments_come_in_pairs(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(tmp_path / "x.exe"), "--upx-max-size", "16"])
    assert excinfo.value.code == 2


def test_rejects_values_wider_than_32_bits(tmp_path: Path) -> None:
    with pytest.raises(SystemExit):
        cli.main([str(tmp_path / "x.exe"), "--upx-max-size", "0x100000000", "--upx-offset", "0"])
