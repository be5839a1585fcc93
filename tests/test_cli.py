"""Tests for sm2pspp.cli using Click's CliRunner."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from sm2pspp import __version__, exit_codes
from sm2pspp.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def _isolated(env_clean, root_logger_restore):
    """Keep CLI tests away from the user's config and logging setup."""
    yield


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


class TestConvert:
    def test_converts_file(self, runner, sample_file: Path, sample_gcode: bytes) -> None:
        result = runner.invoke(cli, [str(sample_file)])
        assert result.exit_code == exit_codes.SUCCESS, result.output
        content = sample_file.read_bytes()
        assert content.startswith(b";post-processed by sm2pspp ")
        assert content.endswith(sample_gcode)

    def test_second_run_succeeds(self, runner, sample_file: Path) -> None:
        runner.invoke(cli, [str(sample_file)])
        once = sample_file.read_bytes()
        result = runner.invoke(cli, [str(sample_file)])
        assert result.exit_code == exit_codes.SUCCESS
        assert sample_file.read_bytes() == once

    def test_remove_thumbnail_flag(self, runner, sample_file: Path) -> None:
        result = runner.invoke(cli, [str(sample_file), "--remove-thumbnail"])
        assert result.exit_code == exit_codes.SUCCESS
        assert b"; thumbnail begin" not in sample_file.read_bytes()

    def test_remove_thumbnail_from_env(
        self, runner, sample_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SM2PSPP_REMOVE_THUMBNAIL", "1")
        runner.invoke(cli, [str(sample_file)])
        assert b"; thumbnail begin" not in sample_file.read_bytes()

    def test_keep_thumbnail_overrides_config(self, runner, sample_file: Path, tmp_path: Path) -> None:
        cfg = tmp_path / "c.yaml"
        cfg.write_text("remove_thumbnail: true\n")
        runner.invoke(cli, [str(sample_file), "--config", str(cfg), "--keep-thumbnail"])
        assert b"; thumbnail begin" in sample_file.read_bytes()

    def test_warnings_do_not_fail(self, runner, tmp_path: Path, sample_without_thumbnail: bytes) -> None:
        p = tmp_path / "nothumb.gcode"
        p.write_bytes(sample_without_thumbnail)
        result = runner.invoke(cli, [str(p)])
        assert result.exit_code == exit_codes.SUCCESS
        assert "Thumbnail data not found" in result.output
        assert p.read_bytes().startswith(b";post-processed by sm2pspp ")

    def test_warning_for_long_path_on_one_line(
        self, runner, tmp_path: Path, sample_without_thumbnail: bytes
    ) -> None:
        folder = tmp_path / ("prints_" + "x" * 100)
        folder.mkdir()
        p = folder / "nothumb.gcode"
        p.write_bytes(sample_without_thumbnail)
        result = runner.invoke(cli, [str(p)])
        assert result.exit_code == exit_codes.SUCCESS
        expected = f"{p}: Warning: Thumbnail data not found."
        assert any(expected in line for line in result.output.splitlines())


# ---------------------------------------------------------------------------
# Abort and error exit codes
# ---------------------------------------------------------------------------


class TestExitCodes:
    def test_missing_file(self, runner, tmp_path: Path) -> None:
        result = runner.invoke(cli, [str(tmp_path / "nope.gcode")])
        assert result.exit_code == exit_codes.FILE_ERROR
        assert "Input file not found" in result.output

    def test_strict_aborts(self, runner, tmp_path: Path, sample_without_thumbnail: bytes) -> None:
        p = tmp_path / "nothumb.gcode"
        p.write_bytes(sample_without_thumbnail)
        result = runner.invoke(cli, [str(p), "--strict"])
        assert result.exit_code == exit_codes.ABORTED
        assert p.read_bytes() == sample_without_thumbnail

    def test_abort_on_named_warning(self, runner, tmp_path: Path, sample_without_thumbnail: bytes) -> None:
        p = tmp_path / "nothumb.gcode"
        p.write_bytes(sample_without_thumbnail)
        result = runner.invoke(cli, [str(p), "--abort-on", "no_thumbnail"])
        assert result.exit_code == exit_codes.ABORTED
        assert p.read_bytes() == sample_without_thumbnail

    def test_abort_on_other_warning_converts(
        self, runner, tmp_path: Path, sample_without_thumbnail: bytes
    ) -> None:
        p = tmp_path / "nothumb.gcode"
        p.write_bytes(sample_without_thumbnail)
        result = runner.invoke(cli, [str(p), "--abort-on", "no_est_time"])
        assert result.exit_code == exit_codes.SUCCESS

    def test_unknown_abort_on_name(self, runner, sample_file: Path, sample_gcode: bytes) -> None:
        result = runner.invoke(cli, [str(sample_file), "--abort-on", "bogus"])
        assert result.exit_code == exit_codes.OTHER_ERROR
        assert "VALIDATION_ERROR" in result.output
        assert sample_file.read_bytes() == sample_gcode

    def test_invalid_log_level(self, runner, sample_file: Path) -> None:
        result = runner.invoke(cli, [str(sample_file), "--log-level", "loud", "--json"])
        assert result.exit_code == exit_codes.OTHER_ERROR
        parsed = json.loads(result.output)
        assert parsed["status"] == "error"
        assert parsed["error"]["code"] == "VALIDATION_ERROR"

    def test_missing_argument(self, runner) -> None:
        result = runner.invoke(cli, [])
        assert result.exit_code == 2
        assert "FILE_PATH" in result.output


# ---------------------------------------------------------------------------
# Output modes
# ---------------------------------------------------------------------------


class TestOutput:
    def test_json_summary(self, runner, sample_file: Path) -> None:
        result = runner.invoke(cli, [str(sample_file), "--json"])
        assert result.exit_code == exit_codes.SUCCESS
        parsed = json.loads(result.stdout)
        assert parsed["status"] == "success"
        data = parsed["data"]
        assert data["modified"] is True
        assert data["file_total_lines"] == 58
        assert data["estimated_time_seconds"] == 3723

    def test_json_diagnostics_are_json_lines(self, runner, tmp_path: Path, sample_without_thumbnail: bytes) -> None:
        p = tmp_path / "nothumb.gcode"
        p.write_bytes(sample_without_thumbnail)
        result = runner.invoke(cli, [str(p), "--json"])
        diagnostics = [
            json.loads(line) for line in result.output.splitlines() if line.startswith('{"code"')
        ]
        assert diagnostics[0]["code"] == "WARN_NO_THUMBNAIL"

    def test_human_summary(self, runner, sample_file: Path) -> None:
        result = runner.invoke(cli, [str(sample_file), "--summary"])
        assert result.exit_code == exit_codes.SUCCESS
        assert "1h 2m 3s" in result.output

    def test_quiet_by_default(self, runner, sample_file: Path) -> None:
        result = runner.invoke(cli, [str(sample_file)])
        assert result.output == ""

    def test_version(self, runner) -> None:
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


# ---------------------------------------------------------------------------
# --init-config
# ---------------------------------------------------------------------------


class TestInitConfig:
    def test_writes_config(self, runner, tmp_path: Path) -> None:
        target = tmp_path / "conf" / "config.yaml"
        result = runner.invoke(cli, ["--init-config", "--config", str(target), "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["data"]["config_path"] == str(target)
        assert yaml.safe_load(target.read_text())["strict"] is False

    def test_written_config_is_used(self, runner, tmp_path: Path, sample_without_thumbnail: bytes) -> None:
        target = tmp_path / "config.yaml"
        runner.invoke(cli, ["--init-config", "--config", str(target)])
        target.write_text(target.read_text().replace("strict: false", "strict: true"))
        p = tmp_path / "nothumb.gcode"
        p.write_bytes(sample_without_thumbnail)
        result = runner.invoke(cli, [str(p), "--config", str(target)])
        assert result.exit_code == exit_codes.ABORTED
