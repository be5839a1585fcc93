"""Tests for sm2pspp.output formatting."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from sm2pspp.converter import ConversionResult, ConversionStatus, convert_file
from sm2pspp.messages import Message
from sm2pspp.output import (
    format_diagnostic,
    format_response,
    format_summary,
    format_time,
    summary_data,
)


# ---------------------------------------------------------------------------
# format_time
# ---------------------------------------------------------------------------


class TestFormatTime:
    def test_none(self) -> None:
        assert format_time(None) == "N/A"

    def test_negative(self) -> None:
        assert format_time(-1) == "N/A"

    def test_seconds_only(self) -> None:
        assert format_time(42) == "42s"

    def test_hours_minutes_seconds(self) -> None:
        assert format_time(3723) == "1h 2m 3s"

    def test_days(self) -> None:
        assert format_time(95415) == "1d 2h 30m 15s"


# ---------------------------------------------------------------------------
# format_diagnostic / format_response
# ---------------------------------------------------------------------------


class TestFormatDiagnostic:
    def test_json(self) -> None:
        parsed = json.loads(format_diagnostic(Message.WARN_NO_THUMBNAIL, "a.gcode", json_mode=True))
        assert parsed == {
            "code": "WARN_NO_THUMBNAIL",
            "severity": "warning",
            "message": "Warning: Thumbnail data not found.",
            "file": "a.gcode",
            "line": None,
        }

    def test_json_with_line(self) -> None:
        parsed = json.loads(format_diagnostic(Message.ERR_FILE_READ, "a.gcode", 7, json_mode=True))
        assert parsed["line"] == 7
        assert parsed["severity"] == "error"

    def test_human(self) -> None:
        out = format_diagnostic(Message.WARN_NO_THUMBNAIL, "a.gcode")
        assert "a.gcode: Warning: Thumbnail data not found." in out

    def test_long_path_is_not_wrapped(self) -> None:
        path = "/home/user/prints/" + "a" * 120 + "/part.gcode"
        out = format_diagnostic(Message.WARN_NO_THUMBNAIL, path)
        assert "\n" not in out
        assert f"{path}: Warning: Thumbnail data not found." in out


class TestFormatResponse:
    def test_json_envelope(self) -> None:
        parsed = json.loads(format_response("success", data={"k": 1}, json_mode=True))
        assert parsed == {"status": "success", "data": {"k": 1}, "error": None}

    def test_human_error(self) -> None:
        out = format_response("error", error={"code": "VALIDATION_ERROR", "message": "bad"})
        assert "VALIDATION_ERROR" in out
        assert "bad" in out

    def test_human_data(self) -> None:
        out = format_response("success", data={"config_path": "/tmp/c.yaml"})
        assert "config_path" in out
        assert "/tmp/c.yaml" in out

    def test_plain_status(self) -> None:
        assert format_response("success") == "Status: success"


# ---------------------------------------------------------------------------
# Conversion summary
# ---------------------------------------------------------------------------


@pytest.fixture()
def converted(sample_file: Path) -> ConversionResult:
    return convert_file(sample_file)


class TestSummaryData:
    def test_sample(self, converted: ConversionResult) -> None:
        data = summary_data(converted)
        assert data["status"] == "success"
        assert data["modified"] is True
        assert data["already_processed"] is False
        assert data["estimated_time_seconds"] == 3723
        assert data["filament_used_m"] == pytest.approx(1.23456)
        assert data["nozzle_temperature_c"] == 215.0
        assert data["nozzle_1_temperature_c"] is None
        assert data["build_plate_temperature_c"] == 60.0
        assert data["work_speed_mm_min"] == 4800.0
        assert data["has_thumbnail"] is True
        assert data["file_total_lines"] == 58
        assert data["bounds_mm"]["max_y"] == 40.0
        assert data["has_geometry"] is True

    def test_already_processed(self, sample_file: Path) -> None:
        convert_file(sample_file)
        data = summary_data(convert_file(sample_file))
        assert data["already_processed"] is True
        assert data["modified"] is False
        assert "estimated_time_seconds" not in data

    def test_failure_without_scan(self) -> None:
        result = ConversionResult(
            status=ConversionStatus.FAILURE,
            file="x.gcode",
            messages=[Message.ERR_FILE_NOT_FOUND],
        )
        data = summary_data(result)
        assert data["status"] == "failure"
        assert data["messages"] == ["ERR_FILE_NOT_FOUND"]
        assert data["already_processed"] is False

    def test_missing_values_are_none(self, tmp_path: Path) -> None:
        p = tmp_path / "bare.gcode"
        p.write_bytes(b"G1 X1\n")
        data = summary_data(convert_file(p))
        assert data["estimated_time_seconds"] is None
        assert data["filament_used_m"] is None
        assert data["has_thumbnail"] is False
        assert data["has_geometry"] is False


class TestFormatSummary:
    def test_json(self, converted: ConversionResult) -> None:
        parsed = json.loads(format_summary(converted, json_mode=True))
        assert parsed["status"] == "success"
        assert parsed["error"] is None
        assert parsed["data"]["file_total_lines"] == 58

    def test_json_aborted(self) -> None:
        result = ConversionResult(status=ConversionStatus.ABORTED, file="x.gcode")
        assert json.loads(format_summary(result, json_mode=True))["status"] == "aborted"

    def test_human(self, converted: ConversionResult) -> None:
        out = format_summary(converted)
        assert "sm2pspp" in out
        assert "1h 2m 3s" in out
        assert "215°C" in out
        assert "1.23 m" in out
