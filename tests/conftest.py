"""Shared fixtures for the sm2pspp test suite."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest
import yaml

from sm2pspp.parsing import Token


# ---------------------------------------------------------------------------
# Sample G-code
# ---------------------------------------------------------------------------

THUMBNAIL_BLOCK_LINES = [
    "; thumbnail begin 16x16 20",
    "; iVBORw0KGgoAAAANSUhE",
    "; UgAAABAAAAAQ+/=",
    "; thumbnail end",
]

BODY_LINES = [
    "M73 P0 R10",
    "M107",
    "M190 S60",
    "G90",
    "M83",
    "G1 Z0.350 F7800",
    "G1 X10 Y10 E5",
    ";LAYER_CHANGE",
    ";Z:0.2",
    "G1 Z0.2 F7800",
    "G1 X20 Y20",
    "G1 X30 Y20 E1.5",
    "G1 X30 Y40 E1.5",
    ";LAYER_CHANGE",
    "G1 Z0.4",
    "G1 X25 Y30 E1",
    "M104 S0",
]

METADATA_LINES = [
    "; filament used [mm] = 1234.56",
    "; estimated printing time (normal mode) = 1h 2m 3s",
    "; first_layer_bed_temperature = 60",
    "; first_layer_height = 0.2",
    "; first_layer_temperature = 215",
    "; layer_height = 0.2",
    "; max_print_speed = 80",
]


def build_gcode(*sections: list[str]) -> bytes:
    """Join line lists into one newline-terminated G-code buffer."""
    lines: list[str] = []
    for section in sections:
        lines.extend(section)
    return ("\n".join(lines) + "\n").encode("utf-8")


def token_for(text: bytes) -> tuple[bytes, Token]:
    """Wrap *text* into a ``(buffer, token)`` pair covering all of it."""
    return text, Token(0, len(text))


@pytest.fixture()
def sample_gcode() -> bytes:
    """A small PrusaSlicer style file with thumbnail, moves and metadata.

    32 lines.  Extrusion after the first ``;LAYER_CHANGE`` spans
    X 20..30, Y 20..40, Z 0.2..0.4.
    """
    return build_gcode(
        ["; generated by PrusaSlicer 2.5.0", ";"],
        THUMBNAIL_BLOCK_LINES,
        [";", ""],
        BODY_LINES,
        METADATA_LINES,
    )


@pytest.fixture()
def sample_without_thumbnail() -> bytes:
    return build_gcode(["; generated by PrusaSlicer 2.5.0"], BODY_LINES, METADATA_LINES)


@pytest.fixture()
def sample_file(tmp_path: Path, sample_gcode: bytes) -> Path:
    """Write the sample G-code to a temporary file."""
    p = tmp_path / "part.gcode"
    p.write_bytes(sample_gcode)
    return p


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture()
def env_clean(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Clear sm2pspp env vars and point HOME at an empty directory."""
    for name in (
        "SM2PSPP_REMOVE_THUMBNAIL",
        "SM2PSPP_STRICT",
        "SM2PSPP_LOG_LEVEL",
        "SM2PSPP_LOG_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))


@pytest.fixture()
def root_logger_restore():
    """Drop rotating handlers and restore the root level after a test."""
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in [h for h in root.handlers if isinstance(h, RotatingFileHandler)]:
        handler.close()
    root.handlers = [h for h in root.handlers if not isinstance(h, RotatingFileHandler)]
    root.setLevel(level)


@pytest.fixture()
def sample_config_file(tmp_path: Path) -> Path:
    """Create a sample YAML config file."""
    config = {
        "remove_thumbnail": True,
        "strict": False,
        "abort_on": ["no_thumbnail"],
        "log_level": "info",
    }
    p = tmp_path / "config.yaml"
    with p.open("w") as fh:
        yaml.safe_dump(config, fh)
    return p
