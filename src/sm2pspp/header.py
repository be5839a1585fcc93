"""Snapmaker 2.0 header synthesis and body splicing.

The header layout is fixed; optional lines are the thumbnail and the
second nozzle temperature.  Numbers are formatted like C's ``printf``
(``%.0f`` / ``%.2f``), which rounds the same way as Python's format
specifiers.

Positions and metadata values are Python floats (doubles).  A value that
sits on a rounding boundary can therefore print one digit off compared with
32-bit float arithmetic: an ``X1.115`` extent is written as ``1.11``, not
``1.12``.
"""

from __future__ import annotations

from sm2pspp import PROJECT_URL, __version__
from sm2pspp.geometry import AXES, BoundingBox
from sm2pspp.lexer import ScanResult
from sm2pspp.metadata import Slot
from sm2pspp.parsing import parse_duration

# Header lines written regardless of the optional ones.
HEADER_LINES = 24

# A second nozzle only counts as heated above this temperature.
SECOND_NOZZLE_MIN_TEMP = 0.1

_BASE64_ALPHABET = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/="
)
_NON_BASE64 = bytes(b for b in range(256) if b not in _BASE64_ALPHABET)


def thumbnail_payload(result: ScanResult) -> bytes | None:
    """Return the captured thumbnail as one base64 string, or ``None``.

    Comment markers, spaces and line breaks between the base64 lines are
    dropped.  A thumbnail block that was opened but never closed yields
    ``b""``.
    """
    token = result.slots[Slot.THUMBNAIL]
    if not token.is_set:
        return None
    return token.view(result.data).translate(None, _NON_BASE64)


def second_nozzle_temp(result: ScanResult) -> float | None:
    """Second nozzle temperature if that nozzle is actually heated."""
    if not result.has_value(Slot.NOZZLE_TEMP_1):
        return None
    temp = result.value(Slot.NOZZLE_TEMP_1)
    return temp if temp > SECOND_NOZZLE_MIN_TEMP else None


def removes_legacy_thumbnail(result: ScanResult) -> bool:
    return result.legacy_thumbnail_span is not None


def predicted_line_count(result: ScanResult) -> int:
    """Line count of the converted file as announced in the header."""
    lines = result.line_count + HEADER_LINES
    if thumbnail_payload(result) is not None:
        lines += 1
    if second_nozzle_temp(result) is not None:
        lines += 1
    if removes_legacy_thumbnail(result):
        lines -= result.legacy_thumbnail_lines
    return lines


def box_bounds(box: BoundingBox) -> dict[str, float]:
    """Return ``min_x`` .. ``max_z`` with ``0.0`` for axes without geometry."""
    bounds: dict[str, float] = {}
    for axis in AXES:
        has_axis = box.has_axis(axis)
        for side in ("min", "max"):
            key = f"{side}_{axis}"
            bounds[key] = getattr(box, key) if has_axis else 0.0
    return bounds


def render_header(result: ScanResult, *, version: str = __version__) -> bytes:
    """Build the Snapmaker 2.0 header for a scanned file."""
    bounds = box_bounds(result.geometry.box)
    estimated = parse_duration(result.data, result.slots[Slot.ESTIMATED_TIME])
    payload = thumbnail_payload(result)
    nozzle_1 = second_nozzle_temp(result)

    head = [
        f";post-processed by sm2pspp {version} ({PROJECT_URL})\n",
        ";Header Start\n\n",
        ";FLAVOR:Marlin\n",
        ";TIME:6666\n\n\n",
        f";Filament used: {result.value(Slot.FILAMENT_USED) / 1000.0:.0f}m\n",
        f";Layer height: {result.value(Slot.LAYER_HEIGHT):.2f}\n",
        ";header_type: 3dp\n",
    ]
    tail = [
        f";file_total_lines: {predicted_line_count(result)}\n",
        f";estimated_time(s): {estimated:.0f}\n",
        f";nozzle_temperature(°C): {result.value(Slot.NOZZLE_TEMP_0):.0f}\n",
    ]
    if nozzle_1 is not None:
        tail.append(f";nozzle_1_temperature(°C): {nozzle_1:.0f}\n")
    tail += [
        f";build_plate_temperature(°C): {result.value(Slot.PLATE_TEMP):.0f}\n",
        f";work_speed(mm/minute): {result.value(Slot.PRINT_SPEED) * 60.0:.0f}\n",
        f";max_x(mm): {bounds['max_x']:.2f}\n",
        f";max_y(mm): {bounds['max_y']:.2f}\n",
        f";max_z(mm): {bounds['max_z']:.2f}\n",
        f";min_x(mm): {bounds['min_x']:.2f}\n",
        f";min_y(mm): {bounds['min_y']:.2f}\n",
        f";min_z(mm): {bounds['min_z']:.2f}\n\n",
        ";Header End\n\n",
    ]

    out = bytearray("".join(head).encode("utf-8"))
    if payload is not None:
        out += b";thumbnail: data:image/png;base64," + payload + b"\n"
    out += "".join(tail).encode("utf-8")
    return bytes(out)


def render_body(result: ScanResult) -> bytes:
    """Return the original bytes, minus the legacy thumbnail block if captured."""
    span = result.legacy_thumbnail_span
    if span is None:
        return result.data
    start, end = span
    return result.data[:start] + result.data[end:]
