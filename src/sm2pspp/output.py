"""Output formatting for the sm2pspp CLI.

Provides both JSON (machine-parseable) and human-readable (Rich) output.
All public functions accept a ``json_mode`` flag:
    - ``True``  -> JSON string ready for scripts and agents
    - ``False`` -> Rich-formatted text for humans
"""

from __future__ import annotations

import json
from io import StringIO
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from sm2pspp.converter import ConversionResult
from sm2pspp.geometry import AXES
from sm2pspp.header import box_bounds, predicted_line_count, second_nozzle_temp, thumbnail_payload
from sm2pspp.messages import Message, Severity, format_message
from sm2pspp.metadata import Slot
from sm2pspp.parsing import parse_duration

_SEVERITY_STYLE: dict[Severity, str] = {
    Severity.ERROR: "bold red",
    Severity.WARNING: "yellow",
    Severity.NONE: "",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def format_time(seconds: int | float | None) -> str:
    """Convert seconds to a human-readable 'Xd Yh Zm Ws' string."""
    if seconds is None or seconds < 0:
        return "N/A"
    total = int(seconds)
    days, remainder = divmod(total, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, secs = divmod(remainder, 60)
    parts: list[str] = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)


def _render_to_string(renderable: Any, *, soft_wrap: bool = False) -> str:
    """Render a Rich object to a plain string (with ANSI codes).

    With *soft_wrap* long lines are kept whole instead of being wrapped at
    the console width.
    """
    buf = StringIO()
    console = Console(file=buf, force_terminal=True, width=100)
    console.print(renderable, soft_wrap=soft_wrap)
    return buf.getvalue().rstrip("\n")


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


def format_diagnostic(msg: Message, file: str, line: int = 0, json_mode: bool = False) -> str:
    """Format one diagnostic line."""
    if json_mode:
        return json.dumps(
            {
                "code": msg.name,
                "severity": msg.severity.value,
                "message": msg.text,
                "file": file,
                "line": line or None,
            }
        )
    text = Text(format_message(msg, file, line), style=_SEVERITY_STYLE[msg.severity])
    return _render_to_string(text, soft_wrap=True)


def format_response(
    status: str,
    data: dict[str, Any] | None = None,
    error: dict[str, Any] | None = None,
    json_mode: bool = False,
) -> str:
    """Build a generic response envelope.

    Parameters
    ----------
    status:
        ``"success"``, ``"aborted"`` or ``"error"``.
    data:
        Arbitrary payload dict.
    error:
        Error detail dict with keys ``code`` and ``message``.
    json_mode:
        When *True* return a JSON string; otherwise a Rich-formatted string.
    """
    if json_mode:
        envelope: dict[str, Any] = {
            "status": status,
            "data": data,
            "error": error,
        }
        return json.dumps(envelope, indent=2, sort_keys=False)

    if status != "success" and error:
        code = error.get("code", "UNKNOWN")
        message = error.get("message", "An unknown error occurred.")
        text = Text()
        text.append("Error", style="bold red")
        text.append(f" [{code}]: ", style="red")
        text.append(message)
        return _render_to_string(Panel(text, title="Error", border_style="red"))

    if data:
        lines = [f"[bold]{key}:[/bold] {value}" for key, value in data.items()]
        return _render_to_string(Panel("\n".join(lines), title="Result", border_style="green"))

    return f"Status: {status}"


# ---------------------------------------------------------------------------
# Conversion summary
# ---------------------------------------------------------------------------


def summary_data(result: ConversionResult) -> dict[str, Any]:
    """Collect the values written to the header as a JSON-friendly dict."""
    data: dict[str, Any] = {
        "file": result.file,
        "status": result.status.name.lower(),
        "modified": result.modified,
        "messages": [m.name for m in result.messages],
    }
    scan = result.scan
    if scan is None or scan.already_processed:
        data["already_processed"] = bool(scan and scan.already_processed)
        return data

    def _value(slot: Slot) -> float | None:
        return scan.value(slot) if scan.has_value(slot) else None

    filament = _value(Slot.FILAMENT_USED)
    speed = _value(Slot.PRINT_SPEED)
    box = scan.geometry.box
    data.update(
        {
            "already_processed": False,
            "estimated_time_seconds": (
                parse_duration(scan.data, scan.slots[Slot.ESTIMATED_TIME])
                if scan.has_value(Slot.ESTIMATED_TIME)
                else None
            ),
            "filament_used_m": filament / 1000.0 if filament is not None else None,
            "layer_height_mm": _value(Slot.LAYER_HEIGHT),
            "nozzle_temperature_c": _value(Slot.NOZZLE_TEMP_0),
            "nozzle_1_temperature_c": second_nozzle_temp(scan),
            "build_plate_temperature_c": _value(Slot.PLATE_TEMP),
            "work_speed_mm_min": speed * 60.0 if speed is not None else None,
            "has_thumbnail": thumbnail_payload(scan) is not None,
            "file_total_lines": predicted_line_count(scan),
            "bounds_mm": box_bounds(box),
            "has_geometry": not box.is_empty,
        }
    )
    return data


def format_summary(result: ConversionResult, json_mode: bool = False) -> str:
    """Format a conversion result."""
    data = summary_data(result)
    if json_mode:
        return format_response(
            "success" if result.ok else result.status.name.lower(),
            data=data,
            json_mode=True,
        )

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="bold cyan", no_wrap=True)
    table.add_column("Value")
    table.add_row("File", data["file"])
    table.add_row("Status", data["status"])
    if data.get("already_processed"):
        table.add_row("Note", "already post-processed, left unchanged")
    if "estimated_time_seconds" in data:
        table.add_row("Estimated time", format_time(data["estimated_time_seconds"]))
        filament = data["filament_used_m"]
        table.add_row("Filament", f"{filament:.2f} m" if filament is not None else "N/A")
        nozzle = data["nozzle_temperature_c"]
        table.add_row("Nozzle", f"{nozzle:.0f}°C" if nozzle is not None else "N/A")
        if data["nozzle_1_temperature_c"] is not None:
            table.add_row("Nozzle 1", f"{data['nozzle_1_temperature_c']:.0f}°C")
        plate = data["build_plate_temperature_c"]
        table.add_row("Build plate", f"{plate:.0f}°C" if plate is not None else "N/A")
        if data["has_geometry"]:
            bounds = data["bounds_mm"]
            for axis in AXES:
                table.add_row(
                    f"{axis.upper()} range",
                    f"{bounds['min_' + axis]:.2f} .. {bounds['max_' + axis]:.2f} mm",
                )
        else:
            table.add_row("Bounds", "no extrusion moves found")
    border = "green" if result.ok else "red"
    return _render_to_string(Panel(table, title="sm2pspp", border_style=border))
