"""Diagnostic messages reported by the converter.

Errors are fatal and always end processing.  Warnings report missing
metadata; the diagnostic callback decides whether they abort.
"""

from __future__ import annotations

from enum import Enum


class Severity(Enum):
    NONE = "none"
    ERROR = "error"
    WARNING = "warning"


class Message(Enum):
    """Diagnostic identifiers.  Warnings are listed in reporting order."""

    SUCCESS = "SUCCESS"
    ERR_NO_MEM = "ERR_NO_MEM"
    ERR_FILE_NOT_FOUND = "ERR_FILE_NOT_FOUND"
    ERR_FILE_OPEN = "ERR_FILE_OPEN"
    ERR_FILE_READ = "ERR_FILE_READ"
    ERR_FILE_CREATE = "ERR_FILE_CREATE"
    ERR_FILE_WRITE = "ERR_FILE_WRITE"
    WARN_NO_FILAMENT_USED = "WARN_NO_FILAMENT_USED"
    WARN_NO_LAYER_HEIGHT = "WARN_NO_LAYER_HEIGHT"
    WARN_NO_EST_TIME = "WARN_NO_EST_TIME"
    WARN_NO_NOZZLE_TEMP = "WARN_NO_NOZZLE_TEMP"
    WARN_NO_PLATE_TEMP = "WARN_NO_PLATE_TEMP"
    WARN_NO_PRINT_SPEED = "WARN_NO_PRINT_SPEED"
    WARN_NO_THUMBNAIL = "WARN_NO_THUMBNAIL"

    @property
    def severity(self) -> Severity:
        if self.name.startswith("ERR_"):
            return Severity.ERROR
        if self.name.startswith("WARN_"):
            return Severity.WARNING
        return Severity.NONE

    @property
    def text(self) -> str:
        return MESSAGE_TEXT[self]


MESSAGE_TEXT: dict[Message, str] = {
    Message.SUCCESS: "",
    Message.ERR_NO_MEM: "Error: Failed to allocate memory.",
    Message.ERR_FILE_NOT_FOUND: "Error: Input file not found.",
    Message.ERR_FILE_OPEN: "Error: Failed to open file for reading.",
    Message.ERR_FILE_READ: "Error: Failed to read data from file.",
    Message.ERR_FILE_CREATE: "Error: Failed to create file for writing.",
    Message.ERR_FILE_WRITE: "Error: Failed to write data to file.",
    Message.WARN_NO_FILAMENT_USED: "Warning: Filament used value not found.",
    Message.WARN_NO_LAYER_HEIGHT: "Warning: Layer height value not found.",
    Message.WARN_NO_EST_TIME: "Warning: Estimated time value not found.",
    Message.WARN_NO_NOZZLE_TEMP: "Warning: Nozzle temperature value not found.",
    Message.WARN_NO_PLATE_TEMP: "Warning: Building plate temperature value not found.",
    Message.WARN_NO_PRINT_SPEED: "Warning: Print speed value not found.",
    Message.WARN_NO_THUMBNAIL: "Warning: Thumbnail data not found.",
}

WARNINGS: tuple[Message, ...] = tuple(m for m in Message if m.severity is Severity.WARNING)


def format_message(msg: Message, file: str, line: int = 0) -> str:
    """Format a diagnostic as ``file:line: text`` (``file: text`` without a line)."""
    if line > 0:
        return f"{file}:{line}: {msg.text}"
    return f"{file}: {msg.text}"


def parse_message_name(name: str) -> Message:
    """Look up a message by name, accepting ``no_thumbnail`` style short names.

    :raises ValueError: if *name* is not a known message.
    """
    key = name.strip().upper().replace("-", "_")
    for candidate in (key, "WARN_" + key, "ERR_" + key):
        try:
            return Message[candidate]
        except KeyError:
            continue
    raise ValueError(f"Unknown message name: {name!r}")
