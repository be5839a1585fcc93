"""Capture slots for PrusaSlicer ``; key = value`` comment metadata.

Each recognised key owns one :class:`~sm2pspp.parsing.Token` slot.  The
first occurrence of a key wins; later duplicates are skipped by the lexer
before their value is read.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from sm2pspp.parsing import Buffer, Token


class Slot(Enum):
    """Metadata values captured from the input file."""

    FILAMENT_USED = "filament_used"
    FIRST_LAYER_HEIGHT = "first_layer_height"
    LAYER_HEIGHT = "layer_height"
    ESTIMATED_TIME = "estimated_time"
    NOZZLE_TEMP_0 = "nozzle_temp_0"
    NOZZLE_TEMP_1 = "nozzle_temp_1"
    PLATE_TEMP = "plate_temp"
    PRINT_SPEED = "print_speed"
    THUMBNAIL = "thumbnail"
    LEGACY_THUMBNAIL = "legacy_thumbnail"


# Keys matched exactly (case-sensitive) against the trimmed comment key.
EXACT_KEYS: dict[bytes, Slot] = {
    b"filament used [mm]": Slot.FILAMENT_USED,
    b"first_layer_height": Slot.FIRST_LAYER_HEIGHT,
    b"layer_height": Slot.LAYER_HEIGHT,
    b"first_layer_temperature": Slot.NOZZLE_TEMP_0,
    b"first_layer_bed_temperature": Slot.PLATE_TEMP,
    b"max_print_speed": Slot.PRINT_SPEED,
}

# Keys matched by prefix; PrusaSlicer appends "(normal mode)" etc.
PREFIX_KEYS: dict[bytes, Slot] = {
    b"estimated printing time": Slot.ESTIMATED_TIME,
}

# Slot whose value may hold a second, comma separated value.
DUAL_VALUE_SLOTS: dict[Slot, Slot] = {
    Slot.NOZZLE_TEMP_0: Slot.NOZZLE_TEMP_1,
}


def match_key(buf: Buffer, key: Token) -> Slot | None:
    """Return the slot for the comment key *key*, or ``None``."""
    for text, slot in EXACT_KEYS.items():
        if key.equals(buf, text):
            return slot
    for prefix, slot in PREFIX_KEYS.items():
        if key.startswith(buf, prefix):
            return slot
    return None


@dataclass
class MetadataSlots:
    """One token per :class:`Slot`, all unset initially."""

    tokens: dict[Slot, Token] = field(
        default_factory=lambda: {slot: Token() for slot in Slot}
    )

    def __getitem__(self, slot: Slot) -> Token:
        return self.tokens[slot]

    def is_filled(self, slot: Slot) -> bool:
        """``True`` once a value was started for *slot*."""
        return self.tokens[slot].is_set

    def has_value(self, slot: Slot) -> bool:
        """``True`` if *slot* holds at least one byte."""
        return not self.tokens[slot].is_empty

    def text(self, buf: Buffer, slot: Slot) -> str:
        """Decode the captured bytes of *slot* for display purposes."""
        return self.tokens[slot].view(buf).decode("utf-8", errors="replace")
