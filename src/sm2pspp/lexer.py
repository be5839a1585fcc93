"""Single-pass G-code lexer for PrusaSlicer output.

The lexer walks the input buffer once, byte by byte, with no lookahead.
While scanning it

- captures ``; key = value`` metadata comments into
  :class:`~sm2pspp.metadata.MetadataSlots`,
- captures the first embedded ``thumbnail begin`` / ``thumbnail end``
  block as the thumbnail payload,
- feeds every ``G`` command line into a
  :class:`~sm2pspp.geometry.GeometryTracker`,
- counts lines for the header's ``file_total_lines`` prediction, and
- stops early if the file already carries the post-processed marker.

No input makes the lexer fail.  Malformed numbers parse as ``0``.

State transitions are logged at DEBUG level on the ``sm2pspp.lexer``
logger.

Usage::

    from sm2pspp.lexer import scan

    result = scan(Path("part.gcode").read_bytes())
    if not result.already_processed:
        print(result.geometry.box)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from sm2pspp.geometry import GeometryTracker, MotionCommand, command_code
from sm2pspp.metadata import DUAL_VALUE_SLOTS, MetadataSlots, Slot, match_key
from sm2pspp.parsing import Token, parse_float, parse_uint

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Markers and character classes
# ---------------------------------------------------------------------------

POST_PROCESSED_MARKER = b"post-processed by sm2pspp"
THUMBNAIL_BEGIN = b"thumbnail begin"
THUMBNAIL_END = b"thumbnail end"
LAYER_CHANGE = b"LAYER_CHANGE"

_LF = ord("\n")
_CR = ord("\r")
_SPACE = ord(" ")
_SEMICOLON = ord(";")
_EQUALS = ord("=")
_COMMA = ord(",")
_DOT = ord(".")
_MINUS = ord("-")
_G = ord("G")

# Same set as C's isspace() in the "C" locale.
_WHITESPACE = frozenset(b" \t\n\v\f\r")
_DIGITS = frozenset(b"0123456789")


class LexerState(Enum):
    LINE_START = "line_start"
    SKIP_TO_LINE_END = "skip_to_line_end"
    IN_COMMAND = "in_command"
    IN_COMMENT = "in_comment"
    IN_PARAMETER_VALUE = "in_parameter_value"
    IN_THUMBNAIL_BODY = "in_thumbnail_body"
    IN_THUMBNAIL_TAIL = "in_thumbnail_tail"


class Param(Enum):
    """The parameter whose value is currently being read in a command line."""

    COMMAND = "command"
    X = "x"
    Y = "y"
    Z = "z"
    E = "e"
    UNKNOWN = "unknown"


_PARAM_LETTERS: dict[int, Param] = {
    ord("X"): Param.X,
    ord("Y"): Param.Y,
    ord("Z"): Param.Z,
    ord("E"): Param.E,
}


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass
class ScanResult:
    """Everything collected during one pass over a G-code buffer.

    Attributes:
        data: The scanned buffer.  All slot tokens point into it.
        slots: Captured metadata values.
        geometry: Final position state and extrusion bounding box, with
            the first layer height correction already applied.
        line_count: Number of ``\\n`` bytes seen plus one.
        already_processed: ``True`` if the post-processed marker was found.
            Scanning stops at the marker, so the other fields are partial.
        legacy_thumbnail_lines: Lines spanned by the original thumbnail
            block (only counted when thumbnail removal was requested).
    """

    data: bytes
    slots: MetadataSlots = field(default_factory=MetadataSlots)
    geometry: GeometryTracker = field(default_factory=GeometryTracker)
    line_count: int = 1
    already_processed: bool = False
    legacy_thumbnail_lines: int = 0

    def value(self, slot: Slot) -> float:
        """Numeric value of *slot* via the simplified float parser."""
        return parse_float(self.data, self.slots[slot])

    def has_value(self, slot: Slot) -> bool:
        return self.slots.has_value(slot)

    @property
    def legacy_thumbnail_span(self) -> tuple[int, int] | None:
        """``(start, end)`` of the original thumbnail block, if it was captured."""
        token = self.slots[Slot.LEGACY_THUMBNAIL]
        if token.is_empty:
            return None
        return token.start, token.end  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Lexer
# ---------------------------------------------------------------------------


class GCodeLexer:
    """State machine over one immutable input buffer.

    Create one lexer per buffer and call :meth:`run` once.
    """

    def __init__(self, data: bytes, *, remove_thumbnail: bool = False) -> None:
        self.data = data
        self.remove_thumbnail = remove_thumbnail
        self.state = LexerState.LINE_START
        self.slots = MetadataSlots()
        self.geometry = GeometryTracker()
        self.token = Token()
        self.param = Param.UNKNOWN
        self.command = MotionCommand()
        # The command code survives across lines; a line like "G1X5" never
        # closes its number token and keeps the previous code.
        self.code: int | None = None
        self.value_slot: Slot | None = None
        self.line_nr = 1
        self.line_start = 0
        self.legacy_lines = 0
        self.already_processed = False
        self._trace = logger.isEnabledFor(logging.DEBUG)
        self._handlers = {
            LexerState.LINE_START: self._on_line_start,
            LexerState.SKIP_TO_LINE_END: self._on_skip_to_line_end,
            LexerState.IN_COMMAND: self._on_command,
            LexerState.IN_COMMENT: self._on_comment,
            LexerState.IN_PARAMETER_VALUE: self._on_parameter_value,
            LexerState.IN_THUMBNAIL_BODY: self._on_thumbnail_body,
            LexerState.IN_THUMBNAIL_TAIL: self._on_thumbnail_tail,
        }

    def run(self) -> ScanResult:
        handlers = self._handlers
        for pos, ch in enumerate(self.data):
            handlers[self.state](pos, ch)
            if self.already_processed:
                break
            if ch == _LF:
                self.line_nr += 1
                self.line_start = pos + 1
            elif ch == _CR:
                self.line_start = pos + 1

        if self.state is LexerState.IN_THUMBNAIL_TAIL:
            # File ended on the "thumbnail end" line.
            legacy = self.slots[Slot.LEGACY_THUMBNAIL]
            legacy.length = len(self.data) - (legacy.start or 0)

        first_layer = self.slots[Slot.FIRST_LAYER_HEIGHT]
        self.geometry.finish(
            None if first_layer.is_empty else parse_float(self.data, first_layer)
        )

        result = ScanResult(
            data=self.data,
            slots=self.slots,
            geometry=self.geometry,
            line_count=self.line_nr,
            already_processed=self.already_processed,
            legacy_thumbnail_lines=self.legacy_lines,
        )
        logger.debug(
            "Scanned %d bytes, %d lines, already_processed=%s, box=%s",
            len(self.data),
            self.line_nr,
            self.already_processed,
            self.geometry.box,
        )
        return result

    # -- helpers ----------------------------------------------------------

    def _goto(self, state: LexerState) -> None:
        if self._trace and state is not self.state:
            logger.debug("line %d: %s -> %s", self.line_nr, self.state.value, state.value)
        self.state = state

    def _close_parameter(self) -> None:
        """Convert the open parameter token into its command field."""
        param = self.param
        if param is Param.COMMAND:
            self.code = command_code("G", parse_uint(self.data, self.token))
        elif param is Param.X:
            self.command.x = parse_float(self.data, self.token)
        elif param is Param.Y:
            self.command.y = parse_float(self.data, self.token)
        elif param is Param.Z:
            self.command.z = parse_float(self.data, self.token)
        elif param is Param.E:
            self.command.e = parse_float(self.data, self.token)
        self.param = Param.UNKNOWN

    # -- states -----------------------------------------------------------

    def _on_line_start(self, pos: int, ch: int) -> None:
        if ch == _SEMICOLON:
            self.token.clear()
            self._goto(LexerState.IN_COMMENT)
        elif ch == _G:
            self.param = Param.COMMAND
            self.command = MotionCommand()
            self.token.open(pos + 1)
            self._goto(LexerState.IN_COMMAND)
        elif ch not in _WHITESPACE:
            self._goto(LexerState.SKIP_TO_LINE_END)

    def _on_skip_to_line_end(self, pos: int, ch: int) -> None:
        if ch == _LF:
            self._goto(LexerState.LINE_START)

    def _on_command(self, pos: int, ch: int) -> None:
        token = self.token
        if ch in _DIGITS or (
            self.param is not Param.COMMAND
            and (ch == _DOT or (token.length == 0 and ch == _MINUS))
        ):
            token.length += 1
        elif ch in _PARAM_LETTERS:
            # Opening a new parameter drops the one in progress unparsed.
            self.param = _PARAM_LETTERS[ch]
            token.open(pos + 1)
        else:
            self._close_parameter()
            if ch == _LF or ch == _SEMICOLON:
                self.command.code = self.code
                self.geometry.apply(self.command)
                if ch == _LF:
                    self._goto(LexerState.LINE_START)
                else:
                    token.clear()
                    self._goto(LexerState.IN_COMMENT)

    def _on_comment(self, pos: int, ch: int) -> None:
        token = self.token
        data = self.data
        if ch == _LF:
            self._goto(LexerState.LINE_START)
            if token.equals(data, LAYER_CHANGE) and not self.geometry.layer_reset_done:
                logger.debug("line %d: first layer change, resetting bounds", self.line_nr)
                self.geometry.layer_change()
        elif not token.is_set:
            if ch not in _WHITESPACE:
                token.open(pos, 1)
        elif ch == _SPACE and token.length > 0:
            if token.equals(data, POST_PROCESSED_MARKER):
                logger.debug("line %d: post-processed marker found", self.line_nr)
                self.already_processed = True
            elif token.equals(data, THUMBNAIL_BEGIN):
                legacy = self.slots[Slot.LEGACY_THUMBNAIL]
                if self.remove_thumbnail and not legacy.is_set:
                    legacy.open(self.line_start)
                    self.legacy_lines = 1
                token.clear()
                if self.slots.is_filled(Slot.THUMBNAIL):
                    self._goto(LexerState.SKIP_TO_LINE_END)
                else:
                    self._goto(LexerState.IN_THUMBNAIL_BODY)
        elif ch == _EQUALS:
            slot = match_key(data, token)
            if slot is None:
                self._goto(LexerState.SKIP_TO_LINE_END)
                return
            token.clear()
            if self.slots.is_filled(slot):
                # Duplicate key, first value wins.
                self._goto(LexerState.SKIP_TO_LINE_END)
            else:
                self.value_slot = slot
                self._goto(LexerState.IN_PARAMETER_VALUE)
        elif ch not in _WHITESPACE:
            token.length = pos - token.start + 1  # type: ignore[operator]

    def _on_parameter_value(self, pos: int, ch: int) -> None:
        if ch == _LF:
            self.value_slot = None
            self._goto(LexerState.LINE_START)
            return
        slot = self.value_slot
        value = self.slots[slot]  # type: ignore[index]
        if not value.is_set:
            if ch not in _WHITESPACE:
                value.open(pos, 1)
        elif ch == _COMMA and slot in DUAL_VALUE_SLOTS:
            value.length = pos - value.start + 1  # type: ignore[operator]
            self.value_slot = DUAL_VALUE_SLOTS[slot]  # type: ignore[index]
        elif ch not in _WHITESPACE:
            value.length = pos - value.start + 1  # type: ignore[operator]

    def _on_thumbnail_body(self, pos: int, ch: int) -> None:
        if self.remove_thumbnail and ch == _LF:
            self.legacy_lines += 1
        thumbnail = self.slots[Slot.THUMBNAIL]
        token = self.token
        if not thumbnail.is_set:
            if ch == _LF:
                thumbnail.open(pos + 1)
        elif ch == _SEMICOLON:
            token.open(pos + 1)
        elif token.is_set:
            if self.data[token.start] in _WHITESPACE:  # type: ignore[index]
                token.open(pos, 1)
                return
            token.length += 1
            if token.equals(self.data, THUMBNAIL_END):
                thumbnail.length = self.line_start - thumbnail.start  # type: ignore[operator]
                if self.remove_thumbnail:
                    legacy = self.slots[Slot.LEGACY_THUMBNAIL]
                    legacy.length = pos + 1 - legacy.start  # type: ignore[operator]
                    self._goto(LexerState.IN_THUMBNAIL_TAIL)
                else:
                    self._goto(LexerState.SKIP_TO_LINE_END)

    def _on_thumbnail_tail(self, pos: int, ch: int) -> None:
        if ch == _LF:
            legacy = self.slots[Slot.LEGACY_THUMBNAIL]
            legacy.length = pos + 1 - legacy.start  # type: ignore[operator]
            self._goto(LexerState.LINE_START)


def scan(data: bytes, *, remove_thumbnail: bool = False) -> ScanResult:
    """Run the lexer over *data* and return the collected state."""
    return GCodeLexer(data, remove_thumbnail=remove_thumbnail).run()
