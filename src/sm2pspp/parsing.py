"""Token views and the numeric micro-parsers used by the G-code lexer.

A :class:`Token` never copies input data.  It records an offset and a
length into the single immutable buffer that holds the whole file and is
resolved against that buffer on demand.

The parsers are simpler than ``int()`` / ``float()``:

- :func:`parse_uint` reads leading digits and stops at the first other
  byte.  Values wrap modulo ``2**32``; overflow is not reported.
- :func:`parse_float` accepts an optional leading ``-``, digits and a
  decimal point.  Exponents are not supported.
- :func:`parse_duration` sums ``<digits><unit>`` runs where the unit is one
  of ``d``, ``h``, ``m`` or ``s``.

None of them raise on malformed input; garbage degrades to ``0``.
:func:`parse_float` returns a double, not a 32-bit float.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

Buffer = Union[bytes, bytearray, memoryview]

_UINT_MASK = 0xFFFFFFFF

_DIGIT_0 = ord("0")
_DIGIT_9 = ord("9")
_MINUS = ord("-")
_DOT = ord(".")

# Seconds per duration unit suffix.
_DURATION_UNITS: dict[int, int] = {
    ord("d"): 86400,
    ord("h"): 3600,
    ord("m"): 60,
    ord("s"): 1,
}


@dataclass
class Token:
    """A view of ``length`` bytes starting at ``start`` in the input buffer.

    ``start`` is ``None`` while the token has not been opened yet.
    """

    start: int | None = None
    length: int = 0

    @property
    def is_set(self) -> bool:
        """``True`` once the token has been opened."""
        return self.start is not None

    @property
    def is_empty(self) -> bool:
        """``True`` if the token was never opened or holds no bytes."""
        return self.start is None or self.length <= 0

    @property
    def end(self) -> int:
        """Offset one past the last byte of the token."""
        return (self.start or 0) + self.length

    def open(self, start: int, length: int = 0) -> None:
        self.start = start
        self.length = length

    def clear(self) -> None:
        self.start = None
        self.length = 0

    def view(self, buf: Buffer) -> bytes:
        """Return the bytes covered by this token (``b""`` if unset)."""
        if self.is_empty:
            return b""
        return bytes(buf[self.start:self.start + self.length])

    def equals(self, buf: Buffer, text: bytes) -> bool:
        """Compare the token contents with *text* exactly."""
        if self.start is None or self.length != len(text):
            return False
        return buf[self.start:self.start + self.length] == text

    def startswith(self, buf: Buffer, prefix: bytes) -> bool:
        """Compare the first ``len(prefix)`` bytes of the token with *prefix*."""
        if self.start is None or self.length < len(prefix):
            return False
        return buf[self.start:self.start + len(prefix)] == prefix


def _digit(ch: int) -> bool:
    return _DIGIT_0 <= ch <= _DIGIT_9


def parse_uint(buf: Buffer, token: Token) -> int:
    """Parse the leading digits of *token* as an unsigned 32-bit integer."""
    if token.is_empty:
        return 0
    val = 0
    for ch in buf[token.start:token.end]:
        if not _digit(ch):
            break
        val = (val * 10 + (ch - _DIGIT_0)) & _UINT_MASK
    return val


def parse_float(buf: Buffer, token: Token) -> float:
    """Parse a simple ``[-]digits[.digits]`` number from *token*.

    A second decimal point is ignored and the digits after it keep
    extending the fraction, e.g. ``"1.2.3"`` parses as ``1.23``.
    """
    if token.is_empty:
        return 0.0
    data = buf[token.start:token.end]
    val = 0
    frac = 0
    frac_div = 1
    is_frac = False
    sign = 1.0
    i = 0
    if data[0] == _MINUS:
        sign = -1.0
        i = 1
    for ch in data[i:]:
        if _digit(ch):
            if is_frac:
                frac = frac * 10 + (ch - _DIGIT_0)
                frac_div *= 10
            else:
                val = val * 10 + (ch - _DIGIT_0)
        elif ch == _DOT:
            is_frac = True
        else:
            break
    return sign * (val + frac / frac_div)


def parse_duration(buf: Buffer, token: Token) -> int:
    """Convert a ``1d 2h 3m 4s`` style duration into seconds.

    Bytes that are neither digits nor unit suffixes are skipped without
    resetting the pending digits.  Digits not followed by a unit are
    dropped.
    """
    if token.is_empty:
        return 0
    total = 0
    val = 0
    for ch in buf[token.start:token.end]:
        if _digit(ch):
            val = val * 10 + (ch - _DIGIT_0)
        elif ch in _DURATION_UNITS:
            total += val * _DURATION_UNITS[ch]
            val = 0
    return total
