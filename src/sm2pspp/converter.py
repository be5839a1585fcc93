"""In-place conversion of PrusaSlicer G-code files for Snapmaker 2.0.

:func:`convert_file` reads the whole file, scans it once, reports missing
metadata through a diagnostic callback and then truncates and rewrites the
file with the Snapmaker header in front of the original content.

Diagnostic callback
-------------------
The callback is called as ``callback(message, file, line)`` and returns
``True`` to continue or ``False`` to abort.  It is consulted

- for each missing-metadata warning, after the scan and before the file is
  touched (``False`` aborts without modifying the file), and
- once for a fatal error, whose answer is ignored.

``line`` is ``0`` for diagnostics that are not tied to a line.

Known limitation
----------------
The file is rewritten in place, without a temporary file.  If writing
fails partway through, the file is left truncated.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable

from sm2pspp.header import render_body, render_header
from sm2pspp.lexer import ScanResult, scan
from sm2pspp.messages import Message, format_message
from sm2pspp.metadata import Slot

logger = logging.getLogger(__name__)

DiagnosticCallback = Callable[[Message, str, int], bool]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConversionError(Exception):
    """Base exception for fatal conversion errors."""

    def __init__(self, message: str, *, code: Message) -> None:
        super().__init__(message)
        self.code = code


class FileAccessError(ConversionError):
    """Raised when the file cannot be found, opened, read or written."""


class ResourceError(ConversionError):
    """Raised when the file does not fit into memory."""


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class ConversionStatus(Enum):
    SUCCESS = 1
    FAILURE = 0
    ABORTED = -1


@dataclass
class ConversionResult:
    """Outcome of one :func:`convert_file` call.

    Attributes:
        status: Overall result.
        file: The converted path.
        messages: Every diagnostic reported, in order.
        modified: ``True`` if the file was rewritten.
        scan: Scan state, if the file was read and scanned.
    """

    status: ConversionStatus
    file: str
    messages: list[Message] = field(default_factory=list)
    modified: bool = False
    scan: ScanResult | None = None

    @property
    def ok(self) -> bool:
        return self.status is ConversionStatus.SUCCESS


# Warning raised for each slot left empty by the scan, in reporting order.
_REQUIRED_SLOTS: tuple[tuple[Slot, Message], ...] = (
    (Slot.FILAMENT_USED, Message.WARN_NO_FILAMENT_USED),
    (Slot.LAYER_HEIGHT, Message.WARN_NO_LAYER_HEIGHT),
    (Slot.ESTIMATED_TIME, Message.WARN_NO_EST_TIME),
    (Slot.NOZZLE_TEMP_0, Message.WARN_NO_NOZZLE_TEMP),
    (Slot.PLATE_TEMP, Message.WARN_NO_PLATE_TEMP),
    (Slot.PRINT_SPEED, Message.WARN_NO_PRINT_SPEED),
    (Slot.THUMBNAIL, Message.WARN_NO_THUMBNAIL),
)


# ---------------------------------------------------------------------------
# Callbacks
# ---------------------------------------------------------------------------


def default_callback(msg: Message, file: str, line: int) -> bool:
    """Continue on every warning."""
    return True


def policy_callback(
    abort_on: Iterable[Message] = (),
    *,
    report: Callable[[Message, str, int], None] | None = None,
) -> DiagnosticCallback:
    """Build a callback that aborts on the warnings listed in *abort_on*.

    Every diagnostic is passed to *report* first, if given.
    """
    abort_set = frozenset(abort_on)

    def _callback(msg: Message, file: str, line: int) -> bool:
        if report is not None:
            report(msg, file, line)
        return msg not in abort_set

    return _callback


# ---------------------------------------------------------------------------
# Conversion steps
# ---------------------------------------------------------------------------


def missing_metadata(result: ScanResult) -> list[Message]:
    """Return a warning for every metadata value the scan did not find."""
    return [msg for slot, msg in _REQUIRED_SLOTS if not result.has_value(slot)]


def convert_bytes(data: bytes, *, remove_thumbnail: bool = False) -> bytes | None:
    """Return the converted content of *data*.

    Returns ``None`` when nothing has to change: empty input or input that
    already carries the post-processed marker.  Missing metadata is not
    checked here; see :func:`missing_metadata`.
    """
    if not data:
        return None
    result = scan(data, remove_thumbnail=remove_thumbnail)
    if result.already_processed:
        return None
    return render_header(result) + render_body(result)


def _read_input(file: str) -> bytes:
    try:
        fh = open(file, "rb")
    except FileNotFoundError as exc:
        raise FileAccessError(f"Input file not found: {file}", code=Message.ERR_FILE_NOT_FOUND) from exc
    except OSError as exc:
        raise FileAccessError(f"Cannot open {file}: {exc}", code=Message.ERR_FILE_OPEN) from exc
    with fh:
        try:
            return fh.read()
        except MemoryError as exc:
            raise ResourceError(f"File too large to load: {file}", code=Message.ERR_NO_MEM) from exc
        except OSError as exc:
            raise FileAccessError(f"Cannot read {file}: {exc}", code=Message.ERR_FILE_READ) from exc


def _write_output(file: str, header: bytes, body: bytes) -> None:
    try:
        fh = open(file, "wb")
    except OSError as exc:
        raise FileAccessError(f"Cannot create {file}: {exc}", code=Message.ERR_FILE_CREATE) from exc
    with fh:
        try:
            fh.write(header)
            fh.write(body)
        except OSError as exc:
            raise FileAccessError(f"Cannot write {file}: {exc}", code=Message.ERR_FILE_WRITE) from exc


def convert_file(
    path: str | os.PathLike[str],
    callback: DiagnosticCallback = default_callback,
    *,
    remove_thumbnail: bool = False,
) -> ConversionResult:
    """Convert the G-code file at *path* in place.

    :param path: PrusaSlicer generated G-code file.
    :param callback: Diagnostic callback, see the module documentation.
    :param remove_thumbnail: Also drop the original thumbnail comment block
        from the body.
    :returns: A :class:`ConversionResult`.  The status is ``SUCCESS`` for a
        converted file and for files that need no change (empty or already
        post-processed), ``ABORTED`` if the callback stopped on a warning
        and ``FAILURE`` on any fatal error.
    """
    file = os.fspath(path)
    outcome = ConversionResult(status=ConversionStatus.FAILURE, file=file)
    try:
        data = _read_input(file)
        if not data:
            logger.info("%s is empty, nothing to convert", file)
            outcome.status = ConversionStatus.SUCCESS
            return outcome

        try:
            result = scan(data, remove_thumbnail=remove_thumbnail)
        except MemoryError as exc:
            raise ResourceError(f"File too large to scan: {file}", code=Message.ERR_NO_MEM) from exc
        outcome.scan = result
        if result.already_processed:
            logger.info("%s is already post-processed, skipping", file)
            outcome.status = ConversionStatus.SUCCESS
            return outcome

        for msg in missing_metadata(result):
            outcome.messages.append(msg)
            logger.warning("%s", format_message(msg, file))
            if not callback(msg, file, 0):
                logger.info("Conversion of %s aborted on %s", file, msg.name)
                outcome.status = ConversionStatus.ABORTED
                return outcome

        try:
            header = render_header(result)
            body = render_body(result)
        except MemoryError as exc:
            raise ResourceError(f"Not enough memory to rewrite {file}", code=Message.ERR_NO_MEM) from exc
        _write_output(file, header, body)
    except ConversionError as exc:
        logger.error("Converting %s failed: %s", file, exc)
        outcome.messages.append(exc.code)
        callback(exc.code, file, 0)
        return outcome

    outcome.status = ConversionStatus.SUCCESS
    outcome.modified = True
    logger.info("Converted %s (%d lines)", file, result.line_count)
    return outcome
