"""Exit codes for the sm2pspp command-line tool.

Zero means the file was converted or needed no change.  The non-zero
codes let scripts tell failure categories apart without parsing messages.
"""

from __future__ import annotations

from sm2pspp.converter import ConversionResult, ConversionStatus
from sm2pspp.messages import Severity

# Converted, or nothing to do
SUCCESS = 0

# Generic failure (also used for unexpected errors)
FAILURE = 1

# File-related error (not found, cannot open, read, create or write)
FILE_ERROR = 2

# A warning was configured to abort the conversion
ABORTED = 3

# Any other error (out of memory, invalid configuration)
OTHER_ERROR = 4


ERROR_CODE_MAP: dict[str, int] = {
    "ERR_FILE_NOT_FOUND": FILE_ERROR,
    "ERR_FILE_OPEN": FILE_ERROR,
    "ERR_FILE_READ": FILE_ERROR,
    "ERR_FILE_CREATE": FILE_ERROR,
    "ERR_FILE_WRITE": FILE_ERROR,
    "ERR_NO_MEM": OTHER_ERROR,
    "VALIDATION_ERROR": OTHER_ERROR,
}


def exit_code_for(error_code: str) -> int:
    """Map an error code string to a CLI exit code."""
    return ERROR_CODE_MAP.get(error_code, FAILURE)


def exit_code_for_result(result: ConversionResult) -> int:
    """Map a conversion result to a CLI exit code."""
    if result.status is ConversionStatus.SUCCESS:
        return SUCCESS
    if result.status is ConversionStatus.ABORTED:
        return ABORTED
    errors = [m for m in result.messages if m.severity is Severity.ERROR]
    if errors:
        return exit_code_for(errors[-1].name)
    return FAILURE
