"""Standardized CLI exit codes for ccs-navigator.

Exit code scheme:

    0  SUCCESS         -- command completed, definition found (or info-only output)
    1  GENERAL_ERROR   -- unexpected failure, crash, unhandled exception
    2  USAGE_ERROR     -- invalid arguments, bad flags, unknown command (Click default)
    3  NOT_FOUND       -- no reference at the position, or no definition for it
    4  NO_CONNECTION   -- the command needs a server connection that is not configured
    5  INVALID_FORMAT  -- a jump address did not parse as Label[+Offset]^Routine

Definition lookups degrade to "not found" rather than failing: a server
that is down or slow yields exit code 3, never 1.
"""

from __future__ import annotations

import click

# ---------------------------------------------------------------------------
# Exit code constants
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_ERROR: int = 1
EXIT_USAGE: int = 2
EXIT_NOT_FOUND: int = 3
EXIT_NO_CONNECTION: int = 4
EXIT_INVALID_FORMAT: int = 5

DESCRIPTIONS: dict[int, str] = {
    EXIT_SUCCESS: "success",
    EXIT_ERROR: "unexpected error",
    EXIT_USAGE: "invalid usage (bad arguments or flags)",
    EXIT_NOT_FOUND: "no definition found",
    EXIT_NO_CONNECTION: "no server connection configured -- see `ccsnav config`",
    EXIT_INVALID_FORMAT: "invalid jump address -- use Label+Offset^Routine",
}

# ---------------------------------------------------------------------------
# Custom exceptions (caught by CLI error handler)
# ---------------------------------------------------------------------------


class CcsNavError(click.ClickException):
    """Base class for ccsnav errors with exit codes."""

    def __init__(self, message: str, exit_code: int = EXIT_ERROR):
        super().__init__(message)
        self.exit_code = exit_code

    def format_message(self) -> str:
        return self.message


class NotFoundError(CcsNavError):
    def __init__(self, message: str = "No definition found."):
        super().__init__(message, EXIT_NOT_FOUND)


class NoConnectionError(CcsNavError):
    def __init__(self, message: str = "No server connection configured. Run `ccsnav config --host ...`."):
        super().__init__(message, EXIT_NO_CONNECTION)


class InvalidFormatError(CcsNavError):
    def __init__(self, message: str = "Invalid format. Use Label+Offset^Routine"):
        super().__init__(message, EXIT_INVALID_FORMAT)

