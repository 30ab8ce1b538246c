"""Jump to ``Label+Offset^Routine`` addresses.

Resolution is two-phase. ``label^routine`` is looked up first; if that
misses, a second ``^routine`` lookup only explains the miss (the routine
exists but not the label, or the routine does not exist at all). The two
lookups are strictly sequential.
"""

from __future__ import annotations

import logging
import re
from typing import Callable

from ccsnav.resolve.cancellation import CancellationToken
from ccsnav.resolve.models import (
    JumpOutcome,
    JumpRequest,
    LabelNotFoundInRoutine,
    Location,
    Resolved,
    RoutineNotFound,
    TextDocument,
)
from ccsnav.resolve.provider import ConnectionResolver
from ccsnav.resolve.remote import RemoteDefinitionResolver

log = logging.getLogger(__name__)

INVALID_FORMAT_MESSAGE = "Invalid format. Use Label+Offset^Routine"

_LABEL_SEGMENT_RE = re.compile(r"^(%?[A-Za-z]\w*)(?:\+(\d+))?$")
_ROUTINE_SEGMENT_RE = re.compile(r"^%?[A-Za-z]\w*$")


class InvalidJumpFormat(ValueError):
    def __init__(self, raw: str):
        super().__init__(INVALID_FORMAT_MESSAGE)
        self.raw = raw


def parse_jump_spec(raw: str) -> JumpRequest:
    """Parse ``Label[+Offset]^Routine`` into a :class:`JumpRequest`.

    Surrounding whitespace is ignored; whitespace inside either segment, a
    missing ``^`` or a malformed segment raises :class:`InvalidJumpFormat`.
    """
    text = (raw or "").strip()
    if "^" not in text:
        raise InvalidJumpFormat(raw)
    label_part, routine_part = text.split("^", 1)
    label_m = _LABEL_SEGMENT_RE.match(label_part)
    routine_m = _ROUTINE_SEGMENT_RE.match(routine_part)
    if not label_m or not routine_m:
        raise InvalidJumpFormat(raw)
    offset = int(label_m.group(2)) if label_m.group(2) else 0
    return JumpRequest(routine=routine_m.group(0), label=label_m.group(1), offset_lines=offset)


def clamp_line(line: int, last_line: int) -> int:
    return min(max(0, last_line), max(0, line))


class RoutineJumpResolver:
    """Compute and reveal the target of a label+offset jump.

    ``open_document`` loads the target so the line can be clamped to its
    length, ``reveal`` moves the cursor there and ``notify`` receives
    user-facing warnings.
    """

    def __init__(
        self,
        remote: RemoteDefinitionResolver,
        resolve_connection: ConnectionResolver,
        open_document: Callable[[str], TextDocument],
        reveal: Callable[[Location], None] | None = None,
        notify: Callable[[str], None] | None = None,
    ):
        self.remote = remote
        self.resolve_connection = resolve_connection
        self.open_document = open_document
        self.reveal = reveal
        self.notify = notify

    def _warn(self, message: str) -> None:
        log.debug("Jump warning: %s", message)
        if self.notify is not None:
            self.notify(message)

    async def resolve_jump(
        self,
        routine: str,
        label: str,
        offset_lines: int = 0,
        source_document: TextDocument | None = None,
        cancellation: CancellationToken | None = None,
    ) -> JumpOutcome | None:
        if source_document is None:
            return None
        request = JumpRequest(routine=routine, label=label, offset_lines=offset_lines)
        connection = self.resolve_connection(source_document)

        location = await self.remote.resolve(request.query, connection, cancellation)
        if location is None:
            outcome = await self._explain_miss(request, connection)
            self._warn(outcome.message)
            return outcome

        try:
            target = self.open_document(location.uri)
        except OSError as exc:
            log.debug("Cannot open %s: %s", location.uri, exc)
            self._warn(f"Could not open routine '{routine}'.")
            return None

        line = clamp_line(location.line + offset_lines, target.last_line)
        resolved = Location(uri=location.uri, line=line, column=0)
        if self.reveal is not None:
            self.reveal(resolved)
        return Resolved(resolved)

    async def _explain_miss(self, request: JumpRequest, connection) -> JumpOutcome:
        # Fresh token: the second lookup is not tied to the first one's lifetime.
        routine_location = await self.remote.resolve(
            f"^{request.routine}", connection, CancellationToken.none()
        )
        if routine_location is None:
            return RoutineNotFound(request.routine)
        return LabelNotFoundInRoutine(request.routine, request.label)

    async def jump(
        self,
        raw: str,
        source_document: TextDocument | None = None,
        cancellation: CancellationToken | None = None,
    ) -> JumpOutcome | None:
        """Parse *raw* and resolve it; malformed input is reported, not resolved."""
        try:
            request = parse_jump_spec(raw)
        except InvalidJumpFormat as exc:
            self._warn(str(exc))
            return None
        return await self.resolve_jump(
            request.routine,
            request.label,
            request.offset_lines,
            source_document=source_document,
            cancellation=cancellation,
        )
