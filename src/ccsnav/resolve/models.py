"""Value types shared by the definition-resolution pipeline."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Union

from ccsnav.resolve.cancellation import CancellationToken

_EOL_RE = re.compile(r"\r\n|\r|\n")


def split_lines(text: str) -> list[str]:
    """Split on CR, LF and CRLF only; a final line break does not open a new line."""
    lines = _EOL_RE.split(text)
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return lines


class QueryKind(str, Enum):
    """Reference shapes recognized in a line, in priority order."""

    LABEL_ROUTINE = "labelRoutine"
    ROUTINE = "routine"
    MACRO = "macro"
    CLASS = "class"


@dataclass(frozen=True)
class SourceRange:
    """Character span of a match within one line; ``end`` is one past the last character."""

    start: int
    end: int

    def covers(self, offset: int) -> bool:
        # Both boundaries count: a cursor right after the match is still on it.
        return self.start <= offset <= self.end


@dataclass(frozen=True)
class QueryMatch:
    raw_text: str
    normalized_query: str
    kind: QueryKind
    symbol_name: str
    source_range: SourceRange


@dataclass(frozen=True)
class Position:
    line: int
    character: int


@dataclass(frozen=True)
class DocumentQueryMatch:
    """A query match anchored to an absolute line of a document."""

    line: int
    match: QueryMatch

    @property
    def start(self) -> Position:
        return Position(self.line, self.match.source_range.start)

    @property
    def end(self) -> Position:
        return Position(self.line, self.match.source_range.end)


@dataclass(frozen=True)
class ConnectionContext:
    """Server connection bundle for one document.

    Only ``active``, ``namespace``, ``host``, ``port`` and credential presence
    gate resolution. The remaining fields are carried for the transport.
    """

    active: bool = False
    namespace: str | None = None
    host: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    https: bool = False
    path_prefix: str = ""

    @property
    def has_credentials(self) -> bool:
        return bool(self.username) and bool(self.password)

    @property
    def is_complete(self) -> bool:
        return bool(
            self.active
            and self.namespace
            and self.host
            and self.port
            and self.has_credentials
        )

    def describe(self) -> dict:
        """Loggable view: credential values are reduced to their presence."""
        return {
            "active": self.active,
            "namespace": self.namespace,
            "host": self.host,
            "port": self.port,
            "username": bool(self.username),
            "password": bool(self.password),
        }


@dataclass(frozen=True)
class Location:
    uri: str
    line: int
    column: int = 0

    @classmethod
    def from_wire(cls, payload) -> Location | None:
        """Convert a ``{uri, line}`` response body (1-based line) to a Location."""
        if not isinstance(payload, dict):
            return None
        uri = payload.get("uri")
        line = payload.get("line")
        if not isinstance(uri, str) or not uri:
            return None
        if isinstance(line, bool) or not isinstance(line, (int, float)):
            return None
        if not math.isfinite(line):
            return None
        return cls(uri=uri.replace("\\", "/"), line=max(0, math.floor(line) - 1))

    def to_dict(self) -> dict:
        return {"uri": self.uri, "line": self.line, "column": self.column}


@dataclass(frozen=True)
class ResolutionRequest:
    query: str
    connection: ConnectionContext
    timeout_ms: int = 500
    cancellation: CancellationToken | None = None


@dataclass(frozen=True)
class JumpRequest:
    routine: str
    label: str
    offset_lines: int = 0

    @property
    def query(self) -> str:
        return f"{self.label}^{self.routine}"


# ---------------------------------------------------------------------------
# Jump outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Resolved:
    location: Location

    @property
    def message(self) -> str:
        return f"{self.location.uri}:{self.location.line + 1}"


@dataclass(frozen=True)
class LabelNotFoundInRoutine:
    routine: str
    label: str

    @property
    def message(self) -> str:
        return f"Label {self.label} not found in {self.routine}"


@dataclass(frozen=True)
class RoutineNotFound:
    routine: str

    @property
    def message(self) -> str:
        return f"Routine {self.routine} not found in the current workspace"


JumpOutcome = Union[Resolved, LabelNotFoundInRoutine, RoutineNotFound]


# ---------------------------------------------------------------------------
# Documents and links
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextDocument:
    """Immutable snapshot of a source document, split into lines."""

    uri: str
    lines: tuple[str, ...]
    eol: str = "\n"

    @classmethod
    def from_text(cls, uri: str, text: str) -> TextDocument:
        eol = "\r\n" if "\r\n" in text else "\n"
        return cls(uri=uri, lines=tuple(split_lines(text)), eol=eol)

    @classmethod
    def from_path(cls, path: str | Path) -> TextDocument:
        p = Path(path)
        with open(p, encoding="utf-8", errors="replace", newline="") as f:
            text = f.read()
        return cls.from_text(p.resolve().as_posix(), text)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def last_line(self) -> int:
        return max(0, self.line_count - 1)

    @property
    def name(self) -> str:
        return Path(self.uri).name

    def line_at(self, line: int) -> str:
        if line < 0 or line >= self.line_count:
            raise IndexError(f"line {line} out of range (0..{self.last_line})")
        return self.lines[line]


@dataclass(frozen=True)
class FollowLinkTarget:
    """Deferred "follow this reference" action bound to a match start."""

    document_uri: str
    line: int
    character: int

    def to_args(self) -> list:
        return [self.document_uri, self.line, self.character]


@dataclass(frozen=True)
class DocumentLink:
    start: Position
    end: Position
    target: FollowLinkTarget
    tooltip: str = "Go to Definition"
    query: str | None = None
