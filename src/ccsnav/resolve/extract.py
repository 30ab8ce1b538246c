"""Recognize code-reference shapes in a line of source text.

Four independent matchers are tried in a fixed priority order:

1. label-routine  ``$$Label^Routine[.Pkg]*``
2. bare routine   ``^Routine[.Pkg]*`` (optionally ``%``-prefixed)
3. macro          ``$$$MACRO``
4. class ref      ``##class(Pkg.Class)[.Method]`` (keyword case-insensitive)

Each matcher yields every non-overlapping instance on the line; for a single
offset the first matcher with an instance covering it wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterator

from ccsnav.resolve.models import (
    DocumentQueryMatch,
    QueryKind,
    QueryMatch,
    SourceRange,
    TextDocument,
)

_IDENT = r"[%A-Za-z]\w*"
_DOTTED = rf"{_IDENT}(?:\.{_IDENT})*"

_LABEL_ROUTINE_RE = re.compile(rf"\$\$({_IDENT})\^({_DOTTED})")
_ROUTINE_RE = re.compile(rf"\^(%?[A-Za-z]\w*(?:\.{_IDENT})*)")
_MACRO_RE = re.compile(r"\${3}([%A-Za-z][%A-Za-z0-9_]*)")
_CLASS_RE = re.compile(
    rf"##class\s*\(\s*({_DOTTED})\s*\)(?:\s*\.\s*({_IDENT}))?",
    re.IGNORECASE,
)
_LEADING_DOLLARS_RE = re.compile(r"^\$\$+")


@dataclass(frozen=True)
class _Matcher:
    kind: QueryKind
    pattern: re.Pattern
    build: Callable[[re.Match], tuple[str, str]]

    def spans(self, line_text: str) -> Iterator[QueryMatch]:
        for m in self.pattern.finditer(line_text):
            normalized, symbol = self.build(m)
            yield QueryMatch(
                raw_text=m.group(0),
                normalized_query=normalized,
                kind=self.kind,
                symbol_name=symbol,
                source_range=SourceRange(m.start(), m.end()),
            )


def _label_routine(m: re.Match) -> tuple[str, str]:
    return _LEADING_DOLLARS_RE.sub("", m.group(0)), m.group(2)


def _routine(m: re.Match) -> tuple[str, str]:
    return m.group(0), m.group(1)


def _macro(m: re.Match) -> tuple[str, str]:
    return m.group(0), m.group(1)


def _class_ref(m: re.Match) -> tuple[str, str]:
    class_name, method = m.group(1), m.group(2)
    if method:
        return f"##class({class_name}).{method}", class_name
    return f"##class({class_name})", class_name


MATCHERS: tuple[_Matcher, ...] = (
    _Matcher(QueryKind.LABEL_ROUTINE, _LABEL_ROUTINE_RE, _label_routine),
    _Matcher(QueryKind.ROUTINE, _ROUTINE_RE, _routine),
    _Matcher(QueryKind.MACRO, _MACRO_RE, _macro),
    _Matcher(QueryKind.CLASS, _CLASS_RE, _class_ref),
)


def extract_at(line_text: str, char_offset: int) -> QueryMatch | None:
    """Return the highest-priority reference covering *char_offset*, if any."""
    for matcher in MATCHERS:
        for match in matcher.spans(line_text):
            if match.source_range.covers(char_offset):
                return match
    return None


def extract_line(line_text: str) -> list[QueryMatch]:
    """All references on one line, ordered by start offset.

    Where instances of different shapes overlap, the higher-priority shape
    keeps its span and the others are dropped.
    """
    chosen: list[QueryMatch] = []
    for matcher in MATCHERS:
        for match in matcher.spans(line_text):
            r = match.source_range
            if any(r.start < c.source_range.end and c.source_range.start < r.end for c in chosen):
                continue
            chosen.append(match)
    chosen.sort(key=lambda q: q.source_range.start)
    return chosen


def extract_all(document: TextDocument) -> Iterator[DocumentQueryMatch]:
    """Lazily yield every reference in *document* with its absolute line.

    The generator reads the document's current lines when iterated, so each
    call reflects the text at that time.
    """
    for line_no, text in enumerate(document.lines):
        for match in extract_line(text):
            yield DocumentQueryMatch(line=line_no, match=match)
