"""Local definition lookup over workspace source files.

Stands in for an editor's native definition provider: when the server has
nothing to say, references are resolved by scanning routine, include and
class sources under a workspace root. The scan is redone on every call.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from ccsnav.resolve.cancellation import CancellationToken
from ccsnav.resolve.extract import extract_at
from ccsnav.resolve.models import Location, Position, QueryKind, QueryMatch, TextDocument, split_lines

log = logging.getLogger(__name__)

ROUTINE_EXTENSIONS = (".mac", ".int", ".inc", ".m")
CLASS_EXTENSIONS = (".cls",)

_LABEL_RE = re.compile(r"^(%?[A-Za-z][A-Za-z0-9]*)(?:\(([^)]*)\))?")
_DEFINE_RE = re.compile(r"^\s*#def(?:ine|1arg)\s+([%A-Za-z][%A-Za-z0-9_]*)", re.IGNORECASE)
_MEMBER_RE = re.compile(
    r"^\s*(?:Class)?Method\s+(%?[A-Za-z][A-Za-z0-9]*)\s*\(",
    re.IGNORECASE,
)
_LABEL_ROUTINE_QUERY_RE = re.compile(r"^(%?[A-Za-z]\w*)\^(.+)$")
_CLASS_QUERY_RE = re.compile(r"^##class\(([^)]+)\)(?:\.(.+))?$", re.IGNORECASE)


def _path_uri(path: Path) -> str:
    return path.resolve().as_posix()


def find_labels(lines) -> dict[str, int]:
    """Label name -> 0-based line. Labels start in column 0."""
    labels: dict[str, int] = {}
    for i, line in enumerate(lines):
        if not line or line[0].isspace() or line[0] in ";/#":
            continue
        m = _LABEL_RE.match(line)
        if m and m.group(1) not in labels:
            labels[m.group(1)] = i
    return labels


class WorkspaceIndex:
    """Routine/class/include files found under *root*, keyed by name."""

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.routines: dict[str, Path] = {}
        self.classes: dict[str, Path] = {}
        self.includes: list[Path] = []
        self.scan()

    def scan(self) -> None:
        self.routines.clear()
        self.classes.clear()
        self.includes = []
        if not self.root.is_dir():
            return
        for path in sorted(self.root.rglob("*")):
            if not path.is_file():
                continue
            suffix = path.suffix.lower()
            if suffix in ROUTINE_EXTENSIONS:
                self.routines.setdefault(path.stem, path)
                if suffix == ".inc":
                    self.includes.append(path)
            elif suffix in CLASS_EXTENSIONS:
                self.classes.setdefault(self._class_name(path), path)
        log.debug(
            "Indexed %d routines, %d classes under %s",
            len(self.routines), len(self.classes), self.root,
        )

    def _class_name(self, path: Path) -> str:
        # Pkg/Sub/Name.cls -> Pkg.Sub.Name; a file already named Pkg.Sub.Name.cls keeps its stem
        try:
            rel = path.relative_to(self.root).with_suffix("")
        except ValueError:
            return path.stem
        return ".".join(rel.parts)

    def _read(self, path: Path) -> list[str]:
        try:
            return split_lines(path.read_text(encoding="utf-8", errors="replace"))
        except OSError as exc:
            log.debug("Cannot read %s: %s", path, exc)
            return []

    def find_routine(self, name: str) -> Path | None:
        return self.routines.get(name)

    def find_class(self, name: str) -> Path | None:
        path = self.classes.get(name)
        if path is not None:
            return path
        # Flat layouts: match on the trailing components of the class name.
        for cls_name, cls_path in self.classes.items():
            if cls_name.endswith("." + name) or cls_path.stem == name:
                return cls_path
        return None

    def find_label(self, label: str, routine: str) -> Location | None:
        path = self.find_routine(routine)
        if path is None:
            return None
        line = find_labels(self._read(path)).get(label)
        if line is None:
            return None
        return Location(_path_uri(path), line)

    def find_macro(self, name: str) -> Location | None:
        for path in self.includes:
            for i, line in enumerate(self._read(path)):
                m = _DEFINE_RE.match(line)
                if m and m.group(1) == name:
                    return Location(_path_uri(path), i)
        return None

    def find_member(self, class_name: str, member: str | None) -> Location | None:
        path = self.find_class(class_name)
        if path is None:
            return None
        if member:
            for i, line in enumerate(self._read(path)):
                m = _MEMBER_RE.match(line)
                if m and m.group(1) == member:
                    return Location(_path_uri(path), i)
        return Location(_path_uri(path), 0)

    def lookup(self, match: QueryMatch) -> Location | None:
        query = match.normalized_query
        if match.kind is QueryKind.LABEL_ROUTINE:
            m = _LABEL_ROUTINE_QUERY_RE.match(query)
            if m:
                return self.find_label(m.group(1), m.group(2))
            return None
        if match.kind is QueryKind.ROUTINE:
            path = self.find_routine(match.symbol_name)
            return Location(_path_uri(path), 0) if path else None
        if match.kind is QueryKind.MACRO:
            return self.find_macro(match.symbol_name)
        m = _CLASS_QUERY_RE.match(query)
        if m:
            return self.find_member(m.group(1), m.group(2))
        return None


class LocalDefinitionResolver:
    """Fallback resolution capability backed by a fresh :class:`WorkspaceIndex`."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    async def __call__(
        self,
        document: TextDocument,
        position: Position,
        cancellation: CancellationToken | None = None,
    ) -> list[Location]:
        if cancellation is not None and cancellation.is_cancellation_requested:
            return []
        try:
            line_text = document.line_at(position.line)
        except IndexError:
            return []

        match = extract_at(line_text, position.character)
        if match is None:
            return self._label_in_document(document, line_text, position)

        location = WorkspaceIndex(self.root).lookup(match)
        return [location] if location else []

    def _label_in_document(self, document: TextDocument, line_text: str, position: Position) -> list[Location]:
        """A bare word under the cursor that names a label in the same document."""
        word = _word_at(line_text, position.character)
        if not word:
            return []
        line = find_labels(document.lines).get(word)
        if line is None:
            return []
        return [Location(document.uri, line)]


_WORD_RE = re.compile(r"%?[A-Za-z][A-Za-z0-9]*")


def _word_at(line_text: str, character: int) -> str | None:
    for m in _WORD_RE.finditer(line_text):
        if m.start() <= character <= m.end():
            return m.group(0)
    return None
