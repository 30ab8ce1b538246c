"""Symbol-definition resolution: reference extraction, remote lookup, fallback, jumps."""

from ccsnav.resolve.cancellation import (
    CancellationToken,
    CancellationTokenSource,
    OperationCancelled,
)
from ccsnav.resolve.extract import extract_all, extract_at
from ccsnav.resolve.fallback import LocalDefinitionResolver, WorkspaceIndex
from ccsnav.resolve.jump import InvalidJumpFormat, RoutineJumpResolver, parse_jump_spec
from ccsnav.resolve.links import DefinitionLinkEnumerator
from ccsnav.resolve.models import (
    ConnectionContext,
    JumpRequest,
    LabelNotFoundInRoutine,
    Location,
    Position,
    QueryKind,
    QueryMatch,
    Resolved,
    RoutineNotFound,
    TextDocument,
)
from ccsnav.resolve.provider import PrioritizedResolutionProvider
from ccsnav.resolve.remote import ContextExpressionClient, RemoteDefinitionResolver

__all__ = [
    "CancellationToken",
    "CancellationTokenSource",
    "OperationCancelled",
    "extract_at",
    "extract_all",
    "LocalDefinitionResolver",
    "WorkspaceIndex",
    "InvalidJumpFormat",
    "RoutineJumpResolver",
    "parse_jump_spec",
    "DefinitionLinkEnumerator",
    "ConnectionContext",
    "JumpRequest",
    "LabelNotFoundInRoutine",
    "Location",
    "Position",
    "QueryKind",
    "QueryMatch",
    "Resolved",
    "RoutineNotFound",
    "TextDocument",
    "PrioritizedResolutionProvider",
    "ContextExpressionClient",
    "RemoteDefinitionResolver",
]
