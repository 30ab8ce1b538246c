"""Remote definition lookup against the source-control server.

Every failure inside :meth:`RemoteDefinitionResolver.resolve` (skipped
preconditions, cancellation, timeouts, transport and payload errors) ends as
``None`` so callers can fall back to a local resolver. Only timeouts are
retried.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from ccsnav.resolve.cancellation import CancellationToken, OperationCancelled, run_cancellable
from ccsnav.resolve.models import ConnectionContext, Location, ResolutionRequest
from ccsnav.resolve.transport import (
    ROUTES,
    TransportError,
    TransportFactory,
    TransportTimeout,
    default_transport_factory,
)

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 500
DEFAULT_MAX_ATTEMPTS = 2
MIN_BACKOFF_MS = 150
MAX_BACKOFF_MS = 500
BACKOFF_RATIO = 0.1


def backoff_ms(timeout_ms: int) -> float:
    """Delay before a retry: 10% of the attempt timeout, clamped to [150, 500] ms."""
    return min(MAX_BACKOFF_MS, max(MIN_BACKOFF_MS, timeout_ms * BACKOFF_RATIO))


class RemoteDefinitionResolver:
    def __init__(
        self,
        transport_factory: TransportFactory | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.transport_factory = transport_factory or default_transport_factory()
        self.timeout_ms = timeout_ms
        self.max_attempts = max(1, max_attempts)
        self._sleep = sleep

    async def resolve_request(self, request: ResolutionRequest) -> Location | None:
        return await self.resolve(
            request.query,
            request.connection,
            request.cancellation,
            timeout_ms=request.timeout_ms,
        )

    async def resolve(
        self,
        query: str,
        connection: ConnectionContext,
        cancellation: CancellationToken | None = None,
        timeout_ms: int | None = None,
    ) -> Location | None:
        if not connection.is_complete:
            log.debug("Definition lookup skipped: missing connection metadata %s", connection.describe())
            return None
        if not query:
            log.debug("Definition lookup skipped: empty query")
            return None
        timeout_ms = timeout_ms or self.timeout_ms

        try:
            transport = self.transport_factory(connection)
        except Exception as exc:
            log.debug("Failed to create source-control transport: %s", exc)
            return None

        path = ROUTES.resolve_definition(connection.namespace)
        attempt = 0
        while True:
            attempt += 1
            try:
                response = await run_cancellable(
                    transport.post(path, {"query": query}, timeout_s=timeout_ms / 1000.0),
                    cancellation,
                )
            except OperationCancelled:
                log.debug("Definition lookup cancelled: %r", query)
                return None
            except TransportTimeout as exc:
                if attempt >= self.max_attempts:
                    log.debug("Definition lookup timed out after %d attempt(s): %s", attempt, exc)
                    return None
                delay = backoff_ms(timeout_ms)
                log.debug("Definition lookup timed out (attempt %d), retrying in %.0fms", attempt, delay)
                try:
                    await run_cancellable(self._sleep(delay / 1000.0), cancellation)
                except OperationCancelled:
                    log.debug("Definition lookup cancelled during backoff: %r", query)
                    return None
                continue
            except TransportError as exc:
                log.debug("Definition lookup failed (%s): %s", exc.kind, exc)
                return None
            except Exception as exc:
                log.debug("Definition lookup failed unexpectedly: %r", exc)
                return None

            location = Location.from_wire(response.body)
            if location is None:
                log.debug("Definition lookup returned empty payload: %r", response.body)
            return location


# ---------------------------------------------------------------------------
# Context expressions
# ---------------------------------------------------------------------------

_CONTEXT_EXPRESSION_FAILED = "Failed to resolve context expression."


@dataclass(frozen=True)
class ContextExpressionResult:
    ok: bool
    text_expression: str = ""
    message: str = ""

    def formatted(self, eol: str = "\n") -> str:
        """Server text with a tab before its first line, using *eol* line breaks."""
        lines = self.text_expression.replace("\r\n", "\n").split("\n")
        return "\t" + eol.join(lines)


class ContextExpressionClient:
    """Expand a context expression for a routine via ``/resolveContextExpression``.

    Unlike definition lookup this surfaces failures: the result carries the
    server message (or a generic one) when the expansion did not succeed.
    """

    def __init__(self, transport_factory: TransportFactory | None = None, timeout_ms: int = 5000):
        self.transport_factory = transport_factory or default_transport_factory()
        self.timeout_ms = timeout_ms

    async def resolve(
        self,
        routine: str,
        expression: str,
        connection: ConnectionContext,
        cancellation: CancellationToken | None = None,
    ) -> ContextExpressionResult:
        if not expression.strip():
            return ContextExpressionResult(False, message="Context expression is empty.")
        if not connection.host or not connection.port:
            return ContextExpressionResult(
                False, message="No active server connection for this document."
            )
        try:
            transport = self.transport_factory(connection)
            response = await run_cancellable(
                transport.post(
                    ROUTES.resolve_context_expression(),
                    {"routine": routine, "contextExpression": expression.strip()},
                    timeout_s=self.timeout_ms / 1000.0,
                ),
                cancellation,
            )
        except OperationCancelled:
            return ContextExpressionResult(False, message="Cancelled.")
        except (TransportError, ValueError) as exc:
            log.debug("Context expression request failed: %s", exc)
            return ContextExpressionResult(False, message=f"{_CONTEXT_EXPRESSION_FAILED} {exc}")

        data = response.body if isinstance(response.body, dict) else {}
        status = data.get("status")
        text = data.get("textExpression")
        if isinstance(status, str) and status.lower() == "success" and isinstance(text, str) and text:
            return ContextExpressionResult(True, text_expression=text)
        message = data.get("message") or _CONTEXT_EXPRESSION_FAILED
        return ContextExpressionResult(False, message=str(message))
