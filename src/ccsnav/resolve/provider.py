"""Remote-first definition provider with a local fallback.

The provider runs a fixed-order chain of resolution strategies: the remote
server first, then whatever fallback the host supplies. The first strategy
that produces a result ends the chain; the last strategy's result is
returned verbatim even when it is empty.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Protocol, Sequence, Union

from ccsnav.resolve.cancellation import CancellationToken
from ccsnav.resolve.extract import extract_at
from ccsnav.resolve.models import ConnectionContext, Location, Position, QueryMatch, TextDocument
from ccsnav.resolve.remote import RemoteDefinitionResolver

log = logging.getLogger(__name__)

DefinitionResult = Union[Location, Sequence[Location], None]
FallbackResolve = Callable[[TextDocument, Position, CancellationToken], Awaitable[DefinitionResult]]
ConnectionResolver = Callable[[TextDocument], ConnectionContext]


class ResolverStrategy(Protocol):
    name: str

    async def resolve(
        self,
        document: TextDocument,
        position: Position,
        match: QueryMatch | None,
        cancellation: CancellationToken,
    ) -> DefinitionResult: ...


class RemoteStrategy:
    """Ask the server for the match's normalized query."""

    name = "remote"

    def __init__(self, resolver: RemoteDefinitionResolver, resolve_connection: ConnectionResolver):
        self.resolver = resolver
        self.resolve_connection = resolve_connection

    async def resolve(self, document, position, match, cancellation):
        if match is None:
            return None
        connection = self.resolve_connection(document)
        return await self.resolver.resolve(match.normalized_query, connection, cancellation)


class FallbackStrategy:
    """Delegate to the host's own definition lookup."""

    name = "fallback"

    def __init__(self, fallback: FallbackResolve):
        self.fallback = fallback

    async def resolve(self, document, position, match, cancellation):
        return await self.fallback(document, position, cancellation)


def _has_result(result: DefinitionResult) -> bool:
    if result is None:
        return False
    if isinstance(result, Location):
        return True
    return len(result) > 0


class ResolverChain:
    def __init__(self, strategies: Sequence[ResolverStrategy]):
        self.strategies = tuple(strategies)

    async def run(
        self,
        document: TextDocument,
        position: Position,
        match: QueryMatch | None,
        cancellation: CancellationToken,
        on_miss: Callable[[ResolverStrategy], None] | None = None,
    ) -> DefinitionResult:
        result: DefinitionResult = None
        for strategy in self.strategies:
            result = await strategy.resolve(document, position, match, cancellation)
            if _has_result(result):
                return result
            if on_miss is not None:
                on_miss(strategy)
        return result


class PrioritizedResolutionProvider:
    def __init__(
        self,
        remote: RemoteDefinitionResolver,
        resolve_connection: ConnectionResolver,
        fallback: FallbackResolve | None = None,
        on_no_result: Callable[[QueryMatch], None] | None = None,
        debug_resolver: bool = False,
    ):
        self.remote_strategy = RemoteStrategy(remote, resolve_connection)
        self.fallback_strategy = FallbackStrategy(fallback) if fallback is not None else None
        self.on_no_result = on_no_result
        self.debug_resolver = debug_resolver

    def _trace(self, message: str, *args) -> None:
        if self.debug_resolver:
            log.debug(message, *args)

    async def provide_definition(
        self,
        document: TextDocument,
        position: Position,
        cancellation: CancellationToken | None = None,
    ) -> DefinitionResult:
        cancellation = cancellation or CancellationToken.none()
        try:
            line_text = document.line_at(position.line)
        except IndexError:
            line_text = ""
        match = extract_at(line_text, position.character)

        strategies: list[ResolverStrategy] = []
        if match is not None:
            strategies.append(self.remote_strategy)
        else:
            self._trace("No reference at %s:%d:%d; skipping remote lookup",
                        document.uri, position.line, position.character)
        if self.fallback_strategy is not None:
            strategies.append(self.fallback_strategy)

        def on_miss(strategy: ResolverStrategy) -> None:
            if strategy is self.remote_strategy:
                if self.on_no_result is not None:
                    self.on_no_result(match)
                if self.fallback_strategy is None:
                    self._trace("Remote lookup returned no result; no fallback available")
                else:
                    self._trace("Remote lookup returned no result; invoking fallback")

        result = await ResolverChain(strategies).run(document, position, match, cancellation, on_miss)
        if isinstance(result, Location):
            self._trace("Resolved definition: %s:%d", result.uri, result.line)
        return result
