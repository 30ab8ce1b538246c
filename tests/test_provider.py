"""Tests for the remote-first definition provider."""

from __future__ import annotations

import dataclasses
from unittest.mock import AsyncMock, MagicMock

import pytest

from ccsnav.resolve.models import Location, Position, TextDocument
from ccsnav.resolve.provider import PrioritizedResolutionProvider, ResolverChain
from ccsnav.resolve.remote import RemoteDefinitionResolver
from ccsnav.resolve.transport import TransportNetworkError
from tests.conftest import FakeTransport

DOC = TextDocument.from_text("/ws/Caller.mac", "Caller\n    do ^MYRTN\n    quit\n")
ON_REF = Position(1, 8)
OFF_REF = Position(2, 5)


def _provider(transport, connection, fallback=None, **kwargs):
    remote = RemoteDefinitionResolver(transport_factory=transport.factory, sleep=AsyncMock())
    return PrioritizedResolutionProvider(remote, lambda doc: connection, fallback=fallback, **kwargs)


class TestPrioritizedResolution:
    @pytest.mark.asyncio
    async def test_remote_hit_never_invokes_fallback(self, connection):
        transport = FakeTransport({"uri": "/ws/rtn/MYRTN.mac", "line": 1})
        fallback = AsyncMock(return_value=[Location("/local.mac", 7)])
        result = await _provider(transport, connection, fallback).provide_definition(DOC, ON_REF)
        assert result == Location("/ws/rtn/MYRTN.mac", 0)
        assert transport.queries == ["^MYRTN"]
        fallback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remote_miss_returns_fallback_verbatim(self, connection):
        transport = FakeTransport({})
        candidates = [Location("/a.mac", 1), Location("/b.mac", 2)]
        fallback = AsyncMock(return_value=candidates)
        result = await _provider(transport, connection, fallback).provide_definition(DOC, ON_REF)
        assert result is candidates
        fallback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_fallback_result_is_returned(self, connection):
        transport = FakeTransport(TransportNetworkError("down"))
        fallback = AsyncMock(return_value=[])
        result = await _provider(transport, connection, fallback).provide_definition(DOC, ON_REF)
        assert result == []
        fallback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_reference_delegates_without_remote_call(self, connection):
        transport = FakeTransport({"uri": "/x.mac", "line": 1})
        fallback = AsyncMock(return_value=Location("/local.mac", 0))
        result = await _provider(transport, connection, fallback).provide_definition(DOC, OFF_REF)
        assert result == Location("/local.mac", 0)
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_skipped_connection_falls_back(self, connection):
        transport = FakeTransport({"uri": "/x.mac", "line": 1})
        fallback = AsyncMock(return_value=None)
        inactive = dataclasses.replace(connection, active=False)
        result = await _provider(transport, inactive, fallback).provide_definition(DOC, ON_REF)
        assert result is None
        assert transport.calls == []
        fallback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_fallback_yields_none(self, connection):
        transport = FakeTransport({})
        assert await _provider(transport, connection).provide_definition(DOC, ON_REF) is None

    @pytest.mark.asyncio
    async def test_on_no_result_callback_only_on_remote_miss(self, connection):
        on_no_result = MagicMock()
        miss = _provider(FakeTransport({}), connection, AsyncMock(return_value=[]), on_no_result=on_no_result)
        await miss.provide_definition(DOC, ON_REF)
        on_no_result.assert_called_once()
        assert on_no_result.call_args.args[0].normalized_query == "^MYRTN"

        on_no_result.reset_mock()
        hit = _provider(FakeTransport({"uri": "/a.mac", "line": 1}), connection, on_no_result=on_no_result)
        await hit.provide_definition(DOC, ON_REF)
        on_no_result.assert_not_called()

    @pytest.mark.asyncio
    async def test_position_past_end_of_document(self, connection):
        fallback = AsyncMock(return_value=[])
        provider = _provider(FakeTransport({}), connection, fallback)
        assert await provider.provide_definition(DOC, Position(99, 0)) == []


class TestResolverChain:
    @pytest.mark.asyncio
    async def test_stops_at_first_result(self):
        first = MagicMock()
        first.resolve = AsyncMock(return_value=Location("/a", 0))
        second = MagicMock()
        second.resolve = AsyncMock(return_value=Location("/b", 0))
        result = await ResolverChain([first, second]).run(DOC, ON_REF, None, None)
        assert result == Location("/a", 0)
        second.resolve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_chain(self):
        assert await ResolverChain([]).run(DOC, ON_REF, None, None) is None
