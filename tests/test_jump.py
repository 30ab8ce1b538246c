"""Tests for Label+Offset^Routine parsing and two-phase jump resolution."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from ccsnav.resolve.jump import InvalidJumpFormat, RoutineJumpResolver, clamp_line, parse_jump_spec
from ccsnav.resolve.models import (
    JumpRequest,
    LabelNotFoundInRoutine,
    Location,
    Resolved,
    RoutineNotFound,
    TextDocument,
)
from ccsnav.resolve.remote import RemoteDefinitionResolver
from tests.conftest import FakeTransport, by_query

SOURCE = TextDocument.from_text("/ws/Caller.mac", "Caller\n    quit\n")


def _target(n_lines: int) -> TextDocument:
    return TextDocument.from_text("/ws/rtn/Foo.mac", "\n".join(f"line {i}" for i in range(n_lines)))


def _jumper(transport, connection, target_lines=20, **kwargs):
    remote = RemoteDefinitionResolver(transport_factory=transport.factory, sleep=AsyncMock())
    return RoutineJumpResolver(
        remote,
        lambda doc: connection,
        open_document=lambda uri: _target(target_lines),
        **kwargs,
    )


class TestParseJumpSpec:
    def test_label_offset_routine(self):
        assert parse_jump_spec("Start+3^Foo") == JumpRequest(routine="Foo", label="Start", offset_lines=3)

    def test_offset_defaults_to_zero(self):
        assert parse_jump_spec("  %Init^%ZRTN ") == JumpRequest(routine="%ZRTN", label="%Init", offset_lines=0)

    @pytest.mark.parametrize(
        "raw",
        ["Start+3", "Start + 3^Foo", "Start^Foo Bar", "^Foo", "Start^", "Start+x^Foo", "Start-1^Foo",
         "Start^Foo.Bar", "1abc^Foo", ""],
    )
    def test_rejected(self, raw):
        with pytest.raises(InvalidJumpFormat):
            parse_jump_spec(raw)


class TestClamp:
    @pytest.mark.parametrize("line, last, expected", [(8, 19, 8), (8, 5, 5), (-2, 5, 0), (0, 0, 0)])
    def test_clamp_line(self, line, last, expected):
        assert clamp_line(line, last) == expected


class TestResolveJump:
    @pytest.mark.asyncio
    async def test_label_plus_offset(self, connection):
        transport = FakeTransport(by_query({"Start^Foo": {"uri": "/ws/rtn/Foo.mac", "line": 6}}))
        reveal = MagicMock()
        outcome = await _jumper(transport, connection, reveal=reveal).resolve_jump(
            "Foo", "Start", 3, source_document=SOURCE
        )
        assert outcome == Resolved(Location("/ws/rtn/Foo.mac", 8, 0))
        reveal.assert_called_once_with(Location("/ws/rtn/Foo.mac", 8, 0))
        assert transport.queries == ["Start^Foo"]

    @pytest.mark.asyncio
    async def test_target_clamped_to_last_line(self, connection):
        transport = FakeTransport({"uri": "/ws/rtn/Foo.mac", "line": 6})
        outcome = await _jumper(transport, connection, target_lines=6).resolve_jump(
            "Foo", "Start", 3, source_document=SOURCE
        )
        assert outcome.location.line == 5

    @pytest.mark.asyncio
    async def test_label_missing_but_routine_exists(self, connection):
        transport = FakeTransport(by_query({"^Foo": {"uri": "/ws/rtn/Foo.mac", "line": 1}}))
        notify = MagicMock()
        outcome = await _jumper(transport, connection, notify=notify).resolve_jump(
            "Foo", "Start", 0, source_document=SOURCE
        )
        assert outcome == LabelNotFoundInRoutine("Foo", "Start")
        assert transport.queries == ["Start^Foo", "^Foo"]
        notify.assert_called_once_with("Label Start not found in Foo")

    @pytest.mark.asyncio
    async def test_routine_missing(self, connection):
        transport = FakeTransport({})
        notify = MagicMock()
        outcome = await _jumper(transport, connection, notify=notify).resolve_jump(
            "Foo", "Start", 0, source_document=SOURCE
        )
        assert outcome == RoutineNotFound("Foo")
        assert transport.queries == ["Start^Foo", "^Foo"]
        assert "Foo" in notify.call_args.args[0]

    @pytest.mark.asyncio
    async def test_no_source_document_is_a_no_op(self, connection):
        transport = FakeTransport({"uri": "/ws/rtn/Foo.mac", "line": 1})
        assert await _jumper(transport, connection).resolve_jump("Foo", "Start", 0) is None
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_unopenable_target(self, connection):
        transport = FakeTransport({"uri": "/gone.mac", "line": 1})
        notify = MagicMock()
        remote = RemoteDefinitionResolver(transport_factory=transport.factory)

        def open_document(uri):
            raise FileNotFoundError(uri)

        jumper = RoutineJumpResolver(remote, lambda doc: connection, open_document, notify=notify)
        assert await jumper.resolve_jump("Foo", "Start", 0, source_document=SOURCE) is None
        notify.assert_called_once()


class TestJumpFromText:
    @pytest.mark.asyncio
    async def test_invalid_format_makes_no_request(self, connection):
        transport = FakeTransport({"uri": "/ws/rtn/Foo.mac", "line": 1})
        notify = MagicMock()
        assert await _jumper(transport, connection, notify=notify).jump("Start Foo", source_document=SOURCE) is None
        assert transport.calls == []
        notify.assert_called_once_with("Invalid format. Use Label+Offset^Routine")

    @pytest.mark.asyncio
    async def test_parses_and_resolves(self, connection):
        transport = FakeTransport({"uri": "/ws/rtn/Foo.mac", "line": 3})
        outcome = await _jumper(transport, connection).jump("Start+1^Foo", source_document=SOURCE)
        assert outcome == Resolved(Location("/ws/rtn/Foo.mac", 3))
