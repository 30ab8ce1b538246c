"""Tests for definition link enumeration and deferred link activation."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from ccsnav.resolve.links import DefinitionLinkEnumerator
from ccsnav.resolve.models import FollowLinkTarget, Location, Position, TextDocument

DOC = TextDocument.from_text(
    "/ws/Caller.mac",
    "Caller\n"
    "    do ^MYRTN\n"
    "    set x = $$Start^MYRTN(1)\n"
    "    if $$$OK do ##class(Demo.Tool).Run()\n"
    "    quit\n",
)


def _enumerator(provider=None, document=DOC):
    return DefinitionLinkEnumerator(provider, open_document=lambda uri: document)


class TestProvideLinks:
    def test_one_link_per_reference(self):
        links = _enumerator().provide_links(DOC)
        assert [link.query for link in links] == [
            "^MYRTN",
            "Start^MYRTN",
            "$$$OK",
            "##class(Demo.Tool).Run",
        ]

    def test_link_ranges_and_targets(self):
        link = _enumerator().provide_links(DOC)[1]
        assert link.start == Position(2, 12)
        assert link.end == Position(2, 25)
        assert link.target == FollowLinkTarget("/ws/Caller.mac", 2, 12)
        assert link.tooltip == "Go to Definition"

    def test_enumeration_makes_no_requests(self):
        provider = MagicMock()
        _enumerator(provider).provide_links(DOC)
        assert provider.mock_calls == []

    def test_no_references(self):
        plain = TextDocument.from_text("/ws/Plain.mac", "Plain\n    quit\n")
        assert _enumerator().provide_links(plain) == []

    def test_reflects_current_text(self):
        enumerator = _enumerator()
        before = TextDocument.from_text("/ws/A.mac", "    do ^A\n")
        after = TextDocument.from_text("/ws/A.mac", "    do ^A\n    do ^B\n")
        assert len(enumerator.provide_links(before)) == 1
        assert len(enumerator.provide_links(after)) == 2


class TestFollowLink:
    @pytest.mark.asyncio
    async def test_follow_reopens_document_and_resolves(self):
        provider = MagicMock()
        provider.provide_definition = AsyncMock(return_value=Location("/ws/rtn/MYRTN.mac", 2))
        opened = []

        def open_document(uri):
            opened.append(uri)
            return DOC

        enumerator = DefinitionLinkEnumerator(provider, open_document)
        target = enumerator.provide_links(DOC)[1].target
        result = await enumerator.follow_link(target)

        assert result == Location("/ws/rtn/MYRTN.mac", 2)
        assert opened == ["/ws/Caller.mac"]
        provider.provide_definition.assert_awaited_once_with(DOC, Position(2, 12), None)

    def test_target_args(self):
        assert FollowLinkTarget("/ws/a.mac", 3, 4).to_args() == ["/ws/a.mac", 3, 4]
