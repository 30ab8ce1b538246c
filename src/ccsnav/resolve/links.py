"""Clickable definition links for every reference in a document."""

from __future__ import annotations

from typing import Callable

from ccsnav.resolve.cancellation import CancellationToken
from ccsnav.resolve.extract import extract_all
from ccsnav.resolve.models import DocumentLink, FollowLinkTarget, Position, TextDocument
from ccsnav.resolve.provider import DefinitionResult, PrioritizedResolutionProvider

FOLLOW_DEFINITION_LINK_COMMAND = "ccsnav.followDefinitionLink"


class DefinitionLinkEnumerator:
    """Links carry only the match position; resolution happens on activation."""

    def __init__(
        self,
        provider: PrioritizedResolutionProvider,
        open_document: Callable[[str], TextDocument],
    ):
        self.provider = provider
        self.open_document = open_document

    def provide_links(self, document: TextDocument) -> list[DocumentLink]:
        links = []
        for found in extract_all(document):
            start = found.start
            links.append(
                DocumentLink(
                    start=start,
                    end=found.end,
                    target=FollowLinkTarget(document.uri, start.line, start.character),
                    query=found.match.normalized_query,
                )
            )
        return links

    async def follow_link(
        self,
        target: FollowLinkTarget,
        cancellation: CancellationToken | None = None,
    ) -> DefinitionResult:
        document = self.open_document(target.document_uri)
        position = Position(target.line, target.character)
        return await self.provider.provide_definition(document, position, cancellation)
