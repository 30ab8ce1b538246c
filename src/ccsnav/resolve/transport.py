"""HTTP transport to the source-control REST API, with classified errors."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol
from urllib.parse import quote

import aiohttp

from ccsnav.resolve.models import ConnectionContext

log = logging.getLogger(__name__)

BASE_PATH = "/api/sourcecontrol/vscode"


class ROUTES:
    @staticmethod
    def resolve_definition(namespace: str) -> str:
        return f"/namespaces/{quote(namespace, safe='')}/resolveDefinition"

    @staticmethod
    def resolve_context_expression() -> str:
        return "/resolveContextExpression"


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------


class TransportError(Exception):
    """A request attempt failed; ``kind`` names the failure class."""

    kind = "network"


class TransportTimeout(TransportError):
    kind = "timeout"


class TransportNetworkError(TransportError):
    kind = "network"


class TransportStatusError(TransportError):
    kind = "http-status"

    def __init__(self, status: int, message: str = ""):
        super().__init__(message or f"HTTP {status}")
        self.status = status


@dataclass(frozen=True)
class TransportResponse:
    status: int
    body: Any = None


class Transport(Protocol):
    async def post(self, path: str, body: dict, *, timeout_s: float) -> TransportResponse: ...


TransportFactory = Callable[[ConnectionContext], Transport]


# ---------------------------------------------------------------------------
# aiohttp implementation
# ---------------------------------------------------------------------------


def build_base_url(connection: ConnectionContext) -> str:
    """``{scheme}://{host}:{port}{/prefix}/api/sourcecontrol/vscode``."""
    if not connection.host or not connection.port:
        raise ValueError("No active server connection for this document.")
    prefix = connection.path_prefix or ""
    if prefix and not prefix.startswith("/"):
        prefix = "/" + prefix
    prefix = prefix.rstrip("/")
    scheme = "https" if connection.https else "http"
    return f"{scheme}://{connection.host}:{connection.port}{quote(prefix)}{BASE_PATH}"


def basic_auth_header(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class AiohttpTransport:
    """One short-lived ``aiohttp.ClientSession`` per request."""

    def __init__(
        self,
        base_url: str,
        username: str | None = None,
        password: str | None = None,
        verify_ssl: bool = True,
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = {"Content-Type": "application/json"}
        if isinstance(username, str) and isinstance(password, str):
            self.headers["Authorization"] = basic_auth_header(username, password)
        self.verify_ssl = verify_ssl

    @classmethod
    def for_connection(cls, connection: ConnectionContext, verify_ssl: bool = True) -> AiohttpTransport:
        return cls(
            build_base_url(connection),
            username=connection.username,
            password=connection.password,
            verify_ssl=verify_ssl,
        )

    async def post(self, path: str, body: dict, *, timeout_s: float) -> TransportResponse:
        url = self.base_url + path
        connector = aiohttp.TCPConnector(ssl=self.verify_ssl)
        try:
            async with aiohttp.ClientSession(
                connector=connector,
                headers=self.headers,
                timeout=aiohttp.ClientTimeout(total=timeout_s),
            ) as session:
                async with session.post(url, json=body) as response:
                    status = response.status
                    raw = await response.text(errors="replace")
        except asyncio.TimeoutError as exc:
            raise TransportTimeout(f"POST {url} timed out after {timeout_s:.3f}s") from exc
        except aiohttp.ClientError as exc:
            raise TransportNetworkError(f"POST {url} failed: {exc}") from exc

        if not 200 <= status < 300:
            raise TransportStatusError(status, f"POST {url} returned HTTP {status}")
        return TransportResponse(status=status, body=_parse_json(raw))


def _parse_json(raw: str):
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        log.debug("Response body is not JSON (%d bytes)", len(raw))
        return None


def default_transport_factory(verify_ssl: bool = True) -> TransportFactory:
    def factory(connection: ConnectionContext) -> Transport:
        return AiohttpTransport.for_connection(connection, verify_ssl=verify_ssl)

    return factory
