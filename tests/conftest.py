"""Shared test fixtures and helpers for ccsnav tests.

Provides:
- CliRunner fixtures: cli_runner, invoke_cli()
- JSON validation helpers: parse_json_output(), assert_json_envelope()
- Connection fixture: a complete server connection
- FakeTransport: scripted transport that records every request
- Workspace fixture: a small ObjectScript project on disk
"""

from __future__ import annotations

import asyncio
import json
import os

import pytest
from click.testing import CliRunner

from ccsnav.resolve.models import ConnectionContext
from ccsnav.resolve.transport import TransportResponse

# ===========================================================================
# CliRunner helpers
# ===========================================================================


@pytest.fixture
def cli_runner():
    """Provide a Click CliRunner for in-process CLI testing."""
    return CliRunner()


def invoke_cli(runner, args, cwd=None, json_mode=False, env=None):
    """Invoke the ccsnav CLI via CliRunner.

    Args:
        runner: CliRunner instance
        args: list of CLI arguments (e.g. ["extract", "a.mac", "1", "1"])
        cwd: directory to run in
        json_mode: if True, prepend --json flag
        env: extra environment variables for the invocation
    Returns:
        click.testing.Result
    """
    from ccsnav.cli import cli

    full_args = []
    if json_mode:
        full_args.append("--json")
    full_args.extend(args)

    old_cwd = os.getcwd()
    try:
        if cwd:
            os.chdir(str(cwd))
        result = runner.invoke(cli, full_args, env=env, catch_exceptions=False)
    finally:
        os.chdir(old_cwd)

    return result


def parse_json_output(result, command=None):
    """Parse JSON from a CliRunner result, failing with context on bad output."""
    assert result.exit_code == 0, f"Command {command or '?'} failed (exit {result.exit_code}):\n{result.output}"
    try:
        return json.loads(result.output)
    except json.JSONDecodeError as e:
        pytest.fail(f"Invalid JSON from {command or '?'}: {e}\nOutput was:\n{result.output[:500]}")


def assert_json_envelope(data, command=None):
    """Validate that a parsed JSON dict follows the ccsnav envelope contract."""
    assert isinstance(data, dict), f"Expected dict, got {type(data)}"
    assert "command" in data, "Missing 'command' key in envelope"
    assert "version" in data, "Missing 'version' key in envelope"
    assert "summary" in data, "Missing 'summary' key in envelope"
    assert "timestamp" in data.get("_meta", {}), "Missing 'timestamp' in _meta"
    if command:
        assert data["command"] == command, f"Expected command={command}, got {data['command']}"
    assert isinstance(data["summary"], dict)


# ===========================================================================
# Connections and transports
# ===========================================================================

CONNECTION_ENV_VARS = (
    "CCSNAV_HOST", "CCSNAV_PORT", "CCSNAV_NAMESPACE", "CCSNAV_USERNAME",
    "CCSNAV_PASSWORD", "CCSNAV_HTTPS", "CCSNAV_PATH_PREFIX", "CCSNAV_TIMEOUT_MS",
    "CCSNAV_DEBUG_RESOLVER",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep a developer's real connection settings out of the tests."""
    for var in CONNECTION_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def connection():
    return ConnectionContext(
        active=True,
        namespace="USER",
        host="iris.local",
        port=52773,
        username="dev",
        password="secret",
    )


class FakeTransport:
    """Transport double: replays scripted outcomes and records requests.

    Each script item is either a ``TransportResponse``, a payload dict (wrapped
    in a 200 response), an exception instance (raised), or a callable taking
    ``(path, body)`` and returning one of those.
    """

    def __init__(self, *script, delay: float = 0.0):
        self.script = list(script)
        self.calls: list[tuple[str, dict, float]] = []
        self.delay = delay

    async def post(self, path, body, *, timeout_s):
        self.calls.append((path, body, timeout_s))
        if self.delay:
            await asyncio.sleep(self.delay)
        item = self.script.pop(0) if len(self.script) > 1 else (self.script[0] if self.script else None)
        if callable(item):
            item = item(path, body)
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, TransportResponse):
            return item
        return TransportResponse(status=200, body=item)

    def factory(self, connection):
        return self

    @property
    def queries(self) -> list[str]:
        return [body.get("query") for _, body, _ in self.calls]


def by_query(answers: dict):
    """Script item answering ``{"query": q}`` from *answers* (missing -> {})."""

    def respond(path, body):
        return answers.get(body.get("query"), {})

    return respond


# ===========================================================================
# Workspace fixture
# ===========================================================================


@pytest.fixture
def workspace(tmp_path):
    """A small ObjectScript project: two routines, an include, a class."""
    root = tmp_path / "ws"
    (root / ".git").mkdir(parents=True)
    (root / "rtn").mkdir()
    (root / "cls" / "Demo").mkdir(parents=True)

    (root / "rtn" / "MYRTN.mac").write_text(
        "MYRTN ; demo routine\n"
        "    quit\n"
        "Start(x) ; entry\n"
        "    set a = 1\n"
        "    set b = 2\n"
        "    do Helper^OTHER\n"
        "    quit\n"
        "Done\n"
        "    quit\n"
    )
    (root / "rtn" / "OTHER.mac").write_text(
        "OTHER\n"
        "    quit\n"
        "Helper\n"
        "    write $$$OK\n"
        "    quit\n"
    )
    (root / "rtn" / "Macros.inc").write_text(
        "#define OK 1\n"
        "#define NotOK 0\n"
    )
    (root / "cls" / "Demo" / "Tool.cls").write_text(
        "Class Demo.Tool Extends %RegisteredObject\n"
        "{\n"
        "\n"
        "ClassMethod Run(arg As %String) As %Status\n"
        "{\n"
        "    quit $$$OK\n"
        "}\n"
        "\n"
        "Method Stop() As %Status\n"
        "{\n"
        "    quit 1\n"
        "}\n"
        "}\n"
    )
    (root / "Caller.mac").write_text(
        "Caller\n"
        "    do ^MYRTN\n"
        "    set x = $$Start^MYRTN(1)\n"
        "    do ##class(Demo.Tool).Run()\n"
        "    if $$$OK write \"ok\"\n"
        "    goto Local\n"
        "Local\n"
        "    quit\n"
    )
    return root
