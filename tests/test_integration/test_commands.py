"""Integration tests for the ``dify`` commands.

Commands run through the real Typer application with a CliRunner. Platform
calls go to an :class:`httpx.MockTransport`; the relay server is replaced by
a stub except in :mod:`test_login_flow`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from difysync.app import app
from difysync.client.platform import PlatformClient
from difysync.exceptions import AuthError, LoginTimeoutError
from difysync.models import SessionTokens


CHAT_DSL = "app:\n  name: Bot\n  mode: chat\nkind: app\n"


def _use_platform(monkeypatch: pytest.MonkeyPatch, handler: Callable[[httpx.Request], httpx.Response]) -> None:
    """Route every PlatformClient built by the app commands to *handler*."""

    def factory(config, **kwargs: Any) -> PlatformClient:
        return PlatformClient(config, transport=httpx.MockTransport(handler))

    monkeypatch.setattr("difysync.commands.apps.PlatformClient", factory)


class StubRelay:
    """Stands in for RelayServer in the login command."""

    outcome: Any = None
    created: list[StubRelay] = []

    def __init__(self, target_url: str, on_ready: Optional[Callable[[str], None]] = None, **kwargs: Any) -> None:
        self.target_url = target_url
        self.on_ready = on_ready
        StubRelay.created.append(self)

    def run(self) -> SessionTokens:
        if self.on_ready is not None:
            self.on_ready(self.target_url)
        if isinstance(StubRelay.outcome, Exception):
            raise StubRelay.outcome
        return StubRelay.outcome


@pytest.fixture()
def stub_relay(monkeypatch: pytest.MonkeyPatch) -> type[StubRelay]:
    StubRelay.created = []
    StubRelay.outcome = None
    monkeypatch.setattr("difysync.commands.auth.RelayServer", StubRelay)
    return StubRelay


def _read_rc(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------


def test_version(cli_runner) -> None:
    result = cli_runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "dify 0.1.0" in result.output


# ---------------------------------------------------------------------------
# login / logout
# ---------------------------------------------------------------------------


class TestLogin:
    def test_success_persists_tokens(self, cli_runner, isolated_config: Path, stub_relay) -> None:
        stub_relay.outcome = SessionTokens(access_token="a", refresh_token="r", csrf_token="")
        result = cli_runner.invoke(app, ["login"])

        assert result.exit_code == 0, result.output
        assert "Login to Dify: https://cloud.dify.ai" in result.output
        assert "Waiting for browser extension" in result.output
        assert "Authenticated" in result.output
        rc = _read_rc(isolated_config / "project" / ".difyrc")
        assert rc == {"url": "https://cloud.dify.ai", "accessToken": "a", "refreshToken": "r"}

    def test_uses_configured_url(self, cli_runner, logged_in: Path, stub_relay) -> None:
        stub_relay.outcome = SessionTokens(access_token="a2", refresh_token="r2", csrf_token="c2")
        cli_runner.invoke(app, ["login"])
        assert stub_relay.created[0].target_url == "https://dify.example.com"
        assert _read_rc(logged_in)["accessToken"] == "a2"

    def test_timeout_exits_1_without_writing(self, cli_runner, isolated_config: Path, stub_relay) -> None:
        stub_relay.outcome = LoginTimeoutError("Login timed out (10 minutes)")
        result = cli_runner.invoke(app, ["login"])

        assert result.exit_code == 1
        assert "Auth failed: Login timed out (10 minutes)" in result.output
        assert not (isolated_config / "project" / ".difyrc").exists()

    def test_port_busy_exits_1(self, cli_runner, isolated_config: Path, stub_relay) -> None:
        stub_relay.outcome = AuthError("Cannot start login server on 127.0.0.1:8765: in use")
        result = cli_runner.invoke(app, ["login"])
        assert result.exit_code == 1
        assert "Auth failed" in result.output


def test_logout_keeps_url(cli_runner, logged_in: Path) -> None:
    result = cli_runner.invoke(app, ["logout"])
    assert result.exit_code == 0
    assert "Logged out" in result.output
    assert _read_rc(logged_in) == {"url": "https://dify.example.com"}


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


class TestConfigCommands:
    def test_show_plain(self, cli_runner, logged_in: Path) -> None:
        result = cli_runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "URL:    https://dify.example.com" in result.output
        assert "Auth:   yes" in result.output

    def test_show_json(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["--json", "config"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["url"] == "https://cloud.dify.ai"
        assert data["authenticated"] is False

    def test_set_url(self, cli_runner, logged_in: Path) -> None:
        result = cli_runner.invoke(app, ["config:set", "url", "https://new.example.com"])
        assert result.exit_code == 0
        rc = _read_rc(logged_in)
        assert rc["url"] == "https://new.example.com"
        assert rc["accessToken"] == "acc-1"

    def test_set_unknown_key(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config:set", "token", "x"])
        assert result.exit_code == 1
        assert "Config failed: Unknown: token" in result.output
        assert not (isolated_config / "project" / ".difyrc").exists()

    def test_set_invalid_url(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config:set", "url", "not a url"])
        assert result.exit_code == 1
        assert "Config failed: Invalid URL: not a url" in result.output
        assert not (isolated_config / "project" / ".difyrc").exists()


# ---------------------------------------------------------------------------
# Application commands
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "args",
    [["import", "x.yml"], ["export", "a"], ["list"], ["update", "a", "x.yml"], ["delete", "a", "-y"]],
)
def test_app_commands_require_login(cli_runner, isolated_config: Path, args: list[str]) -> None:
    result = cli_runner.invoke(app, args)
    assert result.exit_code == 1
    assert "Not logged in. Run 'dify login' first." in result.output


class TestImport:
    def test_import_with_confirmation(
        self, cli_runner, logged_in: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            if request.url.path.endswith("/confirm"):
                return httpx.Response(200, json={"id": "i1", "status": "completed", "app_id": "app-9"})
            body = json.loads(request.content)
            assert body["yaml_content"] == CHAT_DSL
            return httpx.Response(202, json={"id": "i1", "status": "pending"})

        _use_platform(monkeypatch, handler)
        (logged_in.parent / "bot.yml").write_text(CHAT_DSL, encoding="utf-8")

        result = cli_runner.invoke(app, ["import", "bot.yml"])
        assert result.exit_code == 0, result.output
        assert calls == ["/console/api/apps/imports", "/console/api/apps/imports/i1/confirm"]
        assert "Import completed" in result.output
        assert "App ID: app-9" in result.output

    def test_invalid_dsl_makes_no_request(
        self, cli_runner, logged_in: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        _use_platform(monkeypatch, handler)
        (logged_in.parent / "bad.yml").write_text("kind: app\n", encoding="utf-8")

        result = cli_runner.invoke(app, ["import", "bad.yml"])
        assert result.exit_code == 1
        assert "Import failed: Missing 'app' or 'workflow'" in result.output
        assert calls == []

    def test_failed_import_reports_platform_error(
        self, cli_runner, logged_in: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _use_platform(
            monkeypatch,
            lambda request: httpx.Response(200, json={"id": "i", "status": "failed", "error": "Bad graph"}),
        )
        (logged_in.parent / "bot.yml").write_text(CHAT_DSL, encoding="utf-8")

        result = cli_runner.invoke(app, ["import", "bot.yml"])
        assert result.exit_code == 1
        assert "Import failed: Bad graph" in result.output

    def test_update_sends_app_id(
        self, cli_runner, logged_in: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        bodies: list[dict[str, Any]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(
                200,
                json={"id": "i", "status": "completed-with-warnings", "app_id": "app-1", "warning": "Old"},
            )

        _use_platform(monkeypatch, handler)
        (logged_in.parent / "bot.yml").write_text(CHAT_DSL, encoding="utf-8")

        result = cli_runner.invoke(app, ["update", "app-1", "bot.yml"])
        assert result.exit_code == 0, result.output
        assert bodies[0]["app_id"] == "app-1"
        assert "Import completed with warnings" in result.output
        assert "Old" in result.output


class TestExport:
    def test_default_output_file(
        self, cli_runner, logged_in: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": CHAT_DSL})

        _use_platform(monkeypatch, handler)
        result = cli_runner.invoke(app, ["export", "app-1"])

        assert result.exit_code == 0, result.output
        assert (logged_in.parent / "app-1.yaml").read_text(encoding="utf-8") == CHAT_DSL
        assert "include_secret" not in seen[0].url.params

    def test_explicit_output_and_secret(
        self, cli_runner, logged_in: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": CHAT_DSL})

        _use_platform(monkeypatch, handler)
        result = cli_runner.invoke(app, ["export", "app-1", "out.yml", "--secret"])

        assert result.exit_code == 0
        assert (logged_in.parent / "out.yml").exists()
        assert seen[0].url.params["include_secret"] == "true"

    def test_api_error(self, cli_runner, logged_in: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _use_platform(monkeypatch, lambda request: httpx.Response(404, json={"message": "App not found"}))
        result = cli_runner.invoke(app, ["export", "nope"])
        assert result.exit_code == 1
        assert "Export failed: API Error (404): App not found" in result.output


class TestList:
    PAGE = {
        "data": [
            {"id": "id-1", "mode": "chat", "name": "Support"},
            {"id": "id-22", "mode": "workflow", "name": "ETL"},
        ],
        "total": 2,
        "page": 1,
        "limit": 100,
        "has_more": False,
    }

    def test_plain_rows(self, cli_runner, logged_in: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=self.PAGE)

        _use_platform(monkeypatch, handler)
        result = cli_runner.invoke(app, ["--plain", "list"])

        assert result.exit_code == 0
        assert result.stdout.splitlines() == ["id-1   chat      Support", "id-22  workflow  ETL"]
        assert seen[0].url.params["limit"] == "100"

    def test_json(self, cli_runner, logged_in: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _use_platform(monkeypatch, lambda request: httpx.Response(200, json=self.PAGE))
        result = cli_runner.invoke(app, ["--json", "list"])
        assert json.loads(result.stdout)[1] == {"ID": "id-22", "Mode": "workflow", "Name": "ETL"}

    def test_empty(self, cli_runner, logged_in: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _use_platform(monkeypatch, lambda request: httpx.Response(200, json={"data": []}))
        result = cli_runner.invoke(app, ["list"])
        assert result.exit_code == 0
        assert "No apps" in result.output

    def test_connection_error(self, cli_runner, logged_in: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        _use_platform(monkeypatch, handler)
        result = cli_runner.invoke(app, ["list"])
        assert result.exit_code == 1
        assert "List failed" in result.output


class TestDelete:
    @pytest.fixture()
    def calls(self, monkeypatch: pytest.MonkeyPatch) -> list[str]:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.method)
            if request.method == "GET":
                return httpx.Response(200, json={"id": "a", "name": "Support", "mode": "chat"})
            return httpx.Response(204)

        _use_platform(monkeypatch, handler)
        return seen

    def test_confirmed(self, cli_runner, logged_in: Path, calls: list[str]) -> None:
        result = cli_runner.invoke(app, ["delete", "a"], input="y\n")
        assert result.exit_code == 0
        assert "Delete 'Support'?" in result.output
        assert "Deleted: Support" in result.output
        assert calls == ["GET", "DELETE"]

    def test_declined(self, cli_runner, logged_in: Path, calls: list[str]) -> None:
        result = cli_runner.invoke(app, ["delete", "a"], input="n\n")
        assert result.exit_code == 0
        assert "Cancelled" in result.output
        assert calls == ["GET"]

    def test_yes_skips_prompt(self, cli_runner, logged_in: Path, calls: list[str]) -> None:
        result = cli_runner.invoke(app, ["delete", "a", "-y"])
        assert result.exit_code == 0
        assert "Delete 'Support'?" not in result.output
        assert calls == ["GET", "DELETE"]


# ---------------------------------------------------------------------------
# bridge
# ---------------------------------------------------------------------------


def test_bridge_missing_cookie_file(cli_runner, isolated_config: Path) -> None:
    result = cli_runner.invoke(app, ["bridge", "missing.txt", "--once"])
    assert result.exit_code == 1
    assert "Not found: missing.txt" in result.output


def test_bridge_once_without_relay(cli_runner, isolated_config: Path, free_port: int) -> None:
    cookies = isolated_config / "project" / "cookies.txt"
    cookies.write_text("# Netscape HTTP Cookie File\n", encoding="utf-8")
    result = cli_runner.invoke(
        app, ["bridge", str(cookies), "--once", "--relay", f"http://127.0.0.1:{free_port}"]
    )
    assert result.exit_code == 1
    assert "No login waiting" in result.output


def test_bridge_interrupt_stops_scheduler(
    cli_runner, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    events: list[str] = []

    class InterruptedScheduler:
        def __init__(self, poller, interval: float, on_result=None) -> None:
            events.append(f"interval={interval:g}")

        def __enter__(self) -> "InterruptedScheduler":
            events.append("start")
            return self

        def __exit__(self, *args: object) -> None:
            events.append("stop")

        def wait(self, timeout: Optional[float] = None) -> bool:
            # what the SIGINT handler installed by main() does
            raise SystemExit(130)

    monkeypatch.setattr("difysync.commands.bridge.PollScheduler", InterruptedScheduler)
    cookies = isolated_config / "project" / "cookies.txt"
    cookies.write_text("# Netscape HTTP Cookie File\n", encoding="utf-8")

    result = cli_runner.invoke(app, ["bridge", str(cookies), "--interval", "0.5"])

    assert result.exit_code == 130
    assert events == ["interval=0.5", "start", "stop"]
    assert "Stopped" not in result.output
