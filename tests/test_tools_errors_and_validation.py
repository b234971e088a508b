"""Tool error handling and argument validation tests."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import github_mcp.tools as tools
import httpx
import pytest
from github_mcp.audit import AuditEvent
from github_mcp.config import AppConfig, LimitsConfig
from github_mcp.errors import SafeError, github_accepted
from github_mcp.github_client import GitHubClient
from github_mcp.outcome import iter_error_chain


@dataclass
class DummyAudit:
    events: list[AuditEvent]

    def write_event(self, event: AuditEvent) -> None:
        self.events.append(event)

    def measure_start(self) -> float:
        return 0.0

    def measure_duration_ms(self, _start: float) -> int:
        return 0


class DummyGitHub:
    def __init__(self, routes: dict[tuple[str, str], object | Exception] | None = None) -> None:
        self._routes = routes or {}
        self.calls: list[dict[str, Any]] = []

    async def request_json(self, **kwargs: Any) -> object:
        self.calls.append(dict(kwargs))
        key = (str(kwargs.get("method")), str(kwargs.get("path")))
        if key not in self._routes:
            raise AssertionError(f"Unexpected GitHub call: {key}")
        val = self._routes[key]
        if isinstance(val, Exception):
            raise val
        return val


def _config() -> AppConfig:
    return AppConfig(
        token="tok",
        release_repo="github/github-mcp-server",
        audit_log_path=None,
        limits=LimitsConfig(),
    )


def _runtime(github: object) -> tools.Runtime:
    return tools.Runtime(
        config=_config(),
        audit=DummyAudit(events=[]),  # type: ignore[arg-type]
        github=github,  # type: ignore[arg-type]
    )


def _mock_github(status: int, payload: object) -> GitHubClient:
    async def token_provider() -> str:
        return "tok"

    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=payload)

    return GitHubClient(
        token_provider=token_provider,
        limits=LimitsConfig(),
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_unknown_tool_is_user_input(monkeypatch: pytest.MonkeyPatch) -> None:
    runtime = _runtime(DummyGitHub())
    monkeypatch.setattr(tools, "initialize_runtime_from_env", lambda: runtime)

    out = await tools.dispatch_tool("delete_everything", {})

    assert out["ok"] is False
    assert out["code"] == "UserInput"
    assert "list_issues" in out["hint"]
    assert runtime.audit.events[0].outcome == "denied"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("arguments", "parameter", "message"),
    [
        ({"repo": "repo", "issue_number": 1}, "owner", "Missing required parameter: owner"),
        ({"owner": "", "repo": "repo", "issue_number": 1}, "owner", "Parameter 'owner' must not be empty"),
        (
            {"owner": 5, "repo": "repo", "issue_number": 1},
            "owner",
            "Parameter 'owner' must be of type string, got number",
        ),
        (
            {"owner": "octo", "repo": "repo", "issue_number": "42"},
            "issue_number",
            "Parameter 'issue_number' must be of type number, got string",
        ),
        ({"owner": "octo", "repo": "repo"}, "issue_number", "Missing required parameter: issue_number"),
        ({"owner": "octo", "repo": "repo", "issue_number": 0}, "issue_number", "Parameter 'issue_number' must be >= 1"),
    ],
)
async def test_get_issue_rejects_bad_arguments(
    monkeypatch: pytest.MonkeyPatch, arguments: dict[str, Any], parameter: str, message: str
) -> None:
    github = DummyGitHub()
    runtime = _runtime(github)
    monkeypatch.setattr(tools, "initialize_runtime_from_env", lambda: runtime)

    out = await tools.dispatch_tool("get_issue", arguments)

    assert out["ok"] is False
    assert out["code"] == "UserInput"
    assert out["parameter"] == parameter
    assert out["message"] == message
    assert github.calls == []
    assert runtime.audit.events[0].outcome == "denied"
    assert runtime.audit.events[0].reason == message


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("extra", "parameter"),
    [
        ({"state": "weird"}, "state"),
        ({"sort": "stars"}, "sort"),
        ({"direction": "up"}, "direction"),
        ({"labels": ["bug", 3]}, "labels"),
        ({"labels": "bug"}, "labels"),
        ({"page": -1}, "page"),
        ({"perPage": "ten"}, "perPage"),
    ],
)
async def test_list_issues_rejects_bad_filters(
    monkeypatch: pytest.MonkeyPatch, extra: dict[str, Any], parameter: str
) -> None:
    github = DummyGitHub()
    monkeypatch.setattr(tools, "initialize_runtime_from_env", lambda: _runtime(github))

    out = await tools.dispatch_tool("list_issues", {"owner": "octo", "repo": "repo", **extra})

    assert out["ok"] is False
    assert out["code"] == "UserInput"
    assert out["parameter"] == parameter
    assert github.calls == []


@pytest.mark.asyncio
async def test_list_branches_rejects_non_boolean_protected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(tools, "initialize_runtime_from_env", lambda: _runtime(DummyGitHub()))

    out = await tools.dispatch_tool("list_branches", {"owner": "octo", "repo": "repo", "protected": "yes"})

    assert out["parameter"] == "protected"
    assert out["message"] == "Parameter 'protected' must be of type boolean, got string"


@pytest.mark.asyncio
async def test_get_me_rejects_non_string_reason(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(tools, "initialize_runtime_from_env", lambda: _runtime(DummyGitHub()))

    out = await tools.dispatch_tool("get_me", {"reason": 7})

    assert out["ok"] is False
    assert out["parameter"] == "reason"


@pytest.mark.asyncio
async def test_get_me_unauthorized_keeps_transport_error_in_chain() -> None:
    runtime = _runtime(_mock_github(401, {"message": "Bad credentials"}))

    with pytest.raises(SafeError) as exc:
        _ = await tools._tool_get_me(runtime, {})  # pylint: disable=protected-access

    assert "failed to get user" in exc.value.message
    assert exc.value.code == "Forbidden"
    assert exc.value.status_code == 401
    assert any(isinstance(link, httpx.HTTPStatusError) for link in iter_error_chain(exc.value))
    assert isinstance(exc.value.__cause__.__cause__, httpx.HTTPStatusError)


@pytest.mark.asyncio
async def test_get_me_unauthorized_envelope(monkeypatch: pytest.MonkeyPatch) -> None:
    runtime = _runtime(_mock_github(401, {"message": "Bad credentials"}))
    monkeypatch.setattr(tools, "initialize_runtime_from_env", lambda: runtime)

    out = await tools.dispatch_tool("get_me", {})

    assert out["ok"] is False
    assert out["code"] == "Forbidden"
    assert out["message"].startswith("failed to get user: ")
    assert runtime.audit.events[0].outcome == "failed"


@pytest.mark.asyncio
async def test_get_latest_version_not_found(monkeypatch: pytest.MonkeyPatch) -> None:
    runtime = _runtime(_mock_github(404, {"message": "Not Found"}))
    monkeypatch.setattr(tools, "initialize_runtime_from_env", lambda: runtime)

    out = await tools.dispatch_tool("get_latest_version", {})

    assert out["ok"] is False
    assert out["code"] == "GitHub"
    assert "failed to get latest release" in out["message"]
    assert out["hint"] == "Not Found"


@pytest.mark.asyncio
async def test_wrapped_accepted_response_is_qualified_success(monkeypatch: pytest.MonkeyPatch) -> None:
    runtime = _runtime(DummyGitHub({("GET", "/repos/octo/repo/branches"): github_accepted()}))
    monkeypatch.setattr(tools, "initialize_runtime_from_env", lambda: runtime)

    out = await tools.dispatch_tool("list_branches", {"owner": "octo", "repo": "repo"})

    assert out["ok"] is True
    assert out["status"] == "accepted"
    assert "correlation_id" in out
    assert [e.outcome for e in runtime.audit.events] == ["accepted"]


@pytest.mark.asyncio
async def test_accepted_from_real_client_is_qualified_success(monkeypatch: pytest.MonkeyPatch) -> None:
    runtime = _runtime(_mock_github(202, {}))
    monkeypatch.setattr(tools, "initialize_runtime_from_env", lambda: runtime)

    out = await tools.dispatch_tool("list_issues", {"owner": "octo", "repo": "repo"})

    assert out["ok"] is True
    assert out["status"] == "accepted"


@pytest.mark.asyncio
async def test_unexpected_exception_is_internal(monkeypatch: pytest.MonkeyPatch) -> None:
    runtime = _runtime(DummyGitHub({("GET", "/user"): RuntimeError("boom")}))
    monkeypatch.setattr(tools, "initialize_runtime_from_env", lambda: runtime)

    out = await tools.dispatch_tool("get_me", {})

    assert out["ok"] is False
    assert out["code"] == "Internal"
    assert "boom" not in out["message"]
    assert runtime.audit.events[0].outcome == "failed"


@pytest.mark.asyncio
async def test_unexpected_response_shape_is_github_error(monkeypatch: pytest.MonkeyPatch) -> None:
    runtime = _runtime(DummyGitHub({("GET", "/repos/octo/repo/issues"): {"not": "a list"}}))
    monkeypatch.setattr(tools, "initialize_runtime_from_env", lambda: runtime)

    out = await tools.dispatch_tool("list_issues", {"owner": "octo", "repo": "repo"})

    assert out["code"] == "GitHub"


@pytest.mark.asyncio
async def test_missing_config_is_denied(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setattr(tools, "_RUNTIME", None)
    monkeypatch.delenv("GITHUB_PERSONAL_ACCESS_TOKEN", raising=False)

    out = await tools.dispatch_tool("get_me", {})

    assert out["ok"] is False
    assert out["code"] == "Config"
    assert "correlation_id" in out
    events = [json.loads(line) for line in capsys.readouterr().err.splitlines() if line.startswith("{")]
    assert [e["outcome"] for e in events] == ["denied"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("tool", "arguments", "parameter"),
    [
        ("get_issue", {"owner": "octo", "repo": "r/../../../user#", "issue_number": 1}, "repo"),
        ("get_issue", {"owner": "..", "repo": "repo", "issue_number": 1}, "owner"),
        ("list_issues", {"owner": "octo", "repo": "repo?per_page=1"}, "repo"),
        ("list_issues", {"owner": "octo/other", "repo": "repo"}, "owner"),
        ("list_branches", {"owner": "octo", "repo": "."}, "repo"),
        ("list_branches", {"owner": "octo", "repo": "repo\n"}, "repo"),
    ],
)
async def test_owner_and_repo_must_be_single_path_segments(
    monkeypatch: pytest.MonkeyPatch, tool: str, arguments: dict[str, Any], parameter: str
) -> None:
    github = DummyGitHub()
    runtime = _runtime(github)
    monkeypatch.setattr(tools, "initialize_runtime_from_env", lambda: runtime)

    out = await tools.dispatch_tool(tool, arguments)

    assert out["ok"] is False
    assert out["code"] == "UserInput"
    assert out["parameter"] == parameter
    assert github.calls == []
    assert runtime.audit.events[0].outcome == "denied"


@pytest.mark.asyncio
async def test_dotted_repo_names_are_allowed(monkeypatch: pytest.MonkeyPatch) -> None:
    github = DummyGitHub({("GET", "/repos/octo-org/my.repo_v2/branches"): []})
    monkeypatch.setattr(tools, "initialize_runtime_from_env", lambda: _runtime(github))

    out = await tools.dispatch_tool("list_branches", {"owner": "octo-org", "repo": "my.repo_v2"})

    assert out["ok"] is True


@pytest.mark.asyncio
async def test_get_latest_version_requires_release_repo(monkeypatch: pytest.MonkeyPatch) -> None:
    github = DummyGitHub()
    runtime = tools.Runtime(
        config=AppConfig(token="tok", release_repo=None, audit_log_path=None, limits=LimitsConfig()),
        audit=DummyAudit(events=[]),  # type: ignore[arg-type]
        github=github,  # type: ignore[arg-type]
    )
    monkeypatch.setattr(tools, "initialize_runtime_from_env", lambda: runtime)

    out = await tools.dispatch_tool("get_latest_version", {})

    assert out["ok"] is False
    assert out["code"] == "Config"
    assert "GITHUB_MCP_RELEASE_REPO" in out["message"]
    assert github.calls == []
