"""Tool registry and dispatch layer.

This module:
- declares the tools (public contract surface), with descriptions resolved
  through a translation helper
- builds a per-server runtime from host-provided config
- creates a correlation_id per tool call and audits its outcome
- reads every argument through ``github_mcp.params`` before calling GitHub
"""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from mcp.types import CallToolRequest

from . import __version__
from .audit import AuditLogger, build_event, new_correlation_id
from .config import AppConfig, load_config_from_env
from .envelope import request_arguments
from .errors import SafeError, accepted_result, internal_error, invalid_value, safe_error_to_result
from .github_client import GitHubClient, RequestBudget
from .outcome import find_accepted_error
from .params import (
    optional_pagination_params,
    optional_param,
    optional_string_array_param,
    required_int,
    required_param,
)
from .translations import TranslationHelperFunc, null_translation_helper

logger = logging.getLogger(__name__)

_ISSUE_STATES = ("open", "closed", "all")
_ISSUE_SORTS = ("created", "updated", "comments")
_DIRECTIONS = ("asc", "desc")

_USER_FIELDS = ("login", "name", "email", "bio", "company", "location", "html_url", "type", "created_at")

# A single URL path segment; "." and ".." are rejected separately.
_PATH_SEGMENT_RE = re.compile(r"[A-Za-z0-9_.-]+")


def _pagination_properties(t: TranslationHelperFunc) -> dict[str, Any]:
    return {
        "page": {
            "type": "number",
            "description": t("PARAM_PAGE_DESCRIPTION", "Page number for pagination (min 1)"),
        },
        "perPage": {
            "type": "number",
            "description": t("PARAM_PER_PAGE_DESCRIPTION", "Results per page for pagination (min 1, GitHub returns at most 100)"),
        },
    }


def _owner_repo_properties(t: TranslationHelperFunc) -> dict[str, Any]:
    return {
        "owner": {
            "description": t("PARAM_OWNER_DESCRIPTION", "Repository owner"),
        },
        "repo": {
            "description": t("PARAM_REPO_DESCRIPTION", "Repository name"),
        },
    }


def tool_metadata(t: TranslationHelperFunc = null_translation_helper) -> dict[str, dict[str, Any]]:
    """Return ``{tool_name: {"description", "inputSchema"}}`` for every tool."""
    return {
        "get_me": {
            "description": t(
                "TOOL_GET_ME_DESCRIPTION",
                "Get details of the authenticated GitHub user. Use this when a request refers to \"me\" or \"my\".",
            ),
            "inputSchema": {
                "type": "object",
                "required": [],
                "properties": {
                    "reason": {
                        "type": "string",
                        "description": t(
                            "TOOL_GET_ME_REASON_DESCRIPTION",
                            "Optional: reason the session was created",
                        ),
                    },
                },
            },
        },
        "get_latest_version": {
            "description": t(
                "TOOL_GET_LATEST_VERSION_DESCRIPTION",
                "Check the latest published release of this server (from GITHUB_MCP_RELEASE_REPO) and compare it with the running version.",
            ),
            "inputSchema": {"type": "object", "required": [], "properties": {}},
        },
        "get_issue": {
            "description": t("TOOL_GET_ISSUE_DESCRIPTION", "Get details of a specific issue in a GitHub repository."),
            "inputSchema": {
                "type": "object",
                "required": ["owner", "repo", "issue_number"],
                "properties": {
                    **_owner_repo_properties(t),
                    "issue_number": {
                        "type": "number",
                        "description": t("PARAM_ISSUE_NUMBER_DESCRIPTION", "The number of the issue"),
                    },
                },
            },
        },
        "list_issues": {
            "description": t(
                "TOOL_LIST_ISSUES_DESCRIPTION",
                "List issues in a GitHub repository with filtering options.",
            ),
            "inputSchema": {
                "type": "object",
                "required": ["owner", "repo"],
                "properties": {
                    **_owner_repo_properties(t),
                    "state": {
                        "type": "string",
                        "enum": list(_ISSUE_STATES),
                        "description": t("PARAM_STATE_DESCRIPTION", "Filter by state"),
                    },
                    "labels": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": t("PARAM_LABELS_DESCRIPTION", "Filter by labels"),
                    },
                    "sort": {
                        "type": "string",
                        "enum": list(_ISSUE_SORTS),
                        "description": t("PARAM_SORT_DESCRIPTION", "Sort by"),
                    },
                    "direction": {
                        "type": "string",
                        "enum": list(_DIRECTIONS),
                        "description": t("PARAM_DIRECTION_DESCRIPTION", "Sort direction"),
                    },
                    **_pagination_properties(t),
                },
            },
        },
        "list_branches": {
            "description": t("TOOL_LIST_BRANCHES_DESCRIPTION", "List branches in a GitHub repository."),
            "inputSchema": {
                "type": "object",
                "required": ["owner", "repo"],
                "properties": {
                    **_owner_repo_properties(t),
                    "protected": {
                        "type": "boolean",
                        "description": t("PARAM_PROTECTED_DESCRIPTION", "Only return protected branches"),
                    },
                    **_pagination_properties(t),
                },
            },
        },
    }


@dataclass(frozen=True, slots=True)
class Runtime:
    """Per-server runtime dependencies shared across tool calls."""

    config: AppConfig
    audit: AuditLogger
    github: GitHubClient
    server_version: str = f"v{__version__}"


ToolFunc = Callable[[Runtime, dict[str, Any]], Awaitable[dict[str, Any]]]

_RUNTIME: Runtime | None = None


def initialize_runtime_from_env() -> Runtime:
    """Initialize and cache runtime from environment.

    Called at server startup (fail-fast), and can also be used lazily.
    """
    global _RUNTIME  # pylint: disable=global-statement
    if _RUNTIME is not None:
        return _RUNTIME

    config = load_config_from_env()

    async def token_provider() -> str:
        return config.token

    audit = AuditLogger(sink_path=config.audit_log_path)
    github = GitHubClient(token_provider=token_provider, limits=config.limits)

    _RUNTIME = Runtime(config=config, audit=audit, github=github)
    return _RUNTIME


def _budget(runtime: Runtime) -> RequestBudget:
    return RequestBudget(total_timeout_s=runtime.config.limits.total_timeout_s)


def _wrap(err: SafeError, context: str) -> SafeError:
    return SafeError(
        code=err.code,
        message=f"{context}: {err.message}",
        hint=err.hint,
        status_code=err.status_code,
    )


def _path_segment(arguments: dict[str, Any], key: str) -> str:
    value = required_param(arguments, key, str)
    if value in {".", ".."} or not _PATH_SEGMENT_RE.fullmatch(value):
        raise invalid_value(key, "must be a GitHub owner or repository name (letters, digits, '-', '_', '.')")
    return value


def _optional_choice(arguments: dict[str, Any], key: str, choices: tuple[str, ...]) -> str:
    value = optional_param(arguments, key, str)
    if value and value not in choices:
        raise invalid_value(key, f"must be one of: {', '.join(choices)}")
    return value


async def _tool_get_me(runtime: Runtime, arguments: dict[str, Any]) -> dict[str, Any]:
    reason = optional_param(arguments, "reason", str)
    if reason:
        logger.debug("get_me reason: %s", reason)

    try:
        data = await runtime.github.request_json(method="GET", path="/user", budget=_budget(runtime))
    except SafeError as err:
        raise _wrap(err, "failed to get user") from err

    if not isinstance(data, dict):
        raise SafeError(code="GitHub", message="Unexpected user response")

    user: dict[str, Any] = {k: data.get(k) for k in _USER_FIELDS}
    plan = data.get("plan")
    user["plan"] = plan.get("name") if isinstance(plan, dict) else None
    return {"user": user}


async def _tool_get_latest_version(runtime: Runtime, arguments: dict[str, Any]) -> dict[str, Any]:
    del arguments  # takes no parameters
    if runtime.config.release_repo is None:
        raise SafeError(
            code="Config",
            message="GITHUB_MCP_RELEASE_REPO is not set",
            hint="Set it to the owner/repo this server is released from",
        )
    owner, repo = runtime.config.release_repo.split("/", 1)

    try:
        data = await runtime.github.request_json(
            method="GET",
            path=f"/repos/{owner}/{repo}/releases/latest",
            budget=_budget(runtime),
        )
    except SafeError as err:
        raise _wrap(err, "failed to get latest release") from err

    if not isinstance(data, dict) or not isinstance(data.get("tag_name"), str):
        raise SafeError(code="GitHub", message="Unexpected release response")

    latest = data["tag_name"]
    return {
        "current_version": runtime.server_version,
        "latest_version": latest,
        "up_to_date": runtime.server_version == latest,
        "release_url": data.get("html_url"),
        "published_at": data.get("published_at"),
    }


async def _tool_get_issue(runtime: Runtime, arguments: dict[str, Any]) -> dict[str, Any]:
    owner = _path_segment(arguments, "owner")
    repo = _path_segment(arguments, "repo")
    issue_number = required_int(arguments, "issue_number")
    if issue_number < 1:
        raise invalid_value("issue_number", "must be >= 1")

    try:
        data = await runtime.github.request_json(
            method="GET",
            path=f"/repos/{owner}/{repo}/issues/{issue_number}",
            budget=_budget(runtime),
        )
    except SafeError as err:
        raise _wrap(err, "failed to get issue") from err

    if not isinstance(data, dict):
        raise SafeError(code="GitHub", message="Unexpected issue response")

    labels = [lb["name"] for lb in data.get("labels") or [] if isinstance(lb, dict) and isinstance(lb.get("name"), str)]
    author = data.get("user")
    return {
        "issue": {
            "owner": owner,
            "repo": repo,
            "number": data.get("number"),
            "title": data.get("title"),
            "state": data.get("state"),
            "url": data.get("html_url"),
            "node_id": data.get("node_id"),
            "author": author.get("login") if isinstance(author, dict) else None,
            "labels": labels,
        }
    }


async def _tool_list_issues(runtime: Runtime, arguments: dict[str, Any]) -> dict[str, Any]:
    owner = _path_segment(arguments, "owner")
    repo = _path_segment(arguments, "repo")
    state = _optional_choice(arguments, "state", _ISSUE_STATES) or "open"
    labels = optional_string_array_param(arguments, "labels")
    sort = _optional_choice(arguments, "sort", _ISSUE_SORTS)
    direction = _optional_choice(arguments, "direction", _DIRECTIONS)
    pagination = optional_pagination_params(arguments)

    params = {"state": state, **pagination.as_query()}
    if labels:
        params["labels"] = ",".join(labels)
    if sort:
        params["sort"] = sort
    if direction:
        params["direction"] = direction

    try:
        data = await runtime.github.request_json(
            method="GET",
            path=f"/repos/{owner}/{repo}/issues",
            params=params,
            budget=_budget(runtime),
        )
    except SafeError as err:
        raise _wrap(err, "failed to list issues") from err

    if not isinstance(data, list):
        raise SafeError(code="GitHub", message="Unexpected issues response")

    issues: list[dict[str, Any]] = []
    for it in data:
        if not isinstance(it, dict):
            continue
        # The issues endpoint also returns pull requests.
        if "pull_request" in it:
            continue
        number = it.get("number")
        url = it.get("html_url")
        if isinstance(number, int) and isinstance(url, str):
            issues.append({"number": number, "title": it.get("title"), "state": it.get("state"), "url": url})

    return {"issues": issues, "page": pagination.page, "per_page": pagination.per_page}


async def _tool_list_branches(runtime: Runtime, arguments: dict[str, Any]) -> dict[str, Any]:
    owner = _path_segment(arguments, "owner")
    repo = _path_segment(arguments, "repo")
    protected = optional_param(arguments, "protected", bool)
    pagination = optional_pagination_params(arguments)

    params = pagination.as_query()
    if protected:
        params["protected"] = "true"

    try:
        data = await runtime.github.request_json(
            method="GET",
            path=f"/repos/{owner}/{repo}/branches",
            params=params,
            budget=_budget(runtime),
        )
    except SafeError as err:
        raise _wrap(err, "failed to list branches") from err

    if not isinstance(data, list):
        raise SafeError(code="GitHub", message="Unexpected branches response")

    branches: list[dict[str, Any]] = []
    for b in data:
        if isinstance(b, dict) and isinstance(b.get("name"), str):
            branches.append({"name": b["name"], "protected": bool(b.get("protected"))})

    return {"branches": branches, "page": pagination.page, "per_page": pagination.per_page}


_TOOL_FUNCS: dict[str, ToolFunc] = {
    "get_me": _tool_get_me,
    "get_latest_version": _tool_get_latest_version,
    "get_issue": _tool_get_issue,
    "list_issues": _tool_list_issues,
    "list_branches": _tool_list_branches,
}


def _write_audit(
    runtime: Runtime | None,
    start: float | None,
    *,
    correlation_id: str,
    operation: str,
    outcome: str,
    reason: str | None,
) -> None:
    if runtime is not None and start is not None:
        audit = runtime.audit
        duration: int | None = audit.measure_duration_ms(start)
    else:
        # Runtime could not be initialized (e.g., Config failures); still emit to stderr.
        audit = AuditLogger(sink_path=None)
        duration = None
    audit.write_event(
        build_event(
            correlation_id=correlation_id,
            operation=operation,
            outcome=outcome,
            reason=reason,
            duration_ms=duration,
        )
    )


async def dispatch_tool(name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    """Dispatch a tool call.

    Always returns an envelope that includes correlation_id. A GitHub 202 anywhere
    in the error chain is reported as ``{"ok": True, "status": "accepted"}``.
    """
    correlation_id = new_correlation_id()

    runtime: Runtime | None = None
    start: float | None = None

    try:
        runtime = initialize_runtime_from_env()
        start = runtime.audit.measure_start()

        func = _TOOL_FUNCS.get(name)
        if func is None:
            raise SafeError(
                code="UserInput",
                message=f"Unknown tool: {name}",
                hint=f"Available tools: {', '.join(sorted(_TOOL_FUNCS))}",
            )

        result = await func(runtime, arguments)

        _write_audit(
            runtime, start, correlation_id=correlation_id, operation=name, outcome="succeeded", reason=None
        )
        out: dict[str, Any] = {"ok": True, "correlation_id": correlation_id}
        out.update(result)
        return out

    except SafeError as err:
        accepted = find_accepted_error(err)
        if accepted is not None:
            _write_audit(
                runtime, start, correlation_id=correlation_id, operation=name, outcome="accepted", reason=None
            )
            result = accepted_result(accepted)
        else:
            outcome = "denied" if err.code in {"UserInput", "Config"} else "failed"
            _write_audit(
                runtime, start, correlation_id=correlation_id, operation=name, outcome=outcome, reason=err.message
            )
            result = safe_error_to_result(err)
        result["correlation_id"] = correlation_id
        return result
    except Exception:  # pylint: disable=broad-exception-caught
        logger.exception("Tool %s raised an unexpected error", name)
        _write_audit(
            runtime, start, correlation_id=correlation_id, operation=name, outcome="failed", reason="Internal error"
        )
        result = internal_error("Internal error")
        result["correlation_id"] = correlation_id
        return result


async def handle_request(request: CallToolRequest) -> dict[str, Any]:
    """Dispatch a ``tools/call`` request envelope."""
    return await dispatch_tool(request.params.name, request_arguments(request))
