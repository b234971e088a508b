"""Configuration loading for github-mcp.

Configuration is supplied by the host environment (e.g., MCP client config), not by the agent.
The personal access token is a secret and must never be emitted to agents, logs, or audit reasons.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from .errors import SafeError

DEFAULT_TIMEOUT_S = 60.0

_REPO_RE = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


@dataclass(frozen=True, slots=True)
class LimitsConfig:
    """Network limits for a single tool call."""

    total_timeout_s: float = DEFAULT_TIMEOUT_S
    connect_timeout_s: float = 5.0
    read_timeout_s: float = 30.0


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Host-provided server configuration."""

    token: str = field(repr=False)
    release_repo: str | None
    audit_log_path: Path | None
    limits: LimitsConfig


def _parse_timeout(value: str | None) -> float:
    if not value:
        return DEFAULT_TIMEOUT_S
    try:
        timeout = float(value)
    except ValueError as exc:
        raise SafeError(code="Config", message="GITHUB_MCP_TIMEOUT_S must be a number") from exc
    if not timeout > 0:
        raise SafeError(code="Config", message="GITHUB_MCP_TIMEOUT_S must be greater than 0")
    return timeout


def load_config_from_env() -> AppConfig:
    """Load and validate configuration from environment variables.

    Raises:
        SafeError: If configuration is missing/invalid.
    """
    token = os.getenv("GITHUB_PERSONAL_ACCESS_TOKEN", "").strip()
    if not token:
        raise SafeError(code="Config", message="Missing required configuration (GITHUB_PERSONAL_ACCESS_TOKEN)")

    release_repo = os.getenv("GITHUB_MCP_RELEASE_REPO", "").strip() or None
    if release_repo is not None and not _REPO_RE.match(release_repo):
        raise SafeError(code="Config", message="GITHUB_MCP_RELEASE_REPO must look like owner/repo")

    audit_path_raw = os.getenv("GITHUB_MCP_AUDIT_LOG_PATH")
    audit_path: Path | None = None
    if audit_path_raw:
        p = Path(audit_path_raw)
        if not p.is_absolute():
            raise SafeError(code="Config", message="GITHUB_MCP_AUDIT_LOG_PATH must be an absolute path when set")
        audit_path = p

    total_timeout_s = _parse_timeout(os.getenv("GITHUB_MCP_TIMEOUT_S"))

    return AppConfig(
        token=token,
        release_repo=release_repo,
        audit_log_path=audit_path,
        limits=LimitsConfig(total_timeout_s=total_timeout_s),
    )
