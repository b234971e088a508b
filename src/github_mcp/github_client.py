"""GitHub REST client wrapper.

Provides:
- strict host allowlist and no-redirect behavior
- finite timeouts
- safe error translation, with the raw httpx error kept as ``__cause__``
- 202 Accepted surfaced as ``AcceptedError`` rather than as data

Each request is a single attempt; failed calls are reported, not retried.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from .config import LimitsConfig
from .errors import SafeError, github_accepted, github_auth_forbidden

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"


@dataclass(frozen=True, slots=True)
class RequestBudget:
    """Budget for a single tool call."""

    total_timeout_s: float


class GitHubClient:
    """Minimal GitHub REST client."""

    def __init__(
        self,
        *,
        token_provider: Callable[[], Awaitable[str]],
        limits: LimitsConfig,
        api_base_url: str = GITHUB_API_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create a GitHub REST client.

        Args:
            token_provider: Async callable that returns the access token.
            limits: Timeout limits.
            api_base_url: Must be https://api.github.com (enforced).
            transport: Optional httpx transport for tests.
        """
        self._token_provider = token_provider
        self._limits = limits
        self._api_base_url = api_base_url.rstrip("/")
        self._transport = transport

        if self._api_base_url != GITHUB_API_URL:
            raise SafeError(code="Config", message="Only https://api.github.com is allowed")

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _translate_status(self, resp: httpx.Response) -> SafeError:
        safe_hint = None
        try:
            err_payload = resp.json()
            if isinstance(err_payload, dict) and isinstance(err_payload.get("message"), str):
                safe_hint = err_payload.get("message")
        except ValueError:
            safe_hint = None

        if resp.status_code in (401, 403):
            return github_auth_forbidden(status_code=resp.status_code)
        return SafeError(
            code="GitHub",
            message="GitHub request failed",
            hint=safe_hint,
            status_code=resp.status_code,
        )

    async def request_json(
        self,
        *,
        method: str,
        path: str,
        json_body: dict | None = None,
        params: dict[str, str] | None = None,
        budget: RequestBudget,
    ) -> object:
        """Make a request and return decoded JSON.

        GitHub APIs may return either an object (dict) or an array (list).

        Raises:
            AcceptedError: GitHub answered 202; the work continues asynchronously.
            SafeError: any other failure (codes ``Forbidden``, ``GitHub``, ``Network``).
        """
        url = f"{self._api_base_url}{path}"
        token = await self._token_provider()

        timeout = httpx.Timeout(
            timeout=min(budget.total_timeout_s, self._limits.total_timeout_s),
            connect=self._limits.connect_timeout_s,
            read=self._limits.read_timeout_s,
        )

        async with httpx.AsyncClient(
            follow_redirects=False,
            timeout=timeout,
            transport=self._transport,
        ) as client:
            try:
                resp = await client.request(
                    method,
                    url,
                    headers=self._headers(token),
                    json=json_body,
                    params=params,
                )
            except httpx.HTTPError as exc:
                logger.warning("GitHub %s %s failed: %s", method, path, type(exc).__name__)
                raise SafeError(code="Network", message="Network request failed") from exc

        if resp.status_code >= 400:
            logger.info("GitHub %s %s returned %s", method, path, resp.status_code)
            try:
                resp.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise self._translate_status(resp) from exc

        if resp.status_code == 202:
            raise github_accepted(raw=resp.content)

        try:
            data = resp.json()
        except json.JSONDecodeError as exc:
            raise SafeError(code="GitHub", message="GitHub returned invalid JSON") from exc

        return data
