"""Lookup for human-readable tool descriptions.

Tool metadata never hard-codes its text; it asks a ``(key, default) -> str``
function. The host can override any string through ``GITHUB_MCP_<KEY>``
environment variables.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping

TranslationHelperFunc = Callable[[str, str], str]

ENV_PREFIX = "GITHUB_MCP_"


def null_translation_helper(_key: str, default: str) -> str:
    """Return the default text unchanged."""
    return default


class TranslationTable:
    """Resolves keys from overrides, then the environment, then the default.

    Every resolved key is remembered so the full table can be exported and
    edited by the host.
    """

    def __init__(
        self,
        *,
        overrides: Mapping[str, str] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._overrides = {k.upper(): v for k, v in (overrides or {}).items()}
        self._environ = os.environ if environ is None else environ
        self._resolved: dict[str, str] = {}

    def __call__(self, key: str, default: str) -> str:
        normalized = key.upper()
        if normalized in self._overrides:
            value = self._overrides[normalized]
        else:
            value = self._environ.get(f"{ENV_PREFIX}{normalized}", default)
        self._resolved[normalized] = value
        return value

    def export(self) -> dict[str, str]:
        """Return every key resolved so far, sorted by key."""
        return dict(sorted(self._resolved.items()))
