"""Structured audit logging.

The audit log includes exactly one event per tool call and must never contain
secret material (tokens, authorization headers).
"""

from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

OUTCOMES = frozenset({"succeeded", "accepted", "denied", "failed"})


def new_correlation_id() -> str:
    """Generate a random correlation id for traceability."""
    return uuid.uuid4().hex


def _now_rfc3339() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class AuditEvent:
    """A single audit event."""

    timestamp: str
    correlation_id: str
    operation: str
    outcome: str
    reason: str | None
    duration_ms: int | None

    def to_json(self) -> str:
        payload: dict[str, object] = {
            "timestamp": self.timestamp,
            "correlation_id": self.correlation_id,
            "operation": self.operation,
            "outcome": self.outcome,
        }
        if self.reason is not None:
            payload["reason"] = self.reason
        if self.duration_ms is not None:
            payload["duration_ms"] = self.duration_ms
        return json.dumps(payload, sort_keys=True, separators=(",", ":"))


class AuditLogger:
    """Writes audit events as JSONL to stderr and optionally appends them to a file."""

    def __init__(self, *, sink_path: Path | None) -> None:
        self._sink_path = sink_path

    def write_event(self, event: AuditEvent) -> None:
        """Write an audit event to stderr and optionally to a JSONL file.

        A failing file sink is logged and otherwise ignored; it must not fail the tool call.
        """
        line = event.to_json()
        print(line, file=sys.stderr)
        if self._sink_path is None:
            return
        try:
            self._sink_path.parent.mkdir(parents=True, exist_ok=True)
            with self._sink_path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as exc:
            logger.warning("Audit file sink unavailable: %s", type(exc).__name__)

    def measure_start(self) -> float:
        """Return a monotonic start timestamp for duration measurement."""
        return time.monotonic()

    def measure_duration_ms(self, start: float) -> int:
        """Convert a monotonic start timestamp into elapsed milliseconds."""
        return int((time.monotonic() - start) * 1000)


def build_event(
    *,
    correlation_id: str,
    operation: str,
    outcome: str,
    reason: str | None = None,
    duration_ms: int | None = None,
) -> AuditEvent:
    """Construct an audit event."""
    if outcome not in OUTCOMES:
        raise ValueError(f"Unknown audit outcome: {outcome}")
    return AuditEvent(
        timestamp=_now_rfc3339(),
        correlation_id=correlation_id,
        operation=operation,
        outcome=outcome,
        reason=reason,
        duration_ms=duration_ms,
    )
