"""In-memory collaborators for tests and local development."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from .twilio_client import SentMessage


class MockMessageClient:
    """Records created messages; raises ``error`` instead when one is set."""

    def __init__(self, status: str = "queued", error: Exception | None = None) -> None:
        self.status = status
        self.error = error
        self.sent: list[dict[str, str | None]] = []

    def create(
        self,
        to: str,
        *,
        from_: str,
        body: str,
        content_sid: str | None = None,
        content_variables: str | None = None,
    ) -> SentMessage:
        self.sent.append(
            {
                "to": to,
                "from": from_,
                "body": body,
                "content_sid": content_sid,
                "content_variables": content_variables,
            }
        )
        if self.error is not None:
            raise self.error
        return SentMessage(sid=f"SM{uuid4().hex}", to=to, from_=from_, status=self.status)


class MockSignatureValidator:
    """Answers every validation with ``valid`` and keeps the calls."""

    def __init__(self, valid: bool = True) -> None:
        self.valid = valid
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def validate(self, signature: str, url: str, params: Mapping[str, Any]) -> bool:
        self.calls.append((signature, url, dict(params)))
        return self.valid


class MockCounterStore:
    """Plain dict counters; TTLs are recorded but never expire anything."""

    def __init__(self, counts: Mapping[str, int] | None = None) -> None:
        self.counts: dict[str, int] = dict(counts or {})
        self.ttls: dict[str, int] = {}

    def get(self, key: str) -> int | None:
        return self.counts.get(key)

    def put(self, key: str, value: int, ttl: int) -> None:
        self.counts[key] = value
        self.ttls[key] = ttl

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self.counts.clear()
            self.ttls.clear()
        else:
            self.counts.pop(key, None)
            self.ttls.pop(key, None)
