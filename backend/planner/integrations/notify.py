from __future__ import annotations

from collections.abc import Callable
from typing import Any

import requests

from planner.core.config import settings
from planner.core.logging import get_logger
from planner.services.changes import AllocationChange, ChangeBus

logger = get_logger(__name__)


class ChangeWebhookClient:
    """Posts allocation change events to an external push channel."""

    def __init__(self, url: str, token: str = "", *, timeout_s: float = 3.0):
        self.url = url
        self.token = token
        self.timeout_s = timeout_s

    @classmethod
    def from_settings(cls) -> "ChangeWebhookClient | None":
        if not settings.notify_webhook_url:
            return None
        return cls(
            settings.notify_webhook_url,
            settings.notify_webhook_token,
            timeout_s=settings.notify_timeout_seconds,
        )

    def send(self, event: str, payload: dict[str, Any]) -> None:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        r = requests.post(
            self.url,
            headers=headers,
            json={"event": event, "payload": payload},
            timeout=self.timeout_s,
        )
        r.raise_for_status()


def notify_change(client: ChangeWebhookClient, change: AllocationChange) -> None:
    try:
        client.send(change.kind, change.as_payload())
    except requests.RequestException as exc:
        # best-effort
        logger.warning(
            "planner.notify.webhook_failed kind=%s allocation_id=%s error=%s",
            change.kind,
            change.allocation_id,
            str(exc),
        )


def attach_webhook(bus: ChangeBus, client: ChangeWebhookClient | None = None) -> Callable[[], None] | None:
    client = client or ChangeWebhookClient.from_settings()
    if client is None:
        return None
    logger.info("planner.notify.webhook_attached url=%s", client.url)
    return bus.subscribe(lambda change: notify_change(client, change))
