"""Fire-and-forget broadcast of new grievances."""

from __future__ import annotations

from typing import Any, Optional, Protocol

import httpx

from gte.config import Settings
from gte.utils.logging import get_logger


logger = get_logger(__name__)


class Notifier(Protocol):
    def publish(self, topic: str, payload: dict[str, Any]) -> None:
        """Broadcast a payload. Must not raise."""


class LoggingNotifier:
    """Default notifier: records the event in the log only."""

    def publish(self, topic: str, payload: dict[str, Any]) -> None:
        logger.info("notify.publish topic=%s id=%s", topic, payload.get("id"))


class WebhookNotifier:
    """POST each event to a webhook; delivery failures are logged and dropped."""

    def __init__(self, url: str, timeout_seconds: int = 5) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds

    def publish(self, topic: str, payload: dict[str, Any]) -> None:
        try:
            with httpx.Client(timeout=self.timeout_seconds) as client:
                response = client.post(self.url, json={"topic": topic, "payload": payload})
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("notify.publish.failed topic=%s error=%s", topic, exc)


def build_notifier(settings: Optional[Settings] = None) -> Notifier:
    settings = settings or Settings()
    if settings.notify_webhook_url:
        return WebhookNotifier(settings.notify_webhook_url, settings.notify_timeout_seconds)
    return LoggingNotifier()
