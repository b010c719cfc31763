from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, channel: str, text: str) -> None: ...


class LogNotifier:
    """Default messaging collaborator: records the outbound message in the log."""

    def send(self, channel: str, text: str) -> None:
        logger.info("Notification for channel=%s: %s", channel, text[:100])


def deliver(notifier: Notifier, channel: str, text: str) -> bool:
    """Hand ``text`` to the notifier once. Failures are logged, not retried."""
    try:
        notifier.send(channel, text)
    except Exception as exc:
        logger.warning("Notification to channel=%s failed: %s", channel, exc)
        return False
    return True
