"""Notification dispatcher that records transitions in the structured log."""

from __future__ import annotations

from typing import Any

from approval_kernel.domain.collaborators import NotificationEvent
from approval_kernel.logging_config import get_logger

logger = get_logger("services.notifications")


class LoggingNotificationDispatcher:
    """``NotificationDispatcher`` that logs instead of delivering.

    Used where no mail transport is configured.  ``sent`` keeps every
    notification in dispatch order for inspection.
    """

    def __init__(self) -> None:
        self.sent: list[tuple[NotificationEvent, str, dict[str, Any]]] = []

    def notify(
        self,
        event: NotificationEvent,
        recipient: str,
        payload: dict[str, Any],
    ) -> None:
        self.sent.append((event, recipient, dict(payload)))
        logger.info(
            "notification_dispatched",
            extra={
                "event": event.value,
                "recipient": recipient,
                "payload": payload,
            },
        )
