"""Webhook notifications for run status events.

Supports a chat webhook (Slack-style attachments) and a generic JSON
webhook. Delivery is fire-and-forget: every failure is logged at debug
level and swallowed, so notifications can never affect the outcome or exit
code of a run.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)

# Keep notifications from holding up the loop
REQUEST_TIMEOUT_SECONDS = 5.0


class Severity(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


# Attachment colors understood by Slack-compatible chat webhooks
CHAT_COLORS = {
    Severity.SUCCESS: "good",
    Severity.WARNING: "warning",
    Severity.ERROR: "danger",
}


@dataclass(frozen=True)
class Notification:
    title: str
    message: str
    severity: Severity = Severity.SUCCESS


class NotificationSink(Protocol):
    """Destination for notifications."""

    def payload(self, notification: Notification) -> dict: ...

    @property
    def url(self) -> str: ...


@dataclass(frozen=True)
class ChatWebhookSink:
    """Slack-compatible incoming webhook."""

    url: str

    def payload(self, notification: Notification) -> dict:
        return {
            "attachments": [
                {
                    "color": CHAT_COLORS[notification.severity],
                    "title": notification.title,
                    "text": notification.message,
                }
            ]
        }


@dataclass(frozen=True)
class JsonWebhookSink:
    """Generic webhook receiving a flat JSON object."""

    url: str

    def payload(self, notification: Notification) -> dict:
        return {
            "title": notification.title,
            "message": notification.message,
            "status": notification.severity.value,
        }


def post_notification(sink: NotificationSink, notification: Notification) -> bool:
    """POST one notification to one sink.

    Returns:
        True if the sink accepted the request, False on any failure.
        Never raises.
    """
    try:
        with httpx.Client(timeout=REQUEST_TIMEOUT_SECONDS) as client:
            response = client.post(sink.url, json=sink.payload(notification))
        if response.status_code >= 400:
            logger.debug(f"Webhook {sink.url} returned {response.status_code}")
            return False
        return True
    except httpx.TimeoutException:
        logger.debug(f"Webhook {sink.url} timed out")
    except httpx.HTTPError as e:
        logger.debug(f"Failed to send notification to {sink.url}: {e}")
    except Exception as e:
        logger.debug(f"Notification error for {sink.url}: {e}")
    return False


class NotificationDispatcher:
    """Sends run status events to every configured sink.

    The never-fails contract holds for the dispatcher as a whole: notify()
    returns normally whatever happens on the wire.
    """

    def __init__(self, sinks: list[NotificationSink] | None = None) -> None:
        self.sinks: list[NotificationSink] = sinks or []

    @classmethod
    def from_urls(cls, slack_webhook_url: str = "", webhook_url: str = "") -> "NotificationDispatcher":
        sinks: list[NotificationSink] = []
        if slack_webhook_url:
            sinks.append(ChatWebhookSink(slack_webhook_url))
        if webhook_url:
            sinks.append(JsonWebhookSink(webhook_url))
        return cls(sinks)

    def notify(self, title: str, message: str, severity: Severity = Severity.SUCCESS) -> int:
        """Deliver a notification to all sinks.

        Returns:
            Number of sinks that accepted the notification
        """
        notification = Notification(title=title, message=message, severity=severity)
        return sum(1 for sink in self.sinks if post_notification(sink, notification))
