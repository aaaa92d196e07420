import logging

import pusher

from coach_portal.config import settings

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ("success", "error", "info")


class Broadcaster:
    """Push user notifications to Soketi (Pusher-compatible)."""

    _instance = None

    def __init__(self):
        self.client = pusher.Pusher(
            app_id=settings.pusher_app_id,
            key=settings.pusher_app_key,
            secret=settings.pusher_app_secret,
            host=settings.pusher_host,
            port=settings.pusher_port,
            ssl=False,
        )

    @classmethod
    def get_instance(cls) -> "Broadcaster":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def trigger(self, channel: str, event: str, data: dict):
        """Send an event to a Soketi channel. Delivery failures are logged only."""
        if not settings.notifications_enabled:
            return
        try:
            self.client.trigger(channel, event, data)
        except Exception as e:
            logger.warning(f"Failed to trigger {event} on {channel}: {e}")

    def notify(self, user_id: str, kind: str, title: str, message: str):
        if kind not in NOTIFICATION_TYPES:
            kind = "info"
        self.trigger(
            f"private-notifications.{user_id}",
            "Notification",
            {"type": kind, "title": title, "message": message},
        )

    def success(self, user_id: str, title: str, message: str):
        self.notify(user_id, "success", title, message)

    def error(self, user_id: str, title: str, message: str):
        self.notify(user_id, "error", title, message)
