"""Side effects raised when a polling surface sees new items."""

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class AlertSink(Protocol):
    """Where new-item alerts go: a sound, a desktop notification and a tooltip."""

    desktop_permission_granted: bool

    def play_sound(self) -> None: ...

    def show_desktop_notification(self, title: str, body: str) -> None: ...

    def show_tooltip(self, text: str) -> None: ...


class LoggingAlertSink:
    """Default sink for headless clients: every alert becomes a log line."""

    def __init__(self, desktop_permission_granted: bool = False):
        self.desktop_permission_granted = desktop_permission_granted

    def play_sound(self) -> None:
        logger.info("Alert sound")

    def show_desktop_notification(self, title: str, body: str) -> None:
        logger.info(f"Desktop notification: {title} - {body}")

    def show_tooltip(self, text: str) -> None:
        logger.info(f"Tooltip: {text}")


def raise_alert(sink: AlertSink, title: str, body: str, tooltip: str | None = None) -> None:
    """Play the sound, show the desktop notification if permitted, then the tooltip."""
    sink.play_sound()
    if sink.desktop_permission_granted:
        sink.show_desktop_notification(title, body)
    if tooltip:
        sink.show_tooltip(tooltip)
