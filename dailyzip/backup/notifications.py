"""
User notification sinks.

Notifications are fire-and-forget: a sink that fails to display something
must never change the outcome of a backup run.
"""

import logging
import platform
import subprocess
from abc import ABC, abstractmethod

from dailyzip.models import Severity

logger = logging.getLogger(__name__)


class NotificationSink(ABC):
    """Tell the user something happened."""

    @abstractmethod
    def notify(self, title: str, message: str, severity: Severity):
        pass


class NullNotifier(NotificationSink):
    """Discard every notification."""

    def notify(self, title: str, message: str, severity: Severity):
        pass


class LogNotifier(NotificationSink):
    """Write notifications to the application log."""

    def notify(self, title: str, message: str, severity: Severity):
        log_fn = logger.error if severity is Severity.ERROR else logger.info
        log_fn("NOTIFY [%s] %s: %s", severity.value, title, message)


class DesktopNotifier(LogNotifier):
    """
    Desktop notification via notify-send (Linux) or osascript (macOS).

    Always logs first. On other platforms the log line is the notification.
    """

    def __init__(self, system: str = None):
        self._system = system or platform.system()

    def notify(self, title: str, message: str, severity: Severity):
        super().notify(title, message, severity)

        try:
            if self._system == 'Linux':
                urgency = 'critical' if severity is Severity.ERROR else 'low'
                subprocess.Popen(
                    ['notify-send', '-u', urgency, title, message],
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
            elif self._system == 'Darwin':
                script = 'display notification {} with title {}'.format(
                    _applescript_string(message), _applescript_string(title)
                )
                subprocess.Popen(
                    ['osascript', '-e', script],
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
        except OSError as e:
            logger.warning(f"Desktop notification unavailable: {e}")


def _applescript_string(value: str) -> str:
    escaped = value.replace('\\', '\\\\').replace('"', '\\"')
    return f'"{escaped}"'


NOTIFIERS = {
    'desktop': DesktopNotifier,
    'log': LogNotifier,
    'none': NullNotifier,
}


def create_notifier(kind: str = 'desktop') -> NotificationSink:
    """
    Create a notification sink by name.

    Raises:
        ValueError: If kind is not one of 'desktop', 'log', 'none'
    """
    try:
        return NOTIFIERS[(kind or 'desktop').lower()]()
    except KeyError:
        raise ValueError(
            f"Invalid notifier: {kind}. "
            f"Valid options: {list(NOTIFIERS.keys())}"
        )
