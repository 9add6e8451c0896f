"""
Notification sink for operator-facing messages.

Messages go to the ``xtracycle.notify`` logger. configure_logging() attaches
a SysLogHandler to it, so cron mail and the system log both see them.
"""

import logging
from dataclasses import dataclass
from typing import List


NOTIFY_LOGGER_NAME = 'xtracycle.notify'

SEVERITY_LEVELS = {
    'info': logging.INFO,
    'warn': logging.WARNING,
    'err': logging.ERROR,
}


@dataclass(frozen=True)
class Notification:
    severity: str
    text: str


class Notifier:
    """Forward {severity, text} messages to the notification logger."""

    def __init__(self, logger=None):
        self.logger = logger or logging.getLogger(NOTIFY_LOGGER_NAME)
        self.messages: List[Notification] = []

    def notify(self, severity: str, text: str):
        if severity not in SEVERITY_LEVELS:
            raise ValueError(f"Unknown notification severity: {severity}")

        self.messages.append(Notification(severity=severity, text=text))
        self.logger.log(SEVERITY_LEVELS[severity], text)

    def info(self, text: str):
        self.notify('info', text)

    def warn(self, text: str):
        self.notify('warn', text)

    def err(self, text: str):
        self.notify('err', text)
