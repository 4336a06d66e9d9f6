"""User-facing notifications, the library counterpart of UI toasts."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


class Level(StrEnum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    level: Level
    message: str
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier:
    """Collects notifications and forwards them to an optional listener."""

    def __init__(
        self,
        listener: Optional[Callable[[Notification], None]] = None,
        history: int = 100,
    ):
        self.listener = listener
        self.history = history
        self.notifications: list[Notification] = []

    def notify(self, level: Level, message: str) -> Notification:
        n = Notification(level=level, message=message)
        self.notifications.append(n)
        del self.notifications[: max(len(self.notifications) - self.history, 0)]
        log = logger.warning if level in (Level.WARNING, Level.ERROR) else logger.info
        log("notification", level=level.value, message=message)
        if self.listener is not None:
            self.listener(n)
        return n

    def success(self, message: str) -> Notification:
        return self.notify(Level.SUCCESS, message)

    def info(self, message: str) -> Notification:
        return self.notify(Level.INFO, message)

    def warning(self, message: str) -> Notification:
        return self.notify(Level.WARNING, message)

    def error(self, message: str) -> Notification:
        return self.notify(Level.ERROR, message)

    @property
    def last(self) -> Optional[Notification]:
        return self.notifications[-1] if self.notifications else None

    def messages(self, level: Optional[Level] = None) -> list[str]:
        return [
            n.message
            for n in self.notifications
            if level is None or n.level == level
        ]

    def clear(self):
        self.notifications.clear()
