"""
Transient user notifications raised by the dashboard controllers
"""
from dataclasses import dataclass
from typing import List, Optional

from vizfolio.logging_config import logger


@dataclass
class Notification:
    level: str  # "success" or "error"
    message: str


class Notifier:
    """Collects toast-style notifications and logs each one"""

    def __init__(self):
        self.notifications: List[Notification] = []

    def success(self, message: str) -> None:
        logger.info(message)
        self.notifications.append(Notification("success", message))

    def error(self, message: str, error: Optional[BaseException] = None) -> None:
        # The upstream error is logged, the user sees the canned message
        if error is not None:
            logger.error(message, error=str(error), error_type=type(error).__name__)
        else:
            logger.warning(message)
        self.notifications.append(Notification("error", message))

    @property
    def last(self) -> Optional[Notification]:
        return self.notifications[-1] if self.notifications else None

    def errors(self) -> List[str]:
        return [n.message for n in self.notifications if n.level == "error"]

    def clear(self) -> None:
        self.notifications.clear()
