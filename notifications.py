import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notice:
    level: str
    message: str
    created_at: datetime


class Notifier:
    """User-facing success/error messages, newest last."""

    def __init__(self, limit: int = 50) -> None:
        self._notices: deque[Notice] = deque(maxlen=limit)

    def _push(self, level: str, message: str) -> Notice:
        notice = Notice(level=level, message=message, created_at=datetime.now(timezone.utc))
        self._notices.append(notice)
        return notice

    def success(self, message: str) -> Notice:
        logger.info(f"notice: level=success message={message}")
        return self._push("success", message)

    def error(self, message: str, exc: Optional[BaseException] = None) -> Notice:
        if exc is not None:
            logger.error(f"notice: level=error message={message} error={exc}")
        else:
            logger.warning(f"notice: level=error message={message}")
        return self._push("error", message)

    @property
    def notices(self) -> list[Notice]:
        return list(self._notices)

    def drain(self) -> list[Notice]:
        notices = list(self._notices)
        self._notices.clear()
        return notices
