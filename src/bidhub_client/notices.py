"""Short-lived, non-blocking user notices."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Literal

logger = logging.getLogger(__name__)

NoticeLevel = Literal["success", "info", "warning", "error"]

_LOG_LEVELS: dict[str, int] = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.WARNING,
}


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class NoticeBoard:
    """Collects notices for a UI to display; each one expires after ``ttl_seconds``."""

    def __init__(self, ttl_seconds: float = 5.0) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._notices: list[Notice] = []

    def push(self, level: NoticeLevel, message: str) -> Notice:
        notice = Notice(level=level, message=message)
        self._notices.append(notice)
        logger.log(_LOG_LEVELS[level], "Notice: %s", message, extra={"notice_level": level})
        return notice

    def success(self, message: str) -> Notice:
        return self.push("success", message)

    def info(self, message: str) -> Notice:
        return self.push("info", message)

    def warning(self, message: str) -> Notice:
        return self.push("warning", message)

    def error(self, message: str) -> Notice:
        return self.push("error", message)

    def active(self, now: datetime | None = None) -> list[Notice]:
        """Return unexpired notices, oldest first, pruning expired ones."""
        now = now or datetime.now(UTC)
        self._notices = [n for n in self._notices if now - n.created_at < self._ttl]
        return list(self._notices)

    def drain(self) -> list[Notice]:
        """Return every pending notice and clear the board."""
        notices, self._notices = self._notices, []
        return notices

    def messages(self) -> list[str]:
        return [n.message for n in self._notices]

    def __len__(self) -> int:
        return len(self._notices)
