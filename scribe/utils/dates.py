from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(UTC)


def epoch_millis(moment: datetime | None = None) -> int:
    moment = moment or utcnow()
    return int(moment.timestamp() * 1000)
