from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC now; every stored timestamp uses this convention."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def seconds_until(deadline: datetime, now: datetime) -> int:
    """Whole seconds left before `deadline`, never negative."""
    remaining = (deadline - now).total_seconds()
    return max(0, int(remaining // 1))
