from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
CENT = Decimal("0.01")


def timestamp(value: Optional[datetime] = None) -> str:
    """UTC timestamp in the same shape as SQL CURRENT_TIMESTAMP."""
    value = value or datetime.now(timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def from_unix(seconds: Optional[int]) -> Optional[str]:
    if seconds is None:
        return None
    return timestamp(datetime.fromtimestamp(int(seconds), tz=timezone.utc))


def to_datetime(value: Any) -> Optional[datetime]:
    """Read back a TIMESTAMP column (str on SQLite, datetime on Postgres)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    parsed = datetime.fromisoformat(str(value))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def money(value: Any) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value: Any) -> int:
    return int(money(value) * 100)
