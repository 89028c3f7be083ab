import math
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
import pytz
from luckypaws.core.config import settings

END_OF_DAY = time(23, 59, 59, 999000)

def utc_now() -> datetime:
    """Naive UTC timestamp, the storage format of every DateTime column"""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def get_now():
    """Returns current time in configured timezone"""
    tz = pytz.timezone(settings.TIMEZONE)
    return datetime.now(tz)

def local_day_bounds(from_date: date, to_date: date) -> tuple[datetime, datetime]:
    """
    Inclusive UTC bounds for a calendar date range in the configured timezone.
    to_date is expanded to 23:59:59.999 so a same-day range covers the whole day.
    """
    tz = pytz.timezone(settings.TIMEZONE)
    start = tz.localize(datetime.combine(from_date, time.min))
    end = tz.localize(datetime.combine(to_date, END_OF_DAY))
    return (
        start.astimezone(pytz.utc).replace(tzinfo=None),
        end.astimezone(pytz.utc).replace(tzinfo=None),
    )

def to_decimal(value) -> Decimal | None:
    """Coerce user input to a finite Decimal, None if it is not a number"""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount

def normalize_expiry(raw) -> int | None:
    """
    Provider expiry as epoch milliseconds. Accepts a positive number or a
    numeric string; anything else is None (treated as already expired).
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return int(value)

def epoch_ms(dt: datetime) -> int:
    """Epoch milliseconds of a naive UTC datetime"""
    return int(pytz.utc.localize(dt).timestamp() * 1000)

def username_key(username: str) -> str:
    """Case-insensitive lookup key. Folded in Python, SQLite lower() only handles ASCII"""
    return username.lower()

def username_key_default(context) -> str:
    """Column default filling the lookup key from the row's username on insert"""
    return username_key(context.get_current_parameters()["username"])
