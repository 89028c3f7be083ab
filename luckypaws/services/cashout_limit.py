"""Rolling-window cashout ceiling per customer."""
from datetime import datetime, timedelta
from decimal import Decimal

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from luckypaws.core.config import settings
from luckypaws.core.database import store_errors
from luckypaws.core.errors import ValidationError
from luckypaws.core.utils import to_decimal, username_key, utc_now
from luckypaws.models.cashout import Cashout
from luckypaws.schemas import LimitStatus


class CashoutLimitService:
    """
    The window opens at a customer's first completed cashout inside the last
    `window` and resets `window` after it. Read only and advisory: nothing
    here blocks recording a cashout.
    """

    def __init__(self, session: AsyncSession, limit: Decimal = None, window_hours: int = None):
        self.session = session
        self.limit = Decimal(str(limit if limit is not None else settings.CASHOUT_DAILY_LIMIT))
        self.window = timedelta(hours=window_hours or settings.CASHOUT_WINDOW_HOURS)

    def _empty(self, username: str) -> LimitStatus:
        return LimitStatus(username=username, used=Decimal("0"), remaining=self.limit, window_resets_at=None)

    async def check_limit(self, username: str, now: datetime = None) -> LimitStatus:
        username = (username or "").strip()
        if not username:
            raise ValidationError("Username is required.")
        now = now or utc_now()

        stmt = select(Cashout.time, Cashout.amount_usd).where(
            Cashout.username_key == username_key(username),
            Cashout.status == "completed",
            Cashout.time >= now - self.window,
            Cashout.time <= now,
        ).order_by(Cashout.time.asc())
        async with store_errors(self.session, "read cashout window"):
            rows = (await self.session.execute(stmt)).all()

        if not rows:
            return self._empty(username)

        # Rows start at now - window, so the window opened by the first one is still running
        first_time = rows[0].time
        used = sum((Decimal(str(row.amount_usd)) for row in rows), Decimal("0"))
        remaining = max(Decimal("0"), self.limit - used)
        return LimitStatus(
            username=username,
            used=used,
            remaining=remaining,
            first_cashout_time_in_window=first_time,
            window_resets_at=first_time + self.window,
        )

    async def enforce(self, username: str, amount, now: datetime = None) -> LimitStatus:
        """Raise when `amount` does not fit in what is left of the window."""
        requested = to_decimal(amount)
        if requested is None or requested <= 0:
            raise ValidationError("Amount must be a positive number")

        status = await self.check_limit(username, now=now)
        if status.remaining < requested:
            logger.warning(f"Cashout of ${requested} for {username} refused, ${status.remaining} left in window")
            raise ValidationError(
                f"Cashout exceeds the {self.limit} limit, {status.remaining} remaining",
                code="CASHOUT_LIMIT_EXCEEDED",
                context={
                    "remaining": str(status.remaining),
                    "windowResetsAt": status.window_resets_at.isoformat() if status.window_resets_at else None,
                },
            )
        return status
