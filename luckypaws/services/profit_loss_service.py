from datetime import date
from decimal import Decimal

from loguru import logger
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from luckypaws.core.database import store_errors
from luckypaws.core.errors import ValidationError
from luckypaws.core.utils import local_day_bounds, to_decimal, username_key, utc_now
from luckypaws.models.cashout import Cashout
from luckypaws.models.order import Order, OrderStatus
from luckypaws.schemas import ProfitLossSummary, SummaryTotals, UserSummary

COMPLETED = "completed"
MARGIN_PLACES = Decimal("0.01")


def profit_margin(total_deposit: Decimal, net: Decimal) -> Decimal:
    if total_deposit <= 0:
        return Decimal("0")
    return (net / total_deposit * 100).quantize(MARGIN_PLACES)


class ProfitLossService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _ledger(self, start, end) -> list[tuple[str, str, Decimal]]:
        """Deposits then cashouts in [start, end], oldest first, as (type, username, amount)."""
        deposits_stmt = select(Order.username, Order.amount).where(
            Order.status == OrderStatus.PAID.value,
            Order.created >= start,
            Order.created <= end,
        ).order_by(Order.created)
        cashouts_stmt = select(Cashout.username, Cashout.amount_usd).where(
            Cashout.status == COMPLETED,
            Cashout.time >= start,
            Cashout.time <= end,
        ).order_by(Cashout.time)

        async with store_errors(self.session, "read ledger"):
            deposits = (await self.session.execute(deposits_stmt)).all()
            cashouts = (await self.session.execute(cashouts_stmt)).all()

        entries = [("deposit", row.username, Decimal(str(row.amount))) for row in deposits]
        entries += [("cashout", row.username, Decimal(str(row.amount_usd))) for row in cashouts]
        return entries

    async def compute_summary(self, from_date: date, to_date: date) -> ProfitLossSummary:
        if from_date > to_date:
            raise ValidationError("from_date must not be after to_date")

        start, end = local_day_bounds(from_date, to_date)
        groups: dict[str, dict] = {}
        for entry_type, username, amount in await self._ledger(start, end):
            # Case-insensitive grouping, first-seen spelling for display
            group = groups.setdefault(username_key(username), {
                "username": username,
                "deposit": Decimal("0"),
                "cashout": Decimal("0"),
            })
            group[entry_type] += amount

        users = []
        for key in sorted(groups):
            group = groups[key]
            net = group["deposit"] - group["cashout"]
            users.append(UserSummary(
                username=group["username"],
                total_deposit=group["deposit"],
                total_cashout=group["cashout"],
                net=net,
                profit_margin=profit_margin(group["deposit"], net),
            ))

        total_deposit = sum((u.total_deposit for u in users), Decimal("0"))
        total_cashout = sum((u.total_cashout for u in users), Decimal("0"))
        net = total_deposit - total_cashout
        totals = SummaryTotals(
            total_deposit=total_deposit,
            total_cashout=total_cashout,
            net=net,
            profit_margin=profit_margin(total_deposit, net),
        )
        return ProfitLossSummary(from_date=from_date, to_date=to_date, users=users, totals=totals)

    async def user_stats(self, username: str) -> UserSummary:
        """All-time totals for one customer."""
        username = (username or "").strip()
        if not username:
            raise ValidationError("Username is required.")
        key = username_key(username)

        deposits_stmt = select(func.coalesce(func.sum(Order.amount), 0)).where(
            Order.username_key == key,
            Order.status == OrderStatus.PAID.value,
        )
        cashouts_stmt = select(func.coalesce(func.sum(Cashout.amount_usd), 0)).where(
            Cashout.username_key == key,
            Cashout.status == COMPLETED,
        )
        async with store_errors(self.session, "read user stats"):
            total_deposit = Decimal(str(await self.session.scalar(deposits_stmt)))
            total_cashout = Decimal(str(await self.session.scalar(cashouts_stmt)))

        net = total_deposit - total_cashout
        return UserSummary(
            username=username,
            total_deposit=total_deposit,
            total_cashout=total_cashout,
            net=net,
            profit_margin=profit_margin(total_deposit, net),
        )

    async def record_cashout(self, username: str, amount, description: str = None,
                             added_by: str = "admin", cashout_type: str = "cashout") -> Cashout:
        """
        Append a completed cashout. The limit guard is not consulted here;
        customer-initiated paths check it first.
        """
        username = username.strip() if isinstance(username, str) else ""
        if not username:
            raise ValidationError("Missing or invalid username")
        amount_usd = to_decimal(amount)
        if amount_usd is None or amount_usd <= 0:
            raise ValidationError("Amount must be a positive number")

        cashout = Cashout(
            username=username,
            amount_usd=amount_usd,
            time=utc_now(),
            status=COMPLETED,
            type=cashout_type,
            description=description or "Manual admin entry",
            added_by=added_by,
        )
        async with store_errors(self.session, "record cashout"):
            self.session.add(cashout)
            await self.session.commit()

        logger.info(f"Cashout {cashout.id} recorded for {username}: ${amount_usd} by {added_by}")
        return cashout

    async def list_cashouts(self, limit: int = 100) -> list[Cashout]:
        stmt = select(Cashout).order_by(Cashout.time.desc()).limit(limit)
        async with store_errors(self.session, "list cashouts"):
            result = await self.session.execute(stmt)
        return result.scalars().all()
