from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from luckypaws.core.config import settings
from luckypaws.core.errors import ValidationError
from luckypaws.models.cashout import Cashout
from luckypaws.services.profit_loss_service import ProfitLossService, profit_margin

DAY = date(2024, 1, 1)
NOON = datetime(2024, 1, 1, 12, 0)


@pytest.fixture
def ledger(session, monkeypatch):
    monkeypatch.setattr(settings, "TIMEZONE", "UTC")
    return ProfitLossService(session)


def test_profit_margin():
    assert profit_margin(Decimal("50"), Decimal("30")) == Decimal("60.00")
    assert profit_margin(Decimal("3"), Decimal("1")) == Decimal("33.33")
    assert profit_margin(Decimal("0"), Decimal("-20")) == Decimal("0")


@pytest.mark.asyncio
async def test_single_customer_summary(ledger, add_order, add_cashout):
    await add_order("pi_1", username="alice", amount="50", status="paid", created=NOON)
    await add_cashout("alice", 20, NOON + timedelta(hours=1))

    summary = await ledger.compute_summary(DAY, DAY)

    assert len(summary.users) == 1
    alice = summary.users[0]
    assert alice.username == "alice"
    assert alice.total_deposit == Decimal("50")
    assert alice.total_cashout == Decimal("20")
    assert alice.net == Decimal("30")
    assert alice.profit_margin == Decimal("60.00")
    assert summary.totals.net == Decimal("30")
    assert summary.totals.profit_margin == Decimal("60.00")


@pytest.mark.asyncio
async def test_pending_orders_are_not_deposits(ledger, add_order):
    await add_order("pi_1", status="pending", created=NOON)
    summary = await ledger.compute_summary(DAY, DAY)
    assert summary.users == []
    assert summary.totals.total_deposit == Decimal("0")
    assert summary.totals.profit_margin == Decimal("0")


@pytest.mark.asyncio
async def test_end_of_day_boundary(ledger, add_order):
    last_ms = datetime(2024, 1, 1, 23, 59, 59, 999000)
    await add_order("pi_in", amount="10", status="paid", created=last_ms)
    await add_order("pi_out", amount="99", status="paid", created=last_ms + timedelta(milliseconds=1))

    summary = await ledger.compute_summary(DAY, DAY)

    assert summary.totals.total_deposit == Decimal("10")


@pytest.mark.asyncio
async def test_start_of_day_boundary(ledger, add_order):
    await add_order("pi_in", amount="10", status="paid", created=datetime(2024, 1, 1, 0, 0))
    await add_order("pi_out", amount="99", status="paid", created=datetime(2023, 12, 31, 23, 59, 59))
    summary = await ledger.compute_summary(DAY, DAY)
    assert summary.totals.total_deposit == Decimal("10")


@pytest.mark.asyncio
async def test_grouping_is_case_insensitive_and_sorted(ledger, add_order, add_cashout):
    await add_order("pi_1", username="Bob", amount="40", status="paid", created=NOON)
    await add_order("pi_2", username="bob", amount="10", status="paid", created=NOON + timedelta(minutes=5))
    await add_order("pi_3", username="alice", amount="30", status="paid", created=NOON + timedelta(minutes=10))
    await add_cashout("BOB", 60, NOON + timedelta(hours=2))
    await add_cashout("carol", 15, NOON + timedelta(hours=3))

    summary = await ledger.compute_summary(DAY, DAY)

    assert [u.username for u in summary.users] == ["alice", "Bob", "carol"]
    bob = summary.users[1]
    assert bob.total_deposit == Decimal("50")
    assert bob.total_cashout == Decimal("60")
    assert bob.net == Decimal("-10")
    assert bob.profit_margin == Decimal("-20.00")

    carol = summary.users[2]
    assert carol.total_deposit == Decimal("0")
    assert carol.profit_margin == Decimal("0")

    assert summary.totals.total_deposit == Decimal("80")
    assert summary.totals.total_cashout == Decimal("75")
    assert summary.totals.net == Decimal("5")
    assert summary.totals.profit_margin == Decimal("6.25")


@pytest.mark.asyncio
async def test_failed_cashouts_are_ignored(ledger, add_cashout):
    await add_cashout("alice", 20, NOON, status="failed")
    summary = await ledger.compute_summary(DAY, DAY)
    assert summary.users == []


@pytest.mark.asyncio
async def test_dates_are_local_to_configured_timezone(ledger, add_order, monkeypatch):
    monkeypatch.setattr(settings, "TIMEZONE", "America/New_York")
    # 22:00 on Jan 15 in New York
    await add_order("pi_in", amount="10", status="paid", created=datetime(2024, 1, 16, 3, 0))
    # 23:00 on Jan 14 in New York
    await add_order("pi_out", amount="99", status="paid", created=datetime(2024, 1, 15, 4, 0))

    summary = await ledger.compute_summary(date(2024, 1, 15), date(2024, 1, 15))

    assert summary.totals.total_deposit == Decimal("10")


@pytest.mark.asyncio
async def test_inverted_range_rejected(ledger):
    with pytest.raises(ValidationError):
        await ledger.compute_summary(date(2024, 1, 2), date(2024, 1, 1))


@pytest.mark.asyncio
async def test_summary_is_deterministic(ledger, add_order, add_cashout):
    await add_order("pi_1", username="alice", amount="50", status="paid", created=NOON)
    await add_cashout("alice", 20, NOON)
    first = await ledger.compute_summary(DAY, DAY)
    second = await ledger.compute_summary(DAY, DAY)
    assert first == second


# --- record_cashout ---

@pytest.mark.asyncio
async def test_record_cashout(ledger, session):
    cashout = await ledger.record_cashout("alice", "25.50", added_by="ops")

    stored = (await session.execute(select(Cashout))).scalars().one()
    assert stored.id == cashout.id
    assert stored.amount_usd == Decimal("25.50")
    assert stored.status == "completed"
    assert stored.type == "cashout"
    assert stored.description == "Manual admin entry"
    assert stored.added_by == "ops"


@pytest.mark.asyncio
@pytest.mark.parametrize("username,amount", [
    ("", 10), ("   ", 10), (None, 10), ("alice", 0), ("alice", -5), ("alice", "ten"), ("alice", "Infinity"),
])
async def test_record_cashout_rejects_invalid_input(ledger, session, username, amount):
    with pytest.raises(ValidationError):
        await ledger.record_cashout(username, amount)
    assert (await session.execute(select(Cashout))).scalars().all() == []


@pytest.mark.asyncio
async def test_list_cashouts_newest_first(ledger, add_cashout):
    await add_cashout("alice", 10, NOON)
    await add_cashout("bob", 20, NOON + timedelta(hours=1))
    cashouts = await ledger.list_cashouts()
    assert [c.username for c in cashouts] == ["bob", "alice"]


@pytest.mark.asyncio
async def test_user_stats_all_time(ledger, add_order, add_cashout):
    await add_order("pi_1", username="Alice", amount="50", status="paid", created=datetime(2023, 5, 1))
    await add_order("pi_2", username="alice", amount="50", status="paid", created=NOON)
    await add_order("pi_3", username="alice", amount="70", status="pending", created=NOON)
    await add_cashout("ALICE", 25, NOON)

    stats = await ledger.user_stats("alice")

    assert stats.total_deposit == Decimal("100")
    assert stats.total_cashout == Decimal("25")
    assert stats.net == Decimal("75")
    assert stats.profit_margin == Decimal("75.00")


@pytest.mark.asyncio
async def test_user_stats_unknown_customer(ledger):
    stats = await ledger.user_stats("nobody")
    assert stats.total_deposit == Decimal("0")
    assert stats.profit_margin == Decimal("0")


@pytest.mark.asyncio
@pytest.mark.parametrize("lookup", ["Élise", "élise"])
async def test_user_stats_non_ascii_username(ledger, add_order, add_cashout, lookup):
    await add_order("pi_1", username="Élise", amount="50", status="paid", created=NOON)
    await add_cashout("ÉLISE", 20, NOON)

    stats = await ledger.user_stats(lookup)

    assert stats.total_deposit == Decimal("50")
    assert stats.total_cashout == Decimal("20")
    assert stats.net == Decimal("30")


@pytest.mark.asyncio
async def test_summary_groups_non_ascii_usernames(ledger, add_order, add_cashout):
    await add_order("pi_1", username="Élise", amount="50", status="paid", created=NOON)
    await add_cashout("élise", 20, NOON + timedelta(hours=1))

    summary = await ledger.compute_summary(DAY, DAY)

    assert [u.username for u in summary.users] == ["Élise"]
    assert summary.users[0].net == Decimal("30")
