import asyncio
from datetime import datetime
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from luckypaws.core.database import Base
from luckypaws.core.errors import UpstreamError
from luckypaws.core.utils import utc_now
from luckypaws.models.order import Order, PaymentMethod
from luckypaws.models.cashout import Cashout
from luckypaws.models.username import Username
from luckypaws.models.audit import AuditLog
from luckypaws.services.speed_client import LightningPaymentResult, OnChainPaymentResult


class FakeSpeedClient:
    """In-memory stand-in for SpeedClient that records every call."""

    def __init__(self):
        self.statuses = {}
        self.status_calls = []
        self.created = []
        self.amount_sats = 100000
        self.expires_at = 1893456000000
        self.create_error = None
        self.status_error = None
        self.decoded_amount = 2100

    async def create_payment(self, amount_usd, method=PaymentMethod.LIGHTNING):
        if self.create_error:
            raise self.create_error
        payment_id = f"pi_{len(self.created) + 1}"
        self.created.append((payment_id, amount_usd, method))
        if method == PaymentMethod.ON_CHAIN:
            return OnChainPaymentResult(payment_id=payment_id, address="bc1qexample",
                                        amount_sats=self.amount_sats, expires_at=self.expires_at)
        return LightningPaymentResult(payment_id=payment_id, payment_request=f"lnbc_{payment_id}",
                                      amount_sats=self.amount_sats, expires_at=self.expires_at)

    async def get_payment_status(self, payment_id):
        self.status_calls.append(payment_id)
        await asyncio.sleep(0)
        if self.status_error:
            raise self.status_error
        return self.statuses.get(payment_id, "unpaid")

    async def decode_invoice(self, invoice):
        return self.decoded_amount


class FakePriceService:
    def __init__(self, rate=Decimal("50000")):
        self.rate = rate

    async def get_btc_usd_rate(self):
        if self.rate is None:
            raise UpstreamError("Price lookup failed")
        return self.rate

    async def usd_to_btc(self, amount_usd):
        rate = await self.get_btc_usd_rate()
        return (amount_usd / rate).quantize(Decimal("0.00000001"))


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """Sessions on separate connections to a file database, for concurrent writers."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'luckypaws.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def speed():
    return FakeSpeedClient()


@pytest.fixture
def prices():
    return FakePriceService()


@pytest.fixture
def add_order(session):
    async def _add(order_id, username="alice", amount="50", status="pending", created=None,
                   expires_at=1893456000000, game="fire kirin"):
        order = Order(
            order_id=order_id,
            username=username,
            game=game,
            amount=Decimal(amount),
            btc="0.00100000",
            method="lightning",
            status=status,
            invoice=f"lnbc_{order_id}",
            created=created or utc_now(),
            expires_at=expires_at,
            paid_manually=False,
        )
        session.add(order)
        await session.commit()
        return order
    return _add


@pytest.fixture
def add_cashout(session):
    async def _add(username, amount, time: datetime, status="completed"):
        cashout = Cashout(username=username, amount_usd=Decimal(str(amount)), time=time, status=status)
        session.add(cashout)
        await session.commit()
        return cashout
    return _add
