from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Response models serialize with camelCase keys, the shape the pages read."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- Orders ---

class CreatedOrder(CamelModel):
    order_id: str
    invoice: str
    btc_amount: str
    expires_at: Optional[int] = None


class OrderOut(CamelModel):
    order_id: str
    username: str
    game: str
    amount: Decimal
    btc: str
    method: str
    status: str
    invoice: Optional[str] = None
    created: datetime
    expires_at: Optional[int] = None
    paid_manually: bool = False
    paid_at: Optional[datetime] = None
    read: bool = False
    read_at: Optional[datetime] = None


class PaymentStatusOut(CamelModel):
    order_id: str
    status: str
    provider_status: Optional[str] = None


class WebhookAck(BaseModel):
    received: bool = True


class DecodedInvoice(CamelModel):
    amount: int


# --- Cashouts ---

class CashoutOut(CamelModel):
    id: str
    username: str
    amount_usd: Decimal
    time: datetime
    status: str
    type: str
    description: Optional[str] = None
    added_by: Optional[str] = None


class LimitStatus(CamelModel):
    username: str
    used: Decimal
    remaining: Decimal
    first_cashout_time_in_window: Optional[datetime] = None
    window_resets_at: Optional[datetime] = None


class CashoutQuote(CamelModel):
    usd_amount: Decimal
    sats: int
    btc_price: Decimal


# --- Profit / loss ---

class UserSummary(CamelModel):
    username: str
    total_deposit: Decimal = Decimal("0")
    total_cashout: Decimal = Decimal("0")
    net: Decimal = Decimal("0")
    profit_margin: Decimal = Decimal("0")


class SummaryTotals(CamelModel):
    total_deposit: Decimal = Decimal("0")
    total_cashout: Decimal = Decimal("0")
    net: Decimal = Decimal("0")
    profit_margin: Decimal = Decimal("0")


class ProfitLossSummary(CamelModel):
    from_date: date
    to_date: date
    users: list[UserSummary]
    totals: SummaryTotals


# --- Usernames ---

class GeneratedUsername(CamelModel):
    username: str
    facebook_name: str
