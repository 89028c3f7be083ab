from datetime import date
from decimal import Decimal
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from luckypaws.api.deps import (
    get_order_service, get_price_service, get_profit_loss_service, require_admin,
)
from luckypaws.core.utils import get_now
from luckypaws.schemas import CashoutOut, CashoutQuote, OrderOut, ProfitLossSummary, UserSummary
from luckypaws.services.export_service import generate_profit_loss_workbook
from luckypaws.services.order_service import OrderService
from luckypaws.services.price_service import PriceService
from luckypaws.services.profit_loss_service import ProfitLossService

router = APIRouter(dependencies=[Depends(require_admin)])

# --- Models ---
class CashoutCreate(BaseModel):
    username: str
    amount: Union[Decimal, str]
    description: Optional[str] = None
    type: str = "cashout"

def _actor(request: Request) -> str:
    return f"admin@{request.client.host}" if request.client else "admin"

# --- Orders ---

@router.get("/orders", response_model=List[OrderOut])
async def list_orders(limit: int = Query(100, ge=1, le=1000), service: OrderService = Depends(get_order_service)):
    return await service.list_orders(limit=limit)

@router.get("/orders/{order_id}", response_model=OrderOut)
async def get_order(order_id: str, service: OrderService = Depends(get_order_service)):
    return await service.get_order(order_id)

@router.post("/orders/{order_id}/mark-paid", response_model=OrderOut)
async def mark_paid(order_id: str, request: Request, service: OrderService = Depends(get_order_service)):
    """Operator override: forces the order to paid whatever the provider says."""
    return await service.mark_paid_manually(order_id, actor=_actor(request))

@router.post("/orders/{order_id}/read", response_model=OrderOut)
async def mark_read(order_id: str, service: OrderService = Depends(get_order_service)):
    return await service.mark_read(order_id)

@router.delete("/orders/{order_id}")
async def delete_order(order_id: str, request: Request, service: OrderService = Depends(get_order_service)):
    await service.delete_order(order_id, actor=_actor(request))
    return {"status": "deleted", "orderId": order_id}

# --- Cashouts ---

@router.get("/cashouts", response_model=List[CashoutOut])
async def list_cashouts(limit: int = Query(100, ge=1, le=1000), ledger: ProfitLossService = Depends(get_profit_loss_service)):
    return await ledger.list_cashouts(limit=limit)

@router.post("/cashouts", response_model=CashoutOut, status_code=201)
async def record_cashout(body: CashoutCreate, request: Request, ledger: ProfitLossService = Depends(get_profit_loss_service)):
    return await ledger.record_cashout(
        body.username, body.amount,
        description=body.description,
        added_by=_actor(request),
        cashout_type=body.type,
    )

@router.get("/cashouts/quote", response_model=CashoutQuote)
async def cashout_quote(amount: Decimal = Query(...), prices: PriceService = Depends(get_price_service)):
    return await prices.quote(amount)

# --- Reports ---

def _date_range(from_date: Optional[date], to_date: Optional[date]):
    today = get_now().date()
    return from_date or today, to_date or today

@router.get("/profit-loss", response_model=ProfitLossSummary)
async def profit_loss(
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    ledger: ProfitLossService = Depends(get_profit_loss_service),
):
    start, end = _date_range(from_date, to_date)
    return await ledger.compute_summary(start, end)

@router.get("/profit-loss/export")
async def export_profit_loss(
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    ledger: ProfitLossService = Depends(get_profit_loss_service),
):
    start, end = _date_range(from_date, to_date)
    summary = await ledger.compute_summary(start, end)
    excel_file = generate_profit_loss_workbook(summary)

    filename = f"profit_loss_{start.isoformat()}_{end.isoformat()}.xlsx"
    headers = {
        'Content-Disposition': f'attachment; filename="{filename}"'
    }
    return StreamingResponse(
        excel_file,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers=headers,
    )

@router.get("/user-stats/{username}", response_model=UserSummary)
async def user_stats(username: str, ledger: ProfitLossService = Depends(get_profit_loss_service)):
    return await ledger.user_stats(username)
