from decimal import Decimal
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from luckypaws.api.deps import get_cashout_limit_service, get_profit_loss_service, get_username_service
from luckypaws.schemas import CashoutOut, GeneratedUsername, LimitStatus
from luckypaws.services.cashout_limit import CashoutLimitService
from luckypaws.services.profit_loss_service import ProfitLossService
from luckypaws.services.username_service import UsernameService

router = APIRouter()

# --- Models ---
class CashoutRequest(BaseModel):
    username: str
    amount: Union[Decimal, str]
    description: Optional[str] = None

class GenerateUsernameRequest(BaseModel):
    facebook_name: str
    page_code: str

# --- Routes ---

@router.get("/customer-cashout-limit", response_model=LimitStatus)
async def customer_cashout_limit(username: str = Query(...), guard: CashoutLimitService = Depends(get_cashout_limit_service)):
    return await guard.check_limit(username)

@router.post("/cashout-request", response_model=CashoutOut, status_code=201)
async def cashout_request(
    body: CashoutRequest,
    guard: CashoutLimitService = Depends(get_cashout_limit_service),
    ledger: ProfitLossService = Depends(get_profit_loss_service),
):
    """Customer-initiated cashout: must fit in the rolling limit."""
    await guard.enforce(body.username, body.amount)
    return await ledger.record_cashout(
        body.username, body.amount,
        description=body.description or "Customer cashout request",
        added_by="customer",
    )

@router.post("/generate-username", response_model=GeneratedUsername)
async def generate_username(body: GenerateUsernameRequest, service: UsernameService = Depends(get_username_service)):
    return await service.generate_username(body.facebook_name, body.page_code)
