from decimal import Decimal
from typing import Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from luckypaws.api.deps import get_order_service, get_speed_client
from luckypaws.models.order import PaymentMethod
from luckypaws.schemas import CreatedOrder, DecodedInvoice, PaymentStatusOut
from luckypaws.services.order_service import OrderService
from luckypaws.services.speed_client import SpeedClient

router = APIRouter()

class CreatePaymentRequest(BaseModel):
    username: str
    game: str
    amount: Union[Decimal, str]
    method: PaymentMethod = PaymentMethod.LIGHTNING

class DecodeRequest(BaseModel):
    invoice: str

@router.post("/create-payment", response_model=CreatedOrder)
async def create_payment(body: CreatePaymentRequest, service: OrderService = Depends(get_order_service)):
    """
    Create a Speed payment for a top-up and store the pending order.
    """
    return await service.create_order(body.username, body.game, body.amount, body.method)

@router.get("/check-payment-status", response_model=PaymentStatusOut)
async def check_payment_status(id: str = Query(..., min_length=1), service: OrderService = Depends(get_order_service)):
    """Polled by the invoice page until the order is paid."""
    return await service.reconcile_by_polling(id)

@router.get("/orders/{order_id}/status", response_model=PaymentStatusOut)
async def order_status(order_id: str, service: OrderService = Depends(get_order_service)):
    return await service.get_order_status(order_id)

@router.post("/decode", response_model=DecodedInvoice)
async def decode_invoice(body: DecodeRequest, client: SpeedClient = Depends(get_speed_client)):
    amount = await client.decode_invoice(body.invoice)
    return DecodedInvoice(amount=amount)
