from fastapi import APIRouter, Request, Header, Depends
from luckypaws.api.deps import get_order_service
from luckypaws.schemas import WebhookAck
from luckypaws.services.order_service import OrderService

router = APIRouter()

@router.post("/speed-webhook", response_model=WebhookAck)
async def speed_webhook(
    request: Request,
    speed_signature: str = Header(None),
    service: OrderService = Depends(get_order_service),
):
    """
    Speed payment events. 401 on a bad signature; any authenticated event is
    acknowledged so the provider does not keep redelivering it.
    """
    raw = await request.body()
    return await service.reconcile_by_webhook(raw, speed_signature)
