from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from luckypaws.core.config import settings
from luckypaws.core.database import get_db
from luckypaws.core.security import verify_api_key
from luckypaws.services.cashout_limit import CashoutLimitService
from luckypaws.services.order_service import OrderService
from luckypaws.services.price_service import PriceService, price_service
from luckypaws.services.profit_loss_service import ProfitLossService
from luckypaws.services.speed_client import SpeedClient, speed_client
from luckypaws.services.username_service import UsernameService

def get_speed_client() -> SpeedClient:
    return speed_client

def get_price_service() -> PriceService:
    return price_service

async def get_order_service(
    db: AsyncSession = Depends(get_db),
    client: SpeedClient = Depends(get_speed_client),
    prices: PriceService = Depends(get_price_service),
) -> OrderService:
    return OrderService(db, client=client, prices=prices)

async def get_profit_loss_service(db: AsyncSession = Depends(get_db)) -> ProfitLossService:
    return ProfitLossService(db)

async def get_cashout_limit_service(db: AsyncSession = Depends(get_db)) -> CashoutLimitService:
    return CashoutLimitService(db)

async def get_username_service(db: AsyncSession = Depends(get_db)) -> UsernameService:
    return UsernameService(db)

async def require_admin(x_admin_key: str = Header(None)):
    verify_api_key(x_admin_key, settings.ADMIN_API_KEY)
