import httpx
from loguru import logger
from decimal import Decimal, ROUND_HALF_UP

from luckypaws.core.cache import cache_service
from luckypaws.core.config import settings
from luckypaws.core.errors import UpstreamError, ValidationError
from luckypaws.schemas import CashoutQuote

SATS_PER_BTC = Decimal(100_000_000)
BTC_PLACES = Decimal("0.00000001")
RATE_CACHE_KEY = "price:btc_usd"

class PriceService:
    """
    BTC/USD spot price from the public price endpoint, cached in Redis when available.
    """

    def __init__(self, url: str = None, transport: httpx.AsyncBaseTransport = None):
        self.url = url or settings.PRICE_API_URL
        self._transport = transport

    async def _fetch_rate(self) -> Decimal:
        try:
            async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS, transport=self._transport) as client:
                response = await client.get(self.url)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamError(f"Price lookup failed: {e}") from e

        rate = (data.get("bitcoin") or {}).get("usd") if isinstance(data, dict) else None
        if isinstance(rate, bool) or not isinstance(rate, (int, float)) or rate <= 0:
            raise UpstreamError(f"Price lookup returned an invalid rate: {rate!r}")
        return Decimal(str(rate))

    async def get_btc_usd_rate(self) -> Decimal:
        cached = await cache_service.get_json(RATE_CACHE_KEY)
        if cached:
            return Decimal(str(cached))

        rate = await self._fetch_rate()
        await cache_service.set_json(RATE_CACHE_KEY, rate, ttl=settings.PRICE_CACHE_TTL)
        return rate

    async def usd_to_btc(self, amount_usd: Decimal) -> Decimal:
        rate = await self.get_btc_usd_rate()
        return (amount_usd / rate).quantize(BTC_PLACES, rounding=ROUND_HALF_UP)

    async def quote(self, amount_usd: Decimal) -> CashoutQuote:
        if amount_usd is None or amount_usd <= 0:
            raise ValidationError("Invalid amount provided.")
        rate = await self.get_btc_usd_rate()
        sats = int((amount_usd / rate * SATS_PER_BTC).to_integral_value(rounding=ROUND_HALF_UP))
        logger.info(f"Quoted ${amount_usd} at ${rate}/BTC: {sats} sats")
        return CashoutQuote(usd_amount=amount_usd, sats=sats, btc_price=rate)

price_service = PriceService()
