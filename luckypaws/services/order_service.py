import json
from decimal import Decimal, ROUND_HALF_UP

from loguru import logger
from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from luckypaws.core.config import settings
from luckypaws.core.database import store_errors
from luckypaws.core.errors import NotFoundError, UpstreamError, ValidationError
from luckypaws.core.security import verify_signature
from luckypaws.core.utils import normalize_expiry, to_decimal, utc_now
from luckypaws.models.order import Order, OrderStatus, PaymentMethod
from luckypaws.schemas import CreatedOrder, PaymentStatusOut, WebhookAck
from luckypaws.services.audit_service import AuditService
from luckypaws.services.price_service import PriceService, SATS_PER_BTC, BTC_PLACES, price_service as default_price_service
from luckypaws.services.speed_client import SpeedClient, speed_client as default_speed_client

BTC_UNAVAILABLE = "N/A"

# Speed event types that carry a payment status change
PAYMENT_EVENTS = {"payment.updated", "payment.confirmed", "payment.paid"}


class OrderService:
    """
    Order lifecycle: creation against the provider, and the pending -> paid
    transition from polling, the webhook or an operator override.
    """

    def __init__(self, session: AsyncSession, client: SpeedClient = None, prices: PriceService = None,
                 webhook_secret: str = None):
        self.session = session
        self.client = client or default_speed_client
        self.prices = prices or default_price_service
        self.webhook_secret = settings.SPEED_WEBHOOK_SECRET if webhook_secret is None else webhook_secret
        self.audit = AuditService(session)

    # --- Creation ---

    async def create_order(self, username: str, game: str, amount, method="lightning") -> CreatedOrder:
        username = (username or "").strip() if isinstance(username, str) else ""
        game = (game or "").strip() if isinstance(game, str) else ""
        if not username or not game:
            raise ValidationError("Missing fields: username and game are required")

        amount_usd = to_decimal(amount)
        if amount_usd is None or amount_usd <= 0:
            raise ValidationError("Amount must be a positive number")

        try:
            payment_method = PaymentMethod(method)
        except ValueError:
            raise ValidationError(f"Unsupported payment method: {method}")

        # Provider first: nothing is stored unless Speed accepted the payment
        payment = await self.client.create_payment(amount_usd, payment_method)
        btc = await self._btc_amount(amount_usd, payment.amount_sats)
        expires_at = normalize_expiry(payment.expires_at)

        order = Order(
            order_id=payment.payment_id,
            username=username,
            game=game,
            amount=amount_usd,
            btc=btc,
            method=payment_method.value,
            status=OrderStatus.PENDING.value,
            invoice=payment.invoice,
            created=utc_now(),
            expires_at=expires_at,
            paid_manually=False,
        )
        async with store_errors(self.session, "store order"):
            self.session.add(order)
            await self.session.commit()

        logger.info(f"Order {order.order_id} created for {username}: ${amount_usd} ({btc} BTC) via {payment_method.value}")
        return CreatedOrder(order_id=order.order_id, invoice=order.invoice, btc_amount=btc, expires_at=expires_at)

    async def _btc_amount(self, amount_usd: Decimal, amount_sats: int | None) -> str:
        """Provider satoshis when present, else the spot rate, else the N/A sentinel."""
        if amount_sats and amount_sats > 0:
            return f"{(Decimal(amount_sats) / SATS_PER_BTC).quantize(BTC_PLACES, rounding=ROUND_HALF_UP):.8f}"
        try:
            btc = await self.prices.usd_to_btc(amount_usd)
            return f"{btc:.8f}"
        except UpstreamError as e:
            logger.warning(f"BTC amount unavailable for ${amount_usd}, storing {BTC_UNAVAILABLE}: {e.message}")
            return BTC_UNAVAILABLE

    # --- Reads ---

    async def get_order(self, order_id: str) -> Order:
        async with store_errors(self.session, "load order"):
            order = await self.session.get(Order, order_id)
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    async def get_order_status(self, order_id: str) -> PaymentStatusOut:
        order = await self.get_order(order_id)
        return PaymentStatusOut(order_id=order.order_id, status=order.status)

    async def list_orders(self, limit: int = 100) -> list[Order]:
        stmt = select(Order).order_by(Order.created.desc()).limit(limit)
        async with store_errors(self.session, "list orders"):
            result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_outstanding(self, now_ms: int) -> list[Order]:
        """Pending orders whose invoice has not expired yet."""
        stmt = select(Order).where(
            Order.status == OrderStatus.PENDING.value,
            Order.expires_at.is_not(None),
            Order.expires_at > now_ms,
        ).order_by(Order.created)
        async with store_errors(self.session, "list outstanding orders"):
            result = await self.session.execute(stmt)
        return result.scalars().all()

    # --- Status transitions ---

    async def _mark_paid(self, order_id: str) -> bool:
        """
        Conditional pending -> paid write. Concurrent callers converge on the
        same row; returns True only for the caller whose write applied.
        """
        stmt = (
            update(Order)
            .where(Order.order_id == order_id, Order.status != OrderStatus.PAID.value)
            .values(status=OrderStatus.PAID.value, paid_manually=False, paid_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        async with store_errors(self.session, "mark order paid"):
            result = await self.session.execute(stmt)
            await self.session.commit()
        return result.rowcount > 0

    async def reconcile_by_polling(self, order_id: str) -> PaymentStatusOut:
        order = await self.get_order(order_id)
        provider_status = await self.client.get_payment_status(order_id)

        if provider_status == OrderStatus.PAID.value and order.status != OrderStatus.PAID.value:
            if await self._mark_paid(order_id):
                logger.info(f"Order {order_id} marked paid by status poll")
            async with store_errors(self.session, "reload order"):
                await self.session.refresh(order)

        return PaymentStatusOut(order_id=order.order_id, status=order.status, provider_status=provider_status)

    async def reconcile_by_webhook(self, raw_body: bytes, signature: str | None) -> WebhookAck:
        # Authenticate before looking at anything inside the body
        verify_signature(raw_body, signature, self.webhook_secret)

        try:
            payload = json.loads(raw_body)
        except (ValueError, UnicodeDecodeError):
            raise ValidationError("Invalid JSON")
        if not isinstance(payload, dict):
            raise ValidationError("Invalid webhook payload")

        event_type = payload.get("event_type")
        data = payload.get("data")
        payment = data.get("object") if isinstance(data, dict) else None
        if not isinstance(payment, dict):
            payment = {}
        payment_id = payment.get("id") or payment.get("payment_hash")

        if event_type not in PAYMENT_EVENTS or not payment_id:
            logger.info(f"Webhook: event_type {event_type!r} not handled or missing payment id")
            return WebhookAck()

        # Anything but an explicit "paid" is pending, and pending never overwrites
        status = OrderStatus.PAID if payment.get("status") == OrderStatus.PAID.value else OrderStatus.PENDING
        if status != OrderStatus.PAID:
            logger.info(f"Webhook: payment {payment_id} reported {payment.get('status')!r}, no change")
            return WebhookAck()

        if await self._mark_paid(payment_id):
            logger.info(f"Order {payment_id} marked paid by webhook")
            return WebhookAck()

        async with store_errors(self.session, "load order"):
            exists = await self.session.get(Order, payment_id)
        if exists is None:
            logger.warning(f"Webhook: paid event for unknown order {payment_id}")
        return WebhookAck()

    async def mark_paid_manually(self, order_id: str, actor: str = "admin") -> Order:
        stmt = (
            update(Order)
            .where(Order.order_id == order_id)
            .values(
                status=OrderStatus.PAID.value,
                paid_manually=True,
                paid_at=func.coalesce(Order.paid_at, utc_now()),
            )
            .execution_options(synchronize_session=False)
        )
        async with store_errors(self.session, "mark order paid"):
            result = await self.session.execute(stmt)
            await self.session.commit()
        if result.rowcount == 0:
            raise NotFoundError(f"Order {order_id} not found")

        await self.audit.log_action(actor, "mark_paid", target=f"order:{order_id}")
        order = await self.get_order(order_id)
        async with store_errors(self.session, "reload order"):
            await self.session.refresh(order)
        return order

    # --- Operator housekeeping ---

    async def mark_read(self, order_id: str) -> Order:
        order = await self.get_order(order_id)
        async with store_errors(self.session, "mark order read"):
            order.read = True
            order.read_at = utc_now()
            await self.session.commit()
        return order

    async def delete_order(self, order_id: str, actor: str = "admin") -> None:
        order = await self.get_order(order_id)
        details = {"username": order.username, "amount": order.amount, "status": order.status}
        async with store_errors(self.session, "delete order"):
            await self.session.execute(delete(Order).where(Order.order_id == order_id))
            await self.session.commit()
        await self.audit.log_action(actor, "delete_order", target=f"order:{order_id}", details=details)
