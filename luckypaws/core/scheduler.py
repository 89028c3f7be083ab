from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger
from luckypaws.core.database import AsyncSessionLocal
from luckypaws.core.config import settings
from luckypaws.core.errors import ServiceError
from luckypaws.core.utils import epoch_ms, utc_now
from luckypaws.models.order import OrderStatus
from luckypaws.services.order_service import OrderService

# Initialize Scheduler
scheduler = AsyncIOScheduler(timezone=settings.TIMEZONE)

async def reconcile_pending_job(session_factory=AsyncSessionLocal, client=None) -> int:
    """
    Poll the provider for every pending order whose invoice is still valid.
    Covers customers who closed the page before their payment landed.
    Returns the number of orders that turned paid.
    """
    async with session_factory() as session:
        service = OrderService(session, client=client)
        orders = await service.list_outstanding(epoch_ms(utc_now()))

        paid = 0
        for order in orders:
            try:
                result = await service.reconcile_by_polling(order.order_id)
            except ServiceError as e:
                logger.warning(f"Sweep: reconcile of {order.order_id} failed: {e.message}")
                continue
            if result.status == OrderStatus.PAID.value:
                paid += 1

    if orders:
        logger.info(f"Reconciliation sweep checked {len(orders)} pending orders, {paid} paid.")
    return paid

def start_scheduler():
    scheduler.add_job(
        reconcile_pending_job, 'interval',
        seconds=settings.RECONCILE_INTERVAL_SECONDS,
        id="reconcile_pending",
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(f"Reconciliation sweep every {settings.RECONCILE_INTERVAL_SECONDS}s")

def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
