import sys
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI
from loguru import logger

from luckypaws.core.config import settings
from luckypaws.core.database import engine, Base
from luckypaws.core.errors import add_error_handlers
from luckypaws.core.scheduler import start_scheduler, stop_scheduler
from luckypaws.models.order import Order
from luckypaws.models.cashout import Cashout
from luckypaws.models.username import Username
from luckypaws.models.audit import AuditLog
from luckypaws.services.speed_client import speed_client
from luckypaws.api import admin, customer, payments, webhook

logger.remove()
logger.add(sys.stderr, level=settings.LOG_LEVEL)

# Initialize Sentry
if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=1.0,
        profiles_sample_rate=1.0,
    )

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting up...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if settings.RECONCILE_SWEEP_ENABLED:
        start_scheduler()

    yield

    # Shutdown
    logger.info("Shutting down...")
    stop_scheduler()
    await speed_client.aclose()

app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)
add_error_handlers(app)

app.include_router(payments.router, prefix="/api", tags=["Payments"])
app.include_router(customer.router, prefix="/api", tags=["Customer"])
app.include_router(webhook.router, prefix="/api", tags=["Webhook"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])

@app.get("/")
async def root():
    return {"message": f"{settings.PROJECT_NAME} Running"}
