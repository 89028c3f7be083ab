from decimal import Decimal
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Lucky Paw's Fishing Room"
    DATABASE_URL: str = "sqlite+aiosqlite:///./luckypaws.db"
    REDIS_URL: str = "" # Optional, enables exchange rate caching
    SENTRY_DSN: str = "" # Optional
    TIMEZONE: str = "UTC"
    LOG_LEVEL: str = "INFO"

    # Speed payment provider
    SPEED_API_BASE_URL: str = "https://api.tryspeed.com"
    SPEED_SECRET_KEY: str = ""
    SPEED_API_VERSION: str = "2022-10-15"
    SPEED_WEBHOOK_SECRET: str = ""
    PAYMENT_SUCCESS_URL: str = "https://luckypaws.vercel.app/receipt"
    PAYMENT_CANCEL_URL: str = "https://luckypaws.vercel.app"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Spot price fallback
    PRICE_API_URL: str = "https://api.coingecko.com/api/v3/simple/price?ids=bitcoin&vs_currencies=usd"
    PRICE_CACHE_TTL: int = 60

    # Cashouts
    CASHOUT_DAILY_LIMIT: Decimal = Decimal("300")
    CASHOUT_WINDOW_HOURS: int = 24

    # Server-side reconciliation of pending orders
    RECONCILE_SWEEP_ENABLED: bool = False
    RECONCILE_INTERVAL_SECONDS: int = 60

    ADMIN_API_KEY: str = "" # Empty disables the admin header check
    USERNAME_MAX_ATTEMPTS: int = 10000

    class Config:
        env_file = ".env"

settings = Settings()
