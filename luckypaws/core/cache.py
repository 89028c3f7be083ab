import redis.asyncio as redis
from luckypaws.core.config import settings
import json
from loguru import logger
import time
from decimal import Decimal

class CacheEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, Decimal):
            return str(obj)
        return super().default(obj)

class CacheService:
    def __init__(self):
        self.redis = None
        self.enabled = False
        self.ttl = 300 # 5 minutes default
        self._last_connect_attempt = 0
        self._retry_interval = 60  # Retry every 60 seconds

        if settings.REDIS_URL:
            self._init_redis()

    def _init_redis(self):
        try:
            self.redis = redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
            self.enabled = True
            logger.info("Redis initialized successfully")
        except Exception as e:
            logger.warning(f"Failed to initialize Redis client: {e}")
            self.enabled = False
            self._last_connect_attempt = time.time()

    async def _ensure_connection(self):
        if self.enabled:
            return True
        if not settings.REDIS_URL:
            return False

        now = time.time()
        if now - self._last_connect_attempt < self._retry_interval:
            return False

        self._last_connect_attempt = now
        try:
            if not self.redis:
                self.redis = redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)

            await self.redis.ping()
            self.enabled = True
            logger.info("Redis reconnected successfully")
            return True
        except Exception as e:
            logger.error(f"Redis reconnection failed: {e}")
            self.enabled = False
            return False

    def _handle_error(self, op: str, e: Exception):
        # Connection loss disables the cache until the next reconnect window
        if "Connection refused" in str(e) or "Error 61" in str(e) or isinstance(e, redis.ConnectionError):
            logger.error(f"Redis connection lost: {e}. Disabling cache.")
            self.enabled = False
            self._last_connect_attempt = time.time()
        else:
            logger.error(f"Redis {op} error: {e}")

    async def get_json(self, key: str):
        if not await self._ensure_connection():
            return None
        try:
            data = await self.redis.get(key)
            if data:
                return json.loads(data, parse_float=Decimal)
        except Exception as e:
            self._handle_error("get", e)
        return None

    async def set_json(self, key: str, value, ttl: int = None):
        if not self.enabled:
            return
        try:
            await self.redis.setex(key, ttl or self.ttl, json.dumps(value, cls=CacheEncoder))
        except Exception as e:
            self._handle_error("set", e)

cache_service = CacheService()
