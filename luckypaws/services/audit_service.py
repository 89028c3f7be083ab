from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from luckypaws.models.audit import AuditLog
from loguru import logger
import json
from decimal import Decimal

class DecimalEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, Decimal):
            return str(obj)
        return super().default(obj)

class AuditService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def log_action(self, actor: str, action: str, target: str = None, details: dict = None, ip_address: str = None):
        """
        Record an audit log entry. Failures are logged, never raised.
        """
        try:
            details_str = json.dumps(details, ensure_ascii=False, cls=DecimalEncoder) if details else None

            log_entry = AuditLog(
                actor=actor,
                action=action,
                target=target,
                details=details_str,
                ip_address=ip_address
            )
            self.session.add(log_entry)
            await self.session.commit()
            logger.info(f"AUDIT: {actor} performed {action} on {target}")
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to write audit log: {e}")
