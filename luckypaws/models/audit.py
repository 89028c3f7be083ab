from sqlalchemy import Column, Integer, String, DateTime, Text
from luckypaws.core.database import Base
from luckypaws.core.utils import utc_now

class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    actor = Column(String, nullable=True) # "admin", "customer", "system"
    action = Column(String, nullable=False, index=True) # e.g., "mark_paid", "delete_order"
    target = Column(String, nullable=True) # e.g., "order:pi_123", "cashout:abc"
    details = Column(Text, nullable=True) # JSON
    ip_address = Column(String, nullable=True)
    created_at = Column(DateTime, default=utc_now)
