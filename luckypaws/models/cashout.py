import uuid
from sqlalchemy import Column, String, Numeric, DateTime, Text, Index
from luckypaws.core.database import Base
from luckypaws.core.utils import utc_now, username_key_default

def _new_id() -> str:
    return uuid.uuid4().hex

class Cashout(Base):
    __tablename__ = "cashouts"
    __table_args__ = (
        # Limit guard query: username key + status + time range
        Index("ix_cashouts_username_key_status_time", "username_key", "status", "time"),
    )

    id = Column(String(32), primary_key=True, default=_new_id)
    username = Column(String(64), nullable=False)
    username_key = Column(String(64), nullable=False, default=username_key_default) # Lower-cased username
    amount_usd = Column(Numeric(12, 2), nullable=False)
    time = Column(DateTime, default=utc_now, nullable=False, index=True)
    status = Column(String(16), default="completed", nullable=False) # completed, failed
    type = Column(String(32), default="cashout", nullable=False) # cashout, cashout_lightning
    description = Column(Text, nullable=True)
    added_by = Column(String(64), nullable=True)
