import enum
from sqlalchemy import Column, String, Numeric, DateTime, Boolean, BigInteger, Text
from luckypaws.core.database import Base
from luckypaws.core.utils import utc_now, username_key_default

class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"

class PaymentMethod(str, enum.Enum):
    LIGHTNING = "lightning"
    ON_CHAIN = "on_chain"

class Order(Base):
    __tablename__ = "orders"

    order_id = Column(String(128), primary_key=True) # Speed payment id
    username = Column(String(64), nullable=False)
    username_key = Column(String(64), index=True, nullable=False, default=username_key_default) # Lower-cased username
    game = Column(String(64), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False) # USD
    btc = Column(String(32), nullable=False, default="N/A") # 8dp string or "N/A"
    method = Column(String(16), nullable=False, default=PaymentMethod.LIGHTNING.value)
    status = Column(String(16), nullable=False, default=OrderStatus.PENDING.value, index=True)
    invoice = Column(Text, nullable=True) # Payment request or on-chain address
    created = Column(DateTime, default=utc_now, nullable=False, index=True)
    expires_at = Column(BigInteger, nullable=True) # Epoch ms
    paid_manually = Column(Boolean, default=False, nullable=False)
    paid_at = Column(DateTime, nullable=True)

    # Operator acknowledgement
    read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
