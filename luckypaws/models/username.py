import uuid
from sqlalchemy import Column, String, DateTime
from luckypaws.core.database import Base
from luckypaws.core.utils import utc_now

class Username(Base):
    __tablename__ = "usernames"

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    username = Column(String(64), unique=True, index=True, nullable=False)
    facebook_name = Column(String(255), nullable=False)
    page_code = Column(String(32), nullable=False)
    created_at = Column(DateTime, default=utc_now)
