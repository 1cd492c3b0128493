from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime
from database import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)  # auth provider user id
    email = Column(String(255), nullable=True)
    currency_code = Column(String(3), default="USD")
    month_start_day = Column(Integer, default=1)  # 1..28
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
