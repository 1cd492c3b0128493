from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime
from database import Base, new_id


class Budget(Base):
    __tablename__ = "budgets"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    currency_code = Column(String(3), default="USD")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
