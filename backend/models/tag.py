from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, ForeignKey
from database import Base, new_id


class Tag(Base):
    __tablename__ = "tags"

    id = Column(String(36), primary_key=True, default=new_id)
    budget_id = Column(String(36), ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    color = Column(String(20), default="#3B82F6")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
