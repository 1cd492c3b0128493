from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey
from database import Base, new_id


class Payee(Base):
    __tablename__ = "payees"

    id = Column(String(36), primary_key=True, default=new_id)
    budget_id = Column(String(36), ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    is_transfer = Column(Boolean, default=False)  # "Transfer: <account>" counter-party
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
