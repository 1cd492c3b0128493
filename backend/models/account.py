from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, Numeric, ForeignKey
from database import Base, new_id

ACCOUNT_TYPES = ("checking", "savings", "credit_card", "cash", "investment", "loan", "mortgage",
                 "line_of_credit", "asset", "tracking")


class Account(Base):
    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=new_id)
    budget_id = Column(String(36), ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    account_type = Column(String(30), nullable=False)  # one of ACCOUNT_TYPES
    # Cached sum of this account's transactions, written only by the ledger service
    balance = Column(Numeric(12, 2), default=0, nullable=False)
    is_on_budget = Column(Boolean, default=True)
    closed = Column(Boolean, default=False)
    note = Column(Text, nullable=True)
    sort_order = Column(Integer, default=0)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
