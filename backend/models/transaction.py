from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, Date, DateTime, Boolean, Numeric, ForeignKey
from database import Base, new_id


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=new_id)
    account_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True, index=True)
    payee_id = Column(String(36), ForeignKey("payees.id"), nullable=True)
    transfer_account_id = Column(String(36), ForeignKey("accounts.id"), nullable=True)
    transfer_transaction_id = Column(String(36), nullable=True)  # the other leg of a transfer
    date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)  # positive = inflow, negative = outflow
    memo = Column(Text, nullable=True)
    cleared = Column(Boolean, default=False)
    approved = Column(Boolean, default=True)
    flag_color = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
