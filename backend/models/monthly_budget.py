from datetime import datetime, timezone

from sqlalchemy import Column, String, Date, DateTime, Numeric, ForeignKey, UniqueConstraint
from database import Base, new_id


class MonthlyBudget(Base):
    __tablename__ = "monthly_budgets"

    id = Column(String(36), primary_key=True, default=new_id)
    category_id = Column(String(36), ForeignKey("categories.id", ondelete="CASCADE"), nullable=False)
    month = Column(Date, nullable=False)  # first of the period's start month
    budgeted = Column(Numeric(12, 2), default=0)
    # Cache hints only, the live aggregate is authoritative
    activity = Column(Numeric(12, 2), default=0)
    available = Column(Numeric(12, 2), default=0)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("category_id", "month", name="uq_monthly_budget_category_month"),
    )
