from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Boolean, Numeric, ForeignKey
from database import Base, new_id

TARGET_TYPES = ("none", "target_balance", "target_balance_by_date", "monthly_spending",
                "weekly_contribution", "monthly_contribution")


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    category_group_id = Column(String(36), ForeignKey("category_groups.id", ondelete="CASCADE"),
                               nullable=False, index=True)
    name = Column(String(200), nullable=False)
    # Goal tracking, display only
    target_type = Column(String(30), nullable=True)
    target_amount = Column(Numeric(12, 2), nullable=True)
    target_date = Column(Date, nullable=True)
    is_hidden = Column(Boolean, default=False)
    sort_order = Column(Integer, default=0)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
