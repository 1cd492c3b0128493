from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from database import Base, new_id


class PayeeCategoryRule(Base):
    __tablename__ = "payee_category_rules"

    id = Column(String(36), primary_key=True, default=new_id)
    budget_id = Column(String(36), ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False)
    payee_name = Column(String(200), nullable=False)  # lowercase, normalized
    category_id = Column(String(36), ForeignKey("categories.id", ondelete="CASCADE"), nullable=False)
    usage_count = Column(Integer, default=1)
    last_used_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("budget_id", "payee_name", name="uq_payee_rule_budget_payee"),
    )
