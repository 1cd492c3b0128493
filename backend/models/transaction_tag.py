from sqlalchemy import Column, String, ForeignKey
from database import Base


class TransactionTag(Base):
    __tablename__ = "transaction_tags"

    transaction_id = Column(String(36), ForeignKey("transactions.id", ondelete="CASCADE"), primary_key=True)
    tag_id = Column(String(36), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)
