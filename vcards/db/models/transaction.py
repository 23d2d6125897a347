import enum

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from vcards.db.base import Base


class TransactionStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    card_id = Column(Integer, ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    merchant_name = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False)
    description = Column(Text, nullable=True)
    failure_reason = Column(String(100), nullable=True)

    card = relationship("Card", back_populates="transactions")

    __table_args__ = (
        CheckConstraint("status IN ('success', 'failed')", name="ck_transactions_status"),
        Index("ix_transactions_card_created", "card_id", "created_at"),
        Index("ix_transactions_card_status", "card_id", "status"),
    )
