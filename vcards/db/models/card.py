from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from vcards.db.base import Base


class Card(Base):
    __tablename__ = "cards"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    card_number = Column(String(16), unique=True, nullable=False)
    last_four_digits = Column(String(4), nullable=False)
    cvv = Column(String(3), nullable=False)
    expiry_date = Column(DateTime(timezone=True), nullable=False)
    spending_limit = Column(Numeric(12, 2), nullable=False)
    current_spent = Column(Numeric(12, 2), nullable=False, default=0)
    merchant_lock = Column(String(255), nullable=True)
    name = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Removed by the FK cascade when the card is deleted.
    transactions = relationship(
        "Transaction",
        back_populates="card",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
