import enum

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, JSON, String

from vcards.db.base import Base


class AuditResource(str, enum.Enum):
    USER = "user"
    CARD = "card"
    TRANSACTION = "transaction"


class AuditAction(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    PURCHASE_APPROVED = "purchase_approved"
    PURCHASE_REJECTED = "purchase_rejected"


class Audit(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    # No FK: entries about a card outlive the card itself.
    card_id = Column(Integer, nullable=True)
    action = Column(String(50), nullable=False)
    resource = Column(String(100), nullable=False)
    details = Column(JSON, nullable=True)

    __table_args__ = (
        CheckConstraint("resource IN ('user', 'card', 'transaction')", name="ck_audit_logs_resource"),
        Index("ix_audit_logs_user_card", "user_id", "card_id"),
    )
