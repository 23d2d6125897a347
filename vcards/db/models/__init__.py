from .user import User
from .card import Card
from .transaction import Transaction, TransactionStatus
from .audit import Audit, AuditAction, AuditResource

__all__ = [
    "User",
    "Card",
    "Transaction",
    "TransactionStatus",
    "Audit",
    "AuditAction",
    "AuditResource",
]
