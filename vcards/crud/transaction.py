from datetime import datetime
from decimal import Decimal

from sqlalchemy import Select, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vcards.db.models import Card, Transaction, TransactionStatus
from vcards.core.logging_config import get_logger

logger = get_logger(__name__)


def _user_scope(
    stmt: Select,
    user_id: int,
    card_id: int | None,
    status: str | None,
    since: datetime | None,
) -> Select:
    stmt = stmt.join(Card, Card.id == Transaction.card_id).where(Card.user_id == user_id)
    if card_id is not None:
        stmt = stmt.where(Transaction.card_id == card_id)
    if status is not None:
        stmt = stmt.where(Transaction.status == status)
    if since is not None:
        stmt = stmt.where(Transaction.created_at >= since)
    return stmt


class TransactionCRUD:
    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        card_id: int,
        amount: Decimal,
        merchant_name: str,
        status: TransactionStatus,
        description: str | None = None,
        failure_reason: str | None = None,
    ) -> Transaction:
        """Append a transaction record and commit, together with any pending card update."""
        transaction = Transaction(
            card_id=card_id,
            amount=amount,
            merchant_name=merchant_name,
            status=status.value,
            description=description,
            failure_reason=failure_reason,
        )
        db.add(transaction)
        await db.commit()
        await db.refresh(transaction)
        logger.info(
            "Transaction recorded",
            extra={
                "details": {
                    "event": "transaction_create",
                    "extra": {
                        "transaction_id": transaction.id,
                        "card_id": card_id,
                        "status": status.value,
                        "amount": str(amount),
                        "reason": failure_reason,
                    },
                }
            },
        )
        return transaction

    @staticmethod
    async def list_for_card(db: AsyncSession, card_id: int) -> list[Transaction]:
        result = await db.execute(
            select(Transaction)
            .where(Transaction.card_id == card_id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        )
        transactions = list(result.scalars().all())
        logger.debug(
            "Listed transactions for card",
            extra={"details": {"event": "transaction_list_card", "extra": {"card_id": card_id, "count": len(transactions)}}},
        )
        return transactions

    @staticmethod
    async def list_by_user(
        db: AsyncSession,
        user_id: int,
        *,
        card_id: int | None = None,
        status: str | None = None,
        since: datetime | None = None,
    ) -> list[tuple[Transaction, str]]:
        """Return ``(transaction, card last four digits)`` pairs, newest first."""
        stmt = _user_scope(select(Transaction, Card.last_four_digits), user_id, card_id, status, since)
        result = await db.execute(stmt.order_by(Transaction.created_at.desc(), Transaction.id.desc()))
        rows = [(row[0], row[1]) for row in result.all()]
        logger.debug(
            "Listed transactions for user",
            extra={
                "details": {
                    "event": "transaction_list",
                    "extra": {"user_id": user_id, "card_id": card_id, "status": status, "count": len(rows)},
                }
            },
        )
        return rows

    @staticmethod
    async def summarize(
        db: AsyncSession,
        user_id: int,
        *,
        card_id: int | None = None,
        status: str | None = None,
        since: datetime | None = None,
    ) -> dict:
        success = TransactionStatus.SUCCESS.value
        failed = TransactionStatus.FAILED.value
        stmt = _user_scope(
            select(
                func.count(Transaction.id).label("total"),
                func.coalesce(func.sum(case((Transaction.status == success, 1), else_=0)), 0).label("successful"),
                func.coalesce(func.sum(case((Transaction.status == failed, 1), else_=0)), 0).label("failed"),
                func.coalesce(
                    func.sum(case((Transaction.status == success, Transaction.amount), else_=0)), 0
                ).label("total_amount"),
            ),
            user_id,
            card_id,
            status,
            since,
        )
        result = await db.execute(stmt)
        row = dict(result.one()._mapping)
        summary = {
            "total": int(row["total"]),
            "successful": int(row["successful"]),
            "failed": int(row["failed"]),
            "total_amount": Decimal(str(row["total_amount"])).quantize(Decimal("0.01")),
        }
        logger.debug(
            "Transaction summary generated",
            extra={
                "details": {
                    "event": "transaction_summary",
                    "extra": {"user_id": user_id, "card_id": card_id, "total": summary["total"]},
                }
            },
        )
        return summary
