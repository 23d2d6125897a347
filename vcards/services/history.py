from datetime import datetime, timedelta, timezone

from vcards.schemas.transaction import TransactionRange


def range_start(period: TransactionRange, now: datetime | None = None) -> datetime | None:
    """Lower bound for a history filter, at UTC midnight.

    Weeks start on Sunday and months on day 1; ``all`` has no bound.
    """
    if period == TransactionRange.ALL:
        return None
    now = now or datetime.now(timezone.utc)
    today = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    if period == TransactionRange.TODAY:
        return today
    if period == TransactionRange.WEEK:
        # weekday(): Monday=0 .. Sunday=6
        return today - timedelta(days=(today.weekday() + 1) % 7)
    return today.replace(day=1)
