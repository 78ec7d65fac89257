"""
Delivery-risk classification.

The warning threshold is an explicit argument everywhere; nothing here keeps
state.  Two recomputation paths exist:
  - reclassify()    threshold changed  -> only the bucket is recomputed
  - refresh_line()  a date was edited  -> days-remaining, then the bucket
"""
import logging
from datetime import date
from typing import Iterable, Optional

from models.order_line import OrderLine, RiskBucket, RISK_CRITICAL, RISK_WARNING, RISK_OK
from .dates import days_remaining

logger = logging.getLogger(__name__)

DEFAULT_WARNING_THRESHOLD = 10


def classify(days: int, threshold: int) -> RiskBucket:
    if days < 0:
        return RISK_CRITICAL
    if days <= threshold:
        return RISK_WARNING
    return RISK_OK


def reclassify(lines: Iterable[OrderLine], threshold: int) -> list[OrderLine]:
    """Return new records whose risk reflects threshold; nothing else changes."""
    result = []
    for line in lines:
        risk = classify(line.days_remaining, threshold)
        result.append(line if risk == line.risk else line.model_copy(update={"risk": risk}))
    return result


def refresh_line(
    line: OrderLine,
    threshold: int,
    today: Optional[date] = None,
) -> OrderLine:
    """
    Recompute days-remaining from the effective date, then the bucket.

    An effective date that cannot be parsed keeps the line's current
    days-remaining (the sheet's own value from import).
    """
    days = days_remaining(line.effective_date, today)
    if days is None:
        if line.effective_date:
            logger.warning(
                "Unparseable delivery date %r on %s/%s — keeping %d days",
                line.effective_date, line.po_number, line.item_number, line.days_remaining,
            )
        days = line.days_remaining
    return line.model_copy(update={
        "days_remaining": days,
        "risk": classify(days, threshold),
    })


def sort_by_urgency(lines: Iterable[OrderLine]) -> list[OrderLine]:
    """Most overdue first; ties keep their original order."""
    return sorted(lines, key=lambda line: line.days_remaining)


def count_by_risk(lines: Iterable[OrderLine]) -> dict[str, int]:
    counts = {RISK_CRITICAL: 0, RISK_WARNING: 0, RISK_OK: 0}
    for line in lines:
        counts[line.risk] += 1
    return counts
