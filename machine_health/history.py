"""
History search and dashboard aggregates over persisted analysis records.

The repository is read once per request; all filtering and aggregation happens
in memory on that snapshot.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from dateutil import parser

from machine_health.exceptions import ValidationError
from machine_health.repository import AnalysisRecordRepository
from machine_health.risk import RiskLevel, tier_of
from machine_health.schemas import AnalysisRecord

logger = logging.getLogger(__name__)


class RiskFilter(str, Enum):
    ALL = "all"
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"

    @classmethod
    def parse(cls, value: Optional[str]) -> "RiskFilter":
        if isinstance(value, cls):
            return value
        try:
            return cls((value or "all").strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown risk filter {value!r}. Expected one of: all, healthy, warning, critical") from None


def parse_iso_datetime(dt_str: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    try:
        dt = parser.isoparse(dt_str)
    except ValueError as e:
        raise ValidationError(f"Invalid date format: {e}") from e
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def filter_records(
    records: Iterable[AnalysisRecord],
    text_query: Optional[str] = "",
    risk_filter=RiskFilter.ALL,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[AnalysisRecord]:
    """AND-compose the text, risk and date filters. Order is preserved."""
    needle = (text_query or "").strip().lower()
    risk = RiskFilter.parse(risk_filter)
    matched = []
    for r in records:
        if needle and needle not in r.machine_type.value.lower():
            continue
        if risk is not RiskFilter.ALL and tier_of(r.health_score).value != risk.value:
            continue
        if start is not None and r.analysis_date < start:
            continue
        if end is not None and r.analysis_date > end:
            continue
        matched.append(r)
    return matched


def summarize(records: List[AnalysisRecord]) -> Dict[str, Any]:
    counts = {tier.value: 0 for tier in RiskLevel}
    for r in records:
        counts[tier_of(r.health_score).value] += 1
    average = None
    if records:
        average = round(sum(r.health_score for r in records) / len(records), 1)
    latest = max(records, key=lambda r: r.analysis_date) if records else None
    return {
        "total": len(records),
        "counts": counts,
        "average_health_score": average,
        "latest": latest.to_dict() if latest else None,
    }


def daily_trend(records: List[AnalysisRecord], days: int = 7, today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Average score per UTC day for the last ``days`` days, oldest first."""
    today = today or datetime.now(timezone.utc).date()
    buckets: Dict[date, List[int]] = {}
    for r in records:
        buckets.setdefault(r.analysis_date.astimezone(timezone.utc).date(), []).append(r.health_score)
    trend = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        scores = buckets.get(day)
        trend.append(
            {
                "date": day.isoformat(),
                "score": round(sum(scores) / len(scores), 1) if scores else None,
                "count": len(scores) if scores else 0,
            }
        )
    return trend


class HistoryQueryService:
    def __init__(self, repository: AnalysisRecordRepository):
        self.repository = repository

    def search(
        self,
        user_id: str,
        text_query: Optional[str] = "",
        risk_filter=RiskFilter.ALL,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
    ) -> List[AnalysisRecord]:
        risk = RiskFilter.parse(risk_filter)
        start = parse_iso_datetime(start_time) if start_time else None
        end = parse_iso_datetime(end_time) if end_time else None
        snapshot = self.repository.list_by_user(user_id)
        matched = filter_records(snapshot, text_query, risk, start, end)
        logger.debug("History search for %s: %d of %d records", user_id, len(matched), len(snapshot))
        return matched

    def dashboard(self, user_id: str, days: int = 7, today: Optional[date] = None) -> Dict[str, Any]:
        snapshot = self.repository.list_by_user(user_id)
        summary = summarize(snapshot)
        summary["trend"] = daily_trend(snapshot, days=days, today=today)
        return summary
