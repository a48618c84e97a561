"""Risk tiers and the score thresholds that define them.

``tier_of`` is the only place the thresholds live. The classifier, the
workflow, the history filter and the gauge all call it.
"""

from enum import Enum

CRITICAL_BELOW = 40
WARNING_BELOW = 70

MIN_SCORE = 0
MAX_SCORE = 100


class RiskLevel(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


def clamp_score(score: float) -> int:
    """Clamp a health score into [0, 100] and truncate it to an int."""
    return int(max(MIN_SCORE, min(MAX_SCORE, score)))


def tier_of(score: float) -> RiskLevel:
    s = clamp_score(score)
    if s < CRITICAL_BELOW:
        return RiskLevel.CRITICAL
    if s < WARNING_BELOW:
        return RiskLevel.WARNING
    return RiskLevel.HEALTHY
