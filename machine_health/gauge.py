"""
Display mapping for health scores.

Everything here is a pure function of its arguments: a score (or tier) goes in,
gauge geometry and display tokens come out. Out-of-range scores are clamped
before any computation, never rejected.

The gauge is a semicircle. The needle points straight left at score 0 (-90 deg),
straight up at 50 (0 deg) and straight right at 100 (+90 deg). Arc angles use
SVG convention, where 180 deg is the left end of the dial and 360 deg the right.
"""

import math
from typing import Any, Dict, List

from machine_health.risk import CRITICAL_BELOW, WARNING_BELOW, RiskLevel, clamp_score, tier_of

__all__ = [
    "RiskLevel",
    "clamp_score",
    "tier_of",
    "needle_angle_degrees",
    "arc_sweep_degrees",
    "arc_path",
    "color_for",
    "label_for",
    "text_class_for",
    "badge_class_for",
    "severity_rank",
    "background_bands",
    "gauge_view",
]

DIAL_START = 180.0
DIAL_SWEEP = 180.0

_DISPLAY = {
    RiskLevel.CRITICAL: {"color": "hsl(0, 72%, 55%)", "label": "Critical", "text": "text-danger", "badge": "bg-danger"},
    RiskLevel.WARNING: {"color": "hsl(42, 95%, 55%)", "label": "Warning", "text": "text-warning", "badge": "bg-warning"},
    RiskLevel.HEALTHY: {"color": "hsl(152, 60%, 48%)", "label": "Healthy", "text": "text-success", "badge": "bg-success"},
}

# Visual severity order, worst first
_SEVERITY = [RiskLevel.CRITICAL, RiskLevel.WARNING, RiskLevel.HEALTHY]


def needle_angle_degrees(score: float) -> float:
    return -90.0 + (clamp_score(score) / 100.0) * 180.0


def arc_sweep_degrees(score: float) -> float:
    return (clamp_score(score) / 100.0) * DIAL_SWEEP


def color_for(tier: RiskLevel) -> str:
    return _DISPLAY[RiskLevel(tier)]["color"]


def label_for(tier: RiskLevel) -> str:
    return _DISPLAY[RiskLevel(tier)]["label"]


def text_class_for(tier: RiskLevel) -> str:
    return _DISPLAY[RiskLevel(tier)]["text"]


def badge_class_for(tier: RiskLevel) -> str:
    return _DISPLAY[RiskLevel(tier)]["badge"]


def severity_rank(tier: RiskLevel) -> int:
    """0 for critical, 1 for warning, 2 for healthy."""
    return _SEVERITY.index(RiskLevel(tier))


def _score_to_dial(score: float) -> float:
    return DIAL_START + (score / 100.0) * DIAL_SWEEP


def arc_path(start_angle: float, end_angle: float, size: float = 200) -> str:
    """SVG path for an arc of the dial between two angles (degrees)."""
    center = size / 2
    radius = size * 0.38
    start_rad = math.radians(start_angle)
    end_rad = math.radians(end_angle)
    x1 = center + radius * math.cos(start_rad)
    y1 = center + radius * math.sin(start_rad)
    x2 = center + radius * math.cos(end_rad)
    y2 = center + radius * math.sin(end_rad)
    large_arc = 1 if end_angle - start_angle > 180 else 0
    return f"M {x1:.2f} {y1:.2f} A {radius:.2f} {radius:.2f} 0 {large_arc} 1 {x2:.2f} {y2:.2f}"


def background_bands(size: float = 200) -> List[Dict[str, Any]]:
    """The three faint tier bands drawn behind the active arc."""
    edges = [0, CRITICAL_BELOW, WARNING_BELOW, 100]
    bands = []
    for tier, lo, hi in zip(_SEVERITY, edges, edges[1:]):
        bands.append(
            {
                "tier": tier.value,
                "start_angle": _score_to_dial(lo),
                "end_angle": _score_to_dial(hi),
                "path": arc_path(_score_to_dial(lo), _score_to_dial(hi), size),
                "color": color_for(tier),
            }
        )
    return bands


def gauge_view(score: float, size: float = 200) -> Dict[str, Any]:
    s = clamp_score(score)
    tier = tier_of(s)
    return {
        "score": s,
        "tier": tier.value,
        "label": label_for(tier),
        "color": color_for(tier),
        "text_class": text_class_for(tier),
        "badge_class": badge_class_for(tier),
        "severity": severity_rank(tier),
        "needle_angle": needle_angle_degrees(s),
        "arc_sweep": arc_sweep_degrees(s),
        "active_arc": arc_path(DIAL_START, DIAL_START + arc_sweep_degrees(s), size),
        "bands": background_bands(size),
    }
