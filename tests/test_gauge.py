"""Tests for the score -> tier / gauge geometry mapping."""

import pytest

from machine_health import gauge
from machine_health.gauge import (
    RiskLevel,
    arc_path,
    arc_sweep_degrees,
    background_bands,
    color_for,
    gauge_view,
    label_for,
    needle_angle_degrees,
    severity_rank,
    tier_of,
)


class TestTierOf:
    @pytest.mark.parametrize(
        "score,expected",
        [
            (0, RiskLevel.CRITICAL),
            (39, RiskLevel.CRITICAL),
            (40, RiskLevel.WARNING),
            (69, RiskLevel.WARNING),
            (70, RiskLevel.HEALTHY),
            (100, RiskLevel.HEALTHY),
        ],
    )
    def test_boundaries(self, score, expected):
        assert tier_of(score) is expected

    def test_every_score_in_range(self):
        for s in range(0, 101):
            tier = tier_of(s)
            if s < 40:
                assert tier is RiskLevel.CRITICAL
            elif s < 70:
                assert tier is RiskLevel.WARNING
            else:
                assert tier is RiskLevel.HEALTHY

    def test_out_of_range_scores_are_clamped(self):
        assert tier_of(-10) is RiskLevel.CRITICAL
        assert tier_of(150) is RiskLevel.HEALTHY


class TestNeedleAngle:
    def test_reference_points(self):
        assert needle_angle_degrees(0) == -90
        assert needle_angle_degrees(50) == 0
        assert needle_angle_degrees(100) == 90

    def test_scenario_score_85(self):
        assert needle_angle_degrees(85) == pytest.approx(63.0)

    @pytest.mark.parametrize("score", [-10, -1000, 150, 10**6])
    def test_never_leaves_the_dial(self, score):
        angle = needle_angle_degrees(score)
        assert -90 <= angle <= 90

    def test_clamps_before_computing(self):
        assert needle_angle_degrees(-10) == -90
        assert needle_angle_degrees(150) == 90

    def test_is_pure(self):
        assert needle_angle_degrees(37) == needle_angle_degrees(37)
        assert tier_of(37) == tier_of(37)


def test_arc_sweep_follows_score():
    assert arc_sweep_degrees(0) == 0
    assert arc_sweep_degrees(50) == 90
    assert arc_sweep_degrees(120) == 180


def test_display_tokens_are_distinct():
    colors = {color_for(t) for t in RiskLevel}
    assert len(colors) == 3
    assert label_for(RiskLevel.CRITICAL) == "Critical"
    assert color_for("healthy") == "hsl(152, 60%, 48%)"


def test_severity_order():
    assert severity_rank(RiskLevel.CRITICAL) < severity_rank(RiskLevel.WARNING) < severity_rank(RiskLevel.HEALTHY)


def test_arc_path_endpoints():
    # radius 76 around (100, 100): 180 deg is the left end, 360 deg the right end
    path = arc_path(180, 360, size=200)
    assert path.startswith("M 24.00 100.00 A 76.00 76.00 0 0 1 176.00")


def test_background_bands_follow_tier_thresholds():
    bands = background_bands()
    assert [b["tier"] for b in bands] == ["critical", "warning", "healthy"]
    assert bands[0]["start_angle"] == 180
    assert bands[0]["end_angle"] == pytest.approx(180 + 0.40 * 180)
    assert bands[1]["end_angle"] == pytest.approx(180 + 0.70 * 180)
    assert bands[2]["end_angle"] == 360


def test_gauge_view_for_out_of_range_score():
    view = gauge_view(150)
    assert view["score"] == 100
    assert view["tier"] == "healthy"
    assert view["needle_angle"] == 90
    assert view["arc_sweep"] == 180


def test_gauge_module_exports_single_tier_function():
    from machine_health import risk

    assert gauge.tier_of is risk.tier_of
