"""Tests for hawala score aggregation and STR/SAR triggers."""

from src.domains.patterns.models import HawalaDetectionResult, HawalaPattern, HawalaPatternType, STRTrigger
from src.domains.patterns.scoring import (
    NO_TRANSACTIONS_RECOMMENDATION,
    aggregate_hawala_score,
    build_hawala_result,
    build_recommendation,
    empty_hawala_result,
    evaluate_str_triggers,
)


def _pattern(confidence: float, pattern_type=HawalaPatternType.STRUCTURING) -> HawalaPattern:
    return HawalaPattern(type=pattern_type, confidence=confidence, description="test")


class TestAggregateScore:
    def test_single_pattern(self):
        assert aggregate_hawala_score([_pattern(0.75)]) == 30

    def test_saturates_at_100(self):
        assert aggregate_hawala_score([_pattern(0.95)] * 3) == 100

    def test_no_patterns(self):
        assert aggregate_hawala_score([]) == 0

    def test_rounds_half_up(self):
        # 0.8125 x 40 = 32.5
        assert aggregate_hawala_score([_pattern(0.8125)]) == 33


class TestRecommendation:
    def test_no_patterns(self):
        text = build_recommendation(0, [])
        assert "Continue routine monitoring" in text

    def test_enhanced_monitoring_tier(self):
        text = build_recommendation(30, [_pattern(0.75)])
        assert "enhanced monitoring" in text
        assert "STRUCTURING" in text

    def test_escalation_tier(self):
        patterns = [_pattern(0.8), _pattern(0.75, HawalaPatternType.FAN_OUT)]
        text = build_recommendation(62, patterns)
        assert "senior compliance officer" in text
        assert "STRUCTURING, FAN_OUT" in text

    def test_str_filing_tier(self):
        text = build_recommendation(80, [_pattern(0.95)] * 2 + [_pattern(0.2)])
        assert "STR/SAR" in text


class TestHawalaResult:
    def test_flagged_result(self):
        result = build_hawala_result([_pattern(0.75)])
        assert result.flagged is True
        assert result.hawala_score == 30
        assert len(result.patterns) == 1

    def test_clean_result(self):
        result = build_hawala_result([])
        assert result.flagged is False
        assert result.hawala_score == 0
        assert "Continue routine monitoring" in result.recommendation

    def test_empty_result(self):
        result = empty_hawala_result()
        assert result.flagged is False
        assert result.hawala_score == 0
        assert result.patterns == []
        assert result.recommendation == NO_TRANSACTIONS_RECOMMENDATION


class TestSTRTriggers:
    def test_both_triggers(self):
        hawala = HawalaDetectionResult(flagged=True, hawala_score=80, recommendation="x")
        assert evaluate_str_triggers(70, hawala) == [
            STRTrigger.AML_SCORE_HIGH,
            STRTrigger.HAWALA_SCORE_HIGH,
        ]

    def test_below_thresholds(self):
        hawala = HawalaDetectionResult(flagged=True, hawala_score=79, recommendation="x")
        assert evaluate_str_triggers(69.9, hawala) == []
