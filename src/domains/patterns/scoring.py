"""Hawala score aggregation, recommendations and STR/SAR triggers."""

import math

from .config import HawalaScoringConfig
from .models import HawalaDetectionResult, HawalaPattern, STRTrigger

NO_TRANSACTIONS_RECOMMENDATION = "No transactions to analyze. No hawala assessment performed."
FAILED_ASSESSMENT_RECOMMENDATION = (
    "Hawala assessment could not be completed for this batch. "
    "Review the transaction records and rerun the assessment."
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def aggregate_hawala_score(
    patterns: list[HawalaPattern],
    config: HawalaScoringConfig | None = None,
) -> int:
    """Sum of confidences x 40, capped at 100.

    Three near-certain patterns (3 x 0.95 x 40 = 114) saturate the score.
    """
    cfg = config or HawalaScoringConfig()
    raw = sum(p.confidence for p in patterns) * cfg.points_per_confidence
    return max(0, min(cfg.max_score, _round_half_up(raw)))


def build_recommendation(
    score: int,
    patterns: list[HawalaPattern],
    config: HawalaScoringConfig | None = None,
) -> str:
    cfg = config or HawalaScoringConfig()
    if score < cfg.enhanced_monitoring_min or not patterns:
        return "No hawala/layering patterns detected. Continue routine monitoring."

    names = ", ".join(p.type.value for p in patterns)
    if score >= cfg.str_filing_min:
        return (
            f"High-confidence hawala/layering activity ({names}); hawala score {score}/100. "
            f"Trigger the STR/SAR filing workflow immediately."
        )
    if score >= cfg.escalation_min:
        return (
            f"Probable hawala/layering activity ({names}); hawala score {score}/100. "
            f"Escalate to a senior compliance officer for review."
        )
    return (
        f"Possible hawala/layering indicators ({names}); hawala score {score}/100. "
        f"Flag the entity for enhanced monitoring."
    )


def build_hawala_result(
    patterns: list[HawalaPattern],
    config: HawalaScoringConfig | None = None,
) -> HawalaDetectionResult:
    score = aggregate_hawala_score(patterns, config)
    return HawalaDetectionResult(
        flagged=score > 0,
        hawala_score=score,
        patterns=patterns,
        recommendation=build_recommendation(score, patterns, config),
    )


def empty_hawala_result() -> HawalaDetectionResult:
    return HawalaDetectionResult(recommendation=NO_TRANSACTIONS_RECOMMENDATION)


def failed_hawala_result() -> HawalaDetectionResult:
    """Zero-state result for a batch whose evaluation failed."""
    return HawalaDetectionResult(recommendation=FAILED_ASSESSMENT_RECOMMENDATION)


def evaluate_str_triggers(
    adjusted_risk_score: float,
    hawala: HawalaDetectionResult,
    config: HawalaScoringConfig | None = None,
) -> list[STRTrigger]:
    """STR/SAR filing triggers raised by a screening outcome."""
    cfg = config or HawalaScoringConfig()
    triggers: list[STRTrigger] = []
    if adjusted_risk_score >= cfg.aml_score_str_threshold:
        triggers.append(STRTrigger.AML_SCORE_HIGH)
    if hawala.hawala_score >= cfg.hawala_score_str_threshold:
        triggers.append(STRTrigger.HAWALA_SCORE_HIGH)
    return triggers
