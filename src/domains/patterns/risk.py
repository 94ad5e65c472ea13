"""Velocity risk adjustment, risk level and confidence.

The adjustment is a bounded delta (-20 to +50 points) that the AML screening
layer adds to its vendor risk score. Normal velocity earns a small reduction;
excess velocity and every anomaly flag add to it.
"""

from .config import HawalaScoringConfig, RiskAdjustmentConfig, VelocityBaselineConfig
from .models import AnomalyFlag, PatternAnalysisResult, RiskLevel, Severity, VelocityProfile


def calculate_velocity_risk_adjustment(
    profile: VelocityProfile,
    anomalies: list[AnomalyFlag],
    baseline: VelocityBaselineConfig | None = None,
    config: RiskAdjustmentConfig | None = None,
) -> float:
    baseline = baseline or VelocityBaselineConfig()
    cfg = config or RiskAdjustmentConfig()

    adjustment = 0.0
    per_day = profile.transactions_per_day

    if per_day <= baseline.normal_tx_per_day:
        adjustment += cfg.normal_velocity_reward

    ratio = per_day / baseline.normal_tx_per_day if baseline.normal_tx_per_day else 0.0
    if ratio > 1:
        adjustment += min(cfg.velocity_penalty_max, (ratio - 1) * cfg.velocity_penalty_per_ratio)

    for flag in anomalies:
        adjustment += cfg.severity_penalties.get(flag.severity.value, 0.0)

    return max(cfg.min_adjustment, min(cfg.max_adjustment, adjustment))


def determine_risk_level(
    profile: VelocityProfile,
    anomalies: list[AnomalyFlag],
    baseline: VelocityBaselineConfig | None = None,
) -> RiskLevel:
    """First match wins: anomaly severities, then raw daily velocity."""
    baseline = baseline or VelocityBaselineConfig()
    severities = [flag.severity for flag in anomalies]

    if Severity.CRITICAL in severities:
        return RiskLevel.CRITICAL
    if severities.count(Severity.HIGH) >= 2:
        return RiskLevel.HIGH

    per_day = profile.transactions_per_day
    if per_day > baseline.critical_multiplier * baseline.normal_tx_per_day:
        return RiskLevel.CRITICAL
    if per_day > baseline.spike_multiplier * baseline.normal_tx_per_day:
        return RiskLevel.HIGH

    if Severity.MEDIUM in severities:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def calculate_confidence(
    transaction_count: int,
    anomalies: list[AnomalyFlag],
    config: RiskAdjustmentConfig | None = None,
) -> float:
    """More data and more confident flags mean a more confident analysis."""
    cfg = config or RiskAdjustmentConfig()
    data_confidence = min(1.0, transaction_count / cfg.full_data_count)
    if anomalies:
        anomaly_confidence = sum(a.confidence for a in anomalies) / len(anomalies)
    else:
        anomaly_confidence = cfg.default_anomaly_confidence

    confidence = cfg.data_weight * data_confidence + cfg.anomaly_weight * anomaly_confidence
    return max(0.0, min(1.0, confidence))


# ---------------------------------------------------------------------------
# Screening integration
# ---------------------------------------------------------------------------


def apply_velocity_adjustment(base_score: float, analysis: PatternAnalysisResult) -> float:
    """Fold the velocity adjustment into a 0-100 screening score."""
    return max(0.0, min(100.0, base_score + analysis.velocity_risk_adjustment))


def risk_level_for_score(score: float) -> RiskLevel:
    """Map an adjusted 0-100 screening score onto a risk level."""
    if score >= 80:
        return RiskLevel.CRITICAL
    if score >= 60:
        return RiskLevel.HIGH
    if score >= 30:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def should_escalate(
    analysis: PatternAnalysisResult,
    adjusted_score: float,
    config: HawalaScoringConfig | None = None,
) -> bool:
    """Anomalous behavior on top of a high adjusted score goes to manual review."""
    cfg = config or HawalaScoringConfig()
    return analysis.has_anomalies and adjusted_score >= cfg.escalation_risk_score
