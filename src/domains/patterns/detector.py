"""Transaction pattern engine entry points.

`PatternDetector` wires the normalizer, profilers, anomaly rules and hawala
detectors together. It holds configuration only, so one instance can be
shared across concurrent callers.

Neither analysis ever raises: empty input and internal failures both
return the documented zero-state result. A failed hawala evaluation carries
its own recommendation text so it is not mistaken for an empty batch.
Failures are logged at error level with the traceback.
"""

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

import structlog

from .anomaly import identify_anomalies
from .config import PatternDetectionConfig, default_config
from .hawala import (
    detect_fan_in,
    detect_fan_out,
    detect_mirror_trading,
    detect_round_trip,
    detect_structuring,
)
from .models import (
    HawalaDetectionResult,
    HawalaPattern,
    PatternAnalysisResult,
    ScreeningResult,
    ScreeningStatus,
    VelocitySummary,
)
from .normalizer import normalize_transactions, timestamp_ms
from .risk import (
    apply_velocity_adjustment,
    calculate_confidence,
    calculate_velocity_risk_adjustment,
    determine_risk_level,
    risk_level_for_score,
    should_escalate,
)
from .scoring import (
    build_hawala_result,
    empty_hawala_result,
    evaluate_str_triggers,
    failed_hawala_result,
)
from .temporal import detect_temporal_patterns
from .velocity import compute_velocity_profile

logger = structlog.get_logger()

Reference = datetime | int | float | None


def default_analysis() -> PatternAnalysisResult:
    """Zero-state analysis for empty or unusable input."""
    return PatternAnalysisResult()


def _reference_ms(now: Reference) -> float:
    if now is None:
        now = datetime.now(UTC)
    return timestamp_ms(now)


class PatternDetector:
    """Velocity/anomaly analysis and hawala pattern detection."""

    def __init__(self, config: PatternDetectionConfig | None = None) -> None:
        self.config = config or default_config

    def analyze_patterns(
        self,
        transactions: Sequence[Any] | None,
        now: Reference = None,
    ) -> PatternAnalysisResult:
        """Velocity profile, timing patterns, anomaly flags and risk adjustment.

        Args:
            transactions: `Transaction` models or history mappings.
            now: Reference instant for the trailing windows (datetime or
                epoch-ms). Defaults to the current time.
        """
        if not transactions:
            return default_analysis()

        cfg = self.config
        try:
            now_ms = _reference_ms(now)
            txs = normalize_transactions(transactions, default_timestamp_ms=now_ms)

            profile = compute_velocity_profile(txs, now_ms, cfg.velocity)
            temporal = detect_temporal_patterns(txs, cfg.temporal)
            flags = identify_anomalies(txs, profile, cfg.velocity, cfg.anomaly)
            adjustment = calculate_velocity_risk_adjustment(
                profile, flags, cfg.velocity, cfg.risk
            )
            risk_level = determine_risk_level(profile, flags, cfg.velocity)
            confidence = calculate_confidence(len(txs), flags, cfg.risk)

            result = PatternAnalysisResult(
                has_anomalies=bool(flags),
                velocity_risk_adjustment=adjustment,
                velocity_profile=profile,
                temporal_patterns=temporal,
                anomaly_flags=flags,
                normal_behavior=not flags,
                risk_level=risk_level,
                confidence=confidence,
            )
        except Exception:
            logger.error(
                "pattern_analysis_failed",
                transaction_count=len(transactions),
                exc_info=True,
            )
            return default_analysis()

        logger.info(
            "pattern_analysis_complete",
            transaction_count=len(txs),
            has_anomalies=result.has_anomalies,
            anomaly_count=len(flags),
            velocity_risk_adjustment=adjustment,
            risk_level=risk_level.value,
            confidence=round(confidence, 4),
        )
        return result

    def detect_hawala_patterns(
        self, transactions: Sequence[Any] | None
    ) -> HawalaDetectionResult:
        """Run all five layering detectors and aggregate a 0-100 hawala score."""
        if not transactions:
            return empty_hawala_result()

        cfg = self.config
        try:
            txs = normalize_transactions(transactions)
            candidates = [
                detect_structuring(txs, cfg.structuring),
                detect_round_trip(txs, cfg.round_trip),
                detect_fan_out(txs, cfg.fan),
                detect_fan_in(txs, cfg.fan),
                detect_mirror_trading(txs, cfg.mirror),
            ]
            patterns: list[HawalaPattern] = [p for p in candidates if p is not None]
            result = build_hawala_result(patterns, cfg.scoring)
        except Exception:
            logger.error(
                "hawala_detection_failed",
                transaction_count=len(transactions),
                exc_info=True,
            )
            return failed_hawala_result()

        logger.info(
            "hawala_detection_complete",
            transaction_count=len(txs),
            flagged=result.flagged,
            hawala_score=result.hawala_score,
            patterns=[p.type.value for p in patterns],
        )
        return result

    def screen(
        self,
        transactions: Sequence[Any] | None,
        base_risk_score: float = 0.0,
        upstream_status: ScreeningStatus = ScreeningStatus.APPROVED,
        now: Reference = None,
    ) -> ScreeningResult:
        """Combine both analyses with an upstream AML risk score.

        The velocity adjustment is folded into `base_risk_score`; anomalous
        behavior with a high adjusted score escalates the screening, and STR/
        SAR triggers are evaluated on the outcome.
        """
        analysis = self.analyze_patterns(transactions, now)
        hawala = self.detect_hawala_patterns(transactions)

        risk_score = apply_velocity_adjustment(base_risk_score, analysis)
        if should_escalate(analysis, risk_score, self.config.scoring):
            status = ScreeningStatus.ESCALATED
        else:
            status = ScreeningStatus(upstream_status)

        anomaly_labels = [
            f"{flag.type.value} ({flag.severity.value})" for flag in analysis.anomaly_flags
        ]
        profile = analysis.velocity_profile
        triggers = evaluate_str_triggers(risk_score, hawala, self.config.scoring)

        result = ScreeningResult(
            status=status,
            risk_score=risk_score,
            risk_level=risk_level_for_score(risk_score),
            flags=anomaly_labels + [p.type.value for p in hawala.patterns],
            velocity=VelocitySummary(
                normal=not analysis.has_anomalies,
                anomalies=anomaly_labels,
                risk_adjustment=analysis.velocity_risk_adjustment,
                transactions_per_hour=profile.transactions_per_hour,
                transactions_per_day=profile.transactions_per_day,
                average_amount=profile.average_amount,
                total_volume=profile.total_volume,
            ),
            pattern_analysis=analysis,
            hawala=hawala,
            str_triggers=triggers,
            computed_at=datetime.now(UTC),
        )

        logger.info(
            "screening_complete",
            status=status.value,
            base_risk_score=base_risk_score,
            risk_score=risk_score,
            hawala_score=hawala.hawala_score,
            str_triggers=[t.value for t in triggers],
        )
        return result


_default_detector = PatternDetector()


def analyze_patterns(
    transactions: Sequence[Any] | None, now: Reference = None
) -> PatternAnalysisResult:
    """Module-level shortcut using the default configuration."""
    return _default_detector.analyze_patterns(transactions, now)


def detect_hawala_patterns(transactions: Sequence[Any] | None) -> HawalaDetectionResult:
    """Module-level shortcut using the default configuration."""
    return _default_detector.detect_hawala_patterns(transactions)
