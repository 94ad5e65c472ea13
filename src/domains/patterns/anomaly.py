"""Anomaly identification against fixed velocity baselines.

Rules are evaluated independently and in a fixed order:

  1. Velocity: hourly count against 3x / 10x the baseline
  2. Large transfers: share of amounts far above the batch average
  3. Rapid transfers: consecutive transactions under five minutes apart
  4. Concentration: nearly all funds going to one or two recipients
"""

from collections import Counter

import structlog

from .config import AnomalyRuleConfig, VelocityBaselineConfig
from .models import AnomalyFlag, AnomalyType, Severity, VelocityProfile
from .normalizer import NormalizedTransaction
from .temporal import inter_transaction_gaps

logger = structlog.get_logger()


def _velocity_flag(
    profile: VelocityProfile,
    baseline: VelocityBaselineConfig,
    cfg: AnomalyRuleConfig,
) -> AnomalyFlag | None:
    per_hour = profile.transactions_per_hour
    if per_hour > baseline.critical_multiplier * baseline.normal_tx_per_hour:
        return AnomalyFlag(
            type=AnomalyType.CRITICAL_VELOCITY,
            severity=Severity.CRITICAL,
            description=f"Critical transaction velocity: {per_hour} per hour",
            confidence=cfg.critical_velocity_confidence,
        )
    if per_hour > baseline.spike_multiplier * baseline.normal_tx_per_hour:
        return AnomalyFlag(
            type=AnomalyType.VELOCITY_SPIKE,
            severity=Severity.HIGH,
            description=f"Unusual transaction velocity: {per_hour} per hour",
            confidence=cfg.velocity_spike_confidence,
        )
    return None


def _large_transfer_flag(
    transactions: list[NormalizedTransaction],
    profile: VelocityProfile,
    cfg: AnomalyRuleConfig,
) -> AnomalyFlag | None:
    cutoff = profile.average_amount * cfg.large_transfer_multiplier
    large = sum(1 for tx in transactions if tx.amount > cutoff)
    if large <= len(transactions) * cfg.large_transfer_min_fraction:
        return None
    return AnomalyFlag(
        type=AnomalyType.LARGE_TRANSFERS,
        severity=Severity.MEDIUM,
        description=f"{large} transfers significantly above average amount",
        confidence=cfg.large_transfer_confidence,
    )


def detect_rapid_consecutive_transfers(
    transactions: list[NormalizedTransaction],
    cfg: AnomalyRuleConfig | None = None,
) -> tuple[int, float]:
    """Return (rapid pair count, confidence) for gaps under the rapid threshold."""
    cfg = cfg or AnomalyRuleConfig()
    if len(transactions) < 2:
        return 0, 0.0

    rapid = sum(1 for gap in inter_transaction_gaps(transactions) if gap < cfg.rapid_gap_ms)
    return rapid, min(cfg.max_confidence, rapid / len(transactions))


def _rapid_flag(
    transactions: list[NormalizedTransaction], cfg: AnomalyRuleConfig
) -> AnomalyFlag | None:
    count, confidence = detect_rapid_consecutive_transfers(transactions, cfg)
    if count == 0:
        return None
    return AnomalyFlag(
        type=AnomalyType.RAPID_CONSECUTIVE_TRANSFERS,
        severity=Severity.HIGH if count > cfg.rapid_high_severity_count else Severity.MEDIUM,
        description=f"{count} rapid consecutive transfers detected",
        confidence=confidence,
    )


def _concentration_flag(
    transactions: list[NormalizedTransaction], cfg: AnomalyRuleConfig
) -> AnomalyFlag | None:
    if len(transactions) < cfg.concentration_min_transactions:
        return None

    recipients = Counter(tx.recipient for tx in transactions)
    top_count = max(recipients.values())
    ratio = top_count / len(transactions)
    if ratio > cfg.concentration_ratio and len(recipients) < cfg.concentration_max_unique:
        return AnomalyFlag(
            type=AnomalyType.COUNTERPARTY_CONCENTRATION,
            severity=Severity.MEDIUM,
            description=(
                f"High concentration to few counterparties: "
                f"{len(recipients)} unique destinations, top share {ratio:.0%}"
            ),
            confidence=cfg.concentration_confidence,
        )
    return None


def identify_anomalies(
    transactions: list[NormalizedTransaction],
    profile: VelocityProfile,
    baseline: VelocityBaselineConfig | None = None,
    config: AnomalyRuleConfig | None = None,
) -> list[AnomalyFlag]:
    """Evaluate every anomaly rule and return the flags that fired, in rule order."""
    baseline = baseline or VelocityBaselineConfig()
    cfg = config or AnomalyRuleConfig()
    if not transactions:
        return []

    candidates = [
        _velocity_flag(profile, baseline, cfg),
        _large_transfer_flag(transactions, profile, cfg),
        _rapid_flag(transactions, cfg),
        _concentration_flag(transactions, cfg),
    ]
    flags = [flag for flag in candidates if flag is not None]

    if flags:
        logger.debug(
            "anomalies_identified",
            transaction_count=len(transactions),
            types=[f.type.value for f in flags],
        )
    return flags
