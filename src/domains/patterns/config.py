"""Transaction pattern and hawala detection configuration.

Every baseline, multiplier, window and tolerance used by the engine lives
here. The engine never learns or persists baselines; changing a threshold
means changing configuration.

References:
- FATF, "The Role of Hawala and Other Similar Service Providers in Money
  Laundering and Terrorist Financing" (2013): layering typologies
- 31 USC § 5324: structuring transactions to evade reporting requirements
- FinCEN Advisory FIN-2014-A007: monitoring unusual transaction velocity
"""

import os
from dataclasses import dataclass, field

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS
WEEK_MS = 7 * DAY_MS
MINUTE_MS = 60 * 1000


@dataclass
class VelocityBaselineConfig:
    """Expected transaction counts for a normal entity."""

    normal_tx_per_hour: int = 5
    normal_tx_per_day: int = 50
    normal_tx_per_week: int = 350

    # 3x normal = spike, 10x normal = critical
    spike_multiplier: float = 3.0
    critical_multiplier: float = 10.0

    # IANA zone used to bucket peak hour / peak day. None = host local time.
    reporting_timezone: str | None = None


@dataclass
class TemporalPatternConfig:
    """Gap-analysis thresholds for timing classification."""

    # Clustering: share of gaps below 0.5x the mean gap must exceed 30%
    clustering_gap_factor: float = 0.5
    clustering_min_fraction: float = 0.30

    # Spikes: share of gaps above 3x the mean gap must exceed 20%
    spike_gap_factor: float = 3.0
    spike_min_fraction: float = 0.20

    # Rhythmic: std-dev of gaps below 0.3x the mean gap
    rhythmic_cv_max: float = 0.30

    irregular_confidence: float = 0.5
    max_confidence: float = 0.95


@dataclass
class AnomalyRuleConfig:
    """Anomaly flag rules evaluated against the velocity profile."""

    large_transfer_multiplier: float = 5.0
    large_transfer_min_fraction: float = 0.10

    rapid_gap_ms: int = 5 * MINUTE_MS
    # More rapid pairs than this -> HIGH instead of MEDIUM
    rapid_high_severity_count: int = 5

    concentration_ratio: float = 0.80
    concentration_max_unique: int = 3
    # A lone transaction is trivially "concentrated"
    concentration_min_transactions: int = 2

    critical_velocity_confidence: float = 0.95
    velocity_spike_confidence: float = 0.90
    large_transfer_confidence: float = 0.85
    concentration_confidence: float = 0.85
    max_confidence: float = 0.95


@dataclass
class RiskAdjustmentConfig:
    """Bounded score adjustment fed back to the AML screening score."""

    normal_velocity_reward: float = -10.0
    velocity_penalty_per_ratio: float = 20.0
    velocity_penalty_max: float = 40.0

    severity_penalties: dict[str, float] = field(
        default_factory=lambda: {
            "CRITICAL": 50.0,
            "HIGH": 30.0,
            "MEDIUM": 15.0,
            "LOW": 5.0,
        }
    )

    min_adjustment: float = -20.0
    max_adjustment: float = 50.0

    # confidence = data_weight * min(1, n / full_data_count)
    #            + anomaly_weight * mean(flag confidence)
    data_weight: float = 0.6
    anomaly_weight: float = 0.4
    full_data_count: int = 100
    default_anomaly_confidence: float = 0.5


@dataclass
class StructuringConfig:
    """Sub-threshold splitting within a rolling window.

    Regulatory basis: 31 USC § 5324, structuring to evade the $10,000
    currency transaction reporting threshold. The engine is
    currency-unit agnostic.
    """

    enabled: bool = True
    reporting_threshold: float = 10_000.0
    window_ms: int = DAY_MS
    min_transactions: int = 2
    base_confidence: float = 0.6
    confidence_per_transaction: float = 0.05
    max_confidence: float = 0.95


@dataclass
class RoundTripConfig:
    """Funds sent out and returned to the originator."""

    enabled: bool = True
    amount_tolerance: float = 0.10
    window_ms: int = 48 * HOUR_MS
    return_types: list[str] = field(default_factory=lambda: ["return", "incoming"])
    outbound_excluded_type: str = "return"
    typed_confidence: float = 0.85
    untyped_confidence: float = 0.80


@dataclass
class FanPatternConfig:
    """Fan-out (dispersal) and fan-in (consolidation) bursts."""

    fan_out_enabled: bool = True
    fan_in_enabled: bool = True
    window_ms: int = HOUR_MS
    min_unique_counterparties: int = 5
    base_confidence: float = 0.5
    confidence_per_bit: float = 0.1
    max_confidence: float = 0.95


@dataclass
class MirrorTradingConfig:
    """Near-identical offsetting legs booked in different jurisdictions."""

    enabled: bool = True
    amount_tolerance: float = 0.05
    window_ms: int = DAY_MS
    confidence: float = 0.75


@dataclass
class HawalaScoringConfig:
    """Composite hawala score and recommendation tiers."""

    points_per_confidence: float = 40.0
    max_score: int = 100
    enhanced_monitoring_min: int = 1
    escalation_min: int = 50
    str_filing_min: int = 80

    # STR/SAR triggers used by combined screening
    aml_score_str_threshold: float = 70.0
    hawala_score_str_threshold: float = 80.0
    escalation_risk_score: float = 70.0


@dataclass
class PatternDetectionConfig:
    """Top-level engine configuration."""

    velocity: VelocityBaselineConfig = field(default_factory=VelocityBaselineConfig)
    temporal: TemporalPatternConfig = field(default_factory=TemporalPatternConfig)
    anomaly: AnomalyRuleConfig = field(default_factory=AnomalyRuleConfig)
    risk: RiskAdjustmentConfig = field(default_factory=RiskAdjustmentConfig)
    structuring: StructuringConfig = field(default_factory=StructuringConfig)
    round_trip: RoundTripConfig = field(default_factory=RoundTripConfig)
    fan: FanPatternConfig = field(default_factory=FanPatternConfig)
    mirror: MirrorTradingConfig = field(default_factory=MirrorTradingConfig)
    scoring: HawalaScoringConfig = field(default_factory=HawalaScoringConfig)

    @classmethod
    def from_env(cls) -> "PatternDetectionConfig":
        """Load config with env var overrides (PATTERNS_ prefix)."""
        config = cls()

        # Velocity baselines
        if v := os.getenv("PATTERNS_NORMAL_TX_PER_HOUR"):
            config.velocity.normal_tx_per_hour = int(v)
        if v := os.getenv("PATTERNS_NORMAL_TX_PER_DAY"):
            config.velocity.normal_tx_per_day = int(v)
        if v := os.getenv("PATTERNS_NORMAL_TX_PER_WEEK"):
            config.velocity.normal_tx_per_week = int(v)
        if v := os.getenv("PATTERNS_SPIKE_MULTIPLIER"):
            config.velocity.spike_multiplier = float(v)
        if v := os.getenv("PATTERNS_CRITICAL_MULTIPLIER"):
            config.velocity.critical_multiplier = float(v)
        if v := os.getenv("PATTERNS_REPORTING_TIMEZONE"):
            config.velocity.reporting_timezone = v

        # Hawala detectors
        if v := os.getenv("PATTERNS_STRUCTURING_THRESHOLD"):
            config.structuring.reporting_threshold = float(v)
        if v := os.getenv("PATTERNS_STRUCTURING_ENABLED"):
            config.structuring.enabled = v.lower() in ("true", "1", "yes")
        if v := os.getenv("PATTERNS_ROUND_TRIP_TOLERANCE"):
            config.round_trip.amount_tolerance = float(v)
        if v := os.getenv("PATTERNS_FAN_MIN_COUNTERPARTIES"):
            config.fan.min_unique_counterparties = int(v)
        if v := os.getenv("PATTERNS_MIRROR_TOLERANCE"):
            config.mirror.amount_tolerance = float(v)

        # STR/SAR triggers
        if v := os.getenv("PATTERNS_HAWALA_STR_THRESHOLD"):
            config.scoring.hawala_score_str_threshold = float(v)
        if v := os.getenv("PATTERNS_AML_STR_THRESHOLD"):
            config.scoring.aml_score_str_threshold = float(v)

        return config


# Module-level default instance
default_config = PatternDetectionConfig()
