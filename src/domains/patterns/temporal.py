"""Temporal pattern analysis over inter-transaction gaps.

Classifies the timing of a transaction history as clustered, spiky,
rhythmic or irregular. Clustering and spikes may co-occur; IRREGULAR is
only reported when nothing else fires.
"""

import math

from .config import TemporalPatternConfig
from .models import TemporalPattern, TemporalPatternType
from .normalizer import NormalizedTransaction, sorted_by_time


def inter_transaction_gaps(transactions: list[NormalizedTransaction]) -> list[float]:
    """Gaps in ms between consecutive transactions, oldest first."""
    ordered = sorted_by_time(transactions)
    return [
        ordered[i].timestamp_ms - ordered[i - 1].timestamp_ms
        for i in range(1, len(ordered))
    ]


def gap_statistics(gaps: list[float]) -> tuple[float, float]:
    """Mean and population standard deviation of the gaps."""
    if not gaps:
        return 0.0, 0.0
    mean = sum(gaps) / len(gaps)
    variance = sum((g - mean) ** 2 for g in gaps) / len(gaps)
    return mean, math.sqrt(variance)


def detect_temporal_patterns(
    transactions: list[NormalizedTransaction],
    config: TemporalPatternConfig | None = None,
) -> list[TemporalPattern]:
    cfg = config or TemporalPatternConfig()
    if len(transactions) < 2:
        return []

    gaps = inter_transaction_gaps(transactions)
    mean_gap, std_gap = gap_statistics(gaps)
    patterns: list[TemporalPattern] = []

    small = sum(1 for g in gaps if g < mean_gap * cfg.clustering_gap_factor)
    small_fraction = small / len(gaps)
    if small_fraction > cfg.clustering_min_fraction:
        patterns.append(
            TemporalPattern(
                type=TemporalPatternType.CLUSTERING,
                confidence=min(cfg.max_confidence, small_fraction),
                description=(
                    f"Transactions clustered in short time windows: {small} of "
                    f"{len(gaps)} gaps below {cfg.clustering_gap_factor}x the mean gap"
                ),
            )
        )

    large = sum(1 for g in gaps if g > mean_gap * cfg.spike_gap_factor)
    large_fraction = large / len(gaps)
    if large_fraction > cfg.spike_min_fraction:
        patterns.append(
            TemporalPattern(
                type=TemporalPatternType.SPIKES,
                confidence=min(cfg.max_confidence, large_fraction),
                description=(
                    f"Activity spikes after idle periods: {large} of {len(gaps)} "
                    f"gaps above {cfg.spike_gap_factor}x the mean gap"
                ),
            )
        )

    # std < 0.3 * mean already implies mean > 0
    if std_gap < mean_gap * cfg.rhythmic_cv_max:
        patterns.append(
            TemporalPattern(
                type=TemporalPatternType.RHYTHMIC,
                confidence=max(0.0, min(cfg.max_confidence, 1 - std_gap / mean_gap)),
                description=(
                    f"Regular transaction timing: mean gap {mean_gap / 1000:.0f}s, "
                    f"std-dev {std_gap / 1000:.0f}s"
                ),
            )
        )

    if not patterns:
        patterns.append(
            TemporalPattern(
                type=TemporalPatternType.IRREGULAR,
                confidence=cfg.irregular_confidence,
                description="Transaction timing pattern is irregular/random",
            )
        )

    return patterns
