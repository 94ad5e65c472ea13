"""Velocity profiling over trailing time windows."""

from collections import Counter
from datetime import UTC, datetime, tzinfo
from zoneinfo import ZoneInfo

from .config import DAY_MS, HOUR_MS, WEEK_MS, VelocityBaselineConfig
from .models import VelocityProfile
from .normalizer import NormalizedTransaction


def _reporting_zone(config: VelocityBaselineConfig) -> tzinfo | None:
    name = config.reporting_timezone
    if not name:
        return None
    if name.upper() in ("UTC", "Z"):
        return UTC
    return ZoneInfo(name)


def _local_datetime(ts_ms: float, zone: tzinfo | None) -> datetime:
    # zone=None converts to host local time
    return datetime.fromtimestamp(ts_ms / 1000, tz=zone)


def _peak(counts: Counter):
    """Most frequent bucket; ties go to the bucket seen first."""
    if not counts:
        return None
    return max(counts, key=counts.__getitem__)


def count_in_window(
    transactions: list[NormalizedTransaction], now_ms: float, window_ms: int
) -> int:
    """Count transactions strictly after `now - window`."""
    cutoff = now_ms - window_ms
    return sum(1 for tx in transactions if tx.timestamp_ms > cutoff)


def compute_velocity_profile(
    transactions: list[NormalizedTransaction],
    now_ms: float,
    config: VelocityBaselineConfig | None = None,
) -> VelocityProfile:
    """Trailing 1h/24h/7d counts, amount statistics and peak activity buckets."""
    config = config or VelocityBaselineConfig()
    if not transactions:
        return VelocityProfile()

    total_volume = sum(tx.amount for tx in transactions)
    zone = _reporting_zone(config)

    hour_buckets: Counter = Counter()
    day_buckets: Counter = Counter()
    for tx in transactions:
        local = _local_datetime(tx.timestamp_ms, zone)
        hour_buckets[local.hour] += 1
        day_buckets[local.strftime("%Y-%m-%d")] += 1

    return VelocityProfile(
        transactions_per_hour=count_in_window(transactions, now_ms, HOUR_MS),
        transactions_per_day=count_in_window(transactions, now_ms, DAY_MS),
        transactions_per_week=count_in_window(transactions, now_ms, WEEK_MS),
        average_amount=total_volume / len(transactions),
        total_volume=total_volume,
        peak_hour=_peak(hour_buckets),
        peak_day=_peak(day_buckets),
    )
