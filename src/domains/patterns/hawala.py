"""Hawala-style layering pattern detection.

Five independent detectors, each returning at most one pattern. Structuring
and fan detectors take the first qualifying sender or hub in input order and
report its strongest window; round-trip and mirror report the first
qualifying pair in time order.

  1. Structuring: sub-threshold splits from one sender within 24 hours
  2. Round-trip: funds sent out and returned by the same counterparty
  3. Fan-out: one sender dispersing to many recipients in an hour
  4. Fan-in: many senders consolidating into one recipient in an hour
  5. Mirror trading: near-equal legs booked in different jurisdictions

Every detector sorts private copies; the input list is never reordered.
"""

import math
from collections import Counter, defaultdict
from collections.abc import Callable, Iterable

import structlog

from .config import (
    HOUR_MS,
    FanPatternConfig,
    MirrorTradingConfig,
    RoundTripConfig,
    StructuringConfig,
)
from .models import HawalaPattern, HawalaPatternType
from .normalizer import NormalizedTransaction, sorted_by_time

logger = structlog.get_logger()


def shannon_entropy(labels: Iterable[str]) -> float:
    """Base-2 Shannon entropy of a label distribution (0.0 for no labels)."""
    counts = Counter(labels)
    total = sum(counts.values())
    if total == 0:
        return 0.0
    entropy = 0.0
    for count in counts.values():
        p = count / total
        entropy -= p * math.log2(p)
    return entropy


def _amounts_close(a: float, b: float, tolerance: float) -> bool:
    """True when |a - b| is within `tolerance` of the larger amount."""
    reference = max(abs(a), abs(b))
    return abs(a - b) <= tolerance * reference


def _is_swapped(first: NormalizedTransaction, second: NormalizedTransaction) -> bool:
    return (
        first.sender != first.recipient
        and second.sender == first.recipient
        and second.recipient == first.sender
    )


def _log_detection(pattern: HawalaPattern) -> None:
    logger.info(
        "hawala_pattern_detected",
        pattern_type=pattern.type.value,
        confidence=pattern.confidence,
        transaction_count=len(pattern.transactions),
    )


# ---------------------------------------------------------------------------
# 1. Structuring
# ---------------------------------------------------------------------------


def detect_structuring(
    transactions: list[NormalizedTransaction],
    config: StructuringConfig | None = None,
) -> HawalaPattern | None:
    cfg = config or StructuringConfig()
    if not cfg.enabled:
        return None

    threshold = cfg.reporting_threshold
    by_sender: dict[str, list[NormalizedTransaction]] = defaultdict(list)
    for tx in transactions:
        if tx.amount < threshold:
            by_sender[tx.sender].append(tx)

    for sender, sender_txns in by_sender.items():
        if len(sender_txns) < cfg.min_transactions:
            continue

        # Strongest qualifying window for the first qualifying sender
        best: list[NormalizedTransaction] = []
        ordered = sorted_by_time(sender_txns)
        for i, anchor in enumerate(ordered):
            window_end = anchor.timestamp_ms + cfg.window_ms
            window = [tx for tx in ordered[i:] if tx.timestamp_ms <= window_end]
            if len(window) < cfg.min_transactions or len(window) <= len(best):
                continue
            if sum(tx.amount for tx in window) >= threshold:
                best = window

        if not best:
            continue

        total = sum(tx.amount for tx in best)
        pattern = HawalaPattern(
            type=HawalaPatternType.STRUCTURING,
            confidence=min(
                cfg.max_confidence,
                cfg.base_confidence + cfg.confidence_per_transaction * len(best),
            ),
            description=(
                f"Structuring: sender {sender} split {total:,.2f} into "
                f"{len(best)} sub-threshold transfers within {cfg.window_ms / HOUR_MS:g}h "
                f"(reporting threshold {threshold:,.0f})"
            ),
            transactions=[tx.id for tx in best],
        )
        _log_detection(pattern)
        return pattern

    return None


# ---------------------------------------------------------------------------
# 2. Round-trip
# ---------------------------------------------------------------------------


def _round_trip_pattern(
    outbound: NormalizedTransaction,
    inbound: NormalizedTransaction,
    confidence: float,
) -> HawalaPattern:
    hours = abs(inbound.timestamp_ms - outbound.timestamp_ms) / HOUR_MS
    return HawalaPattern(
        type=HawalaPatternType.ROUND_TRIP,
        confidence=confidence,
        description=(
            f"Round-trip: {outbound.amount:,.2f} sent {outbound.sender} -> "
            f"{outbound.recipient} and {inbound.amount:,.2f} returned "
            f"{hours:.1f}h apart"
        ),
        transactions=[outbound.id, inbound.id],
    )


def detect_round_trip(
    transactions: list[NormalizedTransaction],
    config: RoundTripConfig | None = None,
) -> HawalaPattern | None:
    cfg = config or RoundTripConfig()
    if not cfg.enabled:
        return None

    ordered = sorted_by_time(transactions)

    def _matches(a: NormalizedTransaction, b: NormalizedTransaction) -> bool:
        return (
            _is_swapped(a, b)
            and _amounts_close(a.amount, b.amount, cfg.amount_tolerance)
            and abs(b.timestamp_ms - a.timestamp_ms) <= cfg.window_ms
        )

    # Typed pass: labelled returns / incoming legs
    outbound = [tx for tx in ordered if tx.type != cfg.outbound_excluded_type]
    inbound = [tx for tx in ordered if tx.type in cfg.return_types]
    for out_tx in outbound:
        for in_tx in inbound:
            if in_tx is not out_tx and _matches(out_tx, in_tx):
                pattern = _round_trip_pattern(out_tx, in_tx, cfg.typed_confidence)
                _log_detection(pattern)
                return pattern

    # Untyped fallback: any swapped pair
    for i, first in enumerate(ordered):
        for second in ordered[i + 1 :]:
            if _matches(first, second):
                pattern = _round_trip_pattern(first, second, cfg.untyped_confidence)
                _log_detection(pattern)
                return pattern

    return None


# ---------------------------------------------------------------------------
# 3/4. Fan-out and fan-in
# ---------------------------------------------------------------------------


def _detect_fan(
    transactions: list[NormalizedTransaction],
    hub_of: Callable[[NormalizedTransaction], str],
    counterparty_of: Callable[[NormalizedTransaction], str],
    pattern_type: HawalaPatternType,
    cfg: FanPatternConfig,
) -> HawalaPattern | None:
    by_hub: dict[str, list[NormalizedTransaction]] = defaultdict(list)
    for tx in transactions:
        by_hub[hub_of(tx)].append(tx)

    for hub, hub_txns in by_hub.items():
        if len(hub_txns) < cfg.min_unique_counterparties:
            continue

        # Highest-entropy qualifying window for the first qualifying hub
        best: list[NormalizedTransaction] = []
        best_entropy = -1.0
        ordered = sorted_by_time(hub_txns)
        for i, anchor in enumerate(ordered):
            window_end = anchor.timestamp_ms + cfg.window_ms
            window = [tx for tx in ordered[i:] if tx.timestamp_ms <= window_end]
            counterparties = [counterparty_of(tx) for tx in window]
            if len(set(counterparties)) < cfg.min_unique_counterparties:
                continue
            entropy = shannon_entropy(counterparties)
            if entropy > best_entropy:
                best, best_entropy = window, entropy

        if not best:
            continue

        unique = len({counterparty_of(tx) for tx in best})
        if pattern_type == HawalaPatternType.FAN_OUT:
            summary = f"sender {hub} dispersed funds to {unique} recipients"
        else:
            summary = f"recipient {hub} consolidated funds from {unique} senders"

        pattern = HawalaPattern(
            type=pattern_type,
            confidence=min(
                cfg.max_confidence,
                cfg.base_confidence + cfg.confidence_per_bit * best_entropy,
            ),
            description=(
                f"{pattern_type.value.replace('_', '-').title()}: {summary} "
                f"within {cfg.window_ms / HOUR_MS:g}h (entropy {best_entropy:.2f} bits)"
            ),
            transactions=[tx.id for tx in best],
        )
        _log_detection(pattern)
        return pattern

    return None


def detect_fan_out(
    transactions: list[NormalizedTransaction],
    config: FanPatternConfig | None = None,
) -> HawalaPattern | None:
    cfg = config or FanPatternConfig()
    if not cfg.fan_out_enabled:
        return None
    return _detect_fan(
        transactions,
        hub_of=lambda tx: tx.sender,
        counterparty_of=lambda tx: tx.recipient,
        pattern_type=HawalaPatternType.FAN_OUT,
        cfg=cfg,
    )


def detect_fan_in(
    transactions: list[NormalizedTransaction],
    config: FanPatternConfig | None = None,
) -> HawalaPattern | None:
    cfg = config or FanPatternConfig()
    if not cfg.fan_in_enabled:
        return None
    return _detect_fan(
        transactions,
        hub_of=lambda tx: tx.recipient,
        counterparty_of=lambda tx: tx.sender,
        pattern_type=HawalaPatternType.FAN_IN,
        cfg=cfg,
    )


# ---------------------------------------------------------------------------
# 5. Mirror trading
# ---------------------------------------------------------------------------


def detect_mirror_trading(
    transactions: list[NormalizedTransaction],
    config: MirrorTradingConfig | None = None,
) -> HawalaPattern | None:
    cfg = config or MirrorTradingConfig()
    if not cfg.enabled:
        return None

    legs = sorted_by_time(tx for tx in transactions if tx.jurisdiction)
    for i, first in enumerate(legs):
        for second in legs[i + 1 :]:
            if second.timestamp_ms - first.timestamp_ms > cfg.window_ms:
                break
            if first.jurisdiction == second.jurisdiction:
                continue
            if not _amounts_close(first.amount, second.amount, cfg.amount_tolerance):
                continue

            pattern = HawalaPattern(
                type=HawalaPatternType.MIRROR_TRADING,
                confidence=cfg.confidence,
                description=(
                    f"Mirror trading: {first.amount:,.2f} in {first.jurisdiction} "
                    f"offset by {second.amount:,.2f} in {second.jurisdiction} "
                    f"within {cfg.window_ms / HOUR_MS:g}h"
                ),
                transactions=[first.id, second.id],
            )
            _log_detection(pattern)
            return pattern

    return None
