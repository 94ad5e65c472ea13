"""Tests for the hawala layering detectors.

Each detector returns at most one pattern. Structuring and fan detectors
report the strongest window of the first qualifying sender or hub.
"""

import math

import pytest

from src.domains.patterns.config import (
    FanPatternConfig,
    MirrorTradingConfig,
    RoundTripConfig,
    StructuringConfig,
)
from src.domains.patterns.hawala import (
    detect_fan_in,
    detect_fan_out,
    detect_mirror_trading,
    detect_round_trip,
    detect_structuring,
    shannon_entropy,
)
from src.domains.patterns.models import HawalaPatternType
from src.domains.patterns.normalizer import normalize_transactions
from tests.conftest import HOUR_MS, MINUTE_MS, NOW_MS, make_tx


def _txs(*records):
    return normalize_transactions(list(records))


class TestShannonEntropy:
    def test_empty(self):
        assert shannon_entropy([]) == 0.0

    def test_single_label(self):
        assert shannon_entropy(["a", "a", "a"]) == 0.0

    def test_uniform_labels(self):
        assert shannon_entropy(["a", "b"]) == pytest.approx(1.0)
        assert shannon_entropy(["a", "b", "c", "d"]) == pytest.approx(2.0)


class TestStructuring:
    def test_three_sub_threshold_transfers(self):
        txs = _txs(
            *[
                make_tx(id=f"s{i}", **{"from": "S", "to": "R"}, amount=9_999.0,
                        timestamp=NOW_MS + i * MINUTE_MS)
                for i in range(3)
            ]
        )
        pattern = detect_structuring(txs)
        assert pattern is not None
        assert pattern.type == HawalaPatternType.STRUCTURING
        assert pattern.confidence == pytest.approx(0.75)
        assert pattern.transactions == ["s0", "s1", "s2"]

    def test_combined_amount_exactly_at_threshold(self):
        txs = _txs(
            *[
                make_tx(id=f"s{i}", **{"from": "S"}, amount=2_000.0,
                        timestamp=NOW_MS + i * HOUR_MS)
                for i in range(5)
            ]
        )
        pattern = detect_structuring(txs)
        assert pattern is not None
        assert pattern.confidence == pytest.approx(0.85)

    def test_confidence_capped(self):
        txs = _txs(
            *[
                make_tx(id=f"s{i}", **{"from": "S"}, amount=1_500.0,
                        timestamp=NOW_MS + i * HOUR_MS)
                for i in range(10)
            ]
        )
        assert detect_structuring(txs).confidence == pytest.approx(0.95)

    def test_reports_strongest_window_for_sender(self):
        records = [
            make_tx(id="early", **{"from": "S"}, amount=9_000.0, timestamp=NOW_MS - 22 * HOUR_MS)
        ] + [
            make_tx(id=f"s{i}", **{"from": "S"}, amount=2_000.0, timestamp=NOW_MS + i * HOUR_MS)
            for i in range(5)
        ]
        pattern = detect_structuring(_txs(*records))
        assert pattern is not None
        assert pattern.confidence == pytest.approx(0.85)
        assert pattern.transactions == [f"s{i}" for i in range(5)]

    def test_single_large_transfer_is_not_structuring(self):
        assert detect_structuring(_txs(make_tx(amount=50_000.0))) is None

    def test_total_below_threshold(self):
        txs = _txs(
            *[make_tx(id=f"s{i}", amount=3_000.0, timestamp=NOW_MS + i * HOUR_MS) for i in range(3)]
        )
        assert detect_structuring(txs) is None

    def test_outside_window(self):
        txs = _txs(
            make_tx(id="a", amount=9_999.0, timestamp=NOW_MS),
            make_tx(id="b", amount=9_999.0, timestamp=NOW_MS + 30 * HOUR_MS),
        )
        assert detect_structuring(txs) is None

    def test_different_senders(self):
        txs = _txs(
            make_tx(id="a", **{"from": "S1"}, amount=9_999.0, timestamp=NOW_MS),
            make_tx(id="b", **{"from": "S2"}, amount=9_999.0, timestamp=NOW_MS + MINUTE_MS),
        )
        assert detect_structuring(txs) is None

    def test_disabled(self):
        txs = _txs(
            *[make_tx(id=f"s{i}", amount=9_999.0, timestamp=NOW_MS + i * MINUTE_MS) for i in range(3)]
        )
        assert detect_structuring(txs, StructuringConfig(enabled=False)) is None


class TestRoundTrip:
    def test_typed_return_leg(self):
        txs = _txs(
            make_tx(id="out", **{"from": "A", "to": "B"}, amount=10_000.0, timestamp=NOW_MS),
            make_tx(
                id="back",
                **{"from": "B", "to": "A"},
                amount=9_800.0,
                timestamp=NOW_MS + 2 * HOUR_MS,
                type="return",
            ),
        )
        pattern = detect_round_trip(txs)
        assert pattern is not None
        assert pattern.type == HawalaPatternType.ROUND_TRIP
        assert pattern.confidence == 0.85
        assert pattern.transactions == ["out", "back"]

    def test_untyped_swapped_pair(self):
        txs = _txs(
            make_tx(id="a", **{"from": "X", "to": "Y"}, amount=500_000.0, timestamp=NOW_MS),
            make_tx(id="b", **{"from": "Y", "to": "X"}, amount=500_000.0, timestamp=NOW_MS + HOUR_MS),
        )
        pattern = detect_round_trip(txs)
        assert pattern is not None
        assert pattern.confidence == 0.80

    def test_outside_window(self):
        txs = _txs(
            make_tx(id="a", **{"from": "X", "to": "Y"}, amount=500_000.0, timestamp=NOW_MS),
            make_tx(id="b", **{"from": "Y", "to": "X"}, amount=500_000.0,
                    timestamp=NOW_MS + 72 * HOUR_MS),
        )
        assert detect_round_trip(txs) is None

    def test_amount_mismatch(self):
        txs = _txs(
            make_tx(id="a", **{"from": "X", "to": "Y"}, amount=10_000.0, timestamp=NOW_MS),
            make_tx(id="b", **{"from": "Y", "to": "X"}, amount=8_000.0, timestamp=NOW_MS + HOUR_MS),
        )
        assert detect_round_trip(txs) is None

    def test_self_transfers_ignored(self):
        txs = _txs(
            make_tx(id="a", **{"from": "X", "to": "X"}, amount=1_000.0, timestamp=NOW_MS),
            make_tx(id="b", **{"from": "X", "to": "X"}, amount=1_000.0, timestamp=NOW_MS + HOUR_MS),
        )
        assert detect_round_trip(txs) is None

    def test_disabled(self):
        txs = _txs(
            make_tx(id="a", **{"from": "X", "to": "Y"}, amount=500_000.0, timestamp=NOW_MS),
            make_tx(id="b", **{"from": "Y", "to": "X"}, amount=500_000.0, timestamp=NOW_MS + HOUR_MS),
        )
        assert detect_round_trip(txs, RoundTripConfig(enabled=False)) is None


class TestFanPatterns:
    def test_fan_out_to_five_recipients(self):
        txs = _txs(
            *[
                make_tx(id=f"f{i}", **{"from": "S", "to": f"R{i}"}, timestamp=NOW_MS + i * MINUTE_MS)
                for i in range(5)
            ]
        )
        pattern = detect_fan_out(txs)
        assert pattern is not None
        assert pattern.type == HawalaPatternType.FAN_OUT
        assert pattern.confidence == pytest.approx(0.5 + 0.1 * math.log2(5))
        assert len(pattern.transactions) == 5

    def test_four_recipients_not_enough(self):
        txs = _txs(
            *[
                make_tx(id=f"f{i}", **{"from": "S", "to": f"R{i}"}, timestamp=NOW_MS + i * MINUTE_MS)
                for i in range(4)
            ]
        )
        assert detect_fan_out(txs) is None

    def test_spread_beyond_one_hour(self):
        txs = _txs(
            *[
                make_tx(id=f"f{i}", **{"from": "S", "to": f"R{i}"},
                        timestamp=NOW_MS + i * 30 * MINUTE_MS)
                for i in range(5)
            ]
        )
        assert detect_fan_out(txs) is None

    def test_repeated_recipient_lowers_entropy(self):
        recipients = ["R1", "R1", "R2", "R3", "R4", "R5"]
        txs = _txs(
            *[
                make_tx(id=f"f{i}", **{"from": "S", "to": r}, timestamp=NOW_MS + i * MINUTE_MS)
                for i, r in enumerate(recipients)
            ]
        )
        pattern = detect_fan_out(txs)
        expected_entropy = -(2 / 6) * math.log2(2 / 6) - 4 * (1 / 6) * math.log2(1 / 6)
        assert pattern is not None
        assert pattern.confidence == pytest.approx(0.5 + 0.1 * expected_entropy)
        assert pattern.confidence < 0.5 + 0.1 * math.log2(6)

    def test_reports_highest_entropy_window(self):
        # first window repeats R0; the later one reaches six distinct recipients
        recipients = ["R0", "R0", "R1", "R2", "R3", "R4", "R5"]
        offsets = [0, 1, 2, 3, 4, 5, 61]
        txs = _txs(
            *[
                make_tx(id=f"f{i}", **{"from": "S", "to": r}, timestamp=NOW_MS + m * MINUTE_MS)
                for i, (r, m) in enumerate(zip(recipients, offsets))
            ]
        )
        pattern = detect_fan_out(txs)
        assert pattern is not None
        assert pattern.confidence == pytest.approx(0.5 + 0.1 * math.log2(6))
        assert pattern.transactions == ["f1", "f2", "f3", "f4", "f5", "f6"]

    def test_fan_in_from_six_senders(self):
        txs = _txs(
            *[
                make_tx(id=f"i{i}", **{"from": f"S{i}", "to": "HUB"}, timestamp=NOW_MS + i * MINUTE_MS)
                for i in range(6)
            ]
        )
        assert detect_fan_out(txs) is None
        pattern = detect_fan_in(txs)
        assert pattern is not None
        assert pattern.type == HawalaPatternType.FAN_IN
        assert pattern.confidence == pytest.approx(0.5 + 0.1 * math.log2(6))

    def test_disabled(self):
        txs = _txs(
            *[
                make_tx(id=f"f{i}", **{"from": "S", "to": f"R{i}"}, timestamp=NOW_MS + i * MINUTE_MS)
                for i in range(5)
            ]
        )
        assert detect_fan_out(txs, FanPatternConfig(fan_out_enabled=False)) is None


class TestMirrorTrading:
    def _legs(self, second_amount=49_000.0, second_jurisdiction="IN", delay_ms=2 * HOUR_MS):
        return _txs(
            make_tx(id="m1", **{"from": "A", "to": "B"}, amount=50_000.0,
                    timestamp=NOW_MS, jurisdiction="AE"),
            make_tx(id="m2", **{"from": "C", "to": "D"}, amount=second_amount,
                    timestamp=NOW_MS + delay_ms, jurisdiction=second_jurisdiction),
        )

    def test_offsetting_legs(self):
        pattern = detect_mirror_trading(self._legs())
        assert pattern is not None
        assert pattern.type == HawalaPatternType.MIRROR_TRADING
        assert pattern.confidence == 0.75
        assert pattern.transactions == ["m1", "m2"]

    def test_same_jurisdiction(self):
        assert detect_mirror_trading(self._legs(second_jurisdiction="AE")) is None

    def test_beyond_window(self):
        assert detect_mirror_trading(self._legs(delay_ms=25 * HOUR_MS)) is None

    def test_amounts_too_far_apart(self):
        assert detect_mirror_trading(self._legs(second_amount=45_000.0)) is None

    def test_missing_jurisdiction(self):
        txs = _txs(
            make_tx(id="m1", amount=50_000.0),
            make_tx(id="m2", amount=50_000.0, timestamp=NOW_MS + HOUR_MS),
        )
        assert detect_mirror_trading(txs) is None

    def test_disabled(self):
        assert detect_mirror_trading(self._legs(), MirrorTradingConfig(enabled=False)) is None


class TestInputOrdering:
    def test_input_not_reordered(self):
        txs = _txs(
            make_tx(id="late", amount=9_999.0, timestamp=NOW_MS + HOUR_MS),
            make_tx(id="early", amount=9_999.0, timestamp=NOW_MS),
        )
        pattern = detect_structuring(txs)
        assert pattern.transactions == ["early", "late"]
        assert [t.id for t in txs] == ["late", "early"]
