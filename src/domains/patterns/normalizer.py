"""Transaction normalization.

Coerces loose transaction-history records into `Transaction` models and then
into an immutable canonical form with the timestamp resolved to epoch
milliseconds. Caller-owned records are never modified.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any

import structlog

from .models import Transaction

logger = structlog.get_logger()


@dataclass(frozen=True)
class NormalizedTransaction:
    """Canonical in-memory transaction used by every analyzer."""

    id: str
    sender: str
    recipient: str
    amount: float
    timestamp_ms: float
    type: str = "transfer"
    currency: str | None = None
    jurisdiction: str | None = None


def timestamp_ms(value: Any) -> float:
    """Return an instant as epoch milliseconds.

    Numbers are taken as epoch-ms already. Naive datetimes are read as UTC,
    bare dates as midnight UTC, and strings are parsed as ISO-8601.
    """
    if isinstance(value, bool):
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return round(value.timestamp() * 1000)
    if isinstance(value, date):
        return round(datetime(value.year, value.month, value.day, tzinfo=UTC).timestamp() * 1000)
    if isinstance(value, str):
        text = value.strip()
        try:
            return timestamp_ms(datetime.fromisoformat(text))
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            raise ValueError(f"Unparseable timestamp: {value!r}") from None
    raise ValueError(f"Unsupported timestamp type: {type(value).__name__}")


def _first(record: Any, *names: str) -> Any:
    for name in names:
        if isinstance(record, Mapping):
            value = record.get(name)
        else:
            value = getattr(record, name, None)
        if value is not None:
            return value
    return None


def coerce_transaction(record: Any, index: int = 0) -> Transaction:
    """Build a `Transaction` from a history record.

    Accepts the field fallbacks used by upstream history sources
    (hash/sender/recipient/value/time). A record without any timestamp keeps
    `timestamp=None`; normalization resolves it to the reference instant.
    """
    if isinstance(record, Transaction):
        return record

    timestamp = _first(record, "timestamp", "time")
    tx_id = _first(record, "id", "hash")
    return Transaction.model_validate(
        {
            "id": str(tx_id) if tx_id is not None else f"tx-{index}",
            "from": str(_first(record, "from", "sender") or "unknown"),
            "to": str(_first(record, "to", "recipient") or "unknown"),
            "amount": _first(record, "amount", "value") or 0,
            "timestamp": timestamp,
            "type": _first(record, "type") or "transfer",
            "currency": _first(record, "currency"),
            "jurisdiction": _first(record, "jurisdiction"),
        }
    )


def _current_ms() -> float:
    return timestamp_ms(datetime.now(UTC))


def normalize_transaction(
    record: Any, index: int = 0, default_timestamp_ms: float | None = None
) -> NormalizedTransaction:
    tx = coerce_transaction(record, index)
    if tx.timestamp is not None:
        ts = timestamp_ms(tx.timestamp)
    else:
        ts = default_timestamp_ms if default_timestamp_ms is not None else _current_ms()
        logger.debug("transaction_timestamp_defaulted", transaction_id=tx.id, timestamp_ms=ts)
    return NormalizedTransaction(
        id=tx.id,
        sender=tx.sender,
        recipient=tx.recipient,
        amount=float(tx.amount),
        timestamp_ms=ts,
        type=tx.type,
        currency=tx.currency,
        jurisdiction=tx.jurisdiction,
    )


def normalize_transactions(
    records: Iterable[Any] | None, default_timestamp_ms: float | None = None
) -> list[NormalizedTransaction]:
    """Normalize a batch. `None` is treated as an empty batch.

    Records without a timestamp take `default_timestamp_ms`, or the current
    time when no default is given.
    """
    if not records:
        return []
    if default_timestamp_ms is None:
        default_timestamp_ms = _current_ms()
    return [
        normalize_transaction(record, i, default_timestamp_ms)
        for i, record in enumerate(records)
    ]


def sorted_by_time(transactions: Iterable[NormalizedTransaction]) -> list[NormalizedTransaction]:
    """Return a new list ordered by timestamp (stable for equal instants)."""
    return sorted(transactions, key=lambda tx: tx.timestamp_ms)
