"""Pydantic models for the transaction pattern domain."""

from datetime import date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Severity(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# Risk levels share the severity scale
RiskLevel = Severity


class TemporalPatternType(StrEnum):
    CLUSTERING = "CLUSTERING"
    SPIKES = "SPIKES"
    RHYTHMIC = "RHYTHMIC"
    IRREGULAR = "IRREGULAR"


class AnomalyType(StrEnum):
    CRITICAL_VELOCITY = "CRITICAL_VELOCITY"
    VELOCITY_SPIKE = "VELOCITY_SPIKE"
    LARGE_TRANSFERS = "LARGE_TRANSFERS"
    RAPID_CONSECUTIVE_TRANSFERS = "RAPID_CONSECUTIVE_TRANSFERS"
    COUNTERPARTY_CONCENTRATION = "COUNTERPARTY_CONCENTRATION"


class HawalaPatternType(StrEnum):
    STRUCTURING = "STRUCTURING"
    ROUND_TRIP = "ROUND_TRIP"
    FAN_OUT = "FAN_OUT"
    FAN_IN = "FAN_IN"
    MIRROR_TRADING = "MIRROR_TRADING"


class STRTrigger(StrEnum):
    AML_SCORE_HIGH = "AML_SCORE_HIGH"
    HAWALA_SCORE_HIGH = "HAWALA_SCORE_HIGH"


class ScreeningStatus(StrEnum):
    APPROVED = "APPROVED"
    PENDING = "PENDING"
    REJECTED = "REJECTED"
    ESCALATED = "ESCALATED"


# --- Input ---


class Transaction(BaseModel):
    """A single transaction as supplied by the history source.

    `from` / `to` are Python keywords, so the fields are exposed as
    `sender` / `recipient` and accept either spelling on input.
    History-source spellings `hash`, `value` and `time` are accepted for
    `id`, `amount` and `timestamp`. A missing timestamp is resolved later
    to the reference instant of the call.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    sender: str = Field(alias="from")
    recipient: str = Field(alias="to")
    amount: float
    timestamp: int | float | datetime | date | str | None = None
    type: str = "transfer"
    currency: str | None = None
    jurisdiction: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _history_fallbacks(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for field, fallback in (("id", "hash"), ("amount", "value"), ("timestamp", "time")):
            if data.get(field) is None and data.get(fallback) is not None:
                data[field] = data[fallback]
        return data


# --- Velocity / anomaly analysis ---


class VelocityProfile(BaseModel):
    transactions_per_hour: int = 0
    transactions_per_day: int = 0
    transactions_per_week: int = 0
    average_amount: float = 0.0
    total_volume: float = 0.0
    peak_hour: int | None = Field(default=None, ge=0, le=23)
    peak_day: str | None = None


class TemporalPattern(BaseModel):
    type: TemporalPatternType
    confidence: float = Field(ge=0.0, le=1.0)
    description: str


class AnomalyFlag(BaseModel):
    type: AnomalyType
    severity: Severity
    description: str
    confidence: float = Field(ge=0.0, le=1.0)


class PatternAnalysisResult(BaseModel):
    has_anomalies: bool = False
    velocity_risk_adjustment: float = Field(default=0.0, ge=-20, le=50)
    velocity_profile: VelocityProfile = Field(default_factory=VelocityProfile)
    temporal_patterns: list[TemporalPattern] = Field(default_factory=list)
    anomaly_flags: list[AnomalyFlag] = Field(default_factory=list)
    normal_behavior: bool = True
    risk_level: RiskLevel = RiskLevel.LOW
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


# --- Hawala detection ---


class HawalaPattern(BaseModel):
    type: HawalaPatternType
    confidence: float = Field(ge=0.0, le=1.0)
    description: str
    transactions: list[str] = Field(default_factory=list)


class HawalaDetectionResult(BaseModel):
    flagged: bool = False
    hawala_score: int = Field(default=0, ge=0, le=100)
    patterns: list[HawalaPattern] = Field(default_factory=list)
    recommendation: str


# --- Combined screening ---


class VelocitySummary(BaseModel):
    normal: bool
    anomalies: list[str] = Field(default_factory=list)
    risk_adjustment: float = 0.0
    transactions_per_hour: int = 0
    transactions_per_day: int = 0
    average_amount: float = 0.0
    total_volume: float = 0.0


class ScreeningResult(BaseModel):
    status: ScreeningStatus
    risk_score: float = Field(ge=0, le=100)
    risk_level: RiskLevel
    flags: list[str] = Field(default_factory=list)
    velocity: VelocitySummary
    pattern_analysis: PatternAnalysisResult
    hawala: HawalaDetectionResult
    str_triggers: list[STRTrigger] = Field(default_factory=list)
    computed_at: datetime
