"""Transaction pattern and hawala detection endpoints.

Thin HTTP wrapper around `PatternDetector`. The engine itself never raises;
the only request errors come from body validation and batch size limits.
"""

from dataclasses import asdict
from datetime import datetime

import structlog
from fastapi import APIRouter
from pydantic import BaseModel, Field, field_validator

from src.config import settings
from src.domains.patterns.config import PatternDetectionConfig
from src.domains.patterns.detector import PatternDetector
from src.domains.patterns.models import (
    HawalaDetectionResult,
    PatternAnalysisResult,
    ScreeningResult,
    ScreeningStatus,
    Transaction,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/api/v1/patterns", tags=["patterns"])

# Module-level detector (stateless; safe to share across requests)
_config = PatternDetectionConfig.from_env()
_detector = PatternDetector(_config)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class TransactionBatchRequest(BaseModel):
    transactions: list[Transaction] = Field(default_factory=list)
    reference_time: datetime | None = None

    @field_validator("transactions")
    @classmethod
    def _limit_batch(cls, value: list[Transaction]) -> list[Transaction]:
        if len(value) > settings.max_batch_size:
            raise ValueError(
                f"Batch of {len(value)} transactions exceeds limit of {settings.max_batch_size}"
            )
        return value


class ScreeningRequest(TransactionBatchRequest):
    base_risk_score: float = Field(default=0.0, ge=0, le=100)
    upstream_status: ScreeningStatus = ScreeningStatus.APPROVED


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/analyze", response_model=PatternAnalysisResult)
async def analyze(request: TransactionBatchRequest) -> PatternAnalysisResult:
    """Velocity profile, temporal patterns, anomaly flags and risk adjustment."""
    return _detector.analyze_patterns(request.transactions, now=request.reference_time)


@router.post("/hawala", response_model=HawalaDetectionResult)
async def hawala(request: TransactionBatchRequest) -> HawalaDetectionResult:
    """Structuring, round-trip, fan-out, fan-in and mirror-trading detection."""
    return _detector.detect_hawala_patterns(request.transactions)


@router.post("/screen", response_model=ScreeningResult)
async def screen(request: ScreeningRequest) -> ScreeningResult:
    """Fold pattern analysis into an upstream AML score and evaluate STR triggers."""
    result = _detector.screen(
        request.transactions,
        base_risk_score=request.base_risk_score,
        upstream_status=request.upstream_status,
        now=request.reference_time,
    )
    if result.str_triggers:
        logger.warning(
            "str_trigger_raised",
            triggers=[t.value for t in result.str_triggers],
            risk_score=result.risk_score,
            hawala_score=result.hawala.hawala_score,
        )
    return result


@router.get("/config")
async def get_config() -> dict:
    """Active detection thresholds."""
    return asdict(_config)
