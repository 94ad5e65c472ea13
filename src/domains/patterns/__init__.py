"""Transaction pattern and hawala detection domain."""

from .config import PatternDetectionConfig, default_config
from .detector import PatternDetector, analyze_patterns, detect_hawala_patterns
from .models import (
    AnomalyFlag,
    AnomalyType,
    HawalaDetectionResult,
    HawalaPattern,
    HawalaPatternType,
    PatternAnalysisResult,
    RiskLevel,
    ScreeningResult,
    ScreeningStatus,
    Severity,
    STRTrigger,
    TemporalPattern,
    TemporalPatternType,
    Transaction,
    VelocityProfile,
)

__all__ = [
    "AnomalyFlag",
    "AnomalyType",
    "HawalaDetectionResult",
    "HawalaPattern",
    "HawalaPatternType",
    "PatternAnalysisResult",
    "PatternDetectionConfig",
    "PatternDetector",
    "RiskLevel",
    "STRTrigger",
    "ScreeningResult",
    "ScreeningStatus",
    "Severity",
    "TemporalPattern",
    "TemporalPatternType",
    "Transaction",
    "VelocityProfile",
    "analyze_patterns",
    "default_config",
    "detect_hawala_patterns",
]
