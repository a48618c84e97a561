from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from machine_health.exceptions import ValidationError
from machine_health.risk import RiskLevel, clamp_score, tier_of

NO_FAULT = "No Fault Detected"


class MachineType(str, Enum):
    COMPRESSOR = "Compressor"
    PUMP = "Pump"
    FAN = "Fan"
    MOTOR = "Motor"
    TURBINE = "Turbine"
    CONVEYOR_BELT = "Conveyor Belt"

    @classmethod
    def parse(cls, value: Optional[str]) -> "MachineType":
        """Match a declared machine type, ignoring case and surrounding whitespace."""
        if isinstance(value, cls):
            return value
        wanted = str(value or "").strip().lower()
        if not wanted:
            raise ValidationError("A machine type must be selected before analysis.")
        for member in cls:
            if member.value.lower() == wanted:
                return member
        allowed = ", ".join(m.value for m in cls)
        raise ValidationError(f"Unknown machine type {value!r}. Expected one of: {allowed}")


@dataclass(frozen=True)
class AudioUpload:
    """Raw upload as handed over by the caller, before anything is stored."""

    filename: str
    content: bytes
    content_type: Optional[str] = None


@dataclass(frozen=True)
class AudioArtifact:
    user_id: str
    path: str
    size_bytes: int
    content_type: str


@dataclass(frozen=True)
class ClassificationResult:
    health_score: int
    risk_level: RiskLevel
    fault_type: str
    confidence: float

    @classmethod
    def from_score(cls, score: float, fault_type: str, confidence: float) -> "ClassificationResult":
        """Build a result whose tier always agrees with its (clamped) score."""
        health_score = clamp_score(score)
        return cls(
            health_score=health_score,
            risk_level=tier_of(health_score),
            fault_type=fault_type,
            confidence=round(max(0.0, min(100.0, float(confidence))), 1),
        )


@dataclass(frozen=True)
class AnalysisRecord:
    user_id: str
    machine_type: MachineType
    uploaded_audio_path: str
    result: ClassificationResult
    analysis_date: datetime
    id: Optional[int] = None

    @property
    def health_score(self) -> int:
        return self.result.health_score

    @property
    def risk_level(self) -> RiskLevel:
        return self.result.risk_level

    def result_view(self) -> Dict[str, Any]:
        """What the caller gets back for immediate display."""
        return {
            "healthScore": self.result.health_score,
            "riskLevel": self.result.risk_level.value,
            "faultType": self.result.fault_type,
            "confidence": self.result.confidence,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "machine_type": self.machine_type.value,
            "uploaded_audio_path": self.uploaded_audio_path,
            "health_score": self.result.health_score,
            "risk_level": self.result.risk_level.value,
            "fault_type_prediction": self.result.fault_type,
            "confidence_score": self.result.confidence,
            "analysis_date": self.analysis_date.isoformat() if self.analysis_date else None,
        }
