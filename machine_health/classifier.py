"""
Health classifiers for machine sound samples.

A classifier turns a stored audio artifact plus the declared machine type into a
ClassificationResult. The workflow only depends on the ``Classifier`` interface,
so a real signal-processing model can replace ``StubClassifier`` without touching
anything else.
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import Optional

from machine_health.config import Settings
from machine_health.risk import RiskLevel, tier_of
from machine_health.schemas import NO_FAULT, AudioArtifact, ClassificationResult, MachineType

logger = logging.getLogger(__name__)

FAULT_LABELS = {
    RiskLevel.HEALTHY: NO_FAULT,
    RiskLevel.WARNING: "Bearing Wear",
    RiskLevel.CRITICAL: "Shaft Misalignment",
}


class Classifier(ABC):
    name = "abstract"

    @abstractmethod
    async def classify(self, artifact: AudioArtifact, machine_type: MachineType) -> ClassificationResult:
        """Classify ``artifact``. May be slow; raise on failure."""


class StubClassifier(Classifier):
    """Placeholder that draws random scores. Not a model."""

    name = "stub"

    def __init__(self, delay_seconds: float = 2.0, rng: Optional[random.Random] = None):
        self.delay_seconds = delay_seconds
        self.rng = rng or random.Random()

    async def classify(self, artifact: AudioArtifact, machine_type: MachineType) -> ClassificationResult:
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)
        score = self.rng.randint(40, 99)
        confidence = round(self.rng.uniform(82, 97), 1)
        result = ClassificationResult.from_score(score, FAULT_LABELS[tier_of(score)], confidence)
        logger.debug("[stub] %s (%s) -> %s", artifact.path, machine_type.value, result)
        return result


def build_classifier(settings: Settings) -> Classifier:
    if settings.classifier == StubClassifier.name:
        return StubClassifier(delay_seconds=settings.classifier_delay_seconds)
    raise ValueError(f"Unknown CLASSIFIER: {settings.classifier!r}")
