# body_shape_engine/shape_engine/analysis/classifier.py
"""
Deterministic rule-based body-shape classification.

Rules run on three widths in a common unit (shoulder, waist, hip). Each rule
yields a continuous confidence: a rule whose hard thresholds hold lands in
(decision_threshold, 0.95], one whose thresholds fail is scaled into
[0, decision_threshold]. The first rule in the fixed order above the decision
threshold wins, so the evaluation order is the tie-break.
"""
import math
import numpy as np
from typing import Callable, List, NamedTuple, Optional, Tuple, Union
from ..common.config import ClassificationThresholds
from ..common.enums import BodyShape, MeasurementSource
from ..common.errors import ShapeEngineError
from ..common.logging_utils import get_logger
from ..common.models import (BodyMeasurements, BodyRatios, BodyShapeResult, QualityScore,
                             ShapeCandidate, SilhouetteWidths)
from .measurements import MeasurementCalculator
from .silhouette import SilhouetteLevelMeasurer

logger = get_logger(__name__)

MATCH_FLOOR = 0.75
MATCH_CAP = 0.95

SHAPE_DESCRIPTIONS = {
    BodyShape.HOURGLASS: "Shoulders and hips are similar in width with a well-defined waist.",
    BodyShape.PEAR: "Hips are wider than shoulders with a defined waist.",
    BodyShape.INVERTED_TRIANGLE: "Shoulders are wider than hips.",
    BodyShape.RECTANGLE: "Shoulders, waist and hips are similar in width.",
    BodyShape.APPLE: "The waist is the widest part of the body.",
    BodyShape.UNKNOWN: "Unable to determine body shape. Try again with better lighting and positioning.",
}


class ShapeWidths(NamedTuple):
    shoulder: float
    waist: float
    hip: float


def _clamp01(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


class ShapeClassifier:
    """Stateless; ``classify`` has no side effects and may be called outside a session."""

    def __init__(self, thresholds: Optional[ClassificationThresholds] = None):
        self.thresholds = thresholds or ClassificationThresholds()
        self._rules: Tuple[Tuple[BodyShape, Callable[[ShapeWidths], Tuple[bool, float]]], ...] = (
            (BodyShape.HOURGLASS, self._hourglass),
            (BodyShape.PEAR, self._pear),
            (BodyShape.INVERTED_TRIANGLE, self._inverted_triangle),
            (BodyShape.RECTANGLE, self._rectangle),
            (BodyShape.APPLE, self._apple),
        )

    def _confidence(self, matched: bool, strength: float) -> float:
        strength = _clamp01(strength)
        if matched:
            return MATCH_FLOOR + (MATCH_CAP - MATCH_FLOOR) * strength
        return self.thresholds.decision_threshold * strength

    # -- rules ---------------------------------------------------------------

    def _hourglass(self, w: ShapeWidths) -> Tuple[bool, float]:
        t = self.thresholds.hourglass
        larger = max(w.shoulder, w.hip)
        smaller = min(w.shoulder, w.hip)
        difference = abs(w.shoulder - w.hip) / larger
        reduction = (smaller - w.waist) / smaller
        matched = difference <= t.shoulder_hip_diff and reduction >= t.waist_reduction
        return matched, ((1.0 - difference) + reduction) / 2

    def _pear(self, w: ShapeWidths) -> Tuple[bool, float]:
        t = self.thresholds.pear
        dominance = (w.hip - w.shoulder) / max(w.shoulder, w.hip)
        waist_to_hip = w.waist / w.hip
        matched = dominance >= t.hip_shoulder_diff and waist_to_hip <= t.waist_hip_ratio
        return matched, (dominance + (1.0 - waist_to_hip)) / 2

    def _inverted_triangle(self, w: ShapeWidths) -> Tuple[bool, float]:
        t = self.thresholds.inverted_triangle
        dominance = (w.shoulder - w.hip) / max(w.shoulder, w.hip)
        waist_to_shoulder = w.waist / w.shoulder
        matched = dominance >= t.shoulder_hip_diff and waist_to_shoulder <= t.shoulder_waist_ratio
        return matched, (dominance + (1.0 - waist_to_shoulder)) / 2

    def _rectangle(self, w: ShapeWidths) -> Tuple[bool, float]:
        t = self.thresholds.rectangle
        values = np.asarray(w, dtype=np.float64)
        # Spread relative to the widest measurement, so the rule is unit-free.
        spread = float(np.std(values)) / float(values.max())
        return spread <= t.measurement_variance, 1.0 - spread

    def _apple(self, w: ShapeWidths) -> Tuple[bool, float]:
        t = self.thresholds.apple
        matched = w.waist >= w.shoulder and w.waist >= w.hip * (1.0 + t.waist_dominance)
        dominance = (max(w.waist - w.shoulder, 0.0) + max(w.waist - w.hip, 0.0)) / (2 * w.waist)
        return matched, dominance

    # -- public API ----------------------------------------------------------

    def evaluate(self, widths: ShapeWidths) -> List[ShapeCandidate]:
        """Confidence of every rule in the fixed evaluation order."""
        candidates = []
        for shape, rule in self._rules:
            matched, strength = rule(widths)
            candidates.append(ShapeCandidate(shape=shape, matched=matched,
                                             confidence=self._confidence(matched, strength)))
        return candidates

    def decide(self, candidates: List[ShapeCandidate]) -> Tuple[BodyShape, float]:
        for candidate in candidates:
            if candidate.confidence > self.thresholds.decision_threshold:
                return candidate.shape, candidate.confidence
        return BodyShape.UNKNOWN, self.thresholds.unknown_confidence

    def classify_widths(self, shoulder: float, waist: float, hip: float,
                        quality: Optional[QualityScore] = None) -> BodyShapeResult:
        """Classifies three widths given in the same unit."""
        widths = ShapeWidths(float(shoulder), float(waist), float(hip))
        if not _valid(widths):
            return self._unknown(quality=quality)

        candidates = self.evaluate(widths)
        shape, confidence = self.decide(candidates)
        return BodyShapeResult(
            shape=shape,
            confidence=confidence,
            ratios=_width_ratios(widths),
            quality=quality,
            candidates=candidates,
        )

    def classify(self, source: Union[BodyMeasurements, SilhouetteWidths],
                 quality: Optional[QualityScore] = None) -> BodyShapeResult:
        """
        Classifies landmark measurements or silhouette widths.

        Landmark measurements carry a waist circumference; it is converted back
        to a width (divided by pi) so all three values share one unit.
        Never raises: unusable input yields UNKNOWN.
        """
        if isinstance(source, SilhouetteWidths):
            return self._classify_silhouette(source, quality)
        return self._classify_measurements(source, quality)

    def _classify_measurements(self, measurements: BodyMeasurements,
                               quality: Optional[QualityScore]) -> BodyShapeResult:
        calculator = MeasurementCalculator()
        try:
            measurements = calculator.normalize(measurements)
        except ShapeEngineError:
            logger.debug("Classifying unnormalized measurements (height unavailable)")
        try:
            ratios = calculator.calculate_ratios(measurements)
        except ShapeEngineError as e:
            logger.warning("Cannot classify measurements: %s", e)
            return self._unknown(quality=quality, measurements=measurements)

        widths = ShapeWidths(measurements.shoulder_width,
                             measurements.waist_circumference / math.pi,
                             measurements.hip_width)
        if not _valid(widths):
            return self._unknown(quality=quality, measurements=measurements, ratios=ratios)

        candidates = self.evaluate(widths)
        shape, confidence = self.decide(candidates)
        return BodyShapeResult(
            shape=shape,
            confidence=confidence,
            ratios=ratios,
            measurements=measurements,
            quality=quality,
            source=MeasurementSource.LANDMARKS,
            candidates=candidates,
        )

    def _classify_silhouette(self, silhouette: SilhouetteWidths,
                             quality: Optional[QualityScore]) -> BodyShapeResult:
        widths = ShapeWidths(silhouette.shoulder.width, silhouette.waist.width, silhouette.hip.width)
        if not _valid(widths):
            return self._unknown(quality=quality, measurements=silhouette,
                                 source=MeasurementSource.SILHOUETTE)

        candidates = self.evaluate(widths)
        shape, confidence = self.decide(candidates)
        return BodyShapeResult(
            shape=shape,
            confidence=confidence,
            ratios=_width_ratios(widths),
            measurements=silhouette,
            quality=quality,
            source=MeasurementSource.SILHOUETTE,
            silhouette_ratios=SilhouetteLevelMeasurer.compute_ratios(silhouette),
            waist_curvature_index=SilhouetteLevelMeasurer.waist_curvature_index(silhouette),
            candidates=candidates,
        )

    def _unknown(self, quality: Optional[QualityScore] = None, measurements=None,
                 ratios: Optional[BodyRatios] = None,
                 source: MeasurementSource = MeasurementSource.LANDMARKS) -> BodyShapeResult:
        return BodyShapeResult(
            shape=BodyShape.UNKNOWN,
            confidence=self.thresholds.unknown_confidence,
            ratios=ratios,
            measurements=measurements,
            quality=quality,
            source=source,
        )

    @staticmethod
    def describe(shape: BodyShape) -> str:
        return SHAPE_DESCRIPTIONS[BodyShape(shape)]


def _valid(widths: ShapeWidths) -> bool:
    return all(math.isfinite(v) and v > 0 for v in widths)


def _width_ratios(widths: ShapeWidths) -> BodyRatios:
    return BodyRatios(
        shoulder_to_hip=widths.shoulder / widths.hip,
        waist_to_hip=widths.waist / widths.hip,
        shoulder_to_waist=widths.shoulder / widths.waist,
    )
