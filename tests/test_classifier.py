import math

import pytest

from shape_engine.analysis.classifier import ShapeClassifier, ShapeWidths
from shape_engine.common.config import ClassificationThresholds, HourglassThresholds
from shape_engine.common.enums import BodyShape, MeasurementSource
from shape_engine.common.models import BodyMeasurements, SilhouetteWidths, WidthMeasurement


def _width(level, width):
    return WidthMeasurement(left_edge=100 - width / 2, right_edge=100 + width / 2, width=width,
                            center_x=100, confidence=1.0, level=level)


def _silhouette(shoulder, waist, hip, bust=None):
    return SilhouetteWidths(
        shoulder=_width("shoulder", shoulder),
        bust=_width("bust", bust) if bust is not None else None,
        waist=_width("waist", waist),
        hip=_width("hip", hip),
        image_width=200,
        image_height=400,
    )


def test_hourglass():
    result = ShapeClassifier().classify_widths(1.0, 0.7, 1.0)
    assert result.shape is BodyShape.HOURGLASS
    assert result.confidence >= 0.7


def test_pear():
    result = ShapeClassifier().classify_widths(1.0, 1.0, 1.3)
    assert result.shape is BodyShape.PEAR
    assert result.ratios.waist_to_hip <= 0.85


def test_rectangle_with_zero_variance():
    result = ShapeClassifier().classify_widths(1.0, 1.0, 1.0)
    assert result.shape is BodyShape.RECTANGLE
    assert result.confidence >= 0.95


def test_inverted_triangle():
    assert ShapeClassifier().classify_widths(1.3, 1.0, 1.0).shape is BodyShape.INVERTED_TRIANGLE


def test_apple():
    assert ShapeClassifier().classify_widths(1.0, 1.3, 1.0).shape is BodyShape.APPLE


def test_rule_order_breaks_ties():
    # Both hourglass and rectangle thresholds hold once rectangle tolerance is loose.
    thresholds = ClassificationThresholds()
    thresholds.rectangle.measurement_variance = 1.0
    result = ShapeClassifier(thresholds).classify_widths(1.0, 0.7, 1.0)
    matched = [c.shape for c in result.candidates if c.matched]
    assert matched[:1] == [BodyShape.HOURGLASS]
    assert BodyShape.RECTANGLE in matched
    assert result.shape is BodyShape.HOURGLASS


def test_unknown_when_nothing_confident():
    thresholds = ClassificationThresholds(hourglass=HourglassThresholds(waist_reduction=0.5))
    # Too wide a spread for rectangle, no clear dominance anywhere else.
    result = ShapeClassifier(thresholds).classify_widths(1.0, 0.72, 1.02)
    assert result.shape is BodyShape.UNKNOWN
    assert result.confidence == 0.5


@pytest.mark.parametrize("widths", [(0.0, 1.0, 1.0), (1.0, float("nan"), 1.0), (-1.0, 1.0, 1.0)])
def test_invalid_widths_never_raise(widths):
    result = ShapeClassifier().classify_widths(*widths)
    assert result.shape is BodyShape.UNKNOWN
    assert result.confidence == 0.5


def test_classify_is_pure():
    classifier = ShapeClassifier()
    first = classifier.classify(_silhouette(80, 50, 70))
    second = classifier.classify(_silhouette(80, 50, 70))
    assert (first.shape, first.confidence) == (second.shape, second.confidence)


def test_confidences_stay_in_unit_interval():
    classifier = ShapeClassifier()
    for widths in [ShapeWidths(1, 1, 1), ShapeWidths(1, 0.3, 2), ShapeWidths(5, 1, 0.2), ShapeWidths(1, 4, 1)]:
        for candidate in classifier.evaluate(widths):
            assert 0.0 <= candidate.confidence <= 1.0


def test_silhouette_source():
    result = ShapeClassifier().classify(_silhouette(80, 56, 80, bust=75))
    assert result.source is MeasurementSource.SILHOUETTE
    assert result.shape is BodyShape.HOURGLASS
    assert result.silhouette_ratios.whr == pytest.approx(0.7)
    assert result.silhouette_ratios.bwr == pytest.approx(75 / 56)
    assert result.waist_curvature_index == pytest.approx(0.3)
    assert len(result.candidates) == 5


def test_landmark_measurements_use_waist_width():
    shoulder, hip = 0.25, 0.25
    waist_width = 0.7 * shoulder + 0.3 * hip
    measurements = BodyMeasurements(shoulder_width=shoulder, waist_circumference=waist_width * math.pi,
                                    hip_width=hip, height=0.5)
    result = ShapeClassifier().classify(measurements)
    assert result.source is MeasurementSource.LANDMARKS
    assert result.shape is BodyShape.RECTANGLE
    assert result.measurements.normalized
    assert result.ratios.waist_to_hip == pytest.approx(math.pi)


def test_degenerate_measurements_yield_unknown():
    measurements = BodyMeasurements(shoulder_width=0.3, waist_circumference=0.5, hip_width=0.0, height=0.5)
    result = ShapeClassifier().classify(measurements)
    assert result.shape is BodyShape.UNKNOWN


def test_override_keeps_computed_shape():
    result = ShapeClassifier().classify_widths(1.0, 1.0, 1.0)
    overridden = result.with_override(BodyShape.PEAR)
    assert overridden.shape is BodyShape.RECTANGLE
    assert overridden.confidence == result.confidence
    assert overridden.effective_shape is BodyShape.PEAR
    assert result.user_override is None


def test_describe():
    assert "waist" in ShapeClassifier.describe(BodyShape.APPLE)
    assert ShapeClassifier.describe(BodyShape.UNKNOWN).startswith("Unable")
