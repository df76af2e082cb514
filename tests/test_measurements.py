import math

import pytest

from conftest import make_landmarks
from shape_engine.analysis.measurements import MeasurementCalculator
from shape_engine.common.errors import DivisionByZeroError, MissingLandmarkError
from shape_engine.common.landmarks import KEY_LANDMARKS
from shape_engine.common.landmarks import LandmarkIndex as L
from shape_engine.common.models import BodyMeasurements


def test_widths_and_height(standing_pose):
    calc = MeasurementCalculator()
    assert calc.shoulder_width(standing_pose) == pytest.approx(0.25)
    assert calc.hip_width(standing_pose) == pytest.approx(0.2)
    assert calc.height(standing_pose) == pytest.approx(0.5)
    assert calc.waist_circumference(standing_pose) == pytest.approx((0.7 * 0.25 + 0.3 * 0.2) * math.pi)


def test_body_measurements_are_unnormalized(standing_pose):
    m = MeasurementCalculator().calculate_body_measurements(standing_pose)
    assert not m.normalized
    assert m.height == pytest.approx(0.5)


def test_missing_landmark_raises():
    partial = make_landmarks({L.LEFT_SHOULDER: (0.4, 0.3)})
    with pytest.raises(MissingLandmarkError) as info:
        MeasurementCalculator().shoulder_width(partial)
    assert info.value.indices == (L.RIGHT_SHOULDER,)


def test_ratios():
    m = BodyMeasurements(shoulder_width=0.3, waist_circumference=0.6, hip_width=0.25, height=1.0)
    ratios = MeasurementCalculator().calculate_ratios(m)
    assert ratios.shoulder_to_hip == pytest.approx(1.2)
    assert ratios.waist_to_hip == pytest.approx(2.4)
    assert ratios.shoulder_to_waist == pytest.approx(0.5)


@pytest.mark.parametrize("hip, waist", [(0.0, 0.5), (0.3, 0.0), (float("nan"), 0.5), (0.3, float("inf"))])
def test_ratios_reject_degenerate_input(hip, waist):
    m = BodyMeasurements(shoulder_width=0.3, waist_circumference=waist, hip_width=hip, height=1.0)
    with pytest.raises(DivisionByZeroError):
        MeasurementCalculator().calculate_ratios(m)


def test_normalize_divides_by_height():
    calc = MeasurementCalculator()
    m = BodyMeasurements(shoulder_width=50.0, waist_circumference=200.0, hip_width=40.0, height=100.0)
    n = calc.normalize(m)
    assert n.normalized
    assert n.height == 1.0
    assert n.shoulder_width == pytest.approx(0.5)
    assert calc.normalize(n) is n
    # Ratios are unit-free, so normalization does not change them.
    before, after = calc.calculate_ratios(m), calc.calculate_ratios(n)
    assert after.shoulder_to_hip == pytest.approx(before.shoulder_to_hip)
    assert after.waist_to_hip == pytest.approx(before.waist_to_hip)


def test_normalize_rejects_zero_height():
    m = BodyMeasurements(shoulder_width=0.3, waist_circumference=0.6, hip_width=0.25, height=0.0)
    with pytest.raises(DivisionByZeroError):
        MeasurementCalculator().normalize(m)


def test_statistics_helpers(standing_pose):
    assert MeasurementCalculator.variance([1.0, 2.0, 3.0]) == pytest.approx(2.0 / 3.0)
    assert MeasurementCalculator.variance([]) == 0.0
    assert MeasurementCalculator.standard_deviation([2.0, 2.0]) == 0.0
    assert MeasurementCalculator.landmark_confidence(standing_pose, KEY_LANDMARKS) == pytest.approx(0.9)
    partial = make_landmarks({L.LEFT_SHOULDER: (0.4, 0.3)}, score=0.8)
    assert MeasurementCalculator.landmark_confidence(partial, [L.LEFT_SHOULDER, L.RIGHT_SHOULDER]) == \
        pytest.approx(0.4 * 0.5)
