# body_shape_engine/shape_engine/analysis/measurements.py
import math
import numpy as np
from typing import Sequence
from ..common.errors import DivisionByZeroError, MissingLandmarkError
from ..common.landmarks import LandmarkIndex
from ..common.models import BodyMeasurements, BodyRatios, Landmark, LandmarkSet

# Waist width is interpolated between shoulders and hips (no waist landmark).
WAIST_SHOULDER_WEIGHT = 0.7
WAIST_HIP_WEIGHT = 0.3


def _require(landmarks: LandmarkSet, *indices: LandmarkIndex) -> Sequence[Landmark]:
    found = [landmarks.get(index) for index in indices]
    missing = [index for index, landmark in zip(indices, found) if landmark is None]
    if missing:
        names = ", ".join(index.name.lower() for index in missing)
        raise MissingLandmarkError(f"Landmarks not found: {names}", missing)
    return found


def _distance(a: Landmark, b: Landmark) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


class MeasurementCalculator:
    """Derives lengths and dimensionless ratios directly from landmark positions."""

    def shoulder_width(self, landmarks: LandmarkSet) -> float:
        left, right = _require(landmarks, LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.RIGHT_SHOULDER)
        return _distance(left, right)

    def hip_width(self, landmarks: LandmarkSet) -> float:
        left, right = _require(landmarks, LandmarkIndex.LEFT_HIP, LandmarkIndex.RIGHT_HIP)
        return _distance(left, right)

    def waist_circumference(self, landmarks: LandmarkSet) -> float:
        """
        Estimated, not measured: an interpolated waist width treated as the
        diameter of a circle. Less precise than shoulder or hip width.
        """
        waist_width = (WAIST_SHOULDER_WEIGHT * self.shoulder_width(landmarks)
                       + WAIST_HIP_WEIGHT * self.hip_width(landmarks))
        return waist_width * math.pi

    def height(self, landmarks: LandmarkSet) -> float:
        """Vertical shoulder-to-ankle distance."""
        left_shoulder, right_shoulder, left_ankle, right_ankle = _require(
            landmarks,
            LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.RIGHT_SHOULDER,
            LandmarkIndex.LEFT_ANKLE, LandmarkIndex.RIGHT_ANKLE,
        )
        shoulder_y = (left_shoulder.y + right_shoulder.y) / 2
        ankle_y = (left_ankle.y + right_ankle.y) / 2
        return abs(shoulder_y - ankle_y)

    def calculate_body_measurements(self, landmarks: LandmarkSet) -> BodyMeasurements:
        return BodyMeasurements(
            shoulder_width=self.shoulder_width(landmarks),
            waist_circumference=self.waist_circumference(landmarks),
            hip_width=self.hip_width(landmarks),
            height=self.height(landmarks),
        )

    def calculate_ratios(self, measurements: BodyMeasurements) -> BodyRatios:
        shoulder = measurements.shoulder_width
        waist = measurements.waist_circumference
        hip = measurements.hip_width

        if not all(math.isfinite(v) for v in (shoulder, waist, hip)):
            raise DivisionByZeroError("Measurements must be finite to compute ratios")
        if hip == 0:
            raise DivisionByZeroError("Hip width cannot be zero")
        if waist == 0:
            raise DivisionByZeroError("Waist circumference cannot be zero")

        return BodyRatios(
            shoulder_to_hip=shoulder / hip,
            waist_to_hip=waist / hip,
            shoulder_to_waist=shoulder / waist,
        )

    def normalize(self, measurements: BodyMeasurements) -> BodyMeasurements:
        """Scale-invariant copy with every length divided by height (height becomes 1)."""
        if measurements.normalized:
            return measurements
        height = measurements.height
        if height == 0 or not math.isfinite(height):
            raise DivisionByZeroError("Height cannot be zero for normalization")

        return BodyMeasurements(
            shoulder_width=measurements.shoulder_width / height,
            waist_circumference=measurements.waist_circumference / height,
            hip_width=measurements.hip_width / height,
            height=1.0,
            normalized=True,
        )

    @staticmethod
    def variance(values: Sequence[float]) -> float:
        if len(values) == 0:
            return 0.0
        return float(np.var(np.asarray(values, dtype=np.float64)))

    @staticmethod
    def standard_deviation(values: Sequence[float]) -> float:
        return math.sqrt(MeasurementCalculator.variance(values))

    @staticmethod
    def landmark_confidence(landmarks: LandmarkSet, indices: Sequence[int]) -> float:
        """Average confidence weighted by how many of the landmarks were detected."""
        if len(indices) == 0:
            return 0.0
        scores = []
        for index in indices:
            landmark = landmarks.get(index)
            scores.append(landmark.score if landmark is not None else 0.0)
        average = sum(scores) / len(scores)
        detection_rate = sum(1 for s in scores if s > 0.3) / len(scores)
        return average * detection_rate
