# body_shape_engine/shape_engine/analysis/quality.py
import math
import cv2
import numpy as np
from collections import deque
from typing import Deque, List, Optional
from ..common.config import QualityThresholds
from ..common.landmarks import KEY_LANDMARKS, LandmarkIndex
from ..common.logging_utils import get_logger
from ..common.models import LandmarkSet, PoseCheck, QualityFeedback, QualityScore

logger = get_logger(__name__)

QUALITY_WEIGHTS = {
    "landmarks": 0.4,
    "stability": 0.2,
    "lighting": 0.2,
    "framing": 0.1,
    "frontality": 0.1,
}

NEUTRAL_SCORE = 0.5
DEFAULT_LIGHTING = 0.7
CONTRAST_PLACEHOLDER = 0.7
LIGHTING_SAMPLE_STRIDE = 4
BBOX_MIN_SCORE = 0.3


def _clamp01(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


def weighted_overall(landmarks: float, stability: float, lighting: float,
                     framing: float, frontality: float) -> float:
    return (
        landmarks * QUALITY_WEIGHTS["landmarks"]
        + stability * QUALITY_WEIGHTS["stability"]
        + lighting * QUALITY_WEIGHTS["lighting"]
        + framing * QUALITY_WEIGHTS["framing"]
        + frontality * QUALITY_WEIGHTS["frontality"]
    )


class QualityScorer:
    """
    Scores how usable a detection cycle is for measurement.

    Holds a bounded FIFO of recent landmark sets for the stability factor, so
    one instance belongs to one capture session.
    """

    def __init__(self, thresholds: Optional[QualityThresholds] = None):
        self.thresholds = thresholds or QualityThresholds()
        self._history: Deque[LandmarkSet] = deque(maxlen=self.thresholds.history_size)

    @property
    def history_length(self) -> int:
        return len(self._history)

    def clear_history(self):
        self._history.clear()

    def score(self, landmarks: LandmarkSet, pixels: Optional[np.ndarray] = None) -> QualityScore:
        """Records the set in history and returns its full quality score."""
        self._history.append(landmarks)

        landmark_score = self.landmark_confidence(landmarks)
        stability = self.stability()
        lighting = self.lighting(pixels) if pixels is not None else DEFAULT_LIGHTING
        framing = self.framing(landmarks)
        frontality = self.frontality(landmarks)

        overall = weighted_overall(landmark_score, stability, lighting, framing, frontality)
        return QualityScore(
            overall=_clamp01(overall),
            landmarks=landmark_score,
            stability=stability,
            lighting=lighting,
            framing=framing,
            frontality=frontality,
        )

    def landmark_confidence(self, landmarks: LandmarkSet) -> float:
        confidences = []
        for index in KEY_LANDMARKS:
            landmark = landmarks.get(index)
            confidences.append(landmark.score if landmark is not None else 0.0)

        average = sum(confidences) / len(confidences)
        if all(c >= self.thresholds.min_landmark_confidence for c in confidences):
            return _clamp01(average)
        return _clamp01(average * 0.5)

    def stability(self) -> float:
        if len(self._history) < 3:
            return NEUTRAL_SCORE

        scores = []
        for index in KEY_LANDMARKS:
            positions = [
                (entry.x, entry.y)
                for entry in (frame.get(index) for frame in self._history)
                if entry is not None
            ]
            if len(positions) < 2:
                scores.append(0.0)
                continue
            xy = np.asarray(positions, dtype=np.float64)
            # Mean squared distance from the centroid, x and y combined.
            variance = float(np.mean(np.sum((xy - xy.mean(axis=0)) ** 2, axis=1)))
            scores.append(max(0.0, 1.0 - variance * 100.0))

        return _clamp01(sum(scores) / len(scores))

    def lighting(self, pixels: np.ndarray) -> float:
        """
        Mid-brightness scores best; contrast is a constant stand-in.

        Colour frames are OpenCV BGR (or BGRA), as returned by the camera.
        """
        data = np.asarray(pixels)
        if data.size == 0:
            return NEUTRAL_SCORE

        if data.ndim == 3 and data.shape[-1] in (3, 4):
            code = cv2.COLOR_BGR2GRAY if data.shape[-1] == 3 else cv2.COLOR_BGRA2GRAY
            gray = cv2.cvtColor(np.ascontiguousarray(data, dtype=np.uint8), code)
        elif data.ndim == 3:
            gray = data[..., 0]
        else:
            gray = data

        luminance = gray.reshape(-1)[::LIGHTING_SAMPLE_STRIDE].astype(np.float64)
        average = float(luminance.mean()) / 255.0
        brightness = 1.0 - abs(average - 0.5) * 2.0
        return _clamp01(brightness * 0.7 + CONTRAST_PLACEHOLDER * 0.3)

    def framing(self, landmarks: LandmarkSet) -> float:
        ys = [lm.y for _, lm in landmarks.present() if lm.score > BBOX_MIN_SCORE]
        if not ys:
            return 0.0

        frame_fill = max(ys) - min(ys)
        low, high = self.thresholds.frame_fill_min, self.thresholds.frame_fill_max
        if low <= frame_fill <= high:
            return 1.0
        if frame_fill < low:
            return _clamp01(frame_fill / low)
        return _clamp01(high / frame_fill)

    def frontality(self, landmarks: LandmarkSet) -> float:
        left_shoulder = landmarks.get(LandmarkIndex.LEFT_SHOULDER)
        right_shoulder = landmarks.get(LandmarkIndex.RIGHT_SHOULDER)
        left_hip = landmarks.get(LandmarkIndex.LEFT_HIP)
        right_hip = landmarks.get(LandmarkIndex.RIGHT_HIP)
        if None in (left_shoulder, right_shoulder, left_hip, right_hip):
            return 0.0

        shoulder_angle = math.degrees(math.atan2(right_shoulder.y - left_shoulder.y,
                                                 right_shoulder.x - left_shoulder.x))
        hip_angle = math.degrees(math.atan2(right_hip.y - left_hip.y,
                                            right_hip.x - left_hip.x))
        # Lines are undirected, so a swapped left/right pair still reads as level.
        difference = abs(shoulder_angle - hip_angle) % 180.0
        difference = min(difference, 180.0 - difference)
        if difference < 15:
            return 1.0
        if difference < 45:
            return 0.7
        return 0.3

    def is_sufficient(self, score: QualityScore) -> bool:
        return (
            score.overall >= 0.6
            and score.landmarks >= self.thresholds.min_landmark_confidence
            and score.stability >= self.thresholds.min_pose_stability
            and score.lighting >= self.thresholds.min_lighting_score
        )

    def feedback(self, score: QualityScore) -> QualityFeedback:
        """User-facing guidance derived from a score."""
        suggestions: List[str] = []
        can_proceed = True

        if score.landmarks < self.thresholds.min_landmark_confidence:
            suggestions.append("Stand closer to the camera and ensure good lighting")
            suggestions.append("Make sure your shoulders and hips are visible")
            can_proceed = False
        if score.stability < self.thresholds.min_pose_stability:
            suggestions.append("Hold still for a moment while we capture your pose")
        if score.lighting < self.thresholds.min_lighting_score:
            suggestions.append("Move to a well-lit area")
            suggestions.append("Avoid standing with bright light behind you")
        if score.framing < 0.8:
            suggestions.append("Make sure your full body is in the frame")
        if score.frontality < 1.0:
            suggestions.append("Face the camera directly")

        if score.overall >= 0.8:
            message = "Great! Pose quality is excellent."
        elif score.overall >= 0.6:
            message = "Good pose quality. Ready for analysis."
        elif score.overall >= 0.4:
            message = "Fair pose quality. Consider adjusting your position."
            can_proceed = False
        else:
            message = "Poor pose quality. Please follow the suggestions below."
            can_proceed = False

        return QualityFeedback(
            message=message,
            suggestions=suggestions or ["Perfect! Ready to capture."],
            can_proceed=can_proceed,
        )


# Normalized shoulder width of an adult facing the camera at a usable distance.
_EXPECTED_SHOULDER_WIDTH = 0.25

_FULL_BODY_LANDMARKS = (
    LandmarkIndex.NOSE,
    LandmarkIndex.LEFT_SHOULDER,
    LandmarkIndex.RIGHT_SHOULDER,
    LandmarkIndex.LEFT_HIP,
    LandmarkIndex.RIGHT_HIP,
    LandmarkIndex.LEFT_ANKLE,
    LandmarkIndex.RIGHT_ANKLE,
)


def check_pose(landmarks: LandmarkSet, thresholds: Optional[QualityThresholds] = None,
               min_landmark_confidence: float = 0.6) -> PoseCheck:
    """Yaw, roll and distance checks for a frozen capture."""
    thresholds = thresholds or QualityThresholds()
    issues: List[str] = []

    missing = [
        index for index in _FULL_BODY_LANDMARKS
        if landmarks.get(index) is None or landmarks.get(index).score < min_landmark_confidence
    ]
    full_body_visible = not missing
    if not full_body_visible:
        issues.append("Full body not visible - ensure head to ankles are in frame")

    left_shoulder = landmarks.get(LandmarkIndex.LEFT_SHOULDER)
    right_shoulder = landmarks.get(LandmarkIndex.RIGHT_SHOULDER)

    yaw = 0.0
    roll = 0.0
    if left_shoulder is not None and right_shoulder is not None:
        if left_shoulder.z is not None and right_shoulder.z is not None:
            yaw = math.degrees(math.atan(right_shoulder.z - left_shoulder.z))
        else:
            # Width asymmetry stands in for depth when z is unavailable.
            ratio = abs(right_shoulder.x - left_shoulder.x) / _EXPECTED_SHOULDER_WIDTH
            yaw = math.degrees(math.acos(min(1.0, ratio)))
        roll = math.degrees(math.atan2(right_shoulder.y - left_shoulder.y,
                                       right_shoulder.x - left_shoulder.x))
        # Shoulders can arrive in either x order (mirroring); fold onto [-90, 90].
        if roll > 90:
            roll -= 180
        elif roll < -90:
            roll += 180

    yaw_ok = abs(yaw) < thresholds.max_yaw_angle
    if not yaw_ok:
        issues.append(f"Turn to face the camera directly (rotation: {round(yaw)} deg)")
    roll_ok = abs(roll) < thresholds.max_roll_angle
    if not roll_ok:
        issues.append(f"Keep the camera level (tilt: {round(roll)} deg)")

    frame_fill = 0.0
    if full_body_visible:
        nose = landmarks.get(LandmarkIndex.NOSE)
        bottom = max(landmarks.get(LandmarkIndex.LEFT_ANKLE).y,
                     landmarks.get(LandmarkIndex.RIGHT_ANKLE).y)
        frame_fill = bottom - nose.y

    good_distance = thresholds.frame_fill_min <= frame_fill <= thresholds.frame_fill_max
    if frame_fill < thresholds.frame_fill_min:
        issues.append("Move closer to the camera")
    elif frame_fill > thresholds.frame_fill_max:
        issues.append("Move further from the camera")

    logger.debug("Pose check yaw=%.1f roll=%.1f fill=%.2f issues=%d", yaw, roll, frame_fill, len(issues))
    return PoseCheck(
        full_body_visible=full_body_visible,
        upright=yaw_ok and roll_ok,
        yaw_angle=yaw,
        roll_angle=roll,
        good_distance=good_distance,
        frame_fill=frame_fill,
        issues=issues,
    )
