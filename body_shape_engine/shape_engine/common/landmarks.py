# body_shape_engine/shape_engine/common/landmarks.py
from enum import IntEnum
from typing import Dict, Tuple


class LandmarkIndex(IntEnum):
    """Fixed 17-entry anatomical index table (COCO keypoint order)."""
    NOSE = 0
    LEFT_EYE = 1
    RIGHT_EYE = 2
    LEFT_EAR = 3
    RIGHT_EAR = 4
    LEFT_SHOULDER = 5
    RIGHT_SHOULDER = 6
    LEFT_ELBOW = 7
    RIGHT_ELBOW = 8
    LEFT_WRIST = 9
    RIGHT_WRIST = 10
    LEFT_HIP = 11
    RIGHT_HIP = 12
    LEFT_KNEE = 13
    RIGHT_KNEE = 14
    LEFT_ANKLE = 15
    RIGHT_ANKLE = 16


LANDMARK_COUNT = len(LandmarkIndex)

LANDMARK_NAMES: Tuple[str, ...] = tuple(index.name.lower() for index in LandmarkIndex)

# Landmarks that gate quality: both shoulders, both hips, both ankles.
KEY_LANDMARKS: Tuple[LandmarkIndex, ...] = (
    LandmarkIndex.LEFT_SHOULDER,
    LandmarkIndex.RIGHT_SHOULDER,
    LandmarkIndex.LEFT_HIP,
    LandmarkIndex.RIGHT_HIP,
    LandmarkIndex.LEFT_ANKLE,
    LandmarkIndex.RIGHT_ANKLE,
)

SKELETON_CONNECTIONS: Tuple[Tuple[LandmarkIndex, LandmarkIndex], ...] = (
    (LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.RIGHT_SHOULDER),
    (LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.LEFT_HIP),
    (LandmarkIndex.RIGHT_SHOULDER, LandmarkIndex.RIGHT_HIP),
    (LandmarkIndex.LEFT_HIP, LandmarkIndex.RIGHT_HIP),
    (LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.RIGHT_HIP),
    (LandmarkIndex.RIGHT_SHOULDER, LandmarkIndex.LEFT_HIP),
    (LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.LEFT_ELBOW),
    (LandmarkIndex.LEFT_ELBOW, LandmarkIndex.LEFT_WRIST),
    (LandmarkIndex.RIGHT_SHOULDER, LandmarkIndex.RIGHT_ELBOW),
    (LandmarkIndex.RIGHT_ELBOW, LandmarkIndex.RIGHT_WRIST),
    (LandmarkIndex.LEFT_HIP, LandmarkIndex.LEFT_KNEE),
    (LandmarkIndex.LEFT_KNEE, LandmarkIndex.LEFT_ANKLE),
    (LandmarkIndex.RIGHT_HIP, LandmarkIndex.RIGHT_KNEE),
    (LandmarkIndex.RIGHT_KNEE, LandmarkIndex.RIGHT_ANKLE),
)

# MediaPipe BlazePose (33 points) -> anatomical table.
BLAZEPOSE_TO_ANATOMICAL: Dict[LandmarkIndex, int] = {
    LandmarkIndex.NOSE: 0,
    LandmarkIndex.LEFT_EYE: 2,
    LandmarkIndex.RIGHT_EYE: 5,
    LandmarkIndex.LEFT_EAR: 7,
    LandmarkIndex.RIGHT_EAR: 8,
    LandmarkIndex.LEFT_SHOULDER: 11,
    LandmarkIndex.RIGHT_SHOULDER: 12,
    LandmarkIndex.LEFT_ELBOW: 13,
    LandmarkIndex.RIGHT_ELBOW: 14,
    LandmarkIndex.LEFT_WRIST: 15,
    LandmarkIndex.RIGHT_WRIST: 16,
    LandmarkIndex.LEFT_HIP: 23,
    LandmarkIndex.RIGHT_HIP: 24,
    LandmarkIndex.LEFT_KNEE: 25,
    LandmarkIndex.RIGHT_KNEE: 26,
    LandmarkIndex.LEFT_ANKLE: 27,
    LandmarkIndex.RIGHT_ANKLE: 28,
}
