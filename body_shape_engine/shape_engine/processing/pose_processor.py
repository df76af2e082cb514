# body_shape_engine/shape_engine/processing/pose_processor.py
import asyncio
import cv2
import mediapipe as mp
import numpy as np
import time
from typing import Optional
from ..common.config import PoseConfig
from ..common.errors import ModelError
from ..common.landmarks import BLAZEPOSE_TO_ANATOMICAL, LANDMARK_COUNT
from ..common.logging_utils import get_logger
from ..common.models import LandmarkSet
from .one_euro_filter import LandmarkSmoother

logger = get_logger(__name__)


class PoseProcessor:
    """MediaPipe Pose behind the async pose-model contract, reduced to the 17-entry table."""

    def __init__(self, config: Optional[PoseConfig] = None):
        self.config = config or PoseConfig()

        self.mp_pose = mp.solutions.pose
        self.pose = self.mp_pose.Pose(
            static_image_mode=False,
            model_complexity=self.config.model_complexity,
            smooth_landmarks=False,  # LandmarkSmoother does this
            enable_segmentation=False,
            min_detection_confidence=self.config.min_detection_confidence,
            min_tracking_confidence=self.config.min_tracking_confidence,
        )
        self.smoother = LandmarkSmoother(self.config.filter) if self.config.smoothing else None
        self.last_processing_time_ms = 0.0

    async def detect(self, frame: np.ndarray) -> LandmarkSet:
        return await asyncio.to_thread(self.process_frame, frame)

    def process_frame(self, frame: np.ndarray) -> LandmarkSet:
        """Runs the model on one BGR frame; an empty set means nobody was found."""
        start_time = time.perf_counter()
        try:
            frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            frame_rgb.flags.writeable = False
            results = self.pose.process(frame_rgb)
        except Exception as e:
            raise ModelError(f"Pose inference failed: {e}") from e
        self.last_processing_time_ms = (time.perf_counter() - start_time) * 1000

        if not results.pose_landmarks:
            if self.smoother is not None:
                self.smoother.reset()
            return LandmarkSet(timestamp=start_time)

        landmarks = self._to_anatomical(results.pose_landmarks.landmark, start_time)
        if self.smoother is not None:
            landmarks = self.smoother(landmarks, start_time)
        return landmarks

    @staticmethod
    def _to_anatomical(blazepose, timestamp: float) -> LandmarkSet:
        xy = np.empty((LANDMARK_COUNT, 2))
        z = np.empty(LANDMARK_COUNT)
        scores = np.empty(LANDMARK_COUNT)
        for index, source in BLAZEPOSE_TO_ANATOMICAL.items():
            lm = blazepose[source]
            xy[index] = (lm.x, lm.y)
            z[index] = lm.z
            scores[index] = lm.visibility
        return LandmarkSet.from_arrays(xy, scores, z=z, timestamp=timestamp)

    def close(self):
        self.pose.close()
