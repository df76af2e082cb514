# body_shape_engine/shape_engine/processing/segmenter.py
import asyncio
import cv2
import mediapipe as mp
import numpy as np
import time
from typing import Optional
from ..common.config import SegmentationConfig
from ..common.errors import ModelError
from ..common.logging_utils import get_logger
from ..common.models import SegmentationResult

logger = get_logger(__name__)


class SelfieSegmenter:
    """MediaPipe Selfie Segmentation producing a 0/255 person mask."""

    def __init__(self, config: Optional[SegmentationConfig] = None):
        self.config = config or SegmentationConfig()
        self.segmentation = mp.solutions.selfie_segmentation.SelfieSegmentation(
            model_selection=self.config.model_selection)

    async def segment(self, frame: np.ndarray) -> SegmentationResult:
        return await asyncio.to_thread(self.process_frame, frame)

    def process_frame(self, frame: np.ndarray) -> SegmentationResult:
        try:
            frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            frame_rgb.flags.writeable = False
            results = self.segmentation.process(frame_rgb)
        except Exception as e:
            raise ModelError(f"Segmentation failed: {e}") from e

        probabilities = results.segmentation_mask
        if probabilities is None:
            raise ModelError("Segmentation returned no mask")

        person = probabilities > self.config.threshold
        mask = np.where(person, 255, 0).astype(np.uint8)
        # Mean probability over the pixels classified as person.
        confidence = float(probabilities[person].mean()) if person.any() else 0.0
        logger.debug("Segmented %.1f%% of frame (confidence %.2f)", 100.0 * person.mean(), confidence)

        return SegmentationResult(
            mask=mask,
            confidence=confidence,
            width=int(mask.shape[1]),
            height=int(mask.shape[0]),
            timestamp=time.perf_counter(),
        )

    def close(self):
        self.segmentation.close()
