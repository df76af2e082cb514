# body_shape_engine/shape_engine/analysis/body_analyzer.py
import numpy as np
from typing import Optional
from ..common.config import QualityThresholds
from ..common.errors import InsufficientSamplesError, InvalidPoseError, ModelError
from ..common.logging_utils import get_logger
from ..common.models import BodyShapeResult, LandmarkSet, QualityScore, SegmentationResult
from .classifier import ShapeClassifier
from .measurements import MeasurementCalculator
from .quality import check_pose
from .silhouette import SilhouetteLevelMeasurer

logger = get_logger(__name__)


class BodyAnalyzer:
    """
    Turns one frozen capture (frame + landmarks) into a BodyShapeResult.

    Silhouette widths are preferred when a segmentation model is available;
    any failure on that path falls back to landmark-only measurement.
    """

    def __init__(self, measurer: Optional[SilhouetteLevelMeasurer] = None,
                 calculator: Optional[MeasurementCalculator] = None,
                 classifier: Optional[ShapeClassifier] = None,
                 segmenter=None,
                 quality_thresholds: Optional[QualityThresholds] = None):
        self.measurer = measurer or SilhouetteLevelMeasurer()
        self.calculator = calculator or MeasurementCalculator()
        self.classifier = classifier or ShapeClassifier()
        self.segmenter = segmenter
        self.quality_thresholds = quality_thresholds or QualityThresholds()

    async def analyze(self, frame: Optional[np.ndarray], landmarks: LandmarkSet,
                      quality: Optional[QualityScore] = None) -> BodyShapeResult:
        """
        Raises MissingLandmarkError only when the landmark fallback itself
        cannot measure; every silhouette-side failure is absorbed.
        """
        result = None
        if frame is not None and self.segmenter is not None:
            segmentation = await self._segment(frame)
            if segmentation is not None:
                result = self._classify_silhouette(segmentation, landmarks, quality)

        if result is None:
            measurements = self.calculator.calculate_body_measurements(landmarks)
            result = self.classifier.classify(measurements, quality)

        pose = check_pose(landmarks, self.quality_thresholds)
        if pose.issues:
            logger.info("Pose check issues: %s", "; ".join(pose.issues))

        logger.info("Classified %s (%.2f) from %s", result.shape.value, result.confidence, result.source.value)
        return result.model_copy(update={"pose_check": pose})

    async def _segment(self, frame: np.ndarray) -> Optional[SegmentationResult]:
        try:
            return await self.segmenter.segment(frame)
        except ModelError as e:
            logger.warning("Segmentation failed, using landmarks only: %s", e)
            return None

    def _classify_silhouette(self, segmentation: SegmentationResult, landmarks: LandmarkSet,
                             quality: Optional[QualityScore]) -> Optional[BodyShapeResult]:
        try:
            widths = self.measurer.measure_widths(segmentation.mask, landmarks)
        except (InvalidPoseError, InsufficientSamplesError) as e:
            logger.warning("Silhouette measurement failed, using landmarks only: %s", e)
            return None

        return self.classifier.classify(widths, quality)
