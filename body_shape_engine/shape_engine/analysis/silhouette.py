# body_shape_engine/shape_engine/analysis/silhouette.py
"""
Body widths from a person segmentation mask.

Each anatomical level is sampled over a band of rows rather than a single
row; the median over the band is insensitive to folds in clothing, hands
resting on hips and similar single-row outliers.
"""
import math
import numpy as np
from typing import Dict, Optional
from ..common.config import MeasurerConfig
from ..common.errors import InsufficientSamplesError, InvalidPoseError
from ..common.landmarks import LandmarkIndex
from ..common.logging_utils import get_logger
from ..common.models import (AnatomicalLevels, LandmarkSet, SilhouetteRatios,
                             SilhouetteWidths, WidthMeasurement)

logger = get_logger(__name__)

# Row-to-row spread at which confidence reaches zero, as a fraction of the median width.
MAX_RELATIVE_SPREAD = 0.3


def as_binary_mask(mask: np.ndarray) -> np.ndarray:
    """
    Brings a mask to a 2-D array on the 0..255 scale.
    Multi-channel masks use their first channel; float masks in [0, 1] are rescaled.
    """
    data = np.asarray(mask)
    if data.ndim == 3:
        data = data[..., 0]
    if data.ndim != 2:
        raise ValueError(f"mask must be 2-D or 3-D, got shape {data.shape}")
    if np.issubdtype(data.dtype, np.floating) and data.size and float(data.max()) <= 1.0:
        data = data * 255.0
    return data


class SilhouetteLevelMeasurer:
    def __init__(self, config: Optional[MeasurerConfig] = None):
        self.config = config or MeasurerConfig()

    def compute_anatomical_levels(self, landmarks: LandmarkSet) -> AnatomicalLevels:
        """Shoulder and hip heights from landmarks; waist and bust are inferred from the torso."""
        required = {
            index: landmarks.get(index)
            for index in (LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.RIGHT_SHOULDER,
                          LandmarkIndex.LEFT_HIP, LandmarkIndex.RIGHT_HIP)
        }
        weak = [
            index.name.lower() for index, landmark in required.items()
            if landmark is None or landmark.score < self.config.min_level_landmark_score
        ]
        if weak:
            raise InvalidPoseError(f"Missing or low-confidence landmarks: {', '.join(weak)}")

        shoulder_y = (required[LandmarkIndex.LEFT_SHOULDER].y + required[LandmarkIndex.RIGHT_SHOULDER].y) / 2
        hip_y = (required[LandmarkIndex.LEFT_HIP].y + required[LandmarkIndex.RIGHT_HIP].y) / 2
        torso_height = hip_y - shoulder_y
        if torso_height <= 0:
            raise InvalidPoseError("Invalid torso height (hips above shoulders)")

        return AnatomicalLevels(
            shoulder_y=shoulder_y,
            bust_y=shoulder_y + self.config.bust_position * torso_height,
            waist_y=hip_y - self.config.waist_position * torso_height,
            hip_y=hip_y,
        )

    def measure_width_at_level(self, mask: np.ndarray, normalized_y: float,
                               level: str) -> WidthMeasurement:
        """Median body width over the band of rows around ``normalized_y``."""
        data = as_binary_mask(mask)
        height, width = data.shape
        band = self.config.band_height

        center = int(round(normalized_y * height))
        start = max(0, center - band)
        end = min(height - 1, center + band)
        band_rows = 2 * band + 1
        if start > end or width == 0:
            raise InsufficientSamplesError(level, 0, band_rows)
        band_rows = end - start + 1

        foreground = data[start:end + 1] > self.config.foreground_threshold
        has_left = foreground.any(axis=1)
        left_edges = np.argmax(foreground, axis=1)
        right_edges = width - 1 - np.argmax(foreground[:, ::-1], axis=1)
        valid = has_left & (right_edges > left_edges)

        valid_rows = int(valid.sum())
        if valid_rows == 0 or valid_rows < self.config.min_valid_fraction * band_rows:
            logger.debug("Insufficient valid rows at %s level (%d/%d)", level, valid_rows, band_rows)
            raise InsufficientSamplesError(level, valid_rows, band_rows)

        lefts = left_edges[valid].astype(np.float64)
        rights = right_edges[valid].astype(np.float64)
        widths = rights - lefts

        median_width = float(np.median(widths))
        median_left = float(np.median(lefts))
        median_right = float(np.median(rights))

        spread = float(np.std(widths))
        confidence = max(0.0, min(1.0, 1.0 - spread / (MAX_RELATIVE_SPREAD * median_width)))

        return WidthMeasurement(
            left_edge=median_left,
            right_edge=median_right,
            width=median_width,
            center_x=(median_left + median_right) / 2,
            confidence=confidence,
            level=level,
        )

    def measure_widths(self, mask: np.ndarray, landmarks: LandmarkSet,
                       include_bust: Optional[bool] = None) -> SilhouetteWidths:
        """
        Measures shoulder, waist and hip (and optionally bust).

        Raises InvalidPoseError or InsufficientSamplesError when any required
        level cannot be measured; a bust failure only drops the bust.
        """
        if include_bust is None:
            include_bust = self.config.include_bust
        data = as_binary_mask(mask)
        levels = self.compute_anatomical_levels(landmarks)

        required: Dict[str, WidthMeasurement] = {}
        for name, y in (("shoulder", levels.shoulder_y), ("waist", levels.waist_y), ("hip", levels.hip_y)):
            required[name] = self.measure_width_at_level(data, y, name)

        bust = None
        if include_bust:
            try:
                bust = self.measure_width_at_level(data, levels.bust_y, "bust")
            except InsufficientSamplesError as e:
                logger.info("Omitting bust measurement: %s", e)

        return SilhouetteWidths(
            shoulder=required["shoulder"],
            bust=bust,
            waist=required["waist"],
            hip=required["hip"],
            image_width=int(data.shape[1]),
            image_height=int(data.shape[0]),
        )

    @staticmethod
    def compute_ratios(widths: SilhouetteWidths) -> SilhouetteRatios:
        return SilhouetteRatios(
            whr=widths.waist.width / widths.hip.width,
            wsr=widths.waist.width / widths.shoulder.width,
            shr=widths.shoulder.width / widths.hip.width,
            bwr=widths.bust.width / widths.waist.width if widths.bust is not None else None,
        )

    @staticmethod
    def waist_curvature_index(widths: SilhouetteWidths) -> float:
        """How far the waist indents from the shoulder/hip envelope; higher is more defined."""
        envelope = (widths.shoulder.width + widths.hip.width) / 2
        if envelope <= 0 or not math.isfinite(envelope):
            return 0.0
        return max(0.0, min(1.0, 1.0 - widths.waist.width / envelope))

    @staticmethod
    def to_centimeters(widths: SilhouetteWidths, cm_per_pixel: float) -> Dict[str, Optional[float]]:
        """Converts pixel widths using a calibrated cm-per-pixel factor."""
        if cm_per_pixel <= 0:
            raise ValueError("cm_per_pixel must be positive")
        return {
            "shoulder": widths.shoulder.width * cm_per_pixel,
            "bust": widths.bust.width * cm_per_pixel if widths.bust is not None else None,
            "waist": widths.waist.width * cm_per_pixel,
            "hip": widths.hip.width * cm_per_pixel,
        }
