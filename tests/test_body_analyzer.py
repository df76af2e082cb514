import asyncio

import numpy as np
import pytest

from conftest import body_mask, make_landmarks
from fakes import FakeSegmenter
from shape_engine.analysis.body_analyzer import BodyAnalyzer
from shape_engine.common.enums import BodyShape, MeasurementSource
from shape_engine.common.errors import MissingLandmarkError, ModelError
from shape_engine.common.landmarks import LandmarkIndex as L

FRAME = np.zeros((400, 200, 3), dtype=np.uint8)


def test_silhouette_path_is_preferred(standing_pose):
    analyzer = BodyAnalyzer(segmenter=FakeSegmenter(mask=body_mask()))
    result = asyncio.run(analyzer.analyze(FRAME, standing_pose))
    assert result.source is MeasurementSource.SILHOUETTE
    assert result.shape is BodyShape.INVERTED_TRIANGLE
    assert result.measurements.waist.width == 49
    assert result.pose_check is not None
    assert result.pose_check.upright


def test_segmentation_failure_falls_back_to_landmarks(standing_pose):
    analyzer = BodyAnalyzer(segmenter=FakeSegmenter(error=ModelError("no model")))
    result = asyncio.run(analyzer.analyze(FRAME, standing_pose))
    assert result.source is MeasurementSource.LANDMARKS
    assert result.measurements.normalized


def test_unmeasurable_silhouette_falls_back_to_landmarks(standing_pose):
    analyzer = BodyAnalyzer(segmenter=FakeSegmenter(mask=body_mask(with_waist=False)))
    result = asyncio.run(analyzer.analyze(FRAME, standing_pose))
    assert result.source is MeasurementSource.LANDMARKS


def test_landmarks_only_without_segmenter(standing_pose):
    result = asyncio.run(BodyAnalyzer().analyze(None, standing_pose))
    assert result.source is MeasurementSource.LANDMARKS
    assert result.shape is BodyShape.UNKNOWN
    assert result.confidence == 0.5


def test_landmark_fallback_needs_ankles():
    torso_only = make_landmarks({L.LEFT_SHOULDER: (0.4, 0.3), L.RIGHT_SHOULDER: (0.6, 0.3),
                                 L.LEFT_HIP: (0.42, 0.55), L.RIGHT_HIP: (0.58, 0.55)})
    with pytest.raises(MissingLandmarkError):
        asyncio.run(BodyAnalyzer().analyze(FRAME, torso_only))
