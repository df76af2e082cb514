import math

import pytest
from pydantic import ValidationError

from shape_engine.common.landmarks import LANDMARK_COUNT
from shape_engine.common.landmarks import LandmarkIndex as L
from shape_engine.common.models import Landmark, LandmarkSet


def test_landmark_set_pads_to_table():
    assert len(LandmarkSet().landmarks) == LANDMARK_COUNT
    assert LandmarkSet().is_empty
    short = LandmarkSet(landmarks=(Landmark(x=0.5, y=0.1, score=0.9),))
    assert len(short.landmarks) == LANDMARK_COUNT
    assert short.get(L.NOSE).x == 0.5
    assert short[L.RIGHT_ANKLE] is None


def test_landmark_set_rejects_oversized_table():
    with pytest.raises(ValidationError):
        LandmarkSet(landmarks=tuple(Landmark(x=0, y=0, score=1) for _ in range(LANDMARK_COUNT + 1)))


def test_from_arrays_marks_nan_as_absent():
    xy = [(0.1 * i, 0.05 * i) for i in range(LANDMARK_COUNT)]
    xy[L.LEFT_HIP] = (math.nan, math.nan)
    scores = [1.2] + [0.5] * (LANDMARK_COUNT - 1)
    landmarks = LandmarkSet.from_arrays(xy, scores, timestamp=3.0)
    assert landmarks.get(L.LEFT_HIP) is None
    assert landmarks.get(L.NOSE).score == 1.0
    assert landmarks.get(L.RIGHT_HIP).name == "right_hip"
    assert landmarks.timestamp == 3.0
    assert [index for index, _ in landmarks.present()].count(L.LEFT_HIP) == 0


def test_landmark_score_is_bounded():
    with pytest.raises(ValidationError):
        Landmark(x=0.0, y=0.0, score=1.5)
