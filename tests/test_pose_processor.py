from types import SimpleNamespace

import pytest

pytest.importorskip("mediapipe")

from shape_engine.common.landmarks import LandmarkIndex as L  # noqa: E402
from shape_engine.processing.pose_processor import PoseProcessor  # noqa: E402


def test_blazepose_is_reduced_to_anatomical_table():
    blazepose = [SimpleNamespace(x=i / 100, y=i / 50, z=-0.1, visibility=0.9) for i in range(33)]
    landmarks = PoseProcessor._to_anatomical(blazepose, timestamp=1.5)
    assert landmarks.get(L.LEFT_SHOULDER).x == pytest.approx(0.11)
    assert landmarks.get(L.RIGHT_HIP).y == pytest.approx(24 / 50)
    assert landmarks.get(L.RIGHT_ANKLE).x == pytest.approx(0.28)
    assert landmarks.get(L.NOSE).z == pytest.approx(-0.1)
    assert landmarks.timestamp == 1.5
    assert all(lm is not None for lm in landmarks.landmarks)
