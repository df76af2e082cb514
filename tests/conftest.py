"""
pytest configuration.

Packages live under ./body_shape_engine next to main.py, so that directory is
put on sys.path for runs from the repository root without installing.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_engine_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    engine_str = str(repo_root / "body_shape_engine")
    if engine_str not in sys.path:
        sys.path.insert(0, engine_str)


_ensure_engine_on_syspath()


def make_landmarks(points, score=0.9, timestamp=0.0):
    """Builds a LandmarkSet from {LandmarkIndex: (x, y)}; unlisted entries are absent."""
    from shape_engine.common.models import Landmark, LandmarkSet

    entries = [None] * 17
    for index, (x, y) in points.items():
        entries[int(index)] = Landmark(x=x, y=y, score=score, name=index.name.lower())
    return LandmarkSet(landmarks=tuple(entries), timestamp=timestamp)


@pytest.fixture
def standing_pose():
    """Upright, frontal full-body pose filling ~60% of the frame height."""
    from shape_engine.common.landmarks import LandmarkIndex as L

    return make_landmarks({
        L.NOSE: (0.5, 0.2),
        L.LEFT_EYE: (0.48, 0.19),
        L.RIGHT_EYE: (0.52, 0.19),
        L.LEFT_SHOULDER: (0.375, 0.3),
        L.RIGHT_SHOULDER: (0.625, 0.3),
        L.LEFT_ELBOW: (0.37, 0.42),
        L.RIGHT_ELBOW: (0.63, 0.42),
        L.LEFT_HIP: (0.4, 0.55),
        L.RIGHT_HIP: (0.6, 0.55),
        L.LEFT_KNEE: (0.43, 0.68),
        L.RIGHT_KNEE: (0.57, 0.68),
        L.LEFT_ANKLE: (0.44, 0.8),
        L.RIGHT_ANKLE: (0.56, 0.8),
    })


def body_mask(with_chest=True, with_waist=True):
    """
    400x200 person mask matching ``standing_pose``: shoulder band rows 100-130
    (79 px), chest 131-169 (69 px), waist 170-200 (49 px), hips 205-240 (69 px).
    """
    import numpy as np

    mask = np.zeros((400, 200), dtype=np.uint8)
    mask[100:131, 60:140] = 255
    if with_chest:
        mask[131:170, 65:135] = 255
    if with_waist:
        mask[170:201, 75:125] = 255
    mask[201:205, 70:130] = 255
    mask[205:241, 65:135] = 255
    return mask
