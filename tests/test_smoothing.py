import numpy as np
import pytest

from conftest import make_landmarks
from shape_engine.common.landmarks import LandmarkIndex as L
from shape_engine.common.models import LandmarkSet
from shape_engine.processing.one_euro_filter import LandmarkSmoother, OneEuroFilter


def test_first_sample_passes_through():
    f = OneEuroFilter()
    x = np.array([0.2, 0.4])
    assert np.allclose(f(x, 0.0), x)


def test_filter_damps_jumps():
    f = OneEuroFilter(min_cutoff=0.5, beta=0.0)
    f(np.array([0.0]), 0.0)
    out = f(np.array([1.0]), 0.033)
    assert 0.0 < out[0] < 1.0


def test_absent_entries_restart():
    f = OneEuroFilter()
    f(np.array([0.5, np.nan]), 0.0)
    out = f(np.array([0.6, 0.9]), 0.033)
    assert out[1] == pytest.approx(0.9)
    assert 0.5 < out[0] < 0.6


def test_smoother_keeps_table_and_scores(standing_pose):
    smoother = LandmarkSmoother()
    smoother(standing_pose, 0.0)
    moved = make_landmarks({L.LEFT_SHOULDER: (0.475, 0.3), L.RIGHT_SHOULDER: (0.625, 0.3)}, score=0.8)
    out = smoother(moved, 0.033)
    assert out.get(L.NOSE) is None
    assert out.get(L.LEFT_SHOULDER).score == pytest.approx(0.8)
    assert 0.375 < out.get(L.LEFT_SHOULDER).x < 0.475
    assert out.get(L.RIGHT_SHOULDER).x == pytest.approx(0.625)


def test_smoother_resets_on_empty(standing_pose):
    smoother = LandmarkSmoother()
    smoother(standing_pose, 0.0)
    assert smoother(LandmarkSet(), 0.033).is_empty
    assert smoother.filter.t_prev is None
