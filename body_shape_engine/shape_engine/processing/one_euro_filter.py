# body_shape_engine/shape_engine/processing/one_euro_filter.py
import numpy as np
from typing import Optional
from ..common.config import OneEuroConfig
from ..common.landmarks import LANDMARK_COUNT
from ..common.models import LandmarkSet


class OneEuroFilter:
    """
    Vectorized One-Euro filter over an array of coordinates.
    NaN entries (absent landmarks) pass through and restart that entry's state.
    """

    def __init__(self, min_cutoff=0.5, beta=0.05, d_cutoff=1.0):
        self.min_cutoff = min_cutoff
        self.beta = beta
        self.d_cutoff = d_cutoff
        self.reset()

    def reset(self):
        self.x_prev: Optional[np.ndarray] = None
        self.dx_prev: Optional[np.ndarray] = None
        self.t_prev: Optional[float] = None

    @staticmethod
    def _smoothing_factor(te, cutoff):
        r = 2 * np.pi * cutoff * te
        return r / (r + 1)

    def __call__(self, x: np.ndarray, t: float) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        if self.t_prev is None or self.x_prev is None or self.x_prev.shape != x.shape:
            self.t_prev = t
            self.x_prev = x.copy()
            self.dx_prev = np.zeros_like(x)
            return x

        te = t - self.t_prev
        if te < 1e-6:
            return self.x_prev

        # Entries that were absent last time start fresh from the raw value.
        fresh = np.isnan(self.x_prev) | np.isnan(x)
        x_prev = np.where(fresh, x, self.x_prev)
        dx_prev = np.where(fresh, 0.0, self.dx_prev)

        alpha_d = self._smoothing_factor(te, self.d_cutoff)
        dx = (x - x_prev) / te
        dx_hat = alpha_d * dx + (1 - alpha_d) * dx_prev

        cutoff = self.min_cutoff + self.beta * np.abs(dx_hat)
        alpha = self._smoothing_factor(te, cutoff)
        x_hat = alpha * x + (1 - alpha) * x_prev

        self.x_prev = x_hat
        self.dx_prev = np.where(np.isnan(dx_hat), 0.0, dx_hat)
        self.t_prev = t
        return x_hat


class LandmarkSmoother:
    """Smooths landmark positions across detection cycles; scores are not filtered."""

    def __init__(self, config: Optional[OneEuroConfig] = None):
        config = config or OneEuroConfig()
        self.filter = OneEuroFilter(config.min_cutoff, config.beta, config.d_cutoff)

    def reset(self):
        self.filter.reset()

    def __call__(self, landmarks: LandmarkSet, t: float) -> LandmarkSet:
        if landmarks.is_empty:
            self.reset()
            return landmarks

        xy = np.full((LANDMARK_COUNT, 2), np.nan)
        scores = np.zeros(LANDMARK_COUNT)
        z = np.zeros(LANDMARK_COUNT)
        has_z = False
        for index, landmark in landmarks.present():
            xy[index] = (landmark.x, landmark.y)
            scores[index] = landmark.score
            if landmark.z is not None:
                z[index] = landmark.z
                has_z = True

        smoothed = self.filter(xy, t)
        return LandmarkSet.from_arrays(smoothed, scores, z=z if has_z else None,
                                       timestamp=landmarks.timestamp)
