import numpy as np

from conftest import make_landmarks
from shape_engine.common.config import VisualizationConfig
from shape_engine.common.enums import CoordinateRotation, FitMode, SessionStatus
from shape_engine.common.landmarks import LandmarkIndex as L
from shape_engine.common.models import SessionSnapshot
from shape_engine.geometry.transform import GeometryTransform
from shape_engine.visualization.visualizer import Visualizer


def _visualizer(fit=FitMode.CONTAIN, dpr=1.0):
    config = VisualizationConfig(display_size=(200, 100), draw_hud=False)
    transform = GeometryTransform(fit, mirrored=False, rotation=CoordinateRotation.NONE, device_pixel_ratio=dpr)
    return Visualizer(config, transform)


def test_contain_leaves_pillarbox_bars():
    frame = np.full((100, 100, 3), 200, dtype=np.uint8)
    canvas = _visualizer().render(frame, SessionSnapshot(status=SessionStatus.ACTIVE), 30.0)
    assert canvas.shape == (100, 200, 3)
    assert canvas[50, 10].sum() == 0
    assert canvas[50, 100].tolist() == [200, 200, 200]


def test_cover_fills_canvas():
    frame = np.full((100, 100, 3), 200, dtype=np.uint8)
    canvas = _visualizer(FitMode.COVER).render(frame, SessionSnapshot(), 30.0)
    assert (canvas == 200).all()


def test_canvas_is_in_device_pixels(standing_pose):
    frame = np.zeros((100, 200, 3), dtype=np.uint8)
    snapshot = SessionSnapshot(status=SessionStatus.ACTIVE, landmarks=standing_pose, pose_ready=True)
    canvas = _visualizer(dpr=2.0).render(frame, snapshot, 30.0)
    assert canvas.shape == (200, 400, 3)
    # Left shoulder at (0.375, 0.3) lands at (150, 60) in device pixels.
    assert canvas[60, 150].any()


def test_no_frame_renders_blank_canvas():
    canvas = _visualizer().render(None, SessionSnapshot(), 0.0)
    assert canvas.shape == (100, 200, 3)
    assert not canvas.any()


def test_segment_between_two_cropped_points_is_not_drawn():
    # A 400x100 frame covers the 200x100 container with 100 px cropped on each side.
    frame = np.zeros((100, 400, 3), dtype=np.uint8)
    landmarks = make_landmarks({L.LEFT_SHOULDER: (0.05, 0.5), L.RIGHT_SHOULDER: (0.95, 0.5)})
    snapshot = SessionSnapshot(status=SessionStatus.ACTIVE, landmarks=landmarks)
    canvas = _visualizer(FitMode.COVER).render(frame, snapshot, 30.0)
    assert not canvas.any()

    landmarks = make_landmarks({L.LEFT_SHOULDER: (0.5, 0.5), L.RIGHT_SHOULDER: (0.95, 0.5)})
    snapshot = SessionSnapshot(status=SessionStatus.ACTIVE, landmarks=landmarks)
    canvas = _visualizer(FitMode.COVER).render(frame, snapshot, 30.0)
    assert canvas[50, 150:200].any()
