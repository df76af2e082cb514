import pytest

from conftest import make_landmarks
from shape_engine.common.config import GeometryConfig
from shape_engine.common.enums import CoordinateRotation, FitMode
from shape_engine.common.landmarks import LandmarkIndex as L
from shape_engine.common.models import Landmark, LandmarkSet
from shape_engine.geometry.transform import GeometryTransform, compute_display_rect, rotate_normalized

CORNERS = [(0.0, 0.0), (1.0, 0.0), (0.0, 1.0), (1.0, 1.0)]


def test_contain_letterboxes_wide_source():
    rect = compute_display_rect(640, 480, 800, 800, FitMode.CONTAIN)
    assert (rect.x, rect.y, rect.width, rect.height) == pytest.approx((0.0, 100.0, 800.0, 600.0))
    assert rect.scale_x == pytest.approx(1.25)
    assert (rect.crop_x, rect.crop_y) == (0.0, 0.0)


def test_contain_corners_land_on_rect_edges():
    transform = GeometryTransform(FitMode.CONTAIN, rotation=CoordinateRotation.NONE)
    rect = transform.display_rect(640, 480, 800, 800)
    xs, ys = set(), set()
    for x, y in CORNERS:
        p = transform.map_point(x, y, rect, 800, 800)
        assert p.visible
        xs.add(round(p.x, 6))
        ys.add(round(p.y, 6))
    assert xs == {0.0, 800.0}
    assert ys == {100.0, 700.0}


@pytest.mark.parametrize("source", [(640, 480), (480, 640), (1920, 1080), (400, 400)])
def test_cover_fills_container(source):
    rect = compute_display_rect(source[0], source[1], 400, 400, FitMode.COVER)
    assert rect.x <= 0.0 and rect.y <= 0.0
    assert rect.x + rect.width >= 400.0 - 1e-9
    assert rect.y + rect.height >= 400.0 - 1e-9


def test_cover_crop_is_in_source_pixels():
    wide = compute_display_rect(640, 480, 400, 400, FitMode.COVER)
    assert wide.x == pytest.approx(-200.0 / 3)
    assert wide.crop_x == pytest.approx(80.0)
    tall = compute_display_rect(480, 640, 400, 400, FitMode.COVER)
    assert tall.crop_y == pytest.approx(80.0)
    assert tall.crop_x == 0.0


def test_degenerate_source_maps_to_container():
    rect = compute_display_rect(0, 0, 300, 200)
    assert (rect.x, rect.y, rect.width, rect.height) == (0.0, 0.0, 300.0, 200.0)


def test_rotation_variants():
    assert rotate_normalized(0.2, 0.3, CoordinateRotation.CCW90) == pytest.approx((0.7, 0.2))
    assert rotate_normalized(0.2, 0.3, CoordinateRotation.CW90) == pytest.approx((0.3, 0.8))
    assert rotate_normalized(0.2, 0.3, CoordinateRotation.NONE) == (0.2, 0.3)


def test_default_rotation_then_mirror():
    transform = GeometryTransform(FitMode.CONTAIN, mirrored=True)
    rect = transform.display_rect(100, 100, 100, 100)
    p = transform.map_point(0.2, 0.3, rect, 100, 100)
    assert (p.x, p.y) == pytest.approx((30.0, 20.0))
    assert (p.raw_x, p.raw_y) == (0.2, 0.3)


def test_cover_cropped_points_are_not_visible():
    transform = GeometryTransform(FitMode.COVER, rotation=CoordinateRotation.NONE)
    rect = transform.display_rect(640, 480, 400, 400)
    assert not transform.is_visible(0.0, 0.5, rect, 400, 400)
    assert transform.is_visible(0.5, 0.5, rect, 400, 400)


def test_device_pixel_ratio_scales_output_only():
    transform = GeometryTransform(FitMode.CONTAIN, rotation=CoordinateRotation.NONE, device_pixel_ratio=2.0)
    rect = transform.display_rect(100, 100, 100, 100)
    p = transform.map_point(1.0, 1.0, rect, 100, 100)
    assert (p.x, p.y) == (200.0, 200.0)
    assert p.visible


def test_invalid_device_pixel_ratio():
    with pytest.raises(ValueError):
        GeometryTransform(device_pixel_ratio=0)


def test_map_landmarks_skips_absent_and_weak():
    entries = list(make_landmarks({L.NOSE: (0.5, 0.5), L.LEFT_SHOULDER: (0.4, 0.3)}).landmarks)
    entries[L.RIGHT_SHOULDER] = Landmark(x=0.6, y=0.3, score=0.05)
    landmarks = LandmarkSet(landmarks=tuple(entries))

    transform = GeometryTransform.from_config(GeometryConfig(fit=FitMode.CONTAIN, mirrored=False,
                                                             rotation=CoordinateRotation.NONE))
    rect = transform.display_rect(100, 100, 100, 100)
    mapped = transform.map_landmarks(landmarks, rect, 100, 100)
    assert len(mapped) == 17
    assert mapped[L.NOSE].x == pytest.approx(50.0)
    assert mapped[L.RIGHT_SHOULDER] is None
    assert mapped[L.LEFT_HIP] is None
