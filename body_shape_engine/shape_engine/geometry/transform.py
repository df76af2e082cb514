# body_shape_engine/shape_engine/geometry/transform.py
"""
Maps normalized source-image coordinates onto a display container.

The container is measured in CSS-like logical pixels; mapped points are
returned in device pixels (logical * device_pixel_ratio) so that a renderer
can draw onto a backing buffer of the container's physical size.
"""
from typing import List, Optional, Tuple
from ..common.enums import CoordinateRotation, FitMode
from ..common.models import DisplayRect, LandmarkSet, MappedPoint


def compute_display_rect(source_width: float, source_height: float,
                         container_width: float, container_height: float,
                         fit: FitMode = FitMode.CONTAIN) -> DisplayRect:
    """Returns the rectangle the source raster occupies inside the container."""
    if source_width <= 0 or source_height <= 0 or container_width <= 0 or container_height <= 0:
        return DisplayRect(x=0.0, y=0.0, width=float(container_width), height=float(container_height),
                           scale_x=1.0, scale_y=1.0)

    source_aspect = source_width / source_height
    container_aspect = container_width / container_height
    crop_x = 0.0
    crop_y = 0.0

    if FitMode(fit) is FitMode.CONTAIN:
        if source_aspect > container_aspect:
            # Wider source: letterbox top/bottom.
            width = float(container_width)
            height = container_width / source_aspect
            x = 0.0
            y = (container_height - height) / 2
        else:
            height = float(container_height)
            width = container_height * source_aspect
            x = (container_width - width) / 2
            y = 0.0
    else:
        if source_aspect > container_aspect:
            # Wider source: crop left/right, x goes negative.
            height = float(container_height)
            width = container_height * source_aspect
            x = (container_width - width) / 2
            y = 0.0
            crop_x = ((width - container_width) / 2) * (source_width / width)
        else:
            width = float(container_width)
            height = container_width / source_aspect
            x = 0.0
            y = (container_height - height) / 2
            crop_y = ((height - container_height) / 2) * (source_height / height)

    return DisplayRect(
        x=x, y=y, width=width, height=height,
        scale_x=width / source_width,
        scale_y=height / source_height,
        crop_x=crop_x, crop_y=crop_y,
    )


def rotate_normalized(x: float, y: float, rotation: CoordinateRotation) -> Tuple[float, float]:
    rotation = CoordinateRotation(rotation)
    if rotation is CoordinateRotation.CCW90:
        return 1.0 - y, x
    if rotation is CoordinateRotation.CW90:
        return y, 1.0 - x
    return x, y


class GeometryTransform:
    """Stateless point mapper bound to one fit/mirror/rotation/DPR setting."""

    def __init__(self, fit: FitMode = FitMode.CONTAIN, mirrored: bool = False,
                 rotation: CoordinateRotation = CoordinateRotation.CCW90,
                 device_pixel_ratio: float = 1.0):
        if device_pixel_ratio <= 0:
            raise ValueError("device_pixel_ratio must be positive")
        self.fit = FitMode(fit)
        self.mirrored = mirrored
        self.rotation = CoordinateRotation(rotation)
        self.device_pixel_ratio = device_pixel_ratio

    @classmethod
    def from_config(cls, config) -> "GeometryTransform":
        return cls(fit=config.fit, mirrored=config.mirrored,
                   rotation=config.rotation, device_pixel_ratio=config.device_pixel_ratio)

    def display_rect(self, source_width: float, source_height: float,
                     container_width: float, container_height: float) -> DisplayRect:
        return compute_display_rect(source_width, source_height,
                                    container_width, container_height, self.fit)

    def map_point(self, x: float, y: float, rect: DisplayRect,
                  container_width: float, container_height: float) -> MappedPoint:
        """Maps one normalized source point into device pixels of the container."""
        raw_x, raw_y = x, y
        x, y = rotate_normalized(x, y, self.rotation)
        if self.mirrored:
            x = 1.0 - x

        display_x = rect.x + x * rect.width
        display_y = rect.y + y * rect.height
        visible = 0.0 <= display_x <= container_width and 0.0 <= display_y <= container_height

        dpr = self.device_pixel_ratio
        return MappedPoint(x=display_x * dpr, y=display_y * dpr,
                           raw_x=raw_x, raw_y=raw_y, visible=visible)

    def is_visible(self, x: float, y: float, rect: DisplayRect,
                   container_width: float, container_height: float) -> bool:
        return self.map_point(x, y, rect, container_width, container_height).visible

    def map_landmarks(self, landmarks: LandmarkSet, rect: DisplayRect,
                      container_width: float, container_height: float,
                      min_score: float = 0.1) -> List[Optional[MappedPoint]]:
        """
        Maps a whole landmark set, keeping table positions.
        Absent or low-score entries map to None.
        """
        mapped: List[Optional[MappedPoint]] = []
        for landmark in landmarks.landmarks:
            if landmark is None or landmark.score < min_score:
                mapped.append(None)
                continue
            mapped.append(self.map_point(landmark.x, landmark.y, rect,
                                         container_width, container_height))
        return mapped
