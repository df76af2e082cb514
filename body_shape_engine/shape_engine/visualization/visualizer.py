# body_shape_engine/shape_engine/visualization/visualizer.py
import cv2
import numpy as np
from typing import List, Optional
from ..common.config import VisualizationConfig
from ..common.landmarks import KEY_LANDMARKS, SKELETON_CONNECTIONS
from ..common.models import DisplayRect, MappedPoint, SessionSnapshot
from ..geometry.transform import GeometryTransform


class Visualizer:
    """Draws the camera frame and landmark overlay into a fixed-size display container."""

    def __init__(self, config: Optional[VisualizationConfig] = None,
                 transform: Optional[GeometryTransform] = None):
        self.config = config or VisualizationConfig()
        self.transform = transform or GeometryTransform()
        self.font = cv2.FONT_HERSHEY_SIMPLEX
        self._key_landmarks = set(KEY_LANDMARKS)

    @property
    def container_size(self):
        return self.config.display_size

    def render(self, frame: Optional[np.ndarray], snapshot: SessionSnapshot,
               current_fps: float, min_landmark_score: float = 0.1) -> np.ndarray:
        """Returns a device-pixel canvas with the fitted frame, skeleton and HUD."""
        container_w, container_h = self.container_size
        dpr = self.transform.device_pixel_ratio
        canvas = np.zeros((int(round(container_h * dpr)), int(round(container_w * dpr)), 3), dtype=np.uint8)
        if frame is None:
            if self.config.draw_hud:
                self._draw_hud(canvas, snapshot, current_fps)
            return canvas

        source_h, source_w = frame.shape[:2]
        rect = self.transform.display_rect(source_w, source_h, container_w, container_h)
        self._blit(canvas, frame, rect, dpr)

        if snapshot.landmarks is not None and self.config.draw_landmarks:
            points = self.transform.map_landmarks(snapshot.landmarks, rect, container_w, container_h,
                                                  min_score=min_landmark_score)
            self._draw_skeleton(canvas, points, snapshot.pose_ready)

        if self.config.draw_hud:
            self._draw_hud(canvas, snapshot, current_fps)
        return canvas

    def _blit(self, canvas: np.ndarray, frame: np.ndarray, rect: DisplayRect, dpr: float):
        """Pastes the frame at the display rect, clipping whatever falls outside the canvas."""
        width = max(1, int(round(rect.width * dpr)))
        height = max(1, int(round(rect.height * dpr)))
        scaled = cv2.resize(frame, (width, height), interpolation=cv2.INTER_LINEAR)
        if self.transform.mirrored:
            scaled = cv2.flip(scaled, 1)

        x0 = int(round(rect.x * dpr))
        y0 = int(round(rect.y * dpr))
        canvas_h, canvas_w = canvas.shape[:2]
        left, top = max(0, x0), max(0, y0)
        right, bottom = min(canvas_w, x0 + width), min(canvas_h, y0 + height)
        if right <= left or bottom <= top:
            return
        canvas[top:bottom, left:right] = scaled[top - y0:bottom - y0, left - x0:right - x0]

    def _draw_skeleton(self, canvas: np.ndarray, points: List[Optional[MappedPoint]], pose_ready: bool):
        line_color = (0, 220, 0) if pose_ready else (0, 200, 255)
        for a, b in SKELETON_CONNECTIONS:
            pa, pb = points[a], points[b]
            if pa is None or pb is None:
                continue
            if not (pa.visible or pb.visible):
                continue
            cv2.line(canvas, (int(pa.x), int(pa.y)), (int(pb.x), int(pb.y)), line_color, 2, cv2.LINE_AA)

        for index, point in enumerate(points):
            if point is None or not point.visible:
                continue
            if index in self._key_landmarks:
                radius, color = self.config.key_landmark_radius, (0, 255, 0)
            else:
                radius, color = self.config.landmark_radius, (255, 255, 255)
            cv2.circle(canvas, (int(point.x), int(point.y)), radius, color, -1, cv2.LINE_AA)

    def _draw_hud(self, canvas: np.ndarray, snapshot: SessionSnapshot, fps: float):
        hud_elements = [
            f"FPS: {fps:.1f}",
            f"State: {snapshot.status.value}",
        ]
        if snapshot.quality is not None:
            hud_elements.append(f"Quality: {snapshot.quality.overall * 100:.0f}%")
            hud_elements.append(f"Excellent frames: {snapshot.excellent_frames}")
        if snapshot.result is not None:
            hud_elements.append(
                f"Shape: {snapshot.result.effective_shape.value} ({snapshot.result.confidence * 100:.0f}%)")
        if snapshot.error:
            hud_elements.append(f"Error: {snapshot.error}")

        for i, text in enumerate(hud_elements):
            cv2.putText(canvas, text, (10, 30 + i * 30), self.font, 0.7, (240, 240, 240), 2, cv2.LINE_AA)
