# body_shape_engine/shape_engine/capture/interfaces.py
"""
Contracts for the external collaborators driven by the capture session.
The OpenCV and MediaPipe adapters implement them; tests substitute fakes.
"""
import numpy as np
from typing import Optional, Protocol, Tuple
from ..common.enums import CameraFacing, PermissionStatus
from ..common.models import FrameMetadata, LandmarkSet, SegmentationResult


class CaptureDevice(Protocol):
    async def request_permission(self) -> PermissionStatus:
        ...

    async def open(self, facing: CameraFacing) -> None:
        """Acquires the device for ``facing``; raises DeviceUnavailableError."""
        ...

    def close(self) -> None:
        """Releases the handle. Safe to call when nothing is open."""
        ...

    def get_frame(self) -> Tuple[Optional[np.ndarray], Optional[FrameMetadata]]:
        ...


class PoseModel(Protocol):
    async def detect(self, frame: np.ndarray) -> LandmarkSet:
        """Returns the 17-entry landmark table (empty when nobody is found); raises ModelError."""
        ...


class SegmentationModel(Protocol):
    async def segment(self, frame: np.ndarray) -> SegmentationResult:
        ...
