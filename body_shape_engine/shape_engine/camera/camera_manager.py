# body_shape_engine/shape_engine/camera/camera_manager.py
import asyncio
import cv2
import time
import threading
import numpy as np
from collections import deque
from typing import Optional, Tuple, Union
from ..common.config import CameraConfig
from ..common.enums import CameraFacing, PermissionStatus
from ..common.errors import DeviceUnavailableError
from ..common.logging_utils import get_logger
from ..common.models import FrameMetadata

logger = get_logger(__name__)


class CameraManager:
    """
    OpenCV capture device with a background grab thread.
    Holds at most one VideoCapture handle; opening another facing releases the current one first.
    """

    def __init__(self, config: Optional[CameraConfig] = None):
        self.config = config or CameraConfig()
        self._resolution = tuple(self.config.resolution)
        self._target_fps = self.config.target_fps

        self._cap: Optional[cv2.VideoCapture] = None
        self._thread: Optional[threading.Thread] = None
        self._buffer = deque(maxlen=self.config.buffer_size)
        self._lock = threading.Lock()
        self._close_lock = threading.Lock()
        self._running = False
        self._facing: Optional[CameraFacing] = None
        self._frame_id = 0
        self._dropped_frames = 0

    async def request_permission(self) -> PermissionStatus:
        # OpenCV has no permission prompt; an inaccessible device fails in open().
        return PermissionStatus.GRANTED

    async def open(self, facing: CameraFacing):
        await asyncio.to_thread(self.close)
        facing = CameraFacing(facing)
        source = self.config.sources.get(facing)
        if source is None:
            raise DeviceUnavailableError(f"No camera source configured for {facing.value} facing")

        cap = await asyncio.to_thread(self._open_capture, source)
        self._cap = cap
        self._facing = facing
        self._running = True
        self._thread = threading.Thread(target=self._update, daemon=True)
        self._thread.start()
        logger.info("Camera '%s' opened (source=%s)", facing.value, source)

    def _open_capture(self, source: Union[int, str]) -> cv2.VideoCapture:
        cap = cv2.VideoCapture(source)
        if not cap.isOpened():
            cap.release()
            raise DeviceUnavailableError(f"Cannot open camera source: {source}")

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._resolution[0])
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._resolution[1])
        cap.set(cv2.CAP_PROP_FPS, self._target_fps)
        return cap

    def close(self):
        """Stops the grab thread and releases the device. Blocks for at most one frame grab."""
        with self._close_lock:
            if self._cap is None:
                return
            self._running = False
            if self._thread is not None:
                self._thread.join()
                self._thread = None
            self._cap.release()
            self._cap = None
            with self._lock:
                self._buffer.clear()
            logger.info("Camera '%s' released", self._facing.value if self._facing else "?")
            self._facing = None

    def _update(self):
        """Frame-grabbing loop running in a dedicated thread."""
        cap = self._cap
        while self._running:
            if not cap.grab():
                self._dropped_frames += 1
                time.sleep(0.01)
                continue

            ret, frame = cap.retrieve()
            if ret:
                self._frame_id += 1
                with self._lock:
                    self._buffer.append((frame, self._frame_id, time.perf_counter()))
            else:
                self._dropped_frames += 1

    def get_frame(self) -> Tuple[Optional[np.ndarray], Optional[FrameMetadata]]:
        """Latest frame and its metadata, or (None, None) before the first frame."""
        with self._lock:
            if not self._buffer:
                return None, None
            frame, frame_id, timestamp = self._buffer[-1]

        metadata = FrameMetadata(
            frame_id=frame_id,
            timestamp=timestamp,
            source_resolution=(frame.shape[1], frame.shape[0])
        )
        return frame.copy(), metadata

    def get_stats(self) -> dict:
        stats = {
            "is_running": self.is_running(),
            "facing": self._facing.value if self._facing else None,
            "buffer_size": len(self._buffer),
            "dropped_frames": self._dropped_frames,
            "target_fps": self._target_fps,
        }
        if self._cap is not None:
            stats["actual_resolution"] = (self._cap.get(cv2.CAP_PROP_FRAME_WIDTH),
                                          self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        return stats

    def is_running(self) -> bool:
        return self._running

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
