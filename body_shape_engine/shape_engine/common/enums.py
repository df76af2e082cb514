# body_shape_engine/shape_engine/common/enums.py
from enum import Enum

class SessionStatus(str, Enum):
    """Defines the lifecycle state of a capture session."""
    IDLE = "IDLE"
    REQUESTING_PERMISSION = "REQUESTING_PERMISSION"
    ACTIVE = "ACTIVE"
    CAPTURING = "CAPTURING"
    PROCESSING = "PROCESSING"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"

class PermissionStatus(str, Enum):
    GRANTED = "GRANTED"
    DENIED = "DENIED"
    PROMPT = "PROMPT"

class CameraFacing(str, Enum):
    FRONT = "front"
    BACK = "back"

    def other(self) -> "CameraFacing":
        return CameraFacing.BACK if self is CameraFacing.FRONT else CameraFacing.FRONT

class BodyShape(str, Enum):
    """Shape vocabulary shared by the landmark and silhouette paths."""
    HOURGLASS = "HOURGLASS"
    PEAR = "PEAR"
    INVERTED_TRIANGLE = "INVERTED_TRIANGLE"
    RECTANGLE = "RECTANGLE"
    APPLE = "APPLE"
    UNKNOWN = "UNKNOWN"

class MeasurementSource(str, Enum):
    LANDMARKS = "landmarks"
    SILHOUETTE = "silhouette"

class FitMode(str, Enum):
    """How a source raster is fitted into its display container."""
    CONTAIN = "contain"
    COVER = "cover"

class CoordinateRotation(str, Enum):
    """Re-projection applied to model coordinates before display mapping."""
    NONE = "none"
    CCW90 = "ccw90"  # x' = 1 - y, y' = x
    CW90 = "cw90"    # x' = y, y' = 1 - x

class LogLevel(str, Enum):
    """Defines logging levels for structured logging."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
