# body_shape_engine/shape_engine/common/errors.py


class ShapeEngineError(Exception):
    """Base class for every error raised by the engine."""


class ConfigError(ShapeEngineError):
    pass


class PermissionDeniedError(ShapeEngineError):
    pass


class DeviceUnavailableError(ShapeEngineError, IOError):
    """No capture device was found, or the device is busy."""


class ModelError(ShapeEngineError):
    """Pose or segmentation inference failed."""


class MissingLandmarkError(ShapeEngineError):
    """The detector did not supply a landmark the operation needs."""

    def __init__(self, message: str, indices=()):
        super().__init__(message)
        self.indices = tuple(indices)


class InvalidPoseError(ShapeEngineError):
    """Landmarks are present but geometrically inconsistent."""


class InsufficientSamplesError(ShapeEngineError):
    """A silhouette measurement band had too few usable rows."""

    def __init__(self, level: str, valid_rows: int, band_rows: int):
        super().__init__(
            f"Insufficient valid rows at {level} level ({valid_rows}/{band_rows})"
        )
        self.level = level
        self.valid_rows = valid_rows
        self.band_rows = band_rows


class DivisionByZeroError(ShapeEngineError, ZeroDivisionError):
    pass


class NoPoseDetectedError(ShapeEngineError):
    """Capture fired but no usable landmarks were available."""


class SessionStateError(ShapeEngineError):
    """A session operation was requested from a state that does not allow it."""
