# body_shape_engine/shape_engine/common/config.py
"""
Typed configuration for every component.

Each threshold that drives a decision lives here as a named field with its
default, so rules stay auditable and components receive them by injection.
The on-disk format is the YAML file read by ``main.py``.
"""
import yaml
from pathlib import Path
from pydantic import BaseModel, Field, ValidationError
from typing import Dict, Tuple, Union
from .enums import CameraFacing, CoordinateRotation, FitMode, LogLevel
from .errors import ConfigError


class QualityThresholds(BaseModel):
    min_landmark_confidence: float = 0.7
    min_pose_stability: float = 0.6
    min_lighting_score: float = 0.5
    frame_fill_min: float = 0.4
    frame_fill_max: float = 0.8
    history_size: int = 10
    # Pose check used on the frozen capture.
    max_yaw_angle: float = 30.0
    max_roll_angle: float = 15.0


class HourglassThresholds(BaseModel):
    shoulder_hip_diff: float = 0.05   # max |shoulder - hip| as a fraction of the larger
    waist_reduction: float = 0.25     # min waist reduction relative to the smaller


class PearThresholds(BaseModel):
    hip_shoulder_diff: float = 0.05   # min (hip - shoulder) as a fraction of the larger
    waist_hip_ratio: float = 0.85     # max waist / hip


class InvertedTriangleThresholds(BaseModel):
    shoulder_hip_diff: float = 0.05   # min (shoulder - hip) as a fraction of the larger
    shoulder_waist_ratio: float = 0.85  # max waist / shoulder


class RectangleThresholds(BaseModel):
    measurement_variance: float = 0.05  # max standard deviation / largest width


class AppleThresholds(BaseModel):
    waist_dominance: float = 0.05     # min waist excess over hip, as a fraction of hip


class ClassificationThresholds(BaseModel):
    hourglass: HourglassThresholds = Field(default_factory=HourglassThresholds)
    pear: PearThresholds = Field(default_factory=PearThresholds)
    inverted_triangle: InvertedTriangleThresholds = Field(default_factory=InvertedTriangleThresholds)
    rectangle: RectangleThresholds = Field(default_factory=RectangleThresholds)
    apple: AppleThresholds = Field(default_factory=AppleThresholds)
    decision_threshold: float = 0.7
    unknown_confidence: float = 0.5


class MeasurerConfig(BaseModel):
    band_height: int = 10            # +/- rows scanned around each level
    foreground_threshold: int = 128
    min_valid_fraction: float = 0.5
    min_level_landmark_score: float = 0.5
    waist_position: float = 0.35     # fraction of torso height up from the hips
    bust_position: float = 0.18      # fraction of torso height down from the shoulders
    include_bust: bool = True


class CaptureConfig(BaseModel):
    detection_interval_s: float = 0.2
    pose_ready_threshold: float = 0.7
    auto_capture_threshold: float = 0.85
    required_excellent_frames: int = 5
    settle_delay_s: float = 0.3
    failure_cooldown_s: float = 2.0
    auto_capture: bool = True
    assess_lighting: bool = True


class GeometryConfig(BaseModel):
    fit: FitMode = FitMode.COVER
    mirrored: bool = True
    # Upstream model frame is rotated relative to the display on the original
    # deployment; other devices may need NONE.
    rotation: CoordinateRotation = CoordinateRotation.CCW90
    device_pixel_ratio: float = 1.0
    min_landmark_score: float = 0.1


class CameraConfig(BaseModel):
    sources: Dict[CameraFacing, Union[int, str]] = Field(
        default_factory=lambda: {CameraFacing.FRONT: 0, CameraFacing.BACK: 1})
    resolution: Tuple[int, int] = (1280, 720)
    target_fps: int = 30
    buffer_size: int = 5


class OneEuroConfig(BaseModel):
    min_cutoff: float = 0.5
    beta: float = 0.05
    d_cutoff: float = 1.0


class PoseConfig(BaseModel):
    model_complexity: int = 1
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    smoothing: bool = True
    filter: OneEuroConfig = Field(default_factory=OneEuroConfig)


class SegmentationConfig(BaseModel):
    enabled: bool = True
    model_selection: int = 1
    threshold: float = 0.5


class VisualizationConfig(BaseModel):
    window_name: str = "Body Shape Engine"
    display_size: Tuple[int, int] = (1280, 720)  # container width, height
    draw_landmarks: bool = True
    draw_hud: bool = True
    key_landmark_radius: int = 6
    landmark_radius: int = 4


class LoggingConfig(BaseModel):
    level: LogLevel = LogLevel.INFO
    log_file: Union[str, None] = None


class EngineConfig(BaseModel):
    camera: CameraConfig = Field(default_factory=CameraConfig)
    pose: PoseConfig = Field(default_factory=PoseConfig)
    segmentation: SegmentationConfig = Field(default_factory=SegmentationConfig)
    quality: QualityThresholds = Field(default_factory=QualityThresholds)
    classification: ClassificationThresholds = Field(default_factory=ClassificationThresholds)
    measurer: MeasurerConfig = Field(default_factory=MeasurerConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    geometry: GeometryConfig = Field(default_factory=GeometryConfig)
    visualization: VisualizationConfig = Field(default_factory=VisualizationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: Union[str, Path]) -> EngineConfig:
    """Reads a YAML file into an EngineConfig; missing sections use defaults."""
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a mapping at the top level")

    try:
        return EngineConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {path}: {e}") from e
