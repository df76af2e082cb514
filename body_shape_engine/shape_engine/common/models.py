# body_shape_engine/shape_engine/common/models.py
import math
import numpy as np
from pydantic import BaseModel, Field, field_validator
from typing import Iterator, List, Optional, Sequence, Tuple, Union
from .enums import BodyShape, CameraFacing, MeasurementSource, PermissionStatus, SessionStatus
from .landmarks import LANDMARK_COUNT, LANDMARK_NAMES, LandmarkIndex

class FrameMetadata(BaseModel):
    """Metadata associated with a single camera frame."""
    frame_id: int
    timestamp: float
    source_resolution: Tuple[int, int]

class Landmark(BaseModel):
    """A single anatomical keypoint in normalized image coordinates."""
    x: float
    y: float
    z: Optional[float] = None
    score: float = Field(ge=0.0, le=1.0)
    name: str = ""

    class Config:
        frozen = True

class LandmarkSet(BaseModel):
    """
    One detection cycle's landmarks, indexed by LandmarkIndex.
    A None entry means the detector did not supply that keypoint.
    """
    landmarks: Tuple[Optional[Landmark], ...] = Field(default=(), validate_default=True)
    timestamp: float = 0.0

    class Config:
        frozen = True

    @field_validator("landmarks")
    @classmethod
    def _pad_to_table(cls, value):
        if len(value) > LANDMARK_COUNT:
            raise ValueError(f"expected at most {LANDMARK_COUNT} landmarks, got {len(value)}")
        return tuple(value) + (None,) * (LANDMARK_COUNT - len(value))

    @classmethod
    def from_arrays(cls, xy: Sequence[Sequence[float]], scores: Sequence[float],
                    z: Optional[Sequence[float]] = None, timestamp: float = 0.0) -> "LandmarkSet":
        """Builds a set from parallel arrays; NaN coordinates mark an absent entry."""
        entries: List[Optional[Landmark]] = []
        for i, (point, score) in enumerate(zip(xy, scores)):
            x, y = float(point[0]), float(point[1])
            if math.isnan(x) or math.isnan(y):
                entries.append(None)
                continue
            entries.append(Landmark(
                x=x, y=y,
                z=None if z is None else float(z[i]),
                score=min(1.0, max(0.0, float(score))),
                name=LANDMARK_NAMES[i],
            ))
        return cls(landmarks=tuple(entries), timestamp=timestamp)

    def get(self, index: int) -> Optional[Landmark]:
        return self.landmarks[int(index)]

    def __getitem__(self, index: int) -> Optional[Landmark]:
        return self.get(index)

    def present(self) -> Iterator[Tuple[LandmarkIndex, Landmark]]:
        for i, landmark in enumerate(self.landmarks):
            if landmark is not None:
                yield LandmarkIndex(i), landmark

    @property
    def is_empty(self) -> bool:
        return all(landmark is None for landmark in self.landmarks)

class QualityScore(BaseModel):
    """Multi-factor quality of one detection cycle, every field in [0, 1]."""
    overall: float
    landmarks: float
    stability: float
    lighting: float
    framing: float
    frontality: float

    class Config:
        frozen = True

class QualityFeedback(BaseModel):
    message: str
    suggestions: List[str]
    can_proceed: bool

class PoseCheck(BaseModel):
    """Orientation and distance checks on a frozen pose."""
    full_body_visible: bool
    upright: bool
    yaw_angle: float
    roll_angle: float
    good_distance: bool
    frame_fill: float
    issues: List[str] = Field(default_factory=list)

class BodyMeasurements(BaseModel):
    """Landmark-derived lengths, all in one unit (raw or height-normalized)."""
    shoulder_width: float
    waist_circumference: float
    hip_width: float
    height: float
    normalized: bool = False

    class Config:
        frozen = True

class BodyRatios(BaseModel):
    shoulder_to_hip: float
    waist_to_hip: float
    shoulder_to_waist: float

    class Config:
        frozen = True

class AnatomicalLevels(BaseModel):
    """Normalized Y positions of the horizontal reference heights."""
    shoulder_y: float
    bust_y: float
    waist_y: float
    hip_y: float

class WidthMeasurement(BaseModel):
    left_edge: float
    right_edge: float
    width: float
    center_x: float
    confidence: float
    level: str

    class Config:
        frozen = True

class SilhouetteWidths(BaseModel):
    shoulder: WidthMeasurement
    bust: Optional[WidthMeasurement] = None
    waist: WidthMeasurement
    hip: WidthMeasurement
    image_width: int
    image_height: int

    class Config:
        frozen = True

class SilhouetteRatios(BaseModel):
    whr: float  # waist / hip
    wsr: float  # waist / shoulder
    shr: float  # shoulder / hip
    bwr: Optional[float] = None  # bust / waist

    class Config:
        frozen = True

class SegmentationResult(BaseModel):
    """Binary person mask (255 = person) produced by the segmentation model."""
    mask: np.ndarray
    confidence: float
    width: int
    height: int
    timestamp: float = 0.0

    class Config:
        arbitrary_types_allowed = True

class ShapeCandidate(BaseModel):
    shape: BodyShape
    confidence: float
    matched: bool

class BodyShapeResult(BaseModel):
    """Outcome of one completed classification. Read-only once created."""
    shape: BodyShape
    confidence: float
    ratios: Optional[BodyRatios] = None
    measurements: Optional[Union[SilhouetteWidths, BodyMeasurements]] = None
    quality: Optional[QualityScore] = None
    source: MeasurementSource = MeasurementSource.LANDMARKS
    silhouette_ratios: Optional[SilhouetteRatios] = None
    waist_curvature_index: Optional[float] = None
    candidates: List[ShapeCandidate] = Field(default_factory=list)
    pose_check: Optional[PoseCheck] = None
    user_override: Optional[BodyShape] = None

    class Config:
        frozen = True

    def with_override(self, shape: Optional[BodyShape]) -> "BodyShapeResult":
        """Records a manual override without touching the computed shape."""
        return self.model_copy(update={"user_override": shape})

    @property
    def effective_shape(self) -> BodyShape:
        return self.user_override or self.shape

class DisplayRect(BaseModel):
    """Where a source raster lands inside its display container (CSS pixels)."""
    x: float
    y: float
    width: float
    height: float
    scale_x: float
    scale_y: float
    crop_x: float = 0.0
    crop_y: float = 0.0

    class Config:
        frozen = True

class MappedPoint(BaseModel):
    x: float
    y: float
    raw_x: float
    raw_y: float
    visible: bool

class SessionSnapshot(BaseModel):
    """Subscribable view of the live capture session."""
    status: SessionStatus = SessionStatus.IDLE
    permission: PermissionStatus = PermissionStatus.PROMPT
    facing: CameraFacing = CameraFacing.FRONT
    quality: Optional[QualityScore] = None
    landmarks: Optional[LandmarkSet] = None
    result: Optional[BodyShapeResult] = None
    error: Optional[str] = None
    pose_ready: bool = False
    excellent_frames: int = 0
