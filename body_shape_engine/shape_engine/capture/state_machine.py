# body_shape_engine/shape_engine/capture/state_machine.py
"""
Capture session lifecycle.

    IDLE -> REQUESTING_PERMISSION -> ACTIVE -> CAPTURING -> PROCESSING -> COMPLETE

ERROR is reachable from every state; IDLE is reachable from every state via
stop_session()/reset(). Everything runs on one asyncio event loop: the
periodic detection cycle, captures and the public API never run in parallel,
so state is guarded by flags rather than locks. A generation counter is
bumped whenever the session is stopped or the camera changes; any awaited
result that returns under an older generation is discarded.
"""
import asyncio
from typing import Callable, Dict, FrozenSet, List, Optional
from ..analysis.body_analyzer import BodyAnalyzer
from ..analysis.quality import QualityScorer
from ..common.config import CaptureConfig
from ..common.enums import BodyShape, CameraFacing, PermissionStatus, SessionStatus
from ..common.errors import (NoPoseDetectedError, PermissionDeniedError, SessionStateError,
                             ShapeEngineError)
from ..common.logging_utils import get_logger
from ..common.models import BodyShapeResult, LandmarkSet, QualityScore, SessionSnapshot
from .interfaces import CaptureDevice, PoseModel
from .scheduling import LatestValue, PeriodicTask

logger = get_logger(__name__)

Listener = Callable[[SessionSnapshot], None]

_TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.IDLE: frozenset({SessionStatus.REQUESTING_PERMISSION}),
    SessionStatus.REQUESTING_PERMISSION: frozenset({SessionStatus.ACTIVE}),
    SessionStatus.ACTIVE: frozenset({SessionStatus.CAPTURING}),
    SessionStatus.CAPTURING: frozenset({SessionStatus.PROCESSING, SessionStatus.ACTIVE}),
    SessionStatus.PROCESSING: frozenset({SessionStatus.COMPLETE}),
    SessionStatus.COMPLETE: frozenset(),
    SessionStatus.ERROR: frozenset(),
}
_ALWAYS_ALLOWED = frozenset({SessionStatus.ERROR, SessionStatus.IDLE})


class CaptureStateMachine:
    def __init__(self, camera: CaptureDevice, pose_model: PoseModel,
                 quality_scorer: Optional[QualityScorer] = None,
                 analyzer: Optional[BodyAnalyzer] = None,
                 config: Optional[CaptureConfig] = None,
                 facing: CameraFacing = CameraFacing.FRONT):
        self.camera = camera
        self.pose_model = pose_model
        self.quality_scorer = quality_scorer or QualityScorer()
        self.analyzer = analyzer or BodyAnalyzer()
        self.config = config or CaptureConfig()

        self._status = SessionStatus.IDLE
        self._permission = PermissionStatus.PROMPT
        self._facing = CameraFacing(facing)
        self._error: Optional[str] = None
        self._result: Optional[BodyShapeResult] = None
        self._pose_ready = False

        self._landmarks: LatestValue[LandmarkSet] = LatestValue()
        self._quality: LatestValue[QualityScore] = LatestValue()

        self._excellent_frames = 0
        self._auto_triggered = False
        self._capture_in_flight = False
        self._busy = False
        self._generation = 0

        self._detection: Optional[PeriodicTask] = None
        self._rearm: Optional[asyncio.Task] = None
        self._listeners: List[Listener] = []

    # -- read side -------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def facing(self) -> CameraFacing:
        return self._facing

    @property
    def landmarks(self) -> Optional[LandmarkSet]:
        return self._landmarks.get()

    @property
    def quality(self) -> Optional[QualityScore]:
        return self._quality.get()

    @property
    def result(self) -> Optional[BodyShapeResult]:
        return self._result

    @property
    def excellent_frames(self) -> int:
        return self._excellent_frames

    @property
    def capture_in_flight(self) -> bool:
        return self._capture_in_flight

    @property
    def detection_running(self) -> bool:
        return self._detection is not None and self._detection.running

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            status=self._status,
            permission=self._permission,
            facing=self._facing,
            quality=self._quality.get(),
            landmarks=self._landmarks.get(),
            result=self._result,
            error=self._error,
            pose_ready=self._pose_ready,
            excellent_frames=self._excellent_frames,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registers a listener for every published snapshot; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- session control -------------------------------------------------------

    async def start_session(self, facing: Optional[CameraFacing] = None):
        if self._status is not SessionStatus.IDLE:
            raise SessionStateError(f"Cannot start a session while {self._status.value}")
        if facing is not None:
            self._facing = CameraFacing(facing)

        self._error = None
        self._result = None
        self._transition(SessionStatus.REQUESTING_PERMISSION)
        generation = self._generation

        try:
            self._permission = PermissionStatus(await self.camera.request_permission())
        except ShapeEngineError as e:
            await self._fail(e)
            return
        if generation != self._generation:
            return
        if self._permission is not PermissionStatus.GRANTED:
            await self._fail(PermissionDeniedError("Camera permission denied"))
            return

        try:
            await self.camera.open(self._facing)
        except ShapeEngineError as e:
            await self._fail(e)
            return
        if generation != self._generation:
            await self._release_camera()
            return

        self._transition(SessionStatus.ACTIVE)
        self._start_detection()

    def stop_session(self):
        """
        Releases the camera and stops detection. Idempotent, valid from any state.

        Runs synchronously so it can be called from listeners and shutdown code;
        closing a live camera blocks for at most one frame grab.
        """
        self._generation += 1
        self._stop_detection()
        self._cancel_rearm()
        self.camera.close()

        self._landmarks.clear()
        self._quality.clear()
        self.quality_scorer.clear_history()
        self._pose_ready = False
        self._busy = False
        self._capture_in_flight = False
        self._reset_auto_capture()

        if self._status is not SessionStatus.IDLE:
            self._transition(SessionStatus.IDLE)
        else:
            self._publish()

    def reset(self):
        """Unconditional return to IDLE, discarding any result or error."""
        self._result = None
        self._error = None
        self.stop_session()

    async def switch_camera(self):
        if self._status in (SessionStatus.CAPTURING, SessionStatus.PROCESSING):
            raise SessionStateError("Cannot switch camera while a capture is in progress")

        self._facing = self._facing.other()
        self._reset_auto_capture()
        logger.info("Switching camera to %s", self._facing.value)

        if self._status is not SessionStatus.ACTIVE:
            self._publish()
            return

        self._generation += 1
        generation = self._generation
        self._stop_detection()
        self._cancel_rearm()
        self._landmarks.clear()
        self._quality.clear()
        self.quality_scorer.clear_history()
        self._pose_ready = False
        self._publish()
        await self._release_camera()
        if generation != self._generation:
            return

        try:
            await self.camera.open(self._facing)
        except ShapeEngineError as e:
            await self._fail(e)
            return
        if generation != self._generation:
            await self._release_camera()
            return
        self._start_detection()

    async def capture_now(self) -> Optional[BodyShapeResult]:
        """Manual capture; bypasses the excellent-frame counter."""
        if self._capture_in_flight:
            raise SessionStateError("A capture is already in progress")
        if self._status is not SessionStatus.ACTIVE:
            raise SessionStateError(f"Cannot capture while {self._status.value}")
        return await self._capture(is_auto=False)

    def override_shape(self, shape: Optional[BodyShape]) -> BodyShapeResult:
        if self._result is None:
            raise SessionStateError("No result to override")
        self._result = self._result.with_override(shape)
        self._publish()
        return self._result

    # -- detection -------------------------------------------------------------

    async def run_detection_cycle(self):
        """One detection tick. Errors are logged and skip only this cycle."""
        if self._status is not SessionStatus.ACTIVE or self._busy or self._capture_in_flight:
            return

        self._busy = True
        generation = self._generation
        trigger = False
        try:
            frame, _ = self.camera.get_frame()
            if frame is None:
                return
            landmarks = await self.pose_model.detect(frame)
            if generation != self._generation or self._status is not SessionStatus.ACTIVE:
                return

            if landmarks is None or landmarks.is_empty:
                self._landmarks.clear()
                self._quality.clear()
                self._pose_ready = False
                self._excellent_frames = 0
                self._publish()
                return

            quality = self.quality_scorer.score(landmarks, frame if self.config.assess_lighting else None)
            self._landmarks.set(landmarks)
            self._quality.set(quality)
            self._pose_ready = quality.overall > self.config.pose_ready_threshold
            if quality.overall >= self.config.auto_capture_threshold:
                self._excellent_frames += 1
            else:
                self._excellent_frames = 0
            self._publish()

            trigger = (
                self.config.auto_capture
                and not self._auto_triggered
                and not self._capture_in_flight
                and self._excellent_frames >= self.config.required_excellent_frames
            )
        except ShapeEngineError as e:
            logger.warning("Detection cycle skipped: %s", e)
        finally:
            if generation == self._generation:
                self._busy = False

        if trigger:
            self._auto_triggered = True
            logger.info("Quality sustained for %d frames, auto-capturing", self._excellent_frames)
            await self._capture(is_auto=True)

    def _start_detection(self):
        self._stop_detection()
        self._detection = PeriodicTask(self.config.detection_interval_s,
                                       self.run_detection_cycle, name="detection").start()

    def _stop_detection(self):
        if self._detection is not None:
            self._detection.stop()
            self._detection = None
        self._busy = False

    # -- capture ---------------------------------------------------------------

    async def _capture(self, is_auto: bool) -> Optional[BodyShapeResult]:
        self._capture_in_flight = True
        generation = self._generation
        self._transition(SessionStatus.CAPTURING)
        self._stop_detection()
        logger.info("%s capture started", "Auto" if is_auto else "Manual")

        try:
            await asyncio.sleep(self.config.settle_delay_s)
            if generation != self._generation:
                return None

            frame, _ = self.camera.get_frame()
            landmarks = self._landmarks.get()
            quality = self._quality.get()
            if landmarks is None or landmarks.is_empty:
                raise NoPoseDetectedError("No pose detected. Please stand in front of the camera.")

            self._transition(SessionStatus.PROCESSING)
            result = await self.analyzer.analyze(frame, landmarks, quality)
            if generation != self._generation:
                return None
        except NoPoseDetectedError as e:
            if generation == self._generation:
                self._capture_in_flight = False
                self._recover_from_missed_capture(e)
            return None
        except ShapeEngineError as e:
            if generation == self._generation:
                self._capture_in_flight = False
                await self._fail(e)
            return None
        except Exception as e:
            if generation == self._generation:
                self._capture_in_flight = False
                await self._fail(e)
            raise

        self._capture_in_flight = False
        self._result = result
        self._transition(SessionStatus.COMPLETE)
        await self._release_camera()
        return result

    def _recover_from_missed_capture(self, error: ShapeEngineError):
        logger.warning("Capture failed: %s", error)
        self._error = str(error)
        self._reset_auto_capture()
        self._transition(SessionStatus.ACTIVE)
        self._cancel_rearm()
        self._rearm = asyncio.get_running_loop().create_task(self._rearm_after_cooldown(self._generation))

    async def _rearm_after_cooldown(self, generation: int):
        await asyncio.sleep(self.config.failure_cooldown_s)
        if generation != self._generation or self._status is not SessionStatus.ACTIVE:
            return
        self._rearm = None
        self._error = None
        self._start_detection()
        self._publish()

    def _cancel_rearm(self):
        rearm, self._rearm = self._rearm, None
        if rearm is not None and not rearm.done():
            rearm.cancel()

    # -- bookkeeping -----------------------------------------------------------

    def _reset_auto_capture(self):
        self._excellent_frames = 0
        self._auto_triggered = False

    async def _fail(self, error: BaseException):
        logger.error("Session error: %s", error)
        self._error = str(error)
        self._stop_detection()
        self._cancel_rearm()
        self._transition(SessionStatus.ERROR)
        await self._release_camera()

    async def _release_camera(self):
        # close() joins the grab thread; keep that off the event loop.
        await asyncio.to_thread(self.camera.close)

    def _transition(self, status: SessionStatus):
        if status not in _ALWAYS_ALLOWED and status not in _TRANSITIONS[self._status]:
            raise SessionStateError(f"Illegal transition {self._status.value} -> {status.value}")
        if status is not self._status:
            logger.info("Session %s -> %s", self._status.value, status.value)
        self._status = status
        self._publish()

    def _publish(self):
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener failed")
