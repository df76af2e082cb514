# body_shape_engine/main.py
import asyncio
import cv2
import os
import time
import numpy as np
from collections import deque

from shape_engine.analysis.body_analyzer import BodyAnalyzer
from shape_engine.analysis.classifier import ShapeClassifier
from shape_engine.analysis.measurements import MeasurementCalculator
from shape_engine.analysis.quality import QualityScorer
from shape_engine.analysis.silhouette import SilhouetteLevelMeasurer
from shape_engine.camera.camera_manager import CameraManager
from shape_engine.capture.scheduling import spawn
from shape_engine.capture.state_machine import CaptureStateMachine
from shape_engine.common.config import EngineConfig, load_config
from shape_engine.common.enums import SessionStatus
from shape_engine.common.errors import ShapeEngineError
from shape_engine.common.logging_utils import configure_logging, get_logger
from shape_engine.geometry.transform import GeometryTransform
from shape_engine.processing.pose_processor import PoseProcessor
from shape_engine.processing.segmenter import SelfieSegmenter
from shape_engine.visualization.visualizer import Visualizer

logger = get_logger("main")

RENDER_INTERVAL_S = 1.0 / 30


def build_session(config: EngineConfig, camera: CameraManager, pose: PoseProcessor,
                  segmenter=None) -> CaptureStateMachine:
    analyzer = BodyAnalyzer(
        measurer=SilhouetteLevelMeasurer(config.measurer),
        calculator=MeasurementCalculator(),
        classifier=ShapeClassifier(config.classification),
        segmenter=segmenter,
        quality_thresholds=config.quality,
    )
    return CaptureStateMachine(
        camera=camera,
        pose_model=pose,
        quality_scorer=QualityScorer(config.quality),
        analyzer=analyzer,
        config=config.capture,
    )


async def render_loop(session: CaptureStateMachine, camera: CameraManager, visualizer: Visualizer,
                      window_name: str, min_landmark_score: float):
    """
    Redraws the overlay from the latest published snapshot, independently of
    the detection cycle. Keys: q quit, c capture, s switch camera, r restart.
    """
    fps_history = deque(maxlen=100)
    captures = set()
    while True:
        frame_start_time = time.perf_counter()

        frame, _ = camera.get_frame()
        avg_fps = float(np.mean(fps_history)) if fps_history else 0.0
        output_frame = visualizer.render(frame, session.snapshot(), avg_fps, min_landmark_score=min_landmark_score)
        cv2.imshow(window_name, output_frame)

        key = cv2.waitKey(1) & 0xFF
        try:
            if key == ord('q'):
                logger.info("Shutdown signal received.")
                return
            if key == ord('c') and session.status is SessionStatus.ACTIVE and not session.capture_in_flight:
                spawn(session.capture_now(), captures, "manual-capture")
            elif key == ord('s'):
                await session.switch_camera()
            elif key == ord('r'):
                session.reset()
                await session.start_session()
        except ShapeEngineError as e:
            logger.warning("Ignored key '%s': %s", chr(key), e)

        await asyncio.sleep(RENDER_INTERVAL_S)
        latency = time.perf_counter() - frame_start_time
        fps_history.append(1.0 / latency if latency > 0 else 0)


def report_result(snapshot):
    if snapshot.status is SessionStatus.COMPLETE and snapshot.result is not None:
        result = snapshot.result
        logger.info("Result: %s (%.0f%%). %s", result.effective_shape.value, result.confidence * 100,
                    ShapeClassifier.describe(result.effective_shape))


async def run(config: EngineConfig):
    segmenter = SelfieSegmenter(config.segmentation) if config.segmentation.enabled else None
    pose = PoseProcessor(config.pose)
    try:
        with CameraManager(config.camera) as camera:
            session = build_session(config, camera, pose, segmenter)
            session.subscribe(report_result)
            visualizer = Visualizer(config.visualization, GeometryTransform.from_config(config.geometry))

            await session.start_session()
            try:
                await render_loop(session, camera, visualizer, config.visualization.window_name,
                                  config.geometry.min_landmark_score)
            finally:
                logger.info("Camera stats: %s", camera.get_stats())
                session.stop_session()
    finally:
        pose.close()
        if segmenter is not None:
            segmenter.close()


def main():
    """Loads config.yaml next to this script, then runs the capture session and its overlay."""
    config_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'config.yaml')
    try:
        config = load_config(config_path)
    except ShapeEngineError as e:
        print(f"ERROR: Failed to initialize. {e}")
        return

    configure_logging(config.logging.level, config.logging.log_file)
    try:
        asyncio.run(run(config))
    except ShapeEngineError as e:
        logger.error("Failed to run: %s", e)
    finally:
        cv2.destroyAllWindows()
        logger.info("Application terminated.")


if __name__ == "__main__":
    main()
