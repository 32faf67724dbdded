"""
Background worker for hand tracking, click recognition and grabbing.
Runs in a separate QThread to avoid blocking the UI.
"""
import logging
import time
import threading
from typing import Optional
from PyQt5.QtCore import QObject, pyqtSignal

from .config import Config
from .hand_tracker import HandTracker
from .click_gesture import ClickCalibration, ClickGestureEngine, ClickSettings
from .landmarks import HandFrame
from ..interaction.grab_controller import GrabController, InteractionState
from ..interaction.scene import GazeReading, PerspectiveCamera, RayCaster, configured_gaze_ray

logger = logging.getLogger(__name__)

# Capture thread back-off while the camera has no new frame (seconds)
IDLE_CAPTURE_SLEEP = 0.005


class InteractionWorker(QObject):
    """
    Worker class that hosts both frame drivers.

    The capture thread runs the click engine on every tracking frame; the
    tick loop runs the grab controller at the render rate on whatever
    gesture is newest.
    """
    # Signals
    gesture_updated = pyqtSignal(object)  # Emits ClickGesture
    state_changed = pyqtSignal(object)  # Emits InteractionState
    gaze_updated = pyqtSignal(object)  # Emits (origin, direction, length) or None
    frame_ready = pyqtSignal(object)  # Emits numpy array (BGR frame with landmarks)
    error = pyqtSignal(str)

    def __init__(
        self,
        config: Config,
        ray_caster: RayCaster,
        camera: PerspectiveCamera,
        settings: Optional[ClickSettings] = None,
        calibration: Optional[ClickCalibration] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._config = config
        self._tracker: Optional[HandTracker] = None
        self._engine = ClickGestureEngine(config.gestures, settings, calibration)
        self._camera = camera
        self._controller = GrabController(ray_caster, camera, config.interaction)
        self._is_running = False

        # Latest snapshots, written by the capture thread
        self._latest_frame: Optional[HandFrame] = None
        self._latest_gesture = self._engine.last_gesture
        self._latest_gaze: Optional[GazeReading] = None
        self._reset_pending = False
        self._last_state = self._controller.state
        self._snapshot_lock = threading.Lock()
        self._capture_thread: Optional[threading.Thread] = None

    @property
    def engine(self) -> ClickGestureEngine:
        return self._engine

    @property
    def controller(self) -> GrabController:
        return self._controller

    def apply_settings(self, settings: ClickSettings) -> None:
        """Swap click settings; a hand-count change also drops any grab on the next tick."""
        with self._snapshot_lock:
            if settings.max_hands != self._engine.settings.max_hands:
                self._reset_pending = True
            self._engine.apply_settings(settings)

    @property
    def reset_pending(self) -> bool:
        with self._snapshot_lock:
            return self._reset_pending

    def apply_calibration(self, calibration: ClickCalibration) -> None:
        with self._snapshot_lock:
            self._engine.apply_calibration(calibration)

    def set_gaze_reading(self, reading: Optional[GazeReading]) -> None:
        """Latest head-gaze reading from an external face tracker."""
        with self._snapshot_lock:
            self._latest_gaze = reading

    def capture_once(self) -> bool:
        """Run the click engine on one tracking frame; False if none was ready."""
        frame = self._tracker.get_frame()
        if frame is None:
            return False
        with self._snapshot_lock:
            gesture = self._engine.update(frame)
            self._latest_frame = frame
            self._latest_gesture = gesture
        self.gesture_updated.emit(gesture)
        return True

    def tick(self) -> Optional[HandFrame]:
        """
        Advance the grab controller on the newest gesture.

        Returns:
            The tracking frame that arrived since the last tick, if any
        """
        with self._snapshot_lock:
            gesture = self._latest_gesture
            frame = self._latest_frame
            self._latest_frame = None  # Consume it
            gaze = self._latest_gaze
            reset_pending = self._reset_pending
            self._reset_pending = False

        if reset_pending:
            self._controller.reset()
        state = self._controller.update(gesture)
        if state is not self._last_state:
            self.state_changed.emit(state)
            self._last_state = state

        if self._config.gaze.enabled:
            self.gaze_updated.emit(configured_gaze_ray(self._camera, gaze, self._config.gaze))
        return frame

    def _capture_loop(self):
        """Background thread to pull camera frames as fast as possible."""
        while self._is_running:
            try:
                if not self.capture_once():
                    time.sleep(IDLE_CAPTURE_SLEEP)
            except Exception as e:
                logger.exception("Capture thread error: %s", e)
                time.sleep(0.1)  # Cool down on error

    def start_process(self):
        """Main render tick loop. Runs in worker thread at worker.tick_rate."""
        self._tracker = HandTracker(self._config)

        if not self._tracker.start():
            self.error.emit("Could not open camera")
            return

        self._is_running = True

        # Start the background capture thread
        self._capture_thread = threading.Thread(target=self._capture_loop, daemon=True)
        self._capture_thread.start()

        last_frame_time = 0
        frame_fps = 5    # Very low FPS for landmarks preview
        min_interval = 1.0 / max(1, self._config.worker.tick_rate)
        frame_interval = 1.0 / frame_fps

        try:
            while self._is_running:
                loop_start = time.perf_counter()

                # 1. Grab controller on the newest gesture (may be several ticks old)
                frame = self.tick()

                # 2. Emit webcam frame only if preview is enabled
                now = time.perf_counter()
                if self._config.worker.show_preview and frame is not None:
                    if now - last_frame_time >= frame_interval:
                        image = self._tracker.get_frame_with_landmarks(frame, black_background=True)
                        if image is not None:
                            self.frame_ready.emit(image)
                        last_frame_time = now

                # 3. Precise timing to hit the tick rate
                elapsed = time.perf_counter() - loop_start
                sleep_time = min_interval - elapsed
                if sleep_time > 0:
                    time.sleep(sleep_time)

        except Exception as e:
            logger.exception("Worker loop failed")
            self.error.emit(f"Worker Exception: {str(e)}")
        finally:
            self._is_running = False
            if self._capture_thread:
                self._capture_thread.join(timeout=1.0)
            if self._tracker:
                self._tracker.stop()
            self._engine.reset()
            self._controller.reset()
            self._last_state = InteractionState.IDLE
            self.state_changed.emit(InteractionState.IDLE)

    def stop_process(self):
        """Signal the loop to stop and release resources in worker thread."""
        self._is_running = False
