"""
MediaPipe Hand Tracker wrapper using the Tasks API.
Handles camera capture and produces one HandFrame per camera frame.
"""
import logging
from pathlib import Path
from typing import Optional
import time
import cv2
import numpy as np
import mediapipe as mp

from .config import Config, CameraConfig, MediaPipeConfig
from .landmarks import HandFrame, HandednessOverride, build_hand_frame, prefer_thumb_side

logger = logging.getLogger(__name__)

# MediaPipe Tasks API imports
BaseOptions = mp.tasks.BaseOptions
HandLandmarker = mp.tasks.vision.HandLandmarker
HandLandmarkerOptions = mp.tasks.vision.HandLandmarkerOptions
HandLandmarkerResult = mp.tasks.vision.HandLandmarkerResult
VisionRunningMode = mp.tasks.vision.RunningMode

MODEL_URL = "https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/1/hand_landmarker.task"

# Hand connections for drawing (same as MediaPipe's HAND_CONNECTIONS)
HAND_CONNECTIONS = [
    (0, 1), (1, 2), (2, 3), (3, 4),      # Thumb
    (0, 5), (5, 6), (6, 7), (7, 8),      # Index
    (0, 9), (9, 10), (10, 11), (11, 12), # Middle
    (0, 13), (13, 14), (14, 15), (15, 16), # Ring
    (0, 17), (17, 18), (18, 19), (19, 20), # Pinky
    (5, 9), (9, 13), (13, 17),           # Palm
]


class HandTracker:
    """
    MediaPipe hand tracking wrapper with camera management.
    Uses the MediaPipe Tasks API (0.10+) in VIDEO mode.

    Frames are fed to MediaPipe unmirrored; the click engine mirrors x
    itself and the thumb-side handedness check expects camera orientation.
    """

    # Default model path relative to project root
    DEFAULT_MODEL_PATH = Path(__file__).parent.parent.parent / "models" / "hand_landmarker.task"

    def __init__(
        self,
        config: Config,
        model_path: Optional[Path] = None,
        handedness_override: Optional[HandednessOverride] = None,
    ):
        """
        Initialize hand tracker.

        Args:
            config: HandGrab configuration
            model_path: Path to hand_landmarker.task model file
            handedness_override: Label resolver; defaults to the thumb-side
                override when mediapipe.override_handedness is set
        """
        self._camera_config: CameraConfig = config.camera
        self._mp_config: MediaPipeConfig = config.mediapipe
        self._model_path = Path(model_path or self.DEFAULT_MODEL_PATH)
        if handedness_override is None and self._mp_config.override_handedness:
            handedness_override = prefer_thumb_side
        self._handedness_override = handedness_override

        # Lazy initialization
        self._cap: Optional[cv2.VideoCapture] = None
        self._landmarker: Optional[HandLandmarker] = None

        # State
        self._is_running = False
        self._last_frame: Optional[np.ndarray] = None
        self._frame_count = 0
        self._start_perf: float = 0
        self._last_timestamp_ms: int = -1

    def start(self) -> bool:
        """
        Start camera capture and MediaPipe.

        Returns:
            True if started successfully, False otherwise.
        """
        if self._is_running:
            return True

        if not self._model_path.exists():
            logger.error("Model file not found: %s (download from %s)", self._model_path, MODEL_URL)
            return False

        self._cap = cv2.VideoCapture(self._camera_config.device_id)
        if not self._cap.isOpened():
            logger.error("Could not open camera %d", self._camera_config.device_id)
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._camera_config.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._camera_config.height)
        self._cap.set(cv2.CAP_PROP_FPS, self._camera_config.fps)

        options = HandLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(self._model_path)),
            running_mode=VisionRunningMode.VIDEO,
            num_hands=self._mp_config.max_num_hands,
            min_hand_detection_confidence=self._mp_config.min_detection_confidence,
            min_tracking_confidence=self._mp_config.min_tracking_confidence,
        )

        self._landmarker = HandLandmarker.create_from_options(options)
        self._start_perf = time.perf_counter()
        self._last_timestamp_ms = -1
        self._is_running = True
        logger.info("Hand tracker started (max %d hands)", self._mp_config.max_num_hands)
        return True

    def stop(self) -> None:
        """Stop camera capture and release resources."""
        self._is_running = False

        if self._landmarker:
            self._landmarker.close()
            self._landmarker = None

        if self._cap:
            self._cap.release()
            self._cap = None

        self._last_frame = None

    def get_frame(self) -> Optional[HandFrame]:
        """
        Capture a camera frame and detect hands.

        Returns:
            HandFrame (possibly empty), or None when no camera frame was read.
        """
        if not self._is_running or self._cap is None or self._landmarker is None:
            return None

        ret, frame = self._cap.read()
        if not ret:
            return None

        self._frame_count += 1
        self._last_frame = frame

        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        rgb_frame.flags.writeable = False
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_frame)

        # Calculate strictly monotonic timestamp
        timestamp_ms = int((time.perf_counter() - self._start_perf) * 1000)
        if timestamp_ms <= self._last_timestamp_ms:
            timestamp_ms = self._last_timestamp_ms + 1
        self._last_timestamp_ms = timestamp_ms

        result = self._landmarker.detect_for_video(mp_image, timestamp_ms)
        return self._to_hand_frame(result)

    def _to_hand_frame(self, result: HandLandmarkerResult) -> HandFrame:
        if not result.hand_landmarks:
            return HandFrame()

        detections = []
        for i, hand_landmarks in enumerate(result.hand_landmarks):
            label, score = None, 0.0
            if i < len(result.handedness) and result.handedness[i]:
                category = result.handedness[i][0]
                label = category.display_name or category.category_name
                score = category.score
            points = [(lm.x, lm.y, lm.z) for lm in hand_landmarks]
            detections.append((points, label, score))

        return build_hand_frame(
            detections,
            max_hands=self._mp_config.max_num_hands,
            handedness_override=self._handedness_override,
        )

    def get_frame_with_landmarks(
        self,
        hands: Optional[HandFrame] = None,
        black_background: bool = False,
    ) -> Optional[np.ndarray]:
        """
        Get last frame, mirrored for display, with optional landmark overlay.

        Args:
            hands: If provided, draw every hand's skeleton.
            black_background: If True, draw on black instead of camera image.

        Returns:
            Frame with landmarks drawn, or None if no frame available.
        """
        if self._last_frame is None:
            return None

        if black_background:
            frame = np.zeros_like(self._last_frame)
        else:
            frame = self._last_frame.copy()

        if hands is not None:
            h, w = frame.shape[:2]
            for hand in hands:
                color = (0, 255, 0) if hand.handedness == "Right" else (255, 128, 0)
                points = [(int(p.x * w), int(p.y * h)) for p in hand.landmarks]
                for cx, cy in points:
                    cv2.circle(frame, (cx, cy), 5, color, -1)
                for start_idx, end_idx in HAND_CONNECTIONS:
                    cv2.line(frame, points[start_idx], points[end_idx], color, 2)

        # Mirror for a natural "looking in a mirror" view
        return cv2.flip(frame, 1)

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def frame_count(self) -> int:
        return self._frame_count
