"""
Click calibration.

Samples the user's own pinch distance (or fist finger count) while the
debounced click is held and turns the samples into personal thresholds.
"""
from enum import Enum
import logging
import time
from typing import List, Optional

from ..vision.click_gesture import ClickCalibration, ClickGesture, ClickMode, ClickSettings
from ..vision.config import GestureConfig
from ..vision.finger_detection import finger_status, is_fist, pinch_distance
from ..vision.hand_roles import resolve_hand_roles
from ..vision.landmarks import NUM_LANDMARKS, HandFrame, HandObservation, finger_tip_index
from .settings import (
    DEFAULT_CALIBRATION,
    FIST_THRESHOLD_RANGE,
    PINCH_THRESHOLD_RANGE,
    SettingsStore,
    load_click_calibration,
    save_click_calibration,
)

logger = logging.getLogger(__name__)

MAX_SAMPLES = 20
# Pinch samples further apart than this are not a pinch
PINCH_SAMPLE_LIMIT = 0.1


class CalibrationStep(str, Enum):
    IDLE = "idle"
    PINCH = "pinch"
    FIST = "fist"


def _clamp(value: float, limits) -> float:
    return max(limits[0], min(limits[1], value))


class ClickCalibrator:
    """
    Collects calibration samples from live frames.

    Usage:
        calibrator.start(ClickMode.PINCH)
        for each frame: calibrator.observe(frame, gesture)
        calibration = calibrator.finish()
    """

    def __init__(
        self,
        store: SettingsStore,
        settings: Optional[ClickSettings] = None,
        config: Optional[GestureConfig] = None,
        max_samples: int = MAX_SAMPLES,
    ):
        """
        Args:
            store: Where the finished calibration is saved
            settings: Click settings the engine runs with (fingers and hand roles)
            config: Fist classifier constants
            max_samples: Samples needed to complete a step
        """
        self._store = store
        self._settings = settings or ClickSettings()
        self._config = config or GestureConfig()
        self._max_samples = max_samples
        self._step = CalibrationStep.IDLE
        self._pinch_samples: List[float] = []
        self._fist_samples: List[int] = []

    @property
    def step(self) -> CalibrationStep:
        return self._step

    @property
    def is_active(self) -> bool:
        return self._step is not CalibrationStep.IDLE

    @property
    def samples(self) -> List[float]:
        if self._step is CalibrationStep.FIST:
            return list(self._fist_samples)
        return list(self._pinch_samples)

    @property
    def is_complete(self) -> bool:
        return self.is_active and len(self.samples) >= self._max_samples

    def start(self, mode: ClickMode = ClickMode.PINCH, settings: Optional[ClickSettings] = None) -> None:
        """Begin sampling; fist mode calibrates the fist, the others the pinch."""
        if settings is not None:
            self._settings = settings
        self._step = CalibrationStep.FIST if ClickMode(mode) is ClickMode.FIST else CalibrationStep.PINCH
        self._pinch_samples = []
        self._fist_samples = []
        logger.info("Click calibration started (%s)", self._step.value)

    def cancel(self) -> None:
        self._step = CalibrationStep.IDLE
        self._pinch_samples = []
        self._fist_samples = []

    def observe(self, frame: HandFrame, gesture: ClickGesture) -> bool:
        """
        Offer one frame to the calibrator.

        Only frames where the debounced click is held are sampled. The pinch
        is measured on the pointer hand and the fist on the click hand, the
        same hands the click engine tests.

        Returns:
            True if a sample was recorded.
        """
        if not self.is_active or self.is_complete or not gesture.is_clicking:
            return False

        pointer, click = resolve_hand_roles(
            frame, self._settings.max_hands, self._settings.primary_hand
        )

        if self._step is CalibrationStep.PINCH:
            if not self._is_complete_hand(pointer):
                return False
            fingers = self._settings.fingers
            distance = pinch_distance(
                pointer.get(finger_tip_index(fingers.primary)),
                pointer.get(finger_tip_index(fingers.secondary)),
            )
            if distance >= PINCH_SAMPLE_LIMIT:
                return False
            self._pinch_samples.append(distance)
            return True

        if not self._is_complete_hand(click):
            return False
        if not is_fist(
            click.landmarks,
            max_extended=self._config.fist_max_extended,
            thumb_straightness=self._config.thumb_straightness,
        ):
            return False
        status = finger_status(click.landmarks, self._config.thumb_straightness)
        self._fist_samples.append(status.total)
        return True

    @staticmethod
    def _is_complete_hand(hand: Optional[HandObservation]) -> bool:
        return hand is not None and len(hand.landmarks) >= NUM_LANDMARKS

    def finish(self) -> ClickCalibration:
        """
        Compute, persist and return the new calibration.

        Thresholds without samples keep their previous values; delays go
        back to the defaults.
        """
        previous = load_click_calibration(self._store)
        pinch_threshold = previous.pinch_threshold
        fist_threshold = previous.fist_threshold

        if self._pinch_samples:
            pinch_threshold = sum(self._pinch_samples) / len(self._pinch_samples)
        if self._fist_samples:
            fist_threshold = round(sum(self._fist_samples) / len(self._fist_samples))

        calibration = ClickCalibration(
            pinch_threshold=_clamp(pinch_threshold, PINCH_THRESHOLD_RANGE),
            fist_threshold=_clamp(fist_threshold, FIST_THRESHOLD_RANGE),
            click_delay=DEFAULT_CALIBRATION.click_delay,
            release_delay=DEFAULT_CALIBRATION.release_delay,
            timestamp=time.time() * 1000.0,
        )
        save_click_calibration(self._store, calibration)
        logger.info(
            "Click calibration saved: pinch %.3f, fist %d (%d samples)",
            calibration.pinch_threshold, calibration.fist_threshold, len(self.samples),
        )
        self.cancel()
        return calibration


def reset_click_calibration(store: SettingsStore) -> ClickCalibration:
    """Persist and return the default calibration."""
    calibration = ClickCalibration(
        pinch_threshold=DEFAULT_CALIBRATION.pinch_threshold,
        fist_threshold=DEFAULT_CALIBRATION.fist_threshold,
        click_delay=DEFAULT_CALIBRATION.click_delay,
        release_delay=DEFAULT_CALIBRATION.release_delay,
        timestamp=time.time() * 1000.0,
    )
    save_click_calibration(store, calibration)
    return calibration
