"""
Click recognition from hand landmarks.
Turns pinch/fist poses into a debounced click, a smoothed pointer and a Z channel.
"""
from dataclasses import dataclass, field
from enum import Enum
import logging
import time
from typing import Optional, Tuple

from .config import GestureConfig
from .finger_detection import is_fist, palm_center, pinch_distance
from .hand_depth import hand_depth, hand_scale
from .hand_roles import HandRoles, PrimaryHandPreference, resolve_hand_roles
from .landmarks import WRIST, HandFrame, HandObservation, finger_tip_index
from .smoothing import ExponentialSmoother, Vector2Smoother

logger = logging.getLogger(__name__)

# Pointer hand needs at least this many points to be usable
MIN_POINTER_LANDMARKS = 9

NEUTRAL_POSITION = (0.5, 0.5)

FINGERS = ("thumb", "index", "middle", "ring", "pinky")


class ClickMode(str, Enum):
    """Which pose triggers a click."""
    PINCH = "pinch"
    FIST = "fist"
    BOTH = "both"


@dataclass(frozen=True)
class FingerSettings:
    """Finger tips that form the pinch; primary also drives the pointer."""
    primary: str = "index"
    secondary: str = "thumb"


@dataclass(frozen=True)
class ClickCalibration:
    """Per-user click thresholds. Delays are in milliseconds."""
    pinch_threshold: float = 0.05
    fist_threshold: float = 0
    click_delay: float = 100
    release_delay: float = 150
    timestamp: float = 0.0


@dataclass(frozen=True)
class ClickSettings:
    """User settings the engine reads every frame."""
    click_mode: ClickMode = ClickMode.PINCH
    fingers: FingerSettings = field(default_factory=FingerSettings)
    primary_hand: PrimaryHandPreference = PrimaryHandPreference.AUTO
    max_hands: int = 1


@dataclass(frozen=True)
class ClickGesture:
    """Engine output for one frame. Only is_clicking and click_position drive interaction."""
    is_clicking: bool = False
    click_position: Tuple[float, float, float] = (0.5, 0.5, 0.0)
    click_strength: float = 0.0
    click_mode: ClickMode = ClickMode.PINCH
    hand_depth: float = 0.5
    hand_scale: float = 1.0

    # Diagnostics (instantaneous, not debounced)
    is_pinching_raw: bool = False
    is_fisting: bool = False
    pinch_distance: float = 0.0

    @property
    def x(self) -> float:
        return self.click_position[0]

    @property
    def y(self) -> float:
        return self.click_position[1]

    @property
    def z(self) -> float:
        return self.click_position[2]


@dataclass
class _DebounceState:
    is_clicking_raw: bool = False
    is_clicking: bool = False
    click_start_ms: Optional[float] = None
    release_start_ms: Optional[float] = None


def _now_ms() -> float:
    return time.perf_counter() * 1000.0


class ClickGestureEngine:
    """
    Recognizes clicks from hand frames.

    Per frame:
    - Resolve pointer/click hands
    - Raw pinch (pointer hand) and fist (click hand) tests
    - Edge-triggered debounce into is_clicking
    - Smoothed pointer position, click strength and a depth-derived Z
    """

    def __init__(
        self,
        config: Optional[GestureConfig] = None,
        settings: Optional[ClickSettings] = None,
        calibration: Optional[ClickCalibration] = None,
    ):
        """
        Initialize click engine.

        Args:
            config: Smoothing factors and classifier constants
            settings: Click mode, fingers and hand preferences
            calibration: Thresholds and debounce delays (defaults if None)
        """
        self._config = config or GestureConfig()
        self._settings = settings or ClickSettings()
        self._calibration = calibration or ClickCalibration(
            pinch_threshold=self._config.pinch_threshold,
            click_delay=self._config.click_delay_ms,
            release_delay=self._config.release_delay_ms,
        )

        # Owned smoothers, one set per engine
        self._position_smoother = Vector2Smoother(self._config.position_smoothing, NEUTRAL_POSITION)
        self._strength_smoother = ExponentialSmoother(0.0, self._config.strength_smoothing)

        self._debounce = _DebounceState()
        self._last_gesture = ClickGesture(click_mode=self._settings.click_mode)

    @property
    def settings(self) -> ClickSettings:
        return self._settings

    @property
    def calibration(self) -> ClickCalibration:
        return self._calibration

    @property
    def last_gesture(self) -> ClickGesture:
        return self._last_gesture

    def apply_settings(self, settings: ClickSettings) -> None:
        # Fewer allowed hands means any held click belongs to a hand that may be gone
        if settings.max_hands != self._settings.max_hands:
            self.reset()
        self._settings = settings

    def apply_calibration(self, calibration: ClickCalibration) -> None:
        self._calibration = calibration

    def resolve_roles(self, frame: HandFrame) -> HandRoles:
        return resolve_hand_roles(frame, self._settings.max_hands, self._settings.primary_hand)

    def update(self, frame: HandFrame, now_ms: Optional[float] = None) -> ClickGesture:
        """
        Process one tracking frame.

        Args:
            frame: Hands detected this frame
            now_ms: Frame time in milliseconds (monotonic clock if None)

        Returns:
            ClickGesture snapshot for this frame.
        """
        if now_ms is None:
            now_ms = _now_ms()

        mode = ClickMode(self._settings.click_mode)
        pointer, click = self.resolve_roles(frame)

        primary_idx = finger_tip_index(self._settings.fingers.primary)
        secondary_idx = finger_tip_index(self._settings.fingers.secondary)

        if not self._is_usable(pointer, max(primary_idx, secondary_idx)):
            return self._neutral(mode)

        primary_tip = pointer.get(primary_idx)
        secondary_tip = pointer.get(secondary_idx)

        # 1. Raw signals
        threshold = self._calibration.pinch_threshold
        distance = pinch_distance(primary_tip, secondary_tip)
        is_pinching_raw = distance < threshold

        two_hands = click is not None and click is not pointer
        fist_hand = click if two_hands else pointer
        is_fisting = is_fist(
            fist_hand.landmarks,
            max_extended=self._config.fist_max_extended,
            thumb_straightness=self._config.thumb_straightness,
        )

        if mode is ClickMode.PINCH:
            is_clicking_raw = is_pinching_raw
        elif mode is ClickMode.FIST:
            is_clicking_raw = is_fisting
        else:
            is_clicking_raw = is_pinching_raw or is_fisting

        # 2. Debounce
        is_clicking = self._debounce_click(is_clicking_raw, now_ms)

        # 3. Strength
        strength = self._update_strength(mode, is_clicking, is_pinching_raw, is_fisting, distance, threshold)

        # 4. Pointer position (mirrored x)
        fist_counts = is_fisting and mode in (ClickMode.FIST, ClickMode.BOTH)
        if fist_counts and two_hands:
            # Point with one hand, click with the other
            raw_x, raw_y = primary_tip[0], primary_tip[1]
        elif fist_counts:
            center = palm_center(pointer.landmarks)
            if center is None:
                center = pointer.get(WRIST)
            raw_x, raw_y = center[0], center[1]
        elif is_pinching_raw and mode in (ClickMode.PINCH, ClickMode.BOTH):
            raw_x = (primary_tip[0] + secondary_tip[0]) / 2
            raw_y = (primary_tip[1] + secondary_tip[1]) / 2
        else:
            raw_x, raw_y = primary_tip[0], primary_tip[1]

        sx, sy = self._position_smoother.update(1.0 - raw_x, raw_y)

        # 5. Depth channel
        depth = hand_depth(pointer.landmarks, self._config.depth_weights)
        scale = hand_scale(pointer.landmarks, self._config.scale_reference)
        base_z = (depth - 0.5) * self._config.depth_range
        scale_z = (scale - 1.0) * self._config.scale_z_gain
        z = -(base_z + scale_z)  # Near maps to negative Z

        self._last_gesture = ClickGesture(
            is_clicking=is_clicking,
            click_position=(sx, sy, z),
            click_strength=strength,
            click_mode=mode,
            hand_depth=depth,
            hand_scale=scale,
            is_pinching_raw=is_pinching_raw,
            is_fisting=is_fisting,
            pinch_distance=distance,
        )
        return self._last_gesture

    def _debounce_click(self, is_clicking_raw: bool, now_ms: float) -> bool:
        """
        Edge-triggered debounce.

        Each raw edge restarts its timer; the debounced value only follows
        once the raw value has held for the click/release delay.
        """
        state = self._debounce

        if is_clicking_raw and not state.is_clicking_raw:
            state.click_start_ms = now_ms
        if not is_clicking_raw and state.is_clicking_raw:
            state.release_start_ms = now_ms
        state.is_clicking_raw = is_clicking_raw

        if is_clicking_raw and state.click_start_ms is not None:
            if now_ms - state.click_start_ms >= self._calibration.click_delay:
                if not state.is_clicking:
                    logger.debug("Click down at %.0f ms", now_ms)
                state.is_clicking = True

        if not is_clicking_raw and state.release_start_ms is not None:
            if now_ms - state.release_start_ms >= self._calibration.release_delay:
                if state.is_clicking:
                    logger.debug("Click up at %.0f ms", now_ms)
                state.is_clicking = False
                state.click_start_ms = None
                state.release_start_ms = None

        return state.is_clicking

    def _update_strength(
        self,
        mode: ClickMode,
        is_clicking: bool,
        is_pinching_raw: bool,
        is_fisting: bool,
        distance: float,
        threshold: float,
    ) -> float:
        pinch_strength = 1.0 - min(distance / max(threshold * 2, 1e-6), 1.0)

        if mode is ClickMode.PINCH:
            target = pinch_strength if is_clicking else 0.0
        elif mode is ClickMode.FIST:
            target = 1.0 if is_clicking else 0.0
        elif is_pinching_raw:
            target = pinch_strength
        elif is_fisting:
            target = 1.0
        else:
            target = 0.0

        return self._strength_smoother.update(target)

    @staticmethod
    def _is_usable(hand: Optional[HandObservation], highest_index: int) -> bool:
        if hand is None:
            return False
        count = len(hand.landmarks)
        return count >= MIN_POINTER_LANDMARKS and count > highest_index

    def _neutral(self, mode: ClickMode) -> ClickGesture:
        """Hand lost: drop every trace of the previous hand."""
        self._position_smoother.reset(*NEUTRAL_POSITION)
        self._strength_smoother.reset(0.0)
        self._debounce = _DebounceState()
        self._last_gesture = ClickGesture(click_mode=mode)
        return self._last_gesture

    def reset(self) -> None:
        """Reset all click state."""
        self._neutral(ClickMode(self._settings.click_mode))
