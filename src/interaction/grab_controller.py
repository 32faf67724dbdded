"""
Hover, grab and release of scene objects driven by the click gesture.

Runs once per render tick. It only ever reads the debounced click and the
click position from the gesture snapshot, which may be a few ticks old.
"""
from dataclasses import dataclass
from enum import Enum
import logging
import time
from typing import Optional

import numpy as np

from ..vision.click_gesture import ClickGesture
from ..vision.config import InteractionConfig
from .scene import (
    InteractiveObject,
    PerspectiveCamera,
    RayCaster,
    RayHit,
    as_vector,
    lerp_vector,
    screen_to_world_plane,
)

logger = logging.getLogger(__name__)

ZERO = (0.0, 0.0, 0.0)


class InteractionState(str, Enum):
    IDLE = "IDLE"
    HOVER = "HOVER"
    GRABBING = "GRABBING"
    RELEASE = "RELEASE"


@dataclass
class GrabSession:
    """Reference frame frozen at the moment of grabbing."""
    grabbed_object: InteractiveObject
    grab_offset: np.ndarray
    initial_hand_position: np.ndarray
    initial_object_position: np.ndarray
    target_position: np.ndarray  # Smoothed grasp point


def _now_ms() -> float:
    return time.perf_counter() * 1000.0


class GrabController:
    """
    IDLE -> HOVER -> GRABBING -> RELEASE -> IDLE state machine.

    Object movement is relative: every tick the hand's displacement since the
    grab started is projected into world space and added to the object's
    position at grab time, so a glitch in one frame cannot make the object
    jump to an absolute remapping of the pointer.
    """

    def __init__(
        self,
        ray_caster: RayCaster,
        camera: PerspectiveCamera,
        config: Optional[InteractionConfig] = None,
    ):
        """
        Args:
            ray_caster: Nearest-hit queries over the interactive objects
            camera: Camera used to project hand motion into the world
            config: Smoothing, snap distance and release timing
        """
        self._ray_caster = ray_caster
        self._camera = camera
        self._config = config or InteractionConfig()

        self._state = InteractionState.IDLE
        self._hovered: Optional[InteractiveObject] = None
        self._session: Optional[GrabSession] = None
        self._was_clicking = False
        self._release_started_ms: Optional[float] = None

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def hovered_object(self) -> Optional[InteractiveObject]:
        return self._hovered

    @property
    def grabbed_object(self) -> Optional[InteractiveObject]:
        return self._session.grabbed_object if self._session else None

    @property
    def grab_offset(self) -> Optional[np.ndarray]:
        return self._session.grab_offset.copy() if self._session else None

    @property
    def session(self) -> Optional[GrabSession]:
        return self._session

    def update(self, gesture: ClickGesture, now_ms: Optional[float] = None) -> InteractionState:
        """
        Advance one render tick.

        Args:
            gesture: Latest click gesture snapshot
            now_ms: Tick time in milliseconds (monotonic clock if None)

        Returns:
            State after this tick.
        """
        if now_ms is None:
            now_ms = _now_ms()

        if self._state not in (InteractionState.GRABBING, InteractionState.RELEASE):
            self._update_hover(gesture)

        is_clicking = gesture.is_clicking
        if is_clicking and not self._was_clicking and self._hovered is not None \
                and self._state is not InteractionState.GRABBING:
            self._begin_grab(gesture)
        elif not is_clicking and self._was_clicking and self._state is InteractionState.GRABBING:
            self._release(now_ms)
        self._was_clicking = is_clicking

        if self._state is InteractionState.GRABBING and is_clicking:
            self._track(gesture)

        # Checked last so RELEASE -> IDLE is visible for a full tick
        if self._state is InteractionState.RELEASE and self._release_started_ms is not None:
            if now_ms - self._release_started_ms >= self._config.release_hold_ms:
                self._set_state(InteractionState.IDLE)
                self._release_started_ms = None

        return self._state

    def _cast(self, x: float, y: float) -> Optional[RayHit]:
        try:
            return self._ray_caster.cast_ray(x, y)
        except Exception as e:
            logger.warning("Ray cast failed, treating as no hit: %s", e)
            return None

    def _update_hover(self, gesture: ClickGesture) -> None:
        hit = self._cast(gesture.x, gesture.y)
        if hit is not None:
            if hit.object is not self._hovered or self._state is not InteractionState.HOVER:
                self._hovered = hit.object
                self._set_state(InteractionState.HOVER)
        elif self._hovered is not None:
            self._hovered = None
            self._set_state(InteractionState.IDLE)

    def _begin_grab(self, gesture: ClickGesture) -> None:
        obj = self._hovered

        hit = self._cast(gesture.x, gesture.y)
        if hit is not None and hit.object is obj:
            offset = as_vector(hit.point) - obj.position
        else:
            offset = np.zeros(3)

        self._session = GrabSession(
            grabbed_object=obj,
            grab_offset=offset,
            initial_hand_position=as_vector(gesture.click_position),
            initial_object_position=obj.position.copy(),
            target_position=obj.position + offset,
        )
        self._release_started_ms = None

        if obj.physics is not None:
            # Kinematic while held
            obj.physics.set_mass(0)
            obj.physics.set_velocity(ZERO)
            obj.physics.set_angular_velocity(ZERO)

        self._set_state(InteractionState.GRABBING)
        logger.debug("Grabbed %s with offset %s", obj.name, offset)

    def _release(self, now_ms: float) -> None:
        obj = self._session.grabbed_object
        self._restore_physics(obj)
        self._session = None
        self._release_started_ms = now_ms
        self._set_state(InteractionState.RELEASE)
        logger.debug("Released %s", obj.name)

    def _restore_physics(self, obj: InteractiveObject) -> None:
        if obj.physics is None:
            return
        obj.physics.set_mass(obj.mass)
        # Small push so the object resumes falling
        obj.physics.set_velocity(self._config.release_velocity)

    def _track(self, gesture: ClickGesture) -> None:
        session = self._session
        initial_hand = session.initial_hand_position
        initial_obj = session.initial_object_position

        hand_dz = gesture.z - initial_hand[2]
        target_z = initial_obj[2] + hand_dz

        current_world = screen_to_world_plane(gesture.x, gesture.y, self._camera, target_z)
        initial_world = screen_to_world_plane(initial_hand[0], initial_hand[1], self._camera, initial_obj[2])
        world_dx = current_world[0] - initial_world[0]
        world_dy = current_world[1] - initial_world[1]

        grasp_target = initial_obj + session.grab_offset + np.array([world_dx, world_dy, hand_dz])

        distance = float(np.linalg.norm(grasp_target - session.target_position))
        if distance > self._config.snap_distance:
            # Likely a tracking mode switch; sliding there would look wrong
            session.target_position = grasp_target
        else:
            session.target_position = lerp_vector(
                session.target_position, grasp_target, self._config.grab_smoothing
            )

        final_position = session.target_position - session.grab_offset
        obj = session.grabbed_object

        if obj.physics is not None:
            obj.physics.set_position(tuple(final_position))
            obj.physics.set_velocity(ZERO)
            obj.physics.set_angular_velocity(ZERO)
            obj.position = final_position
        else:
            obj.position = lerp_vector(obj.position, final_position, self._config.grab_smoothing)

    def _set_state(self, state: InteractionState) -> None:
        if state is not self._state:
            logger.debug("Interaction %s -> %s", self._state.value, state.value)
        self._state = state

    def reset(self) -> None:
        """Drop hover and grab state; a held physics object gets its physics back."""
        if self._session is not None:
            self._restore_physics(self._session.grabbed_object)
        self._session = None
        self._hovered = None
        self._was_clicking = False
        self._release_started_ms = None
        self._set_state(InteractionState.IDLE)
