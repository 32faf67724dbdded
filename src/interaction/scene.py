"""
Scene-side collaborators for the grab controller.

The renderer is external; this module holds the pieces the controller needs
from it: a perspective camera that turns screen points into rays, a registry
of interactive objects with a nearest-hit ray cast, and the optional physics
capability an object may carry.
"""
from dataclasses import dataclass, field
import math
from typing import List, NamedTuple, Optional, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np

# Rays closer than this to parallel with a plane are treated as parallel
PARALLEL_EPSILON = 1e-4


def as_vector(values: Sequence[float]) -> np.ndarray:
    """Copy values into a float (3,) array."""
    vector = np.asarray(values, dtype=float).reshape(3).copy()
    return vector


def _normalize(v: np.ndarray) -> np.ndarray:
    norm = float(np.linalg.norm(v))
    if norm < 1e-12:
        return v
    return v / norm


def lerp(start: float, end: float, factor: float) -> float:
    return start + (end - start) * factor


def lerp_vector(start: np.ndarray, end: np.ndarray, factor: float) -> np.ndarray:
    return start + (end - start) * factor


def screen_to_ndc(screen_x: float, screen_y: float) -> Tuple[float, float]:
    """Normalized screen (0-1, y down) to NDC (-1..1, y up)."""
    return (screen_x * 2 - 1, -(screen_y * 2 - 1))


class PerspectiveCamera:
    """
    Pinhole camera looking from position toward target.

    Args:
        position: Camera origin in world space
        target: Point the camera looks at
        fov: Vertical field of view in degrees
        aspect: Viewport width / height
    """

    def __init__(
        self,
        position: Sequence[float] = (0.0, 0.0, 5.0),
        target: Sequence[float] = (0.0, 0.0, 0.0),
        fov: float = 75.0,
        aspect: float = 1.0,
        up: Sequence[float] = (0.0, 1.0, 0.0),
    ):
        self.position = as_vector(position)
        self.fov = float(fov)
        self.aspect = float(aspect)
        self._up_hint = as_vector(up)
        self.look_at(target)

    def look_at(self, target: Sequence[float]) -> None:
        forward = _normalize(as_vector(target) - self.position)
        right = np.cross(forward, self._up_hint)
        if np.linalg.norm(right) < 1e-9:
            # Looking straight along the up hint
            right = np.cross(forward, np.array([0.0, 0.0, -1.0]))
        self.forward = forward
        self.right = _normalize(right)
        self.up = np.cross(self.right, self.forward)

    @property
    def _tan_half_fov(self) -> float:
        return math.tan(math.radians(self.fov) / 2)

    def ray_from_screen(self, screen_x: float, screen_y: float) -> Tuple[np.ndarray, np.ndarray]:
        """World-space (origin, unit direction) through a normalized screen point."""
        ndc_x, ndc_y = screen_to_ndc(screen_x, screen_y)
        t = self._tan_half_fov
        direction = (
            self.forward
            + self.right * (ndc_x * t * self.aspect)
            + self.up * (ndc_y * t)
        )
        return self.position.copy(), _normalize(direction)

    def project(self, point: Sequence[float]) -> Optional[Tuple[float, float]]:
        """Normalized screen position of a world point, None if behind the camera."""
        rel = as_vector(point) - self.position
        depth = float(np.dot(rel, self.forward))
        if depth <= 1e-9:
            return None
        t = self._tan_half_fov
        ndc_x = float(np.dot(rel, self.right)) / (depth * t * self.aspect)
        ndc_y = float(np.dot(rel, self.up)) / (depth * t)
        return ((ndc_x + 1) / 2, (1 - ndc_y) / 2)


def screen_to_world_plane(
    screen_x: float,
    screen_y: float,
    camera: PerspectiveCamera,
    plane_z: float = 0.0,
) -> np.ndarray:
    """
    Intersect the ray through a screen point with the plane z = plane_z.

    A ray parallel to the plane yields (0, 0, plane_z).
    """
    origin, direction = camera.ray_from_screen(screen_x, screen_y)
    denom = float(direction[2])
    if abs(denom) < PARALLEL_EPSILON:
        return np.array([0.0, 0.0, plane_z])
    t = (plane_z - float(origin[2])) / denom
    return origin + direction * t


@runtime_checkable
class PhysicsControllable(Protocol):
    """Physics body handle an interactive object may expose."""

    def set_position(self, position: Sequence[float]) -> None: ...

    def set_velocity(self, velocity: Sequence[float]) -> None: ...

    def set_angular_velocity(self, velocity: Sequence[float]) -> None: ...

    def set_mass(self, mass: float) -> None: ...


@dataclass(eq=False)
class InteractiveObject:
    """
    Axis-aligned box that can be hovered and grabbed.

    Attributes:
        name: Label for logs and debug output
        position: Box center in world space
        half_extents: Half size along x, y, z
        mass: Mass restored to the physics body on release
        physics: Physics body, if the object is simulated
    """
    name: str
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    half_extents: np.ndarray = field(default_factory=lambda: np.full(3, 0.5))
    mass: float = 1.0
    physics: Optional[PhysicsControllable] = None

    def __post_init__(self):
        self.position = as_vector(self.position)
        self.half_extents = as_vector(self.half_extents)

    def intersect_ray(self, origin: np.ndarray, direction: np.ndarray) -> Optional[float]:
        """Distance along the ray to the box surface (slab test), None on miss."""
        low = self.position - self.half_extents
        high = self.position + self.half_extents
        t_near, t_far = -math.inf, math.inf
        for axis in range(3):
            d = float(direction[axis])
            o = float(origin[axis])
            if abs(d) < 1e-12:
                if o < low[axis] or o > high[axis]:
                    return None
                continue
            t1 = (low[axis] - o) / d
            t2 = (high[axis] - o) / d
            if t1 > t2:
                t1, t2 = t2, t1
            t_near = max(t_near, t1)
            t_far = min(t_far, t2)
            if t_near > t_far:
                return None
        if t_far < 0:
            return None
        return t_near if t_near >= 0 else t_far


class RayHit(NamedTuple):
    object: InteractiveObject
    point: np.ndarray
    distance: float


@runtime_checkable
class RayCaster(Protocol):
    """Nearest-hit query from a normalized screen point."""

    def cast_ray(self, screen_x: float, screen_y: float) -> Optional[RayHit]: ...


class SceneRegistry:
    """Interactive objects registered by the scene, hit-tested through a camera."""

    def __init__(self, camera: PerspectiveCamera):
        self.camera = camera
        self._objects: List[InteractiveObject] = []

    def register(self, obj: InteractiveObject) -> None:
        if obj not in self._objects:
            self._objects.append(obj)

    def unregister(self, obj: InteractiveObject) -> None:
        if obj in self._objects:
            self._objects.remove(obj)

    def objects(self) -> List[InteractiveObject]:
        return list(self._objects)

    def cast_ray(self, screen_x: float, screen_y: float) -> Optional[RayHit]:
        origin, direction = self.camera.ray_from_screen(screen_x, screen_y)
        nearest: Optional[RayHit] = None
        for obj in self._objects:
            distance = obj.intersect_ray(origin, direction)
            if distance is None:
                continue
            if nearest is None or distance < nearest.distance:
                nearest = RayHit(obj, origin + direction * distance, distance)
        return nearest


@dataclass(frozen=True)
class GazeReading:
    """Head/gaze direction in camera space with detector confidence."""
    direction: Tuple[float, float, float]
    confidence: float


def gaze_ray(
    camera: PerspectiveCamera,
    reading: Optional[GazeReading],
    confidence_threshold: float = 0.5,
    length: float = 10.0,
) -> Optional[Tuple[np.ndarray, np.ndarray, float]]:
    """
    World-space gaze ray (origin, unit direction, length) from the camera.

    Returns None for missing or low-confidence readings.
    """
    if reading is None or reading.confidence < confidence_threshold:
        return None
    local = as_vector(reading.direction)
    # Camera space: x right, y up, -z forward
    direction = _normalize(camera.right * local[0] + camera.up * local[1] - camera.forward * local[2])
    if np.linalg.norm(direction) < 1e-9:
        return None
    return camera.position.copy(), direction, float(length)


def configured_gaze_ray(camera: PerspectiveCamera, reading: Optional[GazeReading], gaze_config):
    """gaze_ray with the threshold and length of a gaze config; None while gaze is disabled."""
    if not gaze_config.enabled:
        return None
    return gaze_ray(camera, reading, gaze_config.confidence_threshold, gaze_config.ray_length)
