"""
Finger and fist classification from a 21-point hand skeleton.

All functions are pure and accept any sequence of (x, y, z) points. Given
fewer than 21 points they return a safe default instead of raising.
"""
from dataclasses import dataclass
import math
from typing import Optional, Sequence, Tuple

from .landmarks import (
    NUM_LANDMARKS,
    WRIST,
    THUMB_MCP, THUMB_IP, THUMB_TIP,
    INDEX_MCP, INDEX_PIP, INDEX_TIP,
    MIDDLE_MCP, MIDDLE_PIP, MIDDLE_TIP,
    RING_MCP, RING_PIP, RING_TIP,
    PINKY_MCP, PINKY_PIP, PINKY_TIP,
)

Point = Tuple[float, float, float]

# Thumb counts as straight when its last segment is this long relative to the one before
THUMB_STRAIGHTNESS = 0.8
# Lenient fist: at least 4 fingers closed and at most this many extended
FIST_MAX_EXTENDED = 1


@dataclass(frozen=True)
class FingerStatus:
    """Which fingers are extended in one frame."""
    thumb: bool = False
    index: bool = False
    middle: bool = False
    ring: bool = False
    pinky: bool = False

    @property
    def total(self) -> int:
        return sum((self.thumb, self.index, self.middle, self.ring, self.pinky))

    @property
    def closed(self) -> int:
        return 5 - self.total


def distance_3d(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance between two (x, y, z) points."""
    dx = a[0] - b[0]
    dy = a[1] - b[1]
    dz = a[2] - b[2]
    return math.sqrt(dx*dx + dy*dy + dz*dz)


def pinch_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Distance between two finger tips in landmark space."""
    return distance_3d(a, b)


def is_finger_extended(landmarks: Sequence[Point], tip: int, pip: int) -> bool:
    """A non-thumb finger is extended when its tip is above the PIP joint (smaller y)."""
    if len(landmarks) < NUM_LANDMARKS:
        return False
    return landmarks[tip][1] < landmarks[pip][1]


def is_thumb_extended(
    landmarks: Sequence[Point],
    straightness: float = THUMB_STRAIGHTNESS,
) -> bool:
    """
    Thumb is extended when the tip reaches further from the wrist than the IP
    joint and the tip segment is straight relative to the IP-MCP segment.
    """
    if len(landmarks) < NUM_LANDMARKS:
        return False

    tip = landmarks[THUMB_TIP]
    ip = landmarks[THUMB_IP]
    mcp = landmarks[THUMB_MCP]
    wrist = landmarks[WRIST]

    reaches_out = distance_3d(tip, wrist) > distance_3d(ip, wrist)
    straight = distance_3d(tip, ip) > distance_3d(ip, mcp) * straightness
    return reaches_out and straight


def finger_status(
    landmarks: Sequence[Point],
    thumb_straightness: float = THUMB_STRAIGHTNESS,
) -> FingerStatus:
    if len(landmarks) < NUM_LANDMARKS:
        return FingerStatus()

    return FingerStatus(
        thumb=is_thumb_extended(landmarks, thumb_straightness),
        index=is_finger_extended(landmarks, INDEX_TIP, INDEX_PIP),
        middle=is_finger_extended(landmarks, MIDDLE_TIP, MIDDLE_PIP),
        ring=is_finger_extended(landmarks, RING_TIP, RING_PIP),
        pinky=is_finger_extended(landmarks, PINKY_TIP, PINKY_PIP),
    )


def count_extended_fingers(landmarks: Sequence[Point]) -> int:
    return finger_status(landmarks).total


def is_fist(
    landmarks: Sequence[Point],
    max_extended: int = FIST_MAX_EXTENDED,
    thumb_straightness: float = THUMB_STRAIGHTNESS,
) -> bool:
    """
    Fist when every finger is closed, or when at least 4 are closed and no
    more than max_extended are up (absorbs an ambiguous thumb).
    """
    if len(landmarks) < NUM_LANDMARKS:
        return False

    status = finger_status(landmarks, thumb_straightness)
    if status.closed == 5:
        return True
    return status.closed >= 4 and status.total <= max_extended


def palm_center(landmarks: Sequence[Point]) -> Optional[Point]:
    """Approximate palm center from the four non-thumb MCP joints."""
    if len(landmarks) < NUM_LANDMARKS:
        return None
    mcps = [landmarks[i] for i in (INDEX_MCP, MIDDLE_MCP, RING_MCP, PINKY_MCP)]
    x = sum(p[0] for p in mcps) / 4
    y = sum(p[1] for p in mcps) / 4
    z = sum(p[2] for p in mcps) / 4
    return (x, y, z)
