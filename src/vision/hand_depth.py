"""
Hand distance estimates from a single camera.

MediaPipe's z is noisy on its own, so depth blends it with two apparent-size
cues (wrist to middle tip span, palm width) that shrink as the hand moves away.
"""
from typing import Sequence, Tuple

from .finger_detection import distance_3d
from .landmarks import NUM_LANDMARKS, WRIST, MIDDLE_TIP, INDEX_MCP, PINKY_MCP

# Weights for (mean z, span, palm width)
DEPTH_WEIGHTS = (0.5, 0.3, 0.2)
SCALE_REFERENCE = 0.225
SCALE_LIMITS = (0.5, 2.0)

# Typical observed ranges used for normalization
_Z_RANGE = (-0.1, 0.1)
_SPAN_RANGE = (0.1, 0.3)
_WIDTH_RANGE = (0.05, 0.15)


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _normalize(value: float, limits: Tuple[float, float]) -> float:
    low, high = limits
    return _clamp01((value - low) / (high - low))


def hand_span(landmarks: Sequence[Sequence[float]]) -> float:
    """Wrist to middle finger tip distance."""
    return distance_3d(landmarks[WRIST], landmarks[MIDDLE_TIP])


def hand_depth(
    landmarks: Sequence[Sequence[float]],
    weights: Tuple[float, float, float] = DEPTH_WEIGHTS,
) -> float:
    """
    Normalized hand depth.

    Returns:
        0.0 (far) to 1.0 (near); 0.5 when the skeleton is incomplete.
    """
    if len(landmarks) < NUM_LANDMARKS:
        return 0.5

    mean_z = sum(p[2] for p in landmarks) / len(landmarks)
    # Negative z is closer, so invert before normalizing
    norm_z = _clamp01((-mean_z - _Z_RANGE[0]) / (_Z_RANGE[1] - _Z_RANGE[0]))
    norm_span = _normalize(hand_span(landmarks), _SPAN_RANGE)
    norm_width = _normalize(distance_3d(landmarks[INDEX_MCP], landmarks[PINKY_MCP]), _WIDTH_RANGE)

    w_z, w_span, w_width = weights
    return _clamp01(norm_z * w_z + norm_span * w_span + norm_width * w_width)


def hand_scale(
    landmarks: Sequence[Sequence[float]],
    reference: float = SCALE_REFERENCE,
) -> float:
    """
    Hand expansion relative to a typical span.

    Returns:
        1.0 for a typical hand, clamped to [0.5, 2.0]; 1.0 when incomplete.
    """
    if len(landmarks) < NUM_LANDMARKS:
        return 1.0
    scale = hand_span(landmarks) / reference
    return max(SCALE_LIMITS[0], min(SCALE_LIMITS[1], scale))
