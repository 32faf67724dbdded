"""
Hand landmark types and per-frame hand assembly.

A HandFrame is what the rest of the pipeline consumes: at most one
observation per handedness, each with a full 21-point skeleton.
"""
from dataclasses import dataclass, field
import logging
from typing import Callable, Iterable, Iterator, NamedTuple, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

NUM_LANDMARKS = 21

LEFT = "Left"
RIGHT = "Right"

# MediaPipe landmark indices
WRIST = 0
THUMB_CMC = 1
THUMB_MCP = 2
THUMB_IP = 3
THUMB_TIP = 4
INDEX_MCP = 5
INDEX_PIP = 6
INDEX_DIP = 7
INDEX_TIP = 8
MIDDLE_MCP = 9
MIDDLE_PIP = 10
MIDDLE_DIP = 11
MIDDLE_TIP = 12
RING_MCP = 13
RING_PIP = 14
RING_DIP = 15
RING_TIP = 16
PINKY_MCP = 17
PINKY_PIP = 18
PINKY_DIP = 19
PINKY_TIP = 20

FINGER_TIPS = {
    "thumb": THUMB_TIP,
    "index": INDEX_TIP,
    "middle": MIDDLE_TIP,
    "ring": RING_TIP,
    "pinky": PINKY_TIP,
}


class Landmark(NamedTuple):
    """Normalized landmark: x, y in image space (0-1), z relative depth (negative = closer)."""
    x: float
    y: float
    z: float = 0.0


def finger_tip_index(finger: str) -> int:
    """Landmark index of a finger tip by name (unknown names map to the index finger)."""
    return FINGER_TIPS.get(finger, INDEX_TIP)


@dataclass(frozen=True)
class HandObservation:
    """
    One detected hand.

    Attributes:
        landmarks: 21 Landmark points, normalized 0-1
        handedness: 'Left' or 'Right'
        confidence: Detection confidence 0-1
    """
    landmarks: Tuple[Landmark, ...]
    handedness: str
    confidence: float = 1.0

    def __post_init__(self):
        points = tuple(p if isinstance(p, Landmark) else Landmark(*p) for p in self.landmarks)
        object.__setattr__(self, "landmarks", points)

    def get(self, index: int) -> Landmark:
        """Get landmark by index."""
        return self.landmarks[index]

    @property
    def is_complete(self) -> bool:
        return len(self.landmarks) >= NUM_LANDMARKS

    @property
    def wrist(self) -> Landmark:
        return self.landmarks[WRIST]

    @property
    def thumb_tip(self) -> Landmark:
        return self.landmarks[THUMB_TIP]

    @property
    def index_tip(self) -> Landmark:
        return self.landmarks[INDEX_TIP]


@dataclass(frozen=True)
class HandFrame:
    """Hands seen in a single tracking frame (0-2, unique handedness)."""
    hands: Tuple[HandObservation, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.hands)

    def __iter__(self) -> Iterator[HandObservation]:
        return iter(self.hands)

    def __getitem__(self, index: int) -> HandObservation:
        return self.hands[index]

    def find(self, handedness: str) -> Optional[HandObservation]:
        """First hand with the given handedness, or None."""
        for hand in self.hands:
            if hand.handedness == handedness:
                return hand
        return None


# (landmarks, detector label or None) -> final label
HandednessOverride = Callable[[Sequence[Landmark], Optional[str]], str]


def thumb_side_handedness(landmarks: Sequence[Landmark]) -> str:
    """
    Guess handedness from which side of the palm the thumb tip lies on.

    In the unmirrored camera image a left hand has its thumb at higher x
    than the palm center, a right hand at lower x.
    """
    if len(landmarks) < NUM_LANDMARKS:
        return RIGHT
    palm_x = (landmarks[INDEX_MCP][0] + landmarks[PINKY_MCP][0]) / 2
    return LEFT if landmarks[THUMB_TIP][0] > palm_x else RIGHT


def prefer_thumb_side(landmarks: Sequence[Landmark], detected: Optional[str]) -> str:
    """Use the thumb-side guess whenever it disagrees with the detector."""
    guess = thumb_side_handedness(landmarks)
    if detected is not None and detected != guess:
        logger.debug("Handedness override: detector said %s, thumb says %s", detected, guess)
    return guess


def trust_detector(landmarks: Sequence[Landmark], detected: Optional[str]) -> str:
    """Keep the detector label; fall back to the thumb side only when it is missing."""
    if detected in (LEFT, RIGHT):
        return detected
    return thumb_side_handedness(landmarks)


def normalize_handedness(label: Optional[str]) -> Optional[str]:
    """Map detector labels ('Left', 'LEFT', 'right', ...) to LEFT/RIGHT."""
    if not label:
        return None
    label = label.strip().capitalize()
    if label in (LEFT, RIGHT):
        return label
    return None


def build_hand_frame(
    detections: Iterable[Tuple[Sequence, Optional[str], float]],
    max_hands: int = 2,
    handedness_override: Optional[HandednessOverride] = prefer_thumb_side,
) -> HandFrame:
    """
    Assemble a HandFrame from raw detections.

    Args:
        detections: (landmarks, handedness label, confidence) per detected hand
        max_hands: Maximum number of hands to keep
        handedness_override: Decides the final label; None keeps the detector
            label (thumb side is still used when the label is missing)

    Returns:
        HandFrame sorted by confidence, one hand per handedness.
    """
    resolve = handedness_override or trust_detector
    observations = []
    for points, label, confidence in detections:
        points = [p if isinstance(p, Landmark) else Landmark(*p) for p in points]
        if len(points) < NUM_LANDMARKS:
            # Partial skeletons count as "not detected"
            continue
        handedness = resolve(points, normalize_handedness(label))
        observations.append(HandObservation(tuple(points), handedness, float(confidence or 0.0)))

    # Keep the most confident detection per handedness
    observations.sort(key=lambda h: h.confidence, reverse=True)
    seen = set()
    kept = []
    for hand in observations:
        if hand.handedness in seen:
            continue
        seen.add(hand.handedness)
        kept.append(hand)

    return HandFrame(tuple(kept[:max(0, max_hands)]))
