"""
Pointer/click hand assignment.

Recomputed from scratch every frame with no memory of the
previous assignment.
"""
from enum import Enum
from typing import NamedTuple, Optional

from .landmarks import LEFT, RIGHT, HandFrame, HandObservation


class PrimaryHandPreference(str, Enum):
    AUTO = "auto"
    LEFT = "left"
    RIGHT = "right"


class HandRoles(NamedTuple):
    """Hand used for the cursor and hand used to click; may be the same object."""
    pointer: Optional[HandObservation]
    click: Optional[HandObservation]


def resolve_hand_roles(
    frame: HandFrame,
    max_hands: int = 1,
    preference: PrimaryHandPreference = PrimaryHandPreference.AUTO,
) -> HandRoles:
    """
    Assign pointer and click roles.

    With two hands and max_hands == 2 the preferred hand points and the other
    clicks ('auto' uses frame order). Otherwise a single hand does both.
    """
    preference = PrimaryHandPreference(preference)

    if max_hands == 2 and len(frame) == 2:
        left = frame.find(LEFT)
        right = frame.find(RIGHT)

        if preference is PrimaryHandPreference.LEFT:
            return HandRoles(left or right, right or left)
        if preference is PrimaryHandPreference.RIGHT:
            return HandRoles(right or left, left or right)
        return HandRoles(frame[0], frame[1])

    hand = frame[0] if len(frame) > 0 else None
    return HandRoles(hand, hand)
