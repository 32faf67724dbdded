import pytest
from src.vision.landmarks import LEFT, RIGHT, HandFrame, HandObservation

# Right hand, palm facing the camera, fingers up (unmirrored image coordinates)
OPEN_RIGHT = [
    (0.50, 0.80),                                          # wrist
    (0.44, 0.75), (0.40, 0.70), (0.37, 0.65), (0.34, 0.60),  # thumb
    (0.45, 0.60), (0.45, 0.50), (0.45, 0.45), (0.45, 0.40),  # index
    (0.50, 0.59), (0.50, 0.49), (0.50, 0.44), (0.50, 0.38),  # middle
    (0.55, 0.60), (0.55, 0.50), (0.55, 0.45), (0.55, 0.40),  # ring
    (0.60, 0.62), (0.60, 0.54), (0.60, 0.50), (0.60, 0.46),  # pinky
]

# Finger tips folded below their PIP joints
_CLOSED_TIPS = {
    7: (0.45, 0.53), 8: (0.45, 0.56),
    11: (0.50, 0.52), 12: (0.50, 0.55),
    15: (0.55, 0.53), 16: (0.55, 0.56),
    19: (0.60, 0.57), 20: (0.60, 0.59),
}
# Thumb tip tucked next to the IP joint
_CLOSED_THUMB = {4: (0.38, 0.67)}


def hand_landmarks(pose="open", handedness=RIGHT, pinch=None, offset=(0.0, 0.0), z=0.0):
    """
    21 (x, y, z) points for a synthetic hand.

    pose: 'open', 'fist' or 'thumb_up' (fist with the thumb out)
    pinch: thumb tip placed this far from the index tip
    """
    points = {i: p for i, p in enumerate(OPEN_RIGHT)}
    if pose in ("fist", "thumb_up"):
        points.update(_CLOSED_TIPS)
    if pose == "fist":
        points.update(_CLOSED_THUMB)
    if pinch is not None:
        index_x, index_y = points[8]
        points[4] = (index_x - pinch, index_y)

    result = []
    for i in range(21):
        x, y = points[i]
        if handedness == LEFT:
            x = 1.0 - x
        result.append((x + offset[0], y + offset[1], z))
    return result


@pytest.fixture
def make_hand():
    def factory(pose="open", handedness=RIGHT, pinch=None, offset=(0.0, 0.0), z=0.0, confidence=0.9):
        points = hand_landmarks(pose, handedness, pinch, offset, z)
        return HandObservation(tuple(points), handedness, confidence)
    return factory


@pytest.fixture
def make_frame():
    def factory(*hands):
        return HandFrame(tuple(hands))
    return factory


@pytest.fixture
def make_landmarks():
    return hand_landmarks
