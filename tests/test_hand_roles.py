import pytest
from src.vision.hand_roles import PrimaryHandPreference, resolve_hand_roles
from src.vision.landmarks import LEFT, RIGHT, HandFrame


@pytest.fixture
def two_hands(make_hand, make_frame):
    right = make_hand("open", RIGHT, confidence=0.95)
    left = make_hand("fist", LEFT, confidence=0.8)
    return right, left, make_frame(right, left)


def test_no_hands():
    roles = resolve_hand_roles(HandFrame(), max_hands=2)
    assert roles.pointer is None
    assert roles.click is None


def test_single_hand_does_both(make_hand, make_frame):
    hand = make_hand()
    roles = resolve_hand_roles(make_frame(hand), max_hands=2, preference="left")
    assert roles.pointer is hand
    assert roles.click is hand


def test_max_one_hand_uses_first(two_hands):
    right, _, frame = two_hands
    roles = resolve_hand_roles(frame, max_hands=1, preference=PrimaryHandPreference.LEFT)
    assert roles == (right, right)


def test_auto_uses_frame_order(two_hands):
    right, left, frame = two_hands
    roles = resolve_hand_roles(frame, max_hands=2, preference=PrimaryHandPreference.AUTO)
    assert roles.pointer is right
    assert roles.click is left


def test_left_preference(two_hands):
    right, left, frame = two_hands
    roles = resolve_hand_roles(frame, max_hands=2, preference=PrimaryHandPreference.LEFT)
    assert roles.pointer is left
    assert roles.click is right


def test_right_preference(make_hand, make_frame):
    left = make_hand("open", LEFT, confidence=0.99)
    right = make_hand("fist", RIGHT, confidence=0.5)
    roles = resolve_hand_roles(make_frame(left, right), max_hands=2, preference="right")
    assert roles.pointer is right
    assert roles.click is left


def test_resolution_is_pure(two_hands):
    _, _, frame = two_hands
    first = resolve_hand_roles(frame, 2, PrimaryHandPreference.LEFT)
    resolve_hand_roles(frame, 2, PrimaryHandPreference.RIGHT)
    assert resolve_hand_roles(frame, 2, PrimaryHandPreference.LEFT) == first
    assert len(frame) == 2


def test_unknown_preference_is_rejected(two_hands):
    _, _, frame = two_hands
    with pytest.raises(ValueError):
        resolve_hand_roles(frame, 2, "middle")
