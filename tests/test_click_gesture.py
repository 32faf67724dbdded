import pytest
from src.vision.click_gesture import (
    ClickCalibration,
    ClickGesture,
    ClickGestureEngine,
    ClickMode,
    ClickSettings,
    FingerSettings,
)
from src.vision.config import GestureConfig
from src.vision.hand_depth import hand_depth, hand_scale
from src.vision.hand_roles import PrimaryHandPreference
from src.vision.landmarks import LEFT, RIGHT, HandFrame, HandObservation


@pytest.fixture
def engine():
    return ClickGestureEngine(GestureConfig())


def settle(engine, frame, start_ms=0.0, ticks=40):
    """Feed the same frame until the position smoother has converged."""
    gesture = None
    for i in range(ticks):
        gesture = engine.update(frame, now_ms=start_ms + i)
    return gesture


def test_no_hand_is_neutral(engine):
    gesture = engine.update(HandFrame(), now_ms=0)
    assert gesture == ClickGesture()
    assert gesture.click_position == (0.5, 0.5, 0.0)


def test_pinch_click_needs_click_delay(engine, make_hand, make_frame):
    # 0.03 apart against the default 0.05 threshold
    frame = make_frame(make_hand(pinch=0.03))

    gesture = engine.update(frame, now_ms=0)
    assert gesture.is_pinching_raw
    assert gesture.pinch_distance == pytest.approx(0.03)
    assert not gesture.is_clicking

    assert not engine.update(frame, now_ms=99).is_clicking
    assert engine.update(frame, now_ms=100).is_clicking


def test_click_delay_boundary(make_hand, make_frame):
    calibration = ClickCalibration(click_delay=80, release_delay=50)
    engine = ClickGestureEngine(calibration=calibration)
    frame = make_frame(make_hand(pinch=0.02))

    engine.update(frame, now_ms=1000)
    assert not engine.update(frame, now_ms=1079).is_clicking
    assert engine.update(frame, now_ms=1080.001).is_clicking


def test_release_needs_release_delay(engine, make_hand, make_frame):
    pinched = make_frame(make_hand(pinch=0.03))
    released = make_frame(make_hand())

    engine.update(pinched, now_ms=0)
    assert engine.update(pinched, now_ms=100).is_clicking

    assert engine.update(released, now_ms=200).is_clicking
    assert engine.update(released, now_ms=349).is_clicking
    assert not engine.update(released, now_ms=350).is_clicking


def test_flicker_restarts_click_timer(engine, make_hand, make_frame):
    pinched = make_frame(make_hand(pinch=0.03))
    released = make_frame(make_hand())

    engine.update(pinched, now_ms=0)
    engine.update(released, now_ms=50)
    engine.update(pinched, now_ms=60)
    assert not engine.update(pinched, now_ms=150).is_clicking
    assert engine.update(pinched, now_ms=160).is_clicking


def test_short_release_keeps_click(engine, make_hand, make_frame):
    pinched = make_frame(make_hand(pinch=0.03))
    released = make_frame(make_hand())

    engine.update(pinched, now_ms=0)
    engine.update(pinched, now_ms=100)
    engine.update(released, now_ms=120)
    assert engine.update(pinched, now_ms=200).is_clicking


def test_pinch_strength(engine, make_hand, make_frame):
    frame = make_frame(make_hand(pinch=0.03))
    assert engine.update(frame, now_ms=0).click_strength == 0.0
    gesture = engine.update(frame, now_ms=100)
    # Target 1 - 0.03 / 0.1 = 0.7 through alpha 0.3
    assert gesture.click_strength == pytest.approx(0.21)


def test_fist_mode(make_hand, make_frame):
    engine = ClickGestureEngine(settings=ClickSettings(click_mode=ClickMode.FIST))
    frame = make_frame(make_hand("fist"))

    gesture = engine.update(frame, now_ms=0)
    assert gesture.is_fisting
    assert gesture.click_mode is ClickMode.FIST
    gesture = engine.update(frame, now_ms=100)
    assert gesture.is_clicking
    # Target 1.0 through alpha 0.3
    assert gesture.click_strength == pytest.approx(0.3)


def test_pinch_mode_ignores_fist(engine, make_hand, make_frame):
    frame = make_frame(make_hand("fist"))
    engine.update(frame, now_ms=0)
    assert not engine.update(frame, now_ms=500).is_clicking


def test_both_mode_accepts_either(make_hand, make_frame):
    for hand in (make_hand("fist"), make_hand(pinch=0.03)):
        engine = ClickGestureEngine(settings=ClickSettings(click_mode="both"))
        engine.update(make_frame(hand), now_ms=0)
        assert engine.update(make_frame(hand), now_ms=100).is_clicking


def test_open_hand_points_with_primary_tip(engine, make_hand, make_frame):
    gesture = settle(engine, make_frame(make_hand()))
    # Index tip at (0.45, 0.40), mirrored
    assert gesture.x == pytest.approx(0.55, abs=1e-6)
    assert gesture.y == pytest.approx(0.40, abs=1e-6)


def test_pinch_points_at_midpoint(engine, make_hand, make_frame):
    gesture = settle(engine, make_frame(make_hand(pinch=0.03)))
    # Index tip (0.45, 0.40), thumb tip (0.42, 0.40)
    assert gesture.x == pytest.approx(1 - 0.435, abs=1e-6)
    assert gesture.y == pytest.approx(0.40, abs=1e-6)


def test_position_is_smoothed(engine, make_hand, make_frame):
    gesture = engine.update(make_frame(make_hand()), now_ms=0)
    assert gesture.x == pytest.approx(0.5 * 0.2 + 0.55 * 0.8)


def test_single_hand_fist_points_with_palm_center(make_hand, make_frame):
    engine = ClickGestureEngine(settings=ClickSettings(click_mode=ClickMode.FIST))
    gesture = settle(engine, make_frame(make_hand("fist")))
    assert gesture.x == pytest.approx(1 - 0.525, abs=1e-6)
    assert gesture.y == pytest.approx(0.6025, abs=1e-6)


def test_two_hand_fist_clicks_with_other_hand(make_hand, make_frame):
    settings = ClickSettings(click_mode=ClickMode.FIST, max_hands=2)
    engine = ClickGestureEngine(settings=settings)
    pointer = make_hand("open", RIGHT, confidence=0.95)
    clicker = make_hand("fist", LEFT, confidence=0.9)
    frame = make_frame(pointer, clicker)

    engine.update(frame, now_ms=0)
    gesture = settle(engine, frame, start_ms=100)
    assert gesture.is_fisting
    assert gesture.is_clicking
    # Pointer keeps its index tip, not the palm center
    assert gesture.x == pytest.approx(0.55, abs=1e-6)
    assert gesture.y == pytest.approx(0.40, abs=1e-6)


def test_primary_hand_preference_picks_pointer(make_hand, make_frame):
    settings = ClickSettings(max_hands=2, primary_hand=PrimaryHandPreference.LEFT)
    engine = ClickGestureEngine(settings=settings)
    right = make_hand("open", RIGHT, confidence=0.95)
    left = make_hand("open", LEFT, offset=(0.0, 0.1), confidence=0.9)

    gesture = settle(engine, make_frame(right, left))
    # Mirrored left index tip: x = 1 - (1 - 0.45)
    assert gesture.x == pytest.approx(0.45, abs=1e-6)
    assert gesture.y == pytest.approx(0.50, abs=1e-6)


def test_z_follows_depth_and_scale(engine, make_hand, make_frame):
    hand = make_hand(z=-0.02)
    gesture = engine.update(make_frame(hand), now_ms=0)
    depth = hand_depth(hand.landmarks)
    scale = hand_scale(hand.landmarks)
    assert gesture.hand_depth == pytest.approx(depth)
    assert gesture.hand_scale == pytest.approx(scale)
    assert gesture.z == pytest.approx(-((depth - 0.5) * 6.0 + (scale - 1.0) * 0.5))


def test_hand_loss_resets_everything(engine, make_hand, make_frame):
    pinched = make_frame(make_hand(pinch=0.03))
    engine.update(pinched, now_ms=0)
    assert engine.update(pinched, now_ms=100).is_clicking

    gesture = engine.update(HandFrame(), now_ms=110)
    assert not gesture.is_clicking
    assert gesture.click_strength == 0.0
    assert gesture.click_position == (0.5, 0.5, 0.0)

    # A new hand starts from scratch
    gesture = engine.update(pinched, now_ms=120)
    assert not gesture.is_clicking
    assert gesture.x == pytest.approx(0.5 * 0.2 + 0.565 * 0.8)
    assert not engine.update(pinched, now_ms=200).is_clicking
    assert engine.update(pinched, now_ms=220).is_clicking


def test_short_pointer_hand_is_neutral(engine, make_landmarks):
    hand = HandObservation(tuple(make_landmarks()[:8]), RIGHT)
    gesture = engine.update(HandFrame((hand,)), now_ms=0)
    assert gesture == ClickGesture()


def test_finger_outside_partial_skeleton_is_neutral(make_landmarks):
    settings = ClickSettings(fingers=FingerSettings("pinky", "thumb"))
    engine = ClickGestureEngine(settings=settings)
    hand = HandObservation(tuple(make_landmarks()[:12]), RIGHT)
    gesture = engine.update(HandFrame((hand,)), now_ms=0)
    assert gesture == ClickGesture()


def test_partial_skeleton_with_needed_tips_is_tracked(engine, make_landmarks):
    hand = HandObservation(tuple(make_landmarks(pinch=0.03)[:9]), RIGHT)
    gesture = engine.update(HandFrame((hand,)), now_ms=0)
    assert gesture.is_pinching_raw
    assert not gesture.is_fisting
    assert gesture.hand_depth == 0.5
    assert gesture.hand_scale == 1.0


def test_calibrated_threshold_is_used(make_hand, make_frame):
    engine = ClickGestureEngine(calibration=ClickCalibration(pinch_threshold=0.02))
    frame = make_frame(make_hand(pinch=0.03))
    assert not engine.update(frame, now_ms=0).is_pinching_raw

    engine.apply_calibration(ClickCalibration(pinch_threshold=0.04))
    assert engine.update(frame, now_ms=10).is_pinching_raw


def test_hand_count_change_resets(engine, make_hand, make_frame):
    pinched = make_frame(make_hand(pinch=0.03))
    engine.update(pinched, now_ms=0)
    assert engine.update(pinched, now_ms=100).is_clicking

    engine.apply_settings(ClickSettings(max_hands=2))
    assert not engine.last_gesture.is_clicking
    assert not engine.update(pinched, now_ms=150).is_clicking


def test_settings_change_keeps_click_state(engine, make_hand, make_frame):
    pinched = make_frame(make_hand(pinch=0.03))
    engine.update(pinched, now_ms=0)
    engine.update(pinched, now_ms=100)

    engine.apply_settings(ClickSettings(click_mode=ClickMode.BOTH))
    assert engine.update(pinched, now_ms=110).is_clicking


def test_left_fist_pointer_does_not_click_in_both_mode(make_hand, make_frame):
    settings = ClickSettings(click_mode=ClickMode.BOTH, max_hands=2, primary_hand=PrimaryHandPreference.LEFT)
    engine = ClickGestureEngine(settings=settings)
    frame = make_frame(
        make_hand("fist", LEFT, confidence=0.95),
        make_hand("open", RIGHT, confidence=0.9),
    )

    engine.update(frame, now_ms=0)
    gesture = settle(engine, frame, start_ms=200)
    # Only the open click hand is tested for a fist
    assert not gesture.is_fisting
    assert not gesture.is_pinching_raw
    assert not gesture.is_clicking
    # Mirrored closed left index tip
    assert gesture.x == pytest.approx(0.45, abs=1e-6)
    assert gesture.y == pytest.approx(0.56, abs=1e-6)
