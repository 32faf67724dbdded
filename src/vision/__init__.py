"""
HandGrab Vision Module

Hand landmarks, geometric classifiers and click recognition.
The MediaPipe tracker and the Qt worker are imported from their own modules.
"""
from .config import Config, load_config
from .landmarks import HandFrame, HandObservation, Landmark, build_hand_frame
from .hand_roles import HandRoles, PrimaryHandPreference, resolve_hand_roles
from .click_gesture import (
    ClickCalibration,
    ClickGesture,
    ClickGestureEngine,
    ClickMode,
    ClickSettings,
    FingerSettings,
)

__all__ = [
    'Config',
    'load_config',
    'HandFrame',
    'HandObservation',
    'Landmark',
    'build_hand_frame',
    'HandRoles',
    'PrimaryHandPreference',
    'resolve_hand_roles',
    'ClickCalibration',
    'ClickGesture',
    'ClickGestureEngine',
    'ClickMode',
    'ClickSettings',
    'FingerSettings',
]
