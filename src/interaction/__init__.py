"""
HandGrab Interaction Module

Settings persistence, click calibration and the hover/grab/release controller.
"""
from .settings import SettingsStore, load_click_calibration, load_click_settings
from .calibration import ClickCalibrator, reset_click_calibration
from .scene import InteractiveObject, PerspectiveCamera, SceneRegistry
from .grab_controller import GrabController, InteractionState

__all__ = [
    'SettingsStore',
    'load_click_calibration',
    'load_click_settings',
    'ClickCalibrator',
    'reset_click_calibration',
    'InteractiveObject',
    'PerspectiveCamera',
    'SceneRegistry',
    'GrabController',
    'InteractionState',
]
