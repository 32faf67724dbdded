"""
Persistent user settings.

A small JSON key-value store plus typed load/save helpers. Every loader
returns a documented default when the key is missing, the file is
unreadable or the stored value is invalid; corrupt settings are never fatal.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..vision.click_gesture import (
    FINGERS,
    ClickCalibration,
    ClickMode,
    ClickSettings,
    FingerSettings,
)
from ..vision.hand_roles import PrimaryHandPreference

logger = logging.getLogger(__name__)

CLICK_MODE_KEY = "clickMode"
FINGER_SETTINGS_KEY = "fingerSettings"
PRIMARY_HAND_KEY = "primaryHandPreference"
MAX_HANDS_KEY = "maxHands"
CALIBRATION_KEY = "clickCalibration"

DEFAULT_CLICK_MODE = ClickMode.PINCH
DEFAULT_FINGER_SETTINGS = FingerSettings("index", "thumb")
DEFAULT_PRIMARY_HAND = PrimaryHandPreference.AUTO
DEFAULT_MAX_HANDS = 1
DEFAULT_CALIBRATION = ClickCalibration(
    pinch_threshold=0.05,
    fist_threshold=0,
    click_delay=100,
    release_delay=150,
)

# Accepted ranges for stored calibration values
PINCH_THRESHOLD_RANGE = (0.01, 0.2)
FIST_THRESHOLD_RANGE = (0, 5)
DELAY_RANGE = (0, 1000)


class SettingsStore:
    """
    JSON file backed key-value store.

    With path=None the store lives in memory only.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self._path = Path(path).expanduser() if path is not None else None
        self._data: Dict[str, Any] = {}
        self.reload()

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def reload(self) -> None:
        """Reload from disk; an unreadable file leaves an empty store."""
        self._data = {}
        if self._path is None or not self._path.exists():
            return
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            # ValueError covers JSONDecodeError and UnicodeDecodeError
            logger.warning("Ignoring unreadable settings file %s: %s", self._path, e)
            return
        if isinstance(data, dict):
            self._data = data
        else:
            logger.warning("Ignoring settings file %s: expected an object", self._path)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.save()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self.save()

    def save(self) -> None:
        """Write the store atomically (temp file then replace)."""
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2)
        os.replace(tmp_path, self._path)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _in_range(value: float, limits) -> bool:
    return limits[0] <= value <= limits[1]


# Click mode

def save_click_mode(store: SettingsStore, mode: ClickMode) -> None:
    store.set(CLICK_MODE_KEY, ClickMode(mode).value)


def load_click_mode(store: SettingsStore) -> ClickMode:
    try:
        return ClickMode(store.get(CLICK_MODE_KEY, DEFAULT_CLICK_MODE.value))
    except ValueError:
        return DEFAULT_CLICK_MODE


# Finger settings

def save_finger_settings(store: SettingsStore, settings: FingerSettings) -> None:
    store.set(FINGER_SETTINGS_KEY, {"primary": settings.primary, "secondary": settings.secondary})


def load_finger_settings(store: SettingsStore) -> FingerSettings:
    saved = store.get(FINGER_SETTINGS_KEY)
    if isinstance(saved, dict):
        primary = saved.get("primary")
        secondary = saved.get("secondary")
        if primary in FINGERS and secondary in FINGERS:
            return FingerSettings(primary, secondary)
    return DEFAULT_FINGER_SETTINGS


# Primary hand

def save_primary_hand_preference(store: SettingsStore, preference: PrimaryHandPreference) -> None:
    store.set(PRIMARY_HAND_KEY, PrimaryHandPreference(preference).value)


def load_primary_hand_preference(store: SettingsStore) -> PrimaryHandPreference:
    try:
        return PrimaryHandPreference(store.get(PRIMARY_HAND_KEY, DEFAULT_PRIMARY_HAND.value))
    except ValueError:
        return DEFAULT_PRIMARY_HAND


# Hand count

def save_max_hands(store: SettingsStore, max_hands: int) -> None:
    if max_hands not in (1, 2):
        raise ValueError(f"max_hands must be 1 or 2, got {max_hands!r}")
    store.set(MAX_HANDS_KEY, max_hands)


def load_max_hands(store: SettingsStore) -> int:
    saved = store.get(MAX_HANDS_KEY)
    if isinstance(saved, str) and saved.strip().isdigit():
        saved = int(saved)
    if saved in (1, 2) and not isinstance(saved, bool):
        return saved
    return DEFAULT_MAX_HANDS


# Calibration

def save_click_calibration(store: SettingsStore, calibration: ClickCalibration) -> None:
    store.set(CALIBRATION_KEY, {
        "pinchThreshold": calibration.pinch_threshold,
        "fistThreshold": calibration.fist_threshold,
        "clickDelay": calibration.click_delay,
        "releaseDelay": calibration.release_delay,
        "timestamp": calibration.timestamp,
    })


def load_click_calibration(store: SettingsStore) -> ClickCalibration:
    """Stored calibration, or the defaults if it is missing, malformed or out of range."""
    saved = store.get(CALIBRATION_KEY)
    if not isinstance(saved, dict):
        return DEFAULT_CALIBRATION

    values = {
        "pinch_threshold": saved.get("pinchThreshold"),
        "fist_threshold": saved.get("fistThreshold"),
        "click_delay": saved.get("clickDelay"),
        "release_delay": saved.get("releaseDelay"),
    }
    if not all(_is_number(v) for v in values.values()):
        logger.warning("Stored click calibration is malformed, using defaults")
        return DEFAULT_CALIBRATION

    if not (
        _in_range(values["pinch_threshold"], PINCH_THRESHOLD_RANGE)
        and _in_range(values["fist_threshold"], FIST_THRESHOLD_RANGE)
        and _in_range(values["click_delay"], DELAY_RANGE)
        and _in_range(values["release_delay"], DELAY_RANGE)
    ):
        logger.warning("Stored click calibration is out of range, using defaults")
        return DEFAULT_CALIBRATION

    timestamp = saved.get("timestamp", 0.0)
    if not _is_number(timestamp):
        timestamp = 0.0
    return ClickCalibration(timestamp=timestamp, **values)


def load_click_settings(store: SettingsStore) -> ClickSettings:
    """Everything the click engine reads from the store, in one snapshot."""
    return ClickSettings(
        click_mode=load_click_mode(store),
        fingers=load_finger_settings(store),
        primary_hand=load_primary_hand_preference(store),
        max_hands=load_max_hands(store),
    )
