import json
import logging

import pytest
from src.interaction.settings import (
    DEFAULT_CALIBRATION,
    SettingsStore,
    load_click_calibration,
    load_click_mode,
    load_click_settings,
    load_finger_settings,
    load_max_hands,
    load_primary_hand_preference,
    save_click_calibration,
    save_click_mode,
    save_finger_settings,
    save_max_hands,
    save_primary_hand_preference,
)
from src.vision.click_gesture import ClickCalibration, ClickMode, ClickSettings, FingerSettings
from src.vision.hand_roles import PrimaryHandPreference


@pytest.fixture
def settings_path(tmp_path):
    return tmp_path / "settings.json"


def write_raw(path, data):
    path.write_text(json.dumps(data))


def test_empty_store_gives_defaults(settings_path):
    store = SettingsStore(settings_path)
    assert load_click_mode(store) is ClickMode.PINCH
    assert load_finger_settings(store) == FingerSettings("index", "thumb")
    assert load_primary_hand_preference(store) is PrimaryHandPreference.AUTO
    assert load_max_hands(store) == 1
    assert load_click_calibration(store) == ClickCalibration(0.05, 0, 100, 150)
    assert load_click_settings(store) == ClickSettings()


def test_values_survive_reload(settings_path):
    store = SettingsStore(settings_path)
    save_click_mode(store, ClickMode.BOTH)
    save_finger_settings(store, FingerSettings("middle", "thumb"))
    save_primary_hand_preference(store, PrimaryHandPreference.LEFT)
    save_max_hands(store, 2)
    calibration = ClickCalibration(0.07, 1, 100, 150, timestamp=1700000000000.0)
    save_click_calibration(store, calibration)

    reloaded = SettingsStore(settings_path)
    assert load_click_mode(reloaded) is ClickMode.BOTH
    assert load_finger_settings(reloaded) == FingerSettings("middle", "thumb")
    assert load_primary_hand_preference(reloaded) is PrimaryHandPreference.LEFT
    assert load_max_hands(reloaded) == 2
    assert load_click_calibration(reloaded) == calibration


def test_file_uses_camel_case_keys(settings_path):
    store = SettingsStore(settings_path)
    save_click_mode(store, ClickMode.FIST)
    save_click_calibration(store, DEFAULT_CALIBRATION)

    data = json.loads(settings_path.read_text())
    assert data["clickMode"] == "fist"
    assert data["clickCalibration"]["pinchThreshold"] == 0.05
    assert data["clickCalibration"]["releaseDelay"] == 150


def test_corrupt_file_gives_defaults(settings_path, caplog):
    settings_path.write_text("{not json")
    with caplog.at_level(logging.WARNING):
        store = SettingsStore(settings_path)
    assert load_click_settings(store) == ClickSettings()
    assert "unreadable" in caplog.text


def test_invalid_utf8_file_gives_defaults(settings_path, caplog):
    settings_path.write_bytes(b'{"clickMode": "\xff\xfe"}')
    with caplog.at_level(logging.WARNING):
        store = SettingsStore(settings_path)
    assert load_click_mode(store) is ClickMode.PINCH
    assert "unreadable" in caplog.text

    # The store stays usable and rewrites the file
    save_click_mode(store, ClickMode.FIST)
    assert load_click_mode(SettingsStore(settings_path)) is ClickMode.FIST


def test_non_ascii_values_survive_reload(settings_path):
    store = SettingsStore(settings_path)
    store.set("label", "Größe ✋")
    assert SettingsStore(settings_path).get("label") == "Größe ✋"


def test_non_object_file_gives_defaults(settings_path):
    write_raw(settings_path, [1, 2, 3])
    store = SettingsStore(settings_path)
    assert load_max_hands(store) == 1


def test_invalid_values_fall_back(settings_path):
    write_raw(settings_path, {
        "clickMode": "wave",
        "fingerSettings": {"primary": "toe", "secondary": "thumb"},
        "primaryHandPreference": 3,
        "maxHands": 5,
    })
    store = SettingsStore(settings_path)
    assert load_click_mode(store) is ClickMode.PINCH
    assert load_finger_settings(store) == FingerSettings()
    assert load_primary_hand_preference(store) is PrimaryHandPreference.AUTO
    assert load_max_hands(store) == 1


@pytest.mark.parametrize("raw, expected", [("2", 2), ("1", 1), (2, 2), ("two", 1), (True, 1), (None, 1)])
def test_max_hands_parsing(settings_path, raw, expected):
    write_raw(settings_path, {"maxHands": raw})
    assert load_max_hands(SettingsStore(settings_path)) == expected


def test_save_max_hands_rejects_other_counts():
    store = SettingsStore()
    with pytest.raises(ValueError):
        save_max_hands(store, 3)


@pytest.mark.parametrize("calibration", [
    "nope",
    {"pinchThreshold": "0.05", "fistThreshold": 0, "clickDelay": 100, "releaseDelay": 150},
    {"pinchThreshold": 0.5, "fistThreshold": 0, "clickDelay": 100, "releaseDelay": 150},
    {"pinchThreshold": 0.05, "fistThreshold": 9, "clickDelay": 100, "releaseDelay": 150},
    {"pinchThreshold": 0.05, "fistThreshold": 0, "clickDelay": -1, "releaseDelay": 150},
    {"pinchThreshold": 0.05, "fistThreshold": 0, "clickDelay": 100},
])
def test_bad_calibration_gives_defaults(settings_path, calibration):
    write_raw(settings_path, {"clickCalibration": calibration})
    assert load_click_calibration(SettingsStore(settings_path)) == DEFAULT_CALIBRATION


def test_memory_store_writes_nothing(tmp_path):
    store = SettingsStore()
    save_click_mode(store, ClickMode.FIST)
    assert load_click_mode(store) is ClickMode.FIST
    assert store.path is None
    assert list(tmp_path.iterdir()) == []


def test_remove_key(settings_path):
    store = SettingsStore(settings_path)
    save_max_hands(store, 2)
    store.remove("maxHands")
    assert load_max_hands(SettingsStore(settings_path)) == 1


def test_missing_parent_directory_is_created(tmp_path):
    path = tmp_path / "nested" / "dir" / "settings.json"
    store = SettingsStore(path)
    save_click_mode(store, ClickMode.FIST)
    assert path.exists()
