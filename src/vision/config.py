"""
Config loader for HandGrab.
Loads YAML configuration with dataclass validation.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple
import yaml


@dataclass
class CameraConfig:
    device_id: int = 0
    width: int = 1280
    height: int = 720
    fps: int = 30


@dataclass
class MediaPipeConfig:
    max_num_hands: int = 2
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    override_handedness: bool = True  # Trust thumb side over the detector label


@dataclass
class GestureConfig:
    pinch_threshold: float = 0.05       # Used until a calibration is saved
    position_smoothing: float = 0.8     # Alpha for the pointer (higher = more responsive)
    strength_smoothing: float = 0.3     # Alpha for click strength
    click_delay_ms: float = 100.0
    release_delay_ms: float = 150.0

    # Empirically tuned classifier constants
    thumb_straightness: float = 0.8
    fist_max_extended: int = 1          # Lenient fist: >=4 closed and at most this many extended
    depth_weights: Tuple[float, float, float] = (0.5, 0.3, 0.2)  # z, span, palm width
    scale_reference: float = 0.225      # Wrist to middle tip span at scale 1.0

    # Pointer Z mapping
    depth_range: float = 6.0
    scale_z_gain: float = 0.5


@dataclass
class InteractionConfig:
    grab_smoothing: float = 0.15        # Lerp factor per render tick
    snap_distance: float = 5.0          # Jumps larger than this skip smoothing
    release_hold_ms: float = 100.0      # Time spent in RELEASE before IDLE
    release_velocity: Tuple[float, float, float] = (0.0, -0.5, 0.0)


@dataclass
class SceneConfig:
    camera_position: Tuple[float, float, float] = (0.0, 0.0, 5.0)
    camera_target: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    fov: float = 75.0
    aspect: float = 16.0 / 9.0


@dataclass
class GazeConfig:
    enabled: bool = False
    confidence_threshold: float = 0.5
    ray_length: float = 10.0


@dataclass
class SettingsConfig:
    path: str = "~/.config/handgrab/settings.json"


@dataclass
class WorkerConfig:
    tick_rate: int = 60                 # Render ticks per second
    show_preview: bool = False


@dataclass
class Config:
    camera: CameraConfig = field(default_factory=CameraConfig)
    mediapipe: MediaPipeConfig = field(default_factory=MediaPipeConfig)
    gestures: GestureConfig = field(default_factory=GestureConfig)
    interaction: InteractionConfig = field(default_factory=InteractionConfig)
    scene: SceneConfig = field(default_factory=SceneConfig)
    gaze: GazeConfig = field(default_factory=GazeConfig)
    settings: SettingsConfig = field(default_factory=SettingsConfig)
    worker: WorkerConfig = field(default_factory=WorkerConfig)


# YAML has no tuples; these fields are read back from lists
_TUPLE_FIELDS = {
    "depth_weights", "release_velocity",
    "camera_position", "camera_target",
}


def _dict_to_dataclass(cls, data: dict):
    """Convert a dict to a dataclass, ignoring unknown keys."""
    if data is None:
        return cls()
    field_names = {f.name for f in cls.__dataclass_fields__.values()}
    filtered = {}
    for k, v in data.items():
        if k not in field_names:
            continue
        if k in _TUPLE_FIELDS and isinstance(v, list):
            v = tuple(v)
        filtered[k] = v
    return cls(**filtered)


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, uses default config.yaml
                    in project root.

    Returns:
        Config dataclass with all settings.
    """
    if config_path is None:
        # Default to config.yaml in project root
        config_path = Path(__file__).parent.parent.parent / "config.yaml"

    config_path = Path(config_path)

    if not config_path.exists():
        # Return defaults if no config file
        return Config()

    with open(config_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    return Config(
        camera=_dict_to_dataclass(CameraConfig, data.get('camera')),
        mediapipe=_dict_to_dataclass(MediaPipeConfig, data.get('mediapipe')),
        gestures=_dict_to_dataclass(GestureConfig, data.get('gestures')),
        interaction=_dict_to_dataclass(InteractionConfig, data.get('interaction')),
        scene=_dict_to_dataclass(SceneConfig, data.get('scene')),
        gaze=_dict_to_dataclass(GazeConfig, data.get('gaze')),
        settings=_dict_to_dataclass(SettingsConfig, data.get('settings')),
        worker=_dict_to_dataclass(WorkerConfig, data.get('worker')),
    )
