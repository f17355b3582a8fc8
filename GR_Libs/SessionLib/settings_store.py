"""
Settings storage for Gif Retouch.

This module handles persistence of the user's blur and encoder settings.
They are loaded once when a session starts and passed by value into the
session; nothing here is global state.

The settings file schema includes:
- Schema version
- Blur settings (blur type, intensity, brush size)
- GIF settings (quality, dither, repeat)

Classes:
    BlurSettings: Masked transform and brush configuration
    GifSettings: Encoder configuration
    SessionConfig: Both of the above

Functions:
    default_settings_path: Settings file location inside a directory
    load_session_config: Load settings, falling back to defaults
    save_session_config: Save settings as JSON
"""

import json
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict

from GR_Libs.constants import (
    DEFAULT_BLUR_INTENSITY,
    DEFAULT_BLUR_TYPE,
    DEFAULT_BRUSH_SIZE,
    DEFAULT_GIF_DITHER,
    DEFAULT_GIF_QUALITY,
    DEFAULT_GIF_REPEAT,
    FIELD_BLUR_SETTINGS,
    FIELD_GIF_SETTINGS,
    FIELD_SCHEMA_VERSION,
    MAX_BLUR_INTENSITY,
    MAX_BRUSH_SIZE,
    MAX_GIF_QUALITY,
    MIN_BLUR_INTENSITY,
    MIN_BRUSH_SIZE,
    MIN_GIF_QUALITY,
    SCHEMA_VERSION,
    SETTINGS_FILE_NAME,
)
from GR_Libs.ImageEditingLib.image_models import BlurType, validate_intensity

logger = logging.getLogger(__name__)


def _clamp_int(value: Any, low: int, high: int, default: int) -> int:
    """Coerce to int within [low, high]; unparseable values give the default."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
        return default
    if isinstance(value, (int, float)):
        return bool(value)
    return default


@dataclass
class BlurSettings:
    """Configuration for masked transforms and the brush.

    Attributes:
        blur_type: 'gaussian', 'pixelated' or 'mosaic'
        intensity: Transform strength (1-50)
        brush_size: Brush diameter in canvas pixels (1-200)
    """
    blur_type: str = DEFAULT_BLUR_TYPE
    intensity: int = DEFAULT_BLUR_INTENSITY
    brush_size: int = DEFAULT_BRUSH_SIZE

    @property
    def brush_radius(self) -> float:
        return self.brush_size / 2.0

    def validate(self) -> "BlurSettings":
        """
        Check every field strictly.

        Returns:
            A copy with the blur type normalized to its name

        Raises:
            ValueError: If a value is out of range or the blur type is unknown
            TypeError: If intensity or brush_size is not an int
        """
        blur_type = BlurType.parse(self.blur_type).value
        intensity = validate_intensity(self.intensity)
        if isinstance(self.brush_size, bool) or not isinstance(self.brush_size, int):
            raise TypeError(f"brush_size must be an int, got {type(self.brush_size)}")
        if not (MIN_BRUSH_SIZE <= self.brush_size <= MAX_BRUSH_SIZE):
            raise ValueError(
                f"brush_size must be {MIN_BRUSH_SIZE}-{MAX_BRUSH_SIZE}, got {self.brush_size}"
            )
        return replace(self, blur_type=blur_type, intensity=intensity)

    def normalized(self) -> "BlurSettings":
        """Lenient copy: unknown blur types fall back to the default, numbers are clamped."""
        try:
            blur_type = BlurType.parse(self.blur_type).value
        except ValueError:
            blur_type = DEFAULT_BLUR_TYPE
        return BlurSettings(
            blur_type=blur_type,
            intensity=_clamp_int(self.intensity, MIN_BLUR_INTENSITY, MAX_BLUR_INTENSITY, DEFAULT_BLUR_INTENSITY),
            brush_size=_clamp_int(self.brush_size, MIN_BRUSH_SIZE, MAX_BRUSH_SIZE, DEFAULT_BRUSH_SIZE),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "blur_type": self.blur_type,
            "intensity": self.intensity,
            "brush_size": self.brush_size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlurSettings":
        """Create from dictionary; unknown keys are ignored and values normalized."""
        filtered = {k: v for k, v in data.items()
                    if k in cls.__dataclass_fields__}
        return cls(**filtered).normalized()


@dataclass
class GifSettings:
    """Configuration for the GIF encoder.

    Attributes:
        quality: Quantization quality (1 best - 30 fastest)
        dither: Floyd-Steinberg dithering when quantizing
        repeat: Loop count (0 loops forever, -1 plays once)
    """
    quality: int = DEFAULT_GIF_QUALITY
    dither: bool = DEFAULT_GIF_DITHER
    repeat: int = DEFAULT_GIF_REPEAT

    def validate(self) -> "GifSettings":
        """
        Check every field strictly.

        Raises:
            ValueError: If quality or repeat is out of range
            TypeError: If a field has the wrong type
        """
        if isinstance(self.quality, bool) or not isinstance(self.quality, int):
            raise TypeError(f"quality must be an int, got {type(self.quality)}")
        if not (MIN_GIF_QUALITY <= self.quality <= MAX_GIF_QUALITY):
            raise ValueError(f"quality must be {MIN_GIF_QUALITY}-{MAX_GIF_QUALITY}, got {self.quality}")
        if not isinstance(self.dither, bool):
            raise TypeError(f"dither must be a bool, got {type(self.dither)}")
        if isinstance(self.repeat, bool) or not isinstance(self.repeat, int):
            raise TypeError(f"repeat must be an int, got {type(self.repeat)}")
        if not (-1 <= self.repeat <= 0xFFFF):
            raise ValueError(f"repeat must be -1-65535, got {self.repeat}")
        return replace(self)

    def normalized(self) -> "GifSettings":
        return GifSettings(
            quality=_clamp_int(self.quality, MIN_GIF_QUALITY, MAX_GIF_QUALITY, DEFAULT_GIF_QUALITY),
            dither=_as_bool(self.dither, DEFAULT_GIF_DITHER),
            repeat=_clamp_int(self.repeat, -1, 0xFFFF, DEFAULT_GIF_REPEAT),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "quality": self.quality,
            "dither": self.dither,
            "repeat": self.repeat,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GifSettings":
        """Create from dictionary; unknown keys are ignored and values normalized."""
        filtered = {k: v for k, v in data.items()
                    if k in cls.__dataclass_fields__}
        return cls(**filtered).normalized()


@dataclass
class SessionConfig:
    blur: BlurSettings = field(default_factory=BlurSettings)
    gif: GifSettings = field(default_factory=GifSettings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            FIELD_SCHEMA_VERSION: SCHEMA_VERSION,
            FIELD_BLUR_SETTINGS: self.blur.to_dict(),
            FIELD_GIF_SETTINGS: self.gif.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionConfig":
        blur_data = data.get(FIELD_BLUR_SETTINGS)
        gif_data = data.get(FIELD_GIF_SETTINGS)
        return cls(
            blur=BlurSettings.from_dict(blur_data) if isinstance(blur_data, dict) else BlurSettings(),
            gif=GifSettings.from_dict(gif_data) if isinstance(gif_data, dict) else GifSettings(),
        )

    def copy(self) -> "SessionConfig":
        return SessionConfig(blur=replace(self.blur), gif=replace(self.gif))


def settings_field_names(settings_cls: type) -> tuple:
    return tuple(f.name for f in fields(settings_cls))


def default_settings_path(base_dir: Path) -> Path:
    return Path(base_dir) / SETTINGS_FILE_NAME


def load_session_config(settings_path: Path) -> SessionConfig:
    """
    Load settings from a JSON file.

    Args:
        settings_path: Path to the settings file

    Returns:
        The stored settings, or defaults when the file is missing or
        unreadable (a warning is logged for unreadable files)
    """
    settings_path = Path(settings_path)
    try:
        payload = json.loads(settings_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.debug(f"No settings file at {settings_path}; using defaults")
        return SessionConfig()
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
        logger.warning(f"Failed to parse saved settings from {settings_path}: {e}")
        return SessionConfig()

    if not isinstance(payload, dict):
        logger.warning(f"Settings file {settings_path} does not hold an object; using defaults")
        return SessionConfig()

    version = payload.get(FIELD_SCHEMA_VERSION)
    if version != SCHEMA_VERSION:
        logger.warning(f"Settings schema version {version!r} != {SCHEMA_VERSION}; reading known fields")

    config = SessionConfig.from_dict(payload)
    logger.info(f"Loaded settings from {settings_path}")
    return config


def save_session_config(settings_path: Path, config: SessionConfig) -> Path:
    """
    Save settings to a JSON file.

    Args:
        settings_path: Destination path (parent directories are created)
        config: Settings to store

    Returns:
        The path written

    Raises:
        OSError: If the file cannot be written
    """
    settings_path = Path(settings_path)
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    settings_path.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
    logger.info(f"Saved settings to {settings_path}")
    return settings_path
