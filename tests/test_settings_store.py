"""
Tests for settings storage.

Tests cover:
- Default values
- Strict validation and lenient normalization
- Save/load through JSON files
- Fallback to defaults for missing or unreadable files
"""

import json
import logging
import unittest

import pytest

from GR_Libs.SessionLib.settings_store import (
    BlurSettings,
    GifSettings,
    SessionConfig,
    default_settings_path,
    load_session_config,
    save_session_config,
)


class TestBlurSettings(unittest.TestCase):
    """Test BlurSettings validation."""

    def test_defaults(self):
        settings = BlurSettings()
        self.assertEqual(settings.blur_type, "gaussian")
        self.assertEqual(settings.intensity, 10)
        self.assertEqual(settings.brush_size, 20)
        self.assertEqual(settings.brush_radius, 10.0)

    def test_validate_normalizes_blur_type(self):
        settings = BlurSettings(blur_type=" Mosaic ").validate()
        self.assertEqual(settings.blur_type, "mosaic")

    def test_validate_unknown_blur_type(self):
        with self.assertRaises(ValueError):
            BlurSettings(blur_type="swirl").validate()

    def test_validate_intensity_range(self):
        with self.assertRaises(ValueError):
            BlurSettings(intensity=0).validate()
        with self.assertRaises(ValueError):
            BlurSettings(intensity=51).validate()

    def test_validate_intensity_type(self):
        with self.assertRaises(TypeError):
            BlurSettings(intensity="10").validate()
        with self.assertRaises(TypeError):
            BlurSettings(intensity=True).validate()

    def test_validate_brush_size(self):
        with self.assertRaises(ValueError):
            BlurSettings(brush_size=0).validate()
        with self.assertRaises(TypeError):
            BlurSettings(brush_size=2.5).validate()

    def test_normalized_is_lenient(self):
        settings = BlurSettings(blur_type="swirl", intensity=500, brush_size="abc").normalized()
        self.assertEqual(settings, BlurSettings(blur_type="gaussian", intensity=50, brush_size=20))

    def test_from_dict_ignores_unknown_keys(self):
        settings = BlurSettings.from_dict({"blur_type": "pixelated", "intensity": 4, "colour": "red"})
        self.assertEqual(settings.blur_type, "pixelated")
        self.assertEqual(settings.intensity, 4)


class TestGifSettings(unittest.TestCase):

    def test_defaults(self):
        self.assertEqual(GifSettings().to_dict(), {"quality": 10, "dither": False, "repeat": 0})

    def test_validate(self):
        self.assertEqual(GifSettings(quality=1, dither=True, repeat=-1).validate().repeat, -1)

    def test_validate_errors(self):
        with self.assertRaises(ValueError):
            GifSettings(quality=31).validate()
        with self.assertRaises(ValueError):
            GifSettings(repeat=-2).validate()
        with self.assertRaises(TypeError):
            GifSettings(dither="yes").validate()

    def test_normalized(self):
        settings = GifSettings(quality=0, dither="yes", repeat=70000).normalized()
        self.assertEqual(settings, GifSettings(quality=1, dither=True, repeat=65535))


class TestSettingsFile:
    """Persistence through JSON files."""

    def test_save_and_load(self, temp_settings_dir):
        path = default_settings_path(temp_settings_dir)
        config = SessionConfig(
            blur=BlurSettings(blur_type="mosaic", intensity=22, brush_size=40),
            gif=GifSettings(quality=5, dither=True, repeat=2),
        )

        assert save_session_config(path, config) == path
        assert load_session_config(path) == config

    def test_file_layout(self, temp_settings_dir):
        path = save_session_config(temp_settings_dir / "nested" / "settings.json", SessionConfig())
        payload = json.loads(path.read_text(encoding="utf-8"))
        assert payload["schema_version"] == 1
        assert payload["blur_settings"]["blur_type"] == "gaussian"
        assert payload["gif_settings"]["quality"] == 10

    def test_missing_file_gives_defaults(self, temp_settings_dir):
        assert load_session_config(temp_settings_dir / "missing.json") == SessionConfig()

    def test_corrupt_file_gives_defaults_with_warning(self, temp_settings_dir, caplog):
        path = temp_settings_dir / "settings.json"
        path.write_text("{not json", encoding="utf-8")

        with caplog.at_level(logging.WARNING):
            config = load_session_config(path)

        assert config == SessionConfig()
        assert "Failed to parse saved settings" in caplog.text

    def test_non_object_payload(self, temp_settings_dir, caplog):
        path = temp_settings_dir / "settings.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")
        with caplog.at_level(logging.WARNING):
            assert load_session_config(path) == SessionConfig()
        assert "does not hold an object" in caplog.text

    def test_out_of_range_values_are_clamped(self, temp_settings_dir):
        path = temp_settings_dir / "settings.json"
        path.write_text(json.dumps({
            "schema_version": 1,
            "blur_settings": {"blur_type": "PIXELATED", "intensity": 99},
            "gif_settings": "broken",
        }), encoding="utf-8")

        config = load_session_config(path)

        assert config.blur.blur_type == "pixelated"
        assert config.blur.intensity == 50
        assert config.gif == GifSettings()

    def test_schema_version_mismatch_warns(self, temp_settings_dir, caplog):
        path = temp_settings_dir / "settings.json"
        path.write_text(json.dumps({"schema_version": 99}), encoding="utf-8")
        with caplog.at_level(logging.WARNING):
            assert load_session_config(path) == SessionConfig()
        assert "schema version" in caplog.text


class TestSessionConfig:

    def test_copy_is_independent(self):
        config = SessionConfig()
        clone = config.copy()
        clone.blur.intensity = 30
        assert config.blur.intensity == 10

    @pytest.mark.parametrize("payload", [{}, {"blur_settings": None}])
    def test_from_dict_defaults(self, payload):
        assert SessionConfig.from_dict(payload) == SessionConfig()
