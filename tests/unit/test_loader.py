"""
Unit tests for export configuration loading.
"""

import pytest

from roadmap_export.config.loader import (
    DEFAULT_CONFIG_PATH,
    ExportConfigError,
    ExportSettings,
    apply_env_overrides,
    load_export_settings,
    settings_from_mapping,
)
from roadmap_export.utils.constants import PAGE_CONTAINER_SELECTOR
from roadmap_export.utils.env import parse_bool


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("EXPORT_CONFIG_PATH", "EXPORT_OUTPUT_DIR", "EXPORT_SETTLE_DELAY_MS", "EXPORT_SERIALIZE"):
        monkeypatch.delenv(name, raising=False)


class TestLoadExportSettings:
    """Test loading export.yml."""

    def test_repository_config_matches_defaults(self):
        """config/export.yml restates the built-in thresholds."""
        assert DEFAULT_CONFIG_PATH.exists()
        assert load_export_settings() == ExportSettings()

    def test_missing_explicit_path_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_export_settings(tmp_path / "missing.yml")

    def test_missing_env_path_raises(self, tmp_path, monkeypatch):
        monkeypatch.setenv("EXPORT_CONFIG_PATH", str(tmp_path / "missing.yml"))

        with pytest.raises(FileNotFoundError):
            load_export_settings()

    def test_yaml_overrides(self, tmp_path):
        config = tmp_path / "export.yml"
        config.write_text(
            "capture:\n"
            "  settle_delay_ms: 50\n"
            "  scale_tiers:\n"
            "    small: 2\n"
            "optimizer:\n"
            "  max_image_bytes: 1000\n"
            "output:\n"
            "  directory: out\n"
        )

        settings = load_export_settings(config)

        assert settings.settle_delay_ms == 50
        assert settings.scale_small == 2.0
        assert isinstance(settings.scale_small, float)
        assert settings.max_image_bytes == 1000
        assert settings.output_dir == "out"
        assert settings.page_selector == PAGE_CONTAINER_SELECTOR

    def test_empty_file_gives_defaults(self, tmp_path):
        config = tmp_path / "export.yml"
        config.write_text("")

        assert load_export_settings(config) == ExportSettings()

    def test_invalid_yaml(self, tmp_path):
        config = tmp_path / "export.yml"
        config.write_text("capture: [unclosed\n")

        with pytest.raises(ExportConfigError):
            load_export_settings(config)


class TestSettingsFromMapping:
    """Test validation of parsed mappings."""

    @pytest.mark.parametrize("quality", [0, 1.5, -0.2])
    def test_quality_out_of_range(self, quality):
        with pytest.raises(ExportConfigError, match="default_quality"):
            settings_from_mapping({"optimizer": {"default_quality": quality}})

    def test_threshold_order(self):
        with pytest.raises(ExportConfigError):
            settings_from_mapping({"capture": {"scale_tiers": {"medium_pixel_threshold": 2_000_000}}})

    def test_unconvertible_value(self):
        with pytest.raises(ExportConfigError, match="max_image_bytes"):
            settings_from_mapping({"optimizer": {"max_image_bytes": "lots"}})

    def test_section_must_be_mapping(self):
        with pytest.raises(ExportConfigError):
            settings_from_mapping({"optimizer": [1, 2]})

    def test_unknown_keys_ignored(self):
        assert settings_from_mapping({"version": "1.0", "extra": {"a": 1}}) == ExportSettings()

    @pytest.mark.parametrize("value, expected", [
        ("false", False),
        ("No", False),
        ("off", False),
        (False, False),
        ("true", True),
        ("yes", True),
        (True, True),
    ])
    def test_boolean_words(self, value, expected):
        settings = settings_from_mapping({"output": {"serialize_exports": value}})

        assert settings.serialize_exports is expected

    @pytest.mark.parametrize("value", ["maybe", 1, 0.0])
    def test_unrecognised_boolean_rejected(self, value):
        with pytest.raises(ExportConfigError, match="serialize_exports"):
            settings_from_mapping({"output": {"serialize_exports": value}})

    def test_fractional_int_rejected(self):
        with pytest.raises(ExportConfigError, match="max_image_bytes"):
            settings_from_mapping({"optimizer": {"max_image_bytes": 1.5}})

    def test_integral_float_accepted_for_int(self):
        settings = settings_from_mapping({"optimizer": {"max_image_bytes": 1000.0}})

        assert settings.max_image_bytes == 1000
        assert isinstance(settings.max_image_bytes, int)

    def test_boolean_rejected_for_number(self):
        with pytest.raises(ExportConfigError, match="width_px"):
            settings_from_mapping({"multi_page": {"width_px": True}})

    def test_int_accepted_for_float(self):
        assert settings_from_mapping({"multi_page": {"scale": 2}}).multi_page_scale == 2.0

    def test_quoted_false_in_yaml_file(self, tmp_path):
        config = tmp_path / "export.yml"
        config.write_text('output:\n  serialize_exports: "false"\n')

        assert load_export_settings(config).serialize_exports is False


class TestParseBool:

    @pytest.mark.parametrize("word, expected", [
        ("1", True), ("TRUE", True), (" on ", True),
        ("0", False), ("False", False), ("", False),
        ("maybe", None), ("2", None),
    ])
    def test_words(self, word, expected):
        assert parse_bool(word) is expected


class TestEnvOverrides:

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("EXPORT_OUTPUT_DIR", "/tmp/exports")
        monkeypatch.setenv("EXPORT_SETTLE_DELAY_MS", "0")
        monkeypatch.setenv("EXPORT_SERIALIZE", "false")

        settings = apply_env_overrides(ExportSettings())

        assert settings.output_dir == "/tmp/exports"
        assert settings.settle_delay_ms == 0
        assert settings.settle_delay_seconds == 0.0
        assert settings.serialize_exports is False

    def test_invalid_int_ignored(self, monkeypatch):
        monkeypatch.setenv("EXPORT_SETTLE_DELAY_MS", "soon")

        assert apply_env_overrides(ExportSettings()).settle_delay_ms == 300

    def test_env_applied_after_yaml(self, tmp_path, monkeypatch):
        config = tmp_path / "export.yml"
        config.write_text("output:\n  directory: from-yaml\n")
        monkeypatch.setenv("EXPORT_OUTPUT_DIR", "from-env")

        assert load_export_settings(config).output_dir == "from-env"
