"""
Export Configuration Loader

Loads config/export.yml into an immutable ExportSettings value.
Every field defaults to the value in roadmap_export.utils.constants, so a
missing default config file still yields a working engine; an explicitly
requested file that does not exist is an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from roadmap_export.utils import constants as C
from roadmap_export.utils.env import env_bool, env_int, env_str, parse_bool

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "export.yml"


class ExportConfigError(ValueError):
    """Raised when export.yml is malformed."""


@dataclass(frozen=True)
class ExportSettings:
    # capture
    large_pixel_threshold: int = C.SCALE_LARGE_PIXEL_THRESHOLD
    medium_pixel_threshold: int = C.SCALE_MEDIUM_PIXEL_THRESHOLD
    scale_large: float = C.SCALE_LARGE
    scale_medium: float = C.SCALE_MEDIUM
    scale_small: float = C.SCALE_SMALL
    background_color: str = C.DEFAULT_BACKGROUND_COLOR
    settle_delay_ms: int = C.DEFAULT_SETTLE_DELAY_MS
    ready_timeout_seconds: float = C.DEFAULT_READY_TIMEOUT_SECONDS
    # optimizer
    default_quality: float = C.DEFAULT_JPEG_QUALITY
    reduced_quality: float = C.REDUCED_JPEG_QUALITY
    max_image_bytes: int = C.MAX_IMAGE_BYTES
    # estimator
    bytes_per_pixel: int = C.ESTIMATED_BYTES_PER_PIXEL
    page_warning_mb: float = C.PAGE_SIZE_WARNING_MB
    document_warning_mb: float = C.DOCUMENT_SIZE_WARNING_MB
    # multi-page
    multi_page_scale: float = C.MULTI_PAGE_SCALE
    multi_page_width: int = C.MULTI_PAGE_WIDTH_PX
    multi_page_height: int = C.MULTI_PAGE_HEIGHT_PX
    page_selector: str = C.PAGE_CONTAINER_SELECTOR
    # output
    output_dir: str = C.DEFAULT_OUTPUT_DIR
    filename_prefix: str = C.FILENAME_PREFIX
    serialize_exports: bool = True

    @property
    def settle_delay_seconds(self) -> float:
        return max(self.settle_delay_ms, 0) / 1000.0


# YAML section -> {yaml key: ExportSettings field}
_FIELD_MAP: Dict[str, Dict[str, str]] = {
    "capture": {
        "background_color": "background_color",
        "settle_delay_ms": "settle_delay_ms",
        "ready_timeout_seconds": "ready_timeout_seconds",
    },
    "capture.scale_tiers": {
        "large_pixel_threshold": "large_pixel_threshold",
        "medium_pixel_threshold": "medium_pixel_threshold",
        "large": "scale_large",
        "medium": "scale_medium",
        "small": "scale_small",
    },
    "optimizer": {
        "default_quality": "default_quality",
        "reduced_quality": "reduced_quality",
        "max_image_bytes": "max_image_bytes",
    },
    "estimator": {
        "bytes_per_pixel": "bytes_per_pixel",
        "page_warning_mb": "page_warning_mb",
        "document_warning_mb": "document_warning_mb",
    },
    "multi_page": {
        "scale": "multi_page_scale",
        "width_px": "multi_page_width",
        "height_px": "multi_page_height",
        "page_selector": "page_selector",
    },
    "output": {
        "directory": "output_dir",
        "filename_prefix": "filename_prefix",
        "serialize_exports": "serialize_exports",
    },
}


def _section(data: Dict[str, Any], dotted: str) -> Dict[str, Any]:
    node: Any = data
    for part in dotted.split("."):
        if not isinstance(node, dict):
            return {}
        node = node.get(part, {})
    if node is None:
        return {}
    if not isinstance(node, dict):
        raise ExportConfigError(f"export.yml section '{dotted}' must be a mapping")
    return node


def _coerce(value: Any, expected: type, where: str) -> Any:
    """
    Convert a YAML scalar to the field's type without silent truncation.

    Booleans accept true/false words (quoted or not); ints reject
    fractional numbers and booleans.
    """
    def fail() -> ExportConfigError:
        return ExportConfigError(f"export.yml {where}: cannot convert {value!r} to {expected.__name__}")

    if expected is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and parse_bool(value) is not None:
            return parse_bool(value)
        raise fail()
    if isinstance(value, bool):
        raise fail()
    if expected is int:
        if isinstance(value, float):
            if not value.is_integer():
                raise fail()
            return int(value)
    try:
        return value if isinstance(value, expected) else expected(value)
    except (TypeError, ValueError) as e:
        raise fail() from e


def settings_from_mapping(data: Dict[str, Any]) -> ExportSettings:
    """
    Build ExportSettings from a parsed export.yml mapping.

    Unknown keys are ignored; missing keys keep their defaults.
    """
    if not isinstance(data, dict):
        raise ExportConfigError("export.yml must contain a mapping at the top level")

    overrides: Dict[str, Any] = {}
    defaults = ExportSettings()
    for dotted, fields in _FIELD_MAP.items():
        section = _section(data, dotted)
        for key, field_name in fields.items():
            if key not in section or section[key] is None:
                continue
            expected = type(getattr(defaults, field_name))
            overrides[field_name] = _coerce(section[key], expected, f"{dotted}.{key}")

    settings = replace(defaults, **overrides)
    if settings.medium_pixel_threshold > settings.large_pixel_threshold:
        raise ExportConfigError("medium_pixel_threshold must not exceed large_pixel_threshold")
    for name in ("default_quality", "reduced_quality"):
        quality = getattr(settings, name)
        if not 0.0 < quality <= 1.0:
            raise ExportConfigError(f"{name} must be in (0, 1], got {quality}")
    return settings


def apply_env_overrides(settings: ExportSettings) -> ExportSettings:
    """Apply EXPORT_* environment variable overrides."""
    overrides: Dict[str, Any] = {}
    output_dir = env_str("EXPORT_OUTPUT_DIR")
    if output_dir:
        overrides["output_dir"] = output_dir
    settle_ms = env_int("EXPORT_SETTLE_DELAY_MS")
    if settle_ms is not None:
        overrides["settle_delay_ms"] = settle_ms
    overrides["serialize_exports"] = env_bool("EXPORT_SERIALIZE", settings.serialize_exports)
    return replace(settings, **overrides)


def load_export_settings(path: Optional[Path] = None) -> ExportSettings:
    """
    Load export settings from YAML.

    Resolution order: explicit ``path``, then EXPORT_CONFIG_PATH, then
    config/export.yml at the repository root. Environment overrides are
    applied last.

    Raises:
        FileNotFoundError: If an explicitly requested file is missing
        ExportConfigError: If the YAML content is invalid
    """
    explicit = path or env_str("EXPORT_CONFIG_PATH") or None
    config_path = Path(explicit) if explicit else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        if explicit:
            logger.error(f"export.yml not found at {config_path.absolute()}")
            raise FileNotFoundError(f"Export config not found at {config_path}")
        logger.debug(f"No export config at {config_path}, using built-in defaults")
        return apply_env_overrides(ExportSettings())

    with config_path.open("r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ExportConfigError(f"Invalid YAML in {config_path}: {e}") from e

    settings = settings_from_mapping(data)
    logger.info(f"Loaded export config {config_path} (version: {data.get('version', 'unknown')})")
    return apply_env_overrides(settings)
