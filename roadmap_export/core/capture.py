"""
Element Capture

Rasterizes a surface into a RasterBuffer at a policy-computed scale.

Scale policy: larger surfaces are rasterized at lower density to bound
memory and output size; small surfaces get higher density for fidelity.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, Optional

from PIL import Image, ImageColor

from roadmap_export.config.loader import ExportSettings
from roadmap_export.core.models import CaptureConfig, RasterBuffer, SurfaceMetrics
from roadmap_export.core.surface import Surface
from roadmap_export.utils.error_handling import CaptureError, convert_exceptions

logger = logging.getLogger(__name__)

ReadinessSignal = Callable[[], Awaitable[Any]]


def calculate_optimal_scale(pixel_count: int, settings: Optional[ExportSettings] = None) -> float:
    """
    Capture scale for a surface of ``pixel_count`` CSS pixels.

    Examples:
        >>> calculate_optimal_scale(1_400_000)
        1.0
        >>> calculate_optimal_scale(1_000_000)
        1.2
        >>> calculate_optimal_scale(500_000)
        1.5
    """
    settings = settings or ExportSettings()
    if pixel_count > settings.large_pixel_threshold:
        return settings.scale_large
    if pixel_count > settings.medium_pixel_threshold:
        return settings.scale_medium
    return settings.scale_small


class ElementCapture:
    """Rasterizes surfaces; one RasterBuffer per call."""

    def __init__(
        self,
        settings: Optional[ExportSettings] = None,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.settings = settings or ExportSettings()
        self.logger = logger or logging.getLogger(__name__)
        self._sleep = sleep

    def build_config(self, metrics: SurfaceMetrics, overrides: Optional[Dict[str, Any]] = None) -> CaptureConfig:
        """
        Derive the CaptureConfig from surface metrics plus caller overrides.

        Only ``scale`` is computed by policy; an explicit override wins.
        """
        config = CaptureConfig(
            scale=calculate_optimal_scale(metrics.pixel_count, self.settings),
            width=max(metrics.width, metrics.scroll_width, 1),
            height=max(metrics.height, metrics.scroll_height, 1),
            background_color=self.settings.background_color,
        )
        overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
        if overrides:
            config = replace(config, **overrides)
        return config

    async def wait_for_ready(self, surface: Surface, ready: Optional[ReadinessSignal] = None) -> None:
        """
        Wait until the surface has settled.

        Prefers an explicit readiness signal (argument, else the surface's
        own ``wait_until_ready``); falls back to the fixed settle delay.
        """
        signal = ready or getattr(surface, "wait_until_ready", None)
        if signal is None:
            if self.settings.settle_delay_seconds > 0:
                await self._sleep(self.settings.settle_delay_seconds)
            return
        try:
            await asyncio.wait_for(signal(), timeout=self.settings.ready_timeout_seconds)
        except asyncio.TimeoutError:
            self.logger.warning(
                f"{surface.name}: readiness signal timed out after "
                f"{self.settings.ready_timeout_seconds}s, capturing anyway"
            )

    @convert_exceptions(CaptureError, error_context="Surface capture failed")
    async def capture(
        self,
        surface: Surface,
        overrides: Optional[Dict[str, Any]] = None,
        ready: Optional[ReadinessSignal] = None,
    ) -> RasterBuffer:
        """
        Rasterize ``surface``.

        Args:
            surface: Rendered surface to capture
            overrides: CaptureConfig fields to force (e.g. scale, width, height)
            ready: Optional readiness signal awaited before rasterizing

        Returns:
            RasterBuffer of exactly width*scale by height*scale pixels

        Raises:
            CaptureError: Carrying the underlying rasterization error's message
        """
        metrics = await surface.measure()
        self.logger.debug(
            f"{surface.name}: dimensions {metrics.width}x{metrics.height} "
            f"(scroll {metrics.scroll_width}x{metrics.scroll_height})"
        )
        config = self.build_config(metrics, overrides)
        self.logger.debug(
            f"{surface.name}: capture config scale={config.scale} width={config.width} "
            f"height={config.height} estimated_pixels={config.estimated_pixels}"
        )

        await self.wait_for_ready(surface, ready)

        image = await surface.rasterize(config)
        image = self._normalize(image, config, getattr(surface, "device_scale", 1.0))
        return RasterBuffer(image=image, scale=config.scale)

    def _normalize(self, image: Image.Image, config: CaptureConfig, source_scale: float = 1.0) -> Image.Image:
        """
        Rescale uniformly to ``config.scale`` and draw at the top-left of a
        background-filled canvas of exactly ``config.output_size``.

        A raster smaller than the capture box is padded, never stretched.
        """
        rgba = image.convert("RGBA")
        factor = config.scale / (source_scale or 1.0)
        if factor != 1.0:
            scaled_size = (max(1, round(rgba.width * factor)), max(1, round(rgba.height * factor)))
            rgba = rgba.resize(scaled_size, Image.LANCZOS)

        out_w, out_h = config.output_size
        if rgba.width > out_w or rgba.height > out_h:
            rgba = rgba.crop((0, 0, min(rgba.width, out_w), min(rgba.height, out_h)))

        canvas = Image.new("RGBA", config.output_size, ImageColor.getcolor(config.background_color, "RGBA"))
        canvas.alpha_composite(rgba, (0, 0))
        return canvas
