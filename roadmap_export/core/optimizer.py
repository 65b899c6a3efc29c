"""
Image Optimization and Size Estimation

ImageOptimizer turns a RasterBuffer into a size-bounded JPEG using a
two-tier quality policy: encode at the requested quality, and if the
result is over the byte threshold, re-encode exactly once at the reduced
quality. SizeEstimator predicts encoded sizes from pixel counts for
advisory warnings only.
"""

import io
import logging
from typing import Optional

from PIL import Image

from roadmap_export.config.loader import ExportSettings
from roadmap_export.core.models import EncodedImage, RasterBuffer
from roadmap_export.utils.constants import BYTES_PER_MB
from roadmap_export.utils.error_handling import AssemblyError, convert_exceptions, report_size_warning

logger = logging.getLogger(__name__)


def encode_jpeg(image: Image.Image, quality: float) -> bytes:
    """Encode ``image`` as baseline JPEG; ``quality`` is in (0, 1]."""
    buf = io.BytesIO()
    image.convert("RGB").save(buf, format="JPEG", quality=int(round(quality * 100)))
    return buf.getvalue()


class ImageOptimizer:
    """Lossy, size-bounded encoder for document pages."""

    def __init__(self, settings: Optional[ExportSettings] = None, logger: Optional[logging.Logger] = None):
        self.settings = settings or ExportSettings()
        self.logger = logger or logging.getLogger(__name__)

    @convert_exceptions(AssemblyError, error_context="JPEG encoding failed")
    def _encode(self, buffer: RasterBuffer, quality: float) -> EncodedImage:
        return EncodedImage(
            data=encode_jpeg(buffer.image, quality),
            format="JPEG",
            width=buffer.width,
            height=buffer.height,
            quality=quality,
        )

    def optimize(self, buffer: RasterBuffer, quality: Optional[float] = None) -> EncodedImage:
        """
        Encode ``buffer`` as JPEG, retrying once at reduced quality if too large.

        Args:
            buffer: Captured raster
            quality: Requested quality (defaults to settings.default_quality, 0.85)

        Returns:
            EncodedImage; its quality tells which tier was used
        """
        quality = self.settings.default_quality if quality is None else quality
        encoded = self._encode(buffer, quality)
        if encoded.byte_length <= self.settings.max_image_bytes:
            return encoded

        self.logger.warning(
            f"Large image detected, reducing quality: originalSizeMB="
            f"{round(encoded.byte_length / BYTES_PER_MB, 2)} threshold="
            f"{round(self.settings.max_image_bytes / BYTES_PER_MB, 2)}MB "
            f"({quality} -> {self.settings.reduced_quality})"
        )
        return self._encode(buffer, self.settings.reduced_quality)


class SizeEstimator:
    """Predicts encoded output size from raw pixel dimensions."""

    def __init__(self, settings: Optional[ExportSettings] = None, logger: Optional[logging.Logger] = None):
        self.settings = settings or ExportSettings()
        self.logger = logger or logging.getLogger(__name__)

    def estimate_mb(self, width: int, height: int) -> float:
        """
        Estimated JPEG size in MB, rounded to two decimals.

        Examples:
            >>> SizeEstimator().estimate_mb(1024, 1024)
            3.0
        """
        estimated = (width * height * self.settings.bytes_per_pixel) / BYTES_PER_MB
        return round(estimated, 2)

    def check_page(self, width: int, height: int) -> float:
        """Estimate a single page and warn above the page threshold."""
        estimated = self.estimate_mb(width, height)
        if estimated > self.settings.page_warning_mb:
            report_size_warning(
                "Large PDF expected",
                log=self.logger,
                estimatedSizeMB=estimated,
                thresholdMB=self.settings.page_warning_mb,
                recommendation="Consider reducing content or using lower resolution",
            )
        return estimated

    def check_document(self, total_mb: float, page_count: int) -> float:
        """Warn when a whole document's running estimate exceeds the aggregate threshold."""
        total_mb = round(total_mb, 2)
        if total_mb > self.settings.document_warning_mb:
            report_size_warning(
                "Large multi-page PDF generated",
                log=self.logger,
                estimatedSizeMB=total_mb,
                pages=page_count,
                thresholdMB=self.settings.document_warning_mb,
                recommendation="Consider exporting fewer pages or reducing resolution",
            )
        return total_mb
