"""
Single-Page Document Builder

Embeds one captured image into an A4 document with aspect-preserving fit
and centering. Before encoding, the raw pixels are scanned for content;
a blank capture is reported in the logs but never changes the output.
"""

import logging
from typing import Optional

import numpy as np

from roadmap_export.core.document import PdfDocument
from roadmap_export.core.models import EncodedImage, ExportOptions, ExportState, RasterBuffer
from roadmap_export.core.optimizer import ImageOptimizer, SizeEstimator
from roadmap_export.core.tracker import ExportTracker

logger = logging.getLogger(__name__)


def has_visible_content(buffer: RasterBuffer) -> bool:
    """True if at least one pixel is non-transparent and not pure white."""
    pixels = np.asarray(buffer.image.convert("RGBA"))
    opaque = pixels[..., 3] > 0
    non_white = np.any(pixels[..., :3] != 255, axis=-1)
    return bool(np.any(opaque & non_white))


class SinglePageDocumentBuilder:
    """Builds a document with exactly one page."""

    def __init__(
        self,
        optimizer: Optional[ImageOptimizer] = None,
        estimator: Optional[SizeEstimator] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.optimizer = optimizer or ImageOptimizer()
        self.estimator = estimator or SizeEstimator()
        self.logger = logger or logging.getLogger(__name__)

    def inspect(self, buffer: RasterBuffer) -> bool:
        """Blank-capture check, diagnostic only."""
        has_content = has_visible_content(buffer)
        self.logger.debug(f"Canvas content validation: hasContent={has_content}")
        if not has_content:
            self.logger.warning(
                f"Captured image {buffer.width}x{buffer.height} appears blank; exporting it anyway"
            )
        return has_content

    def build(self, image: EncodedImage, options: ExportOptions) -> PdfDocument:
        """Place ``image`` on a single A4 page oriented per ``options.landscape``."""
        document = PdfDocument(landscape=options.landscape, title=options.title, subject=options.subtitle)
        document.add_image_page(image)
        return document

    def build_from_buffer(
        self,
        buffer: RasterBuffer,
        options: ExportOptions,
        tracker: Optional[ExportTracker] = None,
    ) -> PdfDocument:
        """Inspect, optimize and place a captured raster."""
        self.inspect(buffer)

        if tracker:
            tracker.enter(ExportState.OPTIMIZING)
        image = self.optimizer.optimize(buffer)
        estimated = self.estimator.check_page(buffer.width, buffer.height)
        self.logger.debug(
            f"Image data generated: dataSizeMB={image.size_mb} quality={image.quality} "
            f"estimatedPDFSizeMB={estimated}"
        )

        if tracker:
            tracker.enter(ExportState.ASSEMBLING)
        document = self.build(image, options)
        document.estimated_size_mb = estimated
        return document
