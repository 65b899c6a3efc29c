"""
Multi-Page Document Builder

Discovers page containers inside a surface and turns each into one PDF
page, in discovery order. Pages are captured strictly one after another
so that only a single RasterBuffer is alive at a time; each page uses a
fixed, reduced capture scale to keep the aggregate document size bounded.

A surface without page containers falls back to the single-page path.
"""

import logging
from typing import List, Optional

from roadmap_export.config.loader import ExportSettings
from roadmap_export.core.capture import ElementCapture, ReadinessSignal
from roadmap_export.core.document import PdfDocument
from roadmap_export.core.models import ExportOptions, ExportState
from roadmap_export.core.optimizer import ImageOptimizer, SizeEstimator
from roadmap_export.core.single_page import SinglePageDocumentBuilder
from roadmap_export.core.surface import Surface
from roadmap_export.core.tracker import ExportTracker
from roadmap_export.utils.error_handling import CaptureError, convert_exceptions

logger = logging.getLogger(__name__)


class MultiPageDocumentBuilder:

    def __init__(
        self,
        capture: Optional[ElementCapture] = None,
        optimizer: Optional[ImageOptimizer] = None,
        estimator: Optional[SizeEstimator] = None,
        single_page: Optional[SinglePageDocumentBuilder] = None,
        settings: Optional[ExportSettings] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.settings = settings or ExportSettings()
        self.logger = logger or logging.getLogger(__name__)
        self.capture = capture or ElementCapture(self.settings)
        self.optimizer = optimizer or ImageOptimizer(self.settings)
        self.estimator = estimator or SizeEstimator(self.settings)
        self.single_page = single_page or SinglePageDocumentBuilder(self.optimizer, self.estimator)

    async def build(
        self,
        container: Surface,
        options: ExportOptions,
        tracker: Optional[ExportTracker] = None,
        ready: Optional[ReadinessSignal] = None,
    ) -> PdfDocument:
        """
        Assemble one page per page container found in ``container``.

        Args:
            container: Surface holding the page containers
            options: Export options (orientation, title)
            tracker: Optional state tracker of the calling export
            ready: Readiness signal awaited before the first capture

        Returns:
            The assembled (not yet rendered) document
        """
        pages = await self._find_pages(container)
        self.logger.debug(f"Found page containers: pageCount={len(pages)}")

        if not pages:
            self.logger.info(f"{container.name}: no page containers found, falling back to single-page export")
            if tracker:
                tracker.enter(ExportState.CAPTURING)
            buffer = await self.capture.capture(container, ready=ready)
            return self.single_page.build_from_buffer(buffer, options, tracker)

        document = PdfDocument(landscape=options.landscape, title=options.title, subject=options.subtitle)
        overrides = {
            "scale": self.settings.multi_page_scale,
            "width": self.settings.multi_page_width,
            "height": self.settings.multi_page_height,
            "background_color": self.settings.background_color,
        }
        total_estimated = 0.0

        for index, page_surface in enumerate(pages):
            self.logger.debug(
                f"Processing page {index + 1}/{len(pages)} "
                f"({round((index + 1) / len(pages) * 100)}%)"
            )
            if tracker:
                tracker.enter(ExportState.CAPTURING)
            buffer = await self.capture.capture(
                page_surface,
                overrides=overrides,
                ready=ready if index == 0 else None,
            )

            page_estimate = self.estimator.estimate_mb(buffer.width, buffer.height)
            total_estimated += page_estimate
            self.logger.debug(
                f"Page canvas captured: pageIndex={index + 1} canvas={buffer.width}x{buffer.height} "
                f"estimatedPageSizeMB={page_estimate}"
            )

            if tracker:
                tracker.enter(ExportState.OPTIMIZING)
            image = self.optimizer.optimize(buffer)
            del buffer

            if tracker:
                tracker.enter(ExportState.ASSEMBLING)
            document.add_image_page(image)

        document.estimated_size_mb = self.estimator.check_document(total_estimated, document.page_count)
        self.logger.info(
            f"Multi-page PDF size estimation: totalPages={document.page_count} "
            f"estimatedTotalSizeMB={document.estimated_size_mb}"
        )
        return document

    @convert_exceptions(CaptureError, error_context="Page discovery failed")
    async def _find_pages(self, container: Surface) -> List[Surface]:
        return await container.find_pages(self.settings.page_selector)
