"""
PDF Document Assembly

Page geometry (A4 in millimetres), the aspect-fit algorithm shared by the
single- and multi-page builders, and an in-memory document that is only
turned into PDF bytes once every page has been placed.
"""

from __future__ import annotations

import io
import logging
from typing import List, Optional, Tuple

from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from roadmap_export.core.models import DocumentPage, EncodedImage, Placement
from roadmap_export.utils.constants import A4_HEIGHT_MM, A4_WIDTH_MM
from roadmap_export.utils.error_handling import AssemblyError, convert_exceptions

logger = logging.getLogger(__name__)


def a4_page_size(landscape: bool = False) -> Tuple[float, float]:
    """A4 (width, height) in millimetres for the given orientation."""
    if landscape:
        return A4_HEIGHT_MM, A4_WIDTH_MM
    return A4_WIDTH_MM, A4_HEIGHT_MM


def fit_to_page(image_width: int, image_height: int, page_width: float, page_height: float) -> Placement:
    """
    Aspect-fit an image inside a page and center it on both axes.

    Fit by width first; if that overflows the page height, re-fit by height.

    Examples:
        >>> fit_to_page(400, 200, 297.0, 210.0)
        Placement(x=0.0, y=30.75, width=297.0, height=148.5)
    """
    if image_width <= 0 or image_height <= 0:
        raise AssemblyError(f"Cannot place an image of size {image_width}x{image_height}")

    aspect = image_height / image_width
    img_width = page_width
    img_height = page_width * aspect

    if img_height > page_height:
        img_height = page_height
        img_width = page_height / aspect

    x = (page_width - img_width) / 2
    y = (page_height - img_height) / 2
    return Placement(x=x, y=y, width=img_width, height=img_height)


class PdfDocument:
    """
    An ordered sequence of pages awaiting rendering.

    Nothing is written anywhere until ``render()``; a document abandoned
    mid-assembly simply goes out of scope.
    """

    def __init__(self, landscape: bool = False, title: Optional[str] = None, subject: Optional[str] = None):
        self.landscape = landscape
        self.page_width, self.page_height = a4_page_size(landscape)
        self.title = title
        self.subject = subject
        self.pages: List[DocumentPage] = []
        self.estimated_size_mb = 0.0

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def add_image_page(self, image: EncodedImage) -> DocumentPage:
        """Fit ``image`` onto a new page and append it."""
        placement = fit_to_page(image.width, image.height, self.page_width, self.page_height)
        page = DocumentPage(image=image, placement=placement)
        self.pages.append(page)
        logger.debug(
            f"Adding page {self.page_count} to PDF: x={placement.x:.2f} y={placement.y:.2f} "
            f"imgWidth={placement.width:.2f} imgHeight={placement.height:.2f}"
        )
        return page

    @convert_exceptions(AssemblyError, error_context="PDF rendering failed")
    def render(self) -> bytes:
        """Render all pages to PDF bytes with reportlab."""
        if not self.pages:
            raise AssemblyError("Document has no pages")

        buf = io.BytesIO()
        page_size = (self.page_width * mm, self.page_height * mm)
        c = canvas.Canvas(buf, pagesize=page_size)
        if self.title:
            c.setTitle(self.title)
        if self.subject:
            c.setSubject(self.subject)

        for page in self.pages:
            # reportlab's origin is bottom-left; placements are top-left based
            bottom = self.page_height - page.y - page.height
            c.drawImage(
                ImageReader(io.BytesIO(page.image.data)),
                page.x * mm,
                bottom * mm,
                width=page.width * mm,
                height=page.height * mm,
            )
            c.showPage()

        c.save()
        return buf.getvalue()
