"""
In-memory stand-ins for rendered surfaces, so the export pipeline can be
exercised without launching a browser.
"""

from typing import List, Optional, Tuple

from PIL import Image, ImageDraw

from roadmap_export.core.models import CaptureConfig, SurfaceMetrics


class FakeSurface:
    """
    Surface that paints a solid block of colour.

    Records every CaptureConfig it is rasterized with, and appends its name
    to ``capture_log`` (shared between sibling pages) to expose ordering.
    """

    def __init__(
        self,
        width: int,
        height: int,
        name: str = "surface",
        pages: Optional[List["FakeSurface"]] = None,
        color: Tuple[int, int, int, int] = (40, 80, 160, 255),
        error: Optional[Exception] = None,
        capture_log: Optional[List[str]] = None,
    ):
        self.width = width
        self.height = height
        self.name = name
        self.pages = pages or []
        self.color = color
        self.error = error
        self.capture_log = capture_log if capture_log is not None else []
        self.configs: List[CaptureConfig] = []
        self.selectors: List[str] = []

    async def measure(self) -> SurfaceMetrics:
        return SurfaceMetrics(width=self.width, height=self.height,
                              scroll_width=self.width, scroll_height=self.height)

    async def find_pages(self, selector: str) -> List["FakeSurface"]:
        self.selectors.append(selector)
        return list(self.pages)

    async def rasterize(self, config: CaptureConfig) -> Image.Image:
        if self.error is not None:
            raise self.error
        self.configs.append(config)
        self.capture_log.append(self.name)
        image = Image.new("RGBA", (config.width, config.height), (255, 255, 255, 255))
        draw = ImageDraw.Draw(image)
        draw.rectangle((10, 10, config.width // 2, config.height // 2), fill=self.color)
        return image


class FakeRenderer:
    """Stands in for PlaywrightRenderer in API tests."""

    def __init__(self, surface: FakeSurface, error: Optional[Exception] = None):
        self.surface = surface
        self.error = error
        self.rendered_html: List[str] = []

    async def render(self, html: str, root_selector: str = "[data-export-root]", name: str = "surface"):
        if self.error is not None:
            raise self.error
        self.rendered_html.append(html)
        return self.surface


def make_container(width: int = 1400, height: int = 1000, page_count: int = 0, **kwargs) -> FakeSurface:
    """Container surface with ``page_count`` page sub-surfaces sharing one capture log."""
    log: List[str] = []
    pages = [
        FakeSurface(1400, 1000, name=f"page-{i + 1}", capture_log=log,
                    color=(20 * (i + 1), 60, 120, 255))
        for i in range(page_count)
    ]
    return FakeSurface(width, height, name="container", pages=pages, capture_log=log, **kwargs)


