"""
Renderable Surfaces

A surface is an already-rendered visual tree that the export engine can
measure, search for page sub-surfaces, and rasterize. The engine only
depends on the ``Surface`` protocol; ``PlaywrightSurface`` is the
headless-Chromium implementation used by the CLI and the HTTP API.
"""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, runtime_checkable

from PIL import Image

from roadmap_export.core.models import CaptureConfig, SurfaceMetrics, SurfaceNode
from roadmap_export.utils.constants import MULTI_PAGE_HEIGHT_PX, MULTI_PAGE_WIDTH_PX, SCALE_SMALL

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Locator, Page, Playwright

logger = logging.getLogger(__name__)

IGNORE_ATTRIBUTE = "data-export-ignore"
ROOT_SELECTOR = "[data-export-root]"


@runtime_checkable
class Surface(Protocol):
    """
    What the export engine needs from a rendered view.

    ``rasterize`` may return less than the capture box (never more) when
    the surface is smaller than the box. Rasters are taken to be at one
    image pixel per CSS pixel unless the surface has a ``device_scale``
    attribute.
    """

    name: str

    async def measure(self) -> SurfaceMetrics:
        ...

    async def find_pages(self, selector: str) -> List["Surface"]:
        ...

    async def rasterize(self, config: CaptureConfig) -> Image.Image:
        ...


_MEASURE_JS = """
el => ({
    width: el.offsetWidth,
    height: el.offsetHeight,
    scrollWidth: el.scrollWidth,
    scrollHeight: el.scrollHeight
})
"""

_LIST_NODES_JS = """
() => Array.from(document.querySelectorAll('*')).map((n, i) => ({
    index: i,
    tag: n.tagName,
    classes: Array.from(n.classList || []),
    id: n.id || null
}))
"""

_MARK_NODES_JS = """
([indices, attr]) => {
    const all = document.querySelectorAll('*');
    indices.forEach(i => { if (all[i]) all[i].setAttribute(attr, ''); });
}
"""

_UNMARK_NODES_JS = """
attr => document.querySelectorAll('[' + attr + ']').forEach(n => n.removeAttribute(attr))
"""

_BOX_JS = """
el => {
    const r = el.getBoundingClientRect();
    const doc = document.documentElement;
    return {
        x: r.left + window.scrollX,
        y: r.top + window.scrollY,
        width: Math.max(r.width, el.scrollWidth),
        height: Math.max(r.height, el.scrollHeight),
        docWidth: Math.max(doc.scrollWidth, document.body ? document.body.scrollWidth : 0),
        docHeight: Math.max(doc.scrollHeight, document.body ? document.body.scrollHeight : 0)
    };
}
"""

_READY_JS = "() => document.fonts ? document.fonts.ready.then(() => true) : true"


def clip_to_element(box: Dict[str, float], config: CaptureConfig) -> Dict[str, float]:
    """
    Screenshot clip for a capture box anchored at the element's top-left corner.

    The clip never extends past the element or the document, so sibling
    content is never captured. At least one CSS pixel is always kept.

    Examples:
        >>> box = {"x": 0, "y": 2000, "width": 1400, "height": 600, "docWidth": 1400, "docHeight": 2600}
        >>> clip_to_element(box, CaptureConfig(scale=1.5, width=1400, height=1000))
        {'x': 0.0, 'y': 2000.0, 'width': 1400.0, 'height': 600.0}
    """
    x = float(box["x"])
    y = float(box["y"])
    width = min(float(config.width), float(box["width"]), float(box["docWidth"]) - x)
    height = min(float(config.height), float(box["height"]), float(box["docHeight"]) - y)
    return {"x": x, "y": y, "width": max(width, 1.0), "height": max(height, 1.0)}


class PlaywrightSurface:
    """
    Surface backed by a Playwright locator on a rendered page.

    ``device_scale`` is the page's device scale factor; rasters come back
    at that density and ElementCapture rescales them uniformly.
    """

    def __init__(self, page: "Page", locator: "Locator", name: str = "surface", device_scale: float = 1.0):
        self.page = page
        self.locator = locator
        self.name = name
        self.device_scale = device_scale

    async def measure(self) -> SurfaceMetrics:
        dims = await self.locator.evaluate(_MEASURE_JS)
        return SurfaceMetrics(
            width=int(dims["width"]),
            height=int(dims["height"]),
            scroll_width=int(dims["scrollWidth"]),
            scroll_height=int(dims["scrollHeight"]),
        )

    async def find_pages(self, selector: str) -> List["PlaywrightSurface"]:
        """Page containers below this surface, in document order."""
        matches = self.locator.locator(selector)
        count = await matches.count()
        return [
            PlaywrightSurface(self.page, matches.nth(i), name=f"{self.name}/page-{i + 1}",
                              device_scale=self.device_scale)
            for i in range(count)
        ]

    async def wait_until_ready(self) -> None:
        """Readiness signal: network idle and web fonts loaded."""
        await self.page.wait_for_load_state("networkidle")
        await self.page.evaluate(_READY_JS)

    async def rasterize(self, config: CaptureConfig) -> Image.Image:
        """
        Screenshot this surface, at most ``config.width`` x ``config.height``
        CSS pixels from its top-left corner.

        The clip stops at the element's own bounds, so the raster can be
        smaller than the capture box; ElementCapture pads it with the
        background colour. Nodes matching the ignore predicate are hidden
        for the duration of the screenshot only.
        """
        nodes: List[Dict[str, Any]] = await self.page.evaluate(_LIST_NODES_JS)
        ignored = [
            n["index"] for n in nodes
            if config.ignore_predicate(
                SurfaceNode(tag=n["tag"], classes=frozenset(n["classes"]), element_id=n["id"])
            )
        ]
        logger.debug(f"{self.name}: hiding {len(ignored)} of {len(nodes)} nodes for capture")

        box = await self.locator.evaluate(_BOX_JS)
        clip = clip_to_element(box, config)
        logger.debug(
            f"{self.name}: clip {clip['width']:.0f}x{clip['height']:.0f} at "
            f"({clip['x']:.0f}, {clip['y']:.0f}) for capture box {config.width}x{config.height}"
        )

        await self.page.evaluate(_MARK_NODES_JS, [ignored, IGNORE_ATTRIBUTE])
        try:
            png = await self.page.screenshot(
                clip=clip,
                full_page=True,
                type="png",
                scale="device",
                omit_background=False,
                style=f"[{IGNORE_ATTRIBUTE}] {{ visibility: hidden !important; }}",
            )
        finally:
            await self.page.evaluate(_UNMARK_NODES_JS, IGNORE_ATTRIBUTE)

        image = Image.open(io.BytesIO(png))
        image.load()
        return image


class PlaywrightRenderer:
    """
    Headless Chromium renderer producing PlaywrightSurfaces from HTML.

    The browser context uses the highest capture scale as its device scale
    factor, so captures are downsampled rather than upscaled.
    """

    def __init__(
        self,
        viewport_width: int = MULTI_PAGE_WIDTH_PX,
        viewport_height: int = MULTI_PAGE_HEIGHT_PX,
        device_scale_factor: float = SCALE_SMALL,
        headless: bool = True,
    ):
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.device_scale_factor = device_scale_factor
        self.headless = headless
        self.playwright: Optional["Playwright"] = None
        self.browser: Optional["Browser"] = None
        self.context: Optional["BrowserContext"] = None

    async def start(self) -> "PlaywrightRenderer":
        from playwright.async_api import async_playwright

        self.playwright = await async_playwright().start()
        self.browser = await self.playwright.chromium.launch(headless=self.headless)
        self.context = await self.browser.new_context(
            viewport={"width": self.viewport_width, "height": self.viewport_height},
            device_scale_factor=self.device_scale_factor,
        )
        logger.info(
            f"Chromium renderer started (viewport {self.viewport_width}x{self.viewport_height}, "
            f"device scale {self.device_scale_factor})"
        )
        return self

    async def render(self, html: str, root_selector: str = ROOT_SELECTOR, name: str = "surface") -> PlaywrightSurface:
        """Render HTML into a new page and return its root surface (``body`` if no root marker)."""
        if not self.context:
            await self.start()
        page = await self.context.new_page()
        await page.set_content(html, wait_until="networkidle")
        root = page.locator(root_selector)
        if await root.count() == 0:
            logger.debug(f"No {root_selector} element in rendered HTML, using <body>")
            root = page.locator("body")
        return PlaywrightSurface(page, root.first, name=name, device_scale=self.device_scale_factor)

    async def close(self) -> None:
        if self.context:
            await self.context.close()
        if self.browser:
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()
        self.context = self.browser = self.playwright = None

    async def __aenter__(self):
        return await self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
