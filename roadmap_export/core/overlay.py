"""
Progress Overlay

The "please wait" overlay is the only shared mutable resource of an
export. Each invocation owns its overlay through a handle keyed by the
export id, and ``overlay_scope`` guarantees removal on every exit path.
"""

from __future__ import annotations

import html
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, AsyncIterator, Dict, Optional, Protocol

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

OVERLAY_ATTRIBUTE = "data-export-overlay"
OVERLAY_CLASSES = "fixed inset-0 bg-black bg-opacity-50 flex items-center justify-center z-50"


class OverlayHost(Protocol):
    """Where overlays are attached."""

    async def show(self, overlay_id: str, message: str) -> None:
        ...

    async def remove(self, overlay_id: str) -> bool:
        """Remove the overlay; returns False if it was already gone."""
        ...

    async def count(self) -> int:
        ...


class InMemoryOverlayHost:
    """Overlay host with no UI, for headless callers and tests."""

    def __init__(self):
        self.active: Dict[str, str] = {}

    async def show(self, overlay_id: str, message: str) -> None:
        self.active[overlay_id] = message

    async def remove(self, overlay_id: str) -> bool:
        return self.active.pop(overlay_id, None) is not None

    async def count(self) -> int:
        return len(self.active)


class PageOverlayHost:
    """Injects a fixed, full-screen overlay element into a Playwright page."""

    def __init__(self, page: "Page"):
        self.page = page

    async def show(self, overlay_id: str, message: str) -> None:
        markup = (
            '<div class="bg-white rounded-lg p-6 text-center">'
            '<div class="animate-spin rounded-full h-8 w-8 border-b-2 border-blue-600 mx-auto mb-4"></div>'
            f'<p class="text-gray-700">{html.escape(message)}</p>'
            '</div>'
        )
        await self.page.evaluate(
            """([id, attr, classes, markup]) => {
                const el = document.createElement('div');
                el.className = classes;
                el.setAttribute(attr, id);
                el.style.position = 'fixed';
                el.innerHTML = markup;
                document.body.appendChild(el);
            }""",
            [overlay_id, OVERLAY_ATTRIBUTE, OVERLAY_CLASSES, markup],
        )

    async def remove(self, overlay_id: str) -> bool:
        return await self.page.evaluate(
            """([id, attr]) => {
                const el = document.querySelector('[' + attr + '="' + id + '"]');
                if (!el) return false;
                el.remove();
                return true;
            }""",
            [overlay_id, OVERLAY_ATTRIBUTE],
        )

    async def count(self) -> int:
        return await self.page.evaluate(
            "attr => document.querySelectorAll('[' + attr + ']').length",
            OVERLAY_ATTRIBUTE,
        )


@dataclass(frozen=True)
class OverlayHandle:
    overlay_id: str
    message: str


@asynccontextmanager
async def overlay_scope(
    host: OverlayHost,
    overlay_id: str,
    message: str,
    log: Optional[logging.Logger] = None,
) -> AsyncIterator[OverlayHandle]:
    """
    Show an overlay for the duration of the block and always remove it.

    A removal failure is logged and never replaces the block's own exception.
    """
    log = log or logger
    await host.show(overlay_id, message)
    log.debug(f"Overlay {overlay_id} shown: {message}")
    try:
        yield OverlayHandle(overlay_id=overlay_id, message=message)
    finally:
        try:
            removed = await host.remove(overlay_id)
            if not removed:
                log.debug(f"Overlay {overlay_id} was already removed")
        except Exception as e:
            log.warning(f"Failed to remove overlay {overlay_id}: {type(e).__name__}: {e}")
