"""
API Routes for Roadmap Export

Renders submitted roadmap markup in headless Chromium and returns the
exported PDF or PNG as an attachment.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from typing import AsyncIterator
import logging

from roadmap_export.api.models.export import ExportRequest
from roadmap_export.config.loader import load_export_settings
from roadmap_export.core.models import ExportFormat
from roadmap_export.core.orchestrator import ExportOrchestrator, build_options
from roadmap_export.core.overlay import InMemoryOverlayHost
from roadmap_export.core.sinks import MemorySink
from roadmap_export.core.surface import PlaywrightRenderer
from roadmap_export.core.view import create_export_view
from roadmap_export.utils.error_handling import ExportError, user_message

logger = logging.getLogger(__name__)

router = APIRouter()

MEDIA_TYPES = {
    ExportFormat.PDF: "application/pdf",
    ExportFormat.PNG: "image/png",
}


async def get_renderer() -> AsyncIterator[PlaywrightRenderer]:
    """
    One headless browser per request, closed afterwards.

    The browser is launched on first render, inside the request handler,
    so launch failures are reported like any other export failure.
    """
    renderer = PlaywrightRenderer()
    try:
        yield renderer
    finally:
        await renderer.close()


@router.post("/api/export")
async def export_roadmap(request: ExportRequest, renderer=Depends(get_renderer)):
    """
    Export submitted roadmap markup.

    Returns:
        The artifact bytes with a Content-Disposition attachment header
    """
    try:
        options = build_options(request.mode, request.format, request.title, request.team, request.subtitle)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    html = create_export_view(options, request.html) if request.wrap else request.html
    sink = MemorySink()
    orchestrator = ExportOrchestrator(
        sink=sink,
        overlay_host=InMemoryOverlayHost(),
        notifier=logger.warning,
        settings=load_export_settings(),
    )

    logger.info(f"Received export request: mode={options.mode} format={options.format}")
    try:
        surface = await renderer.render(html, name=f"{options.mode}-view")
        result = await orchestrator.export(surface, options)
    except ExportError as e:
        # Already logged and reported by the orchestrator
        raise HTTPException(status_code=500, detail=user_message(e))
    except Exception as e:
        logger.error(f"Export request failed: {type(e).__name__}: {e} (exportMode={options.mode} format={options.format})")
        raise HTTPException(status_code=500, detail=user_message(e))

    return Response(
        content=sink.artifacts[result.filename],
        media_type=MEDIA_TYPES[result.format],
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Export-Id": result.export_id,
            "X-Export-Pages": str(result.page_count),
        },
    )


@router.get("/health")
async def health():
    return {"ok": True}
