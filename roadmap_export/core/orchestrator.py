"""
Export Orchestrator

Public entry point of the export engine. Routes an export by
(mode, format), holds the progress overlay for exactly the lifetime of
the invocation, and funnels every failure through one handler that
removes the overlay, logs the failure with its mode/format context,
notifies the user and re-raises.

Routing:
- overview + pdf  -> MultiPageDocumentBuilder (single-page fallback inside)
- any other + pdf -> SinglePageDocumentBuilder
- any + png       -> RasterExporter
"""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime, timezone
from typing import Callable, Optional

from roadmap_export.config.loader import ExportSettings
from roadmap_export.core.capture import ElementCapture, ReadinessSignal
from roadmap_export.core.document import PdfDocument
from roadmap_export.core.models import (
    ExportFormat,
    ExportMode,
    ExportOptions,
    ExportResult,
    ExportState,
)
from roadmap_export.core.multi_page import MultiPageDocumentBuilder
from roadmap_export.core.optimizer import ImageOptimizer, SizeEstimator
from roadmap_export.core.overlay import InMemoryOverlayHost, OverlayHost, overlay_scope
from roadmap_export.core.raster import RasterExporter
from roadmap_export.core.single_page import SinglePageDocumentBuilder
from roadmap_export.core.sinks import ArtifactSink, FileSystemSink
from roadmap_export.core.surface import Surface
from roadmap_export.core.tracker import ExportTracker
from roadmap_export.utils.constants import PDF_EXTENSION, PNG_EXTENSION
from roadmap_export.utils.error_handling import SaveError, convert_exceptions, user_message
from roadmap_export.utils.export_id import build_base_filename, generate_export_id

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]


def stderr_notifier(message: str) -> None:
    print(message, file=sys.stderr)


def build_options(
    mode: ExportMode,
    format: ExportFormat = ExportFormat.PDF,
    title: str = "",
    team_name: Optional[str] = None,
    subtitle: Optional[str] = None,
) -> ExportOptions:
    """
    Preset options for each view: always landscape; details for detailed
    and track views; track exports are titled and filtered by team.

    Raises:
        ValueError: For a track export without a team
    """
    mode = ExportMode(mode)
    if mode == ExportMode.TRACK:
        if not team_name:
            raise ValueError("Track export requires a team name")
        return ExportOptions(
            mode=mode,
            format=format,
            title=f"{title} - {team_name} Track",
            subtitle=subtitle,
            team_filter=team_name,
            landscape=True,
            include_details=True,
        )
    return ExportOptions(
        mode=mode,
        format=format,
        title=title,
        subtitle=subtitle,
        landscape=True,
        include_details=mode == ExportMode.DETAILED,
    )


class ExportOrchestrator:
    """
    Runs exports end to end.

    Every collaborator is injectable; defaults are built from ``settings``.
    When ``settings.serialize_exports`` is set, exports through the same
    orchestrator run one at a time. Each event loop gets its own lock, so
    an orchestrator can be reused across ``asyncio.run`` calls.
    """

    def __init__(
        self,
        sink: Optional[ArtifactSink] = None,
        overlay_host: Optional[OverlayHost] = None,
        notifier: Optional[Notifier] = None,
        settings: Optional[ExportSettings] = None,
        capture: Optional[ElementCapture] = None,
        optimizer: Optional[ImageOptimizer] = None,
        estimator: Optional[SizeEstimator] = None,
        single_page: Optional[SinglePageDocumentBuilder] = None,
        multi_page: Optional[MultiPageDocumentBuilder] = None,
        raster: Optional[RasterExporter] = None,
        logger: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings or ExportSettings()
        self.logger = logger or logging.getLogger(__name__)
        self.sink = sink or FileSystemSink(self.settings.output_dir)
        self.overlay_host = overlay_host or InMemoryOverlayHost()
        self.notifier = notifier or stderr_notifier
        self.capture = capture or ElementCapture(self.settings)
        self.optimizer = optimizer or ImageOptimizer(self.settings)
        self.estimator = estimator or SizeEstimator(self.settings)
        self.single_page = single_page or SinglePageDocumentBuilder(self.optimizer, self.estimator)
        self.multi_page = multi_page or MultiPageDocumentBuilder(
            capture=self.capture,
            optimizer=self.optimizer,
            estimator=self.estimator,
            single_page=self.single_page,
            settings=self.settings,
        )
        self.raster = raster or RasterExporter(self.sink)
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    async def export(
        self,
        surface: Surface,
        options: ExportOptions,
        ready: Optional[ReadinessSignal] = None,
        export_id: Optional[str] = None,
    ) -> ExportResult:
        """
        Export ``surface`` according to ``options``.

        Args:
            surface: Already-rendered surface to capture
            options: Export options; fully determine routing
            ready: Optional readiness signal awaited before capturing
            export_id: Id tagging this invocation (generated when omitted)

        Returns:
            ExportResult describing the saved artifact

        Raises:
            ExportError (or any underlying error) after the overlay has been
            removed and the user has been notified
        """
        if not self.settings.serialize_exports:
            return await self._run(surface, options, ready, export_id)
        async with self._export_lock():
            return await self._run(surface, options, ready, export_id)

    async def export_overview(
        self,
        surface: Surface,
        title: str,
        format: ExportFormat = ExportFormat.PDF,
        ready: Optional[ReadinessSignal] = None,
    ) -> ExportResult:
        return await self.export(surface, build_options(ExportMode.OVERVIEW, format, title), ready)

    async def export_detailed(
        self,
        surface: Surface,
        title: str,
        format: ExportFormat = ExportFormat.PDF,
        ready: Optional[ReadinessSignal] = None,
    ) -> ExportResult:
        return await self.export(surface, build_options(ExportMode.DETAILED, format, title), ready)

    async def export_track(
        self,
        surface: Surface,
        team_name: str,
        title: str,
        format: ExportFormat = ExportFormat.PDF,
        ready: Optional[ReadinessSignal] = None,
    ) -> ExportResult:
        return await self.export(surface, build_options(ExportMode.TRACK, format, title, team_name), ready)

    def _export_lock(self) -> asyncio.Lock:
        """The serialization lock for the running event loop."""
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    @staticmethod
    def is_multi_page(options: ExportOptions) -> bool:
        """The overview is inherently multi-page when exported as PDF."""
        return options.mode == ExportMode.OVERVIEW and options.format == ExportFormat.PDF

    async def _run(
        self,
        surface: Surface,
        options: ExportOptions,
        ready: Optional[ReadinessSignal],
        export_id: Optional[str] = None,
    ) -> ExportResult:
        export_id = export_id or generate_export_id()
        tracker = ExportTracker(export_id, self.logger)
        self.logger.info(
            f"Starting export {export_id}: mode={options.mode} format={options.format} "
            f"landscape={options.landscape} title={options.title!r}"
        )
        if self.is_multi_page(options):
            message = "Generating Multi-Page PDF..."
        else:
            message = f"Generating {options.format.value.upper()}..."

        try:
            async with overlay_scope(self.overlay_host, export_id, message, self.logger):
                tracker.enter(ExportState.OVERLAY_SHOWN)
                try:
                    result = await self._dispatch(surface, options, ready, tracker, export_id)
                except Exception:
                    tracker.enter(ExportState.ERROR)
                    raise
        except Exception as error:
            tracker.enter(ExportState.ERROR)
            tracker.enter(ExportState.OVERLAY_REMOVED)
            tracker.enter(ExportState.IDLE)
            self.logger.error(
                f"Export {export_id} failed: {type(error).__name__}: {error} "
                f"(exportMode={options.mode} format={options.format} surface={surface.name})"
            )
            self._notify(user_message(error))
            raise

        tracker.enter(ExportState.IDLE)
        result.states = list(tracker.states)
        self.logger.info(
            f"Export completed successfully: exportMode={options.mode} format={options.format} "
            f"filename={result.filename} pages={result.page_count} "
            f"estimatedSizeMB={result.estimated_size_mb}"
        )
        return result

    async def _dispatch(
        self,
        surface: Surface,
        options: ExportOptions,
        ready: Optional[ReadinessSignal],
        tracker: ExportTracker,
        export_id: str,
    ) -> ExportResult:
        base_filename = build_base_filename(str(options.mode), self.clock(), self.settings.filename_prefix)

        if self.is_multi_page(options):
            document = await self.multi_page.build(surface, options, tracker, ready)
            return await self._save_document(document, base_filename, tracker, export_id)

        tracker.enter(ExportState.CAPTURING)
        buffer = await self.capture.capture(surface, ready=ready)

        if options.format == ExportFormat.PNG:
            tracker.enter(ExportState.OPTIMIZING)
            image = self.raster.encode(buffer)
            estimated = self.estimator.estimate_mb(buffer.width, buffer.height)
            del buffer
            tracker.enter(ExportState.SAVING)
            location = await self.raster.export(image, base_filename)
            return ExportResult(
                export_id=export_id,
                filename=f"{base_filename}.{PNG_EXTENSION}",
                location=location,
                format=ExportFormat.PNG,
                page_count=1,
                byte_length=image.byte_length,
                estimated_size_mb=estimated,
            )

        document = self.single_page.build_from_buffer(buffer, options, tracker)
        return await self._save_document(document, base_filename, tracker, export_id)

    async def _save_document(
        self,
        document: PdfDocument,
        base_filename: str,
        tracker: ExportTracker,
        export_id: str,
    ) -> ExportResult:
        tracker.enter(ExportState.ASSEMBLING)
        data = document.render()
        filename = f"{base_filename}.{PDF_EXTENSION}"
        tracker.enter(ExportState.SAVING)
        location = await self._save(filename, data)
        return ExportResult(
            export_id=export_id,
            filename=filename,
            location=location,
            format=ExportFormat.PDF,
            page_count=document.page_count,
            byte_length=len(data),
            estimated_size_mb=document.estimated_size_mb,
        )

    @convert_exceptions(SaveError, error_context="Artifact save failed")
    async def _save(self, filename: str, data: bytes) -> str:
        return await self.sink.save(filename, data)

    def _notify(self, message: str) -> None:
        try:
            self.notifier(message)
        except Exception as e:
            self.logger.warning(f"Failed to notify user of export failure: {e}")
