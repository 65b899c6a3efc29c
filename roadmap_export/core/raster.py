"""
Raster Exporter

Saves a single lossless PNG of a captured surface, with no document
wrapping or pagination. Used for every PNG export regardless of mode.
"""

import io
import logging
from typing import Optional

from roadmap_export.core.models import EncodedImage, RasterBuffer
from roadmap_export.core.sinks import ArtifactSink
from roadmap_export.utils.constants import PNG_EXTENSION
from roadmap_export.utils.error_handling import AssemblyError, SaveError, convert_exceptions

logger = logging.getLogger(__name__)


class RasterExporter:

    def __init__(self, sink: ArtifactSink, logger: Optional[logging.Logger] = None):
        self.sink = sink
        self.logger = logger or logging.getLogger(__name__)

    @convert_exceptions(AssemblyError, error_context="PNG encoding failed")
    def encode(self, buffer: RasterBuffer) -> EncodedImage:
        """Lossless PNG encoding of the full-quality capture."""
        buf = io.BytesIO()
        buffer.image.save(buf, format="PNG", optimize=True)
        return EncodedImage(data=buf.getvalue(), format="PNG", width=buffer.width, height=buffer.height)

    @convert_exceptions(SaveError, error_context="PNG save failed")
    async def export(self, image: EncodedImage, base_filename: str) -> str:
        """Save ``image`` as ``{base_filename}.png``; returns its location."""
        filename = f"{base_filename}.{PNG_EXTENSION}"
        self.logger.debug(f"Creating PNG: filename={filename} bytes={image.byte_length}")
        return await self.sink.save(filename, image.data)
