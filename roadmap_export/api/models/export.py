"""
Pydantic Models for Export API

Request model for the export endpoint.
"""

from pydantic import BaseModel, Field
from typing import Optional

from roadmap_export.core.models import ExportFormat, ExportMode


class ExportRequest(BaseModel):
    """Request model for roadmap export."""
    html: str = Field(..., min_length=1, description="Rendered roadmap view markup")
    mode: ExportMode = ExportMode.OVERVIEW
    format: ExportFormat = ExportFormat.PDF
    title: str = "Roadmap"
    subtitle: Optional[str] = None
    team: Optional[str] = None
    wrap: bool = Field(True, description="Wrap html in the standard export container with a header")
