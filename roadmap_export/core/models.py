"""
Export Engine Data Models

Defines the values that flow through one export invocation: the options
that route it, the capture configuration, the raster and encoded images,
and the page placements of the assembled document.

None of these outlive the export call that created them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, FrozenSet, List, Optional

from PIL import Image

from roadmap_export.utils.constants import (
    DEFAULT_BACKGROUND_COLOR,
    IGNORED_NODE_CLASSES,
    IGNORED_NODE_TAGS,
)


class ExportMode(str, Enum):
    """Which roadmap view is being exported."""
    OVERVIEW = 'overview'
    DETAILED = 'detailed'
    TRACK = 'track'

    def __str__(self) -> str:
        return self.value


class ExportFormat(str, Enum):
    """
    Output artifact format.

    - pdf: A4 document, one lossy JPEG per page
    - png: single lossless image
    """
    PDF = 'pdf'
    PNG = 'png'

    def __str__(self) -> str:
        return self.value


class ExportState(str, Enum):
    """Orchestrator lifecycle states."""
    IDLE = 'idle'
    OVERLAY_SHOWN = 'overlay_shown'
    CAPTURING = 'capturing'
    OPTIMIZING = 'optimizing'
    ASSEMBLING = 'assembling'
    SAVING = 'saving'
    ERROR = 'error'
    OVERLAY_REMOVED = 'overlay_removed'

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ExportOptions:
    """
    Options for one export invocation. Immutable; fully determines routing.

    Attributes:
        mode: View being exported
        format: Output format
        title: Document title (also written to PDF metadata)
        subtitle: Optional subtitle
        team_filter: Team name for track exports
        include_details: Whether the view includes feature details
        landscape: A4 orientation
    """
    mode: ExportMode
    format: ExportFormat
    title: str
    subtitle: Optional[str] = None
    team_filter: Optional[str] = None
    include_details: bool = False
    landscape: bool = False

    def __post_init__(self):
        """Accept plain strings for mode and format."""
        object.__setattr__(self, "mode", ExportMode(self.mode))
        object.__setattr__(self, "format", ExportFormat(self.format))


@dataclass(frozen=True)
class SurfaceNode:
    """Description of one node of a surface, as seen by an ignore predicate."""
    tag: str
    classes: FrozenSet[str] = frozenset()
    element_id: Optional[str] = None

    def has_class(self, name: str) -> bool:
        return name in self.classes


def default_ignore_predicate(node: SurfaceNode) -> bool:
    """Exclude fixed/absolutely-positioned overlays and embedded frames."""
    if node.tag.upper() in IGNORED_NODE_TAGS:
        return True
    return any(node.has_class(name) for name in IGNORED_NODE_CLASSES)


@dataclass(frozen=True)
class SurfaceMetrics:
    """Rendered dimensions of a surface in CSS pixels."""
    width: int
    height: int
    scroll_width: int = 0
    scroll_height: int = 0

    @property
    def pixel_count(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class CaptureConfig:
    """
    Configuration for rasterizing one surface.

    width/height describe the capture box in CSS pixels, anchored at the
    surface's top-left corner; the raster is width*scale by height*scale.
    """
    scale: float
    width: int
    height: int
    use_cross_origin: bool = True
    background_color: str = DEFAULT_BACKGROUND_COLOR
    ignore_predicate: Callable[[SurfaceNode], bool] = default_ignore_predicate

    @property
    def output_size(self):
        return (max(1, round(self.width * self.scale)), max(1, round(self.height * self.scale)))

    @property
    def estimated_pixels(self) -> int:
        out_w, out_h = self.output_size
        return out_w * out_h


@dataclass
class RasterBuffer:
    """An in-memory pixel grid produced by ElementCapture."""
    image: Image.Image
    scale: float

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def pixel_count(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class EncodedImage:
    """A compressed image payload; quality is None for lossless formats."""
    data: bytes
    format: str
    width: int
    height: int
    quality: Optional[float] = None

    @property
    def byte_length(self) -> int:
        return len(self.data)

    @property
    def size_mb(self) -> float:
        return round(self.byte_length / 1024 / 1024, 2)


@dataclass(frozen=True)
class Placement:
    """Image rectangle on a page, in millimetres from the page's top-left corner."""
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class DocumentPage:
    image: EncodedImage
    placement: Placement

    @property
    def x(self) -> float:
        return self.placement.x

    @property
    def y(self) -> float:
        return self.placement.y

    @property
    def width(self) -> float:
        return self.placement.width

    @property
    def height(self) -> float:
        return self.placement.height


@dataclass
class ExportResult:
    """Outcome of a successful export."""
    export_id: str
    filename: str
    location: str
    format: ExportFormat
    page_count: int
    byte_length: int
    estimated_size_mb: float
    states: List[ExportState] = field(default_factory=list)
