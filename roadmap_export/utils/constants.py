"""
Export Engine Constants

This module contains all export-wide constants to avoid magic numbers
and improve maintainability. Values here are the defaults behind
config/export.yml.
"""

# Capture scale policy (pixel count thresholds are exclusive)
SCALE_LARGE_PIXEL_THRESHOLD = 1_000_000
SCALE_MEDIUM_PIXEL_THRESHOLD = 500_000
SCALE_LARGE = 1.0
SCALE_MEDIUM = 1.2
SCALE_SMALL = 1.5

# Capture defaults
DEFAULT_BACKGROUND_COLOR = "#ffffff"
DEFAULT_SETTLE_DELAY_MS = 300
DEFAULT_READY_TIMEOUT_SECONDS = 10.0
IGNORED_NODE_CLASSES = ("fixed", "absolute")
IGNORED_NODE_TAGS = ("IFRAME",)

# JPEG quality policy
DEFAULT_JPEG_QUALITY = 0.85
REDUCED_JPEG_QUALITY = 0.70
MAX_IMAGE_BYTES = 5_000_000

# Size estimation (JPEG @ 85% quality is roughly 3 bytes per pixel)
ESTIMATED_BYTES_PER_PIXEL = 3
BYTES_PER_MB = 1024 * 1024
PAGE_SIZE_WARNING_MB = 10.0
DOCUMENT_SIZE_WARNING_MB = 20.0

# A4 page geometry (millimetres, portrait)
A4_WIDTH_MM = 210.0
A4_HEIGHT_MM = 297.0

# Multi-page capture
MULTI_PAGE_SCALE = 1.5
MULTI_PAGE_WIDTH_PX = 1400
MULTI_PAGE_HEIGHT_PX = 1000
PAGE_CONTAINER_SELECTOR = ".export-page, #overview-page-1, #overview-page-2, #overview-page-3"

# Export view layout (CSS pixels)
VIEW_WIDTH_LANDSCAPE_PX = 1400
VIEW_WIDTH_PORTRAIT_PX = 800
VIEW_MIN_HEIGHT_PX = 600

# Output naming
FILENAME_PREFIX = "roadmap"
DEFAULT_OUTPUT_DIR = "exports"
PDF_EXTENSION = "pdf"
PNG_EXTENSION = "png"

# Export id length (shortuuid alphabet)
EXPORT_ID_LENGTH = 12
