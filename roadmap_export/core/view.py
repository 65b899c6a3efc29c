"""
Export View

Builds the HTML container an export view is rendered into: fixed width
by orientation, a minimum height, and a header with the title, optional
subtitle and generation date. Text is autoescaped; ``body_html`` is the
caller's already-rendered view markup and is inserted as-is.
"""

from datetime import date
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from roadmap_export.core.models import ExportOptions
from roadmap_export.utils.constants import (
    VIEW_MIN_HEIGHT_PX,
    VIEW_WIDTH_LANDSCAPE_PX,
    VIEW_WIDTH_PORTRAIT_PX,
)

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


def create_export_view(options: ExportOptions, body_html: str = "", generated_on: Optional[date] = None) -> str:
    """Render the export container HTML for ``options``."""
    template = _env.get_template("export_view.html")
    return template.render(
        title=options.title,
        subtitle=options.subtitle,
        width=VIEW_WIDTH_LANDSCAPE_PX if options.landscape else VIEW_WIDTH_PORTRAIT_PX,
        min_height=VIEW_MIN_HEIGHT_PX,
        generated_on=(generated_on or date.today()).isoformat(),
        body=Markup(body_html),
    )
