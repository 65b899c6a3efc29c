"""
Roadmap Export CLI

Render an HTML roadmap view in headless Chromium and export it as a
PDF document or PNG image.

Usage:
    roadmap-export view.html --mode overview --format pdf --title "Q4 Roadmap"
    roadmap-export view.html --mode track --team Platform --format png --out exports/
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from roadmap_export.config.loader import load_export_settings
from roadmap_export.core.models import ExportFormat, ExportMode, ExportResult
from roadmap_export.core.orchestrator import ExportOrchestrator, build_options
from roadmap_export.core.overlay import PageOverlayHost
from roadmap_export.core.sinks import FileSystemSink
from roadmap_export.core.surface import PlaywrightRenderer
from roadmap_export.core.view import create_export_view
from roadmap_export.utils.error_handling import ExportError, user_message
from roadmap_export.utils.export_id import generate_export_id
from roadmap_export.utils.run_logging import export_log_file

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export a rendered roadmap view to PDF or PNG")
    parser.add_argument("html", type=Path, help="HTML file containing the roadmap view")
    parser.add_argument("--mode", choices=[m.value for m in ExportMode], default=ExportMode.OVERVIEW.value)
    parser.add_argument("--format", choices=[f.value for f in ExportFormat], default=ExportFormat.PDF.value)
    parser.add_argument("--title", default="Roadmap")
    parser.add_argument("--subtitle", default=None)
    parser.add_argument("--team", default=None, help="Team name (required for --mode track)")
    parser.add_argument("--out", type=Path, default=None, help="Output directory (default from config)")
    parser.add_argument("--config", type=Path, default=None, help="Path to export.yml")
    parser.add_argument("--log-dir", type=Path, default=None, help="Write a per-export log file here")
    parser.add_argument("--no-wrap", action="store_true", help="Do not wrap the HTML in the export container")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


async def run_export(args: argparse.Namespace, export_id: str) -> ExportResult:
    settings = load_export_settings(args.config)
    options = build_options(ExportMode(args.mode), ExportFormat(args.format), args.title, args.team, args.subtitle)

    html = args.html.read_text(encoding="utf-8")
    if not args.no_wrap:
        html = create_export_view(options, html)

    async with PlaywrightRenderer() as renderer:
        surface = await renderer.render(html, name=f"{options.mode}-view")
        orchestrator = ExportOrchestrator(
            sink=FileSystemSink(args.out or settings.output_dir),
            overlay_host=PageOverlayHost(surface.page),
            settings=settings,
        )
        return await orchestrator.export(surface, options, export_id=export_id)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.mode == ExportMode.TRACK.value and not args.team:
        print("--team is required for --mode track", file=sys.stderr)
        return 2
    if not args.html.exists():
        print(f"HTML file not found: {args.html}", file=sys.stderr)
        return 2

    export_id = generate_export_id()
    try:
        if args.log_dir:
            with export_log_file(export_id, args.log_dir):
                result = asyncio.run(run_export(args, export_id))
        else:
            result = asyncio.run(run_export(args, export_id))
    except ExportError:
        # Already logged and reported to the user by the orchestrator
        return 1
    except Exception as e:
        logger.error(f"Export {export_id} failed: {type(e).__name__}: {e}")
        print(user_message(e), file=sys.stderr)
        return 1

    print(f"✅ {result.filename}: {result.page_count} page(s), {result.byte_length} bytes -> {result.location}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
