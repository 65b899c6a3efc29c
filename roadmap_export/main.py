"""
Main FastAPI Application
"""

from fastapi import FastAPI

from roadmap_export import __version__
from roadmap_export.routes.api_export import router as export_router

app = FastAPI(title="roadmap-export", version=__version__)

app.include_router(export_router)
