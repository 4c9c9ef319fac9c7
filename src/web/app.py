"""
FastAPI application factory for the juggle counter control API.

Routes:
- /api/* -> REST API (status, settings, mode, calibration, reset, health)
"""

from __future__ import annotations

import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pipeline.session import JuggleSession
from .routes import api


def create_app(session: JuggleSession) -> FastAPI:
    """Create the FastAPI app bound to one counting session."""
    app = FastAPI(
        title="Juggle Counter",
        version="0.1.0",
        description="Camera-based juggling catch counter",
    )

    # CORS for a browser control panel served from another port
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.session = session
    app.state.started_at = time.time()

    app.include_router(api.router, prefix="/api")

    return app
