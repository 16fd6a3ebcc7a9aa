# =============================================================================
# FastAPI Application Factory
# =============================================================================
#
# Run with:  uvicorn finanalyzer.main:app --reload
#
# Routers:
#   POST /report, POST /report/upload  : four-section analysis
#   POST /ask                          : follow-up questions
#   GET  /modes                        : pipeline variants
#   GET  /health                       : liveness
# =============================================================================

from __future__ import annotations

import logging

from fastapi import FastAPI

from finanalyzer.api import ask, modes, report
from finanalyzer.config import settings
from finanalyzer.models.responses import HealthResponse


def create_app() -> FastAPI:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "Agentic RAG analysis of financial documents: planner, hybrid "
            "retrieval, tools, analyst, validator and formatter agents, with "
            "a specialized-agent alternative and automatic fallback."
        ),
    )
    app.include_router(report.router)
    app.include_router(ask.router)
    app.include_router(modes.router)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health() -> HealthResponse:
        return HealthResponse(version=settings.app_version, service=settings.app_name)

    return app


app = create_app()
