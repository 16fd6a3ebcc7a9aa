# =============================================================================
# API Dependencies — Shared Singletons and Error Mapping
# =============================================================================
#
# Routers receive the orchestrator and document registry through
# Depends(...), so tests can call endpoint functions directly with their own
# instances (or use app.dependency_overrides).
#
# ERROR MAPPING (domain error → HTTP status):
#   ConfigurationError → 400  (mode not enabled; detail lists allowed modes)
#   ExtractionError    → 422  (nothing usable in the upload)
#   ProviderError      → 502  (LLM / embedding provider failed, no fallback left)
# =============================================================================

from __future__ import annotations

import logging

from fastapi import HTTPException

from finanalyzer.agents.orchestrator import Orchestrator
from finanalyzer.agents.orchestrator import get_orchestrator as _get_orchestrator
from finanalyzer.errors import (
    ConfigurationError,
    ExtractionError,
    FinAnalyzerError,
    ProviderError,
)
from finanalyzer.services.documents import DocumentRegistry
from finanalyzer.services.documents import get_document_registry as _get_registry

logger = logging.getLogger(__name__)


def get_orchestrator() -> Orchestrator:
    return _get_orchestrator()


def get_document_registry() -> DocumentRegistry:
    return _get_registry()


def to_http_error(error: FinAnalyzerError) -> HTTPException:
    """Translate a domain error into the HTTPException the client sees."""
    if isinstance(error, ConfigurationError):
        logger.warning("Configuration error: %s", error)
        return HTTPException(
            status_code=400,
            detail={"message": str(error), "allowed_modes": error.allowed_modes},
        )
    if isinstance(error, ExtractionError):
        logger.warning("Extraction failed: %s", error)
        return HTTPException(status_code=422, detail=str(error))
    if isinstance(error, ProviderError):
        logger.error("Provider error (status=%s): %s", error.status_code, error)
        return HTTPException(status_code=502, detail=f"LLM service error: {error}")

    logger.exception("Unhandled analyzer error: %s", error)
    return HTTPException(status_code=500, detail=str(error))
