# =============================================================================
# Ask API — Follow-Up Questions on a Generated Report
# =============================================================================
#
# POST /ask answers a question against the retrieval index cached by a
# previous POST /report. The mode defaults to the one that produced the
# report; fallback rules are the same as for reports.
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from finanalyzer.agents.orchestrator import Orchestrator
from finanalyzer.api.deps import get_document_registry, get_orchestrator, to_http_error
from finanalyzer.errors import FinAnalyzerError
from finanalyzer.models.requests import AskRequest
from finanalyzer.models.responses import AskResponse
from finanalyzer.services.documents import DocumentRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Question Answering"])


@router.post(
    "/ask",
    response_model=AskResponse,
    summary="Ask a question about a generated report's document",
)
async def ask_endpoint(
    request: AskRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
    registry: DocumentRegistry = Depends(get_document_registry),
) -> AskResponse:
    cached = registry.get(request.document_id)
    if cached is None:
        raise HTTPException(
            status_code=404,
            detail=f"Document {request.document_id} not found. Generate a report first.",
        )

    company_name = request.company_name or cached.company_name
    mode = request.mode or cached.mode
    logger.info(
        "Ask request: document=%s, mode=%s, question='%s'",
        request.document_id, mode, request.question[:80],
    )

    try:
        result = await orchestrator.answer_question(
            cached.index, request.question, company_name, mode,
        )
    except FinAnalyzerError as e:
        raise to_http_error(e) from e

    meta = result.metadata
    return AskResponse(
        answer=result.answer,
        mode=meta.mode,
        strategy_name=meta.strategy_name,
        fallback=meta.fallback,
        original_mode=meta.original_mode,
        fallback_reason=meta.fallback_reason,
    )
