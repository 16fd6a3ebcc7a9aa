# =============================================================================
# Report API — Four-Section Analysis of a Financial Document
# =============================================================================
#
# POST /report        : document text already extracted by the caller
# POST /report/upload : PDF upload, extracted in memory with Docling
#
# Both hand the text to the orchestrator, cache the resulting retrieval
# index in the DocumentRegistry for follow-up questions, and return the
# four sections plus generation metadata. Uploads are never written to disk.
# =============================================================================

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile

from finanalyzer.agents.orchestrator import Orchestrator, ReportResult
from finanalyzer.api.deps import get_document_registry, get_orchestrator, to_http_error
from finanalyzer.errors import FinAnalyzerError
from finanalyzer.models.requests import ReportRequest
from finanalyzer.models.responses import ReportMetadata, ReportResponse
from finanalyzer.services.documents import DocumentRegistry
from finanalyzer.services.extraction import extract_text

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Reports"])


# ---------------------------------------------------------------------------
# POST /report: Analyse document text
# ---------------------------------------------------------------------------


@router.post(
    "/report",
    response_model=ReportResponse,
    response_model_exclude_none=True,
    summary="Generate a four-section report from document text",
)
async def report_endpoint(
    request: ReportRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
    registry: DocumentRegistry = Depends(get_document_registry),
) -> ReportResponse:
    logger.info(
        "Report request: company='%s', mode=%s, chars=%d",
        request.company_name, request.mode, len(request.document_text),
    )
    return await _generate(
        orchestrator, registry,
        request.document_text, request.company_name, request.mode,
    )


# ---------------------------------------------------------------------------
# POST /report/upload: Analyse an uploaded PDF
# ---------------------------------------------------------------------------


@router.post(
    "/report/upload",
    response_model=ReportResponse,
    response_model_exclude_none=True,
    summary="Generate a four-section report from an uploaded PDF",
)
async def report_upload_endpoint(
    file: UploadFile = File(..., description="Financial report PDF"),
    company_name: str = Form(..., min_length=1, max_length=200),
    mode: str | None = Form(default=None),
    orchestrator: Orchestrator = Depends(get_orchestrator),
    registry: DocumentRegistry = Depends(get_document_registry),
) -> ReportResponse:
    data = await file.read()
    logger.info(
        "Report upload: file='%s', bytes=%d, company='%s', mode=%s",
        file.filename, len(data), company_name, mode,
    )

    try:
        # Docling is CPU-bound and synchronous
        text = await asyncio.to_thread(
            extract_text, data, file.filename or "document.pdf",
        )
    except FinAnalyzerError as e:
        raise to_http_error(e) from e

    return await _generate(orchestrator, registry, text, company_name, mode)


async def _generate(
    orchestrator: Orchestrator,
    registry: DocumentRegistry,
    document_text: str,
    company_name: str,
    mode: str | None,
) -> ReportResponse:
    try:
        result = await orchestrator.generate_report(document_text, company_name, mode)
    except FinAnalyzerError as e:
        raise to_http_error(e) from e

    document_id = registry.add(result.index, result.metadata.mode, company_name)
    return _to_response(document_id, result)


def _to_response(document_id: str, result: ReportResult) -> ReportResponse:
    meta = result.metadata
    return ReportResponse(
        document_id=document_id,
        **result.sections.as_dict(),
        metadata=ReportMetadata(
            mode=meta.mode,
            strategy_name=meta.strategy_name,
            timestamp=meta.timestamp,
            fallback=True if meta.fallback else None,
            original_mode=meta.original_mode,
            fallback_reason=meta.fallback_reason,
        ),
    )
