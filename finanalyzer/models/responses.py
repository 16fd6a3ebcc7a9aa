# =============================================================================
# API Response Models — Pydantic V2 Schemas
# =============================================================================
#
# Shapes of data going OUT of the API. Internal objects (retrieval index,
# ledger, plans) are never exposed; only text and generation metadata.
# =============================================================================

from datetime import datetime

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response for GET /health: confirms the API is running."""

    status: str = "ok"
    version: str
    service: str


class ReportMetadata(BaseModel):
    """
    Which pipeline produced a result.

    The fallback fields are only populated when the requested mode failed
    and another mode produced the output.
    """

    mode: str
    strategy_name: str
    timestamp: datetime
    fallback: bool | None = None
    original_mode: str | None = None
    fallback_reason: str | None = None


class ReportResponse(BaseModel):
    """Response for POST /report and POST /report/upload."""

    document_id: str = Field(description="Use with POST /ask for follow-up questions")
    overview: str
    financial_highlights: str
    key_risks: str
    management_commentary: str
    metadata: ReportMetadata


class AskResponse(BaseModel):
    """Response for POST /ask."""

    answer: str
    mode: str
    strategy_name: str
    fallback: bool = False
    original_mode: str | None = None
    fallback_reason: str | None = None


class ModeInfoResponse(BaseModel):
    mode: str
    name: str
    description: str
    enabled: bool


class ModesResponse(BaseModel):
    """Response for GET /modes."""

    default_mode: str
    modes: list[ModeInfoResponse]
