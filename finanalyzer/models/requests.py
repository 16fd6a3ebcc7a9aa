# =============================================================================
# API Request Models — Pydantic V2 Schemas
# =============================================================================
#
# Shapes of data coming INTO the API. FastAPI uses them for body validation
# (automatic 422 on bad input) and for the OpenAPI docs.
#
# DESIGN DECISION: `mode` is a free string, not a Literal.
# Unknown modes are not a validation error: the orchestrator maps them to
# the default mode. Only a disabled mode is rejected, and that depends on
# runtime configuration.
# =============================================================================

from pydantic import BaseModel, Field


class ReportRequest(BaseModel):
    """
    Request body for POST /report: analyse already-extracted document text.

    Example:
        {
            "document_text": "Acme Corp annual report ...",
            "company_name": "Acme Corp",
            "mode": "coordinated"
        }
    """

    document_text: str = Field(
        ...,
        min_length=1,
        description="Raw text of the financial document",
    )
    company_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Company the document is about; keys the conversation ledger",
        examples=["Acme Corp"],
    )
    mode: str | None = Field(
        default=None,
        description="Pipeline mode. Unknown or omitted → configured default.",
        examples=["coordinated", "specialized-agent"],
    )


class AskRequest(BaseModel):
    """
    Request body for POST /ask: follow-up question on a generated report.

    Example:
        {
            "document_id": "5f0c...",
            "question": "How did operating margin change year over year?",
            "company_name": "Acme Corp"
        }
    """

    document_id: str = Field(
        ...,
        min_length=1,
        description="ID returned by POST /report",
    )
    question: str = Field(
        ...,
        min_length=3,
        max_length=2000,
        description="The question to ask about the document",
        examples=["What was the total revenue in 2024?"],
    )
    company_name: str | None = Field(
        default=None,
        max_length=200,
        description="Defaults to the company the report was generated for",
    )
    # If None, the mode that generated the report is reused.
    mode: str | None = Field(default=None)
