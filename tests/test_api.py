# =============================================================================
# Unit Tests — HTTP Endpoints
# =============================================================================
#
# Endpoint functions are called directly with explicit dependencies (an
# orchestrator over stub pipelines and a fresh document registry), so no
# server, network or API keys are involved.
# =============================================================================

from __future__ import annotations

import asyncio
import io
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import HTTPException, UploadFile

from finanalyzer.agents.orchestrator import Orchestrator
from finanalyzer.agents.units import PipelineReport, ReportSections
from finanalyzer.api.ask import ask_endpoint
from finanalyzer.api.modes import modes_endpoint
from finanalyzer.api.report import report_endpoint, report_upload_endpoint
from finanalyzer.errors import ExtractionError, ProviderError
from finanalyzer.main import create_app
from finanalyzer.models.requests import AskRequest, ReportRequest
from finanalyzer.services.documents import DocumentRegistry


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _pipeline(mode, name, fallback_mode=None, error=None):
    pipeline = MagicMock()
    pipeline.mode = mode
    pipeline.name = name
    pipeline.description = f"{name} description"
    pipeline.fallback_mode = fallback_mode
    pipeline.run_report = AsyncMock(
        return_value=PipelineReport(
            sections=ReportSections(
                overview="• Overview point",
                financial_highlights="• Revenue grew 12%",
                key_risks="• Supply chain risk",
                management_commentary="• Expansion into Asia",
            ),
            index=MagicMock(),
        ),
        side_effect=error,
    )
    pipeline.run_question = AsyncMock(return_value=f"{mode} answer.", side_effect=error)
    return pipeline


def _orchestrator(specialized_error=None, coordinated_error=None, enabled=None):
    return Orchestrator(
        pipelines=[
            _pipeline("coordinated", "Coordinated Agentic RAG", error=coordinated_error),
            _pipeline(
                "specialized-agent", "Specialized Agents",
                fallback_mode="coordinated", error=specialized_error,
            ),
        ],
        default_mode="coordinated",
        enabled_modes=enabled or ["coordinated", "specialized-agent"],
    )


class TestReportEndpoint:
    def test_returns_sections_and_caches_index(self):
        registry = DocumentRegistry(max_documents=4)
        response = _run(report_endpoint(
            ReportRequest(document_text="Acme text", company_name="Acme"),
            orchestrator=_orchestrator(),
            registry=registry,
        ))

        assert response.financial_highlights == "• Revenue grew 12%"
        assert response.metadata.mode == "coordinated"
        assert response.metadata.fallback is None
        assert registry.get(response.document_id).mode == "coordinated"

    def test_fallback_metadata_exposed(self):
        response = _run(report_endpoint(
            ReportRequest(document_text="t", company_name="Acme", mode="specialized-agent"),
            orchestrator=_orchestrator(specialized_error=ProviderError("boom", 500)),
            registry=DocumentRegistry(),
        ))
        meta = response.metadata
        assert meta.fallback is True
        assert meta.original_mode == "specialized-agent"
        assert meta.fallback_reason == "boom"

    def test_disabled_mode_is_400_with_allowed_modes(self):
        with pytest.raises(HTTPException) as exc_info:
            _run(report_endpoint(
                ReportRequest(document_text="t", company_name="Acme", mode="specialized-agent"),
                orchestrator=_orchestrator(enabled=["coordinated"]),
                registry=DocumentRegistry(),
            ))
        assert exc_info.value.status_code == 400
        assert exc_info.value.detail["allowed_modes"] == ["coordinated"]

    def test_provider_failure_is_502(self):
        with pytest.raises(HTTPException) as exc_info:
            _run(report_endpoint(
                ReportRequest(document_text="t", company_name="Acme"),
                orchestrator=_orchestrator(coordinated_error=ProviderError("down", 503)),
                registry=DocumentRegistry(),
            ))
        assert exc_info.value.status_code == 502


class TestReportUploadEndpoint:
    def _upload(self) -> UploadFile:
        return UploadFile(file=io.BytesIO(b"%PDF-1.4 fake"), filename="report.pdf")

    def test_extracted_text_is_analysed(self):
        orchestrator = _orchestrator()
        with patch(
            "finanalyzer.api.report.extract_text", return_value="Extracted text",
        ) as mock_extract:
            response = _run(report_upload_endpoint(
                file=self._upload(),
                company_name="Acme",
                mode=None,
                orchestrator=orchestrator,
                registry=DocumentRegistry(),
            ))

        mock_extract.assert_called_once_with(b"%PDF-1.4 fake", "report.pdf")
        assert response.overview == "• Overview point"

    def test_extraction_failure_is_422(self):
        with patch(
            "finanalyzer.api.report.extract_text",
            side_effect=ExtractionError("No text could be extracted."),
        ):
            with pytest.raises(HTTPException) as exc_info:
                _run(report_upload_endpoint(
                    file=self._upload(),
                    company_name="Acme",
                    mode=None,
                    orchestrator=_orchestrator(),
                    registry=DocumentRegistry(),
                ))
        assert exc_info.value.status_code == 422


class TestAskEndpoint:
    def _registry_with_document(self, mode: str) -> tuple[DocumentRegistry, str]:
        registry = DocumentRegistry()
        document_id = registry.add(MagicMock(), mode, "Acme")
        return registry, document_id

    def test_defaults_to_report_mode(self):
        registry, document_id = self._registry_with_document("specialized-agent")
        response = _run(ask_endpoint(
            AskRequest(document_id=document_id, question="How did revenue change?"),
            orchestrator=_orchestrator(),
            registry=registry,
        ))
        assert response.answer == "specialized-agent answer."
        assert response.mode == "specialized-agent"
        assert response.fallback is False

    def test_question_fallback_reported(self):
        registry, document_id = self._registry_with_document("specialized-agent")
        response = _run(ask_endpoint(
            AskRequest(document_id=document_id, question="How did revenue change?"),
            orchestrator=_orchestrator(specialized_error=ProviderError("timeout", 504)),
            registry=registry,
        ))
        assert response.mode == "coordinated"
        assert response.fallback is True
        assert response.original_mode == "specialized-agent"

    def test_unknown_document_is_404(self):
        with pytest.raises(HTTPException) as exc_info:
            _run(ask_endpoint(
                AskRequest(document_id="missing", question="Anything here?"),
                orchestrator=_orchestrator(),
                registry=DocumentRegistry(),
            ))
        assert exc_info.value.status_code == 404


class TestModesAndHealth:
    def test_modes_listing(self):
        response = _run(modes_endpoint(orchestrator=_orchestrator(enabled=["coordinated"])))
        assert response.default_mode == "coordinated"
        assert {(m.mode, m.enabled) for m in response.modes} == {
            ("coordinated", True),
            ("specialized-agent", False),
        }

    def test_health_route_registered(self):
        app = create_app()
        health = next(r for r in app.routes if getattr(r, "path", None) == "/health")
        response = _run(health.endpoint())
        assert response.status == "ok"

    def test_all_routes_registered(self):
        paths = {getattr(r, "path", None) for r in create_app().routes}
        assert {"/report", "/report/upload", "/ask", "/modes", "/health"} <= paths


class TestDocumentRegistry:
    def test_least_recently_used_evicted_and_dropped(self):
        registry = DocumentRegistry(max_documents=2)
        first_index = MagicMock()
        first = registry.add(first_index, "coordinated", "A")
        second = registry.add(MagicMock(), "coordinated", "B")
        registry.get(first)  # touch: second is now least recent
        registry.add(MagicMock(), "coordinated", "C")

        assert registry.get(second) is None
        assert registry.get(first) is not None
        first_index.drop.assert_not_called()
        assert len(registry) == 2
