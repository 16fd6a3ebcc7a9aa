# =============================================================================
# Error Taxonomy
# =============================================================================
#
#   ExtractionError    : document text could not be extracted (surfaced)
#   ProviderError      : LLM / embedding call failed (surfaced, or absorbed
#                         by the orchestrator's one-hop fallback)
#   PlanParseError     : planner output was not a usable plan (recovered
#                         inside the planner with a default plan)
#   ConfigurationError : requested mode is unknown or not enabled (surfaced)
#
# Validation problems are not exceptions: see agents.validator.ValidationIssue.
# =============================================================================

from __future__ import annotations


class FinAnalyzerError(Exception):
    """Base class for all errors raised by this package."""


class ExtractionError(FinAnalyzerError):
    """Text extraction failed or produced no text."""


class ProviderError(FinAnalyzerError):
    """
    A completion or embedding provider call failed.

    Carries the HTTP-style status code when the provider returned one
    (504 for timeouts, None for connection failures).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        provider: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.provider = provider


class PlanParseError(FinAnalyzerError):
    """Planner output could not be parsed into a Plan."""


class ConfigurationError(FinAnalyzerError):
    """The requested mode cannot be served with the current configuration."""

    def __init__(self, message: str, allowed_modes: list[str] | None = None) -> None:
        super().__init__(message)
        self.allowed_modes = list(allowed_modes or [])
