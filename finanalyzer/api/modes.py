# =============================================================================
# Modes API — Which Pipeline Variants Exist and Which Are Enabled
# =============================================================================

from __future__ import annotations

from fastapi import APIRouter, Depends

from finanalyzer.agents.orchestrator import Orchestrator
from finanalyzer.api.deps import get_orchestrator
from finanalyzer.models.responses import ModeInfoResponse, ModesResponse

router = APIRouter(tags=["Modes"])


@router.get("/modes", response_model=ModesResponse, summary="List pipeline modes")
async def modes_endpoint(
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> ModesResponse:
    return ModesResponse(
        default_mode=orchestrator.default_mode,
        modes=[
            ModeInfoResponse(
                mode=info.mode,
                name=info.name,
                description=info.description,
                enabled=info.enabled,
            )
            for info in orchestrator.list_modes()
        ],
    )
