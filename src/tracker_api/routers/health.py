import socket
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request

from tracker_api.config.settings import Settings
from tracker_api.modes import Composition, Fulfillment
from tracker_api.schemas import HealthResponse

router = APIRouter(tags=["health"])

NOT_APPLICABLE = "N/A"


def build_health(settings: Settings, composition: Composition) -> Dict[str, Any]:
    """Identity of this process: mode, version and where its data lives."""
    delegated_items = composition.fulfillment("items") is Fulfillment.DELEGATED
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "hostname": socket.gethostname(),
        "version": settings.app_version,
        "mode": composition.mode.value,
        "databaseType": composition.store.database_type if composition.store else NOT_APPLICABLE,
        "apiBaseUrl": settings.api_base_url if delegated_items else NOT_APPLICABLE,
    }


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """
    Health check endpoint for monitoring API status.

    Answers locally in every mode; a ui-proxy process does not consult its peer here.
    """
    return build_health(request.app.state.settings, request.app.state.composition)
