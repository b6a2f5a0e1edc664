"""Record synchronization endpoint."""

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse

from focus_sync.domain.sync import SyncPayload
from focus_sync.interface.dependencies import get_sync_service
from focus_sync.services.auth_service import bearer_token
from focus_sync.services.sync_service import SyncService


router = APIRouter(tags=["sync"])


@router.post("/sync")
async def sync(
    body: SyncPayload | None = None,
    authorization: str | None = Header(default=None),
    sync_service: SyncService = Depends(get_sync_service),
) -> JSONResponse:
    """Merge the submitted records and return the authoritative set.

    The bearer token is optional: without a valid one the records are echoed
    back unchanged.
    """
    result = await sync_service.sync_records(body or SyncPayload(), access_token=bearer_token(authorization))
    return JSONResponse(content=result.to_wire(), status_code=200)
