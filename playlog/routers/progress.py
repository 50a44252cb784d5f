from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from playlog.auth import CurrentUser, get_current_user
from playlog.schemas import ProgressResponse, ProgressUpdate
from playlog.services.deps import get_progress_service
from playlog.services.errors import NotFoundError, OperationError
from playlog.services.progress_service import ProgressService

router = APIRouter(prefix="/games", tags=["progress"])


@router.get("/{game_id}/progress", response_model=ProgressResponse)
def get_progress(
    game_id: str,
    platform_id: str = Query(..., description="Platform of the progress record"),
    current_user: CurrentUser = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
) -> ProgressResponse:
    try:
        return service.get_progress(
            current_user=current_user, game_id=game_id, platform_id=platform_id
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.put("/{game_id}/progress", response_model=ProgressResponse)
def set_status(
    game_id: str,
    update_data: ProgressUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
) -> ProgressResponse:
    try:
        return service.set_status(
            current_user=current_user,
            game_id=game_id,
            platform_id=update_data.platform_id,
            status=update_data.status,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except OperationError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
