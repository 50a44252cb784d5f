from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from playlog.auth import CurrentUser, get_current_user
from playlog.config import settings
from playlog.schemas import (
    CompletionLogCreate,
    CompletionLogListResponse,
    CompletionLogResponse,
    DeleteResponse,
    RecalculateRequest,
    RecalculateResponse,
)
from playlog.services.completion_service import CompletionService
from playlog.services.deps import get_completion_service
from playlog.services.errors import (
    NotFoundError,
    OperationError,
    ServiceValidationError,
)

router = APIRouter(prefix="/games", tags=["completion-logs"])


@router.post(
    "/{game_id}/completion-logs/recalculate", response_model=RecalculateResponse
)
def recalculate_completion(
    game_id: str,
    request_data: RecalculateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: CompletionService = Depends(get_completion_service),
) -> RecalculateResponse:
    try:
        return service.recalculate_completion(
            current_user=current_user,
            game_id=game_id,
            platform_id=request_data.platform_id,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except OperationError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.get("/{game_id}/completion-logs", response_model=CompletionLogListResponse)
def list_completion_log(
    game_id: str,
    platform_id: Optional[str] = Query(None, description="Filter by platform"),
    start_date: Optional[date] = Query(None, description="Logged on or after (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="Logged on or before (YYYY-MM-DD)"),
    limit: int = Query(
        settings.default_page_limit,
        ge=1,
        le=settings.max_page_limit,
        description="Number of entries per page",
    ),
    offset: int = Query(0, ge=0, description="Number of entries to skip"),
    current_user: CurrentUser = Depends(get_current_user),
    service: CompletionService = Depends(get_completion_service),
) -> CompletionLogListResponse:
    try:
        return service.list_completion_log(
            current_user=current_user,
            game_id=game_id,
            platform_id=platform_id,
            limit=limit,
            offset=offset,
            start_date=start_date,
            end_date=end_date,
        )
    except ServiceValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


@router.post(
    "/{game_id}/completion-logs",
    response_model=CompletionLogResponse,
    status_code=status.HTTP_201_CREATED,
)
def append_completion_log(
    game_id: str,
    log_data: CompletionLogCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: CompletionService = Depends(get_completion_service),
) -> CompletionLogResponse:
    try:
        return service.append_completion_log(
            current_user=current_user,
            game_id=game_id,
            platform_id=log_data.platform_id,
            percentage=log_data.percentage,
            notes=log_data.notes,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ServiceValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except OperationError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.delete("/{game_id}/completion-logs/{log_id}", response_model=DeleteResponse)
def delete_completion_log(
    game_id: str,
    log_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: CompletionService = Depends(get_completion_service),
) -> DeleteResponse:
    try:
        return service.delete_completion_log(
            current_user=current_user, game_id=game_id, log_id=log_id
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except OperationError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
