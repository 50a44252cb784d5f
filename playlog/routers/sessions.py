from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from playlog.auth import CurrentUser, get_current_user
from playlog.config import settings
from playlog.schemas import (
    ActiveSessionResponse,
    DeleteResponse,
    PlaySessionListResponse,
    PlaySessionResponse,
    SessionEnd,
    SessionManual,
    SessionStart,
)
from playlog.services.deps import get_sessions_service
from playlog.services.errors import (
    ConflictError,
    NotFoundError,
    OperationError,
    ServiceValidationError,
)
from playlog.services.sessions_service import SessionsService

router = APIRouter(tags=["sessions"])
logger = logging.getLogger("playlog.router.sessions")


@router.get("/sessions/active", response_model=ActiveSessionResponse)
def get_active_session(
    current_user: CurrentUser = Depends(get_current_user),
    service: SessionsService = Depends(get_sessions_service),
) -> ActiveSessionResponse:
    return service.get_active_session(current_user=current_user)


@router.get("/games/{game_id}/sessions", response_model=PlaySessionListResponse)
def list_sessions(
    game_id: str,
    platform_id: Optional[str] = Query(None, description="Filter by platform"),
    start_date: Optional[date] = Query(None, description="Started on or after (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="Started on or before (YYYY-MM-DD)"),
    limit: int = Query(
        settings.default_page_limit,
        ge=1,
        le=settings.max_page_limit,
        description="Number of sessions per page",
    ),
    offset: int = Query(0, ge=0, description="Number of sessions to skip"),
    current_user: CurrentUser = Depends(get_current_user),
    service: SessionsService = Depends(get_sessions_service),
) -> PlaySessionListResponse:
    try:
        return service.list_sessions(
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
    "/games/{game_id}/sessions",
    response_model=PlaySessionResponse,
    status_code=status.HTTP_201_CREATED,
)
def start_session(
    game_id: str,
    session_data: SessionStart,
    current_user: CurrentUser = Depends(get_current_user),
    service: SessionsService = Depends(get_sessions_service),
) -> PlaySessionResponse:
    try:
        return service.start_session(
            current_user=current_user,
            game_id=game_id,
            platform_id=session_data.platform_id,
            started_at=session_data.started_at,
            notes=session_data.notes,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ConflictError as e:
        logger.info(f"Rejected session start for user {current_user.id}: {e}")
        raise HTTPException(status_code=409, detail=str(e)) from e
    except OperationError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.post(
    "/games/{game_id}/sessions/manual",
    response_model=PlaySessionResponse,
    status_code=status.HTTP_201_CREATED,
)
def manual_session(
    game_id: str,
    session_data: SessionManual,
    current_user: CurrentUser = Depends(get_current_user),
    service: SessionsService = Depends(get_sessions_service),
) -> PlaySessionResponse:
    try:
        return service.manual_session(
            current_user=current_user,
            game_id=game_id,
            platform_id=session_data.platform_id,
            started_at=session_data.started_at,
            ended_at=session_data.ended_at,
            duration_minutes=session_data.duration_minutes,
            notes=session_data.notes,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ServiceValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except OperationError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.post(
    "/games/{game_id}/sessions/{session_id}/end", response_model=PlaySessionResponse
)
def end_session(
    game_id: str,
    session_id: str,
    end_data: Optional[SessionEnd] = None,
    current_user: CurrentUser = Depends(get_current_user),
    service: SessionsService = Depends(get_sessions_service),
) -> PlaySessionResponse:
    end_data = end_data or SessionEnd()
    try:
        return service.end_session(
            current_user=current_user,
            game_id=game_id,
            session_id=session_id,
            ended_at=end_data.ended_at,
            duration_minutes=end_data.duration_minutes,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except OperationError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.delete("/games/{game_id}/sessions/{session_id}", response_model=DeleteResponse)
def delete_session(
    game_id: str,
    session_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: SessionsService = Depends(get_sessions_service),
) -> DeleteResponse:
    try:
        return service.delete_session(
            current_user=current_user, game_id=game_id, session_id=session_id
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except OperationError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
