from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from playlog.auth import CurrentUser, get_current_user
from playlog.schemas import (
    AdditionDetail,
    AdditionUpdate,
    DlcOwnershipResponse,
    DlcOwnershipUpdate,
    EditionUpdate,
    EditionUpdateResponse,
    OwnershipResponse,
)
from playlog.services.deps import get_ownership_service
from playlog.services.errors import (
    NotFoundError,
    OperationError,
    ServiceValidationError,
)
from playlog.services.ownership_service import OwnershipService

router = APIRouter(prefix="/games", tags=["ownership"])


@router.get("/{game_id}/ownership", response_model=OwnershipResponse)
def get_ownership(
    game_id: str,
    platform_id: str = Query(..., description="Platform the game is owned on"),
    current_user: CurrentUser = Depends(get_current_user),
    service: OwnershipService = Depends(get_ownership_service),
) -> OwnershipResponse:
    try:
        return service.get_ownership(
            current_user=current_user, game_id=game_id, platform_id=platform_id
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.put("/{game_id}/ownership/edition", response_model=EditionUpdateResponse)
def set_edition(
    game_id: str,
    update_data: EditionUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: OwnershipService = Depends(get_ownership_service),
) -> EditionUpdateResponse:
    try:
        return service.set_edition(
            current_user=current_user,
            game_id=game_id,
            platform_id=update_data.platform_id,
            edition_id=update_data.edition_id,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ServiceValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except OperationError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.put("/{game_id}/ownership/dlcs", response_model=DlcOwnershipResponse)
def set_dlc_ownership(
    game_id: str,
    update_data: DlcOwnershipUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: OwnershipService = Depends(get_ownership_service),
) -> DlcOwnershipResponse:
    try:
        return service.set_dlc_ownership(
            current_user=current_user,
            game_id=game_id,
            platform_id=update_data.platform_id,
            dlc_ids=update_data.dlc_ids,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ServiceValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except OperationError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.patch("/{game_id}/additions/{addition_id}", response_model=AdditionDetail)
def update_addition(
    game_id: str,
    addition_id: str,
    update_data: AdditionUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: OwnershipService = Depends(get_ownership_service),
) -> AdditionDetail:
    try:
        return service.update_addition(
            current_user=current_user,
            game_id=game_id,
            addition_id=addition_id,
            update_data=update_data,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ServiceValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except OperationError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
