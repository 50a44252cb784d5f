from __future__ import annotations

import logging
from typing import Optional
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from playlog.auth import CurrentUser
from playlog.db import upsert
from playlog.db_models import Addition, UserGameAddition, UserGameEdition
from playlog.progress import (
    DLC,
    EDITION,
    EffectiveOwnership,
    addition_weight,
    compute_percentage,
    resolve_effective_ownership,
)
from playlog.schemas import (
    AdditionDetail,
    AdditionResponse,
    AdditionType,
    AdditionUpdate,
    DlcOwnershipResponse,
    EditionUpdateResponse,
    OwnershipResponse,
)
from playlog.services.errors import (
    NotFoundError,
    OperationError,
    ServiceValidationError,
)
from playlog.services.lookups import require_game

logger = logging.getLogger("playlog.service.ownership")


def load_additions(db: Session, game_id: str) -> list[Addition]:
    return list(
        db.scalars(
            select(Addition)
            .where(Addition.game_id == game_id)
            .order_by(Addition.name.asc())
        ).all()
    )


def load_effective_ownership(
    db: Session,
    *,
    user_id: str,
    game_id: str,
    platform_id: str,
    additions: Optional[list[Addition]] = None,
) -> tuple[list[Addition], EffectiveOwnership]:
    """Catalog rows of the game and the caller's effective ownership of them."""
    if additions is None:
        additions = load_additions(db, game_id)

    edition_id = db.scalar(
        select(UserGameEdition.edition_id).where(
            UserGameEdition.user_id == user_id,
            UserGameEdition.game_id == game_id,
            UserGameEdition.platform_id == platform_id,
        )
    )
    rows = db.execute(
        select(UserGameAddition.addition_id, UserGameAddition.owned).where(
            UserGameAddition.user_id == user_id,
            UserGameAddition.game_id == game_id,
            UserGameAddition.platform_id == platform_id,
        )
    ).all()
    stored_flags = {addition_id: bool(owned) for addition_id, owned in rows}

    return additions, resolve_effective_ownership(additions, edition_id, stored_flags)


def _addition_detail(addition: Addition) -> AdditionDetail:
    return AdditionDetail(
        id=addition.id,
        game_id=addition.game_id,
        name=addition.name,
        addition_type=AdditionType(addition.addition_type),
        is_complete_edition=bool(addition.is_complete_edition),
        weight=addition_weight(addition),
        required_for_full=bool(addition.required_for_full),
        release_date=addition.release_date,
    )


def _addition_response(addition: Addition, owned: bool) -> AdditionResponse:
    return AdditionResponse(**_addition_detail(addition).model_dump(), owned=owned)


class OwnershipService:
    def __init__(self, db: Session):
        self.db = db

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error during {action}: {e}")
            raise OperationError(f"Failed to {action}") from e

    def _recompute(
        self, *, user_id: str, game_id: str, platform_id: str
    ) -> int:
        additions, ownership = load_effective_ownership(
            self.db, user_id=user_id, game_id=game_id, platform_id=platform_id
        )
        return compute_percentage(additions, ownership)

    def get_ownership(
        self, *, current_user: CurrentUser, game_id: str, platform_id: str
    ) -> OwnershipResponse:
        require_game(self.db, game_id)
        additions, ownership = load_effective_ownership(
            self.db, user_id=current_user.id, game_id=game_id, platform_id=platform_id
        )

        editions = [
            _addition_response(a, ownership.owns(a))
            for a in additions
            if a.addition_type == EDITION
        ]
        dlcs = [
            _addition_response(a, ownership.owns(a))
            for a in additions
            if a.addition_type == DLC
        ]

        return OwnershipResponse(
            game_id=game_id,
            platform_id=platform_id,
            edition_id=ownership.edition_id,
            editions=editions,
            dlcs=dlcs,
            owned_dlc_ids=[d.id for d in dlcs if d.owned],
            has_complete_edition=ownership.has_complete_edition,
            completion_percentage=compute_percentage(additions, ownership),
        )

    def set_edition(
        self,
        *,
        current_user: CurrentUser,
        game_id: str,
        platform_id: str,
        edition_id: Optional[str],
    ) -> EditionUpdateResponse:
        logger.info(
            f"User {current_user.id} selecting edition {edition_id} for game {game_id} on {platform_id}"
        )
        require_game(self.db, game_id)

        if edition_id is not None:
            edition = self.db.scalar(
                select(Addition).where(
                    Addition.id == edition_id, Addition.game_id == game_id
                )
            )
            if edition is None:
                raise NotFoundError("Edition not found")
            if edition.addition_type != EDITION:
                raise ServiceValidationError(
                    f"Addition {edition_id} is a {edition.addition_type}, not an edition"
                )

        stmt = upsert(self.db, UserGameEdition).values(
            id=str(uuid4()),
            user_id=current_user.id,
            game_id=game_id,
            platform_id=platform_id,
            edition_id=edition_id,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "game_id", "platform_id"],
            set_={"edition_id": stmt.excluded.edition_id},
        )
        self.db.execute(stmt)
        self._commit("update edition")

        percentage = self._recompute(
            user_id=current_user.id, game_id=game_id, platform_id=platform_id
        )
        return EditionUpdateResponse(
            edition_id=edition_id,
            message="Edition updated" if edition_id else "Edition cleared",
            completion_percentage=percentage,
        )

    def set_dlc_ownership(
        self,
        *,
        current_user: CurrentUser,
        game_id: str,
        platform_id: str,
        dlc_ids: list[str],
    ) -> DlcOwnershipResponse:
        logger.info(
            f"User {current_user.id} replacing owned DLCs of game {game_id} on {platform_id} with {len(dlc_ids)} ids"
        )
        if not isinstance(dlc_ids, (list, tuple, set, frozenset)):
            raise ServiceValidationError("dlc_ids must be an array")
        require_game(self.db, game_id)

        additions = load_additions(self.db, game_id)
        by_id = {a.id: a for a in additions}
        target = set(dlc_ids)
        for addition_id in sorted(target):
            addition = by_id.get(addition_id)
            if addition is None:
                raise NotFoundError(f"DLC {addition_id} not found for this game")
            if addition.addition_type != DLC:
                raise ServiceValidationError(
                    f"Addition {addition_id} is a {addition.addition_type}, not a DLC"
                )

        currently_owned = set(
            self.db.scalars(
                select(UserGameAddition.addition_id).where(
                    UserGameAddition.user_id == current_user.id,
                    UserGameAddition.game_id == game_id,
                    UserGameAddition.platform_id == platform_id,
                    UserGameAddition.owned.is_(True),
                )
            ).all()
        )
        to_own = target - currently_owned
        to_unown = currently_owned - target

        for addition_id, owned in [(i, True) for i in sorted(to_own)] + [
            (i, False) for i in sorted(to_unown)
        ]:
            stmt = upsert(self.db, UserGameAddition).values(
                id=str(uuid4()),
                user_id=current_user.id,
                game_id=game_id,
                platform_id=platform_id,
                addition_id=addition_id,
                owned=owned,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id", "game_id", "platform_id", "addition_id"],
                set_={"owned": stmt.excluded.owned},
            )
            self.db.execute(stmt)
        self._commit("update DLC ownership")

        percentage = self._recompute(
            user_id=current_user.id, game_id=game_id, platform_id=platform_id
        )
        owned_ids = sorted(target)
        return DlcOwnershipResponse(
            owned_dlc_ids=owned_ids,
            message=f"Updated {len(owned_ids)} DLC ownership",
            completion_percentage=percentage,
        )

    def update_addition(
        self,
        *,
        current_user: CurrentUser,
        game_id: str,
        addition_id: str,
        update_data: AdditionUpdate,
    ) -> AdditionDetail:
        logger.info(
            f"User {current_user.id} updating addition {addition_id} of game {game_id}"
        )
        addition = self.db.scalar(
            select(Addition).where(
                Addition.id == addition_id, Addition.game_id == game_id
            )
        )
        if addition is None:
            raise NotFoundError("Addition not found")

        if update_data.weight is not None:
            if update_data.weight < 0:
                raise ServiceValidationError("weight must be >= 0")
            addition.weight = update_data.weight
        if update_data.required_for_full is not None:
            addition.required_for_full = update_data.required_for_full

        self._commit("update addition")
        self.db.refresh(addition)
        return _addition_detail(addition)
