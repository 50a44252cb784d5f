from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from playlog.auth import CurrentUser
from playlog.db import upsert
from playlog.db_models import GameProgress, UserPlaytime
from playlog.schemas import ProgressResponse, ProgressStatus
from playlog.services.errors import OperationError
from playlog.services.lookups import require_game
from playlog.utils import ensure_utc, utcnow

logger = logging.getLogger("playlog.service.progress")

_COMPLETION_STATUSES = (ProgressStatus.FINISHED, ProgressStatus.COMPLETED)


class ProgressService:
    """Per (user, game, platform) status row plus the playtime aggregate read."""

    def __init__(self, db: Session):
        self.db = db

    def _find(
        self, *, user_id: str, game_id: str, platform_id: str
    ) -> Optional[GameProgress]:
        return self.db.scalar(
            select(GameProgress).where(
                GameProgress.user_id == user_id,
                GameProgress.game_id == game_id,
                GameProgress.platform_id == platform_id,
            )
        )

    def get_status(
        self, *, user_id: str, game_id: str, platform_id: str
    ) -> ProgressStatus:
        row = self._find(user_id=user_id, game_id=game_id, platform_id=platform_id)
        if row is None:
            return ProgressStatus.BACKLOG
        return ProgressStatus(row.status)

    def get_progress(
        self, *, current_user: CurrentUser, game_id: str, platform_id: str
    ) -> ProgressResponse:
        require_game(self.db, game_id)
        row = self._find(
            user_id=current_user.id, game_id=game_id, platform_id=platform_id
        )
        playtime = self.db.scalar(
            select(UserPlaytime).where(
                UserPlaytime.user_id == current_user.id,
                UserPlaytime.game_id == game_id,
                UserPlaytime.platform_id == platform_id,
            )
        )
        return ProgressResponse(
            game_id=game_id,
            platform_id=platform_id,
            status=ProgressStatus(row.status) if row else ProgressStatus.BACKLOG,
            started_at=ensure_utc(row.started_at) if row else None,
            completed_at=ensure_utc(row.completed_at) if row else None,
            total_minutes=playtime.total_minutes if playtime else 0,
            last_played=ensure_utc(playtime.last_played) if playtime else None,
        )

    def set_status(
        self,
        *,
        current_user: CurrentUser,
        game_id: str,
        platform_id: str,
        status: ProgressStatus,
    ) -> ProgressResponse:
        logger.info(
            f"User {current_user.id} setting status of game {game_id} on {platform_id} to {status.value}"
        )
        require_game(self.db, game_id)
        now = utcnow()

        row = self._find(
            user_id=current_user.id, game_id=game_id, platform_id=platform_id
        )
        if row is None:
            row = GameProgress(
                id=str(uuid4()),
                user_id=current_user.id,
                game_id=game_id,
                platform_id=platform_id,
            )
            self.db.add(row)

        row.status = status.value
        if status == ProgressStatus.PLAYING and row.started_at is None:
            row.started_at = now
        if status in _COMPLETION_STATUSES and row.completed_at is None:
            row.completed_at = now
        row.updated_at = now

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error setting progress status: {e}")
            raise OperationError("Failed to update progress status") from e

        return self.get_progress(
            current_user=current_user, game_id=game_id, platform_id=platform_id
        )

    def start_playing(
        self, *, user_id: str, game_id: str, platform_id: str, now: datetime
    ) -> None:
        """Move a backlog game to playing inside the caller's transaction.

        A missing row counts as backlog. ``started_at`` is only filled when it
        is still empty; rows in any other status are left untouched.
        """
        stmt = upsert(self.db, GameProgress).values(
            id=str(uuid4()),
            user_id=user_id,
            game_id=game_id,
            platform_id=platform_id,
            status=ProgressStatus.PLAYING.value,
            started_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "game_id", "platform_id"],
            set_={
                "status": ProgressStatus.PLAYING.value,
                "started_at": func.coalesce(
                    GameProgress.started_at, stmt.excluded.started_at
                ),
                "updated_at": stmt.excluded.updated_at,
            },
            where=GameProgress.status == ProgressStatus.BACKLOG.value,
        )
        self.db.execute(stmt)
