from __future__ import annotations

import logging
from datetime import date
from typing import Optional
from uuid import uuid4

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from playlog.auth import CurrentUser
from playlog.db_models import CompletionLog, Game, UserPlaytime
from playlog.progress import compute_percentage
from playlog.schemas import (
    CompletionLogListResponse,
    CompletionLogResponse,
    CompletionLogSource,
    DeleteResponse,
    RecalculateResponse,
)
from playlog.services.errors import (
    NotFoundError,
    OperationError,
    ServiceValidationError,
)
from playlog.services.lookups import require_library_entry
from playlog.services.ownership_service import load_effective_ownership
from playlog.services.progress_service import ProgressService
from playlog.utils import day_end, day_start, ensure_utc, utcnow

logger = logging.getLogger("playlog.service.completion")

AUTO_NOTE = "Auto-calculated"


def _log_response(entry: CompletionLog) -> CompletionLogResponse:
    return CompletionLogResponse(
        id=entry.id,
        user_id=entry.user_id,
        game_id=entry.game_id,
        platform_id=entry.platform_id,
        percentage=entry.percentage,
        source=CompletionLogSource(entry.source),
        notes=entry.notes,
        logged_at=ensure_utc(entry.logged_at),
    )


def recalculation_lock(game_id: str):
    """Row lock on the game that serializes recalculations (PostgreSQL)."""
    return select(Game.id).where(Game.id == game_id).with_for_update()


def total_minutes_for(
    db: Session, *, user_id: str, game_id: str, platform_id: Optional[str]
) -> int:
    """Maintained playtime total; summed over platforms when none is given."""
    query = select(func.coalesce(func.sum(UserPlaytime.total_minutes), 0)).where(
        UserPlaytime.user_id == user_id, UserPlaytime.game_id == game_id
    )
    if platform_id is not None:
        query = query.where(UserPlaytime.platform_id == platform_id)
    return int(db.scalar(query) or 0)


class CompletionService:
    def __init__(self, db: Session):
        self.db = db

    def _append(
        self,
        *,
        user_id: str,
        game_id: str,
        platform_id: str,
        percentage: int,
        source: CompletionLogSource,
        notes: Optional[str],
    ) -> CompletionLog:
        entry = CompletionLog(
            id=str(uuid4()),
            user_id=user_id,
            game_id=game_id,
            platform_id=platform_id,
            percentage=percentage,
            source=source.value,
            notes=notes,
            logged_at=utcnow(),
        )
        try:
            self.db.add(entry)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error appending completion log: {e}")
            raise OperationError("Failed to append completion log") from e
        self.db.refresh(entry)
        return entry

    def _latest(
        self, *, user_id: str, game_id: str, platform_id: str
    ) -> Optional[CompletionLog]:
        return self.db.scalar(
            select(CompletionLog)
            .where(
                CompletionLog.user_id == user_id,
                CompletionLog.game_id == game_id,
                CompletionLog.platform_id == platform_id,
            )
            .order_by(CompletionLog.logged_at.desc())
            .limit(1)
        )

    def calculate(self, *, user_id: str, game_id: str, platform_id: str) -> int:
        additions, ownership = load_effective_ownership(
            self.db, user_id=user_id, game_id=game_id, platform_id=platform_id
        )
        return compute_percentage(additions, ownership)

    def recalculate_completion(
        self, *, current_user: CurrentUser, game_id: str, platform_id: str
    ) -> RecalculateResponse:
        logger.info(
            f"User {current_user.id} recalculating completion of game {game_id} on {platform_id}"
        )
        if self.db.scalar(recalculation_lock(game_id)) is None:
            raise NotFoundError("Game not found")
        percentage = self.calculate(
            user_id=current_user.id, game_id=game_id, platform_id=platform_id
        )

        latest = self._latest(
            user_id=current_user.id, game_id=game_id, platform_id=platform_id
        )
        entry = None
        if latest is None or latest.percentage != percentage:
            entry = self._append(
                user_id=current_user.id,
                game_id=game_id,
                platform_id=platform_id,
                percentage=percentage,
                source=CompletionLogSource.AUTO,
                notes=AUTO_NOTE,
            )

        status = ProgressService(self.db).get_status(
            user_id=current_user.id, game_id=game_id, platform_id=platform_id
        )
        return RecalculateResponse(
            percentage=percentage,
            logged=entry is not None,
            entry=_log_response(entry) if entry is not None else None,
            status=status,
        )

    def list_completion_log(
        self,
        *,
        current_user: CurrentUser,
        game_id: str,
        platform_id: Optional[str],
        limit: int,
        offset: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> CompletionLogListResponse:
        if start_date and end_date and start_date > end_date:
            raise ServiceValidationError("start_date must be <= end_date")

        logger.info(
            f"User {current_user.id} requested completion log of game {game_id} with filters: "
            f"platform={platform_id}, start_date={start_date}, end_date={end_date}"
        )

        filters = [
            CompletionLog.user_id == current_user.id,
            CompletionLog.game_id == game_id,
        ]
        if platform_id is not None:
            filters.append(CompletionLog.platform_id == platform_id)
        if start_date:
            filters.append(CompletionLog.logged_at >= day_start(start_date))
        if end_date:
            filters.append(CompletionLog.logged_at <= day_end(end_date))

        query = select(CompletionLog).where(and_(*filters))
        count_query = select(func.count()).select_from(query.subquery())
        total_count = self.db.scalar(count_query)

        query = (
            query.order_by(CompletionLog.logged_at.desc()).offset(offset).limit(limit)
        )
        entries = self.db.scalars(query).all()

        return CompletionLogListResponse(
            entries=[_log_response(e) for e in entries],
            total=total_count or 0,
            total_minutes=total_minutes_for(
                self.db,
                user_id=current_user.id,
                game_id=game_id,
                platform_id=platform_id,
            ),
            limit=limit,
            offset=offset,
        )

    def append_completion_log(
        self,
        *,
        current_user: CurrentUser,
        game_id: str,
        platform_id: str,
        percentage: int,
        notes: Optional[str] = None,
    ) -> CompletionLogResponse:
        logger.info(
            f"User {current_user.id} logging {percentage}% for game {game_id} on {platform_id}"
        )
        if isinstance(percentage, bool) or not isinstance(percentage, int):
            raise ServiceValidationError("Percentage must be an integer")
        if not 0 <= percentage <= 100:
            raise ServiceValidationError("Percentage must be between 0 and 100")
        require_library_entry(
            self.db, user_id=current_user.id, game_id=game_id, platform_id=platform_id
        )

        entry = self._append(
            user_id=current_user.id,
            game_id=game_id,
            platform_id=platform_id,
            percentage=percentage,
            source=CompletionLogSource.MANUAL,
            notes=notes,
        )
        return _log_response(entry)

    def delete_completion_log(
        self, *, current_user: CurrentUser, game_id: str, log_id: str
    ) -> DeleteResponse:
        logger.info(f"User {current_user.id} deleting completion log {log_id}")
        entry = self.db.scalar(
            select(CompletionLog).where(
                CompletionLog.id == log_id,
                CompletionLog.user_id == current_user.id,
                CompletionLog.game_id == game_id,
            )
        )
        if entry is None:
            raise NotFoundError("Completion log not found")

        try:
            self.db.delete(entry)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error deleting completion log: {e}")
            raise OperationError("Failed to delete completion log") from e

        return DeleteResponse(success=True, message="Completion log deleted successfully")
