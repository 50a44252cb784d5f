from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Optional
from uuid import uuid4

from sqlalchemy import and_, case, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from playlog.auth import CurrentUser
from playlog.db import upsert
from playlog.db_models import Game, PlaySession, UserPlaytime
from playlog.schemas import (
    ActiveSessionResponse,
    DeleteResponse,
    PlaySessionListResponse,
    PlaySessionResponse,
)
from playlog.services.completion_service import total_minutes_for
from playlog.services.errors import (
    ConflictError,
    NotFoundError,
    OperationError,
    ServiceValidationError,
)
from playlog.services.lookups import require_library_entry
from playlog.services.progress_service import ProgressService
from playlog.utils import day_end, day_start, derive_duration_minutes, ensure_utc, utcnow

logger = logging.getLogger("playlog.service.sessions")

ACTIVE_SESSION_CONFLICT = "You already have an active session"


def _session_response(
    play_session: PlaySession, game_title: Optional[str] = None
) -> PlaySessionResponse:
    return PlaySessionResponse(
        id=play_session.id,
        user_id=play_session.user_id,
        game_id=play_session.game_id,
        platform_id=play_session.platform_id,
        started_at=ensure_utc(play_session.started_at),
        ended_at=ensure_utc(play_session.ended_at),
        duration_minutes=play_session.duration_minutes,
        notes=play_session.notes,
        is_active=play_session.ended_at is None,
        game_title=game_title,
        created_at=ensure_utc(play_session.created_at),
    )


def _counted_minutes(duration: Optional[int]) -> int:
    """Minutes a session contributes to the aggregate; negative spans add nothing."""
    return max(duration or 0, 0)


def _warn_if_non_positive(duration: int, play_session_id: str) -> None:
    if duration <= 0:
        logger.warning(
            f"Session {play_session_id} has a non-positive duration of {duration} minutes"
        )


class SessionsService:
    """Play sessions: one active timer per user, plus the playtime aggregate."""

    def __init__(self, db: Session):
        self.db = db

    # ----- helpers -----

    def _find_active_session(self, user_id: str) -> Optional[PlaySession]:
        return self.db.scalar(
            select(PlaySession).where(
                PlaySession.user_id == user_id, PlaySession.ended_at.is_(None)
            )
        )

    def _get_owned_session(
        self, *, user_id: str, game_id: str, session_id: str
    ) -> PlaySession:
        play_session = self.db.scalar(
            select(PlaySession).where(
                PlaySession.id == session_id,
                PlaySession.user_id == user_id,
                PlaySession.game_id == game_id,
            )
        )
        if play_session is None:
            raise NotFoundError("Session not found")
        return play_session

    def _apply_playtime_delta(
        self,
        *,
        user_id: str,
        game_id: str,
        platform_id: str,
        delta: int,
        last_played: Optional[datetime] = None,
    ) -> None:
        """Add ``delta`` minutes to the aggregate, floored at zero.

        Callers pass ``_counted_minutes`` of a session so that logging and
        deleting it are exact inverses.

        Issued as a single relative upsert so concurrent edits of the same
        (user, game, platform) never overwrite each other.
        """
        new_total = UserPlaytime.total_minutes + delta
        set_ = {"total_minutes": case((new_total < 0, 0), else_=new_total)}
        if last_played is not None:
            set_["last_played"] = last_played

        stmt = upsert(self.db, UserPlaytime).values(
            id=str(uuid4()),
            user_id=user_id,
            game_id=game_id,
            platform_id=platform_id,
            total_minutes=max(delta, 0),
            last_played=last_played,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "game_id", "platform_id"], set_=set_
        )
        self.db.execute(stmt)

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error during {action}: {e}")
            raise OperationError(f"Failed to {action}") from e

    # ----- operations -----

    def start_session(
        self,
        *,
        current_user: CurrentUser,
        game_id: str,
        platform_id: str,
        started_at: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> PlaySessionResponse:
        logger.info(
            f"User {current_user.id} starting session for game {game_id} on {platform_id}"
        )
        require_library_entry(
            self.db, user_id=current_user.id, game_id=game_id, platform_id=platform_id
        )
        now = utcnow()

        if self._find_active_session(current_user.id) is not None:
            logger.warning(f"User {current_user.id} already has an active session")
            raise ConflictError(ACTIVE_SESSION_CONFLICT)

        ProgressService(self.db).start_playing(
            user_id=current_user.id, game_id=game_id, platform_id=platform_id, now=now
        )
        play_session = PlaySession(
            id=str(uuid4()),
            user_id=current_user.id,
            game_id=game_id,
            platform_id=platform_id,
            started_at=ensure_utc(started_at) or now,
            ended_at=None,
            duration_minutes=None,
            notes=notes,
            created_at=now,
        )

        try:
            self.db.add(play_session)
            self.db.commit()
        except IntegrityError as e:
            # Lost the race on uq_play_sessions_user_active
            self.db.rollback()
            logger.warning(
                f"Concurrent session start rejected for user {current_user.id}: {e}"
            )
            raise ConflictError(ACTIVE_SESSION_CONFLICT) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error starting session: {e}")
            raise OperationError("Failed to start session") from e

        self.db.refresh(play_session)
        return _session_response(play_session)

    def manual_session(
        self,
        *,
        current_user: CurrentUser,
        game_id: str,
        platform_id: str,
        started_at: datetime,
        ended_at: Optional[datetime] = None,
        duration_minutes: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> PlaySessionResponse:
        logger.info(
            f"User {current_user.id} logging manual session for game {game_id} on {platform_id}"
        )
        started_at = ensure_utc(started_at)
        ended_at = ensure_utc(ended_at)
        if ended_at is None:
            if duration_minutes is None:
                raise ServiceValidationError(
                    "Manual sessions need ended_at or duration_minutes"
                )
            ended_at = started_at + timedelta(minutes=duration_minutes)
        if duration_minutes is None:
            duration_minutes = derive_duration_minutes(started_at, ended_at)

        require_library_entry(
            self.db, user_id=current_user.id, game_id=game_id, platform_id=platform_id
        )

        play_session = PlaySession(
            id=str(uuid4()),
            user_id=current_user.id,
            game_id=game_id,
            platform_id=platform_id,
            started_at=started_at,
            ended_at=ended_at,
            duration_minutes=duration_minutes,
            notes=notes,
            created_at=utcnow(),
        )
        _warn_if_non_positive(duration_minutes, play_session.id)

        self.db.add(play_session)
        self._apply_playtime_delta(
            user_id=current_user.id,
            game_id=game_id,
            platform_id=platform_id,
            delta=_counted_minutes(duration_minutes),
            last_played=ended_at,
        )
        self._commit("log session")
        self.db.refresh(play_session)
        return _session_response(play_session)

    def end_session(
        self,
        *,
        current_user: CurrentUser,
        game_id: str,
        session_id: str,
        ended_at: Optional[datetime] = None,
        duration_minutes: Optional[int] = None,
    ) -> PlaySessionResponse:
        logger.info(f"User {current_user.id} ending session {session_id}")
        play_session = self._get_owned_session(
            user_id=current_user.id, game_id=game_id, session_id=session_id
        )
        if play_session.ended_at is not None:
            raise NotFoundError("Active session not found")

        ended_at = ensure_utc(ended_at) or utcnow()
        if duration_minutes is None:
            duration_minutes = derive_duration_minutes(play_session.started_at, ended_at)
        _warn_if_non_positive(duration_minutes, play_session.id)

        # Conditional update: a concurrent end of the same session matches nothing
        result = self.db.execute(
            update(PlaySession)
            .where(PlaySession.id == play_session.id, PlaySession.ended_at.is_(None))
            .values(ended_at=ended_at, duration_minutes=duration_minutes)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise NotFoundError("Active session not found")

        self._apply_playtime_delta(
            user_id=current_user.id,
            game_id=game_id,
            platform_id=play_session.platform_id,
            delta=_counted_minutes(duration_minutes),
            last_played=ended_at,
        )
        self._commit("end session")
        self.db.refresh(play_session)
        return _session_response(play_session)

    def delete_session(
        self, *, current_user: CurrentUser, game_id: str, session_id: str
    ) -> DeleteResponse:
        logger.info(f"User {current_user.id} deleting session {session_id}")
        play_session = self._get_owned_session(
            user_id=current_user.id, game_id=game_id, session_id=session_id
        )
        if play_session.ended_at is None:
            raise ConflictError("End the active session before deleting it")

        counted = _counted_minutes(play_session.duration_minutes)
        platform_id = play_session.platform_id
        self.db.delete(play_session)
        if counted:
            self._apply_playtime_delta(
                user_id=current_user.id,
                game_id=game_id,
                platform_id=platform_id,
                delta=-counted,
            )
        self._commit("delete session")
        return DeleteResponse(success=True, message="Session deleted successfully")

    def get_active_session(self, *, current_user: CurrentUser) -> ActiveSessionResponse:
        result = self.db.execute(
            select(PlaySession, Game.title)
            .outerjoin(Game, PlaySession.game_id == Game.id)
            .where(PlaySession.user_id == current_user.id, PlaySession.ended_at.is_(None))
            .order_by(PlaySession.started_at.desc())
            .limit(1)
        ).first()
        if result is None:
            return ActiveSessionResponse(session=None)
        play_session, title = result
        return ActiveSessionResponse(session=_session_response(play_session, title))

    def list_sessions(
        self,
        *,
        current_user: CurrentUser,
        game_id: str,
        platform_id: Optional[str],
        limit: int,
        offset: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> PlaySessionListResponse:
        if start_date and end_date and start_date > end_date:
            raise ServiceValidationError("start_date must be <= end_date")

        filters = [
            PlaySession.user_id == current_user.id,
            PlaySession.game_id == game_id,
        ]
        if platform_id is not None:
            filters.append(PlaySession.platform_id == platform_id)
        if start_date:
            filters.append(PlaySession.started_at >= day_start(start_date))
        if end_date:
            filters.append(PlaySession.started_at <= day_end(end_date))

        query = (
            select(PlaySession, Game.title)
            .outerjoin(Game, PlaySession.game_id == Game.id)
            .where(and_(*filters))
        )
        count_query = select(func.count()).select_from(
            select(PlaySession.id).where(and_(*filters)).subquery()
        )
        total_count = self.db.scalar(count_query)

        query = query.order_by(PlaySession.started_at.desc()).offset(offset).limit(limit)
        results = self.db.execute(query).all()

        return PlaySessionListResponse(
            entries=[_session_response(s, title) for s, title in results],
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
