from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from playlog.db_models import Game, LibraryEntry
from playlog.services.errors import NotFoundError


def require_game(db: Session, game_id: str) -> Game:
    game = db.get(Game, game_id)
    if game is None:
        raise NotFoundError("Game not found")
    return game


def require_library_entry(
    db: Session, *, user_id: str, game_id: str, platform_id: str
) -> LibraryEntry:
    entry = db.scalar(
        select(LibraryEntry).where(
            LibraryEntry.user_id == user_id,
            LibraryEntry.game_id == game_id,
            LibraryEntry.platform_id == platform_id,
        )
    )
    if entry is None:
        raise NotFoundError("Game not found in your library")
    return entry
