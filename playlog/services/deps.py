from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from playlog.db import get_db
from playlog.services.completion_service import CompletionService
from playlog.services.ownership_service import OwnershipService
from playlog.services.progress_service import ProgressService
from playlog.services.sessions_service import SessionsService


def get_ownership_service(db: Session = Depends(get_db)) -> OwnershipService:
    return OwnershipService(db)


def get_completion_service(db: Session = Depends(get_db)) -> CompletionService:
    return CompletionService(db)


def get_sessions_service(db: Session = Depends(get_db)) -> SessionsService:
    return SessionsService(db)


def get_progress_service(db: Session = Depends(get_db)) -> ProgressService:
    return ProgressService(db)
