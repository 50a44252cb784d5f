from __future__ import annotations

from datetime import datetime, date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


# ===== Enums =====


class AdditionType(str, Enum):
    EDITION = "edition"
    DLC = "dlc"
    OTHER = "other"


class ProgressStatus(str, Enum):
    BACKLOG = "backlog"
    PLAYING = "playing"
    FINISHED = "finished"
    COMPLETED = "completed"
    DROPPED = "dropped"


class CompletionLogSource(str, Enum):
    MANUAL = "manual"
    AUTO = "auto"


# ===== Additions & ownership =====


class AdditionDetail(BaseModel):
    """Catalog fields of an addition, independent of any user."""

    id: str
    game_id: str
    name: str
    addition_type: AdditionType
    is_complete_edition: bool = False
    weight: float = 1.0
    required_for_full: bool = True
    release_date: Optional[date] = None


class AdditionResponse(AdditionDetail):
    owned: bool = False


class AdditionUpdate(BaseModel):
    weight: Optional[float] = Field(
        default=None, ge=0, description="Weight in the completion percentage"
    )
    required_for_full: Optional[bool] = Field(
        None, description="Whether the addition counts towards full completion"
    )


class OwnershipResponse(BaseModel):
    game_id: str
    platform_id: str
    edition_id: Optional[str] = None
    editions: list[AdditionResponse]
    dlcs: list[AdditionResponse]
    owned_dlc_ids: list[str]
    has_complete_edition: bool
    completion_percentage: int = Field(..., ge=0, le=100)


class EditionUpdate(BaseModel):
    platform_id: str = Field(..., description="Platform the edition is owned on")
    edition_id: Optional[str] = Field(
        None, description="Selected edition; null means the standard edition"
    )


class EditionUpdateResponse(BaseModel):
    edition_id: Optional[str] = None
    message: str
    completion_percentage: int = Field(..., ge=0, le=100)


class DlcOwnershipUpdate(BaseModel):
    platform_id: str = Field(..., description="Platform the DLCs are owned on")
    dlc_ids: list[str] = Field(
        ..., description="Complete set of owned DLC ids; omitted DLCs become un-owned"
    )


class DlcOwnershipResponse(BaseModel):
    owned_dlc_ids: list[str]
    message: str
    completion_percentage: int = Field(..., ge=0, le=100)


# ===== Completion log =====


class CompletionLogCreate(BaseModel):
    platform_id: str = Field(..., description="Platform the progress was made on")
    percentage: int = Field(..., ge=0, le=100, description="Completion percentage")
    notes: Optional[str] = Field(None, description="Free-form notes")


class CompletionLogResponse(BaseModel):
    id: str
    user_id: str
    game_id: str
    platform_id: str
    percentage: int = Field(..., ge=0, le=100)
    source: CompletionLogSource
    notes: Optional[str] = None
    logged_at: datetime


class CompletionLogListResponse(BaseModel):
    entries: list[CompletionLogResponse]
    total: int
    total_minutes: int
    limit: int
    offset: int


class RecalculateRequest(BaseModel):
    platform_id: str = Field(..., description="Platform to recalculate")


class RecalculateResponse(BaseModel):
    percentage: int = Field(..., ge=0, le=100)
    logged: bool = Field(..., description="Whether a new log entry was appended")
    entry: Optional[CompletionLogResponse] = None
    status: ProgressStatus


# ===== Play sessions =====


class SessionStart(BaseModel):
    platform_id: str = Field(..., description="Platform being played")
    started_at: Optional[datetime] = Field(
        None, description="Session start (defaults to now)"
    )
    notes: Optional[str] = Field(None, description="Session notes")


class SessionManual(BaseModel):
    platform_id: str = Field(..., description="Platform that was played")
    started_at: datetime = Field(..., description="When the session started")
    ended_at: Optional[datetime] = Field(None, description="When the session ended")
    duration_minutes: Optional[int] = Field(
        None, description="Duration; derived from started_at/ended_at when omitted"
    )
    notes: Optional[str] = Field(None, description="Session notes")


class SessionEnd(BaseModel):
    ended_at: Optional[datetime] = Field(
        None, description="Session end (defaults to now)"
    )
    duration_minutes: Optional[int] = Field(
        None, description="Duration; derived from the session times when omitted"
    )


class PlaySessionResponse(BaseModel):
    id: str
    user_id: str
    game_id: str
    platform_id: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    notes: Optional[str] = None
    is_active: bool
    game_title: Optional[str] = None
    created_at: Optional[datetime] = None


class PlaySessionListResponse(BaseModel):
    entries: list[PlaySessionResponse]
    total: int
    total_minutes: int
    limit: int
    offset: int


class ActiveSessionResponse(BaseModel):
    session: Optional[PlaySessionResponse] = None


# ===== Progress status =====


class ProgressUpdate(BaseModel):
    platform_id: str = Field(..., description="Platform of the progress record")
    status: ProgressStatus = Field(..., description="New progress status")


class ProgressResponse(BaseModel):
    game_id: str
    platform_id: str
    status: ProgressStatus
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    total_minutes: int = 0
    last_played: Optional[datetime] = None


class DeleteResponse(BaseModel):
    success: bool = Field(..., description="Whether the deletion was successful")
    message: str = Field(..., description="Success message")
