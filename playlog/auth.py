from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Cookie, Header, HTTPException


@dataclass(frozen=True)
class CurrentUser:
    id: str


def get_current_user(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    session_user: Optional[str] = Cookie(default=None, alias="session_user"),
) -> CurrentUser:
    """Identity stub in front of the real auth provider.

    The `X-User-Id` header wins over the `session_user` cookie. Blank or
    missing values are rejected with 401.
    """
    user_id = (x_user_id or "").strip() or (session_user or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return CurrentUser(id=user_id)
