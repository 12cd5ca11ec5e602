from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request, HTTPException, Depends
from sqlalchemy.orm import Session

from .db import get_session
from . import models

SESSION_USER_KEY = "user_id"

ROLE_PARTICIPANT = "PARTICIPANT"
ROLE_ORGANIZER = "ORGANIZER"
ROLE_ADMIN = "ADMIN"
ROLES = (ROLE_PARTICIPANT, ROLE_ORGANIZER, ROLE_ADMIN)

@dataclass
class CurrentUser:
    id: str
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_staff(self) -> bool:
        return self.role in (ROLE_ORGANIZER, ROLE_ADMIN)

def log_in(request: Request, user: models.User) -> None:
    request.session.clear()
    request.session[SESSION_USER_KEY] = user.id

def log_out(request: Request) -> None:
    request.session.clear()

def get_current_user(request: Request, session: Session = Depends(get_session)) -> Optional[CurrentUser]:
    user_id = request.session.get(SESSION_USER_KEY)
    if not user_id:
        return None
    u = session.get(models.User, user_id)
    if u is None:
        # account removed since login
        request.session.clear()
        return None
    return CurrentUser(id=u.id, email=u.email, role=u.role)

def login_required(user: Optional[CurrentUser] = Depends(get_current_user)) -> CurrentUser:
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user

def staff_required(user: CurrentUser = Depends(login_required)) -> CurrentUser:
    if not user.is_staff:
        raise HTTPException(status_code=403, detail="Organizer or admin role required")
    return user

def admin_required(user: CurrentUser = Depends(login_required)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin required")
    return user
