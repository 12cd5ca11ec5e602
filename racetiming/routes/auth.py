from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session

from .. import services
from ..auth import CurrentUser, log_in, log_out, login_required
from ..db import get_session
from ..schemas import LoginRequest, RegisterRequest, UserOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def wants_json_response(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    requested_with = request.headers.get("x-requested-with", "")
    return "application/json" in accept or requested_with == "XMLHttpRequest"


@router.post("/register")
def register(payload: RegisterRequest, session: Session = Depends(get_session)):
    u = services.register_user(session, payload)
    return {"message": "User registered successfully", "user": UserOut.model_validate(u).model_dump(by_alias=True)}


@router.post("/login")
def login(payload: LoginRequest, request: Request, session: Session = Depends(get_session)):
    try:
        u = services.authenticate_user(session, email=payload.email, password=payload.password)
    except services.AuthenticationError as e:
        logger.warning("Login failed for %s: %s", payload.email, e)
        return JSONResponse({"error": str(e)}, status_code=400)
    log_in(request, u)
    logger.info("User %s logged in", u.email)
    if wants_json_response(request):
        return {"message": "Logged in", "user": UserOut.model_validate(u).model_dump(by_alias=True)}
    return RedirectResponse(url="/", status_code=302)


@router.post("/logout")
def logout(request: Request):
    log_out(request)
    return {"message": "Logged out successfully"}


@router.get("/me")
def me(user: CurrentUser = Depends(login_required)):
    return {"user": {"id": user.id, "email": user.email, "role": user.role}}
