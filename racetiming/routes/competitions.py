from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import services
from ..auth import staff_required
from ..db import get_session
from ..schemas import CompetitionCreate, CompetitionOut

router = APIRouter(prefix="/api/competitions", tags=["competitions"])


@router.get("", response_model=list[CompetitionOut])
def list_competitions(session: Session = Depends(get_session)):
    return [CompetitionOut.model_validate(c) for c in services.list_competitions(session)]


@router.post("", response_model=CompetitionOut, status_code=201, dependencies=[Depends(staff_required)])
def create_competition(payload: CompetitionCreate, session: Session = Depends(get_session)):
    return CompetitionOut.model_validate(services.create_competition(session, payload))


@router.get("/{competition_id}", response_model=CompetitionOut)
def get_competition(competition_id: str, session: Session = Depends(get_session)):
    c = services.get_competition(session, competition_id)
    if not c:
        raise HTTPException(status_code=404, detail="Competition not found")
    return CompetitionOut.model_validate(c)
