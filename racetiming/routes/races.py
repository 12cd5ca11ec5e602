from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from .. import services
from ..auth import staff_required
from ..db import get_session
from ..schemas import RaceCreate, RaceUpdate, RaceOut

router = APIRouter(prefix="/api/races", tags=["races"])


def _get_or_404(session: Session, race_id: str):
    race = services.get_race(session, race_id)
    if not race:
        raise HTTPException(status_code=404, detail="Race not found")
    return race


@router.get("", response_model=list[RaceOut])
def list_races(
    race_event_id: Optional[str] = Query(default=None, alias="raceEventId"),
    session: Session = Depends(get_session),
):
    return [RaceOut.model_validate(r) for r in services.list_races(session, race_event_id)]


@router.post("", response_model=RaceOut, status_code=201, dependencies=[Depends(staff_required)])
def create_race(payload: RaceCreate, session: Session = Depends(get_session)):
    return RaceOut.model_validate(services.create_race(session, payload))


@router.get("/{race_id}", response_model=RaceOut)
def get_race(race_id: str, session: Session = Depends(get_session)):
    return RaceOut.model_validate(_get_or_404(session, race_id))


@router.put("/{race_id}", response_model=RaceOut, dependencies=[Depends(staff_required)])
def update_race(race_id: str, payload: RaceUpdate, session: Session = Depends(get_session)):
    return RaceOut.model_validate(services.update_race(session, _get_or_404(session, race_id), payload))


@router.delete("/{race_id}", dependencies=[Depends(staff_required)])
def delete_race(race_id: str, session: Session = Depends(get_session)):
    services.delete_race(session, _get_or_404(session, race_id))
    return {"message": "Race deleted successfully"}
