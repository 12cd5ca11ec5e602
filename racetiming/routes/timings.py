from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from .. import services
from ..db import get_session
from ..schemas import TimingCreate, TimingOut

router = APIRouter(prefix="/api/timings", tags=["timings"])


@router.get("", response_model=list[TimingOut])
def list_timings(
    race_id: Optional[str] = Query(default=None, alias="raceId"),
    participant_id: Optional[str] = Query(default=None, alias="participantId"),
    checkpoint_id: Optional[str] = Query(default=None, alias="checkpointId"),
    session: Session = Depends(get_session),
):
    timings = services.list_timings(session, race_id=race_id, participant_id=participant_id, checkpoint_id=checkpoint_id)
    return [TimingOut.model_validate(t) for t in timings]


@router.post("", response_model=TimingOut, status_code=201)
def record_timing(payload: TimingCreate, session: Session = Depends(get_session)):
    return TimingOut.model_validate(services.create_timing(session, payload))


@router.get("/{timing_id}", response_model=TimingOut)
def get_timing(timing_id: str, session: Session = Depends(get_session)):
    t = services.get_timing(session, timing_id)
    if not t:
        raise HTTPException(status_code=404, detail="Timing record not found")
    return TimingOut.model_validate(t)


@router.delete("/{timing_id}")
def delete_timing(timing_id: str, session: Session = Depends(get_session)):
    t = services.get_timing(session, timing_id)
    if not t:
        raise HTTPException(status_code=404, detail="Timing record not found")
    services.delete_timing(session, t)
    return {"message": "Timing record deleted successfully"}
