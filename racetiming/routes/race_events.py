from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .. import services
from ..auth import staff_required
from ..db import get_session
from ..schemas import RaceEventCreate, RaceEventUpdate, RaceEventOut, RaceEventPage

router = APIRouter(prefix="/api/race-events", tags=["race-events"])


def _get_or_404(session: Session, race_event_id: str):
    ev = services.get_race_event(session, race_event_id)
    if not ev:
        raise HTTPException(status_code=404, detail="Race event not found")
    return ev


@router.get("", response_model=RaceEventPage)
def list_race_events(request: Request, session: Session = Depends(get_session)):
    # Query keys are compiled by racetiming.filters; page/limit/sortBy/order drive paging.
    result = services.list_race_events(session, request.query_params)
    return RaceEventPage(
        items=[RaceEventOut.model_validate(ev) for ev in result["items"]],
        total=result["total"],
        page=result["page"],
        limit=result["limit"],
    )


@router.post("", response_model=RaceEventOut, status_code=201, dependencies=[Depends(staff_required)])
def create_race_event(payload: RaceEventCreate, session: Session = Depends(get_session)):
    ev = services.create_race_event(session, payload)
    return RaceEventOut.model_validate(_get_or_404(session, ev.id))


@router.get("/slug/{slug}", response_model=RaceEventOut)
def get_race_event_by_slug(slug: str, session: Session = Depends(get_session)):
    ev = services.get_race_event_by_slug(session, slug)
    if not ev:
        raise HTTPException(status_code=404, detail="Race event not found")
    return RaceEventOut.model_validate(ev)


@router.get("/{race_event_id}", response_model=RaceEventOut)
def get_race_event(race_event_id: str, session: Session = Depends(get_session)):
    return RaceEventOut.model_validate(_get_or_404(session, race_event_id))


@router.put("/{race_event_id}", response_model=RaceEventOut, dependencies=[Depends(staff_required)])
def update_race_event(race_event_id: str, payload: RaceEventUpdate, session: Session = Depends(get_session)):
    ev = services.update_race_event(session, _get_or_404(session, race_event_id), payload)
    return RaceEventOut.model_validate(ev)


@router.delete("/{race_event_id}", dependencies=[Depends(staff_required)])
def delete_race_event(race_event_id: str, session: Session = Depends(get_session)):
    services.delete_race_event(session, _get_or_404(session, race_event_id))
    return {"message": "Race event deleted successfully"}
