from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import services
from ..db import get_session
from ..schemas import ParticipantCreate, ParticipantUpdate, ParticipantOut

router = APIRouter(prefix="/api/participants", tags=["participants"])


def _get_or_404(session: Session, participant_id: str):
    p = services.get_participant(session, participant_id)
    if not p:
        raise HTTPException(status_code=404, detail="Participant not found")
    return p


@router.get("", response_model=list[ParticipantOut])
def list_participants(session: Session = Depends(get_session)):
    return [ParticipantOut.model_validate(p) for p in services.list_participants(session)]


@router.post("", response_model=ParticipantOut, status_code=201)
def create_participant(payload: ParticipantCreate, session: Session = Depends(get_session)):
    return ParticipantOut.model_validate(services.create_participant(session, payload))


@router.get("/{participant_id}", response_model=ParticipantOut)
def get_participant(participant_id: str, session: Session = Depends(get_session)):
    return ParticipantOut.model_validate(_get_or_404(session, participant_id))


@router.put("/{participant_id}", response_model=ParticipantOut)
def update_participant(participant_id: str, payload: ParticipantUpdate, session: Session = Depends(get_session)):
    p = _get_or_404(session, participant_id)
    return ParticipantOut.model_validate(services.update_participant(session, p, payload))


@router.delete("/{participant_id}")
def delete_participant(participant_id: str, session: Session = Depends(get_session)):
    services.delete_participant(session, _get_or_404(session, participant_id))
    return {"message": "Participant deleted successfully"}
