from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import services
from ..db import get_session
from ..schemas import CheckpointCreate, CheckpointUpdate, CheckpointOut

router = APIRouter(prefix="/api/checkpoints", tags=["checkpoints"])


def _get_or_404(session: Session, checkpoint_id: str):
    c = services.get_checkpoint(session, checkpoint_id)
    if not c:
        raise HTTPException(status_code=404, detail="Checkpoint not found")
    return c


@router.get("", response_model=list[CheckpointOut])
def list_checkpoints(session: Session = Depends(get_session)):
    return [CheckpointOut.model_validate(c) for c in services.list_checkpoints(session)]


@router.post("", response_model=CheckpointOut, status_code=201)
def create_checkpoint(payload: CheckpointCreate, session: Session = Depends(get_session)):
    return CheckpointOut.model_validate(services.create_checkpoint(session, payload))


@router.get("/{checkpoint_id}", response_model=CheckpointOut)
def get_checkpoint(checkpoint_id: str, session: Session = Depends(get_session)):
    return CheckpointOut.model_validate(_get_or_404(session, checkpoint_id))


@router.put("/{checkpoint_id}", response_model=CheckpointOut)
def update_checkpoint(checkpoint_id: str, payload: CheckpointUpdate, session: Session = Depends(get_session)):
    c = _get_or_404(session, checkpoint_id)
    return CheckpointOut.model_validate(services.update_checkpoint(session, c, payload))


@router.delete("/{checkpoint_id}")
def delete_checkpoint(checkpoint_id: str, session: Session = Depends(get_session)):
    services.delete_checkpoint(session, _get_or_404(session, checkpoint_id))
    return {"message": "Checkpoint deleted successfully"}
