# freelanceflow/api/routes/proposals.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from freelanceflow.api.models import (
    ProjectOut,
    ProposalCreate,
    ProposalOut,
    ProposalStatusChange,
    ProposalUpdate,
    dump,
)
from freelanceflow.api.security import require_caller
from freelanceflow.db.connect import get_session_dep
from freelanceflow.db.models import Member
from freelanceflow.matching import service

router = APIRouter(prefix="/proposals", tags=["proposals"])


@router.get("")
@router.get("/")
def list_proposals(
    project: Optional[str] = Query(default=None),
    freelancer: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    caller: Member = Depends(require_caller),
    db: Session = Depends(get_session_dep),
):
    rows = service.list_proposals(db, caller, project=project, freelancer=freelancer, status=status)
    return {"proposals": [dump(ProposalOut, proposal) for proposal in rows]}


@router.get("/{proposal_id}")
def get_proposal(
    proposal_id: str,
    caller: Member = Depends(require_caller),
    db: Session = Depends(get_session_dep),
):
    proposal = service.get_proposal(db, proposal_id, caller)
    return {"proposal": dump(ProposalOut, proposal)}


@router.post("", status_code=201)
@router.post("/", status_code=201, include_in_schema=False)
def submit_proposal(
    payload: ProposalCreate,
    caller: Member = Depends(require_caller),
    db: Session = Depends(get_session_dep),
):
    content = payload.model_dump(exclude={"project_id"})
    proposal = service.submit_proposal(db, payload.project_id, caller, content)
    return {"proposal": dump(ProposalOut, proposal)}


@router.put("/{proposal_id}")
def update_proposal(
    proposal_id: str,
    payload: ProposalUpdate,
    caller: Member = Depends(require_caller),
    db: Session = Depends(get_session_dep),
):
    proposal = service.update_proposal(db, proposal_id, caller, payload.model_dump(exclude_unset=True))
    return {"proposal": dump(ProposalOut, proposal)}


@router.patch("/{proposal_id}/status")
def change_proposal_status(
    proposal_id: str,
    payload: ProposalStatusChange,
    caller: Member = Depends(require_caller),
    db: Session = Depends(get_session_dep),
):
    if payload.status == "accepted":
        proposal, project = service.accept_proposal(db, proposal_id, caller, note=payload.note)
        return {"proposal": dump(ProposalOut, proposal), "project": dump(ProjectOut, project)}
    if payload.status == "rejected":
        proposal = service.reject_proposal(db, proposal_id, caller, note=payload.note)
    else:
        proposal = service.withdraw_proposal(db, proposal_id, caller)
    return {"proposal": dump(ProposalOut, proposal)}
