from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from lawvote_node.lawvote_runtime.errors import (
    AuthorizationFailure,
    GovError,
    LedgerNotInitialised,
    StaleStateError,
    TransitionRejected,
)
from lawvote_node.lawvote_runtime.models import GovState, Proposal, aye_count, nay_count
from lawvote_node.lawvote_runtime.session import GovernanceSession

router = APIRouter(prefix="/governance", tags=["governance"])


__all__ = [
    "router",
    "NewLawRequest",
    "ProposeRequest",
    "AddVoteRequest",
]


class NewLawRequest(BaseModel):
    law: str


class ProposeRequest(BaseModel):
    signer: str
    new_law: str
    token_name: str
    voting_deadline_ms: int
    auto_tally: bool = False


class AddVoteRequest(BaseModel):
    signer: str
    token_name: str
    vote: bool


def get_session(request: Request) -> GovernanceSession:
    return request.app.state.session


def _state_view(state: GovState) -> Dict[str, Any]:
    voting: Optional[Dict[str, Any]] = None
    if state.active_voting is not None:
        v = state.active_voting
        voting = {
            "new_law": v.proposal.new_law.decode("utf-8", errors="replace"),
            "token_name": v.proposal.token_name,
            "voting_deadline_ms": v.proposal.voting_deadline,
            "votes": dict(v.votes),
            "ayes": aye_count(v),
            "nays": nay_count(v),
        }
    return {
        "law": state.law.decode("utf-8", errors="replace"),
        "law_hex": state.law.hex(),
        "minting_authority": state.minting_authority,
        "active_voting": voting,
    }


def _raise_http(e: GovError) -> None:
    if isinstance(e, AuthorizationFailure):
        raise HTTPException(status_code=403, detail=str(e)) from e
    if isinstance(e, (StaleStateError, LedgerNotInitialised)):
        raise HTTPException(status_code=409, detail=str(e)) from e
    if isinstance(e, TransitionRejected):
        raise HTTPException(status_code=400, detail=e.reason) from e
    raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/new-law")
def new_law(payload: NewLawRequest, session: GovernanceSession = Depends(get_session)):
    try:
        state = session.new_law(payload.law.encode("utf-8"))
    except GovError as e:
        _raise_http(e)
    return {"ok": True, "state": _state_view(state)}


@router.post("/propose")
def propose(payload: ProposeRequest, request: Request, session: GovernanceSession = Depends(get_session)):
    proposal = Proposal(
        new_law=payload.new_law.encode("utf-8"),
        token_name=payload.token_name,
        voting_deadline=int(payload.voting_deadline_ms),
    )
    if payload.auto_tally:
        # propose synchronously so errors reach the caller, then tally in the background
        try:
            session.propose(payload.signer, proposal)
        except GovError as e:
            _raise_http(e)
        cycle = session.start_tally(proposal)
        # keep only cycles still waiting on a deadline
        live = [c for c in request.app.state.cycles if not c.join(0)]
        live.append(cycle)
        request.app.state.cycles = live
        return {"ok": True, "auto_tally": True, "state": _state_view(session.state())}

    try:
        state = session.propose(payload.signer, proposal)
    except GovError as e:
        _raise_http(e)
    return {"ok": True, "auto_tally": False, "state": _state_view(state)}


@router.post("/add-vote")
def add_vote(payload: AddVoteRequest, session: GovernanceSession = Depends(get_session)):
    try:
        state = session.add_vote(payload.signer, payload.token_name, payload.vote)
    except GovError as e:
        _raise_http(e)
    return {"ok": True, "state": _state_view(state)}


@router.post("/finish")
def finish(session: GovernanceSession = Depends(get_session)):
    try:
        state = session.finish_voting()
    except GovError as e:
        _raise_http(e)
    return {"ok": True, "state": _state_view(state)}


@router.get("/state")
def get_state(session: GovernanceSession = Depends(get_session)):
    try:
        version, state = session.ledger.latest()
    except GovError as e:
        _raise_http(e)
    tip = session.ledger.tip()
    return {
        "ok": True,
        "version": version,
        "tip": {"block_no": tip.block_no, "block_id": tip.block_id, "slot_ms": tip.slot_ms},
        "state": _state_view(state),
    }


@router.get("/balances/{holder}")
def get_balance(holder: str, session: GovernanceSession = Depends(get_session)):
    return {"ok": True, "holder": holder, "balance": session.ledger.balance_of(holder).to_json()}


@router.get("/history")
def get_history(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    session: GovernanceSession = Depends(get_session),
):
    result = session.ledger.history(page=page, page_size=page_size)
    items = [r.to_json() for r in result.items]
    return {
        "ok": True,
        "page_size": result.page_size,
        "page_number": result.page_number,
        "total_pages": result.total_pages,
        "items": items,
        "history_root": session.ledger.history_root(),
    }
