from __future__ import annotations

"""
Proposal / vote data model.

GovState is the committed, versioned governing state:

    law                current byte payload in force
    minting_authority  policy id the voting tokens were minted under (fixed)
    active_voting      None, or the Voting currently in flight

Values here are never mutated in place. Helpers such as `with_vote` and
`open_voting` return new objects and leave their inputs valid, which is what
lets the substrate compare the prior state it was handed against the one it
holds.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from .audit_proofs import canonical_json_bytes, sha256_hex


@dataclass(frozen=True)
class GovParams:
    base_token_name: str
    initial_holders: Tuple[str, ...]
    required_votes: int

    def __post_init__(self) -> None:
        # accept lists from callers, keep a tuple
        object.__setattr__(self, "initial_holders", tuple(self.initial_holders))


@dataclass(frozen=True)
class Proposal:
    new_law: bytes
    token_name: str
    voting_deadline: int  # POSIX ms


@dataclass(frozen=True)
class Voting:
    proposal: Proposal
    votes: Dict[str, bool] = field(default_factory=dict)


@dataclass(frozen=True)
class GovState:
    law: bytes
    minting_authority: str
    active_voting: Optional[Voting] = None


# -----------------------------------------------------------------------------
# GovInput: the action alphabet
# -----------------------------------------------------------------------------


class GovInput:
    kind = ""


@dataclass(frozen=True)
class MintTokens(GovInput):
    token_names: Tuple[str, ...]
    kind = "mint_tokens"

    def __post_init__(self) -> None:
        object.__setattr__(self, "token_names", tuple(self.token_names))


@dataclass(frozen=True)
class ProposeChange(GovInput):
    proposal: Proposal
    kind = "propose_change"


@dataclass(frozen=True)
class AddVote(GovInput):
    token_name: str
    vote: bool
    kind = "add_vote"


@dataclass(frozen=True)
class FinishVoting(GovInput):
    kind = "finish_voting"


# -----------------------------------------------------------------------------
# Predicates / successor builders
# -----------------------------------------------------------------------------


def has_active_voting(state: GovState) -> bool:
    return state.active_voting is not None


def has_voted(voting: Voting, token_name: str) -> bool:
    return token_name in voting.votes


def aye_count(voting: Voting) -> int:
    return sum(1 if v else 0 for v in voting.votes.values())


def nay_count(voting: Voting) -> int:
    return len(voting.votes) - aye_count(voting)


def with_vote(voting: Voting, token_name: str, vote: bool) -> Voting:
    votes = dict(voting.votes)
    votes[token_name] = bool(vote)
    return Voting(proposal=voting.proposal, votes=votes)


def open_voting(state: GovState, proposal: Proposal) -> GovState:
    return replace(state, active_voting=Voting(proposal=proposal, votes={}))


def close_voting(state: GovState, law: bytes) -> GovState:
    return replace(state, law=law, active_voting=None)


# -----------------------------------------------------------------------------
# JSON
# -----------------------------------------------------------------------------


def params_to_json(params: GovParams) -> Dict[str, Any]:
    return {
        "base_token_name": params.base_token_name,
        "initial_holders": list(params.initial_holders),
        "required_votes": int(params.required_votes),
    }


def proposal_to_json(p: Proposal) -> Dict[str, Any]:
    return {"new_law": p.new_law.hex(), "token_name": p.token_name, "voting_deadline": int(p.voting_deadline)}


def proposal_from_json(raw: Mapping[str, Any]) -> Proposal:
    return Proposal(
        new_law=bytes.fromhex(str(raw["new_law"])),
        token_name=str(raw["token_name"]),
        voting_deadline=int(raw["voting_deadline"]),
    )


def state_to_json(state: GovState) -> Dict[str, Any]:
    voting = None
    if state.active_voting is not None:
        voting = {
            "proposal": proposal_to_json(state.active_voting.proposal),
            "votes": {k: bool(v) for k, v in state.active_voting.votes.items()},
        }
    return {"law": state.law.hex(), "minting_authority": state.minting_authority, "active_voting": voting}


def state_from_json(raw: Mapping[str, Any]) -> GovState:
    voting = None
    rv = raw.get("active_voting")
    if isinstance(rv, Mapping):
        voting = Voting(
            proposal=proposal_from_json(rv["proposal"]),
            votes={str(k): bool(v) for k, v in (rv.get("votes") or {}).items()},
        )
    return GovState(
        law=bytes.fromhex(str(raw.get("law", ""))),
        minting_authority=str(raw["minting_authority"]),
        active_voting=voting,
    )


def state_hash(state: GovState) -> str:
    return sha256_hex(canonical_json_bytes(state_to_json(state)))


def input_to_json(action: GovInput) -> Dict[str, Any]:
    if isinstance(action, MintTokens):
        return {"kind": action.kind, "token_names": list(action.token_names)}
    if isinstance(action, ProposeChange):
        return {"kind": action.kind, "proposal": proposal_to_json(action.proposal)}
    if isinstance(action, AddVote):
        return {"kind": action.kind, "token_name": action.token_name, "vote": bool(action.vote)}
    if isinstance(action, FinishVoting):
        return {"kind": action.kind}
    raise TypeError(f"unknown governance input {action!r}")


def input_from_json(raw: Mapping[str, Any]) -> GovInput:
    kind = raw.get("kind")
    if kind == MintTokens.kind:
        names: Sequence[str] = raw.get("token_names") or []
        return MintTokens(tuple(str(n) for n in names))
    if kind == ProposeChange.kind:
        return ProposeChange(proposal_from_json(raw["proposal"]))
    if kind == AddVote.kind:
        return AddVote(token_name=str(raw["token_name"]), vote=bool(raw["vote"]))
    if kind == FinishVoting.kind:
        return FinishVoting()
    raise ValueError(f"unknown governance input kind {kind!r}")
