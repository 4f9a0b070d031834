from __future__ import annotations

"""
The governance state machine.

`transition(params, state, action)` is a pure, total function:

    (state, MintTokens(names))             any state; mint one token per holder
    (no voting,  ProposeChange(p))         open Voting(p, {})
    (voting,     AddVote(name, vote))      votes[name] = vote, before deadline
    (voting,     FinishVoting)             tally against required_votes, close
    anything else                          None

It performs no I/O, reads no clock and raises nothing for well-typed input,
so the proposer and every validator compute the same result. The deadline is
never compared here; AddVote only emits a ValidateBefore obligation for the
substrate to enforce.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .constraints import (
    Obligations,
    TxContext,
    must_mint,
    must_pay,
    must_spend_at_least,
    must_validate_before,
    unmet_spend,
)
from .errors import Rejection, RejectionKind
from .models import (
    AddVote,
    FinishVoting,
    GovInput,
    GovParams,
    GovState,
    MintTokens,
    ProposeChange,
    Voting,
    aye_count,
    close_voting,
    open_voting,
    with_vote,
)
from .tokens import BalanceView, Value, voting_value

Step = Tuple[Obligations, GovState]


def owns_voting_token(authority: str, token_name: str) -> Obligations:
    return must_spend_at_least(voting_value(authority, token_name))


def _mint_tokens(params: GovParams, state: GovState, action: MintTokens) -> Step:
    total = Value()
    obligations = Obligations()
    # zip: a holders/names length mismatch silently drops the extras
    for holder, name in zip(params.initial_holders, action.token_names):
        v = voting_value(state.minting_authority, name)
        total = total + v
        obligations = obligations + must_pay(holder, v)
    return obligations + must_mint(total), state


def _propose_change(state: GovState, action: ProposeChange) -> Step:
    obligations = owns_voting_token(state.minting_authority, action.proposal.token_name)
    return obligations, open_voting(state, action.proposal)


def _add_vote(state: GovState, voting: Voting, action: AddVote) -> Step:
    obligations = owns_voting_token(state.minting_authority, action.token_name) + must_validate_before(
        voting.proposal.voting_deadline
    )
    nxt = GovState(
        law=state.law,
        minting_authority=state.minting_authority,
        active_voting=with_vote(voting, action.token_name, action.vote),
    )
    return obligations, nxt


def _finish_voting(params: GovParams, state: GovState, voting: Voting) -> Step:
    ayes = aye_count(voting)
    law = voting.proposal.new_law if ayes >= int(params.required_votes) else state.law
    return Obligations(), close_voting(state, law)


def transition(params: GovParams, state: GovState, action: GovInput) -> Optional[Step]:
    if isinstance(action, MintTokens):
        return _mint_tokens(params, state, action)

    voting = state.active_voting
    if voting is None:
        if isinstance(action, ProposeChange):
            return _propose_change(state, action)
        return None

    if isinstance(action, AddVote):
        return _add_vote(state, voting, action)
    if isinstance(action, FinishVoting):
        return _finish_voting(params, state, voting)

    # ProposeChange while a voting is open, or an unknown input
    return None


# -----------------------------------------------------------------------------
# Value-returning wrapper
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Accepted:
    obligations: Obligations
    state: GovState

    @property
    def ok(self) -> bool:
        return True


TransitionOutcome = Union[Accepted, Rejection]


def evaluate(
    params: GovParams,
    state: GovState,
    action: GovInput,
    *,
    context: Optional[TxContext] = None,
    balances: Optional[BalanceView] = None,
) -> TransitionOutcome:
    """
    Run `transition` and classify the result.

    With a context and a balance view, possession obligations are checked too,
    so a missing token comes back as an AUTHORIZATION_FAILED rejection.
    """
    step = transition(params, state, action)
    if step is None:
        label = getattr(action, "kind", "") or type(action).__name__
        return Rejection(RejectionKind.TRANSITION_REJECTED, f"no_transition:{label}")

    obligations, nxt = step
    if context is not None and balances is not None:
        missing = unmet_spend(obligations, context, balances)
        if missing is not None:
            names = ",".join(n for _a, n, _q in missing.value.flatten())
            return Rejection(RejectionKind.AUTHORIZATION_FAILED, f"authorization_failed:{names}")

    return Accepted(obligations=obligations, state=nxt)
