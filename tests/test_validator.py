from dataclasses import replace

from lawvote_node.lawvote_runtime.constraints import Obligations, TxContext
from lawvote_node.lawvote_runtime.crypto_utils import generate_keypair, sign_context
from lawvote_node.lawvote_runtime.models import (
    AddVote,
    FinishVoting,
    GovParams,
    GovState,
    MintTokens,
    Proposal,
    ProposeChange,
    Voting,
)
from lawvote_node.lawvote_runtime.tokens import Value, minting_authority_for, voting_value
from lawvote_node.lawvote_runtime.transition import transition
from lawvote_node.lawvote_runtime.validator import Submission, submission_digest, validate_submission


class _Balances:
    def __init__(self, by_holder):
        self.by_holder = by_holder

    def balance_of(self, holder):
        return self.by_holder.get(holder, Value())


def _honest(params, prior, action, ctx, version=0):
    obligations, nxt = transition(params, prior, action)
    return Submission(version, action, nxt, obligations, ctx)


def _funded(genesis):
    a = genesis.minting_authority
    return _Balances({h: voting_value(a, f"vote{i}") for i, h in enumerate(["alice", "bob", "carol"], start=1)})


def test_honest_proposal_is_valid(params, genesis, proposal):
    sub = _honest(params, genesis, ProposeChange(proposal), TxContext(signer="alice"))
    assert validate_submission(params, genesis, sub, _funded(genesis), now_ms=0) is None


def test_honest_mint_is_valid(params, genesis):
    sub = _honest(params, genesis, MintTokens(["vote1", "vote2", "vote3"]), TxContext(signer="operator"))
    assert validate_submission(params, genesis, sub, _Balances({}), now_ms=0) is None


def test_illegal_action(params, genesis):
    sub = Submission(0, FinishVoting(), genesis, Obligations(), TxContext(signer="x"))
    assert validate_submission(params, genesis, sub, _Balances({}), now_ms=0) == "no_transition"


def test_forged_successor_state(params, genesis, proposal):
    sub = _honest(params, genesis, ProposeChange(proposal), TxContext(signer="alice"))
    forged = replace(sub, new_state=replace(sub.new_state, law=b"sneaky"))
    assert validate_submission(params, genesis, forged, _funded(genesis), now_ms=0) == "state_mismatch"


def test_dropped_obligation(params, genesis, proposal):
    sub = _honest(params, genesis, ProposeChange(proposal), TxContext(signer="alice"))
    forged = replace(sub, obligations=Obligations())
    assert validate_submission(params, genesis, forged, _funded(genesis), now_ms=0) == "obligations_mismatch"


def test_unfunded_signer(params, genesis, proposal):
    sub = _honest(params, genesis, ProposeChange(proposal), TxContext(signer="mallory"))
    reason = validate_submission(params, genesis, sub, _funded(genesis), now_ms=0)
    assert reason == "authorization_failed:vote1"


def test_vote_window_must_end_by_deadline(params, genesis, proposal):
    prior = GovState(genesis.law, genesis.minting_authority, Voting(proposal, {}))
    deadline = proposal.voting_deadline
    balances = _funded(genesis)

    inside = _honest(params, prior, AddVote("vote2", True), TxContext("bob", 0, deadline))
    assert validate_submission(params, prior, inside, balances, now_ms=deadline) is None

    straddling = _honest(params, prior, AddVote("vote2", True), TxContext("bob", 0, deadline + 1))
    assert validate_submission(params, prior, straddling, balances, now_ms=0) == "outside_validity_interval"

    open_ended = _honest(params, prior, AddVote("vote2", True), TxContext("bob", 0, None))
    assert validate_submission(params, prior, open_ended, balances, now_ms=0) == "outside_validity_interval"

    late = _honest(params, prior, AddVote("vote2", True), TxContext("bob", 0, deadline))
    assert validate_submission(params, prior, late, balances, now_ms=deadline + 1) == "outside_validity_interval"

    early = _honest(params, prior, AddVote("vote2", True), TxContext("bob", 500, deadline))
    assert validate_submission(params, prior, early, balances, now_ms=100) == "outside_validity_interval"


def test_signed_submissions():
    keys = [generate_keypair() for _ in range(2)]
    holders = tuple(pk for _sk, pk in keys)
    params = GovParams("vote", holders, 1)
    authority = minting_authority_for(params)
    prior = GovState(b"v1", authority, None)
    balances = _Balances({holders[0]: voting_value(authority, "vote1")})
    proposal_action = ProposeChange(Proposal(b"v2", "vote1", 99))

    unsigned = _honest(params, prior, proposal_action, TxContext(signer=holders[0]))
    assert validate_submission(params, prior, unsigned, balances, now_ms=0, require_signed=True) == "bad_signature"

    signed = replace(unsigned, context=sign_context(unsigned.context, keys[0][0], submission_digest(unsigned)))
    assert validate_submission(params, prior, signed, balances, now_ms=0, require_signed=True) is None

    wrong_key = replace(unsigned, context=sign_context(unsigned.context, keys[1][0], submission_digest(unsigned)))
    assert validate_submission(params, prior, wrong_key, balances, now_ms=0, require_signed=True) == "bad_signature"


def test_signature_not_needed_without_possession_claim(params, genesis, proposal):
    prior = GovState(genesis.law, genesis.minting_authority, Voting(proposal, {"vote1": True}))
    sub = _honest(params, prior, FinishVoting(), TxContext(signer="operator"))
    assert validate_submission(params, prior, sub, _Balances({}), now_ms=0, require_signed=True) is None


def test_digest_ignores_signature(params, genesis, proposal):
    sub = _honest(params, genesis, ProposeChange(proposal), TxContext(signer="alice"))
    signed = replace(sub, context=replace(sub.context, signature="ab" * 32))
    assert submission_digest(sub) == submission_digest(signed)
