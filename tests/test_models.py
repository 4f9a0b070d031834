import pytest

from lawvote_node.lawvote_runtime.models import (
    AddVote,
    FinishVoting,
    GovState,
    MintTokens,
    Proposal,
    ProposeChange,
    Voting,
    aye_count,
    close_voting,
    has_voted,
    input_from_json,
    input_to_json,
    nay_count,
    open_voting,
    state_from_json,
    state_hash,
    state_to_json,
    with_vote,
)


def test_with_vote_leaves_original_untouched(proposal):
    v0 = Voting(proposal=proposal, votes={})
    v1 = with_vote(v0, "vote1", True)
    assert v0.votes == {}
    assert v1.votes == {"vote1": True}
    assert has_voted(v1, "vote1")
    assert not has_voted(v0, "vote1")


def test_aye_and_nay_counts(proposal):
    v = Voting(proposal=proposal, votes={"vote1": True, "vote2": False, "vote3": True})
    assert aye_count(v) == 2
    assert nay_count(v) == 1


def test_open_and_close_voting(genesis, proposal):
    opened = open_voting(genesis, proposal)
    assert opened.active_voting == Voting(proposal, {})
    assert genesis.active_voting is None

    closed = close_voting(opened, b"other")
    assert closed.law == b"other"
    assert closed.active_voting is None
    assert closed.minting_authority == genesis.minting_authority


def test_state_json_preserves_state_and_hash(genesis, proposal):
    state = GovState(
        law=b"\x00binary law\xff",
        minting_authority=genesis.minting_authority,
        active_voting=Voting(proposal, {"vote2": False}),
    )
    raw = state_to_json(state)
    assert raw["law"] == state.law.hex()
    assert state_from_json(raw) == state
    assert state_hash(state_from_json(raw)) == state_hash(state)
    assert state_hash(state) != state_hash(genesis)


@pytest.mark.parametrize(
    "action",
    [
        MintTokens(["vote1", "vote2"]),
        ProposeChange(Proposal(b"x", "vote1", 5)),
        AddVote("vote2", False),
        FinishVoting(),
    ],
)
def test_input_json_kinds(action):
    raw = input_to_json(action)
    assert raw["kind"] == action.kind
    assert input_from_json(raw) == action


def test_unknown_input_kind():
    with pytest.raises(ValueError):
        input_from_json({"kind": "dissolve_parliament"})
