import pytest

from lawvote_node.lawvote_runtime.clock import ManualClock
from lawvote_node.lawvote_runtime.ledger import LocalLedger
from lawvote_node.lawvote_runtime.models import GovParams, GovState, Proposal
from lawvote_node.lawvote_runtime.session import GovernanceSession
from lawvote_node.lawvote_runtime.tokens import minting_authority_for

HOLDERS = ("alice", "bob", "carol")
DEADLINE = 10_000


@pytest.fixture
def params():
    return GovParams(base_token_name="vote", initial_holders=HOLDERS, required_votes=2)


@pytest.fixture
def authority(params):
    return minting_authority_for(params)


@pytest.fixture
def genesis(authority):
    return GovState(law=b"law v1", minting_authority=authority, active_voting=None)


@pytest.fixture
def proposal():
    return Proposal(new_law=b"law v2", token_name="vote1", voting_deadline=DEADLINE)


@pytest.fixture
def clock():
    return ManualClock(start_ms=1_000)


@pytest.fixture
def ledger(params, clock):
    return LocalLedger(params, clock=clock)


@pytest.fixture
def session(params, ledger, clock):
    """Session with genesis already run: alice/bob/carol hold vote1..vote3."""
    s = GovernanceSession(params, ledger, clock, operator="operator")
    s.new_law(b"law v1")
    return s
