from __future__ import annotations

"""
GovernanceSession: drives one governance instance against its substrate.

Each step reads the latest committed (version, state), evaluates the
transition locally, and submits the successor for conditional commit:

    Committed  -> done
    Stale      -> reload and recompute, up to max_attempts
    Rejected   -> TransitionRejected / AuthorizationFailure to the caller

Beyond single steps the session owns two longer behaviours:

- genesis (`new_law`): initialise the instance and mint one voting token per
  initial holder, named base_token_name + 1..N;
- the timed tally (`run_proposal`): propose, wait for the voting deadline on a
  cancellable clock wait, then submit FinishVoting if that proposal is still
  the active one. A cancelled wait leaves the voting open; nothing tallies it
  automatically.
"""

import logging
import threading
from dataclasses import replace
from typing import Any, Callable, Dict, Optional

from .clock import SystemClock
from .constraints import TxContext
from .crypto_utils import sign_context
from .errors import AuthorizationFailure, RejectionKind, StaleStateError, TransitionRejected
from .ledger import Committed, LocalLedger, Rejected, Stale
from .models import AddVote, FinishVoting, GovInput, GovParams, GovState, MintTokens, Proposal, ProposeChange
from .tokens import genesis_token_names, minting_authority_for
from .transition import Accepted, evaluate
from .validator import Submission, submission_digest

log = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


def _token_of(action: GovInput) -> str:
    if isinstance(action, ProposeChange):
        return action.proposal.token_name
    if isinstance(action, AddVote):
        return action.token_name
    return ""


class GovernanceSession:
    def __init__(
        self,
        params: GovParams,
        ledger: LocalLedger,
        clock: Any = None,
        *,
        operator: str = "operator",
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        signing_keys: Optional[Dict[str, str]] = None,
    ) -> None:
        self.params = params
        self.ledger = ledger
        self.clock = clock or SystemClock()
        self.operator = operator
        self.max_attempts = max(1, int(max_attempts))
        self.signing_keys = dict(signing_keys or {})

    # ------------------------
    # Reads
    # ------------------------
    def state(self) -> GovState:
        return self.ledger.latest()[1]

    # ------------------------
    # Genesis
    # ------------------------
    def new_law(self, law: bytes) -> GovState:
        authority = minting_authority_for(self.params)
        self.ledger.initialise(GovState(law=bytes(law), minting_authority=authority, active_voting=None))
        names = genesis_token_names(self.params.base_token_name, self.params.initial_holders)
        self.run_step(MintTokens(tuple(names)), signer=self.operator)
        log.info("Minted %d voting tokens under %s", len(names), authority)
        return self.state()

    # ------------------------
    # Steps
    # ------------------------
    def _context(self, action: GovInput, state: GovState, signer: str) -> TxContext:
        if isinstance(action, AddVote) and state.active_voting is not None:
            return TxContext(
                signer=signer,
                valid_from_ms=self.clock.now_ms(),
                valid_to_ms=state.active_voting.proposal.voting_deadline,
            )
        return TxContext(signer=signer)

    def _sign(self, sub: Submission) -> Submission:
        sk = self.signing_keys.get(sub.context.signer)
        if not sk:
            return sub
        return replace(sub, context=sign_context(sub.context, sk, submission_digest(sub)))

    def run_step(self, action: GovInput, *, signer: str = "") -> Committed:
        signer = signer or self.operator
        for attempt in range(1, self.max_attempts + 1):
            version, state = self.ledger.latest()
            ctx = self._context(action, state, signer)

            outcome = evaluate(self.params, state, action, context=ctx, balances=self.ledger)
            if not isinstance(outcome, Accepted):
                if outcome.kind == RejectionKind.AUTHORIZATION_FAILED:
                    raise AuthorizationFailure(_token_of(action), signer)
                raise TransitionRejected(outcome.reason)

            sub = self._sign(Submission(version, action, outcome.state, outcome.obligations, ctx))
            result = self.ledger.submit(sub)

            if isinstance(result, Committed):
                log.info("%s committed by %s at version %s", action.kind, signer, result.version)
                return result
            if isinstance(result, Stale):
                log.warning(
                    "%s computed against stale version %s (now %s), retry %d/%d",
                    action.kind,
                    version,
                    result.current_version,
                    attempt,
                    self.max_attempts,
                )
                continue
            if isinstance(result, Rejected):
                if result.reason.startswith("authorization_failed"):
                    raise AuthorizationFailure(_token_of(action), signer)
                raise TransitionRejected(result.reason)

        raise StaleStateError(self.max_attempts)

    def propose(self, signer: str, proposal: Proposal) -> GovState:
        self.run_step(ProposeChange(proposal), signer=signer)
        return self.state()

    def add_vote(self, signer: str, token_name: str, vote: bool) -> GovState:
        self.run_step(AddVote(token_name=token_name, vote=bool(vote)), signer=signer)
        return self.state()

    def finish_voting(self) -> GovState:
        self.run_step(FinishVoting(), signer=self.operator)
        return self.state()

    # ------------------------
    # Timed tally
    # ------------------------
    def tally_after_deadline(self, proposal: Proposal, cancel: Optional[threading.Event] = None) -> Optional[GovState]:
        log.info("Voting started. Waiting for the voting deadline to count the votes.")
        if not self.clock.wait_until(proposal.voting_deadline, cancel):
            log.info("Voting cycle abandoned before the deadline; voting stays open")
            return None

        voting = self.state().active_voting
        if voting is None or voting.proposal != proposal:
            log.info("Proposal %r is no longer the active voting; not tallying", proposal.token_name)
            return None

        log.info("Voting finished. Counting the votes.")
        return self.finish_voting()

    def run_proposal(
        self,
        signer: str,
        proposal: Proposal,
        cancel: Optional[threading.Event] = None,
    ) -> Optional[GovState]:
        self.propose(signer, proposal)
        return self.tally_after_deadline(proposal, cancel)

    def start_proposal(self, signer: str, proposal: Proposal) -> "ProposalCycle":
        cycle = ProposalCycle(lambda cancel: self.run_proposal(signer, proposal, cancel))
        cycle.start()
        return cycle

    def start_tally(self, proposal: Proposal) -> "ProposalCycle":
        """Background tally for a proposal that is already committed."""
        cycle = ProposalCycle(lambda cancel: self.tally_after_deadline(proposal, cancel))
        cycle.start()
        return cycle


class ProposalCycle:
    """A governance cycle on a daemon thread, cancellable via `cancel()`."""

    def __init__(self, target: Callable[[threading.Event], Optional[GovState]]) -> None:
        self.target = target
        self.result: Optional[GovState] = None
        self.error: Optional[BaseException] = None
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        t = threading.Thread(target=self._run, name="lawvote-proposal-cycle", daemon=True)
        self._thread = t
        t.start()

    def _run(self) -> None:
        try:
            self.result = self.target(self._cancel)
        except Exception as e:
            log.exception("Proposal cycle failed")
            self.error = e

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def join(self, timeout: Optional[float] = None) -> bool:
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()
