from __future__ import annotations

"""
LocalLedger: reference substrate for a governance instance.

Holds the single latest committed GovState together with a version counter,
the voting-token balances and the commit history. It is the only writer:

    submit(Submission) -> Committed | Stale | Rejected

A submission is accepted only when it was computed against the current
version (optimistic concurrency) and passes `validate_submission`. Minted
value is credited to the holders named by PayToHolder obligations. Every
commit advances the tip (block number + chained block id) and, when a store
is configured, is persisted as an atomic JSON snapshot.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar, Union

from .atomic_store import AtomicLedgerStore
from .audit_proofs import chain_block_id, merkle_root, receipt_hash
from .constraints import Obligations
from .errors import GovError, LedgerNotInitialised
from .models import GovParams, GovState, input_to_json, params_to_json, state_from_json, state_hash, state_to_json
from .tokens import Value
from .validator import Submission, validate_submission

log = logging.getLogger(__name__)

GENESIS_BLOCK_ID = "genesis"
DEFAULT_PAGE_SIZE = 50

T = TypeVar("T")


# -----------------------------------------------------------------------------
# Result values
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Tip:
    block_no: int
    block_id: str
    slot_ms: int


@dataclass(frozen=True)
class Committed:
    version: int
    tip: Tip


@dataclass(frozen=True)
class Stale:
    current_version: int


@dataclass(frozen=True)
class Rejected:
    reason: str


SubmitResult = Union[Committed, Stale, Rejected]


@dataclass(frozen=True)
class CommitRecord:
    version: int
    block_id: str
    slot_ms: int
    action: Dict[str, Any]
    signer: str
    state_hash: str
    receipt_hash: str

    def to_json(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "block_id": self.block_id,
            "slot_ms": self.slot_ms,
            "action": self.action,
            "signer": self.signer,
            "state_hash": self.state_hash,
            "receipt_hash": self.receipt_hash,
        }

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> "CommitRecord":
        return cls(
            version=int(raw["version"]),
            block_id=str(raw["block_id"]),
            slot_ms=int(raw["slot_ms"]),
            action=dict(raw.get("action") or {}),
            signer=str(raw.get("signer") or ""),
            state_hash=str(raw["state_hash"]),
            receipt_hash=str(raw["receipt_hash"]),
        )


@dataclass(frozen=True)
class Page(Generic[T]):
    page_size: int
    page_number: int
    total_pages: int
    items: List[T] = field(default_factory=list)


def page_of(items: List[T], page_size: int = DEFAULT_PAGE_SIZE, page_number: int = 1) -> Page[T]:
    size = max(1, int(page_size))
    total = math.ceil(len(items) / size) if items else 0
    number = max(1, int(page_number))
    start = (number - 1) * size
    return Page(page_size=size, page_number=number, total_pages=total, items=list(items[start : start + size]))


def _system_now_ms() -> int:
    return int(time.time() * 1000)


# -----------------------------------------------------------------------------
# Ledger
# -----------------------------------------------------------------------------


class LocalLedger:
    def __init__(
        self,
        params: GovParams,
        *,
        store: Optional[AtomicLedgerStore] = None,
        clock: Any = None,
        require_signed: bool = False,
    ) -> None:
        self.params = params
        self.store = store
        self.clock = clock
        self.require_signed = bool(require_signed)

        self._lock = threading.RLock()
        self._state: Optional[GovState] = None
        self._version = 0
        self._tip = Tip(block_no=0, block_id=GENESIS_BLOCK_ID, slot_ms=0)
        self._balances: Dict[str, Value] = {}
        self._history: List[CommitRecord] = []

        if self.store is not None:
            snap = self.store.load()
            if snap is not None:
                self._restore(snap)

    # ------------------------
    # Reads
    # ------------------------
    def _now_ms(self) -> int:
        return int(self.clock.now_ms()) if self.clock is not None else _system_now_ms()

    def is_initialised(self) -> bool:
        with self._lock:
            return self._state is not None

    def latest(self) -> Tuple[int, GovState]:
        with self._lock:
            if self._state is None:
                raise LedgerNotInitialised("governance instance has not been initialised")
            return self._version, self._state

    def tip(self) -> Tip:
        with self._lock:
            return self._tip

    def balance_of(self, holder: str) -> Value:
        with self._lock:
            return self._balances.get(holder, Value())

    def balances(self) -> Dict[str, Value]:
        with self._lock:
            return dict(self._balances)

    def history(self, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Page[CommitRecord]:
        with self._lock:
            return page_of(list(self._history), page_size=page_size, page_number=page)

    def history_root(self) -> str:
        with self._lock:
            return merkle_root([r.receipt_hash for r in self._history])

    # ------------------------
    # Writes
    # ------------------------
    def initialise(self, state: GovState) -> Committed:
        with self._lock:
            if self._state is not None:
                raise GovError("governance instance already initialised")
            self._commit(state, 0, Obligations(), {"kind": "initialise"}, "")
            log.info("Governance instance initialised (authority=%s)", state.minting_authority)
            return Committed(version=self._version, tip=self._tip)

    def submit(self, sub: Submission) -> SubmitResult:
        with self._lock:
            if self._state is None:
                raise LedgerNotInitialised("governance instance has not been initialised")

            if int(sub.expected_version) != self._version:
                log.debug("Stale submission: expected=%s current=%s", sub.expected_version, self._version)
                return Stale(current_version=self._version)

            reason = validate_submission(
                self.params,
                self._state,
                sub,
                self,
                now_ms=self._now_ms(),
                require_signed=self.require_signed,
            )
            if reason:
                log.warning("Rejected %s at version %s: %s", sub.action.kind, self._version, reason)
                return Rejected(reason=reason)

            self._commit(
                sub.new_state, self._version + 1, sub.obligations, input_to_json(sub.action), sub.context.signer
            )
            log.info("Committed %s as version %s (block %s)", sub.action.kind, self._version, self._tip.block_no)
            return Committed(version=self._version, tip=self._tip)

    def _commit(
        self,
        state: GovState,
        version: int,
        obligations: Obligations,
        action: Dict[str, Any],
        signer: str,
    ) -> None:
        # a failed save must leave memory as it was before the call
        prior = (self._state, self._version, self._tip, dict(self._balances), len(self._history))
        try:
            self._apply_payments(obligations)
            self._state = state
            self._version = version
            self._record(action, signer, state)
        except Exception:
            self._state, self._version, self._tip, self._balances, n = prior
            del self._history[n:]
            raise

    def _apply_payments(self, obligations: Obligations) -> None:
        for pay in obligations.payments():
            self._balances[pay.holder] = self._balances.get(pay.holder, Value()) + pay.value

    def _record(self, action: Dict[str, Any], signer: str, state: GovState) -> None:
        slot = self._now_ms()
        s_hash = state_hash(state)
        r_hash = receipt_hash({"version": self._version, "action": action, "signer": signer, "state_hash": s_hash})
        block_id = chain_block_id(self._tip.block_id, s_hash, r_hash)
        self._tip = Tip(block_no=len(self._history), block_id=block_id, slot_ms=slot)
        self._history.append(
            CommitRecord(
                version=self._version,
                block_id=block_id,
                slot_ms=slot,
                action=action,
                signer=signer,
                state_hash=s_hash,
                receipt_hash=r_hash,
            )
        )
        if self.store is not None:
            self.store.save(self.snapshot())

    # ------------------------
    # Snapshots
    # ------------------------
    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "params": params_to_json(self.params),
                "version": self._version,
                "tip": {"block_no": self._tip.block_no, "block_id": self._tip.block_id, "slot_ms": self._tip.slot_ms},
                "state": state_to_json(self._state) if self._state is not None else None,
                "balances": {h: v.to_json() for h, v in self._balances.items()},
                "history": [r.to_json() for r in self._history],
            }

    def _restore(self, snap: Dict[str, Any]) -> None:
        if snap.get("params") and snap["params"] != params_to_json(self.params):
            raise GovError("ledger snapshot belongs to a different governance instance")
        raw_state = snap.get("state")
        self._state = state_from_json(raw_state) if raw_state else None
        self._version = int(snap.get("version", 0))
        tip = snap.get("tip") or {}
        self._tip = Tip(
            block_no=int(tip.get("block_no", 0)),
            block_id=str(tip.get("block_id", GENESIS_BLOCK_ID)),
            slot_ms=int(tip.get("slot_ms", 0)),
        )
        self._balances = {str(h): Value.from_json(v) for h, v in (snap.get("balances") or {}).items()}
        self._history = [CommitRecord.from_json(r) for r in snap.get("history") or []]
        log.info("Restored governance ledger at version %s (%s commits)", self._version, len(self._history))
