from __future__ import annotations

"""
Obligations emitted by the transition function.

An obligation is a requirement the substrate must see satisfied before it
commits a transition:

    MintValue(value)            the submission mints exactly `value`
    PayToHolder(holder, value)  `value` ends up with `holder`
    SpendAtLeast(value)         the signer proves possession of `value`
                                (a proof, not a transfer)
    ValidateBefore(deadline)    the submission's validity window ends at or
                                before `deadline` (POSIX ms)

`Obligations` is an ordered, immutable bag; `+` concatenates.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .tokens import BalanceView, Value


@dataclass(frozen=True)
class MintValue:
    value: Value


@dataclass(frozen=True)
class PayToHolder:
    holder: str
    value: Value


@dataclass(frozen=True)
class SpendAtLeast:
    value: Value


@dataclass(frozen=True)
class ValidateBefore:
    deadline_ms: int


Obligation = Union[MintValue, PayToHolder, SpendAtLeast, ValidateBefore]


@dataclass(frozen=True)
class Obligations:
    items: Tuple[Obligation, ...] = ()

    @classmethod
    def of(cls, *items: Obligation) -> "Obligations":
        return cls(tuple(items))

    def __add__(self, other: "Obligations") -> "Obligations":
        return Obligations(self.items + other.items)

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def is_empty(self) -> bool:
        return not self.items

    def mints(self) -> List[MintValue]:
        return [o for o in self.items if isinstance(o, MintValue)]

    def payments(self) -> List[PayToHolder]:
        return [o for o in self.items if isinstance(o, PayToHolder)]

    def spends(self) -> List[SpendAtLeast]:
        return [o for o in self.items if isinstance(o, SpendAtLeast)]

    def deadlines(self) -> List[ValidateBefore]:
        return [o for o in self.items if isinstance(o, ValidateBefore)]

    def minted_total(self) -> Value:
        return Value.total(m.value for m in self.mints())

    def paid_total(self) -> Value:
        return Value.total(p.value for p in self.payments())

    # -- json ---------------------------------------------------------------

    def to_json(self) -> List[Dict[str, Any]]:
        return [obligation_to_json(o) for o in self.items]

    @classmethod
    def from_json(cls, raw: Iterable[Mapping[str, Any]]) -> "Obligations":
        return cls(tuple(obligation_from_json(o) for o in raw or []))


def obligation_to_json(o: Obligation) -> Dict[str, Any]:
    if isinstance(o, MintValue):
        return {"kind": "mint", "value": o.value.to_json()}
    if isinstance(o, PayToHolder):
        return {"kind": "pay", "holder": o.holder, "value": o.value.to_json()}
    if isinstance(o, SpendAtLeast):
        return {"kind": "spend_at_least", "value": o.value.to_json()}
    if isinstance(o, ValidateBefore):
        return {"kind": "validate_before", "deadline_ms": int(o.deadline_ms)}
    raise TypeError(f"unknown obligation {o!r}")


def obligation_from_json(raw: Mapping[str, Any]) -> Obligation:
    kind = raw.get("kind")
    if kind == "mint":
        return MintValue(Value.from_json(raw["value"]))
    if kind == "pay":
        return PayToHolder(str(raw["holder"]), Value.from_json(raw["value"]))
    if kind == "spend_at_least":
        return SpendAtLeast(Value.from_json(raw["value"]))
    if kind == "validate_before":
        return ValidateBefore(int(raw["deadline_ms"]))
    raise ValueError(f"unknown obligation kind {kind!r}")


def must_mint(value: Value) -> Obligations:
    return Obligations.of(MintValue(value))


def must_pay(holder: str, value: Value) -> Obligations:
    return Obligations.of(PayToHolder(holder, value))


def must_spend_at_least(value: Value) -> Obligations:
    return Obligations.of(SpendAtLeast(value))


def must_validate_before(deadline_ms: int) -> Obligations:
    return Obligations.of(ValidateBefore(int(deadline_ms)))


# -----------------------------------------------------------------------------
# Submission context
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class TxContext:
    """
    What a submission carries besides the state: who signs it and the time
    window it claims to be valid in. `None` bounds are open.
    """

    signer: str = ""
    valid_from_ms: Optional[int] = None
    valid_to_ms: Optional[int] = None
    signature: str = ""

    def without_signature(self) -> "TxContext":
        return TxContext(self.signer, self.valid_from_ms, self.valid_to_ms, "")

    def to_json(self) -> Dict[str, Any]:
        return {
            "signer": self.signer,
            "valid_from_ms": self.valid_from_ms,
            "valid_to_ms": self.valid_to_ms,
            "signature": self.signature,
        }

    @classmethod
    def from_json(cls, raw: Mapping[str, Any]) -> "TxContext":
        vf = raw.get("valid_from_ms")
        vt = raw.get("valid_to_ms")
        return cls(
            signer=str(raw.get("signer") or ""),
            valid_from_ms=int(vf) if vf is not None else None,
            valid_to_ms=int(vt) if vt is not None else None,
            signature=str(raw.get("signature") or ""),
        )


def unmet_spend(obligations: Obligations, context: TxContext, balances: BalanceView) -> Optional[SpendAtLeast]:
    """First SpendAtLeast the signer's balance cannot cover, or None."""
    for spend in obligations.spends():
        if not context.signer or not balances.balance_of(context.signer).geq(spend.value):
            return spend
    return None


def window_within(context: TxContext, deadline_ms: int) -> bool:
    return context.valid_to_ms is not None and context.valid_to_ms <= int(deadline_ms)
