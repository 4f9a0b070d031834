from __future__ import annotations

"""
Voting-token accounting.

A voting token is a quantity-one asset identified by the pair
(minting_authority, token_name). Holding one unit of a token is what lets a
holder propose a change or cast a vote.

Everything here is read-only:

- `Value` is an immutable multi-asset quantity (authority, name) -> int.
- `voting_value` builds the canonical one-unit value a legal call accounts for.
- `prove_control` answers "does holder H control token N" against a
  `BalanceView` supplied by the substrate.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Protocol, Sequence, Tuple

from .audit_proofs import canonical_json_bytes, sha256_hex

AssetId = Tuple[str, str]  # (authority, token_name)


@dataclass(frozen=True)
class Value:
    """
    Immutable bag of assets. Zero entries are dropped so that two values with
    the same non-zero quantities always compare equal.
    """

    entries: Tuple[Tuple[AssetId, int], ...] = ()

    @classmethod
    def from_mapping(cls, amounts: Mapping[AssetId, int]) -> "Value":
        cleaned = {k: int(v) for k, v in amounts.items() if int(v) != 0}
        return cls(tuple(sorted(cleaned.items())))

    @classmethod
    def singleton(cls, authority: str, token_name: str, amount: int) -> "Value":
        return cls.from_mapping({(authority, token_name): amount})

    @classmethod
    def total(cls, values: Iterable["Value"]) -> "Value":
        out = cls()
        for v in values:
            out = out + v
        return out

    def as_dict(self) -> Dict[AssetId, int]:
        return dict(self.entries)

    def __add__(self, other: "Value") -> "Value":
        merged = self.as_dict()
        for asset, qty in other.entries:
            merged[asset] = merged.get(asset, 0) + qty
        return Value.from_mapping(merged)

    def __sub__(self, other: "Value") -> "Value":
        merged = self.as_dict()
        for asset, qty in other.entries:
            merged[asset] = merged.get(asset, 0) - qty
        return Value.from_mapping(merged)

    def quantity_of(self, authority: str, token_name: str) -> int:
        return self.as_dict().get((authority, token_name), 0)

    def geq(self, other: "Value") -> bool:
        """True when every asset of `other` is covered by this value."""
        mine = self.as_dict()
        return all(mine.get(asset, 0) >= qty for asset, qty in other.entries)

    def is_zero(self) -> bool:
        return not self.entries

    def authorities(self) -> List[str]:
        return sorted({asset[0] for asset, _ in self.entries})

    def flatten(self) -> List[Tuple[str, str, int]]:
        return [(a, n, q) for (a, n), q in self.entries]

    # -- json ---------------------------------------------------------------

    def to_json(self) -> List[Dict[str, Any]]:
        return [{"authority": a, "token_name": n, "amount": q} for a, n, q in self.flatten()]

    @classmethod
    def from_json(cls, raw: Sequence[Mapping[str, Any]]) -> "Value":
        amounts: Dict[AssetId, int] = {}
        for item in raw or []:
            key = (str(item["authority"]), str(item["token_name"]))
            amounts[key] = amounts.get(key, 0) + int(item["amount"])
        return cls.from_mapping(amounts)


class BalanceView(Protocol):
    def balance_of(self, holder: str) -> Value:
        ...


def mk_token_name(base: str, index: int) -> str:
    """Voting token names are the base name with an increasing number tagged on."""
    return f"{base}{int(index)}"


def genesis_token_names(base: str, holders: Sequence[str]) -> List[str]:
    return [mk_token_name(base, ix) for ix, _holder in enumerate(holders, start=1)]


def voting_value(authority: str, token_name: str) -> Value:
    return Value.singleton(authority, token_name, 1)


def prove_control(balances: BalanceView, authority: str, token_name: str, holder: str) -> bool:
    if not holder:
        return False
    return balances.balance_of(holder).geq(voting_value(authority, token_name))


def minting_authority_for(params: Any) -> str:
    """
    Deterministic policy id for a governance instance: 28 bytes of
    sha256 over the canonical instance parameters.
    """
    blob = {
        "base_token_name": params.base_token_name,
        "initial_holders": list(params.initial_holders),
        "required_votes": int(params.required_votes),
    }
    return sha256_hex(b"lawvote-mint:" + canonical_json_bytes(blob))[:56]
