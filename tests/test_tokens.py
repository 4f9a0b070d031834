from lawvote_node.lawvote_runtime.tokens import (
    Value,
    genesis_token_names,
    minting_authority_for,
    mk_token_name,
    prove_control,
    voting_value,
)
from lawvote_node.lawvote_runtime.models import GovParams


class _Balances:
    def __init__(self, by_holder):
        self.by_holder = by_holder

    def balance_of(self, holder):
        return self.by_holder.get(holder, Value())


def test_value_drops_zero_entries_and_compares_by_content():
    a = Value.from_mapping({("p", "vote1"): 1, ("p", "vote2"): 0})
    b = Value.singleton("p", "vote1", 1)
    assert a == b
    assert (a - b).is_zero()


def test_value_add_and_total():
    v = Value.total([voting_value("p", "vote1"), voting_value("p", "vote2"), voting_value("p", "vote1")])
    assert v.quantity_of("p", "vote1") == 2
    assert v.quantity_of("p", "vote2") == 1
    assert v.authorities() == ["p"]


def test_geq_covers_every_asset():
    held = Value.from_mapping({("p", "vote1"): 1, ("p", "vote2"): 1})
    assert held.geq(voting_value("p", "vote1"))
    assert not held.geq(voting_value("p", "vote3"))
    assert not held.geq(voting_value("other", "vote1"))


def test_value_json_shape():
    v = Value.singleton("p", "vote1", 1)
    assert v.to_json() == [{"authority": "p", "token_name": "vote1", "amount": 1}]
    assert Value.from_json(v.to_json()) == v


def test_token_names_are_base_plus_index():
    assert mk_token_name("vote", 7) == "vote7"
    assert genesis_token_names("vote", ["a", "b", "c"]) == ["vote1", "vote2", "vote3"]
    assert genesis_token_names("vote", []) == []


def test_prove_control():
    balances = _Balances({"alice": voting_value("p", "vote1")})
    assert prove_control(balances, "p", "vote1", "alice")
    assert not prove_control(balances, "p", "vote1", "bob")
    assert not prove_control(balances, "p", "vote2", "alice")
    assert not prove_control(balances, "p", "vote1", "")


def test_minting_authority_is_deterministic_per_instance():
    p1 = GovParams("vote", ("a", "b"), 1)
    p2 = GovParams("vote", ["a", "b"], 1)
    p3 = GovParams("vote", ("a", "b"), 2)
    assert minting_authority_for(p1) == minting_authority_for(p2)
    assert minting_authority_for(p1) != minting_authority_for(p3)
    assert len(minting_authority_for(p1)) == 56
