"""
tests/unit/test_settlement_plan.py — Unit tests for settlement_service.compute_settlement_plan.

What this file proves:
  - Two-person debt → single instruction
  - One creditor, several debtors → one instruction per debtor, ascending id order
  - Debtors are processed in ascending id order, creditors filled in ascending id order
  - All-zero / within-epsilon balances → empty list, no error
  - Applying the plan to the balances brings every member to within epsilon of zero
  - At most one instruction per non-zero balance
  - Sub-epsilon members are paired only when a balance beyond epsilon would
    otherwise be left standing
  - The planner is deterministic and independent of dict insertion order
  - Amounts are positive ints, never float or Decimal
  - Unbalanced input raises UnbalancedError instead of a partial plan

Unit test constraints:
  - No Flask, no app context. Plain dict[str, int] in, list[dict] out.
"""

from __future__ import annotations

from collections import defaultdict

import pytest

from splittrip.app.errors import ErrorCode, InvalidBalanceError, UnbalancedError
from splittrip.app.services.settlement_service import (
    SETTLEMENT_EPSILON,
    compute_settlement_plan,
)


# ── Helpers ────────────────────────────────────────────────────────────────

def _apply(balances: dict, instructions: list[dict]) -> dict:
    """
    Applies each instruction as a real transfer: the payer's balance goes up
    (they owe less), the payee's goes down (they are owed less).
    """
    result = defaultdict(int, balances)
    for txn in instructions:
        result[txn["from_member_id"]] += txn["amount"]
        result[txn["to_member_id"]]   -= txn["amount"]
    return dict(result)


def _assert_settles(balances: dict, instructions: list[dict]) -> None:
    for member_id, remaining in _apply(balances, instructions).items():
        assert abs(remaining) <= SETTLEMENT_EPSILON, (
            f"{member_id} left with {remaining} after applying the plan"
        )


def _pairs(instructions: list[dict]) -> list[tuple]:
    return [(t["from_member_id"], t["to_member_id"], t["amount"]) for t in instructions]


# ── Tests ──────────────────────────────────────────────────────────────────

def test_empty_balances_returns_empty_list():
    assert compute_settlement_plan({}) == []


def test_all_zero_returns_empty_list():
    assert compute_settlement_plan({"A": 0, "B": 0, "C": 0}) == []


def test_all_within_epsilon_returns_empty_list():
    """Balances within two minor units of zero are already settled."""
    balances = {"A": 2, "B": -1, "C": -1}

    assert compute_settlement_plan(balances) == []


def test_two_person_debt_one_instruction():
    result = compute_settlement_plan({"alice": 5000, "bob": -5000})

    assert _pairs(result) == [("bob", "alice", 5000)]


def test_single_creditor_two_debtors_ascending_order():
    """A +200, B -100, C -100 → B→A 100, then C→A 100."""
    balances = {"C": -100, "A": 200, "B": -100}

    result = compute_settlement_plan(balances)

    assert _pairs(result) == [("B", "A", 100), ("C", "A", 100)]
    _assert_settles(balances, result)


def test_debtor_spills_over_to_next_creditor():
    """
    Creditors A +80, D +20. Debtors B -50, C -50.
    B pays A 50. C pays A the remaining 30, then D 20.
    """
    balances = {"A": 8000, "B": -5000, "C": -5000, "D": 2000}

    result = compute_settlement_plan(balances)

    assert _pairs(result) == [
        ("B", "A", 5000),
        ("C", "A", 3000),
        ("C", "D", 2000),
    ]
    _assert_settles(balances, result)


def test_exhausted_creditor_is_skipped():
    """
    A +30 is filled completely by B, so C goes straight to E.
    """
    balances = {"A": 30, "B": -30, "C": -70, "E": 70}

    result = compute_settlement_plan(balances)

    assert _pairs(result) == [("B", "A", 30), ("C", "E", 70)]


def test_within_epsilon_members_excluded_from_output():
    """
    C is 1 unit from zero and A is only 1 unit short after B pays, so C
    is never needed. A +101, B -100, C -1 → only B→A 100.
    """
    balances = {"A": 101, "B": -100, "C": -1}

    result = compute_settlement_plan(balances)

    assert _pairs(result) == [("B", "A", 100)]
    for txn in result:
        assert "C" not in (txn["from_member_id"], txn["to_member_id"])
    _assert_settles(balances, result)


def test_debtor_falls_back_to_sub_epsilon_creditors():
    """
    A -10, B +2, C +2, D +6. D alone cannot absorb A's debt, so A pays D 6
    and then B 2, leaving A and C each within epsilon.
    """
    balances = {"A": -10, "B": 2, "C": 2, "D": 6}

    result = compute_settlement_plan(balances)

    assert _pairs(result) == [("A", "D", 6), ("A", "B", 2)]
    _assert_settles(balances, result)


def test_creditor_collects_from_sub_epsilon_debtors():
    """A +3 against three debtors of -1: one of them pays A."""
    balances = {"A": 3, "B": -1, "C": -1, "D": -1}

    result = compute_settlement_plan(balances)

    assert _pairs(result) == [("B", "A", 1)]
    _assert_settles(balances, result)


def test_one_debtor_many_dust_creditors():
    """Fifty members owed 2 units each by one member owing 100."""
    balances = {f"m{i:02d}": 2 for i in range(50)}
    balances["A"] = -100

    result = compute_settlement_plan(balances)

    assert len(result) == 49
    assert all(txn["from_member_id"] == "A" for txn in result)
    _assert_settles(balances, result)


def test_sub_epsilon_members_used_after_main_creditors():
    """The +1 member is only paid once the +50 member is full."""
    balances = {"a": 1, "b": 50, "c": -53, "d": 2}

    result = compute_settlement_plan(balances)

    assert _pairs(result) == [("c", "b", 50), ("c", "a", 1)]
    _assert_settles(balances, result)


def test_instruction_count_at_most_non_zero_balances():
    balances = {"A": -10, "B": 2, "C": 2, "D": 6, "E": 1, "F": -1}

    result = compute_settlement_plan(balances)

    assert len(result) <= sum(1 for v in balances.values() if v != 0)
    _assert_settles(balances, result)


def test_five_member_group_bound_and_correctness():
    balances = {
        "m1": 10000,
        "m2": 5000,
        "m3": -4000,
        "m4": -6000,
        "m5": -5000,
    }

    result = compute_settlement_plan(balances)

    creditors = sum(1 for v in balances.values() if v > SETTLEMENT_EPSILON)
    debtors = sum(1 for v in balances.values() if v < -SETTLEMENT_EPSILON)
    assert len(result) <= creditors + debtors - 1
    _assert_settles(balances, result)


def test_settles_ledger_output_with_remainders():
    """Balances straight from an uneven 3-way split settle exactly."""
    balances = {"A": 66, "B": -33, "C": -33}

    result = compute_settlement_plan(balances)

    assert _pairs(result) == [("B", "A", 33), ("C", "A", 33)]
    assert all(v == 0 for v in _apply(balances, result).values())


def test_deterministic_and_insertion_order_independent():
    forward = {"a": 500, "b": -200, "c": 300, "d": -600}
    backward = dict(reversed(list(forward.items())))

    first = compute_settlement_plan(forward)
    second = compute_settlement_plan(forward)
    third = compute_settlement_plan(backward)

    assert first == second == third


def test_input_is_not_mutated():
    balances = {"A": 200, "B": -100, "C": -100}
    snapshot = dict(balances)

    compute_settlement_plan(balances)

    assert balances == snapshot


def test_amounts_are_positive_ints():
    result = compute_settlement_plan({"A": 3333, "B": -1111, "C": -2222})

    for txn in result:
        assert type(txn["amount"]) is int
        assert txn["amount"] > 0


def test_no_self_transfers():
    result = compute_settlement_plan({"A": 5000, "B": -3000, "C": -2000})

    for txn in result:
        assert txn["from_member_id"] != txn["to_member_id"]


def test_large_amounts():
    result = compute_settlement_plan({"A": 99999999999, "B": -99999999999})

    assert result[0]["amount"] == 99999999999


def test_instruction_has_required_keys():
    result = compute_settlement_plan({"A": 4000, "B": -4000})

    assert set(result[0]) == {"from_member_id", "to_member_id", "amount"}


# ── Error paths ────────────────────────────────────────────────────────────

def test_lone_creditor_raises_unbalanced():
    """One member owed money with nobody to pay them."""
    with pytest.raises(UnbalancedError) as exc_info:
        compute_settlement_plan({"A": 5000})

    err = exc_info.value
    assert err.code == ErrorCode.UNBALANCED_LEDGER
    assert err.http_status == 500


def test_all_negative_raises_unbalanced():
    with pytest.raises(UnbalancedError):
        compute_settlement_plan({"A": -5000, "B": -5000})


def test_sum_off_by_more_than_epsilon_raises_unbalanced():
    with pytest.raises(UnbalancedError):
        compute_settlement_plan({"A": 100, "B": -97})


def test_sum_off_within_epsilon_is_accepted():
    result = compute_settlement_plan({"A": 100, "B": -98})

    assert _pairs(result) == [("B", "A", 98)]


@pytest.mark.parametrize("bad", [10.0, "100", None, True])
def test_non_integer_balance_raises_invalid_balance(bad):
    with pytest.raises(InvalidBalanceError) as exc_info:
        compute_settlement_plan({"A": bad, "B": -100})

    assert exc_info.value.code == ErrorCode.INVALID_BALANCE
