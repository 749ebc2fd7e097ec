"""
services/settlement_service.py — Settlement planner: net balances -> transfers.

Layer rules:
  - No Flask imports. No logging. Pure function over a balance mapping.
  - Balances are integer minor units, exactly as compute_balances() returns them.

Determinism:
  Debtors and creditors are walked in ascending member-id order (members
  beyond SETTLEMENT_EPSILON ahead of sub-epsilon dust), so the same balances
  always produce the same instruction list, regardless of dict insertion order.

This is a greedy sweep. It does not try to minimise the number of transfers
(that problem is NP-hard). Every transfer exhausts at least one side, so there
is at most one instruction per non-zero balance, and applying the instructions
brings every balance to within SETTLEMENT_EPSILON of zero. Dust only absorbs
integer-division remainders; it is never left standing against a balance
larger than SETTLEMENT_EPSILON.
"""

from __future__ import annotations

from collections.abc import Mapping

from splittrip.app.errors import InvalidBalanceError, UnbalancedError

# Balances within this many minor units of zero are treated as settled.
SETTLEMENT_EPSILON = 2


def _check_balances(balances: Mapping) -> None:
    for member_id, amount in balances.items():
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise InvalidBalanceError(
                f"Balance for {member_id!r} must be an integer number of minor units, "
                f"got {amount!r}."
            )

    total = sum(balances.values())
    if abs(total) > SETTLEMENT_EPSILON:
        raise UnbalancedError(
            f"Balances sum to {total} minor units; they must net to zero. "
            f"The balances were not produced by the ledger builder."
        )


def _by_priority(parties: list) -> list:
    # Parties beyond epsilon first, then the sub-epsilon dust, each by ascending id.
    return sorted(parties, key=lambda p: (p[1] <= SETTLEMENT_EPSILON, p[0]))


def _settle(party: list, counterparties: list, party_pays: bool, instructions: list) -> None:
    """
    Pairs one party with counterparties in list order until the party's
    outstanding amount is within SETTLEMENT_EPSILON. Both sides are reduced
    in place; exhausted counterparties are skipped.
    """
    for other in counterparties:
        if party[1] <= SETTLEMENT_EPSILON:
            return
        if other[1] <= 0:
            continue

        transfer = min(party[1], other[1])
        debtor_id, creditor_id = (party[0], other[0]) if party_pays else (other[0], party[0])
        instructions.append({
            "from_member_id": debtor_id,
            "to_member_id": creditor_id,
            "amount": transfer,
        })

        party[1] -= transfer
        other[1] -= transfer

    if party[1] > SETTLEMENT_EPSILON:
        raise UnbalancedError(
            f"{party[0]!r} still has {party[1]} minor units outstanding with "
            f"nobody left to pair with."
        )


def compute_settlement_plan(balances: Mapping) -> list[dict]:
    """
    Converts net balances into an ordered list of pairwise transfers.

    Args:
        balances: {member_id: net_balance} in minor units, e.g. the output of
                  ledger_service.compute_balances(). Not mutated.

    Algorithm:
      1. If every balance is within SETTLEMENT_EPSILON of zero, the trip is
         settled: return [].
      2. Debtor pass: each debtor owing more than SETTLEMENT_EPSILON, in
         ascending id order, pays creditors min(debt, credit) at a time until
         the remaining debt is within SETTLEMENT_EPSILON. Creditors owed more
         than SETTLEMENT_EPSILON are used first (ascending id), then the
         sub-epsilon creditors (ascending id).
      3. Creditor pass: each creditor still owed more than SETTLEMENT_EPSILON,
         in the same order, collects from the remaining debtors the same way.
         This covers a creditor facing only sub-epsilon debtors.

    Returns:
        List of {"from_member_id", "to_member_id", "amount"} dicts in the order
        generated. Amounts are positive ints. After applying them every member
        is within SETTLEMENT_EPSILON of zero. An empty list means the trip is
        already settled.

    Raises:
        InvalidBalanceError -- a balance value is not an int.
        UnbalancedError     -- balances do not sum to within SETTLEMENT_EPSILON
                               of zero, or a balance beyond SETTLEMENT_EPSILON
                               cannot be paired.
    """
    _check_balances(balances)

    if all(abs(amount) <= SETTLEMENT_EPSILON for amount in balances.values()):
        return []

    creditors = _by_priority([
        [member_id, amount]
        for member_id, amount in balances.items()
        if amount > 0
    ])
    debtors = _by_priority([
        [member_id, -amount]
        for member_id, amount in balances.items()
        if amount < 0
    ])

    instructions: list[dict] = []

    for debtor in debtors:
        if debtor[1] > SETTLEMENT_EPSILON:
            _settle(debtor, creditors, True, instructions)

    for creditor in creditors:
        if creditor[1] > SETTLEMENT_EPSILON:
            _settle(creditor, debtors, False, instructions)

    return instructions
