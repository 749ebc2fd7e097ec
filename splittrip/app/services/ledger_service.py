"""
services/ledger_service.py — Ledger builder: expenses + roster -> net balances.

This file is the SINGLE SOURCE OF TRUTH for how balances are computed.
The formula must not be reimplemented elsewhere in the codebase.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - No logging. Errors are raised, never logged or swallowed.
  - Receives a roster and plain expense dicts; returns a plain dict.
  - All arithmetic is integer minor units. Decimal/float never appear here.

Expense record shape (keys are required):
    {"payer_id": str, "amount": int, "participant_ids": list[str]}

Zero-sum guarantee:
  - The payer is credited the full amount and the participants are debited
    shares that add up to the same amount exactly, so every expense nets to
    zero and so does the whole ledger. compute_balances() re-checks this
    before returning; a failure is a programming error.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping

from splittrip.app.errors import InvalidExpenseError, UnbalancedError, UnknownMemberError


# ── Private helpers ────────────────────────────────────────────────────────

def _is_minor_unit_amount(value) -> bool:
    # bool is an int subclass; True must not pass as one paisa.
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_expense(
        expense: Mapping,
        roster: frozenset,
        position: int,
) -> tuple[str, int, list]:
    """
    Checks one expense record against the roster before anything is applied.

    Returns (payer_id, amount, participant_ids) when the record is usable.

    Raises:
        InvalidExpenseError -- missing keys, non-integer or non-positive amount,
                               empty or duplicated participant list.
        UnknownMemberError  -- payer or a participant is not in the roster.
    """
    if not isinstance(expense, Mapping):
        raise InvalidExpenseError(f"Expense #{position} is not a mapping.")

    missing = [k for k in ("payer_id", "amount", "participant_ids") if k not in expense]
    if missing:
        raise InvalidExpenseError(
            f"Expense #{position} is missing {', '.join(missing)}."
        )

    payer_id = expense["payer_id"]
    amount = expense["amount"]
    participant_ids = expense["participant_ids"]

    if not _is_minor_unit_amount(amount):
        raise InvalidExpenseError(
            f"Expense #{position} amount must be an integer number of minor units, "
            f"got {amount!r}."
        )
    if amount <= 0:
        raise InvalidExpenseError(
            f"Expense #{position} amount must be greater than zero, got {amount}."
        )

    if isinstance(participant_ids, (str, bytes)) or not isinstance(participant_ids, Collection):
        raise InvalidExpenseError(
            f"Expense #{position} participant_ids must be a collection of member ids."
        )
    participant_ids = list(participant_ids)
    if not participant_ids:
        raise InvalidExpenseError(
            f"Expense #{position} has no participants; it cannot be split."
        )
    if len(set(participant_ids)) != len(participant_ids):
        raise InvalidExpenseError(
            f"Expense #{position} lists the same participant more than once."
        )

    # Membership is checked last so the offending id is the only problem left.
    if payer_id not in roster:
        raise UnknownMemberError(payer_id, role="payer")
    for participant_id in participant_ids:
        if participant_id not in roster:
            raise UnknownMemberError(participant_id)

    return payer_id, amount, participant_ids


def _allocate_shares(amount: int, participant_ids: Iterable) -> dict:
    """
    Splits amount (minor units) into equal integer shares, one per participant.

    Every participant gets amount // k. The amount % k leftover units are
    handed out one each to the first participants in ascending id order, so
    the allocation is the same no matter how the caller ordered the list.

    100 over ["c", "a", "b"] -> {"a": 34, "b": 33, "c": 33}

    Guarantees: sum(result.values()) == amount.
    """
    ordered = sorted(participant_ids)
    base, leftover = divmod(amount, len(ordered))
    return {
        participant_id: base + (1 if index < leftover else 0)
        for index, participant_id in enumerate(ordered)
    }


# ── Core algorithm ─────────────────────────────────────────────────────────

def compute_balances(
        member_ids: Iterable,
        expenses: Iterable[Mapping],
) -> dict:
    """
    Canonical balance computation for a trip.

    Returns {member_id: net_balance} in minor units for every roster member,
    including members whose balance is exactly zero. Positive means the
    member is owed money, negative means the member owes money.

    Algorithm:
      1. Start every roster member at zero.
      2. Validate the expense (nothing is applied if it is rejected).
      3. Credit the payer with the full amount.
      4. Debit each participant their share from _allocate_shares().

    The result does not depend on expense order. Neither argument is mutated.

    Raises:
        InvalidExpenseError -- an expense is malformed (see _validate_expense).
        UnknownMemberError  -- an expense references a member not in member_ids.
        UnbalancedError     -- the zero-sum check failed (a bug in this module).
    """
    balances: dict = {member_id: 0 for member_id in member_ids}
    roster = frozenset(balances)

    for position, expense in enumerate(expenses, start=1):
        payer_id, amount, participant_ids = _validate_expense(expense, roster, position)

        balances[payer_id] += amount
        for participant_id, share in _allocate_shares(amount, participant_ids).items():
            balances[participant_id] -= share

    # Must always hold; a failure here is a programming error.
    total = sum(balances.values())
    if total != 0:
        raise UnbalancedError(
            f"Ledger computation produced a balance sum of {total} minor units "
            f"(expected 0). This is a bug, please report it."
        )

    return balances
