"""
services/summary_service.py — Composition of the ledger and the planner, plus
the response payloads the routes return.

Layer rules:
  - No Flask imports. Receives validated schema output (Decimal amounts),
    converts to minor units, calls the pure engine services, and converts
    back to decimal strings for the response.
  - Presentation (member names, "X has to pay ₹N to Y" messages) lives here,
    never in ledger_service or settlement_service.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from splittrip.app.money import format_amount, to_minor_units
from splittrip.app.services.ledger_service import compute_balances
from splittrip.app.services.settlement_service import compute_settlement_plan


# ── Engine composition ─────────────────────────────────────────────────────

def compute_settlement_summary(
        member_ids: Iterable,
        expenses: Iterable[Mapping],
) -> dict:
    """
    Runs the ledger builder then the settlement planner.

    Returns:
        {"balances": {member_id: int}, "instructions": [transfer dicts]}

    Errors from either stage propagate unchanged.
    """
    balances = compute_balances(member_ids, expenses)
    return {
        "balances": balances,
        "instructions": compute_settlement_plan(balances),
    }


# ── Boundary conversion ────────────────────────────────────────────────────

def build_expense_records(expenses: Iterable[Mapping]) -> list[dict]:
    """
    Converts schema-loaded expenses (Decimal amounts) into engine records
    (integer minor units). Field names are carried over unchanged.
    """
    return [
        {
            "payer_id": e["payer_id"],
            "amount": to_minor_units(e["amount"], field="expenses"),
            "participant_ids": list(e["participant_ids"]),
        }
        for e in expenses
    ]


def build_balance_map(entries: Iterable[Mapping]) -> dict:
    """Converts [{"member_id", "balance": Decimal}] into {member_id: minor units}."""
    return {
        entry["member_id"]: to_minor_units(entry["balance"], field="balances")
        for entry in entries
    }


def format_instruction_message(
        from_name: str,
        amount: int,
        to_name: str,
        currency_symbol: str,
) -> str:
    """'Asha has to pay ₹135.00 to Rahul' for amount=13500."""
    return f"{from_name} has to pay {currency_symbol}{format_amount(amount)} to {to_name}"


def _serialize_balances(balances: Mapping) -> list[dict]:
    return [
        {"member_id": member_id, "balance": format_amount(amount)}
        for member_id, amount in sorted(balances.items())
    ]


def _serialize_instruction(instruction: Mapping) -> dict:
    return {
        "from_member_id": instruction["from_member_id"],
        "to_member_id": instruction["to_member_id"],
        "amount": format_amount(instruction["amount"]),
    }


# ── Response payloads ──────────────────────────────────────────────────────

def get_balances_response(data: Mapping) -> dict:
    """
    Builds the payload for POST /balances.

    Args:
        data: validated BalancesRequestSchema output
              ({"members": [...], "expenses": [...]}).
    """
    balances = compute_balances(data["members"], build_expense_records(data["expenses"]))
    return {
        "balances": _serialize_balances(balances),
        "balance_sum": format_amount(sum(balances.values())),
    }


def get_settlement_plan_response(data: Mapping) -> dict:
    """
    Builds the payload for POST /settlement-plan.

    Args:
        data: validated SettlementPlanRequestSchema output
              ({"balances": [{"member_id", "balance"}]}).
    """
    instructions = compute_settlement_plan(build_balance_map(data["balances"]))
    return {"instructions": [_serialize_instruction(i) for i in instructions]}


def get_balance_summary_response(data: Mapping, currency_symbol: str) -> dict:
    """
    Builds the payload for POST /balance-summary.

    Balances and instructions are enriched with display names from the
    optional "names" mapping. A member without a name is shown by id.
    """
    summary = compute_settlement_summary(
        data["members"],
        build_expense_records(data["expenses"]),
    )
    names = data.get("names") or {}

    def _name(member_id) -> str:
        return names.get(member_id) or str(member_id)

    balance_list = [
        {**entry, "name": _name(entry["member_id"])}
        for entry in _serialize_balances(summary["balances"])
    ]

    instructions = []
    for instruction in summary["instructions"]:
        from_name = _name(instruction["from_member_id"])
        to_name = _name(instruction["to_member_id"])
        instructions.append({
            **_serialize_instruction(instruction),
            "from_name": from_name,
            "to_name": to_name,
            "message": format_instruction_message(
                from_name, instruction["amount"], to_name, currency_symbol,
            ),
        })

    return {
        "trip_id": data.get("trip_id"),
        "trip_name": data.get("trip_name"),
        "balances": balance_list,
        "instructions": instructions,
        "balance_sum": format_amount(sum(summary["balances"].values())),
    }
