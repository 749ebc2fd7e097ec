"""
routes/balances.py — Balance route handlers.

Layer rules:
  - Parse, validate, call ONE service, return envelope.
  - No business logic. No arithmetic on amounts.
  - Stateless: the roster and expenses come in the request body. Reading
    them from storage is the job of the trip/expense services that own it.

Endpoints (base url_prefix=/api/v1):
  POST /balances         → 200  net balance per member
  POST /balance-summary  → 200  balances + named payment instructions
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from splittrip.app.schemas.balance_schema import (
    BalanceSummaryRequestSchema,
    BalancesRequestSchema,
)
from splittrip.app.services import summary_service

balances_bp = Blueprint("balances", __name__)


@balances_bp.route("/balances", methods=["POST"])
def compute_balances():
    """
    POST /balances

    Body: {"members": [...], "expenses": [{payer_id, amount, participant_ids}]}

    UNKNOWN_MEMBER / INVALID_EXPENSE (422) are raised by the ledger service
    and rendered by the app-level AppError handler.
    """
    data = BalancesRequestSchema().load(request.get_json(force=True) or {})
    result = summary_service.get_balances_response(data)

    current_app.logger.info(
        "Computed balances for %d members from %d expenses",
        len(data["members"]),
        len(data["expenses"]),
    )
    return jsonify({"data": result, "warnings": []}), 200


@balances_bp.route("/balance-summary", methods=["POST"])
def balance_summary():
    """
    POST /balance-summary

    Same input as /balances plus optional trip_id, trip_name and names.
    Each instruction carries a display message such as
    "Asha has to pay ₹135.00 to Rahul" using the configured CURRENCY_SYMBOL.
    """
    data = BalanceSummaryRequestSchema().load(request.get_json(force=True) or {})
    result = summary_service.get_balance_summary_response(
        data,
        currency_symbol=current_app.config["CURRENCY_SYMBOL"],
    )

    current_app.logger.info(
        "Built balance summary for trip %s: %d members, %d expenses, %d instructions",
        data.get("trip_id") or "<unnamed>",
        len(data["members"]),
        len(data["expenses"]),
        len(result["instructions"]),
    )
    return jsonify({"data": result, "warnings": []}), 200
