"""
routes/settlements.py — Settlement-plan route handler.

Layer rules:
  - Parse, validate, call ONE service, return envelope.
  - No business logic.

Endpoints (base url_prefix=/api/v1):
  POST /settlement-plan  → 200  transfers that settle the posted balances
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from splittrip.app.schemas.settlement_schema import SettlementPlanRequestSchema
from splittrip.app.services import summary_service

settlements_bp = Blueprint("settlements", __name__)


@settlements_bp.route("/settlement-plan", methods=["POST"])
def settlement_plan():
    """
    POST /settlement-plan

    Body: {"balances": [{"member_id": "...", "balance": "-12.50"}, ...]}

    Balances that do not sum to zero are rejected by the schema with
    BALANCE_SUM_NOT_ZERO (400). An empty instruction list means the trip
    is already settled.
    """
    data = SettlementPlanRequestSchema().load(request.get_json(force=True) or {})
    result = summary_service.get_settlement_plan_response(data)

    current_app.logger.info(
        "Planned %d settlement instructions for %d balances",
        len(result["instructions"]),
        len(data["balances"]),
    )
    return jsonify({"data": result, "warnings": []}), 200
