"""
schemas/settlement_schema.py — Marshmallow schema for the settlement-plan endpoint.

Validation responsibility:
  - This file: field types, decimal precision, distinct member ids, and the
    zero-sum rule (BALANCE_SUM_NOT_ZERO, 400). Balances posted by a client
    are user input; rejecting them here keeps UNBALANCED_LEDGER (500) for
    genuine programming errors inside the engine.
  - services/settlement_service.py: the planner itself.

IMPORTANT: Inherits from marshmallow.Schema directly so the schema can be
           used without a Flask application context.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import Schema, ValidationError, fields, validates_schema

from splittrip.app.errors import ErrorCode
from splittrip.app.schemas.balance_schema import member_id_field


# ── Signed monetary amount validator ──────────────────────────────────────
#
# Same precision rule as the expense validator in balance_schema.py.
# Balances may be negative or zero, so there is no sign check.
# ──────────────────────────────────────────────────────────────────────────

def _validate_balance_amount(value: Decimal) -> None:
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


class BalanceEntrySchema(Schema):
    """One {member_id, balance} pair. Positive = owed money, negative = owes."""

    member_id = member_id_field(required=True)

    balance = fields.Decimal(
        required=True,
        validate=_validate_balance_amount,
    )


class SettlementPlanRequestSchema(Schema):
    """
    POST /settlement-plan

    Field rules:
      balances : required list of BalanceEntrySchema, distinct member ids,
                 summing to exactly zero. An empty list is a settled trip.
    """

    balances = fields.List(
        fields.Nested(BalanceEntrySchema),
        required=True,
    )

    @validates_schema
    def validate_balance_set(self, data: dict, **kwargs) -> None:
        """
        1. DUPLICATE_MEMBER (400): same member_id listed twice.
        2. BALANCE_SUM_NOT_ZERO (400): the balances do not net to zero.
        """
        entries = data.get("balances") or []

        member_ids = [e["member_id"] for e in entries]
        if len(member_ids) != len(set(member_ids)):
            raise ValidationError({"balances": [ErrorCode.DUPLICATE_MEMBER]})

        total = sum((e["balance"] for e in entries), Decimal("0.00"))
        if total != Decimal("0"):
            raise ValidationError({"balances": [ErrorCode.BALANCE_SUM_NOT_ZERO]})
