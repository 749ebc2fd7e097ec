"""
schemas/balance_schema.py — Marshmallow schemas for the balance endpoints.

Validation responsibility:
  - This file:
      - Field types and lengths, decimal precision, positive amounts
      - DUPLICATE_MEMBER      (400) — same id twice in the roster
      - DUPLICATE_PARTICIPANT (400) — same id twice in one expense
  - services/ledger_service.py:
      - UNKNOWN_MEMBER  (422) — payer/participant not in the roster
      - INVALID_EXPENSE (422) — re-checked on the engine side for callers
                                that bypass these schemas

Amounts stay Decimal here. summary_service converts them to minor units.

IMPORTANT: Inherits from marshmallow.Schema directly so the schemas can be
           used without a Flask application context.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import EXCLUDE, Schema, ValidationError, fields, validate, validates

from splittrip.app.errors import ErrorCode


# ── Shared monetary amount validator ──────────────────────────────────────
#
# Input with more than 2 decimal places is REJECTED with
# INVALID_AMOUNT_PRECISION, never rounded or truncated.
# ──────────────────────────────────────────────────────────────────────────

def _validate_expense_amount(value: Decimal) -> None:
    """
    Validates an expense amount:
      - Must be strictly greater than zero.
      - Must have at most 2 decimal places.

    The app error handler detects INVALID_AMOUNT_PRECISION by matching the
    raised ValidationError message to the known ErrorCode constant.
    """
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")

    # Decimal("10.123").as_tuple().exponent == -3  → 3 dp → REJECT
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _validate_non_empty_after_trim(value: str) -> None:
    """validate.Length(min=1) alone lets "   " through."""
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def member_id_field(**kwargs) -> fields.Str:
    """Member id string, shared by every schema that takes one."""
    return fields.Str(
        validate=[
            validate.Length(min=1, max=128, error="Member ids must be 1 to 128 characters."),
            _validate_non_empty_after_trim,
        ],
        **kwargs,
    )


# ── Sub-schema: one recorded expense ──────────────────────────────────────

class ExpenseInputSchema(Schema):
    """
    One expense record: {payer_id, amount, participant_ids}.

    Unknown keys (id, description, created_at ...) are dropped so clients can
    post their stored expense records as they are.
    """

    class Meta:
        unknown = EXCLUDE

    payer_id = member_id_field(required=True)

    amount = fields.Decimal(
        required=True,
        validate=_validate_expense_amount,
    )

    participant_ids = fields.List(
        member_id_field(),
        required=True,
        validate=validate.Length(min=1, error="An expense needs at least one participant."),
    )

    @validates("participant_ids")
    def validate_unique_participants(self, value: list[str], **kwargs) -> None:
        if len(value) != len(set(value)):
            raise ValidationError(ErrorCode.DUPLICATE_PARTICIPANT)


# ── POST /balances ─────────────────────────────────────────────────────────

class BalancesRequestSchema(Schema):
    """
    POST /balances

    Field rules:
      members  : required, non-empty list of distinct member ids
      expenses : optional (default []), list of ExpenseInputSchema
    """

    members = fields.List(
        member_id_field(),
        required=True,
        validate=validate.Length(min=1, error="A trip needs at least one member."),
    )

    expenses = fields.List(
        fields.Nested(ExpenseInputSchema),
        load_default=list,
    )

    @validates("members")
    def validate_unique_members(self, value: list[str], **kwargs) -> None:
        if len(value) != len(set(value)):
            raise ValidationError(ErrorCode.DUPLICATE_MEMBER)


# ── POST /balance-summary ─────────────────────────────────────────────────

class BalanceSummaryRequestSchema(BalancesRequestSchema):
    """
    POST /balance-summary

    Adds presentation-only fields on top of BalancesRequestSchema:
      trip_id, trip_name : echoed back unchanged
      names              : {member_id: display name}; missing names fall back
                           to the member id
    """

    trip_id = fields.Str(load_default=None, allow_none=True)

    trip_name = fields.Str(
        load_default=None,
        allow_none=True,
        validate=validate.Length(max=255, error="trip_name must be at most 255 characters."),
    )

    names = fields.Dict(
        keys=fields.Str(),
        values=fields.Str(validate=validate.Length(max=100)),
        load_default=dict,
    )
