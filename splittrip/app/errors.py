"""
errors.py — AppError base class, engine error types, and error code registry.

Every error returned by the SplitTrip API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - Engine errors (InvalidExpenseError, UnknownMemberError, InvalidBalanceError,
    UnbalancedError) are raised by the pure services and carry their own
    HTTP status so the app factory can translate them without a lookup table.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_JSON               = "INVALID_JSON"
    INVALID_AMOUNT_PRECISION   = "INVALID_AMOUNT_PRECISION"
    DUPLICATE_MEMBER           = "DUPLICATE_MEMBER"
    DUPLICATE_PARTICIPANT      = "DUPLICATE_PARTICIPANT"
    BALANCE_SUM_NOT_ZERO       = "BALANCE_SUM_NOT_ZERO"

    # ── Transport Errors (werkzeug HTTPException) ──────────────────────────
    NOT_FOUND                  = "NOT_FOUND"               # 404
    METHOD_NOT_ALLOWED         = "METHOD_NOT_ALLOWED"      # 405
    PAYLOAD_TOO_LARGE          = "PAYLOAD_TOO_LARGE"       # 413
    HTTP_ERROR                 = "HTTP_ERROR"              # any other 4xx/5xx

    # ── Engine Input Errors (422) ──────────────────────────────────────────
    INVALID_EXPENSE            = "INVALID_EXPENSE"
    UNKNOWN_MEMBER             = "UNKNOWN_MEMBER"
    INVALID_BALANCE            = "INVALID_BALANCE"

    # ── System Errors (500) ────────────────────────────────────────────────
    # UNBALANCED_LEDGER means a caller handed the planner balances that were
    # not produced by the ledger builder. It is a programming error.
    UNBALANCED_LEDGER          = "UNBALANCED_LEDGER"
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# ── Engine errors ──────────────────────────────────────────────────────────

class InvalidExpenseError(AppError):
    """An expense has no participants, a non-positive amount, or bad shape."""

    def __init__(self, message: str, field: str | None = "expenses") -> None:
        super().__init__(ErrorCode.INVALID_EXPENSE, message, 422, field=field)


class UnknownMemberError(AppError):
    """An expense references a member id that is not in the roster."""

    def __init__(self, member_id, role: str = "participant") -> None:
        super().__init__(
            ErrorCode.UNKNOWN_MEMBER,
            f"{role.capitalize()} {member_id!r} is not a member of this trip.",
            422,
            field="expenses",
        )
        self.member_id = member_id
        self.role      = role

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["error"]["member_id"] = self.member_id
        return payload


class InvalidBalanceError(AppError):
    """A balance handed to the planner is not an integer amount of minor units."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.INVALID_BALANCE, message, 422, field="balances")


class UnbalancedError(AppError):
    """Balances do not net to zero. Always a caller bug, never user input."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.UNBALANCED_LEDGER, message, 500)
