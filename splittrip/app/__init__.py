"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time — this enables:
           - Multiple isolated test app instances
           - Clean separation between app creation and app startup

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure the app logger level from LOG_LEVEL
  3. Register all route blueprints under /api/v1
  4. Register global error handlers (AppError → JSON, HTTPException → JSON,
     Exception → 500)
  5. Register a custom JSON provider to serialise Decimal as string
     (monetary amounts are transmitted as strings, never JS numbers)
"""

from __future__ import annotations

import traceback
from decimal import Decimal

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from splittrip.app.errors import AppError, ErrorCode
from splittrip.config import config_by_name, validate_production_config


# ── Custom JSON provider ───────────────────────────────────────────────────
# Flask's default JSON encoder does not handle Decimal.

class DecimalJSONProvider(DefaultJSONProvider):
    """
    Extends Flask's default JSON provider to serialise Decimal as str.

    Example: Decimal("10.50") → "10.50" (not 10.5 or 10.500000001)
    """

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to "development".

    Returns:
        A fully configured Flask app ready to serve requests.
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    app.json.sort_keys = app.config["JSON_SORT_KEYS"]
    app.logger.setLevel(app.config["LOG_LEVEL"])

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)

    return app


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api/v1 prefix.

    Route files only specify the path relative to the prefix
    (e.g. "/balances").
    """
    from splittrip.app.routes.balances import balances_bp
    from splittrip.app.routes.settlements import settlements_bp

    app.register_blueprint(balances_bp,    url_prefix="/api/v1")
    app.register_blueprint(settlements_bp, url_prefix="/api/v1")


def _first_error(messages) -> tuple[str | None, str]:
    """
    Walks a marshmallow messages structure down to its first leaf.

    {"expenses": {0: {"amount": ["INVALID_AMOUNT_PRECISION"]}}}
        → ("expenses.0.amount", "INVALID_AMOUNT_PRECISION")

    "_schema" path segments are dropped from the returned field path.
    """
    path: list[str] = []
    node = messages
    while True:
        if isinstance(node, dict) and node:
            key, node = next(iter(node.items()))
            if key != "_schema":
                path.append(str(key))
        elif isinstance(node, list) and node:
            node = node[0]
        else:
            break

    message = str(node) if node not in (None, [], {}) else "Invalid input."
    return (".".join(path) or None), message


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → structured JSON error envelope with the correct HTTP status.
                        5xx AppErrors (UNBALANCED_LEDGER, INTERNAL_ERROR) are logged.
      ValidationError → marshmallow schema errors formatted as MISSING_FIELD /
                        INVALID_FIELD / registered-code responses (400)
      HTTPException   → werkzeug errors (bad JSON, 404, 405, 413) as JSON
      Exception       → generic INTERNAL_ERROR (500); traceback logged

    Stack traces never leave the server.
    """
    registered_codes = {v for k, v in vars(ErrorCode).items() if k.isupper()}

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Converts an AppError raised anywhere in the request lifecycle
        (schema helper, service, route) into the standard error envelope.

        Routes never catch AppError; they let it propagate here.
        """
        if error.http_status >= 500:
            app.logger.error(
                "%s on %s %s: %s",
                error.code,
                request.method,
                request.path,
                error.message,
            )
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Converts marshmallow ValidationError into the standard error envelope.

        Only the FIRST error is returned ("one error, not many"). If the
        message is a registered ErrorCode constant it is used as the code
        and replaced by a readable default message.
        """
        field, raw_message = _first_error(error.messages)

        if raw_message in registered_codes:
            code = raw_message
            message = _code_to_message(code)
        elif raw_message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
            message = raw_message
        else:
            code = ErrorCode.INVALID_FIELD
            message = raw_message

        response_body = {"error": {"code": code, "message": message}}
        if field is not None:
            response_body["error"]["field"] = field

        return jsonify(response_body), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        """Werkzeug errors keep their status but use the standard envelope."""
        code = _HTTP_STATUS_CODES.get(error.code, ErrorCode.HTTP_ERROR)
        return jsonify({
            "error": {
                "code": code,
                "message": error.description or error.name,
            }
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.

        The full traceback is logged to the application logger. Stack traces
        NEVER leave the server in the response body.
        """
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser-based local development.

    Enabled when CORS_ALLOW_ALL is true (DEBUG or TESTING by default) so a
    frontend served from another local port can call the API.
    """

    @app.after_request
    def add_cors_headers(response):
        if app.config.get("CORS_ALLOW_ALL"):
            origin = request.headers.get("Origin")
            # Reflect origin when present.
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "POST, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"

        return response


_HTTP_STATUS_CODES = {
    400: ErrorCode.INVALID_JSON,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.METHOD_NOT_ALLOWED,
    413: ErrorCode.PAYLOAD_TOO_LARGE,
}


def _code_to_message(code: str) -> str:
    """
    Returns a human-readable default message for a known error code.
    Used when a ValidationError message IS the error code constant itself
    (e.g. INVALID_AMOUNT_PRECISION raised as ValidationError in schemas).
    """
    _messages = {
        "INVALID_AMOUNT_PRECISION": "Amount must have at most 2 decimal places.",
        "DUPLICATE_MEMBER": "The same member id appears more than once.",
        "DUPLICATE_PARTICIPANT": "The same participant appears more than once in an expense.",
        "BALANCE_SUM_NOT_ZERO": "Balances must sum to exactly zero.",
    }
    return _messages.get(code, "Invalid input.")
