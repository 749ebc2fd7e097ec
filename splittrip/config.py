import logging
import os
from pathlib import Path

from dotenv import load_dotenv


_PACKAGE_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _PACKAGE_DIR.parent

# Root .env is canonical; splittrip/.env remains a fallback.
load_dotenv(_PROJECT_ROOT / ".env")
load_dotenv(_PACKAGE_DIR / ".env")


def _first_non_empty_env(*names: str, default: str) -> str:
    """Returns the first non-empty env var value from `names`, else `default`."""
    for name in names:
        value = os.getenv(name)
        if value is not None and value != "":
            return value
    return default


def _parse_int_env(*names: str, default: int) -> int:
    """Parses the first non-empty env var in `names` as int, else returns `default`."""
    raw = _first_non_empty_env(*names, default=str(default))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


class BaseConfig:

    JSON_SORT_KEYS: bool = False

    # Level name for app.logger (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="INFO").upper()

    # Prefix used in "X has to pay ₹N to Y" messages on /balance-summary.
    CURRENCY_SYMBOL: str = _first_non_empty_env("CURRENCY_SYMBOL", default="₹")

    # Werkzeug rejects larger request bodies with 413. Default: 1 MiB.
    MAX_CONTENT_LENGTH: int = _parse_int_env("MAX_REQUEST_BYTES", default=1024 * 1024)

    CORS_ALLOW_ALL: bool = False


class DevelopmentConfig(BaseConfig):
    DEBUG:   bool = True
    TESTING: bool = False

    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="DEBUG").upper()
    CORS_ALLOW_ALL: bool = True


class TestingConfig(BaseConfig):

    DEBUG:   bool = True
    TESTING: bool = True

    # Tests assert on the ₹ message format regardless of the local .env.
    CURRENCY_SYMBOL: str = "₹"
    MAX_CONTENT_LENGTH: int = 64 * 1024
    CORS_ALLOW_ALL: bool = True


class ProductionConfig(BaseConfig):

    DEBUG:   bool = False
    TESTING: bool = False


def validate_production_config(app) -> None:
    """
    Fail-fast guard for production configuration.

    Must be called in the app factory immediately after
    app.config.from_object(ProductionConfig):

        app.config.from_object(ProductionConfig)
        validate_production_config(app)   # raises ValueError if misconfigured

    Raises ValueError if any required production value is missing or invalid.
    This prevents the app from silently starting with a broken setup.
    """
    level = app.config.get("LOG_LEVEL")
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(
            f"LOG_LEVEL {level!r} is not a valid logging level. "
            "Use DEBUG, INFO, WARNING, ERROR or CRITICAL."
        )
    if not app.config.get("CURRENCY_SYMBOL", "").strip():
        raise ValueError(
            "CURRENCY_SYMBOL must not be empty in production."
        )
    max_bytes = app.config.get("MAX_CONTENT_LENGTH")
    if max_bytes is None or max_bytes <= 0:
        raise ValueError(
            "MAX_REQUEST_BYTES must be a positive number of bytes in production."
        )


# ── Config selector ────────────────────────────────────────────────────────
#
# Used by the app factory:
#   from splittrip.config import config_by_name
#   app.config.from_object(config_by_name[flask_env])
# ──────────────────────────────────────────────────────────────────────────

config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing":     TestingConfig,
    "production":  ProductionConfig,
}
