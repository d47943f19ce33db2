"""Runtime configuration for the app (replaceable during tests/runtime)."""
import os
from typing import NamedTuple


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default) in ("1", "true", "True", "yes", "on")


class Settings(NamedTuple):
    jwt_secret: str
    token_ttl_seconds: int
    debug: bool
    log_level: str
    seed_demo_data: bool
    erp_mock: bool
    erp_timeout_seconds: float
    logicmate_url: str
    logicmate_api_key: str
    suntec_url: str
    suntec_api_key: str


def load_settings() -> Settings:
    return Settings(
        jwt_secret=os.getenv("JWT_SECRET", "dev-secret"),
        token_ttl_seconds=int(os.getenv("TOKEN_TTL_SECONDS", str(60 * 60 * 24))),
        debug=_flag("DEBUG", "0"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        seed_demo_data=_flag("SEED_DEMO_DATA", "1"),
        erp_mock=_flag("ERP_MOCK", "1"),
        erp_timeout_seconds=float(os.getenv("ERP_TIMEOUT_SECONDS", "5")),
        logicmate_url=os.getenv("LOGICMATE_URL", "https://api.logicmate.example.com"),
        logicmate_api_key=os.getenv("LOGICMATE_API_KEY", "lm-api-key-12345"),
        suntec_url=os.getenv("SUNTEC_URL", "https://erp.suntec.example.com"),
        suntec_api_key=os.getenv("SUNTEC_API_KEY", "suntec-api-key-67890"),
    )


state = load_settings()


def get_settings() -> Settings:
    return state


def configure(**overrides) -> Settings:
    """Replace individual settings, e.g. ``configure(debug=True)``.

    Returns the previous settings so callers can restore them.
    """
    global state
    previous = state
    state = state._replace(**overrides)
    return previous


def reset(settings: Settings | None = None):
    global state
    state = settings if settings is not None else load_settings()
