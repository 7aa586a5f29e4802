# pricesim/config.py
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Loads variables from a local .env file into environment variables (dev only).
load_dotenv()


@dataclass(frozen=True)
class Settings:
    # App config
    app_env: str
    log_level: str
    provider: str
    data_file: str
    admin_token: Optional[str]

    # Live quote config
    quote_base_url: str
    quote_timeout_seconds: float

    # Poller config
    poll_enabled: bool
    poll_interval_seconds: float
    poll_symbols: list[str]

    # Random-walk model
    use_random_prices: bool
    random_base_vol: float
    random_jump_prob: float
    random_jump_scale: float
    random_seed: Optional[int]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    # Unparseable or non-positive values fall back to the default.
    try:
        value = float(os.getenv(name, ""))
    except ValueError:
        return default
    return value if value > 0 else default


def _env_int(name: str) -> Optional[int]:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def get_settings() -> Settings:
    """
    Reads env vars and returns a Settings object.
    """
    poll_symbols = [
        s.strip().upper() for s in os.getenv("PRICE_POLL_SYMBOLS", "").split(",") if s.strip()
    ]

    return Settings(
        app_env=os.getenv("APP_ENV", "local"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        provider=os.getenv("PROVIDER", "YAHOO"),
        data_file=os.getenv("DATA_FILE", "data.json"),
        admin_token=(os.getenv("ADMIN_TOKEN") or "").strip() or None,
        quote_base_url=os.getenv("QUOTE_BASE_URL", "https://query1.finance.yahoo.com"),
        quote_timeout_seconds=_env_float("QUOTE_TIMEOUT_SECONDS", 5.0),
        poll_enabled=_env_bool("POLL_ENABLED", True),
        poll_interval_seconds=_env_float("PRICE_POLL_INTERVAL_SECONDS", 300.0),
        poll_symbols=poll_symbols,
        use_random_prices=_env_bool("USE_RANDOM_PRICES", False),
        random_base_vol=_env_float("RANDOM_BASE_VOL", 0.02),
        random_jump_prob=_env_float("RANDOM_JUMP_PROB", 0.08),
        random_jump_scale=_env_float("RANDOM_JUMP_SCALE", 0.06),
        random_seed=_env_int("RANDOM_SEED"),
    )
