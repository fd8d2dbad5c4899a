import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

MEMORY_DATABASE_URL = "sqlite+pysqlite:///:memory:"


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    database_url: str
    log_level: str
    log_path: str
    max_attempts: int
    exhaustive_fallback: bool
    rate_limit_calls: int
    rate_limit_period: int


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}.") from None
    if value < 1:
        raise ValueError(f"{name} must be a positive integer, got {value}.")
    return value


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}.")


def load_settings() -> Settings:
    return Settings(
        host=os.getenv("HOST", "0.0.0.0"),
        port=_get_int("PORT", 3001),
        database_url=os.getenv("DATABASE_URL") or MEMORY_DATABASE_URL,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_path=os.getenv("LOG_PATH", "logs/santa.log"),
        max_attempts=_get_int("DRAW_MAX_ATTEMPTS", 1000),
        exhaustive_fallback=_get_bool("DRAW_EXHAUSTIVE_FALLBACK", False),
        rate_limit_calls=_get_int("RATE_LIMIT_CALLS", 20),
        rate_limit_period=_get_int("RATE_LIMIT_PERIOD", 10),
    )
