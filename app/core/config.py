import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        value = default
    else:
        try:
            value = int(raw)
        except ValueError:
            value = default
    if min_value is not None:
        return max(min_value, value)
    return value


def _env_float(name: str, default: float, min_value: float | None = None, max_value: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        value = default
    else:
        try:
            value = float(raw)
        except ValueError:
            value = default
    if min_value is not None:
        value = max(min_value, value)
    if max_value is not None:
        value = min(max_value, value)
    return value


@dataclass(frozen=True)
class Settings:
    app_name: str
    log_level: str
    cors_origins: tuple[str, ...]
    debug_sql: bool
    database_url: str
    distribution_default_multiple: int
    distribution_default_priority_percentage: float
    distribution_default_priority_shop_count: int
    distribution_default_quantity_per_variant: int
    sales_lookback_days: int


settings = Settings(
    app_name=os.getenv("APP_NAME", "Garment Distribution API"),
    log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    cors_origins=tuple(
        origin.strip().rstrip("/")
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    ),
    debug_sql=_env_bool("DEBUG_SQL", False),
    database_url=os.getenv("DATABASE_URL", "sqlite:///./distribution.db"),
    distribution_default_multiple=_env_int("DISTRIBUTION_DEFAULT_MULTIPLE", 12, min_value=1),
    distribution_default_priority_percentage=_env_float(
        "DISTRIBUTION_DEFAULT_PRIORITY_PERCENTAGE",
        30.0,
        min_value=0.0,
        max_value=100.0,
    ),
    distribution_default_priority_shop_count=_env_int("DISTRIBUTION_DEFAULT_PRIORITY_SHOP_COUNT", 2, min_value=0),
    distribution_default_quantity_per_variant=_env_int(
        "DISTRIBUTION_DEFAULT_QUANTITY_PER_VARIANT",
        1200,
        min_value=0,
    ),
    sales_lookback_days=_env_int("SALES_LOOKBACK_DAYS", 90, min_value=1),
)
