import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    app_name: str
    database_url: str
    database_sslmode: str
    cors_origins: tuple[str, ...]
    log_level: str
    log_json: bool
    auto_create_tables: bool
    purchase_expense_category: str
    sale_income_category: str


settings = Settings(
    app_name=os.getenv("APP_NAME", "Stockflow POS API"),
    database_url=os.getenv("DATABASE_URL", "sqlite:///./stockflow.db"),
    database_sslmode=os.getenv("DATABASE_SSLMODE", ""),
    cors_origins=tuple(
        origin.strip().rstrip("/")
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    ),
    log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    log_json=_env_bool("LOG_JSON", True),
    auto_create_tables=_env_bool("AUTO_CREATE_TABLES", False),
    purchase_expense_category=os.getenv("PURCHASE_EXPENSE_CATEGORY", "Inventory"),
    sale_income_category=os.getenv("SALE_INCOME_CATEGORY", "Sales"),
)
