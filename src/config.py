"""Billing ledger configuration."""

from __future__ import annotations

import os


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    service_name: str = "billing-ledger"
    version: str = "1.0.0"

    database_url: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///billing.db")
    database_echo: bool = _env_flag("DATABASE_ECHO")
    create_tables: bool = _env_flag("CREATE_TABLES", "true")

    # Collaborator services
    patients_url: str = os.getenv("PATIENTS_URL", "http://patients-service:8002")
    catalog_url: str = os.getenv("CATALOG_URL", "http://catalog-service:8003")
    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "5.0"))

    # Ledger behaviour
    invoice_number_prefix: str = os.getenv("INVOICE_NUMBER_PREFIX", "INV")
    concurrency_retry_attempts: int = int(os.getenv("CONCURRENCY_RETRY_ATTEMPTS", "3"))
    default_page_size: int = int(os.getenv("DEFAULT_PAGE_SIZE", "50"))
    max_page_size: int = int(os.getenv("MAX_PAGE_SIZE", "200"))

    debug: bool = _env_flag("DEBUG")
    log_format: str = os.getenv("LOG_FORMAT", "pretty")
    log_file: str | None = os.getenv("LOG_FILE")

    api_prefix: str = "/api/v1"


settings = Settings()
