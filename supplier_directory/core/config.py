
from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application configuration loaded from environment variables / .env file."""

    app_name: str = "Supplier Directory API"
    app_env: str = "development"
    app_port: int = 8000
    frontend_url: str = "http://localhost:3000"

    # Database (PostgreSQL via asyncpg or SQLite for local dev)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./suppliers_dev.db",
        alias="DATABASE_URL",
    )
    auto_create_schema: bool = Field(
        default=True, alias="AUTO_CREATE_SCHEMA",
    )  # production runs Alembic instead

    # When False every reconciliation step commits on its own and an
    # intent row is kept until the last step succeeds.
    reconcile_atomic: bool = Field(default=True, alias="RECONCILE_ATOMIC")

    # Listing
    default_page_size: int = Field(default=20, alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=200, alias="MAX_PAGE_SIZE")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "populate_by_name": True,
    }

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

settings = Settings()
