import json
import os
import re
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEV_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
]


def _normalize_origin(o: str) -> str:
    s = str(o).strip().strip('"').strip("'")
    # Browsers send the Origin header without a trailing slash.
    if s.endswith("/"):
        s = s[:-1]
    return s


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_name: str = Field(default="Rice Trade Ledger API", validation_alias="PROJECT_NAME")
    environment: str = Field(default="dev", validation_alias="ENVIRONMENT")
    build_version: Optional[str] = Field(default=None, validation_alias="BUILD_VERSION")
    database_url: str = Field(
        default="sqlite+pysqlite:///./rice-ledger.db", validation_alias="DATABASE_URL"
    )
    # API prefix used by FastAPI router include (e.g. "/api").
    api_prefix: str = Field(default="/api", validation_alias="API_V1_STR")
    enable_docs: Optional[bool] = Field(default=None, validation_alias="ENABLE_DOCS")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    # Raw value; JSON list, Python-ish list or CSV. See `cors_origin_list`.
    cors_origins: str = Field(default="", validation_alias="CORS_ORIGINS")
    run_migrations_on_start: bool = Field(default=False, validation_alias="RUN_MIGRATIONS_ON_START")

    @field_validator("api_prefix", mode="before")
    @classmethod
    def normalize_api_prefix(cls, v: str) -> str:
        """
        Normalize API prefix coming from env/.env.

        On Windows Git Bash (MSYS), values like "/api" may appear as a Windows path
        (e.g. "C:/Program Files/Git/api"). Extract the trailing "/api..." portion.
        """
        if v is None:
            return ""
        s = str(v).strip()
        if not s:
            return ""

        if s.startswith("/api/") or s == "/api":
            return s

        m = re.search(r"(/api(?:/[^\s]*)?)$", s.replace("\\", "/"))
        if m:
            return m.group(1)

        if s.startswith("api"):
            return f"/{s}"

        return s

    @field_validator("database_url", mode="before")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Make SQLite relative paths stable across working directories.

        `sqlite+pysqlite:///./rice-ledger.db` is resolved against the backend
        folder rather than the current working directory.
        """

        if v is None:
            return v

        s = str(v).strip()
        if not s:
            return s

        if s.startswith("postgres://"):
            s = "postgresql://" + s[len("postgres://") :]
        if s.startswith("postgresql://"):
            return "postgresql+psycopg://" + s[len("postgresql://") :]

        if not s.startswith("sqlite"):
            return s

        marker = ":///"
        i = s.find(marker)
        if i == -1:
            return s

        path_part = s[i + len(marker) :]
        if path_part.startswith(":memory:"):
            return s

        # Already absolute (e.g. /var/... or C:/...)
        if path_part.startswith("/") or re.match(r"^[A-Za-z]:/", path_part):
            return s

        if path_part.startswith("./") or path_part.startswith(".\\"):
            backend_root = Path(__file__).resolve().parents[1]
            abs_path = (backend_root / path_part[2:]).resolve().as_posix()
            return f"{s[: i + len(marker)]}{abs_path}"

        return s

    @model_validator(mode="after")
    def check_environment(self) -> "Settings":
        env = (self.environment or "dev").strip().lower()

        if self.enable_docs is None:
            self.enable_docs = env in {"dev", "development", "test"}

        if env in {"prod", "production"}:
            if not os.getenv("DATABASE_URL"):
                raise ValueError("DATABASE_URL must be explicitly set in production")
            if self.database_url.startswith("sqlite"):
                raise ValueError("SQLite DATABASE_URL is not allowed in production")
            if not self.cors_origins.strip():
                raise ValueError("CORS_ORIGINS must be explicitly set in production")

        return self

    @property
    def cors_origin_list(self) -> List[str]:
        s = (self.cors_origins or "").strip()
        if not s:
            return list(_DEV_CORS_ORIGINS)

        # Many .env / docker setups wrap JSON in quotes. Strip a single pair.
        if (s.startswith('"') and s.endswith('"')) or (s.startswith("'") and s.endswith("'")):
            s = s[1:-1].strip()

        try:
            parsed = json.loads(s)
            if isinstance(parsed, str):
                return [_normalize_origin(parsed)]
            if isinstance(parsed, list):
                return [_normalize_origin(v) for v in parsed if str(v).strip()]
        except json.JSONDecodeError:
            pass

        if s.startswith("[") and s.endswith("]") and "'" in s and '"' not in s:
            try:
                parsed = json.loads(s.replace("'", '"'))
                if isinstance(parsed, list):
                    return [_normalize_origin(v) for v in parsed if str(v).strip()]
            except json.JSONDecodeError:
                pass

        return [_normalize_origin(v) for v in s.split(",") if str(v).strip()]


settings = Settings()
