from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

DEFAULT_CANDIDATE_NAMESPACE = "4d9158ab-4720-4f53-9ce0-b4c6b0c8f0b2"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = "CareerIntel"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8790
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/careerintel.db"
    data_dir: Path = Path("./data")
    upload_dir: Path = Path("./data/uploads")
    storage_roots: str = ""

    candidate_namespace_uuid: str = Field(
        default=DEFAULT_CANDIDATE_NAMESPACE,
        validation_alias=AliasChoices("candidate_namespace_uuid", "candidate_namespace"),
    )

    scoring_provider: str = "gemini"

    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash-latest"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_timeout_sec: int = 60

    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model_scoring: str = "gpt-4o-mini"
    openai_timeout_sec: int = 60

    report_store_backend: str = "supabase"
    supabase_url: str = Field(
        default="",
        validation_alias=AliasChoices("supabase_url", "supabase_project_url", "supabase_rest_url"),
    )
    supabase_service_role_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "supabase_service_role_key",
            "supabase_service_key",
            "supabase_service_role",
        ),
    )
    supabase_report_table: str = "career_card_reports"
    supabase_timeout_sec: int = 30

    max_pdf_text_chars: int = 20000
    max_inline_pdf_bytes: int = 5 * 1024 * 1024

    cors_origins: str = "http://127.0.0.1:8790"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("scoring_provider", "report_store_backend")
    @classmethod
    def normalize_choice(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("candidate_namespace_uuid", "gemini_api_key", "openai_api_key", "supabase_service_role_key")
    @classmethod
    def strip_value(cls, value: str) -> str:
        return value.strip()

    @field_validator("supabase_url")
    @classmethod
    def strip_trailing_slashes(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @property
    def supabase_rest_base(self) -> str:
        return f"{self.supabase_url}/rest/v1" if self.supabase_url else ""

    @property
    def storage_root_list(self) -> list[Path]:
        return [Path(root.strip()) for root in self.storage_roots.split(",") if root.strip()]

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
