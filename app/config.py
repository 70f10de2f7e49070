"""
Configuración central de la aplicación.
Usa Pydantic BaseSettings para validar variables de entorno.
"""

from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────
    APP_NAME: str = "Odontograma Clínico"
    APP_ENV: str = "development"
    DEBUG: bool = True
    API_V1_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # ── Server ───────────────────────────────────────
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # ── CORS ─────────────────────────────────────────
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # ── Odontograma ──────────────────────────────────
    CHART_STATE_VERSION: int = 2
    UNDO_STACK_LIMIT: int = 20
    QUICK_FINDING_MARKER: str = "(Quick)"
    DEFAULT_DENTITION_MODE: str = "permanent"
    DEFAULT_VIEW_FILTER: str = "all"

    @field_validator("UNDO_STACK_LIMIT")
    @classmethod
    def validate_undo_limit(cls, v: int) -> int:
        if v < 1:
            raise ValueError("UNDO_STACK_LIMIT debe ser al menos 1")
        return v

    @field_validator("DEFAULT_DENTITION_MODE")
    @classmethod
    def validate_dentition_mode(cls, v: str) -> str:
        if v not in {"permanent", "deciduous", "mixed"}:
            raise ValueError(f"Modo de dentición inválido: {v}")
        return v

    @field_validator("DEFAULT_VIEW_FILTER")
    @classmethod
    def validate_view_filter(cls, v: str) -> str:
        if v not in {"all", "existing", "planned", "completed"}:
            raise ValueError(f"Filtro de vista inválido: {v}")
        return v

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
