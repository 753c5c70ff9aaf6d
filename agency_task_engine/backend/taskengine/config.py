from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    database_url: str = "sqlite:///./taskengine.db"
    create_tables_on_startup: bool = True

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Reproducibility ----
    engine_version: str = "2026-10-18.v1"

    # ---- Cadence ----
    default_cadence_mode: str = "initial"  # initial|renewal
    max_package_months: int = 120
    max_series_length: int = 1000

    def model_post_init(self, __context) -> None:
        mode = (self.default_cadence_mode or "initial").strip().lower()
        if mode not in ("initial", "renewal"):
            mode = "initial"
        object.__setattr__(self, "default_cadence_mode", mode)

        if self.max_package_months < 1:
            object.__setattr__(self, "max_package_months", 1)

        env = (self.app_env or "local").strip().lower()
        if env in ("prod", "production"):
            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
