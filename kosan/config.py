# kosan/config.py
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "dev-change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    database_url: str = "sqlite:///./kosan.db"
    timezone: str = "Asia/Jakarta"

    # ---- Logging ----
    log_level: str = "INFO"
    sql_log_level: str = "WARNING"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Auth ----
    auth_mode: str = "dev"  # dev|jwt
    admin_password: str = "admin123"
    dev_header_admin_email: str = "X-Admin-Email"
    dev_auto_provision: bool = True

    # ---- JWT cookie ----
    jwt_secret: str = DEV_JWT_SECRET
    jwt_exp_minutes: int = 60 * 24  # 1 day
    jwt_cookie_name: str = "kosan_session"
    jwt_cookie_secure: int = 0
    jwt_cookie_samesite: str = "lax"

    # ---- Blob storage ----
    storage_dir: str = "./storage"
    public_base_url: str = "http://localhost:8000/storage"

    # ---- Letterhead (receipts + reports) ----
    kos_name: str = "KOS BAHAGIA"
    kos_address: str = "Jl. Cempaka No.79 RT 01 RW 08 Sukahati, Cibinong"
    kos_contact: str = "Kontak Pengelola: 087722667913"
    receipt_logo_path: str | None = None

    # ---- Current-period listings ----
    # Minutes after 00:00 on the 1st during which current-month lists come back empty.
    rollover_blank_minutes: int = 0

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        if env not in ("prod", "production"):
            return

        if (self.auth_mode or "").strip().lower() == "dev":
            raise ValueError("SECURITY: auth_mode=dev is not allowed in prod")
        if self.jwt_secret == DEV_JWT_SECRET:
            raise ValueError("SECURITY: jwt_secret must be set in prod")

        origins = self.cors_allow_origins
        if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
            raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
