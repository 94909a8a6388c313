import os
import logging
from pydantic import BaseModel, Field
from typing import List
from dotenv import load_dotenv

load_dotenv()


class StorageSettings(BaseModel):
    upload_dir: str = Field(default=os.getenv("UPLOAD_DIR", "uploads"))
    public_url_prefix: str = "/uploads"
    max_upload_bytes: int = Field(default=int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024))))
    max_files_per_upload: int = 5
    allowed_content_types: List[str] = [
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
    ]


class Config(BaseModel):
    app_name: str = "LeaveDesk"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./leavedesk.db")

    # Auth
    secret_key: str = os.getenv("SECRET_KEY", "dev-only-insecure-key-DO-NOT-USE-IN-PROD")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))
    refresh_token_expire_days: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))
    access_cookie_name: str = "accessToken"
    refresh_cookie_name: str = "refreshToken"
    login_rate_limit: str = os.getenv("LOGIN_RATE_LIMIT", "10/minute")

    # Attachments
    storage: StorageSettings = StorageSettings()

    # Orphaned attachment sweep
    orphan_sweep_enabled: bool = os.getenv("ORPHAN_SWEEP_ENABLED", "true").lower() == "true"
    orphan_sweep_interval_minutes: int = int(os.getenv("ORPHAN_SWEEP_INTERVAL_MINUTES", "60"))
    orphan_grace_minutes: int = int(os.getenv("ORPHAN_GRACE_MINUTES", "60"))

    # First-run admin account, created only when the users table is empty
    bootstrap_admin_email: str = os.getenv("BOOTSTRAP_ADMIN_EMAIL", "")
    bootstrap_admin_password: str = os.getenv("BOOTSTRAP_ADMIN_PASSWORD", "")

    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"

    # CORS: comma-separated origins loaded from env
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:5173,http://127.0.0.1:5173,"
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if o.strip()
        ]
    )

    @property
    def is_testing(self) -> bool:
        return self.environment == "testing"


settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment not in ("development", "testing"):
    if "dev-only" in settings.secret_key or "change-it" in settings.secret_key:
        raise RuntimeError(
            "FATAL: SECRET_KEY must be set for non-development environments. "
            "Set it as an environment variable."
        )
else:
    if "dev-only" in settings.secret_key:
        _logger.warning("Using insecure default SECRET_KEY; only acceptable in development.")
