# certverify/core/config.py
import os
from typing import ClassVar
from pydantic import BaseModel, Field


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _default_database_url() -> str:
    data_dir = os.path.abspath(os.getenv("DATA_DIR", "./data"))
    os.makedirs(data_dir, exist_ok=True)
    return os.getenv("DATABASE_URL", f"sqlite:///{os.path.join(data_dir, 'certificates.db')}")


class Settings(BaseModel):
    # Constante (não vira campo Pydantic)
    DATA_DIR: ClassVar[str] = os.path.abspath(os.getenv("DATA_DIR", "./data"))

    DATABASE_URL: str = Field(default_factory=_default_database_url)
    RUN_MIGRATIONS: bool = Field(default_factory=lambda: _env_bool("RUN_MIGRATIONS", "true"))

    # auth
    SECRET_KEY: str = Field(default_factory=lambda: os.getenv("SECRET_KEY", "CHANGE_ME_SUPER_SECRET"))
    REFRESH_SECRET_KEY: str = Field(default_factory=lambda: os.getenv("REFRESH_SECRET_KEY", "CHANGE_ME_ANOTHER_SECRET"))
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default_factory=lambda: int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30")))
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default_factory=lambda: int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7")))

    # emissão
    CERT_ID_PREFIX: str = Field(default_factory=lambda: os.getenv("CERT_ID_PREFIX", "MTN-CERT-"))
    CERT_ID_DIGITS: int = Field(default_factory=lambda: max(4, int(os.getenv("CERT_ID_DIGITS", "4"))))
    ISSUE_MAX_ID_ATTEMPTS: int = Field(default_factory=lambda: int(os.getenv("ISSUE_MAX_ID_ATTEMPTS", "32")))
    ISSUE_AS_DRAFT_DEFAULT: bool = Field(default_factory=lambda: _env_bool("ISSUE_AS_DRAFT_DEFAULT"))
    DEFAULT_ISSUING_AUTHORITY: str = Field(
        default_factory=lambda: os.getenv("DEFAULT_ISSUING_AUTHORITY", "MTN Cameroon Professional Development")
    )

    # verificação
    TIMEZONE: str = Field(default_factory=lambda: os.getenv("TIMEZONE", "Africa/Douala"))
    QR_PAYLOAD_VERSION: int = 1
    PUBLIC_BASE_URL: str = Field(default_factory=lambda: os.getenv("PUBLIC_BASE_URL", ""))

    # logging
    LOG_LEVEL: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    LOG_JSON: bool = Field(default_factory=lambda: _env_bool("LOG_JSON", "true"))

    # seed
    ADMIN_EMAIL: str = Field(default_factory=lambda: os.getenv("ADMIN_EMAIL", "admin@mtn.cm"))
    ADMIN_PASSWORD: str = Field(default_factory=lambda: os.getenv("ADMIN_PASSWORD", "admin12345"))
    SEED_DEMO: bool = Field(default_factory=lambda: _env_bool("SEED_DEMO"))


settings = Settings()
