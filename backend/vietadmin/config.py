import json
import os
import threading
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field


load_dotenv()

SUPPORTED_DATABASE_SCHEMES = {"postgresql+asyncpg", "sqlite+aiosqlite"}
RATE_LIMIT_BACKENDS = {"database", "redis"}


def _parse_bool(name: str, raw_value: str) -> bool:
    value = raw_value.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean value")


class Settings(BaseModel):
    app_name: str = Field(default="VietAdmin Backend")
    debug: bool = Field(default=False)
    database_url: str = Field(default="")
    redis_url: str = Field(default="redis://localhost:6379/0")
    allowed_origins: list[str] = Field(default_factory=list)
    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)
    db_pool_recycle: int = Field(default=1800)
    db_pool_pre_ping: bool = Field(default=True)
    rate_limit_backend: str = Field(default="database")
    admin_session_ttl_hours: int = Field(default=8)
    bcrypt_rounds: int = Field(default=12)

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @classmethod
    def from_env(cls) -> "Settings":
        raw_allowed_origins = os.getenv("ALLOWED_ORIGINS", "").strip()
        if not raw_allowed_origins:
            raise ValueError("ALLOWED_ORIGINS environment variable must be set")

        # Support both CSV format and JSON array format
        allowed_origins: list[str] = []
        if raw_allowed_origins.startswith("["):
            try:
                parsed_list = json.loads(raw_allowed_origins)
                if not isinstance(parsed_list, list):
                    raise ValueError("ALLOWED_ORIGINS JSON must be an array")
                allowed_origins = [
                    origin.strip() for origin in parsed_list if isinstance(origin, str) and origin.strip()
                ]
            except json.JSONDecodeError as exc:
                raise ValueError(f"ALLOWED_ORIGINS JSON is malformed: {exc}") from exc
        else:
            allowed_origins = [
                origin.strip() for origin in raw_allowed_origins.split(",") if origin.strip()
            ]

        if not allowed_origins:
            raise ValueError("ALLOWED_ORIGINS must contain at least one origin")

        if "*" in allowed_origins:
            raise ValueError(
                "ALLOWED_ORIGINS cannot contain '*' when credentialed requests are used"
            )

        for origin in allowed_origins:
            parsed = urlparse(origin)
            if parsed.scheme not in {"http", "https"} or not parsed.netloc:
                raise ValueError(
                    "ALLOWED_ORIGINS must contain valid http/https origins with host"
                )

        database_url = os.getenv("DATABASE_URL", "").strip()
        if not database_url:
            raise ValueError("DATABASE_URL environment variable must be set")

        parsed_db = urlparse(database_url)
        if parsed_db.scheme not in SUPPORTED_DATABASE_SCHEMES:
            raise ValueError(
                "DATABASE_URL must start with 'postgresql+asyncpg://' or 'sqlite+aiosqlite://'"
            )
        if parsed_db.scheme == "postgresql+asyncpg" and not parsed_db.hostname:
            raise ValueError("DATABASE_URL must include hostname")

        db_pool_size = int(os.getenv("DB_POOL_SIZE", cls.model_fields["db_pool_size"].default))
        if db_pool_size <= 0:
            raise ValueError("DB_POOL_SIZE must be greater than 0")

        db_max_overflow = int(
            os.getenv("DB_MAX_OVERFLOW", cls.model_fields["db_max_overflow"].default)
        )
        if db_max_overflow < 0:
            raise ValueError("DB_MAX_OVERFLOW must be greater than or equal to 0")

        db_pool_recycle = int(
            os.getenv("DB_POOL_RECYCLE", cls.model_fields["db_pool_recycle"].default)
        )
        if db_pool_recycle <= 0:
            raise ValueError("DB_POOL_RECYCLE must be greater than 0")

        db_pool_pre_ping = _parse_bool(
            "DB_POOL_PRE_PING",
            os.getenv("DB_POOL_PRE_PING", str(cls.model_fields["db_pool_pre_ping"].default)),
        )

        rate_limit_backend = os.getenv(
            "RATE_LIMIT_BACKEND", cls.model_fields["rate_limit_backend"].default
        ).strip().lower()
        if rate_limit_backend not in RATE_LIMIT_BACKENDS:
            raise ValueError(
                f"RATE_LIMIT_BACKEND must be one of: {', '.join(sorted(RATE_LIMIT_BACKENDS))}"
            )

        admin_session_ttl_hours = int(
            os.getenv(
                "ADMIN_SESSION_TTL_HOURS",
                cls.model_fields["admin_session_ttl_hours"].default,
            )
        )
        if admin_session_ttl_hours <= 0:
            raise ValueError("ADMIN_SESSION_TTL_HOURS must be greater than 0")

        bcrypt_rounds = int(os.getenv("BCRYPT_ROUNDS", cls.model_fields["bcrypt_rounds"].default))
        if not 4 <= bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")

        redis_url = os.getenv("REDIS_URL", cls.model_fields["redis_url"].default).strip()

        return cls(
            app_name=os.getenv("APP_NAME", cls.model_fields["app_name"].default),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            database_url=database_url,
            redis_url=redis_url,
            allowed_origins=allowed_origins,
            db_pool_size=db_pool_size,
            db_max_overflow=db_max_overflow,
            db_pool_recycle=db_pool_recycle,
            db_pool_pre_ping=db_pool_pre_ping,
            rate_limit_backend=rate_limit_backend,
            admin_session_ttl_hours=admin_session_ttl_hours,
            bcrypt_rounds=bcrypt_rounds,
        )


# Settings are validated on first access, not at import time.
_settings_instance: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get settings instance, creating it on first access.

    Uses double-checked locking so concurrent first accesses build a single
    instance.

    Raises:
        ValueError: If required environment variables are missing or invalid
    """
    global _settings_instance

    if _settings_instance is not None:
        return _settings_instance

    with _settings_lock:
        if _settings_instance is None:
            _settings_instance = Settings.from_env()

    return _settings_instance


class _SettingsProxy:
    """Proxy to defer settings creation until first attribute access."""

    def __getattr__(self, name: str):
        return getattr(get_settings(), name)


settings = _SettingsProxy()  # type: ignore[assignment]
