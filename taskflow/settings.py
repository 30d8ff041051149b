import enum
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from yarl import URL


class LogLevel(str, enum.Enum):
    """Possible log levels."""

    NOTSET = "NOTSET"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    FATAL = "FATAL"


class Settings(BaseSettings):
    """
    Application settings.

    These parameters can be configured
    with environment variables prefixed with ``TASKFLOW_``.
    """

    host: str = "127.0.0.1"
    port: int = 8000
    # quantity of workers for uvicorn
    workers_count: int = 1
    # Enable uvicorn reloading
    reload: bool = False

    # Current environment
    environment: str = "dev"

    log_level: LogLevel = LogLevel.INFO

    # Apps whose models.py is imported before create_all / autogenerate
    app_names: List[str] = ["workflow", "auth"]

    # Variables for the database
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "taskflow"
    db_pass: str = "taskflow"
    db_base: str = "taskflow"
    db_echo: bool = False
    # Full DSN, wins over the parts above (e.g. sqlite+aiosqlite:///taskflow.db)
    db_dsn: Optional[str] = None
    # None means "only for sqlite"
    db_create_all: Optional[bool] = None

    # Session tokens
    secret_key: str = "change-me-in-production"
    token_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # Default superadmin, created on startup when no superadmin exists
    superadmin_email: str = "superadmin@company.com"
    superadmin_otp: str = "123456"
    superadmin_name: str = "System Administrator"

    # Grpc endpoint for opentelemetry.
    # E.G. http://localhost:4317
    opentelemetry_endpoint: Optional[str] = None

    prometheus_enabled: bool = True

    @property
    def db_url(self) -> str:
        """
        Assemble database URL from settings.

        :return: database URL.
        """
        if self.db_dsn:
            return self.db_dsn
        return str(
            URL.build(
                scheme="postgresql+asyncpg",
                host=self.db_host,
                port=self.db_port,
                user=self.db_user,
                password=self.db_pass,
                path=f"/{self.db_base}",
            ),
        )

    @property
    def should_create_all(self) -> bool:
        if self.db_create_all is not None:
            return self.db_create_all
        return self.db_url.startswith("sqlite")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TASKFLOW_",
        env_file_encoding="utf-8",
    )


settings = Settings()
