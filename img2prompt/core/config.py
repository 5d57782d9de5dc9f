import os
from pathlib import Path
from typing import List, Optional

from img2prompt.core.exceptions import ConfigurationError

# Value shipped in the example environment file; treated as "not configured".
PLACEHOLDER_API_TOKEN = "your-coze-api-token-here"


class Settings:
    PROJECT_NAME: str = "Image to Prompt Service"
    PROJECT_VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"  # Base path for API v1

    # This is for detecting test mode, but the primary mechanism for setting
    # test config is conftest.py, which will monkeypatch these values.
    TESTING: bool = os.getenv("TESTING", "False").lower() in ("true", "1", "t")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Database settings
    # When running in Docker, use 'db' as the host (Docker service name)
    # When running locally, use 'localhost' or '127.0.0.1'
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "postgres")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "postgres")
    POSTGRES_SERVER: str = os.getenv("POSTGRES_SERVER", "localhost")
    POSTGRES_PORT: str = os.getenv("POSTGRES_PORT", "5432")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "img2prompt")

    # Private attribute to store the DATABASE_URL if set directly
    _database_url: Optional[str] = None

    @property
    def DATABASE_URL(self) -> str:
        # If DATABASE_URL was set directly, return that
        if self._database_url is not None:
            return self._database_url

        # If DATABASE_URL is explicitly set in environment, use that
        if os.getenv("DATABASE_URL"):
            return os.getenv("DATABASE_URL")

        # If in testing mode, use SQLite in-memory database
        if self.TESTING:
            return "sqlite:///:memory:"

        # Otherwise, construct the PostgreSQL URL
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@"
            f"{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @DATABASE_URL.setter
    def DATABASE_URL(self, value: str) -> None:
        self._database_url = value

    # Uploaded images are staged here until the worker has sent them upstream.
    # API and worker processes must share this directory.
    UPLOAD_FOLDER: Path = Path(os.getenv("UPLOAD_FOLDER", "uploads")).resolve()

    # Production Celery settings (will be patched for tests)
    CELERY_BROKER_URL: str = os.getenv(
        "CELERY_BROKER_URL", "redis://redis:6379/0"
    )
    CELERY_RESULT_BACKEND: str = os.getenv(
        "CELERY_RESULT_BACKEND", "redis://redis:6379/0"
    )

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost",
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # Upstream workflow service
    COZE_API_TOKEN: Optional[str] = os.getenv("COZE_API_TOKEN")
    COZE_WORKFLOW_ID: Optional[str] = os.getenv("COZE_WORKFLOW_ID")
    COZE_API_BASE: str = os.getenv("COZE_API_BASE", "https://api.coze.cn")
    UPSTREAM_TIMEOUT_SECONDS: float = float(
        os.getenv("UPSTREAM_TIMEOUT_SECONDS", "120")
    )

    # Public URL of this service, used to build absolute status URLs
    APP_URL: Optional[str] = os.getenv("APP_URL")

    # Task lifecycle
    TASK_STORE_BACKEND: str = os.getenv("TASK_STORE_BACKEND", "database")
    TASK_EXECUTION_MODE: str = os.getenv("TASK_EXECUTION_MODE", "worker")
    TASK_EXPIRY_SECONDS: int = int(os.getenv("TASK_EXPIRY_SECONDS", "3600"))
    TASK_CLEANUP_INTERVAL_SECONDS: int = int(
        os.getenv("TASK_CLEANUP_INTERVAL_SECONDS", "900")
    )
    DEFAULT_STYLE_PREFERENCE: str = os.getenv(
        "DEFAULT_STYLE_PREFERENCE", "detailed"
    )

    # Celery settings for testing (will be True only when patched by conftest.py)
    CELERY_TASK_ALWAYS_EAGER: bool = False
    CELERY_TASK_EAGER_PROPAGATES: bool = False

    @property
    def has_api_token(self) -> bool:
        return bool(self.COZE_API_TOKEN) and (
            self.COZE_API_TOKEN != PLACEHOLDER_API_TOKEN
        )

    def validate_upstream(self) -> None:
        """Fail fast when the upstream credentials are not configured.

        Raises:
            ConfigurationError: If the API token or the workflow id is missing
        """
        if not self.has_api_token:
            raise ConfigurationError(
                "API configuration missing. Please configure COZE_API_TOKEN.",
                details="COZE_API_TOKEN is required for image-to-prompt "
                "functionality",
            )
        if not self.COZE_WORKFLOW_ID:
            raise ConfigurationError(
                "API configuration missing. Please configure COZE_WORKFLOW_ID.",
                details="COZE_WORKFLOW_ID is required for workflow execution",
            )


settings = Settings()
