"""
Configuration management for the visual analysis worker.

Centralizes all configuration loading from environment variables
and provides type-safe access to configuration values.
"""

import os
from dataclasses import dataclass
from typing import Optional


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class WorkerConfig:
    """Configuration for the visual analysis worker"""

    # Job store settings
    DATABASE_URL: Optional[str] = None
    POSTGRES_POOL_SIZE: int = 5
    POSTGRES_TIMEOUT: int = 10

    # Blob store settings
    S3_BUCKET: Optional[str] = None
    S3_REGION: str = "us-east-1"
    S3_PREFIX: str = "video-frames/"
    S3_ENDPOINT_URL: Optional[str] = None
    S3_PUBLIC_BASE_URL: Optional[str] = None

    # Oracle settings
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4.1"
    ORACLE_TIMEOUT_SEC: float = 120.0

    # Sampling settings
    SAMPLING_FPS: float = 1.0
    MAX_FRAMES_PER_VIDEO: int = 30
    ANALYSIS_IMAGE_LIMIT: int = 8
    ENABLE_QUALITY_SCORING: bool = True
    PROBE_DURATION: bool = False

    # Processing settings
    POLL_INTERVAL_MS: int = 3000
    MAX_ATTEMPTS: int = 3  # 0 = re-claim failed jobs forever
    DOWNLOAD_TIMEOUT_SEC: float = 120.0

    # Logging
    LOG_LEVEL: str = "INFO"

    # HTTP server
    ENABLE_HTTP_SERVER: bool = False
    HTTP_PORT: int = 8000

    # Data directory
    DATA_DIR: str = "/app/data"
    KEEP_SCRATCH: bool = False

    @classmethod
    def from_env(cls) -> 'WorkerConfig':
        """Load configuration from environment variables"""
        config = cls()

        # Job store configuration
        config.DATABASE_URL = os.getenv("DATABASE_URL")
        config.POSTGRES_POOL_SIZE = int(os.getenv("POSTGRES_POOL_SIZE", "5"))
        config.POSTGRES_TIMEOUT = int(os.getenv("POSTGRES_TIMEOUT", "10"))

        # Blob store configuration
        config.S3_BUCKET = os.getenv("AWS_S3_BUCKET")
        config.S3_REGION = os.getenv("AWS_REGION", "us-east-1")
        config.S3_PREFIX = os.getenv("S3_PREFIX", "video-frames/")
        config.S3_ENDPOINT_URL = os.getenv("S3_ENDPOINT_URL") or None
        config.S3_PUBLIC_BASE_URL = os.getenv("S3_PUBLIC_BASE_URL") or None

        # Oracle configuration
        config.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
        config.OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4.1")
        config.ORACLE_TIMEOUT_SEC = float(os.getenv("ORACLE_TIMEOUT_SEC", "120"))

        # Sampling settings
        config.SAMPLING_FPS = float(os.getenv("SAMPLING_FPS", "1.0"))
        config.MAX_FRAMES_PER_VIDEO = int(os.getenv("MAX_FRAMES_PER_VIDEO", "30"))
        config.ANALYSIS_IMAGE_LIMIT = int(os.getenv("ANALYSIS_IMAGE_LIMIT", "8"))
        config.ENABLE_QUALITY_SCORING = _env_flag("ENABLE_QUALITY_SCORING", "true")
        config.PROBE_DURATION = _env_flag("PROBE_DURATION", "false")

        # Processing settings
        config.POLL_INTERVAL_MS = int(os.getenv("WORKER_POLL_MS", "3000"))
        config.MAX_ATTEMPTS = int(os.getenv("WORKER_MAX_ATTEMPTS", "3"))
        config.DOWNLOAD_TIMEOUT_SEC = float(os.getenv("DOWNLOAD_TIMEOUT_SEC", "120"))

        # Logging
        config.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

        # HTTP server
        config.ENABLE_HTTP_SERVER = _env_flag("WORKER_DEV_HTTP", "false")
        config.HTTP_PORT = int(os.getenv("WORKER_HTTP_PORT", "8000"))

        # Data directory
        config.DATA_DIR = os.getenv("DATA_DIR", "/app/data")
        config.KEEP_SCRATCH = _env_flag("KEEP_SCRATCH", "false")

        return config

    def validate(self) -> None:
        """Validate configuration and raise errors for missing or invalid values"""
        required_vars = []

        if not self.DATABASE_URL:
            required_vars.append("DATABASE_URL")

        if not self.S3_BUCKET:
            required_vars.append("AWS_S3_BUCKET")

        if not self.OPENAI_API_KEY:
            required_vars.append("OPENAI_API_KEY")

        if required_vars:
            raise ValueError(f"Missing required environment variables: {', '.join(required_vars)}")

        if self.SAMPLING_FPS <= 0:
            raise ValueError(f"SAMPLING_FPS must be positive, got {self.SAMPLING_FPS}")

        if self.POLL_INTERVAL_MS < 0:
            raise ValueError(f"WORKER_POLL_MS must not be negative, got {self.POLL_INTERVAL_MS}")

    @property
    def poll_interval_sec(self) -> float:
        return self.POLL_INTERVAL_MS / 1000.0

    @property
    def scratch_root(self) -> str:
        return os.path.join(self.DATA_DIR, "jobs")

    @property
    def log_dir(self) -> str:
        return os.path.join(self.DATA_DIR, "worker")
