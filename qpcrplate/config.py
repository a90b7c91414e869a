"""Runtime settings for qpcrplate, read from the environment."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from ``QPCRPLATE_``-prefixed environment variables.

    Attributes:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        STRICT_AXIS_LABELS: Fail when a key table names labels outside the plate
        DEFAULT_AGGREGATION: Reference aggregation for normalization ("median", "mean")
        DRDT_METHOD: Default melt-curve derivative method ("spline", "diff")
    """

    model_config = SettingsConfigDict(
        env_prefix="QPCRPLATE_", env_file=".env", extra="ignore"
    )

    LOG_LEVEL: str = "INFO"
    STRICT_AXIS_LABELS: bool = True
    DEFAULT_AGGREGATION: str = "median"
    DRDT_METHOD: str = "spline"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance (lazy singleton)."""
    return Settings()
