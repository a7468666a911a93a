from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    # Provider write-batch limit; every atomic batch commit stays at or below it.
    max_ops_per_batch: int = Field(400, alias="MAX_OPS_PER_BATCH", ge=1)
    pass_mark: float = Field(33, alias="PASS_MARK")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
