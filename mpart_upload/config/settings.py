"""Application settings using Pydantic Settings."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils.constants import (
    AuthMode,
    DEFAULT_PART_SIZE,
    DEFAULT_PRESIGN_EXPIRATION,
    EmptyFilePolicy,
)
from ..utils.validators import validate_part_size


class Settings(BaseSettings):
    """Upload settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    debug: bool = Field(default=False, alias="DEBUG")

    # Credentials; empty values fall back to the boto3 credential chain
    aws_access_key_id: str = Field(default="", alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str = Field(default="", alias="AWS_SECRET_ACCESS_KEY")
    aws_session_token: str = Field(default="", alias="AWS_SESSION_TOKEN")
    aws_region: str = Field(default="us-east-1", alias="AWS_REGION")

    # Storage
    s3_bucket_name: str = Field(default="", alias="S3_BUCKET_NAME")
    s3_endpoint_url: str = Field(default="", alias="S3_ENDPOINT_URL")
    s3_key_prefix: str = Field(default="", alias="S3_KEY_PREFIX")

    # Multipart
    part_size: int = Field(default=DEFAULT_PART_SIZE, ge=0, alias="PART_SIZE")
    max_concurrency: int = Field(default=4, ge=1, alias="MAX_CONCURRENCY")
    auth_mode: AuthMode = Field(default=AuthMode.HEADER, alias="AUTH_MODE")
    presign_expiration: int = Field(
        default=DEFAULT_PRESIGN_EXPIRATION, ge=1, le=604800, alias="PRESIGN_EXPIRATION"
    )
    empty_file_policy: EmptyFilePolicy = Field(
        default=EmptyFilePolicy.REJECT, alias="EMPTY_FILE_POLICY"
    )
    fail_fast: bool = Field(default=False, alias="FAIL_FAST")
    sign_payload: bool = Field(default=False, alias="SIGN_PAYLOAD")

    # Retry
    max_retries: int = Field(default=3, ge=0, alias="MAX_RETRIES")
    retry_base_delay_seconds: float = Field(
        default=1.0, ge=0, alias="RETRY_BASE_DELAY_SECONDS"
    )
    retry_backoff_multiplier: float = Field(
        default=2.0, ge=1, alias="RETRY_BACKOFF_MULTIPLIER"
    )
    retry_max_delay_seconds: float = Field(
        default=30.0, ge=0, alias="RETRY_MAX_DELAY_SECONDS"
    )

    # HTTP
    request_timeout_seconds: float = Field(
        default=300.0, gt=0, alias="REQUEST_TIMEOUT_SECONDS"
    )

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("part_size")
    @classmethod
    def check_part_size(cls, v: int) -> int:
        """Fixed part sizes must respect the store's multipart limits."""
        return validate_part_size(v)

    @property
    def use_static_credentials(self) -> bool:
        """Whether explicit credentials were configured."""
        return bool(self.aws_access_key_id and self.aws_secret_access_key)


# Global settings instance
settings = Settings()
