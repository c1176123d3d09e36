"""Configuration management using Pydantic settings."""
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # SQS Configuration
    sqs_queue: str  # queue name, not the URL or ARN
    sqs_queue_owner_aws_account_id: Optional[str] = None
    polling_frequency: int = Field(default=20, ge=0, le=20)
    delete_messages: bool = True
    consumer_threads: int = Field(default=1, ge=1)

    # AWS / LocalStack
    aws_region: str = "us-east-1"
    aws_endpoint_url: Optional[str] = None

    # Event fields populated from the SQS message
    id_field: Optional[str] = None
    md5_field: Optional[str] = None
    sent_timestamp_field: Optional[str] = None

    # Decoding and decoration
    codec: str = "json"
    event_type: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    add_field: Dict[str, str] = Field(default_factory=dict)

    # Output
    output_path: Optional[str] = None  # None = stdout

    # Application
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("id_field", "md5_field", "sent_timestamp_field", "sqs_queue_owner_aws_account_id")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @field_validator("codec", "log_format")
    @classmethod
    def _lowercase(cls, value: str) -> str:
        return value.strip().lower()

    @property
    def is_local_environment(self) -> bool:
        """Check if running against a local endpoint (LocalStack)."""
        return self.aws_endpoint_url is not None


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
