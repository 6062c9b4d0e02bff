# src/cloud_store/config/settings.py
from functools import lru_cache
from typing import Dict, Optional

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_DEPLOYMENT_MODES = ["local-dev", "aws-mock", "aws-prod"]

# MinIO container started by the local development scripts
LOCAL_DEV_ENDPOINT_URL = "http://127.0.0.1:9000"
LOCAL_DEV_ACCESS_KEY = "ROOTNAME"
LOCAL_DEV_SECRET_KEY = "CHANGEME123"

# moto server
AWS_MOCK_ENDPOINT_URL = "http://localhost:5000"


class Settings(BaseSettings):
    """
    Single source of truth for the cloud store configuration.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from cloud_store.config.settings import get_settings
        settings = get_settings()
        bucket_name = settings.s3_bucket_name
    """

    # Deployment Mode
    deployment_mode: str = Field(
        default="local-dev",
        description="Deployment mode: local-dev (MinIO), aws-mock (moto server) or aws-prod",
    )

    # Resource Mapping
    base_url: str = Field(
        default="http://localhost:3000/",
        description="Base of every resource identifier served by this store",
    )

    root_prefix: str = Field(
        default="root",
        description="Root prefix of every storage key inside the bucket",
    )

    custom_types: Dict[str, str] = Field(
        default_factory=dict,
        description="Extension to content-type overrides, e.g. {\"cstm\": \"text/custom\"}",
    )

    unknown_media_type_extension: str = Field(
        default="unknown",
        description="Extension appended to keys whose content type has no known extension",
    )

    # S3 Configuration
    s3_bucket_name: str = Field(
        default="cloud-store",
        description="Bucket holding all resources",
    )

    # AWS Core Settings
    aws_region: str = Field(
        default="us-east-1",
        validation_alias=AliasChoices("AWS_DEFAULT_REGION", "aws_region"),
    )

    aws_endpoint_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("AWS_ENDPOINT_URL", "aws_endpoint_url"),
    )

    aws_access_key_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("AWS_ACCESS_KEY_ID", "MINIO_USER", "aws_access_key_id"),
    )

    aws_secret_access_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("AWS_SECRET_ACCESS_KEY", "MINIO_PASS", "aws_secret_access_key"),
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    @field_validator("deployment_mode", mode="before")
    @classmethod
    def normalize_deployment_mode(cls, v):
        """Normalize deployment mode values for backwards compatibility."""
        if v:
            mode_mapping = {
                "local": "local-dev",
                "minio": "local-dev",
                "cloud": "aws-prod",
            }
            return mode_mapping.get(v, v)
        return v

    @field_validator("deployment_mode")
    @classmethod
    def validate_deployment_mode(cls, v):
        """Validate deployment mode is one of the allowed values."""
        if v not in VALID_DEPLOYMENT_MODES:
            raise ValueError(f"Invalid deployment_mode: {v}. Must be one of {VALID_DEPLOYMENT_MODES}")
        return v

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v):
        """The base must be absolute and end with a slash so containers resolve."""
        if "://" not in v:
            raise ValueError(f"base_url must be an absolute URL, got {v!r}")
        return v if v.endswith("/") else f"{v}/"

    @field_validator("root_prefix")
    @classmethod
    def validate_root_prefix(cls, v):
        v = v.strip("/")
        if not v:
            raise ValueError("root_prefix cannot be empty")
        return v

    @model_validator(mode="after")
    def set_local_defaults(self):
        """Auto-set endpoint URL and credentials for local modes if not provided."""
        if self.deployment_mode == "local-dev":
            self.aws_endpoint_url = self.aws_endpoint_url or LOCAL_DEV_ENDPOINT_URL
            self.aws_access_key_id = self.aws_access_key_id or LOCAL_DEV_ACCESS_KEY
            self.aws_secret_access_key = self.aws_secret_access_key or LOCAL_DEV_SECRET_KEY
        elif self.deployment_mode == "aws-mock":
            self.aws_endpoint_url = self.aws_endpoint_url or AWS_MOCK_ENDPOINT_URL
            self.aws_access_key_id = self.aws_access_key_id or "mock"
            self.aws_secret_access_key = self.aws_secret_access_key or "mock"
        return self

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
