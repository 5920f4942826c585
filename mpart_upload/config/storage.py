"""Storage configuration: credentials and endpoint resolution."""

from typing import Optional
from urllib.parse import quote

import boto3
from botocore.credentials import Credentials

from .settings import Settings, settings as default_settings


def get_credentials(config: Optional[Settings] = None) -> Credentials:
    """
    Resolve signing credentials.
    Uses the configured static keys when present, otherwise boto3's default
    credential chain (environment, shared config, instance metadata).
    """
    config = config or default_settings

    if config.use_static_credentials:
        return Credentials(
            access_key=config.aws_access_key_id,
            secret_key=config.aws_secret_access_key,
            token=config.aws_session_token or None,
        )

    credentials = boto3.Session(region_name=config.aws_region).get_credentials()
    if credentials is None:
        raise ValueError("No AWS credentials found in settings or credential chain")
    return credentials


def get_bucket_name(config: Optional[Settings] = None) -> str:
    """Get the configured bucket name."""
    config = config or default_settings
    if not config.s3_bucket_name:
        raise ValueError("S3_BUCKET_NAME is not configured")
    return config.s3_bucket_name


def get_endpoint_url(config: Optional[Settings] = None) -> str:
    """
    Get the base URL objects are addressed under.
    AWS uses virtual-hosted style; custom endpoints (MinIO, Wasabi, ...) use
    path style.
    """
    config = config or default_settings
    bucket = get_bucket_name(config)

    if config.s3_endpoint_url:
        return f"{config.s3_endpoint_url.rstrip('/')}/{bucket}"
    return f"https://{bucket}.s3.{config.aws_region}.amazonaws.com"


def build_object_url(endpoint_url: str, key: str) -> str:
    """Build the URL of an object under an endpoint, percent-encoding the key."""
    return f"{endpoint_url.rstrip('/')}/{quote(key, safe='/~')}"
