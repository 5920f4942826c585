"""Configuration module for application settings."""

from .settings import Settings, settings
from .storage import build_object_url, get_bucket_name, get_credentials, get_endpoint_url

__all__ = [
    "Settings",
    "settings",
    "build_object_url",
    "get_bucket_name",
    "get_credentials",
    "get_endpoint_url",
]
