"""Concurrent multipart uploads to S3-compatible object stores."""

__version__ = "1.0.0"
