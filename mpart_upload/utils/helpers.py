"""Helper functions for common operations."""

import mimetypes
import os
from typing import Optional


def format_file_size(size_bytes: float) -> str:
    """Format file size in human-readable format."""
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_bytes < 1024.0:
            return f"{size_bytes:.2f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.2f} PB"


def generate_object_key(file_path: str, prefix: Optional[str] = None) -> str:
    """
    Derive the object key for a local file.
    Format: [prefix/]filename
    """
    filename = os.path.basename(file_path)
    if prefix:
        return f"{prefix.strip('/')}/{filename}"
    return filename


def guess_content_type(file_path: str) -> str:
    """Guess MIME type from the file name, falling back to octet-stream."""
    content_type, _ = mimetypes.guess_type(file_path)
    return content_type or "application/octet-stream"
