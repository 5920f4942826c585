"""Custom validators for upload configuration."""

from .constants import MAX_PART_SIZE, MIN_PART_SIZE


def validate_part_size(part_size: int) -> int:
    """Validate a fixed part size against the store's limits (0 means automatic)."""
    if part_size == 0:
        return part_size
    if part_size < MIN_PART_SIZE:
        raise ValueError(f"Part size must be at least {MIN_PART_SIZE} bytes")
    if part_size > MAX_PART_SIZE:
        raise ValueError(f"Part size must be at most {MAX_PART_SIZE} bytes")
    return part_size


def validate_object_key(key: str) -> str:
    """Validate an object key."""
    if not key:
        raise ValueError("Object key must not be empty")
    if key.startswith("/"):
        raise ValueError("Object key must not start with '/'")
    if len(key.encode("utf-8")) > 1024:
        raise ValueError("Object key must be at most 1024 bytes long")
    return key
