"""Part planning for multipart uploads."""

from typing import List, Tuple

from ..core.exceptions import EmptySourceError
from ..schemas.multipart_schemas import PartSegment
from ..utils.constants import EmptyFilePolicy, MAX_PART_SIZE, MAX_PARTS, MIN_PART_SIZE


def calculate_part_size(file_size: int, max_parts: int = MAX_PARTS) -> Tuple[int, int]:
    """
    Calculate optimal part size for multipart upload.

    Returns:
        (part_size, total_parts)
    """
    # Recommended part sizes based on file size
    if file_size < 100 * 1024 * 1024:  # < 100MB
        part_size = 10 * 1024 * 1024  # 10MB
    elif file_size < 1 * 1024 * 1024 * 1024:  # < 1GB
        part_size = 100 * 1024 * 1024  # 100MB
    elif file_size < 10 * 1024 * 1024 * 1024:  # < 10GB
        part_size = 500 * 1024 * 1024  # 500MB
    else:
        part_size = 1 * 1024 * 1024 * 1024  # 1GB

    # Ensure part size is within limits
    part_size = max(MIN_PART_SIZE, min(part_size, MAX_PART_SIZE))

    total_parts = -(-file_size // part_size)

    # If too many parts, increase part size
    if total_parts > max_parts:
        part_size = -(-file_size // max_parts)
        total_parts = -(-file_size // part_size)

    return (part_size, total_parts)


def plan_parts(
    file_size: int,
    part_size: int,
    empty_file_policy: EmptyFilePolicy = EmptyFilePolicy.REJECT,
    max_parts: int = MAX_PARTS,
) -> List[PartSegment]:
    """
    Split [0, file_size) into contiguous parts numbered from 1.

    Every part is part_size bytes except possibly the last. A zero-length
    source is rejected or planned as a single empty part, per policy.
    """
    if file_size < 0:
        raise ValueError("File size must not be negative")
    if part_size <= 0:
        raise ValueError("Part size must be positive")

    if file_size == 0:
        if empty_file_policy == EmptyFilePolicy.SINGLE_PART:
            return [PartSegment(part_number=1, offset=0, length=0)]
        raise EmptySourceError("Cannot upload an empty file as multipart (EMPTY_FILE_POLICY=reject)")

    total_parts = -(-file_size // part_size)
    if total_parts > max_parts:
        raise ValueError(
            f"File of {file_size} bytes needs {total_parts} parts of {part_size} bytes; "
            f"the store allows at most {max_parts}"
        )

    return [
        PartSegment(
            part_number=index + 1,
            offset=index * part_size,
            length=min((index + 1) * part_size, file_size) - index * part_size,
        )
        for index in range(total_parts)
    ]
