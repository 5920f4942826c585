"""Positioned reads from the local file being uploaded."""

import asyncio
import os
from pathlib import Path
from typing import Union

from ..core.exceptions import PartReadError
from ..schemas.multipart_schemas import PartSegment


class LocalFileSource:
    """
    Local file read at arbitrary offsets by concurrent part uploads.

    Every read opens its own handle, so concurrent reads share no cursor.
    The size is captured once, when the source is opened, and planning uses
    that value; a file that shrinks afterwards fails with a short read.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        try:
            self.size = os.path.getsize(self.path)
        except OSError as e:
            raise PartReadError(f"Cannot open source {self.path}: {e}") from e

    def _read_sync(self, offset: int, length: int) -> bytes:
        with open(self.path, "rb") as f:
            f.seek(offset)
            return f.read(length)

    async def read(self, segment: PartSegment) -> bytes:
        """Read exactly the segment's bytes, without blocking the event loop."""
        try:
            data = await asyncio.to_thread(self._read_sync, segment.offset, segment.length)
        except OSError as e:
            raise PartReadError(
                f"Error reading part {segment.part_number} from {self.path}: {e}",
                part_number=segment.part_number,
            ) from e

        if len(data) != segment.length:
            raise PartReadError(
                f"Short read for part {segment.part_number}: expected {segment.length} "
                f"bytes at offset {segment.offset}, got {len(data)}",
                part_number=segment.part_number,
            )
        return data
