"""Local filesystem access."""

import asyncio
from pathlib import Path


class LocalFileSystem:
    """Reads document bytes from local disk without blocking the event loop."""

    async def read_binary(self, path: str) -> bytes:
        """Read a file's full contents.

        Raises:
            OSError: If the file cannot be read.
        """
        return await asyncio.to_thread(Path(path).read_bytes)
