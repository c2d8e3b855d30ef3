import logging
import os
from typing import BinaryIO, Optional, Tuple

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


class LineReader:
    """Line-oriented, non-blocking drain over an open file handle.

    Bytes that do not end in a newline yet stay in the buffer until a later
    call completes them.
    """

    def __init__(self, handle: BinaryIO, encoding: str = "utf-8", chunk_size: int = _CHUNK_SIZE) -> None:
        self.handle = handle
        self.encoding = encoding
        self.chunk_size = chunk_size
        self._buffer = bytearray()

    @property
    def position(self) -> int:
        """Offset of the first byte not yet returned as part of a line."""
        return self.handle.tell() - len(self._buffer)

    @property
    def pending(self) -> int:
        """Number of buffered bytes of a line still missing its newline."""
        return len(self._buffer)

    def read_line(self) -> Tuple[str, bool]:
        while True:
            newline = self._buffer.find(b"\n")
            if newline >= 0:
                raw = bytes(self._buffer[:newline])
                del self._buffer[: newline + 1]
                return raw.decode(self.encoding, errors="replace"), True
            chunk = self.handle.read(self.chunk_size)
            if not chunk:
                return "", False
            self._buffer.extend(chunk)

    def drain(self):
        """Yield every complete line currently available."""
        while True:
            line, has_line = self.read_line()
            if not has_line:
                return
            yield line

    def rewind_if_truncated(self) -> bool:
        size = _file_size(self.handle)
        if size is None or size >= self.handle.tell():
            return False
        logger.info("File truncated to %d bytes, reading from the start", size)
        self.handle.seek(0, os.SEEK_SET)
        self._buffer.clear()
        return True


def _file_size(handle: BinaryIO) -> Optional[int]:
    try:
        return os.fstat(handle.fileno()).st_size
    except (OSError, ValueError, AttributeError):
        # In-memory handles in tests
        return None
