# byte_reader.py
from typing import Optional, Protocol

from oggopus.core.errors import UnexpectedEndOfInput


class ByteSource(Protocol):
    """Anything with a blocking ``read(size)``: files, ``io.BytesIO``, socket files..."""

    def read(self, size: int, /) -> bytes: ...


class ByteReader:
    """Exact-length reads and little-endian integers on top of a ByteSource."""

    def __init__(self, source: ByteSource) -> None:
        self._source: ByteSource = source
        self.bytes_read: int = 0

    def read_exact(self, size: int) -> bytes:
        data = self._read_up_to(size)
        if len(data) != size:
            raise UnexpectedEndOfInput(expected=size, got=len(data))
        return data

    def read_exact_or_eof(self, size: int) -> Optional[bytes]:
        """Like read_exact, but return None if the source is already exhausted."""
        data = self._read_up_to(size)
        if not data and size > 0:
            return None
        if len(data) != size:
            raise UnexpectedEndOfInput(expected=size, got=len(data))
        return data

    def read_u8(self) -> int:
        return self.read_exact(1)[0]

    def read_u16_le(self) -> int:
        return int.from_bytes(self.read_exact(2), 'little')

    def read_i16_le(self) -> int:
        return int.from_bytes(self.read_exact(2), 'little', signed=True)

    def read_u32_le(self) -> int:
        return int.from_bytes(self.read_exact(4), 'little')

    def read_i64_le(self) -> int:
        return int.from_bytes(self.read_exact(8), 'little', signed=True)

    def _read_up_to(self, size: int) -> bytes:
        # read() on pipes and sockets may return fewer bytes than asked for
        chunks: list[bytes] = []
        missing: int = size
        while missing > 0:
            chunk = self._source.read(missing)
            if not chunk:
                break
            chunks.append(chunk)
            missing -= len(chunk)
        data = b''.join(chunks)
        self.bytes_read += len(data)
        return data
