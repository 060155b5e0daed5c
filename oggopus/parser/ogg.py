# https://datatracker.ietf.org/doc/html/rfc3533
# Format of the Ogg page header:

#  0                   1                   2                   3
#  0 1 2 3 4 5 6 7 8 9 0 1 2 3 4 5 6 7 8 9 0 1 2 3 4 5 6 7 8 9 0 1| Byte
# +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
# | capture_pattern: Magic number for page start "OggS"           | 0-3
# +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
# | version       | header_type   | granule_position              | 4-7
# +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
# |                                                               | 8-11
# +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
# |                               | bitstream_serial_number       | 12-15
# +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
# |                               | page_sequence_number          | 16-19
# +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
# |                               | CRC_checksum                  | 20-23
# +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
# |                               |page_segments  | segment_table | 24-27
# +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
# | ...                                                           | 28-
# +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+

# Total header size in bytes: header_size = number_page_segments + 27 [Byte]
# Total page size in bytes: page_size = header_size + sum(lacing_values: 1..number_page_segments) [Byte]
#
# The CRC is read but not verified. Packet boundaries are taken from the
# continuation flag of each page, not from the individual lacing values.

from typing import Iterator, Optional

from oggopus.core import logger
from oggopus.core.errors import InvalidContainerPage
from oggopus.parser.byte_reader import ByteReader, ByteSource
from oggopus.parser.data import OggPage

log = logger.get_logger()

CAPTURE_PATTERN: bytes = b'OggS'


def read_page(reader: ByteReader) -> OggPage:
    """Read one page. A source that is already exhausted is an error here."""
    capture_pattern = reader.read_exact(len(CAPTURE_PATTERN))
    return _read_page_after(capture_pattern, reader)


def next_page(reader: ByteReader) -> Optional[OggPage]:
    """Read one page, or return None if the source ends exactly at a page boundary."""
    capture_pattern = reader.read_exact_or_eof(len(CAPTURE_PATTERN))
    if capture_pattern is None:
        return None
    return _read_page_after(capture_pattern, reader)


def _read_page_after(capture_pattern: bytes, reader: ByteReader) -> OggPage:
    if capture_pattern != CAPTURE_PATTERN:
        raise InvalidContainerPage(
            f"Invalid OggS page: read {capture_pattern!r}, expected {CAPTURE_PATTERN!r} "
            f"at offset {reader.bytes_read - len(capture_pattern)}."
        )

    version = reader.read_u8()
    header_type = reader.read_u8()
    granule_position = reader.read_i64_le()
    serial_number = reader.read_u32_le()
    sequence_number = reader.read_u32_le()
    checksum = reader.read_u32_le()
    page_segments = reader.read_u8()
    segment_table = reader.read_exact(page_segments)

    # at most 255 * 255 bytes
    payload = reader.read_exact(sum(segment_table))

    page = OggPage(
        version=version,
        header_type=header_type,
        granule_position=granule_position,
        serial_number=serial_number,
        sequence_number=sequence_number,
        checksum=checksum,
        segment_table=segment_table,
        payload=payload,
    )
    log.debug("Read %r", page)
    return page


class PageStream:
    """Iterates over the pages of a byte source, with one page of lookahead."""

    def __init__(self, source: ByteSource) -> None:
        self._reader: ByteReader = ByteReader(source)
        self._peeked: Optional[OggPage] = None
        self._exhausted: bool = False

    @property
    def bytes_read(self) -> int:
        return self._reader.bytes_read

    def peek(self) -> Optional[OggPage]:
        """Return the next page without consuming it, or None at end of input."""
        if self._peeked is None and not self._exhausted:
            self._peeked = next_page(self._reader)
            if self._peeked is None:
                self._exhausted = True
        return self._peeked

    def next(self) -> Optional[OggPage]:
        """Consume and return the next page, or None at end of input."""
        page = self.peek()
        self._peeked = None
        return page

    def __iter__(self) -> Iterator[OggPage]:
        page = self.next()
        while page is not None:
            yield page
            page = self.next()
