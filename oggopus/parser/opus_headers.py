import io
from typing import List, Optional, Tuple

from oggopus.core import logger
from oggopus.core.config import Config
from oggopus.core.errors import (
    CommentHeaderTooLarge,
    FieldLengthExceedsRemaining,
    HeadersNotFound,
    InvalidEncoding,
    InvalidHeaderSignature,
)
from oggopus.parser.byte_reader import ByteReader
from oggopus.parser.data import ChannelMappingTable, CommentHeader, IdentificationHeader
from oggopus.parser.ogg import PageStream

log = logger.get_logger()

ID_HEADER_SIGNATURE: bytes = b'OpusHead'
COMMENT_HEADER_SIGNATURE: bytes = b'OpusTags'


#       Identification Header
#       0                   1                   2                   3
#       0 1 2 3 4 5 6 7 8 9 0 1 2 3 4 5 6 7 8 9 0 1 2 3 4 5 6 7 8 9 0 1
#      +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
#      |      'O'      |      'p'      |      'u'      |      's'      |
#      +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
#      |      'H'      |      'e'      |      'a'      |      'd'      |
#      +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
#      |  Version = 1  | Channel Count |           Pre-skip            |
#      +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
#      |                     Input Sample Rate (Hz)                    |
#      +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
#      |   Output Gain (Q7.8 in dB)    | Mapping Family|               |
#      +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+               :
#      |                                                               |
#      :               Optional Channel Mapping Table...               :
#      |                                                               |
#      +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
def decode_identification(payload: bytes) -> IdentificationHeader:
    """Decode the 'OpusHead' packet carried by the first page of the stream."""
    reader = ByteReader(io.BytesIO(payload))

    signature = reader.read_exact_or_eof(len(ID_HEADER_SIGNATURE))
    if signature != ID_HEADER_SIGNATURE:
        raise InvalidHeaderSignature(
            f"Invalid ID Header: Does not start with {ID_HEADER_SIGNATURE!r} (got {signature!r})."
        )

    version = reader.read_u8()
    channel_count = reader.read_u8()
    pre_skip = reader.read_u16_le()
    input_sample_rate = reader.read_u32_le()
    output_gain = reader.read_i16_le()
    channel_mapping_family = reader.read_u8()

    channel_mapping_table: Optional[ChannelMappingTable] = None
    if channel_mapping_family != 0:
        stream_count = reader.read_u8()
        coupled_stream_count = reader.read_u8()
        # stream_count is a single byte, so this is at most 255 bytes
        channel_mapping = reader.read_exact(stream_count)
        channel_mapping_table = ChannelMappingTable(
            stream_count=stream_count,
            coupled_stream_count=coupled_stream_count,
            channel_mapping=channel_mapping,
        )

    header = IdentificationHeader(
        version=version,
        channel_count=channel_count,
        pre_skip=pre_skip,
        input_sample_rate=input_sample_rate,
        output_gain=output_gain,
        channel_mapping_family=channel_mapping_family,
        channel_mapping_table=channel_mapping_table,
    )
    log.debug("Decoded %r", header)
    return header


def gather_comment_bytes(pages: PageStream, max_size: int) -> bytes:
    """Concatenate the payload of the comment page and its continuation pages.

    The size ceiling is checked after every page, so an oversized header is
    rejected before the pages behind it are read. The first page that does not
    continue the header is left in the stream.
    """
    first_page = pages.next()
    if first_page is None:
        raise HeadersNotFound("Input ended before the comment header page.")

    chunks: List[bytes] = [first_page.payload]
    total: int = len(first_page.payload)
    if total > max_size:
        raise CommentHeaderTooLarge(limit=max_size, size=total)

    while True:
        page = pages.peek()
        if page is None or not page.is_continuation:
            break
        pages.next()
        total += len(page.payload)
        if total > max_size:
            raise CommentHeaderTooLarge(limit=max_size, size=total)
        chunks.append(page.payload)

    log.debug("Gathered %d comment header bytes from %d pages", total, len(chunks))
    return b''.join(chunks)


#       Comment Header
#      +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
#      |  'O' 'p' 'u' 's' 'T' 'a' 'g' 's'                              |
#      |                     Vendor String Length                      |
#      :                        Vendor String...                       :
#      |                   User Comment List Length                    |
#      |                 User Comment #0 String Length                 |
#      :                   User Comment #0 String...                   :
#      |                 User Comment #1 String Length                 |
#      :                                                               :
def decode_comment(data: bytes) -> CommentHeader:
    """Decode an assembled 'OpusTags' packet.

    ``remaining`` starts at the size of the assembled packet and only shrinks;
    every length field is checked against it before anything is read.
    """
    reader = ByteReader(io.BytesIO(data))
    remaining: int = len(data)

    signature = reader.read_exact_or_eof(len(COMMENT_HEADER_SIGNATURE))
    if signature != COMMENT_HEADER_SIGNATURE:
        raise InvalidHeaderSignature(
            f"Invalid Comment Header: Does not start with {COMMENT_HEADER_SIGNATURE!r} (got {signature!r})."
        )
    remaining -= len(COMMENT_HEADER_SIGNATURE)

    vendor_length = reader.read_u32_le()
    remaining -= 4
    if vendor_length > remaining:
        raise FieldLengthExceedsRemaining("vendor string", vendor_length, remaining)
    vendor = _decode_utf8(reader.read_exact(vendor_length), "vendor string")
    remaining -= vendor_length

    comment_count = reader.read_u32_le()
    remaining -= 4

    user_comments: List[Tuple[str, str]] = []
    for index in range(comment_count):
        entry_length = reader.read_u32_le()
        remaining -= 4
        if entry_length > remaining:
            raise FieldLengthExceedsRemaining(f"user comment #{index}", entry_length, remaining)
        entry = _decode_utf8(reader.read_exact(entry_length), f"user comment #{index}")
        remaining -= entry_length

        key, separator, value = entry.partition('=')
        if not separator:
            log.debug("Dropping user comment #%d without '=' separator", index)
            continue
        user_comments.append((key, value))

    header = CommentHeader(vendor=vendor, user_comments=user_comments)
    log.debug("Decoded comment header: vendor=%r, %d user comments", vendor, len(user_comments))
    return header


def assemble_comment(pages: PageStream, max_size: Optional[int] = None) -> CommentHeader:
    """Read the comment header pages that follow the identification page and decode them."""
    if max_size is None:
        max_size = Config.get().COMMENT_HEADER_MAX_BYTES
    return decode_comment(gather_comment_bytes(pages, max_size))


def _decode_utf8(raw: bytes, what: str) -> str:
    try:
        return raw.decode('utf-8')
    except UnicodeDecodeError as e:
        raise InvalidEncoding(f"The {what} is not valid UTF-8: {e}") from e
