import os
from typing import Iterator, List, Optional, Tuple, Union

from oggopus.core import logger
from oggopus.core.errors import HeadersNotFound, OggOpusError
from oggopus.parser.byte_reader import ByteSource
from oggopus.parser.data import IdentificationHeader, OpusHeaders, OpusPacket
from oggopus.parser.ogg import PageStream
from oggopus.parser.opus_headers import assemble_comment, decode_identification
from oggopus.parser.packets import reassemble_packets

log = logger.get_logger()

PathLike = Union[str, os.PathLike]


def _read_headers(pages: PageStream, max_comment_size: Optional[int]) -> OpusHeaders:
    id_page = pages.next()
    if id_page is None:
        raise HeadersNotFound("Input is empty, no identification header page found.")
    if not id_page.is_first_page:
        raise HeadersNotFound(
            f"First page (sequence {id_page.sequence_number}) is not flagged as beginning of stream."
        )

    id_header: IdentificationHeader = decode_identification(id_page.payload)
    comment_header = assemble_comment(pages, max_comment_size)
    return OpusHeaders(id=id_header, comments=comment_header)


def parse_headers(source: ByteSource, max_comment_size: Optional[int] = None) -> OpusHeaders:
    """Parse the identification and comment headers at the start of an Ogg Opus stream.

    ``source`` must be positioned at the first byte of the container. Only the
    header pages are read.
    """
    pages = PageStream(source)
    try:
        headers = _read_headers(pages, max_comment_size)
    except OggOpusError as e:
        log.debug("Header parsing failed after %d bytes: %s", pages.bytes_read, e)
        raise
    log.debug("Parsed headers from %d bytes", pages.bytes_read)
    return headers


def iter_packets(source: ByteSource, max_comment_size: Optional[int] = None) -> Iterator[OpusPacket]:
    """Lazily yield the audio packets of an Ogg Opus stream.

    Both headers are parsed and validated before the first packet is produced.
    The iterator is one-shot; start over with a fresh source to read again.
    """
    pages = PageStream(source)
    _read_headers(pages, max_comment_size)
    yield from reassemble_packets(pages)


def parse_packets(source: ByteSource, max_comment_size: Optional[int] = None) -> List[OpusPacket]:
    """Return all audio packets of an Ogg Opus stream, or raise without a partial result."""
    try:
        packets = list(iter_packets(source, max_comment_size))
    except OggOpusError as e:
        log.debug("Packet parsing failed: %s", e)
        raise
    log.debug("Parsed %d packets", len(packets))
    return packets


def parse_headers_from_path(path: PathLike, max_comment_size: Optional[int] = None) -> OpusHeaders:
    with open(path, "rb") as f:
        return parse_headers(f, max_comment_size)


def parse_packets_from_path(path: PathLike, max_comment_size: Optional[int] = None) -> List[OpusPacket]:
    with open(path, "rb") as f:
        return parse_packets(f, max_comment_size)


def parse_from_path(path: PathLike, max_comment_size: Optional[int] = None) -> Tuple[OpusHeaders, List[OpusPacket]]:
    """Read a whole file once and return both its headers and its audio packets."""
    with open(path, "rb") as f:
        pages = PageStream(f)
        headers = _read_headers(pages, max_comment_size)
        packets = list(reassemble_packets(pages))
    return headers, packets
