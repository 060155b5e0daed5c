import io
import logging
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import pytest

from oggopus.core.config import Config
from oggopus.core.logger import LOGGER_NAME

CONTINUATION = 0x01
FIRST_PAGE = 0x02
LAST_PAGE = 0x04


def lacing_values(length: int) -> bytes:
    """Segment table for a payload of ``length`` bytes ending a packet."""
    values = [255] * (length // 255) + [length % 255]
    assert len(values) <= 255, "payload too large for a single test page"
    return bytes(values)


def build_page(
    payload: bytes,
    header_type: int = 0,
    sequence_number: int = 0,
    granule_position: int = 0,
    serial_number: int = 0x1234,
    checksum: int = 0,
    version: int = 0,
    capture_pattern: bytes = b'OggS',
    segment_table: Optional[bytes] = None,
) -> bytes:
    if segment_table is None:
        segment_table = lacing_values(len(payload))
    return b''.join([
        capture_pattern,
        bytes([version, header_type]),
        granule_position.to_bytes(8, 'little', signed=True),
        serial_number.to_bytes(4, 'little'),
        sequence_number.to_bytes(4, 'little'),
        checksum.to_bytes(4, 'little'),
        bytes([len(segment_table)]),
        segment_table,
        payload,
    ])


def id_header_payload(
    channel_count: int = 2,
    pre_skip: int = 312,
    input_sample_rate: int = 48000,
    output_gain: int = 0,
    channel_mapping_family: int = 0,
    stream_count: int = 0,
    coupled_stream_count: int = 0,
    channel_mapping: bytes = b'',
    version: int = 1,
    signature: bytes = b'OpusHead',
) -> bytes:
    data = b''.join([
        signature,
        bytes([version, channel_count]),
        pre_skip.to_bytes(2, 'little'),
        input_sample_rate.to_bytes(4, 'little'),
        output_gain.to_bytes(2, 'little', signed=True),
        bytes([channel_mapping_family]),
    ])
    if channel_mapping_family != 0:
        data += bytes([stream_count, coupled_stream_count]) + channel_mapping
    return data


def length_prefixed(value: Union[str, bytes]) -> bytes:
    raw = value.encode('utf-8') if isinstance(value, str) else value
    return len(raw).to_bytes(4, 'little') + raw


def comment_header_payload(
    vendor: Union[str, bytes] = "libopus 1.3.1",
    comments: Sequence[Union[str, bytes]] = (),
    signature: bytes = b'OpusTags',
) -> bytes:
    return b''.join([
        signature,
        length_prefixed(vendor),
        len(comments).to_bytes(4, 'little'),
        *(length_prefixed(comment) for comment in comments),
    ])


def split_into(data: bytes, sizes: Iterable[int]) -> List[bytes]:
    chunks: List[bytes] = []
    offset = 0
    for size in sizes:
        chunks.append(data[offset:offset + size])
        offset += size
    chunks.append(data[offset:])
    return [chunk for chunk in chunks if chunk]


def build_stream(
    id_payload: Optional[bytes] = None,
    comment_chunks: Optional[Sequence[bytes]] = None,
    audio_pages: Sequence[Tuple[bytes, int]] = (),
) -> bytes:
    """Assemble an Ogg Opus stream: one id page, the comment pages, then the audio pages."""
    if id_payload is None:
        id_payload = id_header_payload()
    if comment_chunks is None:
        comment_chunks = [comment_header_payload()]

    pages = [build_page(id_payload, header_type=FIRST_PAGE, sequence_number=0)]
    for index, chunk in enumerate(comment_chunks):
        header_type = CONTINUATION if index > 0 else 0
        pages.append(build_page(chunk, header_type=header_type, sequence_number=len(pages)))
    for payload, header_type in audio_pages:
        pages.append(build_page(payload, header_type=header_type, sequence_number=len(pages)))
    return b''.join(pages)


class TrickleSource:
    """A byte source that never returns more than ``step`` bytes per read."""

    def __init__(self, data: bytes, step: int = 1) -> None:
        self._buffer = io.BytesIO(data)
        self._step = step

    def read(self, size: int) -> bytes:
        return self._buffer.read(min(size, self._step))


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    for name in (
        "OGGOPUS_COMMENT_HEADER_MAX_BYTES",
        "OGGOPUS_LOG_LEVEL",
        "OGGOPUS_LOG_CONFIG_FILE",
        "OGGOPUS_LOG_DIRECTORY",
    ):
        monkeypatch.delenv(name, raising=False)
    Config.reset()
    yield
    Config.reset()


@pytest.fixture
def restore_logging():
    package_logger = logging.getLogger(LOGGER_NAME)
    saved = (package_logger.level, package_logger.propagate, list(package_logger.handlers))
    yield package_logger
    for handler in package_logger.handlers:
        if handler not in saved[2]:
            handler.close()
    package_logger.setLevel(saved[0])
    package_logger.propagate = saved[1]
    package_logger.handlers = saved[2]
