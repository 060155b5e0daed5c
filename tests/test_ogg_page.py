import io

import pytest

from oggopus.core.errors import InvalidContainerPage, UnexpectedEndOfInput
from oggopus.parser.byte_reader import ByteReader
from oggopus.parser.ogg import PageStream, next_page, read_page

from conftest import CONTINUATION, FIRST_PAGE, LAST_PAGE, build_page


def test_read_page_fields():
    raw = build_page(
        b'hello',
        header_type=FIRST_PAGE,
        sequence_number=7,
        granule_position=-1,
        serial_number=0xCAFEBABE,
        checksum=0x11223344,
    )

    page = read_page(ByteReader(io.BytesIO(raw)))

    assert page.version == 0
    assert page.header_type == FIRST_PAGE
    assert page.is_first_page and not page.is_continuation and not page.is_last_page
    assert page.granule_position == -1
    assert page.serial_number == 0xCAFEBABE
    assert page.sequence_number == 7
    assert page.checksum == 0x11223344
    assert page.segment_table == bytes([5])
    assert page.payload == b'hello'


@pytest.mark.parametrize("length", [0, 1, 254, 255, 256, 1000, 255 * 254])
def test_payload_length_is_sum_of_lacing_values(length):
    payload = bytes(i % 251 for i in range(length))

    page = read_page(ByteReader(io.BytesIO(build_page(payload))))

    assert len(page.payload) == sum(page.segment_table) == length
    assert page.payload == payload


def test_lacing_values_spanning_several_packets():
    # two packets on one page: 300 bytes (255 + 45) and 10 bytes
    payload = b'a' * 300 + b'b' * 10
    page = read_page(ByteReader(io.BytesIO(build_page(payload, segment_table=bytes([255, 45, 10])))))

    assert len(page.payload) == sum(page.segment_table) == 310


@pytest.mark.parametrize("index", range(4))
def test_altered_capture_pattern_is_rejected(index):
    raw = bytearray(build_page(b'data'))
    raw[index] ^= 0xFF

    with pytest.raises(InvalidContainerPage):
        read_page(ByteReader(io.BytesIO(bytes(raw))))


@pytest.mark.parametrize("cut", [2, 10, 27, 28, 30])
def test_truncated_page_is_rejected(cut):
    raw = build_page(b'0123456789')

    with pytest.raises(UnexpectedEndOfInput):
        read_page(ByteReader(io.BytesIO(raw[:cut])))


def test_lacing_table_claiming_more_payload_than_available():
    raw = build_page(b'short', segment_table=bytes([255, 255, 255]))

    with pytest.raises(UnexpectedEndOfInput) as exc_info:
        read_page(ByteReader(io.BytesIO(raw)))

    assert exc_info.value.expected == 765
    assert exc_info.value.got == 5


def test_read_page_on_empty_input_is_an_error():
    with pytest.raises(UnexpectedEndOfInput):
        read_page(ByteReader(io.BytesIO(b'')))


def test_next_page_returns_none_at_page_boundary():
    reader = ByteReader(io.BytesIO(build_page(b'only')))

    assert next_page(reader).payload == b'only'
    assert next_page(reader) is None


def test_page_stream_peek_does_not_consume():
    raw = build_page(b'one', sequence_number=0) + build_page(b'two', header_type=CONTINUATION, sequence_number=1)
    pages = PageStream(io.BytesIO(raw))

    assert pages.peek().payload == b'one'
    assert pages.peek().payload == b'one'
    assert pages.next().payload == b'one'
    assert pages.peek().payload == b'two'
    assert [page.payload for page in pages] == [b'two']
    assert pages.peek() is None
    assert pages.next() is None


def test_page_stream_iterates_in_stream_order():
    raw = b''.join(
        build_page(bytes([n]) * n, sequence_number=n, header_type=LAST_PAGE if n == 4 else 0)
        for n in range(5)
    )

    pages = list(PageStream(io.BytesIO(raw)))

    assert [page.sequence_number for page in pages] == [0, 1, 2, 3, 4]
    assert pages[-1].is_last_page


def test_page_stream_propagates_garbage_between_pages():
    raw = build_page(b'fine') + b'garbage-not-a-page'
    pages = PageStream(io.BytesIO(raw))

    assert pages.next().payload == b'fine'
    with pytest.raises(InvalidContainerPage):
        pages.next()
