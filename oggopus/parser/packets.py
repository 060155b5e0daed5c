# https://datatracker.ietf.org/doc/html/rfc7845.html#section-5.2
# Packet Organization in an Ogg Opus stream

#         Page 0         Pages 1 ... n        Pages (n+1) ...
#      +------------+ +---+ +---+ ... +---+ +-----------+ +---------+ +--
#      |            | |   | |   |     |   | |           | |         | |
#      |+----------+| |+-----------------+| |+-------------------+ +-----
#      |||ID Header|| ||  Comment Header || ||Audio Data Packet 1| | ...
#      |+----------+| |+-----------------+| |+-------------------+ +-----
#      |            | |   | |   |     |   | |           | |         | |
#      +------------+ +---+ +---+ ... +---+ +-----------+ +---------+ +--
#      ^      ^                           ^
#      |      |                           |
#      |      |                           Mandatory Page Break
#      |      |
#      |      ID header is contained on a single page
#      |
#      'Beginning Of Stream'
#
# Audio packets are reassembled at page granularity: a page without the
# continuation flag starts a new packet, a page with it extends the current one.

from typing import Iterable, Iterator, List, Optional

from oggopus.core import logger
from oggopus.parser.data import OggPage, OpusPacket

log = logger.get_logger()


def reassemble_packets(pages: Iterable[OggPage]) -> Iterator[OpusPacket]:
    """Yield the audio packets built from the pages after the two header pages.

    Stops after the page flagged as last page of the stream, or when the pages
    run out; a packet still being accumulated at that point is yielded as is.
    """
    accumulator: Optional[List[bytes]] = None
    emitted: int = 0

    for page in pages:
        if page.is_continuation:
            if accumulator is None:
                log.warning(
                    "Page %d continues a packet that was never started; treating it as a new packet.",
                    page.sequence_number,
                )
                accumulator = []
            accumulator.append(page.payload)
        else:
            if accumulator is not None:
                yield OpusPacket(b''.join(accumulator))
                emitted += 1
            accumulator = [page.payload]

        if page.is_last_page:
            log.debug("End of stream flag on page %d", page.sequence_number)
            break

    if accumulator is not None:
        yield OpusPacket(b''.join(accumulator))
        emitted += 1

    log.debug("Reassembled %d packets", emitted)
