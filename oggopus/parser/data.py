# data.py
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

CONTINUATION_FLAG: int = 0x01
FIRST_PAGE_FLAG: int = 0x02
LAST_PAGE_FLAG: int = 0x04

@dataclass(frozen=True)
class OggPage:
    version: int                    # Ogg file format version used in this stream
    header_type: int                # Type flags of this page (continuation / first / last)
    granule_position: int           # Position information, e.g. total number of PCM samples encoded after this page
    serial_number: int              # Unique serial number identifying the logical bitstream
    sequence_number: int            # Page's sequence number
    checksum: int                   # 32-bit CRC checksum of the page, never verified
    segment_table: bytes            # Lacing values of all segments in this page
    payload: bytes = field(repr=False)

    @property
    def is_continuation(self) -> bool:
        return bool(self.header_type & CONTINUATION_FLAG)

    @property
    def is_first_page(self) -> bool:
        return bool(self.header_type & FIRST_PAGE_FLAG)

    @property
    def is_last_page(self) -> bool:
        return bool(self.header_type & LAST_PAGE_FLAG)

    def __repr__(self) -> str:
        return (f"OggPage(header_type={self.header_type:#04x}, "
                f"granule_position={self.granule_position}, "
                f"serial_number={self.serial_number}, "
                f"sequence_number={self.sequence_number}, "
                f"segments={len(self.segment_table)}, "
                f"payload_length={len(self.payload)})")

@dataclass(frozen=True)
class ChannelMappingTable:
    stream_count: int               # Number of Opus streams in each Ogg packet
    coupled_stream_count: int       # Number of those streams that are stereo-coupled
    channel_mapping: bytes          # Output channel -> decoded channel index, stream_count entries

@dataclass(frozen=True)
class IdentificationHeader:
    version: int                    # Version number
    channel_count: int              # Number of output channels
    pre_skip: int                   # Samples (at 48 kHz) to discard from the decoder output
    input_sample_rate: int          # Sample rate of the original input in Hz (informational)
    output_gain: int                # Gain in Q7.8 dB, signed
    channel_mapping_family: int     # Channel mapping family
    channel_mapping_table: Optional[ChannelMappingTable] = None

@dataclass(frozen=True)
class CommentHeader:
    vendor: str
    user_comments: List[Tuple[str, str]] = field(default_factory=list)   # (key, value) pairs in stream order, keys may repeat

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return the first value stored under ``key``."""
        for name, value in self.user_comments:
            if name == key:
                return value
        return default

    def get_all(self, key: str) -> List[str]:
        return [value for name, value in self.user_comments if name == key]

    def keys(self) -> List[str]:
        return list(dict.fromkeys(name for name, _ in self.user_comments))

    def to_dict(self) -> Dict[str, List[str]]:
        grouped: Dict[str, List[str]] = {}
        for name, value in self.user_comments:
            grouped.setdefault(name, []).append(value)
        return grouped

    def __len__(self) -> int:
        return len(self.user_comments)

@dataclass(frozen=True)
class OpusHeaders:
    id: IdentificationHeader
    comments: CommentHeader

@dataclass(frozen=True)
class OpusPacket:
    data: bytes = field(repr=False)

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"OpusPacket(length={len(self.data)})"
