"""
Trace Format Definitions

Defines memory access trace formats for cache simulation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional, BinaryIO, TextIO
import logging
import struct

logger = logging.getLogger(__name__)

# Addresses must fit the 64-bit tag store
ADDRESS_LIMIT = 1 << 64


@dataclass
class MemoryAccess:
    """Single memory access from a trace."""
    address: int         # Byte address
    is_write: bool       # Store (True) or load (False)

    # Optional metadata
    pc: Optional[int] = None

    @property
    def is_read(self) -> bool:
        return not self.is_write


class TraceFormat(ABC):
    """Abstract base class for trace formats."""

    # Whether the format is opened in text mode
    text_mode = False

    @abstractmethod
    def parse(self, file_handle) -> Iterator[MemoryAccess]:
        """
        Parse trace file and yield memory accesses.

        Args:
            file_handle: Open file handle

        Yields:
            MemoryAccess for each access in trace
        """
        pass

    @abstractmethod
    def get_format_name(self) -> str:
        """Return format name."""
        pass


def _parse_int(token: str) -> int:
    return int(token, 16) if token.lower().startswith('0x') else int(token)


class SimpleTextFormat(TraceFormat):
    """
    Simple text trace format.

    Format: ADDR [R|W] [PC]
    Example:
        0x7ffd1000 R 0x400100
        0x7ffd1040 W
        4096
    """

    text_mode = True

    def get_format_name(self) -> str:
        return "SimpleText"

    def parse(self, file_handle: TextIO) -> Iterator[MemoryAccess]:
        """Parse simple text format."""
        for line_num, line in enumerate(file_handle, 1):
            line = line.strip()

            # Skip empty lines and comments
            if not line or line.startswith('#'):
                continue

            parts = line.split()

            try:
                address = _parse_int(parts[0])
                if not 0 <= address < ADDRESS_LIMIT:
                    raise ValueError(f"address {address} out of range")

                is_write = False
                if len(parts) >= 2:
                    is_write = parts[1].upper() in ('W', 'S', 'STORE', 'WRITE', '1')

                pc = _parse_int(parts[2]) if len(parts) >= 3 else None

            except ValueError:
                logger.warning("Skipping malformed trace line %d: %r",
                               line_num, line)
                continue

            yield MemoryAccess(address=address, is_write=is_write, pc=pc)


class BinaryAccessFormat(TraceFormat):
    """
    Packed binary access format.

    Each record is 9 bytes little-endian: address (8 bytes) and
    flags (1 byte, bit 0 = write).
    """

    RECORD = struct.Struct('<QB')

    def get_format_name(self) -> str:
        return "Binary"

    def parse(self, file_handle: BinaryIO) -> Iterator[MemoryAccess]:
        """Parse packed binary records."""
        size = self.RECORD.size
        while True:
            data = file_handle.read(size)
            if not data:
                break
            if len(data) < size:
                logger.warning("Ignoring truncated trailing record "
                               "(%d of %d bytes)", len(data), size)
                break

            address, flags = self.RECORD.unpack(data)
            yield MemoryAccess(address=address, is_write=bool(flags & 0x1))

    @classmethod
    def pack(cls, access: MemoryAccess) -> bytes:
        return cls.RECORD.pack(access.address, 1 if access.is_write else 0)
