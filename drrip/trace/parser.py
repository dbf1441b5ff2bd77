"""
Trace Parser

Unified memory trace parser supporting multiple formats.
Handles compressed traces and provides streaming interface.
"""

import gzip
import lzma
import bz2
import random
from pathlib import Path
from typing import Iterator, Optional, List, Union
from dataclasses import dataclass

from .formats import (
    TraceFormat, MemoryAccess,
    SimpleTextFormat, BinaryAccessFormat
)


@dataclass
class TraceInfo:
    """Information about a trace file."""
    path: str
    format: str
    compression: Optional[str]
    size_bytes: int
    estimated_accesses: int


class AccessTrace:
    """
    Container for memory trace data.

    Can be used for streaming or caching trace data.
    """

    def __init__(self, records: Optional[List[MemoryAccess]] = None):
        self._records = records or []

    def add(self, record: MemoryAccess) -> None:
        """Add an access record."""
        self._records.append(record)

    def __iter__(self) -> Iterator[MemoryAccess]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, idx: int) -> MemoryAccess:
        return self._records[idx]

    def get_statistics(self, block_size: int = 64) -> dict:
        """Get trace statistics."""
        if not self._records:
            return {'count': 0}

        writes = sum(1 for r in self._records if r.is_write)
        unique_blocks = len(set(r.address // block_size for r in self._records))

        return {
            'count': len(self._records),
            'reads': len(self._records) - writes,
            'writes': writes,
            'write_ratio': writes / len(self._records),
            'unique_blocks': unique_blocks,
            'footprint_bytes': unique_blocks * block_size
        }


class TraceParser:
    """
    Unified trace parser with format detection and decompression.
    """

    # Supported formats
    FORMATS = {
        'text': SimpleTextFormat,
        'binary': BinaryAccessFormat,
    }

    # Compression handlers
    COMPRESSION = {
        '.gz': gzip.open,
        '.gzip': gzip.open,
        '.xz': lzma.open,
        '.bz2': bz2.open,
        '.lzma': lzma.open,
    }

    def __init__(self, format_name: Optional[str] = None):
        """
        Initialize parser.

        Args:
            format_name: Force specific format (auto-detect if None)
        """
        if format_name and format_name.lower() not in self.FORMATS:
            raise ValueError(f"Unknown trace format: {format_name}")
        self.format_name = format_name

    def parse_file(self, filepath: Union[str, Path],
                   max_accesses: Optional[int] = None,
                   skip_accesses: int = 0) -> Iterator[MemoryAccess]:
        """
        Parse a trace file.

        Args:
            filepath: Path to trace file
            max_accesses: Maximum accesses to read (None = all)
            skip_accesses: Number of leading accesses to skip

        Yields:
            MemoryAccess for each access
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"Trace file not found: {filepath}")

        compression_ext = self._compression_ext(filepath)
        format_obj = self._get_format(filepath)
        mode = 'rt' if format_obj.text_mode else 'rb'

        if compression_ext:
            file_handle = self.COMPRESSION[compression_ext](filepath, mode)
        else:
            file_handle = open(filepath, mode)

        try:
            count = 0
            skipped = 0

            for record in format_obj.parse(file_handle):
                if skipped < skip_accesses:
                    skipped += 1
                    continue

                yield record
                count += 1

                if max_accesses and count >= max_accesses:
                    break

        finally:
            file_handle.close()

    def load_trace(self, filepath: Union[str, Path],
                   max_accesses: Optional[int] = None,
                   skip_accesses: int = 0) -> AccessTrace:
        """Load entire trace into memory."""
        records = list(self.parse_file(filepath, max_accesses, skip_accesses))
        return AccessTrace(records)

    def get_trace_info(self, filepath: Union[str, Path]) -> TraceInfo:
        """Get information about a trace file."""
        filepath = Path(filepath)

        compression_ext = self._compression_ext(filepath)
        compression = compression_ext[1:] if compression_ext else None

        size = filepath.stat().st_size
        format_name = self.format_name or self._detect_format(filepath)

        # Rough record size: ~16 bytes per text line, 9 per binary record
        record_size = 9 if format_name == 'binary' else 16
        if compression:
            # Compressed files: assume ~10x compression
            estimated = (size * 10) // record_size
        else:
            estimated = size // record_size

        return TraceInfo(
            path=str(filepath),
            format=format_name,
            compression=compression,
            size_bytes=size,
            estimated_accesses=estimated
        )

    def _compression_ext(self, filepath: Path) -> Optional[str]:
        suffix = filepath.suffix.lower()
        return suffix if suffix in self.COMPRESSION else None

    def _get_format(self, filepath: Path) -> TraceFormat:
        """Get format parser for file."""
        format_name = (self.format_name or self._detect_format(filepath)).lower()
        return self.FORMATS[format_name]()

    def _detect_format(self, filepath: Path) -> str:
        """Detect trace format from filename."""
        name = filepath.name.lower()

        # Remove compression extension for detection
        ext = self._compression_ext(filepath)
        if ext:
            name = name[:-len(ext)]

        if name.endswith(('.bin', '.dat')):
            return 'binary'
        return 'text'

    @classmethod
    def list_supported_formats(cls) -> List[str]:
        """List supported trace formats."""
        return list(cls.FORMATS.keys())

    @classmethod
    def list_supported_compressions(cls) -> List[str]:
        """List supported compression formats."""
        return [ext[1:] for ext in cls.COMPRESSION.keys()]


def generate_accesses(num_accesses: int = 10000,
                      pattern: str = 'mixed',
                      block_size: int = 64,
                      working_set: int = 512,
                      seed: int = 42) -> List[MemoryAccess]:
    """
    Generate a synthetic access stream.

    Patterns:
        loop:   cyclic sweep over `working_set` blocks
        scan:   streaming, every block touched once
        random: uniform over `working_set` blocks
        mixed:  a small hot set interleaved with long scans, the case
                where BIP-style insertion protects the hot set
    """
    rng = random.Random(seed)
    base = 0x10000000
    accesses = []

    scan_block = working_set
    for i in range(num_accesses):
        if pattern == 'loop':
            block = i % working_set
        elif pattern == 'scan':
            block = i
        elif pattern == 'random':
            block = rng.randrange(working_set)
        elif pattern == 'mixed':
            if rng.random() < 0.5:
                block = rng.randrange(max(1, working_set // 4))
            else:
                block = scan_block
                scan_block += 1
        else:
            raise ValueError(f"Unknown pattern: {pattern}")

        accesses.append(MemoryAccess(
            address=base + block * block_size,
            is_write=rng.random() < 0.3
        ))

    return accesses


def create_sample_trace(filepath: Union[str, Path],
                        num_accesses: int = 10000,
                        pattern: str = 'mixed',
                        **kwargs) -> Path:
    """
    Create a sample trace file for testing.

    Args:
        filepath: Output path (.bin for binary, otherwise text)
        num_accesses: Number of accesses to generate
        pattern: Pattern type ('loop', 'scan', 'random', 'mixed')
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    accesses = generate_accesses(num_accesses, pattern, **kwargs)

    if filepath.suffix.lower() == '.bin':
        with open(filepath, 'wb') as f:
            for access in accesses:
                f.write(BinaryAccessFormat.pack(access))
        return filepath

    with open(filepath, 'w') as f:
        f.write("# Sample memory trace\n")
        f.write("# Format: ADDR R|W\n")
        for access in accesses:
            op = 'W' if access.is_write else 'R'
            f.write(f"0x{access.address:x} {op}\n")

    return filepath
