"""
Re-Reference Prediction Value Table

Per (set, way) storage of RRPVs for RRIP-family replacement policies.
"""

import numpy as np
from typing import Optional

from ..exceptions import ContractViolation

# Widest cell numpy can store as a native unsigned integer
MAX_RRPV_BITS = 64


class RRPVTable:
    """
    Dense RRPV storage.

    Every cell holds an unsigned value in [0, rrpv_max]. A cell at
    rrpv_max marks a block that is not expected to be reused soon and can
    be evicted immediately.
    """

    def __init__(self, num_sets: int, num_ways: int, rrpv_bits: int = 2):
        """
        Initialize RRPV table.

        Args:
            num_sets: Number of cache sets
            num_ways: Associativity
            rrpv_bits: Bits per RRPV cell
        """
        if not 1 <= rrpv_bits <= MAX_RRPV_BITS:
            raise ContractViolation(
                f"rrpv_bits must be in [1, {MAX_RRPV_BITS}], got {rrpv_bits}")

        self.num_sets = num_sets
        self.num_ways = num_ways
        self.rrpv_bits = rrpv_bits

        self.rrpv_max = (1 << rrpv_bits) - 1
        self.rrpv_long = max(self.rrpv_max - 1, 0)

        self.table = np.full((num_sets, num_ways), self.rrpv_max,
                             dtype=np.min_scalar_type(self.rrpv_max))

        # Access statistics
        self.reads = 0
        self.writes = 0

    def _check(self, set_index: int, way: Optional[int] = None) -> None:
        if not 0 <= set_index < self.num_sets:
            raise ContractViolation(
                f"set {set_index} out of range [0, {self.num_sets})")
        if way is not None and not 0 <= way < self.num_ways:
            raise ContractViolation(
                f"way {way} out of range [0, {self.num_ways})")

    def read(self, set_index: int, way: int) -> int:
        """Read RRPV at (set, way)."""
        self._check(set_index, way)
        self.reads += 1
        return int(self.table[set_index, way])

    def write(self, set_index: int, way: int, value: int) -> None:
        """Write RRPV at (set, way)."""
        self._check(set_index, way)
        if not 0 <= value <= self.rrpv_max:
            raise ContractViolation(
                f"RRPV {value} out of range [0, {self.rrpv_max}]")
        self.writes += 1
        self.table[set_index, way] = value

    def row(self, set_index: int) -> np.ndarray:
        """Read-only view of one set."""
        self._check(set_index)
        view = self.table[set_index]
        view.flags.writeable = False
        return view

    def first_at(self, set_index: int, value: int) -> Optional[int]:
        """Lowest way in the set holding exactly `value`, or None."""
        self._check(set_index)
        self.reads += 1
        matches = np.flatnonzero(self.table[set_index] == value)
        if matches.size == 0:
            return None
        return int(matches[0])

    def age(self, set_index: int) -> int:
        """
        One aging pass: bump every way below rrpv_max by one.

        Returns:
            Number of ways that were incremented
        """
        self._check(set_index)
        row = self.table[set_index]
        below = row < self.rrpv_max
        row[below] += 1
        self.writes += 1
        return int(np.count_nonzero(below))

    def reset_all(self) -> None:
        """Reset every cell to rrpv_max."""
        self.table.fill(self.rrpv_max)
        self.reads = 0
        self.writes = 0

    def snapshot(self) -> np.ndarray:
        """Copy of the whole table."""
        return self.table.copy()

    def get_storage_bits(self) -> int:
        """Get total storage in bits."""
        return self.num_sets * self.num_ways * self.rrpv_bits

    def get_statistics(self) -> dict:
        """Get table statistics."""
        flat = self.table.flatten()
        return {
            'sets': self.num_sets,
            'ways': self.num_ways,
            'rrpv_bits': self.rrpv_bits,
            'total_bits': self.get_storage_bits(),
            'reads': self.reads,
            'writes': self.writes,
            'rrpv_mean': float(np.mean(flat)),
            'at_max': int(np.sum(flat == self.rrpv_max)),
            'at_zero': int(np.sum(flat == 0))
        }
