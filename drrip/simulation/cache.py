"""
Set-Associative Cache Model

Tag array and hit/miss detection around a replacement policy. The
policy only ever sees resolved (set, way, hit) accesses.
"""

from dataclasses import dataclass
from typing import Optional, Tuple
import numpy as np

from ..policies.base import AccessResult, BaseReplacementPolicy


@dataclass
class CacheConfig:
    """Cache geometry."""
    num_sets: int = 1024
    num_ways: int = 16
    block_size: int = 64

    @property
    def capacity_bytes(self) -> int:
        return self.num_sets * self.num_ways * self.block_size


@dataclass
class CacheAccess:
    """Result of one cache lookup."""
    address: int
    set_index: int
    tag: int
    hit: bool
    way: int
    evicted_tag: Optional[int] = None
    policy_result: Optional[AccessResult] = None


class SetAssociativeCache:
    """
    Tags-only set-associative cache.

    Address -> (set, tag) uses block_size and num_sets, both powers of
    two. Misses always ask the policy for a victim, including while
    the set still has invalid ways.
    """

    def __init__(self, config: CacheConfig, policy: BaseReplacementPolicy):
        for label, value in (('num_sets', config.num_sets),
                             ('block_size', config.block_size)):
            if value <= 0 or value & (value - 1):
                raise ValueError(f"{label} must be a power of two, got {value}")
        if (policy.num_sets, policy.num_ways) != (config.num_sets,
                                                   config.num_ways):
            raise ValueError(
                f"policy geometry {policy.num_sets}x{policy.num_ways} does not "
                f"match cache {config.num_sets}x{config.num_ways}")

        self.config = config
        self.policy = policy

        self.offset_bits = config.block_size.bit_length() - 1
        self.index_bits = config.num_sets.bit_length() - 1
        self.set_mask = config.num_sets - 1

        self.tags = np.zeros((config.num_sets, config.num_ways), dtype=np.uint64)
        self.valid = np.zeros((config.num_sets, config.num_ways), dtype=bool)

        self.evictions = 0

    def decompose(self, address: int) -> Tuple[int, int]:
        """Split an address into (set_index, tag)."""
        if not 0 <= address < 1 << 64:
            raise ValueError(f"address {address:#x} is not a 64-bit unsigned value")
        block = address >> self.offset_bits
        return block & self.set_mask, block >> self.index_bits

    def lookup(self, set_index: int, tag: int) -> Optional[int]:
        """Way holding `tag` in the set, or None."""
        matches = np.flatnonzero(self.valid[set_index] &
                                 (self.tags[set_index] == tag))
        if matches.size == 0:
            return None
        return int(matches[0])

    def access(self, address: int) -> CacheAccess:
        """Look up an address, filling it on a miss."""
        set_index, tag = self.decompose(address)
        way = self.lookup(set_index, tag)

        if way is not None:
            result = self.policy.access(set_index, way, True)
            return CacheAccess(address=address, set_index=set_index, tag=tag,
                               hit=True, way=way, policy_result=result)

        result = self.policy.access(set_index, None, False)
        victim = result.victim_way

        evicted = None
        if self.valid[set_index, victim]:
            evicted = int(self.tags[set_index, victim])
            self.evictions += 1

        self.tags[set_index, victim] = tag
        self.valid[set_index, victim] = True

        return CacheAccess(address=address, set_index=set_index, tag=tag,
                           hit=False, way=victim, evicted_tag=evicted,
                           policy_result=result)

    def contains(self, address: int) -> bool:
        set_index, tag = self.decompose(address)
        return self.lookup(set_index, tag) is not None

    def reset(self) -> None:
        self.tags.fill(0)
        self.valid.fill(False)
        self.evictions = 0
        self.policy.reset()

    def occupancy(self) -> float:
        """Fraction of valid lines."""
        return float(np.mean(self.valid))
