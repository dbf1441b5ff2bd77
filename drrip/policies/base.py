"""
Base Replacement Policy Interface

Abstract base class for all replacement policies in the DRRIP framework.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional
import numpy as np

from ..components.set_dueling import InsertionPolicy, SetRole
from ..exceptions import ContractViolation


@dataclass
class AccessResult:
    """Outcome of one access presented to a replacement policy."""
    victim_way: Optional[int]                 # Committed victim (None on hit)
    policy: Optional[InsertionPolicy]         # Policy in effect for the set
    role: Optional[SetRole] = None            # Set-dueling role
    inserted_rrpv: Optional[int] = None       # RRPV written on a fill
    aging_passes: int = 0                     # Aging passes before victim_ready
    set_index: int = 0

    @property
    def is_hit(self) -> bool:
        return self.victim_way is None

    def __iter__(self) -> Iterator:
        # Unpacks as (victim_way, policy)
        yield self.victim_way
        yield self.policy


class PolicyStats:
    """Statistics tracking for a replacement policy."""

    def __init__(self):
        self.accesses = 0
        self.hits = 0
        self.misses = 0

        # Insertion breakdown
        self.srrip_insertions = 0
        self.bip_insertions = 0
        self.long_insertions = 0
        self.distant_insertions = 0

        # Aging
        self.aging_passes = 0
        self.max_aging_passes = 0

    def record_hit(self) -> None:
        self.accesses += 1
        self.hits += 1

    def record_miss(self, result: AccessResult, rrpv_max: int = None) -> None:
        """Record a resolved miss."""
        self.accesses += 1
        self.misses += 1

        if result.policy is InsertionPolicy.SRRIP:
            self.srrip_insertions += 1
        elif result.policy is InsertionPolicy.BIP:
            self.bip_insertions += 1

        if result.inserted_rrpv is not None and rrpv_max is not None:
            if result.inserted_rrpv == rrpv_max:
                self.distant_insertions += 1
            else:
                self.long_insertions += 1

        self.aging_passes += result.aging_passes
        self.max_aging_passes = max(self.max_aging_passes, result.aging_passes)

    @property
    def hit_rate(self) -> float:
        if self.accesses == 0:
            return 0.0
        return self.hits / self.accesses

    @property
    def miss_rate(self) -> float:
        if self.accesses == 0:
            return 0.0
        return self.misses / self.accesses

    @property
    def mpka(self) -> float:
        """Misses per 1000 accesses."""
        if self.accesses == 0:
            return 0.0
        return (self.misses / self.accesses) * 1000

    def to_dict(self) -> dict:
        return {
            'accesses': self.accesses,
            'hits': self.hits,
            'misses': self.misses,
            'hit_rate': self.hit_rate,
            'mpka': self.mpka,
            'srrip_insertions': self.srrip_insertions,
            'bip_insertions': self.bip_insertions,
            'long_insertions': self.long_insertions,
            'distant_insertions': self.distant_insertions,
            'aging_passes': self.aging_passes,
            'max_aging_passes': self.max_aging_passes,
        }

    def __str__(self) -> str:
        return (f"Accesses: {self.accesses}, "
                f"Hit rate: {self.hit_rate*100:.2f}%, "
                f"MPKA: {self.mpka:.2f}")


class BaseReplacementPolicy(ABC):
    """Abstract base class for replacement policies."""

    def __init__(self, name: str, config: dict):
        """
        Initialize the policy.

        Args:
            name: Name identifier for this policy
            config: Configuration dictionary
        """
        self.name = name
        self.config = config
        self.num_sets = config.get('num_sets', 64)
        self.num_ways = config.get('num_ways', 16)
        self.stats = PolicyStats()

    @abstractmethod
    def access(self, set_index: int, way: Optional[int],
               is_hit: bool) -> AccessResult:
        """
        Present one resolved access.

        Args:
            set_index: Cache set of the access
            way: Way that hit (ignored on a miss)
            is_hit: Whether the enclosing cache found the block

        Returns:
            AccessResult; victim_way is set on a miss
        """
        pass

    @abstractmethod
    def get_hardware_cost(self) -> dict:
        """
        Estimate replacement-state storage.

        Returns:
            Dictionary with storage (bits/bytes)
        """
        pass

    def reset(self) -> None:
        """Reset policy state (optional override)."""
        self.stats = PolicyStats()

    def get_stats(self) -> PolicyStats:
        """Get current statistics."""
        return self.stats

    def _validate(self, set_index: int, way: Optional[int],
                  is_hit) -> None:
        """Check the caller contract for one access."""
        if not isinstance(is_hit, (bool, np.bool_)):
            raise ContractViolation(
                f"is_hit must be a bool, got {type(is_hit).__name__}")
        if not 0 <= set_index < self.num_sets:
            raise ContractViolation(
                f"set {set_index} out of range [0, {self.num_sets})")
        if is_hit and way is None:
            raise ContractViolation("a hit must name the way that hit")
        if way is not None and not 0 <= way < self.num_ways:
            raise ContractViolation(
                f"way {way} out of range [0, {self.num_ways})")


class LRUPolicy(BaseReplacementPolicy):
    """
    True LRU (baseline).

    Each way carries a last-use timestamp; the oldest way is the victim.
    """

    def __init__(self, config: dict):
        super().__init__("LRU", config)
        self.stamps = np.zeros((self.num_sets, self.num_ways), dtype=np.int64)
        self.clock = 0

    def access(self, set_index: int, way: Optional[int],
               is_hit: bool) -> AccessResult:
        self._validate(set_index, way, is_hit)
        self.clock += 1

        if is_hit:
            self.stamps[set_index, way] = self.clock
            self.stats.record_hit()
            return AccessResult(victim_way=None, policy=None,
                                set_index=set_index)

        victim = int(np.argmin(self.stamps[set_index]))
        self.stamps[set_index, victim] = self.clock
        result = AccessResult(victim_way=victim, policy=None,
                              set_index=set_index)
        self.stats.record_miss(result)
        return result

    def reset(self) -> None:
        super().reset()
        self.stamps.fill(0)
        self.clock = 0

    def get_hardware_cost(self) -> dict:
        # log2(ways) bits per way for a stack-position encoding
        bits_per_way = max(1, int(np.ceil(np.log2(self.num_ways))))
        total_bits = self.num_sets * self.num_ways * bits_per_way
        return {
            'bits_per_way': bits_per_way,
            'total_bits': total_bits,
            'total_bytes': total_bits // 8,
            'total_kb': total_bits / 8 / 1024
        }
