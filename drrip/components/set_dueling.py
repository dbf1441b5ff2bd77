"""
Set Dueling

Leader-set classification for DRRIP. A small sample of sets is
dedicated to each competing insertion policy; the rest follow whichever
policy the selection counter currently favours.
"""

from abc import ABC, abstractmethod
from enum import Enum


class SetRole(Enum):
    """Role of a cache set in the duel."""
    SRRIP_LEADER = "srrip_leader"
    BIP_LEADER = "bip_leader"
    FOLLOWER = "follower"


class InsertionPolicy(Enum):
    """Insertion policy applied to a fill."""
    SRRIP = "SRRIP"
    BIP = "BIP"


class LeaderSetSelector(ABC):
    """Decides whether a set leads, and for which policy."""

    @abstractmethod
    def role(self, set_index: int) -> SetRole:
        pass

    def leaders(self, num_sets: int) -> dict:
        """Map of role -> list of set indices, for reporting."""
        out = {SetRole.SRRIP_LEADER: [], SetRole.BIP_LEADER: []}
        for s in range(num_sets):
            r = self.role(s)
            if r is not SetRole.FOLLOWER:
                out[r].append(s)
        return out


class FixedLeaderSelector(LeaderSetSelector):
    """
    Leaders at fixed low indices.

    Sets [0, srrip_leaders) lead SRRIP and the next bip_leaders sets
    lead BIP. With the defaults that is {0, 1} and {2, 3}.
    """

    def __init__(self, srrip_leaders: int = 2, bip_leaders: int = 2):
        self.srrip_leaders = srrip_leaders
        self.bip_leaders = bip_leaders

    def role(self, set_index: int) -> SetRole:
        if set_index < self.srrip_leaders:
            return SetRole.SRRIP_LEADER
        if set_index < self.srrip_leaders + self.bip_leaders:
            return SetRole.BIP_LEADER
        return SetRole.FOLLOWER

    def __repr__(self) -> str:
        return (f"FixedLeaderSelector(srrip_leaders={self.srrip_leaders}, "
                f"bip_leaders={self.bip_leaders})")


class HashedLeaderSelector(LeaderSetSelector):
    """
    Leaders spread across the cache by hashing.

    The sets are split into constituencies of `constituency_size`
    consecutive sets. Within each constituency the set whose hashed
    offset is 0 leads SRRIP and the one at offset 1 leads BIP.
    """

    def __init__(self, constituency_size: int = 32, seed: int = 0):
        if constituency_size < 2:
            raise ValueError("constituency_size must be at least 2")
        self.constituency_size = constituency_size
        self.seed = seed

    @staticmethod
    def _mix(x: int) -> int:
        # murmur3 finalizer, 32-bit
        x &= 0xFFFFFFFF
        x ^= x >> 16
        x = (x * 0x85ebca6b) & 0xFFFFFFFF
        x ^= x >> 13
        x = (x * 0xc2b2ae35) & 0xFFFFFFFF
        x ^= x >> 16
        return x

    def role(self, set_index: int) -> SetRole:
        constituency, offset = divmod(set_index, self.constituency_size)
        # Rotate the offset by a per-constituency hash so leaders move around
        shift = self._mix(constituency ^ self.seed) % self.constituency_size
        slot = (offset - shift) % self.constituency_size
        if slot == 0:
            return SetRole.SRRIP_LEADER
        if slot == 1:
            return SetRole.BIP_LEADER
        return SetRole.FOLLOWER

    def __repr__(self) -> str:
        return (f"HashedLeaderSelector(constituency_size="
                f"{self.constituency_size}, seed={self.seed})")
