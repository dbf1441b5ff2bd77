# Components Package
from .rrpv_table import RRPVTable
from .counters import SaturatingCounter, CyclicCounter
from .set_dueling import (
    SetRole,
    InsertionPolicy,
    LeaderSetSelector,
    FixedLeaderSelector,
    HashedLeaderSelector,
)
from .victim_search import SearchState, VictimSearch

__all__ = [
    'RRPVTable',
    'SaturatingCounter',
    'CyclicCounter',
    'SetRole',
    'InsertionPolicy',
    'LeaderSetSelector',
    'FixedLeaderSelector',
    'HashedLeaderSelector',
    'SearchState',
    'VictimSearch'
]
