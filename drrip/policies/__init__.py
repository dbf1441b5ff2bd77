# Policies Package
from .base import AccessResult, BaseReplacementPolicy, LRUPolicy, PolicyStats

from .drrip import (
    DRRIPPolicy,
    SRRIPPolicy,
    BIPPolicy,
    BIP_EPSILON,
    DRRIP_2BIT,
    DRRIP_3BIT,
    DRRIP_LLC_2MB,
)


__all__ = [
    'AccessResult',
    'BaseReplacementPolicy',
    'LRUPolicy',
    'PolicyStats',

    'DRRIPPolicy',
    'SRRIPPolicy',
    'BIPPolicy',
    'BIP_EPSILON',
    'DRRIP_2BIT',
    'DRRIP_3BIT',
    'DRRIP_LLC_2MB',
]
