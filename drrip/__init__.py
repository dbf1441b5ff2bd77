# DRRIP Package
"""
Dynamic Re-Reference Interval Prediction (DRRIP) cache replacement

A set-dueling replacement engine combining:
- Static RRIP (SRRIP) insertion
- Bimodal insertion (BIP) with a deterministic 1-in-32 epsilon
- A saturating policy-selection counter driven by leader-set misses
"""

from .exceptions import DRRIPError, ContractViolation, SearchDidNotConverge
from .components.set_dueling import InsertionPolicy, SetRole
from .policies.base import AccessResult
from .policies.drrip import DRRIPPolicy, SRRIPPolicy, BIPPolicy

__version__ = "1.0.0"

__all__ = [
    'DRRIPError',
    'ContractViolation',
    'SearchDidNotConverge',
    'InsertionPolicy',
    'SetRole',
    'AccessResult',
    'DRRIPPolicy',
    'SRRIPPolicy',
    'BIPPolicy',
]
