# Simulation Package
from .cache import CacheConfig, SetAssociativeCache, CacheAccess
from .simulator import CacheSimulator, ComparativeSimulator, SimulationConfig
from .metrics import MetricsCollector, SimulationResults, ResultsExporter

__all__ = [
    'CacheConfig',
    'SetAssociativeCache',
    'CacheAccess',
    'CacheSimulator',
    'ComparativeSimulator',
    'SimulationConfig',
    'MetricsCollector',
    'SimulationResults',
    'ResultsExporter'
]
