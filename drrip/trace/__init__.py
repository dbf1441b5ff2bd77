# Trace Package
from .parser import TraceParser, AccessTrace, create_sample_trace, generate_accesses
from .formats import TraceFormat, MemoryAccess, SimpleTextFormat, BinaryAccessFormat

__all__ = [
    'TraceParser',
    'AccessTrace',
    'create_sample_trace',
    'generate_accesses',
    'TraceFormat',
    'MemoryAccess',
    'SimpleTextFormat',
    'BinaryAccessFormat'
]
