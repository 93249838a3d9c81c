# netflow/pipeline/__init__.py

from .indexing_loop import IndexingLoop, LoopState, CycleReport, RangeReport
from .reorg import ReorgPolicy, ConfirmationDepthPolicy

__all__ = [
    'IndexingLoop',
    'LoopState',
    'CycleReport',
    'RangeReport',
    'ReorgPolicy',
    'ConfirmationDepthPolicy',
]
