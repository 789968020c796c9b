"""Greedy search loop, selection state and progress tracking."""

from .progress import PROGRESS_COLUMNS, ProgressRecord, ProgressTracker, StepwiseResult
from .state import SelectionState
from .controller import KEEP_LABEL, SearchController, select_best

__all__ = [
    'PROGRESS_COLUMNS',
    'ProgressRecord',
    'ProgressTracker',
    'StepwiseResult',
    'SelectionState',
    'KEEP_LABEL',
    'SearchController',
    'select_best'
]
