"""Parallel execution for candidate evaluation.

This package provides round scheduling, worker management, and timeout
handling for evaluating the candidates of a round concurrently.
"""

from .scheduler import (
    RoundJob,
    prepare_round_jobs,
    get_round_info
)

from .worker import (
    check_picklable,
    evaluate_single_candidate,
    evaluate_round_parallel
)

__all__ = [
    'RoundJob',
    'prepare_round_jobs',
    'get_round_info',
    'check_picklable',
    'evaluate_single_candidate',
    'evaluate_round_parallel'
]
