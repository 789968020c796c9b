"""Tracking and monitoring utilities.

This subpackage handles:
- SQLite database operations
- Structured logging
"""

from .database import StepwiseDatabase
from .logger import (
    setup_logger,
    log_phase_start,
    log_phase_end,
    log_round,
    log_evaluation,
    log_performance_metrics,
    log_error,
    log_warning,
    log_success
)

__all__ = [
    # Database
    'StepwiseDatabase',
    # Logging
    'setup_logger',
    'log_phase_start',
    'log_phase_end',
    'log_round',
    'log_evaluation',
    'log_performance_metrics',
    'log_error',
    'log_warning',
    'log_success'
]
