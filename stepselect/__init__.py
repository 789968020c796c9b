"""Greedy stepwise term selection for Bayesian spatial regression.

A term-selection system featuring:
- Candidate expansion with power and interaction terms
- WAIC-driven forward and backward greedy search
- Round-level parallel evaluation with timeout protection
- Progress tracking via structured logging and an SQLite database

The fitting engine itself is external: every candidate model is handed to
a fitting oracle (INLA or an equivalent) that returns WAIC, CPO and fitted
values.
"""

__version__ = "0.1.0"

from stepselect.api import StepwiseSelector, stepwise_select
from stepselect.config import StepwiseConfig
from stepselect.exceptions import (
    EvaluationTimeoutError,
    OracleError,
    PreconditionError,
    StepwiseError
)
from stepselect.oracle import DataStack, FitResult, FittingOracle, build_stack
from stepselect.search import StepwiseResult

__all__ = [
    'stepwise_select',
    'StepwiseSelector',
    'StepwiseConfig',
    'StepwiseResult',
    'DataStack',
    'FitResult',
    'FittingOracle',
    'build_stack',
    'StepwiseError',
    'PreconditionError',
    'OracleError',
    'EvaluationTimeoutError'
]
