"""Fitting oracle contract and candidate evaluation."""

from .base import (
    CallableOracle,
    DataStack,
    FitResult,
    FittingOracle,
    as_oracle,
    build_stack
)
from .evaluator import EvaluationResult, ModelEvaluator, holdout_rmse, sum_log_cpo

__all__ = [
    'CallableOracle',
    'DataStack',
    'FitResult',
    'FittingOracle',
    'as_oracle',
    'build_stack',
    'EvaluationResult',
    'ModelEvaluator',
    'holdout_rmse',
    'sum_log_cpo'
]
