"""Candidate model evaluation through the fitting oracle.

One evaluation is one synchronous oracle call. From the fit, three
scalars are extracted: WAIC (the selection criterion), holdout RMSE and
the summed log CPO.
"""

import os
import time
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import psutil

from stepselect.config import OracleConfig
from stepselect.core.formula import FormulaRenderer, ModelSpec, RFormulaRenderer
from stepselect.exceptions import OracleError
from stepselect.oracle.base import DataStack, FitResult, as_oracle


@dataclass(frozen=True)
class EvaluationResult:
    """Scores of one candidate model.

    Attributes:
        term: Identifier of the move evaluated (term name, '<none>' for the
            unchanged backward model, or the '+'-joined terms by default)
        criterion: WAIC of the fit (lower is better)
        rmse: Holdout RMSE over the dataset's observation rows
        sum_log_cpo: Sum of log CPO over observations
        formula: Formula text that was fit
        runtime_sec: Wall-clock time of the oracle call
        memory_mb: Resident memory delta of the process during the call
        fit: Oracle's FitResult
    """
    term: str
    criterion: float
    rmse: float
    sum_log_cpo: float
    formula: str = ''
    runtime_sec: float = 0.0
    memory_mb: float = 0.0
    fit: Any = None


def holdout_rmse(holdout: np.ndarray, fitted_mean: np.ndarray) -> float:
    """Root mean squared error over the first ``len(holdout)`` fitted rows.

    Missing values on either side are ignored; NaN if nothing remains.
    """
    holdout = np.asarray(holdout, dtype=np.float64)
    residuals = holdout - np.asarray(fitted_mean, dtype=np.float64)[:len(holdout)]
    finite = ~np.isnan(residuals)
    if not finite.any():
        return float('nan')
    return float(np.sqrt(np.mean(residuals[finite] ** 2)))


def sum_log_cpo(cpo: np.ndarray) -> float:
    """Sum of natural-log CPO values, ignoring missing values."""
    with np.errstate(divide='ignore', invalid='ignore'):
        return float(np.nansum(np.log(np.asarray(cpo, dtype=np.float64))))


class ModelEvaluator:
    """Scores candidate models with the fitting oracle.

    Holds everything that is fixed across a search (oracle, stack, holdout
    response, oracle options, renderer); only the ModelSpec changes between
    calls. Safe to share between threads as long as the oracle is.

    Example:
        >>> evaluator = ModelEvaluator(oracle, stack, data['y'].values, OracleConfig())
        >>> result = evaluator.evaluate(spec, label='x1')
        >>> result.criterion
    """

    def __init__(
        self,
        oracle,
        stack: DataStack,
        holdout,
        oracle_config: Optional[OracleConfig] = None,
        spatial_model: Any = None,
        renderer: Optional[FormulaRenderer] = None
    ):
        """Initialize the evaluator.

        Args:
            oracle: FittingOracle, object with a ``fit`` method, or callable
            stack: Stacked data-binding object passed to every fit
            holdout: Holdout response values, one per dataset row
            oracle_config: Family, threads and pass-through options
            spatial_model: Optional spatial random-effect object
            renderer: Formula dialect (R/INLA by default)
        """
        self.oracle = as_oracle(oracle)
        self.stack = stack
        self.holdout = np.asarray(holdout, dtype=np.float64).ravel()
        self.oracle_config = oracle_config or OracleConfig()
        self.spatial_model = spatial_model
        self.renderer = renderer or RFormulaRenderer()

    @property
    def n_observations(self) -> int:
        return len(self.holdout)

    def fit(self, formula: str) -> FitResult:
        """Run the oracle once on ``formula`` with the fixed options."""
        config = self.oracle_config
        return self.oracle.fit(
            formula,
            family=config.family,
            stack=self.stack,
            spatial_model=self.spatial_model,
            num_threads=config.num_threads,
            control_compute=config.control_compute(),
            expand_factor_strategy=config.expand_factor_strategy,
            **config.options
        )

    def evaluate(self, spec: ModelSpec, label: Optional[str] = None) -> EvaluationResult:
        """Fit ``spec`` and extract its scores.

        Args:
            spec: Candidate model
            label: Identifier of the move; defaults to the model's terms

        Returns:
            EvaluationResult for the candidate

        Raises:
            OracleError: If the oracle raises or returns an unusable result
        """
        formula = self.renderer.render(spec)
        term = label if label is not None else spec.label()

        process = psutil.Process(os.getpid())
        mem_before = process.memory_info().rss / 1024 / 1024  # MB
        start = time.perf_counter()

        try:
            fit = self.fit(formula)
        except OracleError:
            raise
        except Exception as e:
            raise OracleError(
                f"Fitting failed for {formula!r}: {type(e).__name__}: {e}",
                formula=formula,
                term=term
            ) from e

        runtime = time.perf_counter() - start
        mem_delta = process.memory_info().rss / 1024 / 1024 - mem_before

        criterion = self._extract_waic(fit, formula, term)
        fitted_mean = self._extract_array(fit, 'fitted_mean', formula, term)
        if len(fitted_mean) < self.n_observations:
            raise OracleError(
                f"Oracle returned {len(fitted_mean)} fitted values for "
                f"{self.n_observations} observations ({formula!r})",
                formula=formula,
                term=term
            )
        cpo = self._extract_array(fit, 'cpo', formula, term)

        return EvaluationResult(
            term=term,
            criterion=criterion,
            rmse=holdout_rmse(self.holdout, fitted_mean),
            sum_log_cpo=sum_log_cpo(cpo),
            formula=formula,
            runtime_sec=runtime,
            memory_mb=mem_delta,
            fit=fit
        )

    @staticmethod
    def _extract_waic(fit, formula: str, term: str) -> float:
        waic = getattr(fit, 'waic', None)
        try:
            return float(waic)
        except (TypeError, ValueError):
            raise OracleError(
                f"Oracle result has no numeric WAIC for {formula!r} (got {waic!r})",
                formula=formula,
                term=term
            ) from None

    @staticmethod
    def _extract_array(fit, name: str, formula: str, term: str) -> np.ndarray:
        values = getattr(fit, name, None)
        if values is None:
            raise OracleError(
                f"Oracle result has no {name} for {formula!r}",
                formula=formula,
                term=term
            )
        try:
            return np.asarray(values, dtype=np.float64).ravel()
        except (TypeError, ValueError):
            raise OracleError(
                f"Oracle result {name} is not numeric for {formula!r}",
                formula=formula,
                term=term
            ) from None
