"""Contract with the external Bayesian fitting oracle.

The oracle is the fitting engine (INLA or an equivalent). This package
never fits models itself: it hands the oracle a formula plus a stacked
data-binding object and reads back fitted means, WAIC and CPO.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import numpy as np
import pandas as pd
from scipy import sparse

from stepselect.exceptions import PreconditionError


@dataclass
class FitResult:
    """Summary statistics returned by the oracle for one fit.

    Attributes:
        fitted_mean: Posterior mean of the linear predictor per stack row;
            the first rows correspond to the observations of the dataset
        waic: Watanabe-Akaike information criterion
        cpo: Conditional predictive ordinate per observation
        dic: Deviance information criterion, if reported
        raw: Backend-specific fit object, passed through untouched
    """
    fitted_mean: np.ndarray
    waic: float
    cpo: np.ndarray
    dic: Optional[float] = None
    raw: Any = None

    def __post_init__(self):
        self.fitted_mean = np.asarray(self.fitted_mean, dtype=np.float64).ravel()
        self.cpo = np.asarray(self.cpo, dtype=np.float64).ravel()


class FittingOracle(ABC):
    """Abstract fitting engine.

    Implementations wrap a concrete backend; they receive the rendered
    formula and all options, and either return a FitResult or raise.
    """

    @abstractmethod
    def fit(
        self,
        formula: str,
        family: str,
        stack: 'DataStack',
        spatial_model: Any = None,
        num_threads: int = 1,
        control_compute: Optional[Dict[str, bool]] = None,
        expand_factor_strategy: str = 'inla',
        **options
    ) -> FitResult:
        """Fit one model and return its summary statistics."""


class CallableOracle(FittingOracle):
    """Adapts a plain function with the ``fit`` signature to FittingOracle."""

    def __init__(self, func: Callable[..., FitResult]):
        self.func = func

    def fit(self, formula, family, stack, spatial_model=None, num_threads=1,
            control_compute=None, expand_factor_strategy='inla', **options):
        return self.func(
            formula,
            family=family,
            stack=stack,
            spatial_model=spatial_model,
            num_threads=num_threads,
            control_compute=control_compute,
            expand_factor_strategy=expand_factor_strategy,
            **options
        )


def as_oracle(oracle) -> FittingOracle:
    """Return ``oracle`` as a FittingOracle.

    Raises
    ------
    PreconditionError
        If no oracle is given or it exposes neither ``fit`` nor ``__call__``.
    """
    if oracle is None:
        raise PreconditionError("no fitting oracle supplied")
    if isinstance(oracle, FittingOracle):
        return oracle
    if callable(getattr(oracle, 'fit', None)):
        return oracle
    if callable(oracle):
        return CallableOracle(oracle)
    raise PreconditionError(
        f"fitting oracle must have a fit() method or be callable, got {type(oracle).__name__}"
    )


@dataclass
class DataStack:
    """Stacked data-binding object handed to the oracle.

    Binds the observed response, the effects (covariates, intercept and
    index columns) and the projection matrix that maps effects onto
    observations.

    Attributes:
        effects: Effect columns, one row per latent/effect location
        response: Observed response, one value per observation
        A: Projection matrix of shape (n_observations, n_effect_rows),
            dense or scipy sparse; a sparse identity when omitted
        tag: Label of the stack
        response_name: Response column name used by stack_data()
    """
    effects: pd.DataFrame
    response: np.ndarray
    A: Any = None
    tag: str = 'est'
    response_name: str = 'y'

    def __post_init__(self):
        self.response = np.asarray(self.response, dtype=np.float64).ravel()
        if self.A is None:
            self.A = sparse.identity(len(self.response), format='csr')

    @property
    def n_observations(self) -> int:
        return len(self.response)

    def stack_data(self) -> pd.DataFrame:
        """Effects plus the response column, for backends that want one table."""
        data = self.effects.reset_index(drop=True).copy()
        if len(data) == len(self.response):
            data[self.response_name] = self.response
        return data

    def projection(self):
        return self.A


def build_stack(
    response,
    effects: pd.DataFrame,
    A=None,
    tag: str = 'est',
    response_name: str = 'y'
) -> DataStack:
    """Build a DataStack, checking that the pieces fit together.

    Parameters
    ----------
    response : array-like
        Observed response values.
    effects : pd.DataFrame
        Effect columns (e.g. an ``Intercept`` column of ones and covariates).
    A : np.ndarray or scipy sparse matrix, optional
        Projection matrix; identity when omitted, which requires one
        effect row per observation.
    tag : str, default='est'
        Stack label.
    response_name : str, default='y'
        Name of the response column in ``stack_data()``.

    Returns
    -------
    stack : DataStack

    Raises
    ------
    PreconditionError
        If shapes are inconsistent.
    """
    response = np.asarray(response, dtype=np.float64).ravel()
    if not isinstance(effects, pd.DataFrame):
        raise PreconditionError("stack effects must be a data frame")

    if A is None:
        if len(effects) != len(response):
            raise PreconditionError(
                f"effects have {len(effects)} rows but response has {len(response)} values; "
                f"supply a projection matrix A"
            )
    else:
        if not sparse.issparse(A):
            A = np.asarray(A)
        if A.ndim != 2 or A.shape != (len(response), len(effects)):
            raise PreconditionError(
                f"projection matrix must have shape ({len(response)}, {len(effects)}), "
                f"got {A.shape}"
            )

    return DataStack(effects=effects, response=response, A=A, tag=tag, response_name=response_name)
