"""Input validation and column selection for a stepwise search.

Every check here runs before the first model is fit. Failures raise
PreconditionError; the spatial-reference check only warns.
"""

import logging
from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from stepselect.exceptions import PreconditionError
from stepselect.tracking.logger import log_warning


def validate_frame(data) -> pd.DataFrame:
    """Check that ``data`` is a non-empty DataFrame.

    DataFrame subclasses (e.g. geopandas GeoDataFrame) are accepted.

    Raises
    ------
    PreconditionError
        If data is not tabular or has no rows.
    """
    if data is None:
        raise PreconditionError("No data frame supplied")
    if not isinstance(data, pd.DataFrame):
        raise PreconditionError(
            f"data is not a data frame (got {type(data).__name__})"
        )
    if len(data) == 0:
        raise PreconditionError("no rows in data frame")
    return data


def validate_response(
    data: pd.DataFrame,
    response: Optional[str],
    holdout_response: Optional[str] = None
) -> str:
    """Check the response and holdout columns, returning the holdout name."""
    if response is None:
        raise PreconditionError("no response variable supplied")
    if response not in data.columns:
        raise PreconditionError(f"response column {response!r} not in data frame")

    holdout = response if holdout_response is None else holdout_response
    if holdout not in data.columns:
        raise PreconditionError(f"holdout response column {holdout!r} not in data frame")
    return holdout


def select_columns(
    data: pd.DataFrame,
    response: str,
    holdout_response: Optional[str] = None,
    include: Optional[Sequence[Union[str, int]]] = None
) -> List[str]:
    """Resolve the explanatory columns of the base pool.

    Parameters
    ----------
    data : pd.DataFrame
        Dataset holding response and covariates.
    response : str
        Response column, always excluded from the default selection.
    holdout_response : str, optional
        Holdout column, also excluded from the default selection.
    include : sequence of str or int, optional
        Explicit selection by column name or integer position.

    Returns
    -------
    columns : list of str
        Column names in selection order.
    """
    if include is None:
        excluded = {response, holdout_response}
        columns = [col for col in data.columns if col not in excluded]
    else:
        columns = _resolve_include(data, include)

    non_text = [col for col in columns if not isinstance(col, str)]
    if non_text:
        raise PreconditionError(f"column names must be strings, got {non_text}")
    return columns


def _resolve_include(data: pd.DataFrame, include) -> List[str]:
    columns = []
    for item in include:
        if isinstance(item, (int, np.integer)) and not isinstance(item, bool):
            if not 0 <= item < data.shape[1]:
                raise PreconditionError(
                    f"include position {item} out of range for {data.shape[1]} columns"
                )
            columns.append(data.columns[item])
        elif item in data.columns:
            columns.append(item)
        else:
            raise PreconditionError(f"include column {item!r} not in data frame")

    if len(set(columns)) != len(columns):
        raise PreconditionError(f"include selects a column more than once: {columns}")
    return columns


def factor_mask(data: pd.DataFrame, columns: Sequence[str]) -> List[bool]:
    """Flag the factor (categorical) columns among ``columns``.

    Categorical, object, string and boolean dtypes count as factors.
    """
    flags = []
    for col in columns:
        dtype = data[col].dtype
        flags.append(bool(
            isinstance(dtype, pd.CategoricalDtype)
            or pd.api.types.is_object_dtype(dtype)
            or pd.api.types.is_string_dtype(dtype)
            or pd.api.types.is_bool_dtype(dtype)
        ))
    return flags


def check_spatial_reference(
    spatial_model,
    invariant: str,
    token: str = 'spde',
    logger: Optional[logging.Logger] = None
) -> bool:
    """Warn when a spatial model is supplied but unused by the invariant.

    Returns
    -------
    referenced : bool
        False when the warning was issued.
    """
    if spatial_model is None or token in invariant:
        return True

    log_warning(
        logger or logging.getLogger('stepselect'),
        f"A spatial model object was supplied but the invariant formula does not "
        f"reference it, e.g. invariant = \"0 + Intercept + f(spatial.field, model={token})\""
    )
    return False


def get_pool_info(data: pd.DataFrame, columns: Sequence[str]) -> dict:
    """Summarize the base pool of explanatory columns.

    Parameters
    ----------
    data : pd.DataFrame
        Dataset holding the columns.
    columns : sequence of str
        Selected explanatory columns.

    Returns
    -------
    info : dict
        Counts and names of continuous and factor columns, plus the
        number of rows with a missing value in any selected column.
    """
    flags = factor_mask(data, columns)
    continuous = [col for col, flag in zip(columns, flags) if not flag]
    factors = [col for col, flag in zip(columns, flags) if flag]
    n_incomplete = int(data[list(columns)].isna().any(axis=1).sum()) if columns else 0

    return {
        'n_rows': len(data),
        'n_continuous': len(continuous),
        'n_factors': len(factors),
        'continuous': continuous,
        'factors': factors,
        'n_incomplete_rows': n_incomplete,
    }
