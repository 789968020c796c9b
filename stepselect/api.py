"""Public entry points for stepwise term selection.

``StepwiseSelector`` wires the configuration, the candidate expander, the
evaluator and the search controller together; ``stepwise_select`` is the
flat keyword-argument form of the same call.
"""

import logging
import time
import uuid
from pathlib import Path
from typing import Any, Optional, Sequence, Union

import numpy as np
import pandas as pd

from stepselect.config import StepwiseConfig
from stepselect.core.acceptance import ThresholdAcceptance
from stepselect.core.expansion import CandidateExpander
from stepselect.core.formula import get_renderer
from stepselect.data.validation import (
    check_spatial_reference,
    get_pool_info,
    select_columns,
    validate_frame,
    validate_response
)
from stepselect.exceptions import PreconditionError
from stepselect.oracle.base import DataStack, as_oracle
from stepselect.oracle.evaluator import ModelEvaluator
from stepselect.parallel.worker import check_picklable
from stepselect.search.controller import SearchController
from stepselect.search.progress import StepwiseResult
from stepselect.tracking.database import StepwiseDatabase
from stepselect.tracking.logger import (
    log_error,
    log_phase_end,
    log_phase_start,
    log_performance_metrics,
    log_success,
    setup_logger
)


class StepwiseSelector:
    """Greedy stepwise selection of fixed-effect terms.

    Example:
        >>> config = StepwiseConfig.from_kwargs(response='y', power_order=2)
        >>> selector = StepwiseSelector(config, oracle=my_oracle)
        >>> result = selector.run(data, stack)
        >>> print(result.best_formula)
    """

    def __init__(
        self,
        config: StepwiseConfig,
        oracle,
        logger: Optional[logging.Logger] = None,
        database: Optional[StepwiseDatabase] = None
    ):
        """Initialize the selector.

        Args:
            config: Complete search configuration
            oracle: Fitting oracle (FittingOracle, object with ``fit``, or callable)
            logger: Logger instance; when omitted the 'stepselect' logger is
                set up from config.tracking (level and optional log file)
            database: Tracking database; created from ``config.tracking.db_path``
                when omitted and a path is configured
        """
        self.config = config
        self.oracle = oracle

        if logger is None:
            logger = setup_logger(
                'stepselect',
                level=config.tracking.log_level,
                log_file=config.tracking.log_file
            )
        self.logger = logger

        if database is None and config.tracking.db_path is not None:
            database = StepwiseDatabase(Path(config.tracking.db_path))
        self.database = database

    def _validate_config(self) -> None:
        try:
            self.config.validate()
        except AssertionError as e:
            raise PreconditionError(f"invalid configuration: {e}") from e

    def run(self, data: pd.DataFrame, stack: DataStack, spatial_model: Any = None) -> StepwiseResult:
        """Run the search and fit the selected model once more.

        Args:
            data: Dataset with response, holdout and explanatory columns
            stack: Stacked data-binding object passed to every fit
            spatial_model: Optional spatial random-effect object

        Returns:
            StepwiseResult with the best formula, criterion, progress
            history and the final fitted model

        Raises:
            PreconditionError: If inputs are invalid (before any fit)
            OracleError: If any fit fails
        """
        config = self.config
        self._validate_config()

        data = validate_frame(data)
        holdout_column = validate_response(data, config.model.response, config.model.holdout_response)
        if not isinstance(stack, DataStack):
            raise PreconditionError(
                f"stack must be a DataStack (see build_stack), got {type(stack).__name__}"
            )
        oracle = as_oracle(self.oracle)
        check_spatial_reference(
            spatial_model, config.model.invariant, config.model.spatial_token, self.logger
        )

        columns = select_columns(
            data, config.model.response, config.model.holdout_response, config.model.include
        )
        expander = CandidateExpander(
            power_order=config.expansion.power_order,
            interaction_order=config.expansion.interaction_order
        )
        vocabulary = expander.from_frame(data, columns)

        try:
            holdout = data[holdout_column].to_numpy(dtype=np.float64, na_value=np.nan)
        except (TypeError, ValueError) as e:
            raise PreconditionError(f"holdout column {holdout_column!r} is not numeric") from e

        renderer = get_renderer(config.model.renderer)
        evaluator = ModelEvaluator(
            oracle,
            stack,
            holdout,
            oracle_config=config.oracle,
            spatial_model=spatial_model,
            renderer=renderer
        )
        if config.parallel.backend == 'process' and config.parallel.n_workers > 1:
            check_picklable(evaluator)

        search_id = uuid.uuid4().hex
        pool_info = get_pool_info(data, columns)
        log_phase_start(
            self.logger,
            f"{config.search.direction} stepwise selection",
            f"Search {search_id}: {pool_info['n_continuous']} continuous and "
            f"{pool_info['n_factors']} factor variables -> {len(vocabulary)} candidate terms"
        )
        self.logger.debug(config.summary())
        if pool_info['n_incomplete_rows']:
            self.logger.info(
                f"{pool_info['n_incomplete_rows']} rows have missing explanatory values"
            )

        if self.database is not None:
            self.database.initialize()
            self.database.insert_search({
                'search_id': search_id,
                'direction': config.search.direction,
                'family': config.oracle.family,
                'response': config.model.response,
                'invariant': config.model.invariant,
                'threshold': config.search.threshold,
                'vocabulary_size': len(vocabulary)
            })

        controller = SearchController(
            evaluator,
            ThresholdAcceptance(config.search.threshold),
            config.search.direction,
            config.model.response,
            config.model.invariant,
            parallel_config=config.parallel,
            logger=self.logger,
            database=self.database,
            search_id=search_id,
            max_rounds=config.search.max_rounds
        )

        start_time = time.time()
        n_rounds = 0
        try:
            state = controller.run(vocabulary)
            n_rounds = state.round_index

            best_spec = state.spec(config.model.response, config.model.invariant)
            self.logger.info(f"Fitting final model: {renderer.render(best_spec)}")
            final_evaluation = evaluator.evaluate(best_spec)

        except Exception as e:
            log_error(self.logger, e, context=f"search {search_id}")
            if self.database is not None:
                self.database.finish_search(search_id, 'failed', n_rounds)
            raise

        result = state.progress.build_result(
            best_spec,
            renderer,
            state.best_criterion,
            final_evaluation,
            config.search.direction,
            search_id=search_id,
            n_rounds=n_rounds
        )

        if self.database is not None:
            self.database.finish_search(
                search_id, 'completed', n_rounds,
                best_formula=result.best_formula,
                best_criterion=result.best_criterion
            )

        elapsed = time.time() - start_time
        log_performance_metrics(self.logger, {
            'rounds': n_rounds,
            'accepted_rounds': len(result.progress),
            'best_waic': result.best_criterion,
            'final_rmse': final_evaluation.rmse
        }, prefix="Search results")
        log_success(self.logger, f"Best formula: {result.best_formula}")
        log_phase_end(self.logger, f"{config.search.direction} stepwise selection", elapsed)

        return result


def stepwise_select(
    family: str = 'gaussian',
    data: Optional[pd.DataFrame] = None,
    spatial_model: Any = None,
    stack: Optional[DataStack] = None,
    invariant: str = '0 + Intercept',
    direction: str = 'forward',
    response: Optional[str] = None,
    holdout_response: Optional[str] = None,
    include: Optional[Sequence[Union[str, int]]] = None,
    power_order: int = 1,
    interaction_order: int = 1,
    threshold: float = 2.0,
    num_threads: int = 1,
    *,
    oracle,
    n_workers: int = 1,
    backend: str = 'thread',
    timeout_minutes: Optional[float] = None,
    renderer: str = 'r',
    max_rounds: Optional[int] = None,
    db_path: Optional[str] = None,
    log_level: str = 'INFO',
    logger: Optional[logging.Logger] = None,
    database: Optional[StepwiseDatabase] = None,
    **fit_options
) -> StepwiseResult:
    """Greedy forward or backward selection of fixed-effect terms.

    Parameters
    ----------
    family : str, default='gaussian'
        Likelihood family passed to the oracle.
    data : pd.DataFrame
        Dataset with response and explanatory columns.
    spatial_model : object, optional
        Spatial random-effect object passed to the oracle.
    stack : DataStack
        Stacked data-binding object (see ``build_stack``).
    invariant : str, default='0 + Intercept'
        Formula fragment kept in every model.
    direction : str, default='forward'
        'forward' or 'backward' ('forwards'/'backwards' also accepted).
    response : str
        Response column name.
    holdout_response : str, optional
        Column used for RMSE; defaults to the response.
    include : sequence of str or int, optional
        Explanatory columns by name or position; defaults to every other
        column.
    power_order, interaction_order : int, default=1
        Candidate expansion orders.
    threshold : float, default=2.0
        Minimum WAIC improvement to accept a round.
    num_threads : int, default=1
        Threads used inside a single fit.
    oracle : FittingOracle or callable
        Fitting engine (keyword-only, required).
    n_workers : int, default=1
        Concurrent candidate fits per round.
    backend : str, default='thread'
        'thread' or 'process'.
    timeout_minutes : float, optional
        Time budget per round.
    renderer : str, default='r'
        Formula dialect, 'r' or 'patsy'.
    max_rounds : int, optional
        Cap on the number of rounds.
    db_path : str, optional
        SQLite tracking database path.
    log_level : str, default='INFO'
        Level of the 'stepselect' logger when no logger is given.
    logger : logging.Logger, optional
        Logger instance.
    database : StepwiseDatabase, optional
        Tracking database (takes precedence over ``db_path``).
    **fit_options
        Passed through to every oracle call.

    Returns
    -------
    result : StepwiseResult
    """
    config = StepwiseConfig.from_kwargs(
        family=family,
        invariant=invariant,
        direction=direction,
        response=response,
        holdout_response=holdout_response,
        include=include,
        power_order=power_order,
        interaction_order=interaction_order,
        threshold=threshold,
        num_threads=num_threads,
        n_workers=n_workers,
        backend=backend,
        timeout_minutes=timeout_minutes,
        renderer=renderer,
        max_rounds=max_rounds,
        db_path=db_path,
        log_level=log_level,
        fit_options=fit_options
    )
    selector = StepwiseSelector(config, oracle, logger=logger, database=database)
    return selector.run(data, stack, spatial_model=spatial_model)
