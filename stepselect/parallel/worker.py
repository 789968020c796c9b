"""Worker management for parallel candidate evaluation.

Candidates within a round are independent, so they may be fit
concurrently. Results always come back in job order, and the first
failure aborts the whole round.
"""

import logging
import multiprocessing
import pickle
from concurrent.futures import (
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    TimeoutError as FuturesTimeoutError,
    as_completed
)
from typing import List, Optional

import psutil

from stepselect.exceptions import EvaluationTimeoutError, OracleError, PreconditionError
from stepselect.parallel.scheduler import RoundJob
from stepselect.tracking.logger import log_error


def evaluate_single_candidate(evaluator, job: RoundJob):
    """Evaluate one round job.

    Parameters
    ----------
    evaluator : ModelEvaluator
        Evaluator shared by the round.
    job : RoundJob
        Candidate to fit.

    Returns
    -------
    result : EvaluationResult
    """
    return evaluator.evaluate(job.spec, label=job.label)


def check_picklable(evaluator) -> None:
    """Check that an evaluator can be shipped to worker processes.

    Raises
    ------
    PreconditionError
        If the evaluator (usually its oracle) cannot be pickled.
    """
    try:
        pickle.dumps(evaluator)
    except (pickle.PicklingError, TypeError, AttributeError) as e:
        raise PreconditionError(
            f"backend='process' needs a picklable oracle and stack: {type(e).__name__}: {e}"
        ) from e


def _kill_pool_processes(executor) -> None:
    """Forcefully terminate the worker processes of a process pool.

    Kills each worker's children first (e.g. thread pools or subprocesses
    spawned by the fitting backend), then the worker itself.
    """
    pids = list(getattr(executor, '_processes', None) or {})
    for pid in pids:
        try:
            parent = psutil.Process(pid)
            for child in parent.children(recursive=True):
                try:
                    child.kill()
                except (psutil.NoSuchProcess, psutil.AccessDenied):
                    pass
            parent.kill()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            pass


def evaluate_round_parallel(
    evaluator,
    jobs: List[RoundJob],
    max_workers: int = 1,
    backend: str = 'thread',
    timeout_seconds: Optional[float] = None,
    logger: Optional[logging.Logger] = None
) -> list:
    """Evaluate every job of a round, possibly in parallel.

    Parameters
    ----------
    evaluator : ModelEvaluator
        Evaluator shared by the round (must be picklable for 'process').
    jobs : list of RoundJob
        Jobs of the round.
    max_workers : int, default=1
        Maximum number of concurrent fits. With 1, jobs run inline on the
        calling thread.
    backend : str, default='thread'
        'thread' (ThreadPoolExecutor) or 'process' (ProcessPoolExecutor).
    timeout_seconds : float or None, default=None
        Time budget for the whole round (ignored when running inline).
    logger : logging.Logger, optional
        Logger for failure messages.

    Returns
    -------
    results : list of EvaluationResult
        One result per job, in job order.

    Raises
    ------
    OracleError
        If any evaluation fails; pending jobs are cancelled.
    EvaluationTimeoutError
        If the round exceeds ``timeout_seconds``.
    """
    logger = logger or logging.getLogger('stepselect')
    if not jobs:
        return []

    if max_workers <= 1:
        return [evaluate_single_candidate(evaluator, job) for job in jobs]

    if backend == 'thread':
        executor = ThreadPoolExecutor(max_workers=min(max_workers, len(jobs)))
    elif backend == 'process':
        executor = ProcessPoolExecutor(
            max_workers=min(max_workers, len(jobs)),
            mp_context=multiprocessing.get_context('spawn')
        )
    else:
        raise ValueError(f"Unknown backend: {backend!r}")

    results = [None] * len(jobs)
    try:
        future_to_index = {
            executor.submit(evaluate_single_candidate, evaluator, job): index
            for index, job in enumerate(jobs)
        }

        for future in as_completed(future_to_index, timeout=timeout_seconds):
            index = future_to_index[future]
            try:
                results[index] = future.result()
            except OracleError as e:
                log_error(logger, e, context=f"round {jobs[index].round_index}, {jobs[index].label}")
                raise
            except Exception as e:
                log_error(logger, e, context=f"round {jobs[index].round_index}, {jobs[index].label}")
                raise OracleError(
                    f"Evaluation of {jobs[index].label!r} failed: {type(e).__name__}: {e}",
                    term=jobs[index].label
                ) from e

    except FuturesTimeoutError as e:
        logger.warning(
            f"Round {jobs[0].round_index} exceeded timeout ({timeout_seconds}s). "
            f"Terminating workers..."
        )
        if backend == 'process':
            _kill_pool_processes(executor)
        executor.shutdown(wait=False, cancel_futures=True)
        raise EvaluationTimeoutError(
            f"Round {jobs[0].round_index} exceeded timeout ({timeout_seconds}s)"
        ) from e

    except BaseException:
        executor.shutdown(wait=True, cancel_futures=True)
        raise

    executor.shutdown(wait=True)
    return results
