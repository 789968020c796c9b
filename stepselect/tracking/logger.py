"""Structured logging utilities for stepwise selection.

This module provides the logging helpers used throughout the search, so
progress is reported through proper structured logging rather than prints.
"""

import logging
from typing import Any, Dict, Optional
from pathlib import Path


def setup_logger(
    name: str = 'stepselect',
    level: int = logging.INFO,
    log_file: Optional[Path] = None
) -> logging.Logger:
    """Setup a logger with consistent formatting.

    Parameters
    ----------
    name : str, default='stepselect'
        Logger name.
    level : int or str, default=logging.INFO
        Logging level.
    log_file : Path, optional
        Path to log file. If provided, logs will be written to both console and file.
        File will be overwritten (mode='w') to start fresh each run.

    Returns
    -------
    logger : logging.Logger
        Configured logger instance.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Clear any existing handlers to start fresh
    logger.handlers.clear()

    # Format: [2025-12-10 10:30:45] INFO: Message
    formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode='w')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def log_phase_start(logger: logging.Logger, phase_name: str, details: str = "") -> None:
    """Log the start of a major phase.

    Parameters
    ----------
    logger : logging.Logger
        Logger instance.
    phase_name : str
        Name of the phase.
    details : str, optional
        Additional details.
    """
    separator = "=" * 80
    logger.info(separator)
    logger.info(f"{phase_name.upper()}")
    if details:
        logger.info(details)
    logger.info(separator)


def log_phase_end(logger: logging.Logger, phase_name: str, elapsed_time: float = None) -> None:
    """Log the end of a major phase.

    Parameters
    ----------
    logger : logging.Logger
        Logger instance.
    phase_name : str
        Name of the phase.
    elapsed_time : float, optional
        Time elapsed in seconds.
    """
    separator = "=" * 80
    logger.info(separator)
    msg = f"{phase_name.upper()} COMPLETE"
    if elapsed_time is not None:
        msg += f" ({elapsed_time:.1f}s)"
    logger.info(msg)
    logger.info(separator)


def log_round(
    logger: logging.Logger,
    round_index: int,
    accepted: bool,
    winner: Optional[str],
    criterion: Optional[float],
    reason: str,
    metrics: Optional[Dict[str, Any]] = None
) -> None:
    """Log the outcome of one search round.

    Parameters
    ----------
    logger : logging.Logger
        Logger instance.
    round_index : int
        Round number.
    accepted : bool
        Whether the round's best move was accepted.
    winner : str or None
        Identifier of the round's best move.
    criterion : float or None
        Criterion of the round's best move.
    reason : str
        Acceptance/rejection reason.
    metrics : dict, optional
        Extra metrics (e.g., rmse, sum_log_cpo, n_candidates).
    """
    status = "✓ ACCEPTED" if accepted else "✗ REJECTED"
    if criterion is None:
        logger.info(f"Round {round_index}: {status} - {reason}")
    else:
        logger.info(f"Round {round_index}: {status} {winner} - {criterion:.4f} - {reason}")

    metrics = metrics or {}
    if 'n_candidates' in metrics:
        logger.info(f"  Candidates: {metrics['n_candidates']}")
    if 'rmse' in metrics:
        logger.info(f"  RMSE: {metrics['rmse']:.6f}")
    if 'sum_log_cpo' in metrics:
        logger.info(f"  Sum log CPO: {metrics['sum_log_cpo']:.6f}")


def log_evaluation(logger: logging.Logger, evaluation) -> None:
    """Log a single candidate evaluation at debug level."""
    logger.debug(
        f"  {evaluation.term}: WAIC={evaluation.criterion:.4f} "
        f"RMSE={evaluation.rmse:.4f} sumlogCPO={evaluation.sum_log_cpo:.4f} "
        f"({evaluation.runtime_sec:.2f}s)"
    )


def log_performance_metrics(
    logger: logging.Logger,
    metrics: Dict[str, float],
    prefix: str = ""
) -> None:
    """Log performance metrics in a structured way.

    Parameters
    ----------
    logger : logging.Logger
        Logger instance.
    metrics : dict
        Dictionary of metric name to value.
    prefix : str, optional
        Prefix for log messages.
    """
    if prefix:
        logger.info(f"{prefix}:")

    for name, value in metrics.items():
        if isinstance(value, float):
            logger.info(f"  {name}: {value:.6f}")
        else:
            logger.info(f"  {name}: {value}")


def log_error(logger: logging.Logger, error: Exception, context: str = "") -> None:
    """Log an error with context.

    Parameters
    ----------
    logger : logging.Logger
        Logger instance.
    error : Exception
        The exception that occurred.
    context : str, optional
        Additional context about where the error occurred.
    """
    if context:
        logger.error(f"Error in {context}: {type(error).__name__}: {str(error)}")
    else:
        logger.error(f"{type(error).__name__}: {str(error)}")


def log_warning(logger: logging.Logger, message: str) -> None:
    """Log a warning message.

    Parameters
    ----------
    logger : logging.Logger
        Logger instance.
    message : str
        Warning message.
    """
    logger.warning(f"⚠️  {message}")


def log_success(logger: logging.Logger, message: str) -> None:
    """Log a success message.

    Parameters
    ----------
    logger : logging.Logger
        Logger instance.
    message : str
        Success message.
    """
    logger.info(f"✓ {message}")
