"""Consolidated configuration for stepwise term selection.

This module provides a type-safe, validated configuration structure using
dataclasses. All settings of a search are consolidated here with:
- Clear documentation
- Type hints
- Validation logic
- Default values for a WAIC-driven stepwise search

The configuration is organized hierarchically:
    StepwiseConfig (root)
    ├── ModelConfig
    ├── ExpansionConfig
    ├── SearchConfig
    ├── OracleConfig
    ├── ParallelConfig
    └── TrackingConfig

Usage:
    >>> from stepselect.config import StepwiseConfig
    >>> config = StepwiseConfig(model=ModelConfig(response='y'))
    >>> config.validate()  # Check configuration validity

    >>> # Or customize
    >>> config = StepwiseConfig(
    ...     model=ModelConfig(response='y', invariant='0 + Intercept'),
    ...     search=SearchConfig(direction='backward', threshold=4.0),
    ...     expansion=ExpansionConfig(power_order=2, interaction_order=2)
    ... )
"""

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union


DIRECTION_ALIASES = {
    'forward': 'forward',
    'forwards': 'forward',
    'backward': 'backward',
    'backwards': 'backward',
}


# ==============================================================================
# MODEL CONFIGURATION
# ==============================================================================

@dataclass
class ModelConfig:
    """What is being modelled and how formulas are written.

    Attributes:
        response: Response column name (required before a search runs)
        holdout_response: Column compared against fitted values for RMSE
            (defaults to the response)
        invariant: Formula fragment kept in every model, never altered
        include: Explicit column selection (names or integer positions).
            None means every column except the response and holdout columns.
        renderer: Formula dialect, 'r' (INLA) or 'patsy'
        spatial_token: Text the invariant must contain when a spatial
            model object is supplied
    """
    response: Optional[str] = None
    holdout_response: Optional[str] = None
    invariant: str = '0 + Intercept'
    include: Optional[Sequence[Union[str, int]]] = None
    renderer: str = 'r'
    spatial_token: str = 'spde'

    @property
    def holdout_column(self) -> Optional[str]:
        """Holdout column name, falling back to the response."""
        return self.holdout_response if self.holdout_response is not None else self.response

    def validate(self):
        """Validate model configuration."""
        assert isinstance(self.invariant, str), "invariant must be a string"
        assert self.renderer in ['r', 'patsy'], "renderer must be 'r' or 'patsy'"
        assert self.spatial_token, "spatial_token must be non-empty"


# ==============================================================================
# CANDIDATE EXPANSION CONFIGURATION
# ==============================================================================

@dataclass
class ExpansionConfig:
    """Candidate term expansion settings.

    Attributes:
        power_order: Highest power term generated for continuous variables
            (1 = none, 2 = squares, 3 = cubes, 4 or more = fourth powers)
        interaction_order: Highest interaction arity generated
            (1 = none, 2 = pairs, 3 = triples, 4 or more = 4-way)
    """
    power_order: int = 1
    interaction_order: int = 1

    def validate(self):
        """Validate expansion configuration."""
        assert int(self.power_order) == self.power_order, "power_order must be an integer"
        assert int(self.interaction_order) == self.interaction_order, \
            "interaction_order must be an integer"
        assert self.power_order >= 1, "power_order must be >= 1"
        assert self.interaction_order >= 1, "interaction_order must be >= 1"


# ==============================================================================
# SEARCH CONFIGURATION
# ==============================================================================

@dataclass
class SearchConfig:
    """Greedy search parameters.

    A round is accepted only when the WAIC improvement over the best
    criterion so far strictly exceeds the threshold.

    Attributes:
        direction: 'forward' (add terms) or 'backward' (remove terms);
            'forwards' and 'backwards' are accepted as aliases
        threshold: Minimum WAIC improvement needed to accept a round
        max_rounds: Optional cap on the number of rounds
    """
    direction: str = 'forward'
    threshold: float = 2.0
    max_rounds: Optional[int] = None

    def __post_init__(self):
        """Normalize direction aliases."""
        if isinstance(self.direction, str):
            self.direction = DIRECTION_ALIASES.get(self.direction.lower(), self.direction)

    def validate(self):
        """Validate search configuration."""
        assert self.direction in ['forward', 'backward'], \
            "direction must be 'forward' or 'backward'"
        assert not math.isnan(float(self.threshold)), "threshold must not be NaN"
        if self.max_rounds is not None:
            assert self.max_rounds > 0, "max_rounds must be positive"


# ==============================================================================
# FITTING ORACLE CONFIGURATION
# ==============================================================================

@dataclass
class OracleConfig:
    """Options passed to the external fitting oracle on every fit.

    The compute flags (CPO, DIC, WAIC) are not configurable: every fit
    requests all three.

    Attributes:
        family: Likelihood family identifier (e.g. 'gaussian', 'poisson')
        num_threads: Threads used inside a single fit
        expand_factor_strategy: Fixed-effects factor expansion policy
        options: Pass-through keyword options for the oracle
    """
    family: str = 'gaussian'
    num_threads: int = 1
    expand_factor_strategy: str = 'inla'
    options: Dict[str, Any] = field(default_factory=dict)

    def control_compute(self) -> Dict[str, bool]:
        """Compute flags requested from the oracle."""
        return {'cpo': True, 'dic': True, 'waic': True}

    def validate(self):
        """Validate oracle configuration."""
        assert isinstance(self.family, str) and self.family, "family must be a non-empty string"
        assert self.num_threads > 0, "num_threads must be positive"
        assert self.expand_factor_strategy, "expand_factor_strategy must be non-empty"


# ==============================================================================
# PARALLEL EXECUTION CONFIGURATION
# ==============================================================================

@dataclass
class ParallelConfig:
    """Round-level parallel evaluation configuration.

    Candidates within a round are independent and may be fit concurrently.
    This is orthogonal to OracleConfig.num_threads, which controls
    parallelism inside a single fit.

    Attributes:
        n_workers: Number of concurrent candidate fits (1 = sequential)
        backend: 'thread' or 'process'
        timeout_minutes: Optional time budget for a whole round
    """
    n_workers: int = 1
    backend: str = 'thread'
    timeout_minutes: Optional[float] = None

    @property
    def timeout_seconds(self) -> Optional[float]:
        """Round timeout in seconds, or None."""
        if self.timeout_minutes is None:
            return None
        return self.timeout_minutes * 60

    def validate(self):
        """Validate parallel configuration."""
        assert self.n_workers > 0, "n_workers must be positive"
        assert self.backend in ['thread', 'process'], "backend must be 'thread' or 'process'"
        if self.timeout_minutes is not None:
            assert self.timeout_minutes > 0, "timeout_minutes must be positive"


# ==============================================================================
# TRACKING CONFIGURATION
# ==============================================================================

@dataclass
class TrackingConfig:
    """Database and logging configuration.

    Attributes:
        db_path: Path to SQLite database file (None disables the database)
        log_level: Logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR')
        log_to_file: Whether to log to file in addition to stdout
        log_directory: Directory for log files
    """
    db_path: Optional[str] = None
    log_level: str = 'INFO'
    log_to_file: bool = False
    log_directory: str = 'logs'

    @property
    def log_file(self) -> Optional[Path]:
        """Log file path, or None when logging to stdout only."""
        if not self.log_to_file:
            return None
        return Path(self.log_directory) / 'stepselect.log'

    def validate(self):
        """Validate tracking configuration."""
        assert self.log_level in ['DEBUG', 'INFO', 'WARNING', 'ERROR'], \
            "log_level must be DEBUG, INFO, WARNING, or ERROR"


# ==============================================================================
# ROOT CONFIGURATION
# ==============================================================================

@dataclass
class StepwiseConfig:
    """Complete stepwise selection configuration.

    This is the root configuration object that consolidates all settings
    for one search. Create an instance and call validate() before use.

    Attributes:
        model: Response, invariant fragment and column selection
        expansion: Power and interaction expansion of candidates
        search: Direction, threshold and round cap
        oracle: Options forwarded to the fitting oracle
        parallel: Round-level parallel evaluation
        tracking: Database and logging configuration

    Example:
        >>> config = StepwiseConfig.from_kwargs(response='y', threshold=4)
        >>> config.validate()
        >>> print(config.summary())
    """
    model: ModelConfig = field(default_factory=ModelConfig)
    expansion: ExpansionConfig = field(default_factory=ExpansionConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)
    parallel: ParallelConfig = field(default_factory=ParallelConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)

    @classmethod
    def from_kwargs(
        cls,
        family: str = 'gaussian',
        invariant: str = '0 + Intercept',
        direction: str = 'forward',
        response: Optional[str] = None,
        holdout_response: Optional[str] = None,
        include: Optional[Sequence[Union[str, int]]] = None,
        power_order: int = 1,
        interaction_order: int = 1,
        threshold: float = 2.0,
        num_threads: int = 1,
        n_workers: int = 1,
        backend: str = 'thread',
        timeout_minutes: Optional[float] = None,
        renderer: str = 'r',
        max_rounds: Optional[int] = None,
        db_path: Optional[str] = None,
        log_level: str = 'INFO',
        fit_options: Optional[Dict[str, Any]] = None
    ) -> 'StepwiseConfig':
        """Build a configuration tree from flat entry-point arguments."""
        return cls(
            model=ModelConfig(
                response=response,
                holdout_response=holdout_response,
                invariant=invariant,
                include=include,
                renderer=renderer
            ),
            expansion=ExpansionConfig(
                power_order=power_order,
                interaction_order=interaction_order
            ),
            search=SearchConfig(
                direction=direction,
                threshold=threshold,
                max_rounds=max_rounds
            ),
            oracle=OracleConfig(
                family=family,
                num_threads=num_threads,
                options=dict(fit_options or {})
            ),
            parallel=ParallelConfig(
                n_workers=n_workers,
                backend=backend,
                timeout_minutes=timeout_minutes
            ),
            tracking=TrackingConfig(db_path=db_path, log_level=log_level)
        )

    def validate(self):
        """Validate entire configuration hierarchy.

        Raises:
            AssertionError: If any configuration parameter is invalid
        """
        self.model.validate()
        self.expansion.validate()
        self.search.validate()
        self.oracle.validate()
        self.parallel.validate()
        self.tracking.validate()

    def summary(self) -> str:
        """Generate a human-readable configuration summary.

        Returns:
            Multi-line string describing key configuration parameters
        """
        lines = [
            "Stepwise Configuration Summary",
            "=" * 50,
            "Model:",
            f"  Response: {self.model.response}",
            f"  Holdout response: {self.model.holdout_column}",
            f"  Invariant: {self.model.invariant}",
            f"  Formula dialect: {self.model.renderer}",
            "",
            "Expansion:",
            f"  Power order: {self.expansion.power_order}",
            f"  Interaction order: {self.expansion.interaction_order}",
            "",
            "Search:",
            f"  Direction: {self.search.direction}",
            f"  Threshold: {self.search.threshold}",
            f"  Max rounds: {self.search.max_rounds}",
            "",
            "Oracle:",
            f"  Family: {self.oracle.family}",
            f"  Threads per fit: {self.oracle.num_threads}",
            "",
            "Parallel Execution:",
            f"  Workers: {self.parallel.n_workers} ({self.parallel.backend})",
            f"  Timeout: {self.parallel.timeout_minutes} minutes",
            ""
        ]
        return "\n".join(lines)
