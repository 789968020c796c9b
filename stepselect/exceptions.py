"""Exception types raised by the stepwise selection system.

Two families of failure are distinguished:
- Precondition violations, raised eagerly before any model is fit
- Oracle failures, raised while a candidate model is being fit

Both are fatal to the search call that raised them.
"""

from typing import Optional


class StepwiseError(Exception):
    """Base class for all stepwise selection errors."""


class PreconditionError(StepwiseError, ValueError):
    """Invalid input detected before fitting started."""


class OracleError(StepwiseError, RuntimeError):
    """The fitting oracle failed to produce a usable result.

    Attributes:
        formula: Formula text that was being fit, if known
        term: Candidate term identifier being evaluated, if known
    """

    def __init__(
        self,
        message: str,
        formula: Optional[str] = None,
        term: Optional[str] = None
    ):
        super().__init__(message)
        self.formula = formula
        self.term = term


class EvaluationTimeoutError(OracleError):
    """A round of candidate evaluations exceeded its time budget."""
