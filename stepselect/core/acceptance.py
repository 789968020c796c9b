"""Threshold acceptance criterion for greedy stepwise search.

Implements the acceptance logic that decides whether the best move of a
round improves the model enough for the search to take it and continue.
"""

import math
from typing import Optional, Tuple


class ThresholdAcceptance:
    """Threshold-based acceptance decision logic.

    A round is accepted when the information-criterion improvement over the
    best criterion so far strictly exceeds the threshold. Lower criterion
    values are better.

    Before any round has been accepted there is no best criterion; the
    improvement is then taken to be infinite, so the first round is
    accepted for every finite threshold and rejected for ``threshold=inf``.

    Attributes:
        threshold: Minimum improvement required (strict inequality)

    Example:
        >>> criterion = ThresholdAcceptance(threshold=2.0)
        >>> accept, reason = criterion.should_accept(
        ...     best_criterion=100.0,
        ...     candidate_criterion=95.0
        ... )
        >>> if accept:
        ...     print(f"Accepted: {reason}")
    """

    def __init__(self, threshold: float = 2.0):
        """Initialize the acceptance criterion.

        Args:
            threshold: Minimum criterion improvement to accept a round

        Raises:
            ValueError: If threshold is NaN
        """
        threshold = float(threshold)
        if math.isnan(threshold):
            raise ValueError("Threshold must not be NaN")

        self.threshold = threshold

    def improvement(
        self,
        best_criterion: Optional[float],
        candidate_criterion: float
    ) -> float:
        """Criterion improvement of a candidate over the best so far.

        Returns:
            ``best_criterion - candidate_criterion``, or ``inf`` when no
            best criterion exists yet
        """
        if best_criterion is None:
            return math.inf
        return best_criterion - candidate_criterion

    def should_accept(
        self,
        best_criterion: Optional[float],
        candidate_criterion: float
    ) -> Tuple[bool, str]:
        """Decide whether to accept the best move of a round.

        Args:
            best_criterion: Best accepted criterion so far, or None
            candidate_criterion: Lowest criterion of the current round

        Returns:
            Tuple of (accept: bool, reason: str)
            - accept: True if the search should take the move
            - reason: Human-readable explanation of decision

        Example:
            >>> accept, reason = criterion.should_accept(100.0, 99.0)
            >>> print(reason)
            'Insufficient: improvement 1.0000 <= threshold 2.0000'
        """
        if candidate_criterion is None or math.isnan(candidate_criterion):
            return False, "Undefined: round produced no finite criterion"

        delta = self.improvement(best_criterion, candidate_criterion)

        if delta > self.threshold:
            if best_criterion is None:
                return True, f"Initial: first round criterion {candidate_criterion:.4f}"
            return True, (
                f"Improvement: {best_criterion:.4f} -> {candidate_criterion:.4f} "
                f"({delta:.4f} > {self.threshold:.4f})"
            )

        if best_criterion is None:
            return False, f"Rejected: threshold {self.threshold} admits no round"
        return False, (
            f"Insufficient: improvement {delta:.4f} <= threshold {self.threshold:.4f}"
        )

    def set_threshold(self, threshold: float):
        """Update the acceptance threshold.

        Raises:
            ValueError: If threshold is NaN
        """
        threshold = float(threshold)
        if math.isnan(threshold):
            raise ValueError("Threshold must not be NaN")

        self.threshold = threshold

    def summary(self) -> str:
        """Generate human-readable summary of current state.

        Returns:
            Multi-line string describing acceptance criterion state
        """
        return (
            f"Acceptance Criterion:\n"
            f"  Threshold: {self.threshold}\n"
            f"  Behavior:\n"
            f"    - Accepts a round when best - candidate > {self.threshold}\n"
            f"    - First round compares against an infinite improvement\n"
            f"    - Lower criterion = better model"
        )
