"""Candidate term expansion.

Turns the base pool of explanatory variables into the full candidate
vocabulary: continuous terms, their powers, interactions among the
power-expanded terms, and finally the factor terms, untouched.
"""

from itertools import combinations
from typing import List, Optional, Sequence

import pandas as pd

from stepselect.core.terms import CandidateVocabulary, VariableTerm
from stepselect.data.validation import factor_mask
from stepselect.exceptions import PreconditionError


MAX_POWER = 4
MAX_INTERACTION = 4


class CandidateExpander:
    """Builds the candidate vocabulary for a search.

    Vocabulary order is deterministic:
    1. continuous terms, in base order
    2. squares, then cubes, then fourth powers (up to power_order)
    3. all pairs, then triples, then 4-way interactions (up to
       interaction_order) of the power-expanded list
    4. factor terms, in base order

    Attributes:
        power_order: Highest power generated (values above 4 act as 4)
        interaction_order: Highest interaction arity (values above 4 act as 4)

    Example:
        >>> expander = CandidateExpander(power_order=2)
        >>> expander.expand(['a', 'b'], ['a', 'b'], [False, False]).names()
        ['a', 'b', 'a^2', 'b^2']
    """

    def __init__(self, power_order: int = 1, interaction_order: int = 1):
        """Initialize the expander.

        Args:
            power_order: Power expansion order (>= 1)
            interaction_order: Interaction expansion order (>= 1)

        Raises:
            PreconditionError: If either order is below 1
        """
        if power_order < 1:
            raise PreconditionError(f"power_order must be >= 1, got {power_order}")
        if interaction_order < 1:
            raise PreconditionError(f"interaction_order must be >= 1, got {interaction_order}")

        self.power_order = int(power_order)
        self.interaction_order = int(interaction_order)

    def expand(
        self,
        continuous: Sequence[str],
        base: Sequence[str],
        is_factor: Sequence[bool]
    ) -> CandidateVocabulary:
        """Expand a base pool into the candidate vocabulary.

        Args:
            continuous: Continuous variable names, in base order
            base: Every base variable name (continuous and factor)
            is_factor: Factor membership flag per base variable

        Returns:
            CandidateVocabulary in deterministic order

        Raises:
            PreconditionError: If flags and base differ in length, names
                repeat, or the interaction order exceeds the number of
                power-expanded terms
        """
        if len(base) != len(is_factor):
            raise PreconditionError(
                f"Got {len(is_factor)} factor flags for {len(base)} base variables"
            )

        terms = [VariableTerm.continuous(name) for name in continuous]
        terms = self._expand_powers(terms)
        terms = terms + self._expand_interactions(terms)

        terms.extend(
            VariableTerm.factor(name)
            for name, flag in zip(base, is_factor) if flag
        )

        try:
            return CandidateVocabulary(terms)
        except ValueError as e:
            raise PreconditionError(str(e)) from e

    def from_frame(
        self,
        data: pd.DataFrame,
        columns: Optional[Sequence[str]] = None
    ) -> CandidateVocabulary:
        """Expand the columns of a DataFrame, detecting factors by dtype."""
        if columns is None:
            columns = list(data.columns)
        flags = factor_mask(data, columns)
        continuous = [name for name, flag in zip(columns, flags) if not flag]
        return self.expand(continuous, list(columns), flags)

    def _expand_powers(self, terms: List[VariableTerm]) -> List[VariableTerm]:
        expanded = list(terms)
        for degree in range(2, min(self.power_order, MAX_POWER) + 1):
            expanded.extend(VariableTerm.power(term, degree) for term in terms)
        return expanded

    def _expand_interactions(self, terms: List[VariableTerm]) -> List[VariableTerm]:
        order = min(self.interaction_order, MAX_INTERACTION)
        if order >= 2 and len(terms) < order:
            raise PreconditionError(
                f"interaction_order={self.interaction_order} needs at least {order} "
                f"expandable terms, got {len(terms)}"
            )

        interactions = []
        for arity in range(2, order + 1):
            interactions.extend(
                VariableTerm.interaction(combo) for combo in combinations(terms, arity)
            )
        return interactions

    def summary(self) -> str:
        """Generate human-readable summary of the expansion settings."""
        return (
            f"Candidate Expander:\n"
            f"  Power order: {self.power_order}\n"
            f"  Interaction order: {self.interaction_order}"
        )


def expand_explanatory_terms(
    continuous: Sequence[str],
    base: Sequence[str],
    is_factor: Sequence[bool],
    power_order: int = 1,
    interaction_order: int = 1
) -> CandidateVocabulary:
    """Functional form of CandidateExpander.expand."""
    expander = CandidateExpander(power_order=power_order, interaction_order=interaction_order)
    return expander.expand(continuous, base, is_factor)
