"""Core stepwise selection abstractions.

This subpackage provides clean, testable implementations of the core
search concepts:
- Candidate terms and the ordered vocabulary
- Model specifications and formula rendering
- Candidate expansion (powers and interactions)
- Threshold acceptance of a round's best move
"""

from stepselect.core.terms import CandidateVocabulary, TermKind, VariableTerm
from stepselect.core.formula import (
    FormulaRenderer,
    ModelSpec,
    PatsyFormulaRenderer,
    RFormulaRenderer,
    get_renderer
)
from stepselect.core.expansion import CandidateExpander, expand_explanatory_terms
from stepselect.core.acceptance import ThresholdAcceptance

__all__ = [
    'CandidateVocabulary',
    'TermKind',
    'VariableTerm',
    'FormulaRenderer',
    'ModelSpec',
    'PatsyFormulaRenderer',
    'RFormulaRenderer',
    'get_renderer',
    'CandidateExpander',
    'expand_explanatory_terms',
    'ThresholdAcceptance'
]
