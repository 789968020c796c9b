"""Mutable search state shared across rounds.

Only the search controller mutates a SelectionState, and only between
rounds, on the coordinating thread.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from stepselect.core.formula import ModelSpec
from stepselect.core.terms import CandidateVocabulary, VariableTerm
from stepselect.search.progress import ProgressTracker


@dataclass
class SelectionState:
    """Terms in and out of the current model, plus the best criterion.

    ``chosen`` holds the terms of the current model and ``remaining`` the
    vocabulary terms outside it; both are kept in vocabulary order and are
    always disjoint complements of each other.

    Attributes:
        vocabulary: Candidate vocabulary the search runs over
        chosen: Terms in the current model
        remaining: Vocabulary terms not in the current model
        best_criterion: Best accepted criterion, None before any acceptance
        round_index: Number of rounds evaluated so far
        converged: Set when a round could not change the model
        progress: Log of accepted rounds
    """
    vocabulary: CandidateVocabulary
    chosen: List[VariableTerm] = field(default_factory=list)
    remaining: List[VariableTerm] = field(default_factory=list)
    best_criterion: Optional[float] = None
    round_index: int = 0
    converged: bool = False
    progress: ProgressTracker = field(default_factory=ProgressTracker)

    @classmethod
    def forward(cls, vocabulary: CandidateVocabulary) -> 'SelectionState':
        """Initial forward state: nothing chosen, everything remaining."""
        return cls(vocabulary=vocabulary, chosen=[], remaining=list(vocabulary))

    @classmethod
    def backward(cls, vocabulary: CandidateVocabulary) -> 'SelectionState':
        """Initial backward state: everything chosen."""
        return cls(vocabulary=vocabulary, chosen=list(vocabulary), remaining=[])

    def add_term(self, term: VariableTerm, criterion: float) -> None:
        """Move ``term`` from remaining to chosen and record the criterion."""
        if term not in self.remaining:
            raise ValueError(f"Term {term.name!r} is not a remaining candidate")
        self.remaining = [t for t in self.remaining if t != term]
        self.chosen.append(term)
        self.best_criterion = criterion

    def drop_term(self, term: VariableTerm, criterion: float) -> None:
        """Move ``term`` from chosen to remaining and record the criterion."""
        if term not in self.chosen:
            raise ValueError(f"Term {term.name!r} is not in the current model")
        self.chosen = [t for t in self.chosen if t != term]
        self.remaining = self.vocabulary.ordered(self.remaining + [term])
        self.best_criterion = criterion

    def keep_all(self, criterion: float) -> None:
        """Record a round won by the unchanged model; the search is over."""
        self.best_criterion = criterion
        self.converged = True

    def spec(self, response: str, invariant: str) -> ModelSpec:
        """Current model as a ModelSpec."""
        return ModelSpec(response, invariant, tuple(self.chosen))

    def check_invariants(self) -> None:
        """Raise AssertionError if chosen/remaining stop being complements."""
        chosen = {t.name for t in self.chosen}
        remaining = {t.name for t in self.remaining}
        assert not chosen & remaining, "chosen and remaining overlap"
        assert chosen | remaining == set(self.vocabulary.names()), \
            "chosen and remaining do not cover the vocabulary"
        assert len(chosen) == len(self.chosen), "duplicate chosen term"
