"""Tagged explanatory terms and the candidate vocabulary.

Terms are structured values rather than formula text, so that including or
excluding a term is a set operation and formula syntax is left to the
renderers in ``stepselect.core.formula``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Tuple


class TermKind(Enum):
    """Kind of an explanatory term."""
    CONTINUOUS = 'continuous'
    POWER = 'power'
    INTERACTION = 'interaction'
    FACTOR = 'factor'


@dataclass(frozen=True)
class VariableTerm:
    """A single candidate term of the model formula.

    Attributes:
        name: Canonical, backend-independent term name ('x', 'x^2', 'a:b')
        kind: TermKind of the term
        degree: Power for power terms, arity for interactions, 1 otherwise
        base: Variable raised by a power term
        components: Member terms of an interaction

    Example:
        >>> a = VariableTerm.continuous('a')
        >>> VariableTerm.power(a, 2).name
        'a^2'
        >>> VariableTerm.interaction([a, VariableTerm.continuous('b')]).name
        'a:b'
    """
    name: str
    kind: TermKind
    degree: int = 1
    base: Optional[str] = None
    components: Tuple['VariableTerm', ...] = ()

    @classmethod
    def continuous(cls, name: str) -> 'VariableTerm':
        return cls(name=name, kind=TermKind.CONTINUOUS)

    @classmethod
    def factor(cls, name: str) -> 'VariableTerm':
        return cls(name=name, kind=TermKind.FACTOR)

    @classmethod
    def power(cls, term: 'VariableTerm', degree: int) -> 'VariableTerm':
        """Raise a continuous term to ``degree``."""
        if term.kind is not TermKind.CONTINUOUS:
            raise ValueError(f"Only continuous terms can be raised to a power, got {term.kind.value}")
        if degree < 2:
            raise ValueError(f"Power degree must be >= 2, got {degree}")
        return cls(
            name=f"{term.name}^{degree}",
            kind=TermKind.POWER,
            degree=degree,
            base=term.name
        )

    @classmethod
    def interaction(cls, terms: Sequence['VariableTerm']) -> 'VariableTerm':
        """Combine two or more terms into an interaction term."""
        terms = tuple(terms)
        if len(terms) < 2:
            raise ValueError(f"An interaction needs at least two terms, got {len(terms)}")
        return cls(
            name=':'.join(term.name for term in terms),
            kind=TermKind.INTERACTION,
            degree=len(terms),
            components=terms
        )

    def __str__(self) -> str:
        return self.name


class CandidateVocabulary:
    """Ordered, immutable collection of uniquely named candidate terms.

    Order is significant: it is the order in which candidates are evaluated
    and the order used to break exact criterion ties.
    """

    def __init__(self, terms: Sequence[VariableTerm]):
        self._terms: Tuple[VariableTerm, ...] = tuple(terms)
        self._index: Dict[str, int] = {}
        for position, term in enumerate(self._terms):
            if term.name in self._index:
                raise ValueError(f"Duplicate term name in vocabulary: {term.name!r}")
            self._index[term.name] = position

    def __len__(self) -> int:
        return len(self._terms)

    def __iter__(self) -> Iterator[VariableTerm]:
        return iter(self._terms)

    def __getitem__(self, position: int) -> VariableTerm:
        return self._terms[position]

    def __contains__(self, item) -> bool:
        if isinstance(item, VariableTerm):
            return self._index.get(item.name) is not None and self._terms[self._index[item.name]] == item
        return item in self._index

    def __eq__(self, other) -> bool:
        if not isinstance(other, CandidateVocabulary):
            return NotImplemented
        return self._terms == other._terms

    def __repr__(self) -> str:
        return f"CandidateVocabulary({list(self.names())!r})"

    @property
    def terms(self) -> Tuple[VariableTerm, ...]:
        return self._terms

    def names(self) -> List[str]:
        return [term.name for term in self._terms]

    def get(self, name: str) -> VariableTerm:
        """Look up a term by its canonical name."""
        return self._terms[self._index[name]]

    def position(self, term: VariableTerm) -> int:
        return self._index[term.name]

    def by_kind(self, kind: TermKind) -> List[VariableTerm]:
        return [term for term in self._terms if term.kind is kind]

    def ordered(self, terms) -> List[VariableTerm]:
        """Return ``terms`` sorted into vocabulary order."""
        return sorted(terms, key=self.position)
