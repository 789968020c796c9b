"""Model specifications and formula rendering.

A ModelSpec is the structured form of a model: the response, the invariant
fragment held fixed for the whole search, and the included terms. Renderers
turn a ModelSpec into formula text for a particular fitting backend.
"""

from dataclasses import dataclass
from typing import Iterable, Tuple

from stepselect.core.terms import TermKind, VariableTerm


@dataclass(frozen=True, eq=False)
class ModelSpec:
    """A candidate model: response ~ invariant + terms.

    Two specs are equal when they include the same set of terms; term
    order only affects rendering.

    Attributes:
        response: Response column name
        invariant: Formula fragment present in every model, never altered
        terms: Included terms, in rendering order
    """
    response: str
    invariant: str
    terms: Tuple[VariableTerm, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'terms', tuple(self.terms))

    @property
    def term_set(self) -> frozenset:
        return frozenset(self.terms)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ModelSpec):
            return NotImplemented
        return self.term_set == other.term_set

    def __hash__(self) -> int:
        return hash(self.term_set)

    def __len__(self) -> int:
        return len(self.terms)

    def __contains__(self, term: VariableTerm) -> bool:
        return term in self.term_set

    def with_term(self, term: VariableTerm) -> 'ModelSpec':
        """Spec with ``term`` appended (no-op if already included)."""
        if term in self.term_set:
            return self
        return ModelSpec(self.response, self.invariant, self.terms + (term,))

    def without_term(self, term: VariableTerm) -> 'ModelSpec':
        """Spec with ``term`` removed by set difference."""
        return ModelSpec(
            self.response,
            self.invariant,
            tuple(t for t in self.terms if t != term)
        )

    def with_terms(self, terms: Iterable[VariableTerm]) -> 'ModelSpec':
        return ModelSpec(self.response, self.invariant, tuple(terms))

    def label(self) -> str:
        """Identifier of the included terms, joined with '+'."""
        return '+'.join(term.name for term in self.terms)


class FormulaRenderer:
    """Renders terms and specs as formula text.

    Subclasses override the per-kind hooks; the layout of the formula
    (``response ~ invariant + t1 + t2``) is shared.
    """

    name = 'base'

    def render_term(self, term: VariableTerm) -> str:
        if term.kind is TermKind.POWER:
            return self.render_power(term.base, term.degree)
        if term.kind is TermKind.INTERACTION:
            return ':'.join(self.render_term(component) for component in term.components)
        if term.kind is TermKind.FACTOR:
            return self.render_factor(term.name)
        return term.name

    def render_power(self, base: str, degree: int) -> str:
        raise NotImplementedError

    def render_factor(self, name: str) -> str:
        return name

    def render_rhs(self, spec: ModelSpec) -> str:
        parts = []
        if spec.invariant.strip():
            parts.append(spec.invariant.strip())
        parts.extend(self.render_term(term) for term in spec.terms)
        if not parts:
            return '1'
        return ' + '.join(parts)

    def render(self, spec: ModelSpec) -> str:
        return f"{spec.response} ~ {self.render_rhs(spec)}"


class RFormulaRenderer(FormulaRenderer):
    """R / INLA formula dialect: ``y ~ 0 + Intercept + x + I(x^2) + a:b``."""

    name = 'r'

    def render_power(self, base: str, degree: int) -> str:
        return f"I({base}^{degree})"


class PatsyFormulaRenderer(FormulaRenderer):
    """patsy / statsmodels dialect: ``y ~ x + I(x ** 2) + C(f)``."""

    name = 'patsy'

    def render_power(self, base: str, degree: int) -> str:
        return f"I({base} ** {degree})"

    def render_factor(self, name: str) -> str:
        return f"C({name})"


RENDERERS = {
    'r': RFormulaRenderer,
    'patsy': PatsyFormulaRenderer,
}


def get_renderer(name: str) -> FormulaRenderer:
    """Instantiate the renderer registered under ``name``."""
    try:
        return RENDERERS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown formula renderer: {name!r} (expected one of {sorted(RENDERERS)})"
        ) from None
