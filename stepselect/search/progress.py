"""Progress tracking and the final result bundle.

The tracker is an append-only log with one record per accepted round.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

import pandas as pd

from stepselect.core.formula import FormulaRenderer, ModelSpec


PROGRESS_COLUMNS = ['round', 'term', 'criterion', 'rmse', 'sum_log_cpo', 'action']


@dataclass(frozen=True)
class ProgressRecord:
    """One accepted round.

    Attributes:
        round_index: Round number (1-based)
        term: Term the round accepted ('<none>' when the full model was kept)
        criterion: WAIC of the accepted model
        rmse: Holdout RMSE of the accepted model
        sum_log_cpo: Summed log CPO of the accepted model
        action: 'add' (forward), 'drop' (backward) or 'keep' (backward,
            the full model won)
    """
    round_index: int
    term: str
    criterion: float
    rmse: float
    sum_log_cpo: float
    action: str

    def as_row(self) -> Dict[str, Any]:
        return {
            'round': self.round_index,
            'term': self.term,
            'criterion': self.criterion,
            'rmse': self.rmse,
            'sum_log_cpo': self.sum_log_cpo,
            'action': self.action,
        }


@dataclass
class StepwiseResult:
    """Outcome of a stepwise search.

    Attributes:
        best_formula: Accepted model rendered as formula text
        best_spec: Accepted model as a ModelSpec
        best_criterion: Best accepted WAIC (final fit WAIC if no round
            was accepted)
        progress: Accepted rounds, in acceptance order
        best_model: Raw oracle result of the final fit
        best_evaluation: EvaluationResult of the final fit
        direction: 'forward' or 'backward'
        search_id: Identifier used in the tracking database
        n_rounds: Number of rounds evaluated
    """
    best_formula: str
    best_spec: ModelSpec
    best_criterion: Optional[float]
    progress: Tuple[ProgressRecord, ...]
    best_model: Any
    best_evaluation: Any = None
    direction: str = 'forward'
    search_id: Optional[str] = None
    n_rounds: int = 0

    @property
    def progress_history(self) -> Tuple[ProgressRecord, ...]:
        return self.progress

    @property
    def best_fitted_model(self) -> Any:
        return self.best_model

    @property
    def selected_terms(self) -> List[str]:
        return [term.name for term in self.best_spec.terms]

    def as_dict(self) -> Dict[str, Any]:
        return {
            'best_formula': self.best_formula,
            'best_criterion': self.best_criterion,
            'progress_history': list(self.progress),
            'best_fitted_model': self.best_model,
        }

    def progress_frame(self) -> pd.DataFrame:
        return pd.DataFrame([record.as_row() for record in self.progress], columns=PROGRESS_COLUMNS)

    def summary(self) -> str:
        """Generate a human-readable summary of the search outcome."""
        lines = [
            "Stepwise Selection Result",
            "=" * 50,
            f"Direction: {self.direction}",
            f"Rounds evaluated: {self.n_rounds}",
            f"Best formula: {self.best_formula}",
            f"Best WAIC: {self.best_criterion}",
            "",
            "Progress:",
        ]
        if not self.progress:
            lines.append("  (no round accepted)")
        for record in self.progress:
            lines.append(
                f"  {record.round_index:3d}  {record.action:4s}  {record.term:30s}  "
                f"WAIC={record.criterion:.4f}  RMSE={record.rmse:.4f}"
            )
        return "\n".join(lines)


class ProgressTracker:
    """Append-only log of accepted rounds."""

    def __init__(self):
        self._records: List[ProgressRecord] = []

    def append(self, record: ProgressRecord) -> None:
        self._records.append(record)

    def record(
        self,
        round_index: int,
        evaluation,
        action: str
    ) -> ProgressRecord:
        """Append a record built from a winning EvaluationResult."""
        record = ProgressRecord(
            round_index=round_index,
            term=evaluation.term,
            criterion=evaluation.criterion,
            rmse=evaluation.rmse,
            sum_log_cpo=evaluation.sum_log_cpo,
            action=action
        )
        self.append(record)
        return record

    @property
    def history(self) -> Tuple[ProgressRecord, ...]:
        return tuple(self._records)

    @property
    def latest(self) -> Optional[ProgressRecord]:
        return self._records[-1] if self._records else None

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ProgressRecord]:
        return iter(tuple(self._records))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([record.as_row() for record in self._records], columns=PROGRESS_COLUMNS)

    def build_result(
        self,
        spec: ModelSpec,
        renderer: FormulaRenderer,
        best_criterion: Optional[float],
        final_evaluation,
        direction: str,
        search_id: Optional[str] = None,
        n_rounds: int = 0
    ) -> StepwiseResult:
        """Assemble the final result bundle.

        When no round was accepted, the final fit's criterion stands in
        for the best criterion.
        """
        if best_criterion is None and final_evaluation is not None:
            best_criterion = final_evaluation.criterion

        return StepwiseResult(
            best_formula=renderer.render(spec),
            best_spec=spec,
            best_criterion=best_criterion,
            progress=self.history,
            best_model=final_evaluation.fit if final_evaluation is not None else None,
            best_evaluation=final_evaluation,
            direction=direction,
            search_id=search_id,
            n_rounds=n_rounds
        )
