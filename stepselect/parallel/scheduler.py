"""Round scheduling for candidate evaluation.

This module turns the legal moves of a search round into evaluation
jobs and summarizes prepared rounds.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from stepselect.core.formula import ModelSpec
from stepselect.core.terms import VariableTerm


ACTIONS = ('add', 'drop', 'keep')


@dataclass(frozen=True)
class RoundJob:
    """One candidate model to evaluate within a round.

    Attributes:
        job_id: Position of the job in its round (tie-break order)
        round_index: Round the job belongs to
        label: Identifier reported for the move
        spec: Model to fit
        term: Term added or dropped by the move (None for 'keep')
        action: 'add', 'drop' or 'keep'
    """
    job_id: int
    round_index: int
    label: str
    spec: ModelSpec
    term: Optional[VariableTerm]
    action: str


def prepare_round_jobs(
    round_index: int,
    moves: Iterable[Tuple[str, ModelSpec, Optional[VariableTerm], str]]
) -> List[RoundJob]:
    """Prepare the evaluation jobs of one round.

    Parameters
    ----------
    round_index : int
        Round number.
    moves : iterable of tuple
        (label, spec, term, action) for every legal move, in the order
        used to break criterion ties.

    Returns
    -------
    jobs : list of RoundJob
        One job per move, numbered from 0 in move order.

    Raises
    ------
    ValueError
        If a move has an unknown action.
    """
    jobs = []
    for job_id, (label, spec, term, action) in enumerate(moves):
        if action not in ACTIONS:
            raise ValueError(f"Unknown move action: {action!r}")
        jobs.append(RoundJob(
            job_id=job_id,
            round_index=round_index,
            label=label,
            spec=spec,
            term=term,
            action=action
        ))
    return jobs


def get_round_info(jobs: List[RoundJob]) -> dict:
    """Get summary information about a prepared round.

    Parameters
    ----------
    jobs : list of RoundJob
        Prepared round jobs.

    Returns
    -------
    info : dict
        Dictionary with round statistics.
    """
    if not jobs:
        return {
            'n_jobs': 0,
            'round_index': None,
            'action_counts': {},
            'max_terms': 0
        }

    action_counts: Dict[str, int] = {}
    for job in jobs:
        action_counts[job.action] = action_counts.get(job.action, 0) + 1

    return {
        'n_jobs': len(jobs),
        'round_index': jobs[0].round_index,
        'action_counts': action_counts,
        'max_terms': max(len(job.spec) for job in jobs)
    }
