"""Greedy stepwise search loop.

Each round enumerates the legal moves from the current model, evaluates
them (possibly in parallel), picks the lowest criterion and asks the
acceptance rule whether to take the move. The first rejected round ends
the search.
"""

import logging
import math
from typing import List, Optional, Tuple

from stepselect.config import ParallelConfig
from stepselect.core.acceptance import ThresholdAcceptance
from stepselect.core.terms import CandidateVocabulary
from stepselect.parallel.scheduler import RoundJob, get_round_info, prepare_round_jobs
from stepselect.parallel.worker import evaluate_round_parallel
from stepselect.search.state import SelectionState
from stepselect.tracking.logger import log_evaluation, log_round, log_warning

# Label of the backward move that keeps the current model unchanged
KEEP_LABEL = '<none>'


def select_best(results: List) -> Optional[int]:
    """Index of the lowest-criterion result.

    NaN criteria are ignored and exact ties go to the earliest result.
    Returns None when no result has a defined criterion.
    """
    best_index = None
    best_value = None
    for index, result in enumerate(results):
        value = result.criterion
        if value is None or math.isnan(value):
            continue
        if best_value is None or value < best_value:
            best_index = index
            best_value = value
    return best_index


class SearchController:
    """Runs forward or backward stepwise selection over a vocabulary.

    The controller owns the SelectionState; candidates are evaluated
    through the worker pool, but every state update happens here, between
    rounds.

    Example:
        >>> controller = SearchController(evaluator, ThresholdAcceptance(2.0),
        ...                               'forward', 'y', '0 + Intercept')
        >>> state = controller.run(vocabulary)
        >>> [term.name for term in state.chosen]
    """

    def __init__(
        self,
        evaluator,
        acceptance: ThresholdAcceptance,
        direction: str,
        response: str,
        invariant: str,
        parallel_config: Optional[ParallelConfig] = None,
        logger: Optional[logging.Logger] = None,
        database=None,
        search_id: Optional[str] = None,
        max_rounds: Optional[int] = None
    ):
        """Initialize the controller.

        Args:
            evaluator: ModelEvaluator used for every candidate
            acceptance: Acceptance rule applied to each round's winner
            direction: 'forward' or 'backward'
            response: Response column name
            invariant: Formula fragment kept in every model
            parallel_config: Round-level parallelism (sequential by default)
            logger: Logger instance
            database: Optional StepwiseDatabase for round/evaluation rows
            search_id: Search identifier used in the database
            max_rounds: Optional cap on the number of rounds

        Raises:
            ValueError: If direction is not 'forward' or 'backward'
        """
        if direction not in ('forward', 'backward'):
            raise ValueError(f"direction must be 'forward' or 'backward', got {direction!r}")

        self.evaluator = evaluator
        self.acceptance = acceptance
        self.direction = direction
        self.response = response
        self.invariant = invariant
        self.parallel_config = parallel_config or ParallelConfig()
        self.logger = logger or logging.getLogger('stepselect')
        self.database = database
        self.search_id = search_id
        self.max_rounds = max_rounds

    def initial_state(self, vocabulary: CandidateVocabulary) -> SelectionState:
        if self.direction == 'forward':
            return SelectionState.forward(vocabulary)
        return SelectionState.backward(vocabulary)

    def candidate_moves(self, state: SelectionState) -> List[Tuple]:
        """Legal moves from the current model as (label, spec, term, action).

        Forward: add each remaining term. Backward: drop each chosen term,
        then keep the model unchanged (labelled KEEP_LABEL). No moves once
        forward has nothing left to add or backward has nothing left to drop.
        """
        current = state.spec(self.response, self.invariant)

        if self.direction == 'forward':
            return [
                (term.name, current.with_term(term), term, 'add')
                for term in state.remaining
            ]

        if not state.chosen:
            return []
        moves = [
            (term.name, current.without_term(term), term, 'drop')
            for term in state.vocabulary.ordered(state.chosen)
        ]
        moves.append((KEEP_LABEL, current, None, 'keep'))
        return moves

    def run(self, vocabulary: CandidateVocabulary) -> SelectionState:
        """Run the search to termination.

        Returns:
            Final SelectionState (chosen terms, best criterion, progress)

        Raises:
            OracleError: If any candidate fit fails
        """
        state = self.initial_state(vocabulary)
        self.logger.info(
            f"Starting {self.direction} search over {len(vocabulary)} candidate terms "
            f"(threshold={self.acceptance.threshold})"
        )

        while True:
            if self.max_rounds is not None and state.round_index >= self.max_rounds:
                self.logger.info(f"Reached max_rounds={self.max_rounds}, stopping")
                break

            moves = self.candidate_moves(state)
            if not moves:
                self.logger.info("No candidate moves left, stopping")
                break

            state.round_index += 1
            accepted = self.run_round(state, prepare_round_jobs(state.round_index, moves))
            if not accepted or state.converged:
                break

        state.check_invariants()
        self.logger.info(
            f"Search finished after {state.round_index} rounds with "
            f"{len(state.chosen)} terms: {[term.name for term in state.chosen]}"
        )
        return state

    def run_round(self, state: SelectionState, jobs: List[RoundJob]) -> bool:
        """Evaluate one round and apply its winning move if accepted.

        Returns:
            True if the round was accepted
        """
        round_index = state.round_index
        info = get_round_info(jobs)
        self.logger.info(
            f"Round {round_index}: evaluating {info['n_jobs']} candidates "
            f"({len(state.chosen)} terms in model)"
        )

        results = evaluate_round_parallel(
            self.evaluator,
            jobs,
            max_workers=self.parallel_config.n_workers,
            backend=self.parallel_config.backend,
            timeout_seconds=self.parallel_config.timeout_seconds,
            logger=self.logger
        )
        for result in results:
            log_evaluation(self.logger, result)
        if self.database is not None:
            self.database.insert_evaluations(self.search_id, round_index, results)

        best_index = select_best(results)
        if best_index is None:
            reason = "Undefined: every candidate returned an undefined criterion"
            log_warning(self.logger, f"Round {round_index}: {reason}")
            self._record_round(state, round_index, None, None, None, False, reason, len(jobs))
            return False

        job = jobs[best_index]
        result = results[best_index]
        accept, reason = self.acceptance.should_accept(state.best_criterion, result.criterion)
        improvement = self.acceptance.improvement(state.best_criterion, result.criterion)

        log_round(
            self.logger, round_index, accept, job.label, result.criterion, reason,
            metrics={
                'n_candidates': len(jobs),
                'rmse': result.rmse,
                'sum_log_cpo': result.sum_log_cpo
            }
        )
        self._record_round(
            state, round_index, job.label, result.criterion, improvement,
            accept, reason, len(jobs)
        )

        if not accept:
            return False

        if job.action == 'add':
            state.add_term(job.term, result.criterion)
        elif job.action == 'drop':
            state.drop_term(job.term, result.criterion)
        else:
            state.keep_all(result.criterion)
            self.logger.info(f"Round {round_index}: full model kept, search converged")
        state.progress.record(round_index, result, job.action)
        return True

    def _record_round(self, state, round_index, winner, criterion, improvement,
                      accepted, reason, n_candidates):
        if self.database is None:
            return
        self.database.insert_round({
            'search_id': self.search_id,
            'round_num': round_index,
            'winner': winner,
            'criterion': criterion,
            'improvement': improvement,
            'accepted': accepted,
            'reason': reason,
            'n_candidates': n_candidates,
            'n_terms': len(state.chosen)
        })
