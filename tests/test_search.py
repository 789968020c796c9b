"""Unit tests for the search loop, selection state and progress tracking.

Scenarios use a scripted oracle that maps the set of terms in a formula
to a WAIC.
"""

import unittest
import sys
import math
import logging
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from scripted_oracle import ScriptedOracle, make_dataset
from stepselect.config import ParallelConfig
from stepselect.core import (
    CandidateVocabulary,
    ModelSpec,
    RFormulaRenderer,
    ThresholdAcceptance,
    VariableTerm
)
from stepselect.exceptions import OracleError
from stepselect.oracle import EvaluationResult, ModelEvaluator
from stepselect.search import (
    KEEP_LABEL,
    PROGRESS_COLUMNS,
    ProgressTracker,
    SearchController,
    SelectionState,
    select_best
)


def vocabulary_of(*names):
    return CandidateVocabulary([VariableTerm.continuous(name) for name in names])


def result(term, criterion):
    return EvaluationResult(term=term, criterion=criterion, rmse=1.0, sum_log_cpo=-5.0)


class TestSelectionState(unittest.TestCase):
    """Test SelectionState moves and invariants."""

    def setUp(self):
        self.vocabulary = vocabulary_of('a', 'b', 'c')
        self.a, self.b, self.c = list(self.vocabulary)

    def test_forward_start(self):
        """Test forward starts with nothing chosen."""
        state = SelectionState.forward(self.vocabulary)

        self.assertEqual(state.chosen, [])
        self.assertEqual(state.remaining, [self.a, self.b, self.c])
        self.assertIsNone(state.best_criterion)
        state.check_invariants()

    def test_add_term(self):
        """Test adding moves a term from remaining to chosen."""
        state = SelectionState.forward(self.vocabulary)
        state.add_term(self.b, 50.0)

        self.assertEqual(state.chosen, [self.b])
        self.assertEqual(state.remaining, [self.a, self.c])
        self.assertEqual(state.best_criterion, 50.0)
        state.check_invariants()

    def test_drop_term_keeps_vocabulary_order(self):
        """Test dropped terms return to remaining in vocabulary order."""
        state = SelectionState.backward(self.vocabulary)
        state.drop_term(self.c, 40.0)
        state.drop_term(self.a, 30.0)

        self.assertEqual(state.chosen, [self.b])
        self.assertEqual(state.remaining, [self.a, self.c])
        state.check_invariants()

    def test_invalid_moves(self):
        """Test adding a chosen term or dropping an absent one."""
        state = SelectionState.forward(self.vocabulary)
        with self.assertRaises(ValueError):
            state.drop_term(self.a, 1.0)
        state.add_term(self.a, 1.0)
        with self.assertRaises(ValueError):
            state.add_term(self.a, 1.0)

    def test_spec(self):
        """Test the current model as a ModelSpec."""
        state = SelectionState.backward(self.vocabulary)
        spec = state.spec('y', '0 + Intercept')
        self.assertEqual(spec.label(), 'a+b+c')


class TestProgressTracker(unittest.TestCase):
    """Test ProgressTracker functionality."""

    def test_append_only_history(self):
        """Test records accumulate in order and history is a copy."""
        tracker = ProgressTracker()
        tracker.record(1, result('a', 95.0), 'add')
        tracker.record(2, result('b', 80.0), 'add')

        history = tracker.history
        self.assertIsInstance(history, tuple)
        self.assertEqual([r.criterion for r in history], [95.0, 80.0])
        self.assertEqual(tracker.latest.term, 'b')
        self.assertEqual(len(tracker), 2)

    def test_to_frame(self):
        """Test the DataFrame view."""
        tracker = ProgressTracker()
        tracker.record(1, result('a', 95.0), 'add')
        frame = tracker.to_frame()

        self.assertEqual(list(frame.columns), PROGRESS_COLUMNS)
        self.assertEqual(frame.loc[0, 'term'], 'a')

    def test_empty_frame(self):
        """Test an empty tracker gives an empty frame with columns."""
        self.assertEqual(list(ProgressTracker().to_frame().columns), PROGRESS_COLUMNS)

    def test_build_result_falls_back_to_final_fit(self):
        """Test best criterion falls back to the final fit."""
        tracker = ProgressTracker()
        spec = ModelSpec('y', '0 + Intercept')
        final = result('', 120.0)

        built = tracker.build_result(spec, RFormulaRenderer(), None, final, 'forward')

        self.assertEqual(built.best_criterion, 120.0)
        self.assertEqual(built.best_formula, 'y ~ 0 + Intercept')
        self.assertEqual(built.progress_history, ())


class TestSelectBest(unittest.TestCase):
    """Test round winner selection."""

    def test_lowest_wins(self):
        self.assertEqual(select_best([result('a', 3.0), result('b', 1.0), result('c', 2.0)]), 1)

    def test_ties_go_to_first(self):
        """Test exact ties are broken by candidate order."""
        self.assertEqual(select_best([result('a', 5.0), result('b', 1.0), result('c', 1.0)]), 1)

    def test_nan_ignored(self):
        """Test undefined criteria never win."""
        self.assertEqual(select_best([result('a', float('nan')), result('b', 7.0)]), 1)

    def test_all_nan(self):
        """Test a round with no defined criterion has no winner."""
        self.assertIsNone(select_best([result('a', float('nan'))]))


class SearchTestCase(unittest.TestCase):
    """Shared fixture for controller scenarios."""

    def make_controller(self, table, names, direction='forward', threshold=2.0,
                        default=1000.0, **kwargs):
        data, stack = make_dataset(n=10, columns=names)
        self.oracle = ScriptedOracle(table, default=default, **kwargs.pop('oracle_kwargs', {}))
        evaluator = ModelEvaluator(self.oracle, stack, data['y'].values)
        self.vocabulary = vocabulary_of(*names)
        return SearchController(
            evaluator,
            ThresholdAcceptance(threshold),
            direction,
            'y',
            '0 + Intercept',
            logger=logging.getLogger('stepselect.test'),
            **kwargs
        )


class TestForwardSearch(SearchTestCase):
    """Test forward selection scenarios."""

    def test_two_variable_scenario(self):
        """Test x2 then x1 are added with criteria 95 then 80."""
        table = {('x1',): 100.0, ('x2',): 95.0, ('x1', 'x2'): 80.0}
        controller = self.make_controller(table, ('x1', 'x2'))

        state = controller.run(self.vocabulary)

        self.assertEqual([t.name for t in state.chosen], ['x2', 'x1'])
        self.assertEqual([r.criterion for r in state.progress], [95.0, 80.0])
        self.assertEqual([r.action for r in state.progress], ['add', 'add'])
        self.assertEqual(state.best_criterion, 80.0)
        self.assertEqual(state.remaining, [])
        self.assertEqual(state.round_index, 2)

    def test_stops_on_insufficient_improvement(self):
        """Test the search stops when the best move gains too little."""
        table = {('a',): 50.0, ('b',): 60.0, ('c',): 70.0,
                 ('a', 'b'): 49.0, ('a', 'c'): 48.5}
        controller = self.make_controller(table, ('a', 'b', 'c'))

        state = controller.run(self.vocabulary)

        self.assertEqual([t.name for t in state.chosen], ['a'])
        self.assertEqual(state.best_criterion, 50.0)
        self.assertEqual(len(state.progress), 1)
        self.assertEqual(state.round_index, 2)

    def test_round_evaluates_every_remaining_term(self):
        """Test each round fits chosen plus one remaining term."""
        table = {('a',): 50.0}
        controller = self.make_controller(table, ('a', 'b', 'c'))
        controller.run(self.vocabulary)

        self.assertEqual(self.oracle.formulas, [
            'y ~ 0 + Intercept + a',
            'y ~ 0 + Intercept + b',
            'y ~ 0 + Intercept + c',
            'y ~ 0 + Intercept + a + b',
            'y ~ 0 + Intercept + a + c',
        ])

    def test_infinite_threshold_accepts_nothing(self):
        """Test threshold=inf leaves the model empty."""
        table = {('a',): 1.0, ('b',): 2.0}
        controller = self.make_controller(table, ('a', 'b'), threshold=math.inf)

        state = controller.run(self.vocabulary)

        self.assertEqual(state.chosen, [])
        self.assertIsNone(state.best_criterion)
        self.assertEqual(len(state.progress), 0)
        self.assertEqual(state.round_index, 1)

    def test_tie_break_by_vocabulary_order(self):
        """Test the earlier term wins an exact tie."""
        table = {('a',): 50.0, ('b',): 40.0, ('c',): 40.0}
        controller = self.make_controller(table, ('a', 'b', 'c'))

        state = controller.run(self.vocabulary)

        self.assertEqual(state.chosen[0].name, 'b')

    def test_all_nan_round_ends_search(self):
        """Test a round without any defined criterion is rejected."""
        controller = self.make_controller({}, ('a', 'b'), default=float('nan'))

        with self.assertLogs('stepselect.test', level='WARNING'):
            state = controller.run(self.vocabulary)

        self.assertEqual(state.chosen, [])
        self.assertEqual(len(state.progress), 0)

    def test_max_rounds(self):
        """Test the round cap ends the search."""
        table = {('a',): 50.0, ('a', 'b'): 40.0, ('a', 'b', 'c'): 30.0}
        controller = self.make_controller(table, ('a', 'b', 'c'), max_rounds=2)

        state = controller.run(self.vocabulary)

        self.assertEqual([t.name for t in state.chosen], ['a', 'b'])
        self.assertEqual(state.round_index, 2)

    def test_threaded_rounds_match_sequential(self):
        """Test parallel evaluation gives the same selection."""
        table = {('x1',): 100.0, ('x2',): 95.0, ('x1', 'x2'): 80.0}
        controller = self.make_controller(
            table, ('x1', 'x2'), parallel_config=ParallelConfig(n_workers=3)
        )

        state = controller.run(self.vocabulary)

        self.assertEqual([t.name for t in state.chosen], ['x2', 'x1'])

    def test_oracle_failure_propagates(self):
        """Test a failing fit aborts the search."""
        controller = self.make_controller(
            {('a',): 10.0}, ('a', 'b'), oracle_kwargs={'fail_on': [('a', 'b')]}
        )
        with self.assertRaises(OracleError):
            controller.run(self.vocabulary)

    def test_empty_vocabulary(self):
        """Test nothing to add means no rounds."""
        controller = self.make_controller({}, ())
        state = controller.run(CandidateVocabulary([]))

        self.assertEqual(state.round_index, 0)
        self.assertEqual(self.oracle.calls, [])

    def test_invalid_direction(self):
        with self.assertRaises(ValueError):
            self.make_controller({}, ('a',), direction='sideways')


class TestBackwardSearch(SearchTestCase):
    """Test backward elimination scenarios."""

    def test_drop_nothing_win_converges(self):
        """Test a winning full model ends the search without looping."""
        table = {
            ('x1', 'x2', 'x3'): 100.0,
            ('x2', 'x3'): 101.0,
            ('x1', 'x3'): 105.0,
            ('x1', 'x2'): 110.0,
        }
        controller = self.make_controller(table, ('x1', 'x2', 'x3'), direction='backward')

        state = controller.run(self.vocabulary)

        self.assertEqual([t.name for t in state.chosen], ['x1', 'x2', 'x3'])
        self.assertTrue(state.converged)
        self.assertEqual(state.round_index, 1)
        self.assertEqual(len(state.progress), 1)
        self.assertEqual(state.progress.latest.action, 'keep')
        self.assertEqual(state.progress.latest.term, '<none>')
        self.assertEqual(state.best_criterion, 100.0)
        self.assertEqual(len(self.oracle.calls), 4)

    def test_keep_label_distinct_from_last_term(self):
        """Test the keep move is not labelled like the single remaining term."""
        controller = self.make_controller({}, ('a',), direction='backward')
        state = controller.initial_state(self.vocabulary)

        moves = controller.candidate_moves(state)

        self.assertEqual([move[0] for move in moves], ['a', KEEP_LABEL])
        self.assertEqual([move[3] for move in moves], ['drop', 'keep'])
        self.assertEqual(KEEP_LABEL, '<none>')

    def test_keep_recorded_for_single_term(self):
        """Test keeping a one-term model records the keep label."""
        table = {('a',): 50.0, (): 60.0}
        controller = self.make_controller(table, ('a',), direction='backward')

        state = controller.run(self.vocabulary)

        self.assertEqual([t.name for t in state.chosen], ['a'])
        self.assertEqual(state.progress.latest.action, 'keep')
        self.assertEqual(state.progress.latest.term, KEEP_LABEL)

    def test_round_order(self):
        """Test drop-one variants come first, then the unchanged model."""
        table = {('x1', 'x2', 'x3'): 100.0}
        controller = self.make_controller(table, ('x1', 'x2', 'x3'), direction='backward')
        controller.run(self.vocabulary)

        self.assertEqual(self.oracle.formulas, [
            'y ~ 0 + Intercept + x2 + x3',
            'y ~ 0 + Intercept + x1 + x3',
            'y ~ 0 + Intercept + x1 + x2',
            'y ~ 0 + Intercept + x1 + x2 + x3',
        ])

    def test_drops_until_insufficient(self):
        """Test terms are dropped until the improvement falls short."""
        table = {
            ('x1', 'x2', 'x3'): 100.0,
            ('x2', 'x3'): 90.0,
            ('x1', 'x3'): 105.0,
            ('x1', 'x2'): 110.0,
            ('x3',): 89.0,
            ('x2',): 95.0,
        }
        controller = self.make_controller(table, ('x1', 'x2', 'x3'), direction='backward')

        state = controller.run(self.vocabulary)

        self.assertEqual([t.name for t in state.chosen], ['x2', 'x3'])
        self.assertEqual([t.name for t in state.remaining], ['x1'])
        self.assertEqual(state.best_criterion, 90.0)
        self.assertEqual([(r.term, r.action) for r in state.progress], [('x1', 'drop')])
        self.assertFalse(state.converged)
        self.assertEqual(state.round_index, 2)

    def test_drop_nothing_win_after_progress_stops(self):
        """Test an unchanged model winning a later round ends the search."""
        table = {
            ('x1', 'x2', 'x3'): 100.0,
            ('x2', 'x3'): 90.0,
            ('x3',): 91.0,
            ('x2',): 92.0,
        }
        controller = self.make_controller(table, ('x1', 'x2', 'x3'), direction='backward')

        state = controller.run(self.vocabulary)

        self.assertEqual([t.name for t in state.chosen], ['x2', 'x3'])
        self.assertEqual(len(state.progress), 1)
        self.assertEqual(state.round_index, 2)

    def test_drops_to_empty_model(self):
        """Test backward search ends when nothing is left to drop."""
        table = {('a', 'b'): 100.0, ('b',): 80.0, ('a',): 90.0, (): 60.0}
        controller = self.make_controller(table, ('a', 'b'), direction='backward')

        state = controller.run(self.vocabulary)

        self.assertEqual(state.chosen, [])
        self.assertEqual([r.term for r in state.progress], ['a', 'b'])
        self.assertEqual(state.best_criterion, 60.0)


if __name__ == '__main__':
    unittest.main(verbosity=2)
