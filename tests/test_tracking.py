"""Unit tests for tracking modules (database and logging).

This test suite validates StepwiseDatabase and logging utilities.
"""

import unittest
import sys
import tempfile
import logging
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from stepselect.oracle import EvaluationResult
from stepselect.tracking import (
    StepwiseDatabase,
    log_round,
    log_warning,
    setup_logger
)


def make_search(search_id='search_1'):
    return {
        'search_id': search_id,
        'direction': 'forward',
        'family': 'gaussian',
        'response': 'y',
        'invariant': '0 + Intercept',
        'threshold': 2.0,
        'vocabulary_size': 3
    }


class TestDatabaseInitialization(unittest.TestCase):
    """Test database initialization."""

    def setUp(self):
        """Set up temporary database."""
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = Path(self.temp_dir) / 'test.db'

    def test_initialization(self):
        """Test database can be initialized."""
        database = StepwiseDatabase(db_path=self.db_path)
        database.initialize()

        self.assertTrue(database.exists())

    def test_database_size(self):
        """Test getting database size."""
        database = StepwiseDatabase(db_path=self.db_path)
        self.assertEqual(database.get_size_mb(), 0.0)
        database.initialize()

        self.assertGreater(database.get_size_mb(), 0)

    def test_reset(self):
        """Test reset removes the database file."""
        database = StepwiseDatabase(db_path=self.db_path)
        database.initialize()
        database.reset()

        self.assertFalse(database.exists())


class TestDatabaseOperations(unittest.TestCase):
    """Test database insert and query operations."""

    def setUp(self):
        """Set up temporary database."""
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = Path(self.temp_dir) / 'test.db'
        self.database = StepwiseDatabase(db_path=self.db_path)
        self.database.initialize()
        self.database.insert_search(make_search())

    def test_insert_search(self):
        """Test inserting and finishing a search record."""
        df = self.database.query_searches()
        self.assertEqual(len(df), 1)
        self.assertEqual(df.iloc[0]['status'], 'running')

        self.database.finish_search('search_1', 'completed', 2,
                                    best_formula='y ~ 0 + Intercept + x1',
                                    best_criterion=80.0)

        row = self.database.query_searches().iloc[0]
        self.assertEqual(row['status'], 'completed')
        self.assertEqual(row['n_rounds'], 2)
        self.assertEqual(row['best_formula'], 'y ~ 0 + Intercept + x1')
        self.assertEqual(row['best_criterion'], 80.0)

    def test_insert_rounds(self):
        """Test round records come back in round order."""
        for round_num, accepted in [(2, False), (1, True)]:
            self.database.insert_round({
                'search_id': 'search_1',
                'round_num': round_num,
                'winner': 'x1',
                'criterion': 95.0,
                'improvement': float('inf'),
                'accepted': accepted,
                'reason': 'test',
                'n_candidates': 3,
                'n_terms': round_num - 1
            })

        df = self.database.query_rounds('search_1')
        self.assertEqual(list(df['round_num']), [1, 2])
        self.assertEqual(list(df['accepted']), [1, 0])
        # Non-finite values are stored as NULL
        self.assertTrue(df['improvement'].isna().all())

    def test_insert_evaluations(self):
        """Test candidate evaluations per round."""
        evaluations = [
            EvaluationResult(term='x1', criterion=100.0, rmse=1.5, sum_log_cpo=-10.0,
                             formula='y ~ 0 + Intercept + x1'),
            EvaluationResult(term='x2', criterion=float('nan'), rmse=1.2, sum_log_cpo=-9.0,
                             formula='y ~ 0 + Intercept + x2')
        ]
        self.database.insert_evaluations('search_1', 1, evaluations)
        self.database.insert_evaluations('search_1', 2, evaluations[:1])

        df = self.database.query_evaluations('search_1')
        self.assertEqual(len(df), 3)
        self.assertEqual(list(df['term']), ['x1', 'x2', 'x1'])
        self.assertTrue(df['criterion'].isna().iloc[1])

        df_round = self.database.query_evaluations('search_1', round_num=2)
        self.assertEqual(len(df_round), 1)


class TestLogging(unittest.TestCase):
    """Test logging setup."""

    def test_setup_logger(self):
        """Test logger creation."""
        logger = setup_logger(name='stepselect_test_setup', level=logging.INFO)

        self.assertIsInstance(logger, logging.Logger)
        self.assertEqual(logger.level, logging.INFO)
        self.assertEqual(len(logger.handlers), 1)

    def test_logger_with_file(self):
        """Test logger with file output."""
        temp_dir = tempfile.mkdtemp()
        log_file = Path(temp_dir) / 'logs' / 'test.log'

        logger = setup_logger(name='stepselect_test_file', level=logging.INFO, log_file=log_file)
        logger.info("Test message")
        for handler in logger.handlers:
            handler.flush()

        self.assertTrue(log_file.exists())
        self.assertIn("Test message", log_file.read_text())

    def test_log_round(self):
        """Test round outcome lines."""
        logger = logging.getLogger('stepselect_test_round')
        with self.assertLogs(logger, level='INFO') as captured:
            log_round(logger, 1, True, 'x2', 95.0, 'Initial', metrics={'rmse': 0.5})
            log_round(logger, 2, False, None, None, 'Undefined')

        self.assertIn('Round 1: ✓ ACCEPTED x2 - 95.0000', captured.output[0])
        self.assertTrue(any('RMSE' in line for line in captured.output))
        self.assertIn('✗ REJECTED', captured.output[-1])

    def test_log_warning(self):
        """Test warnings are prefixed."""
        logger = logging.getLogger('stepselect_test_warning')
        with self.assertLogs(logger, level='WARNING') as captured:
            log_warning(logger, 'careful')

        self.assertIn('careful', captured.output[0])


if __name__ == '__main__':
    unittest.main(verbosity=2)
