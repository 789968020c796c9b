"""Unit tests for stepwise configuration system.

This test suite validates that StepwiseConfig produces the documented
defaults and rejects invalid settings.
"""

import unittest
import sys
import math
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from stepselect.config import (
    ExpansionConfig,
    ModelConfig,
    OracleConfig,
    ParallelConfig,
    SearchConfig,
    StepwiseConfig,
    TrackingConfig
)


class TestBasicInstantiation(unittest.TestCase):
    """Test basic configuration instantiation."""

    def test_default_instantiation(self):
        """Test that config can be instantiated with defaults."""
        config = StepwiseConfig()
        config.validate()
        self.assertIsNotNone(config)


class TestConfigurationValues(unittest.TestCase):
    """Test default configuration values."""

    def setUp(self):
        """Set up test config."""
        self.config = StepwiseConfig()

    def test_model_config(self):
        """Test model configuration."""
        self.assertIsNone(self.config.model.response)
        self.assertEqual(self.config.model.invariant, '0 + Intercept')
        self.assertEqual(self.config.model.renderer, 'r')
        self.assertEqual(self.config.model.spatial_token, 'spde')

    def test_search_config(self):
        """Test search configuration."""
        self.assertEqual(self.config.search.direction, 'forward')
        self.assertEqual(self.config.search.threshold, 2.0)
        self.assertIsNone(self.config.search.max_rounds)

    def test_expansion_config(self):
        """Test expansion configuration."""
        self.assertEqual(self.config.expansion.power_order, 1)
        self.assertEqual(self.config.expansion.interaction_order, 1)

    def test_oracle_config(self):
        """Test oracle configuration."""
        self.assertEqual(self.config.oracle.family, 'gaussian')
        self.assertEqual(self.config.oracle.num_threads, 1)
        self.assertEqual(self.config.oracle.expand_factor_strategy, 'inla')
        self.assertEqual(
            self.config.oracle.control_compute(),
            {'cpo': True, 'dic': True, 'waic': True}
        )

    def test_parallel_config(self):
        """Test parallel execution configuration."""
        self.assertEqual(self.config.parallel.n_workers, 1)
        self.assertEqual(self.config.parallel.backend, 'thread')
        self.assertIsNone(self.config.parallel.timeout_seconds)
        self.assertEqual(ParallelConfig(timeout_minutes=2).timeout_seconds, 120)


class TestCustomization(unittest.TestCase):
    """Test configuration customization."""

    def test_direction_aliases(self):
        """Test 'forwards' and 'backwards' are normalized."""
        self.assertEqual(SearchConfig(direction='backwards').direction, 'backward')
        self.assertEqual(SearchConfig(direction='Forwards').direction, 'forward')

    def test_holdout_defaults_to_response(self):
        """Test the holdout column falls back to the response."""
        self.assertEqual(ModelConfig(response='y').holdout_column, 'y')
        self.assertEqual(ModelConfig(response='y', holdout_response='y_obs').holdout_column, 'y_obs')

    def test_from_kwargs(self):
        """Test building the tree from flat arguments."""
        config = StepwiseConfig.from_kwargs(
            family='poisson',
            direction='backwards',
            response='count',
            power_order=2,
            interaction_order=2,
            threshold=4.0,
            num_threads=3,
            n_workers=2,
            renderer='patsy',
            fit_options={'verbose': True}
        )
        config.validate()

        self.assertEqual(config.model.response, 'count')
        self.assertEqual(config.model.renderer, 'patsy')
        self.assertEqual(config.search.direction, 'backward')
        self.assertEqual(config.search.threshold, 4.0)
        self.assertEqual(config.expansion.power_order, 2)
        self.assertEqual(config.oracle.family, 'poisson')
        self.assertEqual(config.oracle.num_threads, 3)
        self.assertEqual(config.oracle.options, {'verbose': True})
        self.assertEqual(config.parallel.n_workers, 2)

    def test_log_settings(self):
        """Test the log level is carried and the log file follows the directory."""
        config = StepwiseConfig.from_kwargs(response='y', log_level='DEBUG')
        self.assertEqual(config.tracking.log_level, 'DEBUG')
        self.assertIsNone(config.tracking.log_file)

        tracking = TrackingConfig(log_to_file=True, log_directory='runs/logs')
        self.assertEqual(tracking.log_file, Path('runs/logs') / 'stepselect.log')

    def test_infinite_threshold_valid(self):
        """Test an infinite threshold is a valid setting."""
        SearchConfig(threshold=math.inf).validate()


class TestValidation(unittest.TestCase):
    """Test invalid settings are rejected."""

    def test_invalid_direction(self):
        with self.assertRaises(AssertionError):
            SearchConfig(direction='sideways').validate()

    def test_nan_threshold(self):
        with self.assertRaises(AssertionError):
            SearchConfig(threshold=float('nan')).validate()

    def test_invalid_expansion(self):
        with self.assertRaises(AssertionError):
            ExpansionConfig(power_order=0).validate()
        with self.assertRaises(AssertionError):
            ExpansionConfig(interaction_order=1.5).validate()

    def test_invalid_renderer(self):
        with self.assertRaises(AssertionError):
            ModelConfig(renderer='stan').validate()

    def test_invalid_oracle(self):
        with self.assertRaises(AssertionError):
            OracleConfig(num_threads=0).validate()

    def test_invalid_parallel(self):
        with self.assertRaises(AssertionError):
            ParallelConfig(backend='gpu').validate()
        with self.assertRaises(AssertionError):
            ParallelConfig(n_workers=0).validate()

    def test_invalid_log_level(self):
        with self.assertRaises(AssertionError):
            TrackingConfig(log_level='TRACE').validate()


class TestSummary(unittest.TestCase):
    """Test configuration summary generation."""

    def test_summary_generation(self):
        """Test that summary can be generated."""
        config = StepwiseConfig.from_kwargs(response='y')
        summary = config.summary()

        self.assertIsInstance(summary, str)
        self.assertIn("Stepwise Configuration Summary", summary)
        self.assertIn("Search:", summary)
        self.assertIn("Direction: forward", summary)
        self.assertGreater(len(summary), 100)


if __name__ == '__main__':
    unittest.main(verbosity=2)
