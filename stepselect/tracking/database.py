"""Database tracking for stepwise searches.

This module provides clean, type-safe database operations for logging
searches, their rounds and every candidate evaluation.
"""

import logging
import math
import sqlite3
from pathlib import Path
from typing import Dict, List, Optional
from datetime import datetime

import pandas as pd


logger = logging.getLogger(__name__)


def _finite_or_none(value: Optional[float]) -> Optional[float]:
    """Map NaN and infinite values to NULL."""
    if value is None:
        return None
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        return None
    return value


class StepwiseDatabase:
    """SQLite database manager for stepwise searches.

    Uses WAL mode for concurrent read/write access, so a search can be
    inspected while it is in progress.
    """

    def __init__(self, db_path: Path):
        """Initialize database manager.

        Parameters
        ----------
        db_path : Path
            Path to SQLite database file.
        """
        self.db_path = Path(db_path)
        self.timeout = 30.0  # Seconds

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, timeout=self.timeout)

    def reset(self) -> None:
        """Delete the database file if it exists to start fresh."""
        if self.db_path.exists():
            self.db_path.unlink()
            logger.info(f"Deleted existing database: {self.db_path}")
        else:
            logger.info(f"No existing database found at: {self.db_path}")

    def initialize(self) -> None:
        """Initialize database with required tables and indexes.

        Creates three tables:
        - search_log: One row per search
        - round_log: One row per round of a search
        - evaluation_log: One row per candidate model evaluation

        Enables WAL mode for concurrent access and creates indexes.
        Safe to call multiple times - only creates tables if they don't exist.
        """
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = self._connect()
        try:
            conn.execute('PRAGMA journal_mode=WAL')

            conn.execute('''
                CREATE TABLE IF NOT EXISTS search_log (
                    search_id TEXT PRIMARY KEY,
                    started_at TEXT NOT NULL,
                    finished_at TEXT,
                    direction TEXT NOT NULL,
                    family TEXT NOT NULL,
                    response TEXT NOT NULL,
                    invariant TEXT NOT NULL,
                    threshold REAL,
                    vocabulary_size INTEGER NOT NULL,
                    n_rounds INTEGER,
                    best_formula TEXT,
                    best_criterion REAL,
                    status TEXT NOT NULL
                )
            ''')

            conn.execute('''
                CREATE TABLE IF NOT EXISTS round_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    search_id TEXT NOT NULL,
                    round_num INTEGER NOT NULL,
                    winner TEXT,
                    criterion REAL,
                    improvement REAL,
                    accepted INTEGER NOT NULL,
                    reason TEXT,
                    n_candidates INTEGER NOT NULL,
                    n_terms INTEGER NOT NULL
                )
            ''')

            conn.execute('''
                CREATE TABLE IF NOT EXISTS evaluation_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    search_id TEXT NOT NULL,
                    round_num INTEGER NOT NULL,
                    term TEXT NOT NULL,
                    formula TEXT NOT NULL,
                    criterion REAL,
                    rmse REAL,
                    sum_log_cpo REAL,
                    runtime_sec REAL,
                    memory_mb REAL
                )
            ''')

            conn.execute('CREATE INDEX IF NOT EXISTS idx_round_search ON round_log(search_id, round_num)')
            conn.execute('CREATE INDEX IF NOT EXISTS idx_eval_search ON evaluation_log(search_id, round_num)')

            conn.commit()
        finally:
            conn.close()

        logger.info(f"Database initialized at: {self.db_path}")

    def insert_search(self, search_data: Dict) -> None:
        """Insert a search record.

        Parameters
        ----------
        search_data : dict
            Dictionary with required keys: search_id, direction, family,
            response, invariant, vocabulary_size. Optional: started_at,
            threshold, status.
        """
        conn = self._connect()
        try:
            conn.execute('''
                INSERT INTO search_log (
                    search_id, started_at, direction, family, response,
                    invariant, threshold, vocabulary_size, status
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                search_data['search_id'],
                search_data.get('started_at', datetime.now().isoformat()),
                search_data['direction'],
                search_data['family'],
                search_data['response'],
                search_data['invariant'],
                _finite_or_none(search_data.get('threshold')),
                search_data['vocabulary_size'],
                search_data.get('status', 'running')
            ))
            conn.commit()
        finally:
            conn.close()

    def finish_search(
        self,
        search_id: str,
        status: str,
        n_rounds: int,
        best_formula: Optional[str] = None,
        best_criterion: Optional[float] = None
    ) -> None:
        """Record the outcome of a search ('completed' or 'failed')."""
        conn = self._connect()
        try:
            conn.execute('''
                UPDATE search_log
                SET finished_at = ?,
                    status = ?,
                    n_rounds = ?,
                    best_formula = COALESCE(?, best_formula),
                    best_criterion = COALESCE(?, best_criterion)
                WHERE search_id = ?
            ''', (
                datetime.now().isoformat(), status, n_rounds,
                best_formula, _finite_or_none(best_criterion), search_id
            ))
            conn.commit()
        finally:
            conn.close()

    def insert_round(self, round_data: Dict) -> None:
        """Insert a round record.

        Parameters
        ----------
        round_data : dict
            Dictionary with required keys: search_id, round_num, accepted,
            n_candidates, n_terms. Optional: timestamp, winner, criterion,
            improvement, reason.
        """
        conn = self._connect()
        try:
            conn.execute('''
                INSERT INTO round_log (
                    timestamp, search_id, round_num, winner, criterion,
                    improvement, accepted, reason, n_candidates, n_terms
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                round_data.get('timestamp', datetime.now().isoformat()),
                round_data['search_id'],
                round_data['round_num'],
                round_data.get('winner'),
                _finite_or_none(round_data.get('criterion')),
                _finite_or_none(round_data.get('improvement')),
                int(round_data['accepted']),
                round_data.get('reason', ''),
                round_data['n_candidates'],
                round_data['n_terms']
            ))
            conn.commit()
        finally:
            conn.close()

    def insert_evaluations(self, search_id: str, round_num: int, evaluations: List) -> None:
        """Insert every candidate evaluation of a round.

        Parameters
        ----------
        search_id : str
            Search identifier.
        round_num : int
            Round number.
        evaluations : list of EvaluationResult
            Evaluations of the round, in candidate order.
        """
        timestamp = datetime.now().isoformat()
        rows = [
            (
                timestamp, search_id, round_num, ev.term, ev.formula,
                _finite_or_none(ev.criterion), _finite_or_none(ev.rmse),
                _finite_or_none(ev.sum_log_cpo), ev.runtime_sec, ev.memory_mb
            )
            for ev in evaluations
        ]
        conn = self._connect()
        try:
            conn.executemany('''
                INSERT INTO evaluation_log (
                    timestamp, search_id, round_num, term, formula, criterion,
                    rmse, sum_log_cpo, runtime_sec, memory_mb
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', rows)
            conn.commit()
        finally:
            conn.close()

    def query_searches(self) -> pd.DataFrame:
        """Query all searches, most recent first."""
        conn = self._connect()
        try:
            return pd.read_sql_query('SELECT * FROM search_log ORDER BY started_at DESC', conn)
        finally:
            conn.close()

    def query_rounds(self, search_id: str) -> pd.DataFrame:
        """Query the rounds of a search in round order.

        Parameters
        ----------
        search_id : str
            Search identifier.

        Returns
        -------
        df : pd.DataFrame
            Round data, empty if no data exists.
        """
        conn = self._connect()
        try:
            return pd.read_sql_query(
                'SELECT * FROM round_log WHERE search_id = ? ORDER BY round_num',
                conn,
                params=(search_id,)
            )
        finally:
            conn.close()

    def query_evaluations(self, search_id: str, round_num: Optional[int] = None) -> pd.DataFrame:
        """Query candidate evaluations of a search, optionally one round.

        Parameters
        ----------
        search_id : str
            Search identifier.
        round_num : int or None, default=None
            Restrict to a single round.

        Returns
        -------
        df : pd.DataFrame
            Evaluation data in insertion order, empty if no data exists.
        """
        query = 'SELECT * FROM evaluation_log WHERE search_id = ?'
        params = [search_id]
        if round_num is not None:
            query += ' AND round_num = ?'
            params.append(round_num)
        query += ' ORDER BY id'

        conn = self._connect()
        try:
            return pd.read_sql_query(query, conn, params=tuple(params))
        finally:
            conn.close()

    def exists(self) -> bool:
        """Check if the database file exists.

        Returns
        -------
        exists : bool
            True if database file exists.
        """
        return self.db_path.exists()

    def get_size_mb(self) -> float:
        """Get the size of the database file in MB.

        Returns
        -------
        size_mb : float
            Size in megabytes, or 0 if database doesn't exist.
        """
        if self.db_path.exists():
            return self.db_path.stat().st_size / (1024 * 1024)
        return 0.0
