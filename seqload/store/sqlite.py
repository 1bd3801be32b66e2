# seqload/store/sqlite.py
from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..errors import SequenceStoreError, StepPersistError
from .base import StepInstance, StoredSequence

__all__ = ["SqliteStore"]

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS sequence (
    identity   TEXT PRIMARY KEY
);
CREATE TABLE IF NOT EXISTS accession (
    identity   TEXT NOT NULL REFERENCES sequence(identity),
    accession  TEXT NOT NULL,
    PRIMARY KEY (identity, accession)
);
CREATE TABLE IF NOT EXISTS step_instance (
    step_id    TEXT PRIMARY KEY,
    job_id     TEXT NOT NULL,
    identity   TEXT,
    parameters TEXT NOT NULL,
    state      TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS step_instance_locator ON step_instance(identity, job_id);
CREATE TABLE IF NOT EXISTS step_dependency (
    step_id    TEXT NOT NULL REFERENCES step_instance(step_id),
    depends_on TEXT NOT NULL,
    PRIMARY KEY (step_id, depends_on)
);
"""


class SqliteStore:
    """
    Sequence store and step-instance store on one sqlite connection.

    Sequence upserts are left in the open transaction; create_batch() commits
    them together with the step rows. A crash between the two leaves neither,
    so a sequence is never durably known without its step instances.
    """

    def __init__(self, path: Union[str, Path], wal_mode: bool = True):
        self.path = str(path)
        try:
            self.conn = sqlite3.connect(self.path)
            if wal_mode and self.path != ":memory:":
                self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA foreign_keys=ON")
            self.conn.executescript(SCHEMA)
            self.conn.commit()
        except sqlite3.Error as exc:
            raise SequenceStoreError(f"Cannot open store {self.path}: {exc}") from exc

    def __enter__(self) -> "SqliteStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        if self.conn.in_transaction:
            logger.warning("Discarding uncommitted changes in %s", self.path)
        self.conn.close()

    # SequenceStore
    def lookup(self, identity: str) -> Optional[StoredSequence]:
        try:
            row = self.conn.execute(
                "SELECT 1 FROM sequence WHERE identity = ?", (identity,)
            ).fetchone()
            if row is None:
                return None
            return StoredSequence(identity, self._accessions(identity))
        except sqlite3.Error as exc:
            raise SequenceStoreError(f"Sequence store read failed: {exc}", identity=identity) from exc

    def upsert(self, identity: str, accession: str) -> StoredSequence:
        try:
            self.conn.execute("INSERT OR IGNORE INTO sequence(identity) VALUES (?)", (identity,))
            self.conn.execute(
                "INSERT OR IGNORE INTO accession(identity, accession) VALUES (?, ?)",
                (identity, accession),
            )
            accessions = self._accessions(identity)
        except sqlite3.Error as exc:
            self._rollback()
            raise SequenceStoreError(
                f"Sequence store write failed: {exc}", accession=accession, identity=identity
            ) from exc
        return StoredSequence(identity, accessions)

    def _rollback(self) -> None:
        try:
            self.conn.rollback()
        except sqlite3.Error as exc:
            logger.warning("Rollback failed on %s: %s", self.path, exc)

    def _accessions(self, identity: str) -> List[str]:
        cur = self.conn.execute(
            "SELECT accession FROM accession WHERE identity = ? ORDER BY rowid", (identity,)
        )
        return [r[0] for r in cur]

    # StepInstanceStore
    def create_batch(self, steps: Sequence[StepInstance]) -> None:
        try:
            for st in steps:
                self.conn.execute(
                    "INSERT INTO step_instance(step_id, job_id, identity, parameters, state) "
                    "VALUES (?, ?, ?, ?, ?) ON CONFLICT(step_id) DO NOTHING",
                    (st.step_id, st.job_id, st.identity,
                     json.dumps(st.parameters, sort_keys=True), st.state),
                )
                self.conn.executemany(
                    "INSERT OR IGNORE INTO step_dependency(step_id, depends_on) VALUES (?, ?)",
                    [(st.step_id, dep) for dep in st.dependencies],
                )
            self.conn.commit()
        except sqlite3.Error as exc:
            self._rollback()
            raise StepPersistError(f"Step instance batch of {len(steps)} failed: {exc}") from exc

    def exists(self, identity: str, job_id: str) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM step_instance WHERE identity = ? AND job_id = ? LIMIT 1",
            (identity, job_id),
        ).fetchone()
        return row is not None

    def get(self, step_id: str) -> Optional[StepInstance]:
        row = self.conn.execute(
            "SELECT step_id, job_id, identity, parameters, state FROM step_instance WHERE step_id = ?",
            (step_id,),
        ).fetchone()
        return self._row_to_step(row) if row is not None else None

    def steps_for(self, identity: str) -> List[StepInstance]:
        cur = self.conn.execute(
            "SELECT step_id, job_id, identity, parameters, state FROM step_instance "
            "WHERE identity = ? ORDER BY rowid",
            (identity,),
        )
        return [self._row_to_step(r) for r in cur.fetchall()]

    def count_steps(self, job_id: Optional[str] = None) -> int:
        if job_id is None:
            return self.conn.execute("SELECT COUNT(*) FROM step_instance").fetchone()[0]
        return self.conn.execute(
            "SELECT COUNT(*) FROM step_instance WHERE job_id = ?", (job_id,)
        ).fetchone()[0]

    def count_sequences(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM sequence").fetchone()[0]

    def _row_to_step(self, row) -> StepInstance:
        step_id, job_id, identity, params, state = row
        deps = self.conn.execute(
            "SELECT depends_on FROM step_dependency WHERE step_id = ? ORDER BY rowid", (step_id,)
        ).fetchall()
        return StepInstance(
            step_id=step_id,
            job_id=job_id,
            identity=identity,
            parameters=json.loads(params),
            dependencies=tuple(d[0] for d in deps),
            state=state,
        )
