# seqload/graph/builder.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..errors import SeqLoadError, StepPersistError
from ..jobs.registry import Job, JobSet
from ..sequences.reader import SequenceEvent
from ..store.base import StepInstance, StepInstanceStore, merge_dependencies

__all__ = [
    "BarrierScope",
    "BuildStats",
    "WorkGraphBuilder",
    "SEQUENCE_IDENTITY_KEY",
    "ACCESSION_KEY",
    "JOB_ID_KEY",
    "ANALYSIS_JOB_NAMES_KEY",
    "USE_MATCH_LOOKUP_SERVICE_KEY",
]

logger = logging.getLogger(__name__)

# Step instance parameter keys
SEQUENCE_IDENTITY_KEY = "SEQUENCE_IDENTITY"
ACCESSION_KEY = "ACCESSION"
JOB_ID_KEY = "JOB_ID"
ANALYSIS_JOB_NAMES_KEY = "ANALYSIS_JOB_NAMES"
USE_MATCH_LOOKUP_SERVICE_KEY = "USE_MATCH_LOOKUP_SERVICE"


class BarrierScope(str, Enum):
    SEQUENCE = "sequence"   # one completion step per new sequence
    RUN = "run"             # one completion step for the whole run


@dataclass(slots=True)
class BuildStats:
    records: int = 0
    new: int = 0
    existing: int = 0
    steps_created: int = 0
    reconciled: int = 0


class WorkGraphBuilder:
    """
    Turns deduplicated sequence events into persisted step instances.

    For each new sequence: one analysis step per job of the JobSet (fan-out)
    plus a completion step depending on all of them (fan-in). The whole set
    for one record goes to the store in a single create_batch() call before
    the next record is looked at. Known sequences create nothing, unless
    reconcile=True, in which case analysis steps missing from the store are
    re-derived.
    """

    def __init__(
        self,
        analysis_jobs: JobSet,
        completion_job: Job,
        step_store: StepInstanceStore,
        *,
        parameters: Optional[Mapping[str, str]] = None,
        use_match_lookup: bool = True,
        barrier: BarrierScope = BarrierScope.SEQUENCE,
        reconcile: bool = False,
        run_id: Optional[str] = None,
    ):
        self.analysis_jobs = analysis_jobs
        self.completion_job = completion_job
        self.step_store = step_store
        self.barrier = BarrierScope(barrier)
        self.reconcile = reconcile
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self.stats = BuildStats()
        self.analysis_job_names: List[str] = []

        base: Dict[str, str] = dict(parameters or {})
        base[ANALYSIS_JOB_NAMES_KEY] = analysis_jobs.summary()
        base[USE_MATCH_LOOKUP_SERVICE_KEY] = "true" if use_match_lookup else "false"
        self._base_parameters = base
        self._run_barrier_deps: Tuple[str, ...] = ()
        self._run_barrier_written = False

    # --- ids -----------------------------------------------------------
    @staticmethod
    def step_id(job: Job, identity: str) -> str:
        return f"{job.job_id}:{identity}"

    @property
    def run_barrier_id(self) -> str:
        return f"{self.completion_job.job_id}:run:{self.run_id}"

    @property
    def run_barrier_dependencies(self) -> Tuple[str, ...]:
        return self._run_barrier_deps

    # --- construction ---------------------------------------------------
    def _parameters(self, job: Job, identity: Optional[str], accession: Optional[str]) -> Dict[str, str]:
        params = dict(job.parameters)
        params.update(self._base_parameters)
        params[JOB_ID_KEY] = job.job_id
        if identity is not None:
            params[SEQUENCE_IDENTITY_KEY] = identity
        if accession is not None:
            params[ACCESSION_KEY] = accession
        return params

    def _analysis_step(self, job: Job, identity: str, accession: str) -> StepInstance:
        if job.job_id not in self.analysis_job_names:
            self.analysis_job_names.append(job.job_id)
        return StepInstance(
            step_id=self.step_id(job, identity),
            job_id=job.job_id,
            identity=identity,
            parameters=self._parameters(job, identity, accession),
        )

    def _completion_step(self, identity: str, accession: str, deps: Sequence[StepInstance]) -> StepInstance:
        dep_ids = tuple(s.step_id for s in deps)
        if self.barrier is BarrierScope.RUN:
            return StepInstance(
                step_id=self.run_barrier_id,
                job_id=self.completion_job.job_id,
                identity=None,
                parameters=self._parameters(self.completion_job, None, None),
                dependencies=dep_ids,
            )
        return StepInstance(
            step_id=self.step_id(self.completion_job, identity),
            job_id=self.completion_job.job_id,
            identity=identity,
            parameters=self._parameters(self.completion_job, identity, accession),
            dependencies=dep_ids,
        )

    def _graph_for(self, identity: str, accession: str, jobs: Iterable[Job]) -> List[StepInstance]:
        steps = [self._analysis_step(job, identity, accession) for job in jobs]
        return steps + [self._completion_step(identity, accession, steps)]

    def _missing_graph(self, ev: SequenceEvent) -> List[StepInstance]:
        missing = [j for j in self.analysis_jobs if not self.step_store.exists(ev.identity, j.job_id)]
        if not missing:
            return []
        logger.warning(
            "Sequence %s (%s) is stored but lacks steps for %s; re-deriving them",
            ev.accession, ev.identity, ",".join(j.job_id for j in missing),
        )
        self.stats.reconciled += 1
        return self._graph_for(ev.identity, ev.accession, missing)

    # --- events ---------------------------------------------------------
    def on_record(self, ev: SequenceEvent) -> List[StepInstance]:
        self.stats.records += 1
        if ev.is_new:
            self.stats.new += 1
            batch = self._graph_for(ev.identity, ev.accession, self.analysis_jobs)
        else:
            self.stats.existing += 1
            batch = self._missing_graph(ev) if self.reconcile else []
        self._persist(batch, ev)
        return batch

    def __call__(self, identity: str, accession: str, is_new: bool) -> None:
        self.on_record(SequenceEvent(identity, accession, is_new))

    def build(self, events: Iterable[SequenceEvent]) -> BuildStats:
        for ev in events:
            self.on_record(ev)
        return self.stats

    def _persist(self, batch: List[StepInstance], ev: SequenceEvent) -> None:
        # An empty batch still goes through: it commits the accession update
        # of an already-known sequence.
        try:
            extends_barrier = self._barrier_stored(batch, ev)
            self.step_store.create_batch(batch)
        except SeqLoadError as exc:
            exc.accession = exc.accession or ev.accession
            exc.identity = exc.identity or ev.identity
            raise
        except Exception as exc:
            raise StepPersistError(
                f"Failed to persist {len(batch)} step instance(s): {exc}",
                accession=ev.accession, identity=ev.identity,
            ) from exc

        if batch and self.barrier is BarrierScope.RUN:
            self._run_barrier_deps = merge_dependencies(self._run_barrier_deps, batch[-1].dependencies)
            self._run_barrier_written = True
        self.stats.steps_created += len(batch) - (1 if extends_barrier else 0)

    def _barrier_stored(self, batch: List[StepInstance], ev: SequenceEvent) -> bool:
        """True when the batch's completion step only adds edges to one already written."""
        if not batch:
            return False
        if self.barrier is BarrierScope.RUN:
            return self._run_barrier_written
        # a reconciled known sequence may still have its own completion step
        return not ev.is_new and self.step_store.get(batch[-1].step_id) is not None
