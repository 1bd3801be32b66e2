# seqload/loader.py
"""
Run orchestration: resolve the input, select jobs, then stream records through
the deduplicating reader into the work-graph builder.

Jobs are selected before the input is opened, so a bad job name never leaves
step instances behind.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Union

from .errors import EmptyInputError, SeqLoadError
from .graph.builder import BarrierScope, WorkGraphBuilder
from .jobs.registry import JobRegistry, select_jobs
from .sequences.base import RecordSource
from .sequences.reader import SequenceDeduplicatingReader
from .sources.resolver import effective_path, open_source
from .store.base import SequenceStore, StepInstanceStore

__all__ = ["LoadConfig", "LoadSummary", "load_sequences"]

logger = logging.getLogger(__name__)


@dataclass
class LoadConfig:
    input_path: Union[str, Path]
    registry: JobRegistry
    completion_job_name: str
    analysis_job_names: Optional[str] = None     # None -> all analysis jobs
    use_match_lookup: bool = True
    barrier: BarrierScope = BarrierScope.SEQUENCE
    reconcile: bool = False
    override_name: Optional[str] = None
    temp_dir: Optional[Union[str, Path]] = None
    parameters: Dict[str, str] = field(default_factory=dict)
    resource_package: Optional[str] = "seqload"
    run_id: Optional[str] = None


@dataclass
class LoadSummary:
    input_path: str
    analysis_job_names: List[str] = field(default_factory=list)
    completion_job: str = ""
    records: int = 0
    new_sequences: int = 0
    existing_sequences: int = 0
    steps_created: int = 0
    reconciled: int = 0
    empty_upstream: bool = False

    def to_dict(self) -> Dict:
        return {
            "input_path": self.input_path,
            "analysis_job_names": list(self.analysis_job_names),
            "completion_job": self.completion_job,
            "records": self.records,
            "new_sequences": self.new_sequences,
            "existing_sequences": self.existing_sequences,
            "steps_created": self.steps_created,
            "reconciled": self.reconciled,
            "empty_upstream": self.empty_upstream,
        }


def load_sequences(
    config: LoadConfig,
    sequence_store: SequenceStore,
    step_store: StepInstanceStore,
    *,
    stdin: Optional[BinaryIO] = None,
    decoder: Optional[RecordSource] = None,
) -> LoadSummary:
    path = effective_path(config.input_path, override_name=config.override_name, temp_dir=config.temp_dir)
    logger.debug("Input path to be loaded: %s", path)

    try:
        jobs, completion = select_jobs(config.registry, config.analysis_job_names, config.completion_job_name)
    except SeqLoadError as exc:
        exc.with_path(path)
        raise
    summary = LoadSummary(input_path=path, analysis_job_names=jobs.names(), completion_job=completion.job_id)

    builder = WorkGraphBuilder(
        jobs, completion, step_store,
        parameters=config.parameters,
        use_match_lookup=config.use_match_lookup,
        barrier=config.barrier,
        reconcile=config.reconcile,
        run_id=config.run_id,
    )
    reader = SequenceDeduplicatingReader(sequence_store, decoder=decoder)

    try:
        with open_source(path, resource_package=config.resource_package, stdin=stdin) as src:
            logger.info("Loading sequences from %s (%s)", src.path, src.strategy)
            builder.build(reader.events(src.stream))
    except EmptyInputError as exc:
        if not exc.is_upstream:
            raise
        logger.warning("%s Nothing to schedule.", exc.message)
        summary.empty_upstream = True
        return summary
    except SeqLoadError as exc:
        exc.with_path(path)
        raise

    st = builder.stats
    summary.analysis_job_names = list(builder.analysis_job_names) or jobs.names()
    summary.records = st.records
    summary.new_sequences = st.new
    summary.existing_sequences = st.existing
    summary.steps_created = st.steps_created
    summary.reconciled = st.reconciled
    logger.info(
        "Finished loading sequences and creating step instances: %d records, %d new, %d steps",
        st.records, st.new, st.steps_created,
    )
    return summary
