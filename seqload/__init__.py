# seqload/__init__.py
from .errors import (
    SeqLoadError,
    InputNotFoundError,
    UnreadableInputError,
    EmptyInputError,
    EmptyKind,
    MalformedRecordError,
    UnknownJobError,
    SequenceStoreError,
    StepPersistError,
)
from .jobs.registry import Job, JobRegistry, JobSet, select_jobs
from .sequences.identity import sequence_identity
from .sequences.reader import SequenceDeduplicatingReader, SequenceEvent
from .store.base import StepInstance, StoredSequence
from .graph.builder import BarrierScope, WorkGraphBuilder

# Convenience re-exports for whole-run use (optional)
from .loader import LoadConfig, LoadSummary, load_sequences
