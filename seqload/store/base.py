# seqload/store/base.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

__all__ = [
    "StoredSequence",
    "StepInstance",
    "SequenceStore",
    "StepInstanceStore",
    "merge_dependencies",
    "InMemorySequenceStore",
    "InMemoryStepInstanceStore",
]

STATE_CREATED = "created"


@dataclass(slots=True)
class StoredSequence:
    identity: str
    accessions: List[str] = field(default_factory=list)


@dataclass(slots=True)
class StepInstance:
    """
    One unit of scheduled work.
      identity: locator of the sequence it processes (None for a run-wide barrier)
      dependencies: step_ids that must complete first (completion barriers only)
    Lifecycle past 'created' belongs to the dispatcher.
    """
    step_id: str
    job_id: str
    identity: Optional[str]
    parameters: Dict[str, str] = field(default_factory=dict)
    dependencies: Tuple[str, ...] = ()
    state: str = STATE_CREATED


class SequenceStore(Protocol):
    def lookup(self, identity: str) -> Optional[StoredSequence]: ...
    def upsert(self, identity: str, accession: str) -> StoredSequence: ...


class StepInstanceStore(Protocol):
    def create_batch(self, steps: Sequence[StepInstance]) -> None: ...
    def exists(self, identity: str, job_id: str) -> bool: ...
    def get(self, step_id: str) -> Optional[StepInstance]: ...


def merge_dependencies(old: Iterable[str], new: Iterable[str]) -> Tuple[str, ...]:
    """Order-preserving union."""
    seen: Dict[str, None] = dict.fromkeys(old)
    seen.update(dict.fromkeys(new))
    return tuple(seen)


class InMemorySequenceStore:
    """Dict-backed SequenceStore for tests and dry runs."""

    def __init__(self) -> None:
        self._seqs: Dict[str, StoredSequence] = {}

    def __len__(self) -> int:
        return len(self._seqs)

    def lookup(self, identity: str) -> Optional[StoredSequence]:
        return self._seqs.get(identity)

    def upsert(self, identity: str, accession: str) -> StoredSequence:
        seq = self._seqs.get(identity)
        if seq is None:
            seq = self._seqs[identity] = StoredSequence(identity, [accession])
        elif accession not in seq.accessions:
            seq.accessions.append(accession)
        return seq


class InMemoryStepInstanceStore:
    """
    Dict-backed StepInstanceStore. create_batch is all-or-nothing: the merged
    batch is computed first and applied only when every member is valid.
    """

    def __init__(self) -> None:
        self.steps: Dict[str, StepInstance] = {}
        self.batches: int = 0
        self._located: set = set()   # (identity, job_id)

    def __len__(self) -> int:
        return len(self.steps)

    def _validate(self, step: StepInstance) -> None:
        if not step.step_id or not step.job_id:
            raise ValueError(f"step instance without id or job: {step!r}")

    def create_batch(self, steps: Sequence[StepInstance]) -> None:
        staged: Dict[str, StepInstance] = {}
        for st in steps:
            self._validate(st)
            prev = staged.get(st.step_id) or self.steps.get(st.step_id)
            if prev is not None:
                st = replace(prev, dependencies=merge_dependencies(prev.dependencies, st.dependencies))
            staged[st.step_id] = st
        self.steps.update(staged)
        self._located.update((s.identity, s.job_id) for s in staged.values())
        self.batches += 1

    def exists(self, identity: str, job_id: str) -> bool:
        return (identity, job_id) in self._located

    def get(self, step_id: str) -> Optional[StepInstance]:
        return self.steps.get(step_id)

    def for_job(self, job_id: str) -> List[StepInstance]:
        return [s for s in self.steps.values() if s.job_id == job_id]
