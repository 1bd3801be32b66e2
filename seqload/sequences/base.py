# seqload/sequences/base.py
from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, Iterable, Iterator, List, Protocol, Tuple

__all__ = [
    "SequenceRecord",
    "RecordSource",
    "ListRecordSource",
]


@dataclass(frozen=True, slots=True)
class SequenceRecord:
    accession: str
    residues: str
    record_number: int = 0    # 1-based position in the input


class RecordSource(Protocol):
    """Lazy, finite, forward-only decoder of (accession, residues) records."""
    def __call__(self, stream: BinaryIO) -> Iterator[SequenceRecord]: ...


@dataclass
class ListRecordSource:
    """
    Tiny in-memory record source for tests:
      records: [(accession, residues), ...]
    Ignores the stream it is handed.
    """
    records: List[Tuple[str, str]]

    @classmethod
    def of(cls, pairs: Iterable[Tuple[str, str]]) -> "ListRecordSource":
        return cls(list(pairs))

    def __call__(self, stream: BinaryIO) -> Iterator[SequenceRecord]:
        for i, (acc, res) in enumerate(self.records, start=1):
            yield SequenceRecord(accession=acc, residues=res, record_number=i)
