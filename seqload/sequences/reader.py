# seqload/sequences/reader.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO, Callable, Iterator, Optional

from ..errors import SeqLoadError, SequenceStoreError
from ..store.base import SequenceStore
from .base import RecordSource
from .fasta import iter_fasta_records
from .identity import SequenceIdentity, sequence_identity

__all__ = ["SequenceEvent", "ReadStats", "SequenceDeduplicatingReader"]

logger = logging.getLogger(__name__)

OnRecord = Callable[[SequenceIdentity, str, bool], None]


@dataclass(frozen=True, slots=True)
class SequenceEvent:
    identity: SequenceIdentity
    accession: str
    is_new: bool
    record_number: int = 0


@dataclass(slots=True)
class ReadStats:
    records: int = 0
    new: int = 0
    existing: int = 0

    def count(self, ev: SequenceEvent) -> None:
        self.records += 1
        if ev.is_new:
            self.new += 1
        else:
            self.existing += 1


class SequenceDeduplicatingReader:
    """
    Decodes records from a stream and deduplicates them against a SequenceStore.

    One event per record, in input order:
      - unseen identity -> stored with this accession, is_new=True
      - known identity  -> accession added if missing, is_new=False
    Lookups always go to the store; nothing here grows with the number of
    distinct sequences.
    """

    def __init__(self, store: SequenceStore, decoder: Optional[RecordSource] = None):
        self.store = store
        self.decoder = decoder or iter_fasta_records
        self.stats = ReadStats()

    def events(self, stream: BinaryIO) -> Iterator[SequenceEvent]:
        for rec in self.decoder(stream):
            identity = sequence_identity(rec.residues)
            is_new = self._record(identity, rec.accession)
            ev = SequenceEvent(identity, rec.accession, is_new, rec.record_number)
            self.stats.count(ev)
            yield ev
        logger.debug(
            "Read %d records (%d new, %d already stored)",
            self.stats.records, self.stats.new, self.stats.existing,
        )

    def _record(self, identity: SequenceIdentity, accession: str) -> bool:
        try:
            known = self.store.lookup(identity)
            if known is None:
                self.store.upsert(identity, accession)
                return True
            if accession not in known.accessions:
                self.store.upsert(identity, accession)
            return False
        except SeqLoadError as exc:
            exc.accession = exc.accession or accession
            exc.identity = exc.identity or identity
            raise
        except Exception as exc:
            raise SequenceStoreError(
                f"Sequence store failed: {exc}", accession=accession, identity=identity
            ) from exc

    def read_all(self, stream: BinaryIO, on_record: OnRecord) -> ReadStats:
        """Callback form: on_record(identity, accession, is_new) per record."""
        for ev in self.events(stream):
            on_record(ev.identity, ev.accession, ev.is_new)
        return self.stats
