# seqload/errors.py
from __future__ import annotations

from enum import Enum
from typing import Optional

__all__ = [
    "SeqLoadError",
    "InputNotFoundError",
    "UnreadableInputError",
    "EmptyKind",
    "EmptyInputError",
    "MalformedRecordError",
    "UnknownJobError",
    "SequenceStoreError",
    "StepPersistError",
]


class SeqLoadError(Exception):
    """
    Base for every fatal ingestion error.
    Carries the input path ("-" for stdin) and, where known, the accession and
    sequence identity of the record being processed.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        accession: Optional[str] = None,
        identity: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.path = path
        self.accession = accession
        self.identity = identity

    def with_path(self, path: str) -> "SeqLoadError":
        if self.path is None:
            self.path = path
        return self

    def __str__(self) -> str:
        parts = [self.message]
        if self.path is not None:
            parts.append(f"input={self.path}")
        if self.accession is not None:
            parts.append(f"accession={self.accession}")
        if self.identity is not None:
            parts.append(f"identity={self.identity}")
        return " | ".join(parts)


class InputNotFoundError(SeqLoadError):
    pass


class UnreadableInputError(SeqLoadError):
    pass


class EmptyKind(str, Enum):
    # upstream tool (ORF prediction) produced nothing: benign empty result
    UPSTREAM = "upstream-empty"
    USER = "user-empty"


class EmptyInputError(SeqLoadError):
    def __init__(self, message: str, *, kind: EmptyKind, path: Optional[str] = None):
        super().__init__(message, path=path)
        self.kind = kind

    @property
    def is_upstream(self) -> bool:
        return self.kind is EmptyKind.UPSTREAM


class MalformedRecordError(SeqLoadError):
    def __init__(self, message: str, *, record_number: Optional[int] = None, **kw):
        super().__init__(message, **kw)
        self.record_number = record_number


class UnknownJobError(SeqLoadError):
    def __init__(self, message: str, *, job_id: Optional[str] = None, **kw):
        super().__init__(message, **kw)
        self.job_id = job_id


class SequenceStoreError(SeqLoadError):
    pass


class StepPersistError(SeqLoadError):
    pass
