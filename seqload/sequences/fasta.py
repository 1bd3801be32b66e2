# seqload/sequences/fasta.py
from __future__ import annotations

import zlib
from typing import BinaryIO, Iterator, List, Optional, Union

from ..errors import MalformedRecordError
from .base import SequenceRecord

__all__ = ["iter_fasta_records", "parse_header"]


def parse_header(line: bytes) -> str:
    """Accession = first whitespace-delimited token after '>' ('' when absent)."""
    header = line[1:].strip()
    try:
        h = header.decode("utf-8")
    except UnicodeDecodeError:
        h = header.decode("latin1", "ignore")
    return h.split(None, 1)[0] if h else ""


def _residues(chunks: List[bytes], acc: Optional[str], number: int) -> str:
    seq = b"".join(chunks).upper()
    if seq.endswith(b"*"):
        seq = seq[:-1]
    if seq and not seq.isalpha():
        # non-ASCII bytes, digits or punctuation inside the sequence
        raise MalformedRecordError(
            f"FASTA record {number} contains characters outside the residue alphabet",
            accession=acc, record_number=number,
        )
    return seq.decode("ascii")


def _lines(fh: Union[BinaryIO, Iterator]) -> Iterator[bytes]:
    """Stream lines; read failures (corrupt gzip, truncated stream) abort as malformed input."""
    try:
        for line in fh:
            yield line.encode("utf-8") if isinstance(line, str) else line
    except (OSError, EOFError, zlib.error) as exc:
        raise MalformedRecordError(f"Input stream could not be decoded: {exc}") from exc


def iter_fasta_records(fh: Union[BinaryIO, Iterator]) -> Iterator[SequenceRecord]:
    """
    Yield one SequenceRecord per FASTA entry, in a single forward pass.
    Residues are upper-cased with whitespace removed; a trailing stop '*' is dropped.
    Raises MalformedRecordError (aborting the read) for:
      - sequence data before the first header,
      - a header without an accession,
      - a record with no residues, or with non-letter residue bytes,
      - a stream that cannot be read or decompressed.
    """
    acc: Optional[str] = None
    chunks: List[bytes] = []
    number = 0

    def _commit() -> SequenceRecord:
        residues = _residues(chunks, acc, number)
        if not residues:
            raise MalformedRecordError(
                f"FASTA record {number} has no residues", accession=acc, record_number=number
            )
        return SequenceRecord(accession=acc, residues=residues, record_number=number)

    for line in _lines(fh):
        if line.startswith(b">"):
            if acc is not None:
                yield _commit()
            number += 1
            acc = parse_header(line)
            if not acc:
                raise MalformedRecordError(
                    f"FASTA record {number} has a header without an accession", record_number=number
                )
            chunks = []
            continue
        s = b"".join(line.split())
        if not s:
            continue
        if acc is None:
            raise MalformedRecordError(
                "Sequence data found before the first FASTA header", record_number=number + 1
            )
        chunks.append(s)
    if acc is not None:
        yield _commit()
