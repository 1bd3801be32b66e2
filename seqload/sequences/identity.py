# seqload/sequences/identity.py
from __future__ import annotations

import hashlib

__all__ = ["SequenceIdentity", "PERS_SEQ_IDENTITY", "sequence_identity"]

SequenceIdentity = str

# Personalization tag, at most 16 bytes for blake2b.
PERS_SEQ_IDENTITY = b"seqload-protein"
DIGEST_SIZE = 32


def sequence_identity(residues: str) -> SequenceIdentity:
    """Content hash of a residue string; the accession never participates."""
    h = hashlib.blake2b(digest_size=DIGEST_SIZE, person=PERS_SEQ_IDENTITY)
    h.update(residues.encode("utf-8"))
    return h.hexdigest()
