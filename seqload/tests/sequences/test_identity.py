import hashlib

from seqload.sequences.identity import PERS_SEQ_IDENTITY, sequence_identity


def test_identity_depends_on_residues_only():
    a = sequence_identity("MKVLAAGIVGLLLAQ")
    b = sequence_identity("MKVLAAGIVGLLLAQ")
    assert a == b
    assert len(a) == 64
    assert sequence_identity("MKVLAAGIVGLLLAA") != a


def test_identity_is_personalized_blake2b():
    h = hashlib.blake2b(b"MKV", digest_size=32, person=PERS_SEQ_IDENTITY)
    assert sequence_identity("MKV") == h.hexdigest()
    assert sequence_identity("M") != sequence_identity("MM")
