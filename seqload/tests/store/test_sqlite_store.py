import pytest

from seqload.errors import SequenceStoreError, StepPersistError
from seqload.store.base import StepInstance
from seqload.store.sqlite import SqliteStore


def _steps(identity: str):
    a = StepInstance(f"pfam:{identity}", "pfam", identity, {"JOB_ID": "pfam"})
    b = StepInstance(f"prints:{identity}", "prints", identity, {"JOB_ID": "prints"})
    c = StepInstance(f"done:{identity}", "done", identity, {}, dependencies=(a.step_id, b.step_id))
    return [a, b, c]


def test_upsert_and_lookup(tmp_path):
    with SqliteStore(tmp_path / "s.db") as st:
        assert st.lookup("h1") is None
        st.upsert("h1", "P1")
        st.upsert("h1", "P2")
        st.upsert("h1", "P1")
        assert st.lookup("h1").accessions == ["P1", "P2"]


def test_batch_roundtrip_and_reopen(tmp_path):
    db = tmp_path / "s.db"
    with SqliteStore(db) as st:
        st.upsert("h1", "P1")
        st.create_batch(_steps("h1"))
    with SqliteStore(db) as st:
        assert st.lookup("h1").accessions == ["P1"]
        assert st.exists("h1", "pfam") and st.exists("h1", "prints")
        assert not st.exists("h2", "pfam")
        done = st.get("done:h1")
        assert done.dependencies == ("pfam:h1", "prints:h1")
        assert st.get("pfam:h1").parameters == {"JOB_ID": "pfam"}
        assert st.count_steps() == 3
        assert st.count_steps("pfam") == 1
        assert [s.step_id for s in st.steps_for("h1")] == ["pfam:h1", "prints:h1", "done:h1"]


def test_uncommitted_sequence_is_discarded(tmp_path):
    db = tmp_path / "s.db"
    with SqliteStore(db) as st:
        st.upsert("h1", "P1")      # no batch follows: crash before persist
    with SqliteStore(db) as st:
        assert st.lookup("h1") is None
        assert st.count_sequences() == 0


def test_dependencies_merge_on_upsert(tmp_path):
    with SqliteStore(tmp_path / "s.db") as st:
        st.create_batch([StepInstance("done:run", "done", None, {}, dependencies=("a",))])
        st.create_batch([StepInstance("done:run", "done", None, {}, dependencies=("b", "a"))])
        assert st.get("done:run").dependencies == ("a", "b")
        assert st.count_steps() == 1


def test_failed_batch_rolls_back_sequence_too(tmp_path):
    db = tmp_path / "s.db"
    with SqliteStore(db) as st:
        st.upsert("h1", "P1")
        bad = StepInstance("x:h1", None, "h1", {})  # job_id NOT NULL
        with pytest.raises(StepPersistError):
            st.create_batch(_steps("h1")[:1] + [bad])
        assert st.lookup("h1") is None
        assert st.count_steps() == 0


def test_sequence_store_failures_name_the_sequence_store(tmp_path):
    with SqliteStore(tmp_path / "s.db") as st:
        st.upsert("h1", "P1")
        st.create_batch([])
        st.conn.execute("DROP TABLE accession")
        with pytest.raises(SequenceStoreError) as ei:
            st.lookup("h1")
        assert ei.value.identity == "h1"
        with pytest.raises(SequenceStoreError) as ei:
            st.upsert("h2", "P2")
        assert not isinstance(ei.value, StepPersistError)
        assert ei.value.accession == "P2"
        assert "Sequence store write failed" in str(ei.value)


def test_unopenable_store(tmp_path):
    with pytest.raises(SequenceStoreError):
        SqliteStore(tmp_path / "missing-dir" / "s.db")
