from pathlib import Path
import pytest

from seqload.jobs.registry import Job, JobRegistry
from seqload.store.base import InMemorySequenceStore, InMemoryStepInstanceStore

# Fixture to initialize the location of test data
# files for use in tests.  E.g.
#
#   def test_something(test_data_dir):
#       foo = test_data_dir / "proteins.fasta"
#
@pytest.fixture(scope="session")
def test_data_dir() -> Path:
    # tests/data
    return Path(__file__).resolve().parent / "data"

@pytest.fixture
def registry() -> JobRegistry:
    return JobRegistry([
        Job("pfam"),
        Job("prints"),
        Job("smart"),
        Job("completeA", analysis=False),
    ])

@pytest.fixture
def seq_store() -> InMemorySequenceStore:
    return InMemorySequenceStore()

@pytest.fixture
def step_store() -> InMemoryStepInstanceStore:
    return InMemoryStepInstanceStore()
