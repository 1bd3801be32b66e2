import io

import pytest

from seqload.errors import UnknownJobError
from seqload.jobs.registry import Job, JobRegistry, default_registry, select_jobs, split_job_names


def test_all_analysis_jobs_in_registry_order(registry):
    jobs, completion = select_jobs(registry, None, "completeA")
    assert jobs.names() == ["pfam", "prints", "smart"]
    assert jobs.summary() == "pfam,prints,smart"
    assert completion.job_id == "completeA"


def test_explicit_subset_keeps_given_order(registry):
    jobs, _ = select_jobs(registry, "smart, pfam,,smart", "completeA")
    assert jobs.names() == ["smart", "pfam"]


def test_unknown_analysis_job(registry):
    with pytest.raises(UnknownJobError) as ei:
        select_jobs(registry, "pfam,bogus", "completeA")
    assert ei.value.job_id == "bogus"
    assert "pfam" in str(ei.value)  # lists the known ids


def test_unknown_completion_job(registry):
    with pytest.raises(UnknownJobError) as ei:
        select_jobs(registry, None, "doesNotExist")
    assert ei.value.job_id == "doesNotExist"


def test_missing_completion_job(registry):
    with pytest.raises(UnknownJobError):
        select_jobs(registry, None, None)


def test_empty_analysis_list(registry):
    with pytest.raises(UnknownJobError):
        select_jobs(registry, " , ", "completeA")


def test_split_job_names():
    assert split_job_names("a, b,a,,c ") == ["a", "b", "c"]


def test_duplicate_ids_rejected():
    with pytest.raises(ValueError):
        JobRegistry([Job("pfam"), Job("pfam")])


def test_from_json(test_data_dir):
    reg = JobRegistry.from_json(test_data_dir / "jobs.json")
    assert reg.ids() == ["pfam", "prints", "completeA"]
    assert [j.job_id for j in reg.all_analysis_jobs()] == ["pfam", "prints"]
    assert reg.by_id("prints").parameters == {"BINARY": "fingerPRINTScan"}
    assert reg.by_id("nope") is None


def test_from_json_stream():
    reg = JobRegistry.from_json(io.StringIO('{"jobs": [{"id": "x"}]}'))
    assert "x" in reg and len(reg) == 1


def test_default_registry_has_completion_job():
    reg = default_registry()
    assert reg.by_id("completion") is not None
    assert not reg.by_id("completion").analysis
    assert "pfam" in [j.job_id for j in reg.all_analysis_jobs()]


def test_completion_job_named_as_analysis_rejected(registry):
    with pytest.raises(UnknownJobError) as ei:
        select_jobs(registry, "pfam,completeA", "completeA")
    assert ei.value.job_id == "completeA"


def test_completion_job_left_out_of_all_jobs():
    reg = JobRegistry([Job("pfam"), Job("finish")])  # both flagged as analysis
    jobs, completion = select_jobs(reg, None, "finish")
    assert jobs.names() == ["pfam"]
    assert completion.job_id == "finish"
