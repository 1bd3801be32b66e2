# seqload/jobs/registry.py
from __future__ import annotations

import json
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, TextIO, Tuple, Union

from ..errors import UnknownJobError

__all__ = [
    "Job",
    "JobRegistry",
    "JobSet",
    "select_jobs",
    "split_job_names",
    "default_registry",
]


@dataclass(frozen=True)
class Job:
    job_id: str
    description: str = ""
    analysis: bool = True     # False for completion / housekeeping jobs
    parameters: Mapping[str, str] = field(default_factory=dict)


class JobRegistry:
    """
    Immutable, ordered registry of jobs.
    Constructed explicitly and handed to whoever needs it.
    """

    def __init__(self, jobs: Iterable[Job]):
        by_id: Dict[str, Job] = {}
        for job in jobs:
            if job.job_id in by_id:
                raise ValueError(f"duplicate job id in registry: {job.job_id!r}")
            by_id[job.job_id] = job
        self._by_id = by_id

    def __iter__(self) -> Iterator[Job]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._by_id

    def ids(self) -> List[str]:
        return list(self._by_id)

    def by_id(self, job_id: str) -> Optional[Job]:
        return self._by_id.get(job_id)

    def all_analysis_jobs(self) -> List[Job]:
        return [j for j in self._by_id.values() if j.analysis]

    @classmethod
    def from_dict(cls, data: Mapping) -> "JobRegistry":
        """
        {"jobs": [{"id": "pfam", "description": "...", "analysis": true,
                   "parameters": {...}}, ...]}
        """
        jobs = []
        for item in data.get("jobs", []):
            jobs.append(Job(
                job_id=str(item["id"]),
                description=str(item.get("description", "")),
                analysis=bool(item.get("analysis", True)),
                parameters={str(k): str(v) for k, v in (item.get("parameters") or {}).items()},
            ))
        return cls(jobs)

    @classmethod
    def from_json(cls, source: Union[str, Path, TextIO]) -> "JobRegistry":
        if hasattr(source, "read"):
            return cls.from_dict(json.load(source))  # type: ignore[arg-type]
        with open(source, "r", encoding="utf-8") as fh:
            return cls.from_dict(json.load(fh))


def default_registry() -> JobRegistry:
    """Registry bundled with the package (seqload/data/jobs.json)."""
    res = resources.files("seqload").joinpath("data/jobs.json")
    with res.open("r", encoding="utf-8") as fh:
        return JobRegistry.from_dict(json.load(fh))


@dataclass(frozen=True)
class JobSet:
    """Ordered, duplicate-free set of analysis jobs selected for a run."""
    jobs: Tuple[Job, ...] = ()

    def __iter__(self) -> Iterator[Job]:
        return iter(self.jobs)

    def __len__(self) -> int:
        return len(self.jobs)

    def names(self) -> List[str]:
        return [j.job_id for j in self.jobs]

    def summary(self) -> str:
        return ",".join(self.names())


def split_job_names(names: str) -> List[str]:
    out: List[str] = []
    for raw in names.split(","):
        name = raw.strip()
        if name and name not in out:
            out.append(name)
    return out


def _resolve(registry: JobRegistry, name: Optional[str], what: str) -> Job:
    if not name:
        raise UnknownJobError(f"No {what} job name was given", job_id=name)
    job = registry.by_id(name)
    if job is None:
        raise UnknownJobError(
            f"Unknown {what} job {name!r}; known jobs: {', '.join(registry.ids()) or '(none)'}",
            job_id=name,
        )
    return job


def select_jobs(
    registry: JobRegistry,
    analysis_job_names: Optional[str],
    completion_job_name: Optional[str],
) -> Tuple[JobSet, Job]:
    """
    None -> every analysis job of the registry, in registry order.
    Otherwise a comma-delimited list, each name resolved against the registry.
    """
    completion = _resolve(registry, completion_job_name, "completion")
    if analysis_job_names is None:
        analysis = tuple(j for j in registry.all_analysis_jobs() if j.job_id != completion.job_id)
    else:
        names = split_job_names(analysis_job_names)
        if not names:
            raise UnknownJobError(f"Empty analysis job list {analysis_job_names!r}")
        if completion.job_id in names:
            raise UnknownJobError(
                f"Job {completion.job_id!r} cannot be both an analysis and the completion job",
                job_id=completion.job_id,
            )
        analysis = tuple(_resolve(registry, n, "analysis") for n in names)
    return JobSet(analysis), completion
