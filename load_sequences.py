#!/usr/bin/env python3
"""
load_sequences.py

Workflow:
  1) Resolve the analysis job set and the completion job against the job registry.
  2) Resolve --sequence ("-" = stdin, file path, or packaged resource).
  3) Stream FASTA records; store unseen sequences (keyed by content hash) and
     add accessions to known ones.
  4) For every unseen sequence, persist one step instance per analysis job plus
     a completion step depending on all of them, one transaction per sequence.

Re-running against the same --store schedules nothing for sequences already stored.

Exit codes:
  0  done (also when the ORF prediction tool produced an empty file)
  2  input / job / persistence error
"""

from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List

from seqload import LoadConfig, SeqLoadError, load_sequences
from seqload.graph.builder import BarrierScope
from seqload.jobs.registry import JobRegistry, default_registry
from seqload.store.sqlite import SqliteStore


def _parse_kv_pairs(items: List[str]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for item in items or []:
        if "=" not in item:
            raise SystemExit(f"[error] Parameter '{item}' is not key=value")
        k, v = item.split("=", 1)
        k = k.strip()
        v = v.strip()
        if not k:
            raise SystemExit(f"[error] Empty key in parameter '{item}'")
        out[k] = v
    return out


def _parse_bool(s: str) -> bool:
    v = s.strip().lower()
    if v in ("true", "yes", "1", "on"):
        return True
    if v in ("false", "no", "0", "off"):
        return False
    raise argparse.ArgumentTypeError(f"expected true/false, got {s!r}")


def atomic_write_json(path: Path, data: Dict) -> None:
    tmp = path.with_suffix(".tmp")
    with open(tmp, "w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2, sort_keys=True)
    tmp.replace(path)


def parse_args(argv: List[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Load protein sequences and schedule analysis step instances for new ones.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("--sequence", required=True, help="Protein FASTA (.fa/.fasta[.gz]); '-' reads stdin")
    p.add_argument("--store", required=True, type=Path, help="sqlite database holding sequences and step instances")
    p.add_argument("--jobs", type=Path, default=None, help="Job registry JSON (default: registry bundled with seqload)")
    p.add_argument("--analyses", default=None, help="Comma-separated analysis job ids (default: all analysis jobs)")
    p.add_argument("--completion-job", required=True, help="Job id of the completion step")
    p.add_argument("--use-match-lookup", type=_parse_bool, default=True,
                   help="Forwarded to every step instance as USE_MATCH_LOOKUP_SERVICE")
    p.add_argument("--barrier", choices=[b.value for b in BarrierScope], default=BarrierScope.SEQUENCE.value,
                   help="Completion barrier per new sequence or one for the whole run")
    p.add_argument("--reconcile", action="store_true",
                   help="Re-create analysis steps missing for already stored sequences")
    p.add_argument("--override-fasta", default=None,
                   help="Load this file name from --temp-dir instead of --sequence (e.g. predicted ORFs)")
    p.add_argument("--temp-dir", type=Path, default=None, help="Directory holding --override-fasta")
    p.add_argument("--param", action="append", default=[], help="Step parameter key=value forwarded to every step (repeatable)")
    p.add_argument("--summary-out", type=Path, default=None, help="Write the run summary as JSON here")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return p.parse_args(argv)


def main(argv: List[str]) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    if args.jobs is not None and not args.jobs.exists():
        print(f"[error] --jobs '{args.jobs}' does not exist.", file=sys.stderr)
        return 2
    registry = JobRegistry.from_json(args.jobs) if args.jobs is not None else default_registry()

    config = LoadConfig(
        input_path=args.sequence,
        registry=registry,
        completion_job_name=args.completion_job,
        analysis_job_names=args.analyses,
        use_match_lookup=args.use_match_lookup,
        barrier=BarrierScope(args.barrier),
        reconcile=args.reconcile,
        override_name=args.override_fasta,
        temp_dir=args.temp_dir,
        parameters=_parse_kv_pairs(args.param),
    )

    args.store.parent.mkdir(parents=True, exist_ok=True)
    try:
        with SqliteStore(args.store) as store:
            summary = load_sequences(config, store, store)
    except SeqLoadError as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 2

    if summary.empty_upstream:
        print(f"[ok] No proteins to load from {summary.input_path}; nothing scheduled.")
    else:
        print(
            f"[info] records={summary.records} new={summary.new_sequences} "
            f"existing={summary.existing_sequences} steps={summary.steps_created}"
        )
        print(f"[info] Analyses: {','.join(summary.analysis_job_names)}")
    if args.summary_out is not None:
        atomic_write_json(args.summary_out, summary.to_dict())
        print(f"[info] Summary written → {args.summary_out}")
    print("[ok] Done.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
