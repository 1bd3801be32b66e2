# seqload/sources/resolver.py
from __future__ import annotations

import gzip
import io
import logging
import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union

from ..errors import (
    EmptyInputError,
    EmptyKind,
    InputNotFoundError,
    UnreadableInputError,
)

__all__ = [
    "STDIN_SENTINEL",
    "ResolvedSource",
    "effective_path",
    "resolve_source",
    "open_source",
]

logger = logging.getLogger(__name__)

STDIN_SENTINEL = "-"
BUFFER_SIZE = 1024 * 1024  # 1MiB buffered reads

# File names produced by the ORF prediction tool (getorf) carry this marker.
UPSTREAM_EMPTY_MARKER = "orfs"


@dataclass
class ResolvedSource:
    """
    An opened input stream plus how it was found.
      strategy: 'stdin' | 'file' | 'resource'
    Closing never closes the process's standard input.
    """
    path: str
    strategy: str
    stream: BinaryIO

    def close(self) -> None:
        if self.strategy == "stdin":
            return
        try:
            self.stream.close()
        except (OSError, ValueError) as exc:
            logger.warning("Unable to cleanly close the input stream from %s: %s", self.path, exc)


def effective_path(
    path: Union[str, Path],
    *,
    override_name: Optional[str] = None,
    temp_dir: Optional[Union[str, Path]] = None,
) -> str:
    """
    The path actually loaded. An overriding file name (e.g. the protein file
    generated from a nucleotide input) replaces the user path and lives in temp_dir.
    """
    if override_name:
        base = Path(temp_dir) if temp_dir is not None else Path(".")
        return str(base / override_name)
    return str(path)


def _open_file(p: str) -> BinaryIO:
    if p.endswith((".gz", ".bgz")):
        return io.BufferedReader(gzip.open(p, "rb"), buffer_size=BUFFER_SIZE)
    return open(p, "rb", buffering=BUFFER_SIZE)


def _open_resource(p: str, package: Optional[str]) -> Optional[BinaryIO]:
    if not package:
        return None
    try:
        res = resources.files(package).joinpath(p)
    except ModuleNotFoundError:
        logger.debug("Resource package %s is not importable", package)
        return None
    if not res.is_file():
        return None
    return res.open("rb")


def resolve_source(
    path: Union[str, Path],
    *,
    resource_package: Optional[str] = "seqload",
    stdin: Optional[BinaryIO] = None,
) -> ResolvedSource:
    """
    Turn a user path into an open byte stream. First success wins:
      1) "-"               -> standard input (no filesystem checks)
      2) existing file     -> opened (unreadable / empty are errors)
      3) packaged resource -> relative paths only, looked up inside resource_package
    Otherwise InputNotFoundError naming both attempts.
    """
    p = str(path)
    if p == STDIN_SENTINEL:
        stream = stdin if stdin is not None else sys.stdin.buffer
        return ResolvedSource(path=p, strategy="stdin", stream=stream)

    if os.path.exists(p):
        if os.path.isdir(p) or not os.access(p, os.R_OK):
            raise UnreadableInputError(
                f"The input file {p} is visible but cannot be read. Please check the file permissions.",
                path=p,
            )
        if os.path.getsize(p) == 0:
            if UPSTREAM_EMPTY_MARKER in os.path.basename(p):
                raise EmptyInputError(
                    f"The ORF prediction tool produced an empty result file ({p}).",
                    kind=EmptyKind.UPSTREAM, path=p,
                )
            raise EmptyInputError(
                f"The input file {p} is readable but empty. Please provide a valid (not empty) FASTA input file.",
                kind=EmptyKind.USER, path=p,
            )
        try:
            stream = _open_file(p)
        except OSError as exc:
            raise UnreadableInputError(f"The input file {p} cannot be opened: {exc}", path=p) from exc
        return ResolvedSource(path=p, strategy="file", stream=stream)

    if os.path.isabs(p):
        # absolute paths name the filesystem only
        raise InputNotFoundError(
            f"Cannot find the input file located at {p} - filesystem path does not exist.",
            path=p,
        )
    logger.debug("The file %s does not exist. Attempting to load it as a packaged resource.", p)
    res = _open_resource(p, resource_package)
    if res is not None:
        return ResolvedSource(path=p, strategy="resource", stream=res)

    raise InputNotFoundError(
        f"Cannot find the input file located at {p} - filesystem path does not exist "
        f"and resource lookup in package {resource_package!r} found nothing.",
        path=p,
    )


@contextmanager
def open_source(
    path: Union[str, Path],
    *,
    resource_package: Optional[str] = "seqload",
    stdin: Optional[BinaryIO] = None,
) -> Iterator[ResolvedSource]:
    """Scoped resolve_source(): the stream is closed on every exit path."""
    src = resolve_source(path, resource_package=resource_package, stdin=stdin)
    try:
        yield src
    finally:
        src.close()
