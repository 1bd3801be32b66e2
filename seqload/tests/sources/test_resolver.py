import gzip
import io
import logging
import os

import pytest

from seqload.errors import EmptyInputError, EmptyKind, InputNotFoundError, UnreadableInputError
from seqload.sources.resolver import ResolvedSource, effective_path, open_source, resolve_source


def _write(path, text: str):
    with open(path, "wt") as f: f.write(text)


def test_stdin_sentinel_skips_filesystem(monkeypatch):
    def boom(*_a, **_k):
        raise AssertionError("filesystem touched for '-'")
    monkeypatch.setattr(os.path, "exists", boom)
    monkeypatch.setattr(os, "access", boom)

    fake = io.BytesIO(b">P1\nMKV\n")
    src = resolve_source("-", stdin=fake)
    assert src.strategy == "stdin"
    assert src.stream is fake
    src.close()
    assert not fake.closed  # never closes stdin


def test_file_is_opened(tmp_path):
    fa = tmp_path / "x.fasta"
    _write(fa, ">P1\nMKV\n")
    with open_source(str(fa)) as src:
        assert src.strategy == "file"
        assert src.stream.read() == b">P1\nMKV\n"
        stream = src.stream
    assert stream.closed


def test_gzip_file(tmp_path):
    fa = tmp_path / "x.fasta.gz"
    with gzip.open(fa, "wb") as f:
        f.write(b">P1\nMKV\n")
    with open_source(str(fa)) as src:
        assert src.stream.read() == b">P1\nMKV\n"


def test_empty_orfs_file_is_upstream_empty(tmp_path):
    fa = tmp_path / "input.orfs.fasta"
    fa.touch()
    with pytest.raises(EmptyInputError) as ei:
        resolve_source(str(fa))
    assert ei.value.kind is EmptyKind.UPSTREAM
    assert ei.value.is_upstream
    assert ei.value.path == str(fa)


def test_empty_user_file(tmp_path):
    fa = tmp_path / "proteins.fasta"
    fa.touch()
    with pytest.raises(EmptyInputError) as ei:
        resolve_source(str(fa))
    assert ei.value.kind is EmptyKind.USER
    assert not ei.value.is_upstream


def test_unreadable_file(tmp_path, monkeypatch):
    fa = tmp_path / "locked.fasta"
    _write(fa, ">P1\nMKV\n")
    monkeypatch.setattr(os, "access", lambda p, mode: False)
    with pytest.raises(UnreadableInputError) as ei:
        resolve_source(str(fa))
    assert str(fa) in str(ei.value)


def test_directory_is_unreadable(tmp_path):
    with pytest.raises(UnreadableInputError):
        resolve_source(str(tmp_path))


def test_not_found_names_both_strategies(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(InputNotFoundError) as ei:
        resolve_source("nope.fasta")
    msg = str(ei.value)
    assert "filesystem path does not exist" in msg
    assert "resource lookup" in msg
    assert "nope.fasta" in msg


def test_missing_absolute_path_is_not_a_resource(tmp_path):
    # same relative name as a bundled resource, but rooted elsewhere
    missing = tmp_path / "data" / "test_proteins.fasta"
    with pytest.raises(InputNotFoundError) as ei:
        resolve_source(str(missing))
    assert ei.value.path == str(missing)
    assert "resource lookup" not in str(ei.value)
    with pytest.raises(InputNotFoundError):
        resolve_source("/data/test_proteins.fasta")


def test_packaged_resource(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)  # relative path must not exist on disk
    with open_source("data/test_proteins.fasta") as src:
        assert src.strategy == "resource"
        assert src.stream.read().startswith(b">")


def test_resource_lookup_disabled(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(InputNotFoundError):
        resolve_source("data/test_proteins.fasta", resource_package=None)


def test_close_failure_is_logged_not_raised(caplog):
    class _BadClose(io.BytesIO):
        def close(self):
            raise OSError("disk went away")

    src = ResolvedSource(path="x.fasta", strategy="file", stream=_BadClose(b""))
    with caplog.at_level(logging.WARNING):
        src.close()
    assert "Unable to cleanly close" in caplog.text


def test_stream_closed_when_body_raises(tmp_path):
    fa = tmp_path / "x.fasta"
    _write(fa, ">P1\nMKV\n")
    seen = {}
    with pytest.raises(RuntimeError):
        with open_source(str(fa)) as src:
            seen["stream"] = src.stream
            raise RuntimeError("boom")
    assert seen["stream"].closed


def test_effective_path_override(tmp_path):
    assert effective_path("user.fa") == "user.fa"
    assert effective_path("user.fa", override_name="orfs.fasta", temp_dir=tmp_path) == str(tmp_path / "orfs.fasta")
