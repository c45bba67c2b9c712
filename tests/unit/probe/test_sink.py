import json
from pathlib import Path

import pytest

from reconforge.errors import ErrorCode, ReconError
from reconforge.probe.models import Classification, FetchResult
from reconforge.probe.server import snapshot_path
from reconforge.probe.sink import ResultSink, load_suffixes, write_snapshot


def _result(index=0):
    return FetchResult(
        index=index,
        suffix="admin",
        url="https://example.test/admin",
        classification=Classification.ERROR,
        elapsed_ms=8000,
        detail="TIMEOUT (8000ms)",
    )


def test_append_writes_one_line_per_result(tmp_path):
    sink = ResultSink(tmp_path / "out" / "route-results.jsonl")
    sink.truncate()

    assert sink.append(_result(0))
    assert sink.append(_result(1))

    lines = sink.path.read_text().splitlines()
    assert [json.loads(line)["index"] for line in lines] == [0, 1]
    assert json.loads(lines[0])["classification"] == "ERROR"


def test_append_failure_is_reported_not_raised(tmp_path):
    # Parent directory is a file, so the append cannot open the path
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    sink = ResultSink(blocker / "route-results.jsonl")

    assert sink.append(_result()) is False
    assert sink.failures == 1


def test_write_snapshot(tmp_path):
    target = tmp_path / "route-results.json"

    assert write_snapshot(target, [_result(0), _result(1)])

    assert len(json.loads(target.read_text())) == 2


def test_snapshot_path():
    assert snapshot_path(Path("route-results.jsonl")) == Path("route-results.json")
    assert snapshot_path(Path("out.json")) == Path("out.final.json")


def test_load_suffixes_skips_blanks_and_comments(tmp_path):
    path = tmp_path / "try.txt"
    path.write_text("# common paths\nadmin\n\n  login  \n/api/v1\n")

    assert load_suffixes(path) == ["admin", "login", "/api/v1"]


def test_load_suffixes_missing_file(tmp_path):
    with pytest.raises(ReconError) as excinfo:
        load_suffixes(tmp_path / "missing.txt")

    assert excinfo.value.code == ErrorCode.PROBE_SUFFIXES_UNREADABLE
