import functools
import multiprocessing
import os
import sys
from concurrent.futures import ProcessPoolExecutor

import pytest

from agda_docs import coordinator
from agda_docs.coordinator import (
    ErrorPolicy,
    ExecutionStrategy,
    _contexts,
    partition,
    run_pipeline,
)
from agda_docs.errors import IOFailure, UnitFailure
from agda_docs.indexer import PositionMappings
from agda_docs.parser import read_document
from agda_docs.search import load_search_index


def test_partition():
    files = [f"M{i}.html" for i in range(10)]
    batches = partition(files, 4)
    assert [len(b) for b in batches] == [3, 3, 3, 1]
    assert [name for b in batches for name in b] == files

    assert partition(files, 20) == [[name] for name in files]
    assert partition(files, 1) == [files]
    assert partition([], 4) == []


def test_unit_contexts_get_independent_mappings(tmp_path):
    mappings = PositionMappings({"A.html": {"1": 1}})
    contexts = _contexts([["A.html"], ["B.html"]], tmp_path, tmp_path, mappings, ErrorPolicy.CONTINUE)
    contexts[0].mappings["A.html"]["1"] = 99
    assert contexts[1].mappings["A.html"]["1"] == 1
    assert mappings.lookup("A.html", "1") == 1


def test_end_to_end_sequential(docs_dir, out_dir):
    result = run_pipeline(docs_dir, out_dir, strategy=ExecutionStrategy.SEQUENTIAL, show_progress=False)

    assert result.documents == ["Consumer.html", "Data.Nat.html", "ModuleA.html"]
    assert sorted(result.processed) == result.documents
    assert result.errors == []
    assert result.unresolved == {"Consumer.html": 2}
    assert [p.name for p in result.index_files] == ["search-index.json"]

    consumer = read_document(out_dir / "Consumer.html")
    assert consumer.find("a", attrs={"data-original-href": "#42"})["href"] == "#B1-L5"
    assert consumer.find("a", attrs={"data-original-href": "ModuleA.html#100"})["href"] == "ModuleA.html#B1-L3"
    assert consumer.find("a", href="#999") is not None

    module_a = read_document(out_dir / "ModuleA.html")
    assert [r["id"] for r in module_a.select("pre.Agda")] == ["B1", "B2"]
    assert module_a.find("a", attrs={"data-original-href": "#100"})["href"] == "#B2-L3"
    assert module_a.find(id="B2-L3") is not None
    # Every rewritten same-document link lands on an existing line anchor
    for link in module_a.find_all("a", attrs={"data-hoverable": "true"}):
        assert module_a.find(id=link["href"][1:]) is not None

    # Input is left untouched
    assert "B1-L1" not in (docs_dir / "ModuleA.html").read_text(encoding="utf-8")

    index = load_search_index(out_dir)
    assert sorted(index) == result.documents
    suc = [e for e in index["Data.Nat.html"] if e.content == "suc"]
    assert len(suc) == 1
    assert suc[0].line_number == 5
    assert suc[0].anchor == "54"


def test_workers_match_sequential(docs_dir, tmp_path):
    sequential = run_pipeline(docs_dir, tmp_path / "seq", strategy="sequential", show_progress=False)
    workers = run_pipeline(docs_dir, tmp_path / "work", jobs=2, strategy="workers", show_progress=False)

    assert sorted(workers.processed) == sorted(sequential.processed)
    assert workers.unresolved == sequential.unresolved
    for name in sequential.documents + ["search-index.json"]:
        assert (tmp_path / "work" / name).read_text(encoding="utf-8") == \
            (tmp_path / "seq" / name).read_text(encoding="utf-8")


@pytest.mark.parametrize("strategy", ["sequential", "workers"])
def test_failed_document_continues(docs_dir, out_dir, strategy, capsys):
    """A document that cannot be written is reported; the rest still get processed."""
    (out_dir / "Data.Nat.html").mkdir(parents=True)

    result = run_pipeline(docs_dir, out_dir, jobs=2, strategy=strategy, show_progress=False)

    assert [name for name, _ in result.errors] == ["Data.Nat.html"]
    assert sorted(result.processed) == ["Consumer.html", "ModuleA.html"]
    assert sorted(load_search_index(out_dir)) == ["Consumer.html", "ModuleA.html"]
    assert "1 files failed to process" in capsys.readouterr().out


@pytest.mark.parametrize("strategy", ["sequential", "workers"])
def test_fail_fast_aborts(docs_dir, out_dir, strategy):
    (out_dir / "Data.Nat.html").mkdir(parents=True)
    with pytest.raises(UnitFailure):
        run_pipeline(docs_dir, out_dir, jobs=2, strategy=strategy,
                     error_policy=ErrorPolicy.ABORT, show_progress=False)
    assert not (out_dir / "search-index.json").exists()


def test_interim_index_is_replaced(docs_dir, out_dir, monkeypatch):
    written = []
    real_write = coordinator.write_search_index

    def recording_write(output_dir, index, *args):
        written.append(index)
        return real_write(output_dir, index, *args)

    monkeypatch.setattr(coordinator, "write_search_index", recording_write)
    run_pipeline(docs_dir, out_dir, strategy="sequential", interim_index=True, show_progress=False)

    assert len(written) == 2
    interim, final = written
    assert all(e.kind != "code" for entries in interim.values() for e in entries)
    assert any(e.kind == "code" for entries in final.values() for e in entries)
    assert load_search_index(out_dir) == final


def test_in_place(docs_dir):
    result = run_pipeline(docs_dir, strategy="sequential", show_progress=False)
    assert [p.name for p in result.index_files] == ["search-index.json"]
    soup = read_document(docs_dir / "ModuleA.html")
    assert soup.find(id="B1-L1") is not None
    assert soup.find("script", src="search.js") is not None


def test_chunked_index_from_pipeline(docs_dir, out_dir):
    result = run_pipeline(docs_dir, out_dir, strategy="sequential", chunk_size=5,
                          max_chars=1200, show_progress=False)
    assert "search-index-metadata.json" in [p.name for p in result.index_files]
    assert not (out_dir / "search-index.json").exists()
    assert sorted(load_search_index(out_dir)) == result.documents


def test_missing_input_directory(tmp_path):
    with pytest.raises(IOFailure):
        run_pipeline(tmp_path / "nope", show_progress=False)


def test_no_documents(tmp_path):
    (tmp_path / "readme.txt").write_text("nothing here")
    with pytest.raises(IOFailure):
        run_pipeline(tmp_path, show_progress=False)


def _exit_worker(input_dir, output_dir, document, mappings):
    os._exit(3)


@pytest.mark.skipif(sys.platform == "win32", reason="needs the fork start method")
def test_dead_worker_is_a_unit_failure(docs_dir, out_dir, monkeypatch):
    """A worker process that exits mid-batch fails the run."""
    fork = multiprocessing.get_context("fork")
    monkeypatch.setattr(coordinator, "ProcessPoolExecutor", functools.partial(ProcessPoolExecutor, mp_context=fork))
    monkeypatch.setattr(coordinator, "process_document", _exit_worker)

    with pytest.raises(UnitFailure):
        run_pipeline(docs_dir, out_dir, jobs=2, strategy="workers", show_progress=False)
    assert not (out_dir / "search-index.json").exists()
