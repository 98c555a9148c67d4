#!/usr/bin/env python3
"""
Pipeline coordinator.

Order of a run:
1. List the documents.
2. Build the position mappings over ALL documents, sequentially. A document's
   links may point into any other document, so this always finishes first.
3. Split the documents into contiguous batches.
4. Transform every batch in an isolated execution unit that receives its own
   copy of the mapping table: parse -> rewrite links -> decorate -> write.
5. Aggregate the unit reports.
6. Rebuild the search index from the transformed output.

Two execution strategies share one per-file error policy:
    - WORKERS: one process per batch (ProcessPoolExecutor)
    - SEQUENTIAL: small in-process batches with a collection pass in between
"""
import gc
import math
import sys
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from . import config
from .decorator import decorate_document
from .errors import IOFailure, UnitFailure
from .indexer import MappingTable, PositionMappings, build_mappings
from .links import UnresolvedLink, report_unresolved, rewrite_links
from .parser import read_document, serialize_document
from .search import build_search_index, write_search_index
from .utils import ProgressCallback, batched, create_progress_bar, list_documents


class ExecutionStrategy(str, Enum):
    WORKERS = "workers"
    SEQUENTIAL = "sequential"


class ErrorPolicy(str, Enum):
    CONTINUE = "continue"  # log the failed file, keep going
    ABORT = "abort"        # first failed file aborts the run


@dataclass
class UnitContext:
    """Everything an execution unit needs. Must stay picklable."""
    unit: int
    input_dir: str
    output_dir: str
    files: List[str]
    mappings: MappingTable
    error_policy: ErrorPolicy = ErrorPolicy.CONTINUE


@dataclass
class UnitReport:
    unit: int
    processed: List[str] = field(default_factory=list)
    errors: List[Tuple[str, str]] = field(default_factory=list)
    unresolved: Dict[str, int] = field(default_factory=dict)


@dataclass
class PipelineResult:
    documents: List[str]
    processed: List[str]
    errors: List[Tuple[str, str]]
    unresolved: Dict[str, int]
    mappings: PositionMappings
    index_files: List[Path]


def transform_document(
    soup: BeautifulSoup, document: str, mappings: PositionMappings
) -> Tuple[str, List[UnresolvedLink]]:
    """Rewrite links, decorate and serialize one parsed document."""
    diagnostics = rewrite_links(soup, document, mappings)
    decorate_document(soup)
    return serialize_document(soup), diagnostics


def process_document(
    input_dir: Path, output_dir: Path, document: str, mappings: PositionMappings
) -> List[UnresolvedLink]:
    soup = read_document(input_dir / document)
    html, diagnostics = transform_document(soup, document, mappings)

    output_path = output_dir / document
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(html, encoding="utf-8")
    except OSError as e:
        raise IOFailure(f"Could not write {output_path}: {e}") from e
    return diagnostics


def run_unit(context: UnitContext) -> UnitReport:
    """Transform one batch. Runs inside a worker process or in-process."""
    mappings = PositionMappings.set_global_mappings(context.mappings)
    input_dir = Path(context.input_dir)
    output_dir = Path(context.output_dir)
    report = UnitReport(unit=context.unit)

    for document in context.files:
        try:
            diagnostics = process_document(input_dir, output_dir, document, mappings)
        except Exception as e:
            if context.error_policy is ErrorPolicy.ABORT:
                raise
            print(f"  Error processing {document}: {e}", file=sys.stderr)
            report.errors.append((document, str(e)))
            continue

        report_unresolved(document, diagnostics)
        report.processed.append(document)
        if diagnostics:
            report.unresolved[document] = len(diagnostics)

    return report


def partition(files: List[str], parallelism: int) -> List[List[str]]:
    """Contiguous batches, one per unit; never more units than documents."""
    if not files:
        return []
    units = max(1, min(parallelism, len(files)))
    return batched(files, math.ceil(len(files) / units))


def _contexts(
    batches: List[List[str]],
    input_dir: Path,
    output_dir: Path,
    mappings: PositionMappings,
    error_policy: ErrorPolicy,
) -> List[UnitContext]:
    return [
        UnitContext(
            unit=unit,
            input_dir=str(input_dir),
            output_dir=str(output_dir),
            files=batch,
            mappings=mappings.get_global_mappings(),
            error_policy=error_policy,
        )
        for unit, batch in enumerate(batches)
    ]


def run_workers(
    contexts: List[UnitContext],
    total: int,
    progress_callback: Optional[ProgressCallback] = None,
) -> List[UnitReport]:
    """Run every unit in its own process. A failed unit fails the run."""
    reports: List[UnitReport] = []
    done = 0
    executor = ProcessPoolExecutor(max_workers=len(contexts))
    failed = False
    try:
        futures = {executor.submit(run_unit, ctx): ctx for ctx in contexts}
        for future in as_completed(futures):
            ctx = futures[future]
            try:
                report = future.result()
            except Exception as e:
                failed = True
                raise UnitFailure(ctx.unit, str(e) or type(e).__name__) from e
            reports.append(report)
            done += len(ctx.files)
            if progress_callback:
                progress_callback(done, total)
    finally:
        # In-flight siblings of a failed unit are abandoned, not awaited
        executor.shutdown(wait=not failed, cancel_futures=failed)

    return sorted(reports, key=lambda r: r.unit)


def run_sequential(
    contexts: List[UnitContext],
    total: int,
    progress_callback: Optional[ProgressCallback] = None,
) -> List[UnitReport]:
    """Run the units one after another in this process."""
    reports: List[UnitReport] = []
    done = 0
    for ctx in contexts:
        try:
            reports.append(run_unit(ctx))
        except Exception as e:
            raise UnitFailure(ctx.unit, str(e) or type(e).__name__) from e
        done += len(ctx.files)
        if progress_callback:
            progress_callback(done, total)
        # Let the parsed trees of this batch go before the next one
        gc.collect()
    return reports


def run_pipeline(
    input_dir: Path,
    output_dir: Optional[Path] = None,
    jobs: int = config.DEFAULT_JOBS,
    strategy: ExecutionStrategy = ExecutionStrategy.WORKERS,
    error_policy: ErrorPolicy = ErrorPolicy.CONTINUE,
    interim_index: bool = False,
    chunk_size: int = config.CHUNK_SIZE,
    max_chars: int = config.MAX_SERIALIZED_CHARS,
    show_progress: bool = True,
) -> PipelineResult:
    """
    Run a full indexing, transformation and search-index pass.

    Args:
        input_dir: Directory with the Agda-generated HTML files.
        output_dir: Target directory; defaults to ``input_dir`` (in place).
        jobs: Requested parallelism for the WORKERS strategy.
        strategy: How execution units are run.
        error_policy: What a failing document does to the run.
        interim_index: Also write a search index right after indexing.
        chunk_size: Entry cap per search index chunk.
        max_chars: Largest single search index artifact.
        show_progress: Draw tqdm progress bars.
    """
    strategy = ExecutionStrategy(strategy)
    error_policy = ErrorPolicy(error_policy)

    input_dir = Path(input_dir).resolve()
    if not input_dir.is_dir():
        raise IOFailure(f"Input directory not found at {input_dir}")
    output_dir = Path(output_dir).resolve() if output_dir else input_dir
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IOFailure(f"Could not create output directory {output_dir}: {e}") from e

    files = list_documents(input_dir)
    if not files:
        raise IOFailure(f"No HTML files found in {input_dir}")
    print(f"Found {len(files)} HTML files to process")

    # 1. Index everything before touching any document
    mappings = build_mappings(input_dir, create_progress_bar("Indexing") if show_progress else None)

    if interim_index:
        write_search_index(output_dir, build_search_index(mappings, input_dir), max_chars, chunk_size)

    # 2. Fan out
    if strategy is ExecutionStrategy.WORKERS:
        batches = partition(files, jobs)
    else:
        batches = batched(files, config.SEQUENTIAL_BATCH_SIZE)
    contexts = _contexts(batches, input_dir, output_dir, mappings, error_policy)

    print(f"--> Processing HTML files ({strategy.value}, {len(contexts)} units)...")
    progress = create_progress_bar("Processing") if show_progress else None
    if strategy is ExecutionStrategy.WORKERS:
        reports = run_workers(contexts, len(files), progress)
    else:
        reports = run_sequential(contexts, len(files), progress)

    processed = [name for r in reports for name in r.processed]
    errors = [err for r in reports for err in r.errors]
    unresolved = {name: n for r in reports for name, n in r.unresolved.items()}

    # 3. Search index from the final output; replaces any interim index
    index = build_search_index(mappings, output_dir)
    index_files = write_search_index(output_dir, index, max_chars, chunk_size)

    if errors:
        print(f"  Warning: {len(errors)} files failed to process")
    if unresolved:
        print(f"  Warning: {sum(unresolved.values())} unresolved links in {len(unresolved)} files")
    print(f"Successfully processed {len(processed)} HTML files")

    return PipelineResult(
        documents=files,
        processed=processed,
        errors=errors,
        unresolved=unresolved,
        mappings=mappings,
        index_files=index_files,
    )
