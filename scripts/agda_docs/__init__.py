#!/usr/bin/env python3
"""
Agda Web Docs
=============

This package enhances Agda-generated HTML documentation with line-numbered
code blocks, stable cross-reference links and a full-text search index.

Modules:
    - config: Configuration constants and the JSON config file
    - errors: Error taxonomy
    - parser: HTML parsing and serialization
    - lines: Code region / line structure and line IDs
    - indexer: Position-to-line mapping index
    - links: Numeric position link rewriting
    - search: Search index building, chunking and persistence
    - decorator: Line-number gutters and script references
    - coordinator: Indexing, parallel transformation and search pipeline

Usage:
    from agda_docs import run
    run("html")                     # Transform in place

    # Or into another directory with 8 workers:
    run("html", output_dir="site", jobs=8)
"""

__version__ = "0.7.1"

import sys
from pathlib import Path
from typing import List, Optional


def run(input_dir, output_dir=None, jobs: Optional[int] = None, strategy: str = "workers",
        fail_fast: bool = False, interim_index: bool = False, chunk_size: Optional[int] = None,
        show_progress: bool = True):
    """
    Run the full indexing and transformation pass.

    Args:
        input_dir: Directory containing the Agda-generated HTML files.
        output_dir: Output directory. Defaults to the input directory.
        jobs: Number of worker processes (workers strategy).
        strategy: "workers" or "sequential".
        fail_fast: Abort on the first document that fails to process.
        interim_index: Write a search index right after indexing as well.
        chunk_size: Entry cap per search index chunk.
        show_progress: Draw progress bars.
    """
    from .coordinator import ErrorPolicy, run_pipeline

    return run_pipeline(
        input_dir,
        output_dir,
        jobs=jobs or config.DEFAULT_JOBS,
        strategy=strategy,
        error_policy=ErrorPolicy.ABORT if fail_fast else ErrorPolicy.CONTINUE,
        interim_index=interim_index,
        chunk_size=chunk_size or config.CHUNK_SIZE,
        show_progress=show_progress,
    )


def _build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="agda-docs",
        description="Process Agda-generated HTML documentation.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    agda-docs process -i html                   # Transform in place
    agda-docs process -i html -o site -j 8      # Into site/ with 8 workers
    agda-docs process --strategy sequential     # Input dir from agda-docs.config.json
        """
    )
    commands = parser.add_subparsers(dest="command", required=True)

    process = commands.add_parser("process", help="Process Agda HTML files")
    process.add_argument("-c", "--config",
                         help="Path to config file (defaults to agda-docs.config.json in current directory)")
    process.add_argument("-i", "--input", help="Input directory containing HTML files")
    process.add_argument("-o", "--output", help="Output directory (defaults to the input directory)")
    process.add_argument("-j", "--jobs", type=int, default=config.DEFAULT_JOBS,
                         help="Number of worker processes")
    process.add_argument("--strategy", choices=["workers", "sequential"], default="workers",
                         help="Run batches in worker processes or in this process")
    process.add_argument("--fail-fast", action="store_true",
                         help="Abort on the first document that fails to process")
    process.add_argument("--interim-index", action="store_true",
                         help="Also write a search index right after indexing")
    process.add_argument("--chunk-size", type=int, default=config.CHUNK_SIZE,
                         help="Max entries per search index chunk")
    process.add_argument("--no-progress", action="store_true", help="Do not draw progress bars")
    return parser


def run_with_args(argv: Optional[List[str]] = None) -> int:
    """
    Run processing with command-line arguments.
    This is the CLI entry point. Returns the process exit code.
    """
    args = _build_parser().parse_args(argv)

    try:
        config_path = Path(args.config) if args.config else config.find_config_file()
        docs_config = None
        if config_path:
            print(f"Using config file: {config_path}")
            docs_config = config.load_config(config_path)

        input_dir = args.input or (docs_config.input_dir if docs_config else None)
        if not input_dir:
            print("Error: No input directory. Pass -i or set inputDir in agda-docs.config.json",
                  file=sys.stderr)
            return 1

        run(
            input_dir,
            args.output,
            jobs=args.jobs,
            strategy=args.strategy,
            fail_fast=args.fail_fast,
            interim_index=args.interim_index,
            chunk_size=args.chunk_size,
            show_progress=not args.no_progress,
        )
    except AgdaDocsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


# Export key functions and classes for direct imports
from . import config

from .errors import (
    AgdaDocsError,
    ParseFailure,
    SerializationOverflow,
    UnitFailure,
    IOFailure,
)

from .config import (
    DocsConfig,
    find_config_file,
    load_config,
)

from .parser import (
    parse_document,
    read_document,
    serialize_document,
)

from .indexer import (
    PositionMappings,
    build_mappings,
    find_line_number_for_element,
)

from .links import (
    UnresolvedLink,
    rewrite_links,
)

from .search import (
    SearchEntry,
    build_search_index,
    write_search_index,
    load_search_index,
)

from .decorator import (
    decorate_document,
)

from .coordinator import (
    ErrorPolicy,
    ExecutionStrategy,
    PipelineResult,
    run_pipeline,
)


__all__ = [
    # Main entry points
    'run',
    'run_with_args',
    # Config
    'DocsConfig',
    'find_config_file',
    'load_config',
    # Errors
    'AgdaDocsError',
    'ParseFailure',
    'SerializationOverflow',
    'UnitFailure',
    'IOFailure',
    # Parser
    'parse_document',
    'read_document',
    'serialize_document',
    # Indexer
    'PositionMappings',
    'build_mappings',
    'find_line_number_for_element',
    # Links
    'UnresolvedLink',
    'rewrite_links',
    # Search
    'SearchEntry',
    'build_search_index',
    'write_search_index',
    'load_search_index',
    # Decoration
    'decorate_document',
    # Pipeline
    'ErrorPolicy',
    'ExecutionStrategy',
    'PipelineResult',
    'run_pipeline',
]
