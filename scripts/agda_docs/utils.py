#!/usr/bin/env python3
"""
Utility functions.
Includes document discovery, batching and terminal progress reporting.
"""
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from tqdm import tqdm

from . import config

ProgressCallback = Callable[[int, int], None]


def list_documents(input_dir: Path) -> List[str]:
    """Return the names of eligible documents in lexical order."""
    input_dir = Path(input_dir)
    return sorted(
        f.name for f in input_dir.iterdir()
        if f.is_file() and f.name.endswith(config.DOCUMENT_EXTENSION)
    )


def batched(items: Sequence, size: int) -> List[list]:
    """Split ``items`` into consecutive lists of at most ``size`` elements."""
    if size < 1:
        raise ValueError(f"Batch size must be positive, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def strip_extension(filename: str) -> str:
    """Module name for a document: ``Data.Nat.html`` -> ``Data.Nat``."""
    if filename.endswith(config.DOCUMENT_EXTENSION):
        return filename[:-len(config.DOCUMENT_EXTENSION)]
    return filename


def create_progress_bar(desc: str = "", unit: str = "file") -> ProgressCallback:
    """
    Returns a ``(done, total)`` callback that drives a tqdm progress bar.
    The bar is created on the first call and closed once done == total.
    """
    state = {"bar": None}

    def update(done: int, total: int) -> None:
        bar: Optional[tqdm] = state["bar"]
        if bar is None:
            bar = tqdm(total=total, desc=desc, unit=unit)
            state["bar"] = bar
        bar.update(done - bar.n)
        if done >= total:
            bar.close()
            state["bar"] = None

    return update
