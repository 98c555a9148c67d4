#!/usr/bin/env python3
"""
Position mapping indexer.

Agda renders every identifier with an opaque numeric ``id`` (its source
offset) and links to those offsets. This module scans a document set, wraps
the code regions into lines the same way the decorator does, and records the
line that holds every numeric anchor:

    mapping[document][anchor] = line number

The mapping stores no Block ID; block identity is only
meaningful for one particular parse and is re-derived by the link rewriter.
"""
import copy
import gc
import time
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from bs4 import BeautifulSoup, Tag

from . import config
from .errors import ParseFailure
from .lines import (
    block_id,
    find_region,
    find_regions,
    is_anchor_id,
    parse_line_content_id,
    wrap_region_lines,
)
from .parser import read_document
from .utils import ProgressCallback, batched, list_documents

MappingTable = Dict[str, Dict[str, int]]


class PositionMappings:
    """
    Frozen ``(document, anchor) -> line`` table.

    Built once by ``build_mappings`` and handed to execution units as a
    copy; ``get_global_mappings``/``set_global_mappings`` are the only ways
    in and out as a plain dict.
    """

    def __init__(self, table: Optional[MappingTable] = None):
        self._table: MappingTable = {
            document: dict(anchors) for document, anchors in (table or {}).items()
        }

    def for_document(self, document: str) -> Mapping[str, int]:
        return MappingProxyType(self._table.get(document, {}))

    def lookup(self, document: str, anchor: str) -> Optional[int]:
        return self._table.get(document, {}).get(anchor)

    @property
    def documents(self) -> List[str]:
        return list(self._table)

    def get_global_mappings(self) -> MappingTable:
        """Deep copy of the table, safe to ship to another process."""
        return copy.deepcopy(self._table)

    @classmethod
    def set_global_mappings(cls, table: MappingTable) -> "PositionMappings":
        """Rebuild a snapshot from a table received across a unit boundary."""
        return cls(copy.deepcopy(table))

    def __contains__(self, document: object) -> bool:
        return document in self._table

    def __len__(self) -> int:
        return len(self._table)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PositionMappings):
            return NotImplemented
        return self._table == other._table

    def __repr__(self) -> str:
        anchors = sum(len(a) for a in self._table.values())
        return f"PositionMappings({len(self._table)} documents, {anchors} anchors)"


def _preceding_line_number(element: Tag, region: Tag) -> Optional[int]:
    """Walk up from ``element`` looking at earlier siblings for a line id."""
    node = element
    while node is not None and node is not region:
        for sibling in node.previous_siblings:
            if not isinstance(sibling, Tag):
                continue
            parsed = parse_line_content_id(sibling.get("id"))
            if parsed:
                return parsed[1]
        node = node.parent
    return None


def find_line_number_for_element(element: Tag) -> Optional[int]:
    """
    Line number of ``element`` inside its region.

    Returns None only when the element is outside every code region;
    inside a region resolution always succeeds, falling back to line 1.
    """
    region = find_region(element)
    if region is None:
        return None

    if element is region:
        return 1

    # Exact containment: the closest line container above the element
    node = element
    while node is not None and node is not region:
        if config.LINE_CLASS in (node.get("class") or []):
            parsed = parse_line_content_id(node.get("id"))
            if parsed:
                return parsed[1]
        node = node.parent

    line_number = _preceding_line_number(element, region)
    if line_number is not None:
        return line_number

    return 1


def index_document(soup: BeautifulSoup) -> Dict[str, int]:
    """Map every numeric anchor of a parsed document to its line number."""
    for index, region in enumerate(find_regions(soup)):
        wrap_region_lines(region, block_id(index))

    mappings: Dict[str, int] = {}
    for element in soup.find_all(id=True):
        anchor = element.get("id")
        if not is_anchor_id(anchor):
            continue
        line_number = find_line_number_for_element(element)
        if line_number is not None:
            # Repeated anchors: last scanned wins
            mappings[anchor] = line_number
    return mappings


def build_mappings(
    input_dir: Path,
    progress_callback: Optional[ProgressCallback] = None,
    batch_size: int = config.INDEX_BATCH_SIZE,
    batch_pause: float = config.INDEX_BATCH_PAUSE,
) -> PositionMappings:
    """
    Scan every document in ``input_dir`` and build the position mappings.

    Runs sequentially. Between batches the parsed trees are released and the
    loop pauses briefly so peak memory stays bounded. A document that fails
    to read or parse gets an empty sub-map; the run continues.

    Args:
        input_dir: Directory with the generated HTML documents.
        progress_callback: Called with ``(done, total)`` after each document.
        batch_size: Documents per batch.
        batch_pause: Seconds to pause between batches.
    """
    input_dir = Path(input_dir)
    print("--> Building position-to-line mappings index...")

    files = list_documents(input_dir)
    print(f"  Scanning {len(files)} files for position mappings...")

    table: MappingTable = {}
    processed = 0
    batches = batched(files, batch_size) if files else []
    for batch_index, batch in enumerate(batches):
        for name in batch:
            try:
                soup = read_document(input_dir / name)
                table[name] = index_document(soup)
            except ParseFailure as e:
                print(f"  Warning: {e}")
                table[name] = {}

            processed += 1
            if progress_callback:
                progress_callback(processed, len(files))

        if batch_index < len(batches) - 1:
            gc.collect()
            time.sleep(batch_pause)

    anchors = sum(len(m) for m in table.values())
    print(f"  Completed position mappings: {anchors} anchors in {len(table)} files")
    return PositionMappings(table)
