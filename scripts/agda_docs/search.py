#!/usr/bin/env python3
"""
Search index builder.

Flattens module names, headings and code lines of the transformed documents
into one searchable index, keyed by document:

    {"Data.Nat.html": [{"type": "module", "content": "Data.Nat"}, ...]}

The index is written as ``search-index.json``. When it is too large for one
artifact it is split into chunks (``search-index-<name>.json``) listed by a
``search-index-metadata.json`` manifest.
"""
import gc
import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from bs4 import BeautifulSoup

from . import config
from .errors import IOFailure, ParseFailure, SerializationOverflow
from .indexer import PositionMappings
from .lines import find_regions, is_anchor_id, parse_line_content_id, region_lines
from .parser import read_document
from .utils import ProgressCallback, batched, list_documents, strip_extension

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]

MODULE = "module"
HEADER = "header"
CODE = "code"


@dataclass
class SearchEntry:
    kind: str
    content: str
    line_number: Optional[int] = None
    anchor: Optional[str] = None
    context: Optional[str] = None

    def to_dict(self) -> dict:
        """Wire format read by the browser search script."""
        data = {"type": self.kind, "content": self.content}
        if self.line_number is not None:
            data["lineNumber"] = self.line_number
        if self.anchor is not None:
            data["position"] = self.anchor
        if self.context is not None:
            data["context"] = self.context
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SearchEntry":
        return cls(
            kind=data["type"],
            content=data["content"],
            line_number=data.get("lineNumber"),
            anchor=data.get("position"),
            context=data.get("context"),
        )


SearchIndex = Dict[str, List[SearchEntry]]


def _nearest_text(texts: List[str], start: int, step: int) -> str:
    i = start + step
    while 0 <= i < len(texts):
        if texts[i]:
            return texts[i]
        i += step
    return ""


def _anchor_for_line(anchors: Mapping[str, int], line_number: int) -> Optional[str]:
    # First key with this line; a line hosting several anchors always
    # reports the same one.
    return next((k for k, v in anchors.items() if v == line_number), None)


def extract_search_entries(soup: BeautifulSoup, document: str, anchors: Mapping[str, int]) -> List[SearchEntry]:
    """All search entries of one transformed document, in document order."""
    entries = [SearchEntry(kind=MODULE, content=strip_extension(document))]

    for region in find_regions(soup):
        lines = region_lines(region)
        texts = [line.get_text().strip() for line in lines]

        for index, line in enumerate(lines):
            parsed = parse_line_content_id(line.get("id"))
            if not parsed:
                continue
            line_number = parsed[1]
            text = texts[index]
            if not text:
                continue

            context = "\n".join(
                t for t in (_nearest_text(texts, index, -1), text, _nearest_text(texts, index, 1)) if t
            )
            entries.append(SearchEntry(kind=CODE, content=text, line_number=line_number, context=context))

            # Named identifiers inside the line
            for element in line.find_all(id=True):
                if is_anchor_id(element.get("id")):
                    continue
                content = element.get_text().strip()
                if not content:
                    continue
                entries.append(SearchEntry(
                    kind=CODE,
                    content=content,
                    line_number=line_number,
                    anchor=_anchor_for_line(anchors, line_number),
                    context=context,
                ))

    for heading in soup.find_all(HEADING_TAGS):
        content = heading.get_text().strip()
        if not content:
            continue
        entries.append(SearchEntry(kind=HEADER, content=content, context=content))

    return entries


def build_search_index(
    mappings: PositionMappings,
    documents_dir: Path,
    progress_callback: Optional[ProgressCallback] = None,
    batch_size: int = config.INDEX_BATCH_SIZE,
    batch_pause: float = config.INDEX_BATCH_PAUSE,
) -> SearchIndex:
    """Build the search index for every document in ``documents_dir``."""
    documents_dir = Path(documents_dir)
    print("--> Building search index...")

    files = list_documents(documents_dir)
    index: SearchIndex = {}
    processed = 0
    batches = batched(files, batch_size) if files else []
    for batch_index, batch in enumerate(batches):
        for name in batch:
            try:
                soup = read_document(documents_dir / name)
                entries = extract_search_entries(soup, name, mappings.for_document(name))
                if entries:
                    index[name] = entries
            except ParseFailure as e:
                print(f"  Warning: Error extracting search entries: {e}")

            processed += 1
            if progress_callback:
                progress_callback(processed, len(files))

        if batch_index < len(batches) - 1:
            gc.collect()
            time.sleep(batch_pause)

    total = sum(len(e) for e in index.values())
    print(f"  Search index built with {total} entries from {len(index)} files.")
    return index


# --- PERSISTENCE ---

def serialize_index(index: SearchIndex, max_chars: int = config.MAX_SERIALIZED_CHARS) -> str:
    """JSON text of ``index``; SerializationOverflow if it exceeds ``max_chars``."""
    payload = json.dumps(
        {document: [e.to_dict() for e in entries] for document, entries in index.items()},
        ensure_ascii=False,
    )
    if len(payload) > max_chars:
        raise SerializationOverflow(len(payload), max_chars)
    return payload


def chunk_index(index: SearchIndex, chunk_size: int) -> List[SearchIndex]:
    """
    Partition ``index`` into chunks of at most ``chunk_size`` entries.

    Documents are kept whole; a document that alone exceeds the cap is
    split into its own group of consecutive slices.
    """
    if chunk_size < 1:
        raise ValueError(f"Chunk size must be positive, got {chunk_size}")

    chunks: List[SearchIndex] = []
    current: SearchIndex = {}
    count = 0
    for document, entries in index.items():
        if len(entries) > chunk_size:
            if current:
                chunks.append(current)
                current, count = {}, 0
            for part in batched(entries, chunk_size):
                chunks.append({document: part})
            continue

        if current and count + len(entries) > chunk_size:
            chunks.append(current)
            current, count = {}, 0
        current[document] = entries
        count += len(entries)

    if current:
        chunks.append(current)
    return chunks


def _serialize_chunks(
    index: SearchIndex, chunk_size: int, max_chars: int, prefix: str = "", depth: int = 0
) -> List[Tuple[str, str]]:
    """``(name, payload)`` for every chunk, re-splitting chunks that overflow."""
    results = []
    for i, chunk in enumerate(chunk_index(index, chunk_size)):
        name = f"{prefix}{i}"
        try:
            results.append((name, serialize_index(chunk, max_chars)))
        except SerializationOverflow:
            entries = sum(len(e) for e in chunk.values())
            if entries <= 1 or depth >= config.MAX_CHUNK_DEPTH:
                raise
            smaller = max(1, min(chunk_size, entries) // 2)
            results.extend(_serialize_chunks(chunk, smaller, max_chars, f"{name}-", depth + 1))
    return results


def _write_text(path: Path, text: str) -> None:
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise IOFailure(f"Could not write {path}: {e}") from e


def _remove(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        raise IOFailure(f"Could not remove stale artifact {path}: {e}") from e


def _remove_stale_artifacts(output_dir: Path, keep_single: bool) -> None:
    for stale in output_dir.glob(config.SEARCH_CHUNK_PATTERN.format("*")):
        _remove(stale)
    _remove(output_dir / config.SEARCH_METADATA_FILE)
    if not keep_single:
        _remove(output_dir / config.SEARCH_INDEX_FILE)


def write_search_index(
    output_dir: Path,
    index: SearchIndex,
    max_chars: int = config.MAX_SERIALIZED_CHARS,
    chunk_size: int = config.CHUNK_SIZE,
) -> List[Path]:
    """
    Persist ``index`` into ``output_dir``, chunking it if it is too large.
    Any artifacts of an earlier run are replaced.

    Returns:
        Paths of the files written.
    """
    output_dir = Path(output_dir)
    try:
        payload = serialize_index(index, max_chars)
    except SerializationOverflow as e:
        print(f"  Warning: {e}; splitting search index into chunks")
        return _write_chunked(output_dir, index, max_chars, chunk_size)

    _remove_stale_artifacts(output_dir, keep_single=True)
    path = output_dir / config.SEARCH_INDEX_FILE
    _write_text(path, payload)
    print(f"  Search index written to {path}")
    return [path]


def _write_chunked(output_dir: Path, index: SearchIndex, max_chars: int, chunk_size: int) -> List[Path]:
    chunks = _serialize_chunks(index, chunk_size, max_chars)
    metadata = {
        "chunks": [name for name, _ in chunks],
        "chunkCount": len(chunks),
        "totalFiles": len(index),
        "totalEntries": sum(len(e) for e in index.values()),
        "chunkSize": chunk_size,
    }

    _remove_stale_artifacts(output_dir, keep_single=False)
    written = []
    metadata_path = output_dir / config.SEARCH_METADATA_FILE
    _write_text(metadata_path, json.dumps(metadata, indent=2))
    written.append(metadata_path)
    for name, payload in chunks:
        path = output_dir / config.SEARCH_CHUNK_PATTERN.format(name)
        _write_text(path, payload)
        written.append(path)

    print(f"  Search index written as {len(chunks)} chunks to {output_dir}")
    return written


def _read_json(path: Path):
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise IOFailure(f"Could not read {path}: {e}") from e


def load_search_index(output_dir: Path) -> SearchIndex:
    """Read a persisted index back, reassembling chunks if needed."""
    output_dir = Path(output_dir)
    metadata_path = output_dir / config.SEARCH_METADATA_FILE
    if metadata_path.exists():
        raw: Dict[str, list] = {}
        for name in _read_json(metadata_path)["chunks"]:
            chunk = _read_json(output_dir / config.SEARCH_CHUNK_PATTERN.format(name))
            for document, entries in chunk.items():
                raw.setdefault(document, []).extend(entries)
    else:
        raw = _read_json(output_dir / config.SEARCH_INDEX_FILE)

    return {
        document: [SearchEntry.from_dict(e) for e in entries]
        for document, entries in raw.items()
    }
