#!/usr/bin/env python3
"""
Configuration constants and the collaborator config file.
Shared across all agda_docs modules.
"""
import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .errors import IOFailure

# --- DOCUMENTS ---
DOCUMENT_EXTENSION = ".html"
CODE_REGION_SELECTOR = "pre.Agda"
CODE_REGION_CLASS = "Agda"

# --- LINE IDS ---
BLOCK_PREFIX = "B"
LINE_CLASS = "code-line"
LINE_CONTAINER_CLASS = "code-content"
POSITION_ATTRIBUTE = "data-position"
ORIGINAL_HREF_ATTRIBUTE = "data-original-href"

# --- THROUGHPUT ---
INDEX_BATCH_SIZE = 20        # Documents per indexing batch
INDEX_BATCH_PAUSE = 0.05     # Seconds between indexing batches
SEQUENTIAL_BATCH_SIZE = 10   # Documents per in-process transform batch
DEFAULT_JOBS = 4

# --- SEARCH INDEX ---
SEARCH_INDEX_FILE = "search-index.json"
SEARCH_METADATA_FILE = "search-index-metadata.json"
SEARCH_CHUNK_PATTERN = "search-index-{}.json"
CHUNK_SIZE = 1000                  # Max entries per chunk
MAX_SERIALIZED_CHARS = 0x1FFFFFE8  # Largest string a JS runtime can hold
MAX_CHUNK_DEPTH = 16

# --- DECORATION ---
DECORATION_SCRIPTS = ["codeBlocks.js", "search.js", "typePreview.js"]

# --- CONFIG FILE ---
DEFAULT_CONFIG_FILES = ["agda-docs.config.json"]


@dataclass
class DocsConfig:
    """Settings read from ``agda-docs.config.json``.

    The engine only reads ``input_dir`` (as the CLI default); the other
    fields belong to the page templates and are kept for round-tripping.
    """
    input_dir: str
    back_button_url: Optional[str] = None
    modules: Optional[List[str]] = None
    github_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "DocsConfig":
        return cls(
            input_dir=data.get("inputDir", ""),
            back_button_url=data.get("backButtonUrl"),
            modules=data.get("modules"),
            github_url=data.get("githubUrl"),
        )

    def to_dict(self) -> dict:
        data = {"inputDir": self.input_dir}
        if self.back_button_url:
            data["backButtonUrl"] = self.back_button_url
        if self.modules is not None:
            data["modules"] = list(self.modules)
        if self.github_url:
            data["githubUrl"] = self.github_url
        return data


def find_config_file(search_dir: Optional[Path] = None) -> Optional[Path]:
    """Look for a default config file in ``search_dir`` (cwd by default)."""
    base = Path(search_dir) if search_dir else Path.cwd()
    for name in DEFAULT_CONFIG_FILES:
        candidate = base / name
        if candidate.exists():
            return candidate
    return None


def load_config(config_path: Path) -> DocsConfig:
    """Read and parse a JSON config file."""
    config_path = Path(config_path)
    if not config_path.exists():
        raise IOFailure(f"Config file not found at {config_path}")
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise IOFailure(f"Could not read config file {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise IOFailure(f"Config file {config_path} must contain a JSON object")
    return DocsConfig.from_dict(data)
