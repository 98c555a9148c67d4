#!/usr/bin/env python3
"""
Document parser.
Turns raw markup into a BeautifulSoup tree and back. No state.
"""
from pathlib import Path

from bs4 import BeautifulSoup

from .errors import ParseFailure

PARSER_BACKEND = "html.parser"


def parse_document(markup: str) -> BeautifulSoup:
    """Parse a full HTML document."""
    return BeautifulSoup(markup, PARSER_BACKEND)


def parse_fragment(markup: str) -> BeautifulSoup:
    """Parse a markup fragment for insertion into another tree."""
    return BeautifulSoup(markup, PARSER_BACKEND)


def read_document(path: Path) -> BeautifulSoup:
    """Read and parse ``path``, raising ParseFailure on any read/parse error."""
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise ParseFailure(path.name, str(e)) from e
    try:
        return parse_document(content)
    except Exception as e:
        raise ParseFailure(path.name, str(e)) from e


def serialize_document(soup: BeautifulSoup) -> str:
    return str(soup)
