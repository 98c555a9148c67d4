#!/usr/bin/env python3
"""
Code region and line structure.

A region is a ``pre.Agda`` block; regions get Block IDs ``B1``, ``B2``, ...
in document order. Wrapping a region splits its inner markup on newlines and
puts every source line into its own ``div.code-line`` carrying the content
ID ``<Block>-LC<n>``. The indexer and the decorator share this wrapping so
both always agree on line numbers.
"""
import re
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from . import config
from .parser import parse_fragment

LINE_CONTENT_ID = re.compile(r'^(' + config.BLOCK_PREFIX + r'\d+)-LC(\d+)$')
NUMERIC_ID = re.compile(r'^\d+$')


def block_id(index: int) -> str:
    """Block ID for the zero-based region ``index``."""
    return f"{config.BLOCK_PREFIX}{index + 1}"


def line_anchor_id(block: str, line_number: int) -> str:
    return f"{block}-L{line_number}"


def line_content_id(block: str, line_number: int) -> str:
    return f"{block}-LC{line_number}"


def parse_line_content_id(value: Optional[str]) -> Optional[Tuple[str, int]]:
    """``"B2-LC7"`` -> ``("B2", 7)``; anything else -> None."""
    if not value:
        return None
    m = LINE_CONTENT_ID.match(value)
    if not m:
        return None
    return m.group(1), int(m.group(2))


def is_anchor_id(value: Optional[str]) -> bool:
    """True for ids that are pure non-negative integer strings."""
    return bool(value) and bool(NUMERIC_ID.match(value))


def find_regions(soup: BeautifulSoup) -> List[Tag]:
    """All code regions in document order."""
    return soup.select(config.CODE_REGION_SELECTOR)


def is_region(element: Tag) -> bool:
    return (
        isinstance(element, Tag)
        and element.name == "pre"
        and config.CODE_REGION_CLASS in (element.get("class") or [])
    )


def find_region(element: Tag) -> Optional[Tag]:
    """Nearest region containing ``element`` (the element itself included)."""
    if is_region(element):
        return element
    for parent in element.parents:
        if is_region(parent):
            return parent
    return None


def split_region_lines(inner_markup: str) -> List[str]:
    """
    Split region markup into source lines.
    Exactly one trailing empty segment (left by a final newline) is dropped;
    interior blank lines are kept.
    """
    lines = inner_markup.split("\n")
    if lines and lines[-1].strip() == "":
        lines.pop()
    return lines


def wrap_region_lines(region: Tag, block: str) -> Tag:
    """
    Replace the contents of ``region`` with a ``div.code-content`` holding
    one ``div.code-line`` per source line. Returns the new container.
    """
    lines = split_region_lines(region.decode_contents())

    lines_html = []
    for index, line in enumerate(lines):
        line_number = index + 1
        # Blank lines keep their height
        content = line if line.strip() else "&nbsp;"
        lines_html.append(
            f'<div id="{line_content_id(block, line_number)}" class="{config.LINE_CLASS}">{content}</div>'
        )

    fragment = parse_fragment("".join(lines_html))
    container = fragment.new_tag("div", attrs={"class": config.LINE_CONTAINER_CLASS})
    for node in list(fragment.contents):
        container.append(node.extract())

    region.clear()
    region.append(container)
    return container


def region_lines(region: Tag) -> List[Tag]:
    """Line containers of an already wrapped region, in order."""
    return region.select(f"div.{config.LINE_CLASS}")


def assign_block_ids(soup: BeautifulSoup) -> List[Tuple[str, Tag]]:
    """Give every region its Block ID and return ``(block, region)`` pairs."""
    blocks = []
    for index, region in enumerate(find_regions(soup)):
        block = block_id(index)
        region["id"] = block
        blocks.append((block, region))
    return blocks

