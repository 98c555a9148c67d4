#!/usr/bin/env python3
"""
Link rewriter.

Rewrites Agda's numeric position links (``#342`` or ``Other.Module.html#342``)
into stable line links (``#B2-L14`` or ``Other.Module.html#B1-L14``).
Runs on a freshly parsed, not yet line-wrapped document.
"""
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from . import config
from .indexer import PositionMappings
from .lines import block_id, find_region, find_regions, is_anchor_id, line_anchor_id

HREF_PATTERN = re.compile(r'(.+?\.html)?#(\d+)')
HOVER_CLASS = "type-hoverable"


@dataclass
class UnresolvedLink:
    """A numeric link with no recorded line. Reported, never raised."""
    href: str
    text: str
    element: str


class _BlockFinder:
    """Resolves the Block ID owning an anchor in one pre-wrapped parse."""

    def __init__(self, soup: BeautifulSoup):
        self.regions = find_regions(soup)
        self._region_index = {id(region): index for index, region in enumerate(self.regions)}
        self._by_id: Optional[Dict[str, Tag]] = None
        self._by_position: Optional[Dict[str, Tag]] = None
        self._soup = soup

    def _build(self) -> None:
        self._by_id = {}
        self._by_position = {}
        for element in self._soup.find_all(True):
            element_id = element.get("id")
            if is_anchor_id(element_id):
                self._by_id[element_id] = element
            position = element.get(config.POSITION_ATTRIBUTE)
            if position and not element.has_attr(config.ORIGINAL_HREF_ATTRIBUTE):
                self._by_position[position] = element

    def block_for(self, anchor: str) -> str:
        if len(self.regions) == 1:
            return block_id(0)
        if self._by_id is None:
            self._build()
        element = self._by_id.get(anchor) or self._by_position.get(anchor)
        if element is None:
            return block_id(0)
        region = find_region(element)
        if region is None:
            return block_id(0)
        return block_id(self._region_index.get(id(region), 0))


def _mark_hoverable(link: Tag, anchor: str, block: str, line_number: int) -> None:
    classes = link.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    classes = list(classes)
    if HOVER_CLASS not in classes:
        classes.append(HOVER_CLASS)
    link["class"] = classes
    link["data-hoverable"] = "true"
    link["data-anchor"] = anchor
    link["data-block-id"] = block
    link["data-line"] = str(line_number)
    link["title"] = f"Line {line_number} (position {anchor})"


def _unresolved(link: Tag, href: str) -> UnresolvedLink:
    return UnresolvedLink(
        href=href,
        text=link.get_text() or "[No text content]",
        element=str(link),
    )


def rewrite_links(soup: BeautifulSoup, document: str, mappings: PositionMappings) -> List[UnresolvedLink]:
    """
    Rewrite every numeric position link in ``soup`` in place.

    Same-document links resolve their block by finding the anchor's region
    in this parse. Cross-document links always point at block 1 of the
    target: the mapping carries no block identity.

    Returns:
        Diagnostics for links whose anchor has no recorded line.
    """
    local = mappings.for_document(document)
    finder = _BlockFinder(soup)
    diagnostics: List[UnresolvedLink] = []

    for link in soup.find_all("a", href=True):
        href = link["href"]
        m = HREF_PATTERN.fullmatch(href)
        if not m:
            continue
        target, anchor = m.group(1), m.group(2)

        if not target:
            line_number = local.get(anchor)
            if line_number is None:
                diagnostics.append(_unresolved(link, href))
                continue
            block = finder.block_for(anchor)
            link[config.ORIGINAL_HREF_ATTRIBUTE] = href
            link["href"] = f"#{line_anchor_id(block, line_number)}"
            _mark_hoverable(link, anchor, block, line_number)
        else:
            line_number = mappings.lookup(target, anchor)
            if line_number is None:
                diagnostics.append(_unresolved(link, href))
                continue
            link[config.ORIGINAL_HREF_ATTRIBUTE] = href
            link["href"] = f"{target}#{line_anchor_id(block_id(0), line_number)}"
            link["title"] = f"Line {line_number} (position {anchor})"

    return diagnostics


def report_unresolved(document: str, diagnostics: List[UnresolvedLink]) -> None:
    """Print the unresolved links of one document as warnings."""
    if not diagnostics:
        return
    print(f"  Warning: Could not map {len(diagnostics)} position references to line numbers in {document}")
    for d in diagnostics:
        print(f"    - Could not map: {d.href}")
        print(f'      Text content: "{d.text}"')
        print(f"      HTML: {d.element}")
