#!/usr/bin/env python3
"""
Document decoration applied after link rewriting.
Turns every code region into a line-numbered, linkable block and references
the browser scripts that drive copy, search and hover previews.
"""
from bs4 import BeautifulSoup, Tag

from . import config
from .lines import assign_block_ids, line_anchor_id, parse_line_content_id, region_lines, wrap_region_lines
from .parser import parse_fragment

COPY_BUTTON_HTML = (
    '<button class="copy-code-button" title="Copy code">'
    '<svg width="16" height="16" viewBox="0 0 16 16">'
    '<path fill="currentColor" d="M0 6.75C0 5.784.784 5 1.75 5h1.5a.75.75 0 0 1 0 1.5h-1.5a.25.25 0 0 0-.25.25v7.5'
    'c0 .138.112.25.25.25h7.5a.25.25 0 0 0 .25-.25v-1.5a.75.75 0 0 1 1.5 0v1.5A1.75 1.75 0 0 1 9.25 16h-7.5'
    'A1.75 1.75 0 0 1 0 14.25Z"></path>'
    '</svg>'
    '</button>'
)


def _add_class(element: Tag, name: str) -> None:
    classes = element.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    if name not in classes:
        element["class"] = list(classes) + [name]


def add_line_numbers(soup: BeautifulSoup) -> int:
    """
    Wrap every region into a gutter of line links and the code lines:

        <pre class="Agda has-copy-button" id="B1">
          <div class="code-container">
            <div class="line-numbers"><a href="#B1-L1" id="B1-L1" ...>1</a>...</div>
            <div class="code-content"><div id="B1-LC1" class="code-line">...</div>...</div>
          </div>
          <button class="copy-code-button">...</button>
        </pre>

    Returns the number of regions decorated.
    """
    blocks = assign_block_ids(soup)
    for block, region in blocks:
        content = wrap_region_lines(region, block)

        gutter = soup.new_tag("div", attrs={"class": "line-numbers"})
        for line in region_lines(region):
            parsed = parse_line_content_id(line.get("id"))
            if not parsed:
                continue
            line_number = parsed[1]
            anchor = line_anchor_id(block, line_number)
            link = soup.new_tag("a", attrs={
                "href": f"#{anchor}",
                "id": anchor,
                "class": "line-number",
                "data-line-number": str(line_number),
                "data-block-id": block,
            })
            link.string = str(line_number)
            gutter.append(link)

        container = soup.new_tag("div", attrs={"class": "code-container"})
        content.extract()
        container.append(gutter)
        container.append(content)
        region.append(container)

        button = parse_fragment(COPY_BUTTON_HTML).button
        region.append(button.extract())
        _add_class(region, "has-copy-button")

    return len(blocks)


def add_script_references(soup: BeautifulSoup) -> None:
    """Reference the browser scripts once each, deferred, at the end of body."""
    target = soup.body or soup
    present = {s.get("src") for s in soup.find_all("script", src=True)}
    for name in config.DECORATION_SCRIPTS:
        if name in present:
            continue
        script = soup.new_tag("script", attrs={"src": name, "defer": ""})
        target.append(script)


def decorate_document(soup: BeautifulSoup) -> BeautifulSoup:
    add_line_numbers(soup)
    add_script_references(soup)
    return soup
