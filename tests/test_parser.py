import pytest

from agda_docs.errors import ParseFailure
from agda_docs.parser import parse_document, read_document, serialize_document


def test_parse_and_serialize_keeps_code_markup():
    """Serializing a parsed document keeps the code region intact."""
    html = '<html><body><pre class="Agda"><a id="1" class="Keyword">module</a> M\n</pre></body></html>'
    soup = parse_document(html)
    reparsed = parse_document(serialize_document(soup))
    link = reparsed.select_one("pre.Agda a")
    assert link["id"] == "1"
    assert link["class"] == ["Keyword"]
    assert link.get_text() == "module"
    assert reparsed.select_one("pre.Agda").get_text() == "module M\n"


def test_read_document(docs_dir):
    soup = read_document(docs_dir / "ModuleA.html")
    assert len(soup.select("pre.Agda")) == 2
    assert soup.h1.get_text() == "ModuleA"


def test_read_missing_document_raises_parse_failure(tmp_path):
    with pytest.raises(ParseFailure) as excinfo:
        read_document(tmp_path / "Nope.html")
    assert excinfo.value.document == "Nope.html"


def test_read_document_replaces_invalid_utf8(tmp_path):
    """Undecodable bytes are replaced rather than failing the document."""
    path = tmp_path / "Broken.html"
    path.write_bytes(b"<html><body><p>caf\xff</p></body></html>")
    soup = read_document(path)
    assert soup.p.get_text() == "caf\ufffd"
