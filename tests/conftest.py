import pytest

# ModuleA: two code regions.
#   region 1: anchor 35 on line 3, 55 on line 4, 42 on line 5
#   region 2: anchors 100/104/110 on line 3 (line 2 is whitespace only)
MODULE_A = """<!DOCTYPE HTML>
<html><head><meta charset="utf-8"><title>ModuleA</title></head>
<body>
<h1>ModuleA</h1>
<pre class="Agda"><a id="1" class="Keyword">module</a> <a id="8" href="ModuleA.html" class="Module">ModuleA</a> <a id="16" class="Keyword">where</a>

<a id="30" class="Keyword">data</a> <a id="35" href="#35" class="Datatype">Bool</a> <a id="40" class="Symbol">:</a> <a id="41" class="PrimitiveType">Set</a> <a id="45" class="Keyword">where</a>
  <a id="55" href="#55" class="InductiveConstructor">true</a> <a id="60" class="Symbol">:</a> <a href="#35" class="Datatype">Bool</a>
  <a id="42" href="#42" class="InductiveConstructor">false</a> <a id="65" class="Symbol">:</a> <a href="#35" class="Datatype">Bool</a>
</pre>
<p>Negation lives in its own block.</p>
<h2>Negation</h2>
<pre class="Agda"><a id="90" class="Keyword">open</a> <a id="95" class="Keyword">import</a> Agda.Primitive

<a id="100" href="#100" class="Function">not</a> <a id="104" class="Symbol">:</a> <a href="#35" class="Datatype">Bool</a> <a id="110" class="Symbol">=</a> <a href="#42" class="InductiveConstructor">false</a>
</pre>
</body></html>
"""

# Consumer: one region, anchor 42 on line 5, links into ModuleA
CONSUMER = """<!DOCTYPE HTML>
<html><head><meta charset="utf-8"><title>Consumer</title></head>
<body>
<pre class="Agda"><a id="1" class="Keyword">module</a> <a id="8" class="Module">Consumer</a> <a id="17" class="Keyword">where</a>

<a id="24" class="Keyword">open</a> <a id="29" class="Keyword">import</a> <a id="36" href="ModuleA.html" class="Module">ModuleA</a>

<a id="42" href="#42" class="Function">check</a> <a id="48" class="Symbol">=</a> <a href="ModuleA.html#100" class="Function">not</a> <a href="#999" class="Bound">x</a> <a href="Missing.html#7" class="Bound">y</a>
</pre>
</body></html>
"""

# Data.Nat: one region with a named (non-numeric) identifier on line 5
DATA_NAT = """<!DOCTYPE HTML>
<html><head><meta charset="utf-8"><title>Data.Nat</title></head>
<body>
<pre class="Agda"><a id="1" class="Keyword">module</a> <a id="8" href="Data.Nat.html" class="Module">Data.Nat</a> <a id="17" class="Keyword">where</a>

<a id="24" class="Keyword">data</a> <a id="29" href="Data.Nat.html#29" class="Datatype">ℕ</a> <a id="31" class="Symbol">:</a> <a id="33" class="PrimitiveType">Set</a> <a id="37" class="Keyword">where</a>
  <a id="45" href="Data.Nat.html#45" class="InductiveConstructor">zero</a> <a id="50" class="Symbol">:</a> <a href="Data.Nat.html#29" class="Datatype">ℕ</a>
  <a id="suc" href="Data.Nat.html#54" class="InductiveConstructor">suc</a> <a id="54" class="Symbol">:</a> <a href="Data.Nat.html#29" class="Datatype">ℕ</a> <a id="62" class="Symbol">→</a> <a href="Data.Nat.html#29" class="Datatype">ℕ</a>
</pre>
</body></html>
"""

DOCUMENTS = {
    "ModuleA.html": MODULE_A,
    "Consumer.html": CONSUMER,
    "Data.Nat.html": DATA_NAT,
}


def write_documents(directory, documents):
    directory.mkdir(parents=True, exist_ok=True)
    for name, html in documents.items():
        (directory / name).write_text(html, encoding="utf-8")
    return directory


@pytest.fixture
def docs_dir(tmp_path):
    """A small Agda HTML output directory with three modules."""
    return write_documents(tmp_path / "html", DOCUMENTS)


@pytest.fixture
def out_dir(tmp_path):
    return tmp_path / "site"


@pytest.fixture
def agda_documents():
    """Raw HTML of the sample modules, keyed by document name."""
    return dict(DOCUMENTS)


@pytest.fixture
def write_docs():
    return write_documents
