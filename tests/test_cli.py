import json

from agda_docs import run_with_args


def test_process_command(docs_dir, out_dir, capsys):
    code = run_with_args(["process", "-i", str(docs_dir), "-o", str(out_dir),
                          "--strategy", "sequential", "--no-progress"])
    assert code == 0
    assert (out_dir / "ModuleA.html").exists()
    assert (out_dir / "search-index.json").exists()
    assert "Successfully processed 3 HTML files" in capsys.readouterr().out


def test_input_from_config_file(docs_dir, tmp_path, monkeypatch):
    (tmp_path / "agda-docs.config.json").write_text(json.dumps({"inputDir": str(docs_dir)}))
    monkeypatch.chdir(tmp_path)

    assert run_with_args(["process", "--strategy", "sequential", "--no-progress"]) == 0
    assert "B1-L1" in (docs_dir / "ModuleA.html").read_text(encoding="utf-8")


def test_explicit_config_path(docs_dir, out_dir, tmp_path):
    config_path = tmp_path / "docs.json"
    config_path.write_text(json.dumps({"inputDir": str(docs_dir), "githubUrl": "https://example.org/repo"}))
    code = run_with_args(["process", "-c", str(config_path), "-o", str(out_dir),
                          "--strategy", "sequential", "--no-progress"])
    assert code == 0
    assert (out_dir / "Consumer.html").exists()


def test_no_input_directory(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert run_with_args(["process", "--no-progress"]) == 1
    assert "No input directory" in capsys.readouterr().err


def test_missing_input_directory(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert run_with_args(["process", "-i", str(tmp_path / "nope"), "--no-progress"]) == 1
    assert "Error: Input directory not found" in capsys.readouterr().err


def test_missing_config_file(tmp_path, capsys):
    assert run_with_args(["process", "-c", str(tmp_path / "nope.json")]) == 1
    assert "Config file not found" in capsys.readouterr().err


def test_fail_fast_exit_code(docs_dir, out_dir, capsys):
    (out_dir / "ModuleA.html").mkdir(parents=True)
    code = run_with_args(["process", "-i", str(docs_dir), "-o", str(out_dir),
                          "--strategy", "sequential", "--fail-fast", "--no-progress"])
    assert code == 1
    assert "Execution unit 0 failed" in capsys.readouterr().err
