"""Tests for the scipnav command line."""

import json
import os

import pytest
from click.testing import CliRunner

from scipnav import server
from scipnav.cli import main


@pytest.fixture
def runner():
    return CliRunner()


def invoke(runner, root, *args):
    return runner.invoke(main, ["--root", str(root), *args])


def test_definition(runner, greeter_project):
    result = invoke(runner, greeter_project, "definition", "greet")
    assert result.exit_code == 0
    # Locations are printed 1-based
    assert "src/app.ts:2:3  `pkg`/Greeter#greet()." in result.output
    assert "greet(): string { return 'hi'; }" in result.output


def test_definition_json(runner, greeter_project):
    result = invoke(runner, greeter_project, "definition", "Greeter#", "-j")
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert [(d["line"], d["character"]) for d in data] == [(0, 13), (1, 2)]


def test_definition_no_match(runner, greeter_project):
    result = invoke(runner, greeter_project, "definition", "nope")
    assert result.exit_code == 0
    assert "No definitions for 'nope'" in result.output


def test_references(runner, greeter_project):
    result = invoke(runner, greeter_project, "references", "greeter")
    assert result.exit_code == 0
    assert "Found 2 references" in result.output
    assert "definition" in result.output


def test_symbols(runner, greeter_project):
    result = invoke(runner, greeter_project, "symbols", "src/app.ts", "--json-output")
    assert result.exit_code == 0
    assert [(s["name"], s["kind"]) for s in json.loads(result.output)] == [
        ("Greeter", "Class"),
        ("greet", "Method"),
    ]


def test_search_limit(runner, greeter_project):
    result = invoke(runner, greeter_project, "search", "greet", "-n", "1")
    assert result.exit_code == 0
    assert "Found 2 results" in result.output
    assert "1 more" in result.output


def test_tree(runner, greeter_project):
    result = invoke(runner, greeter_project, "tree")
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0].split() == ["Module", "app"]
    assert lines[1].split() == ["Class", "Greeter", "L1"]
    assert lines[2].split() == ["Method", "greet", "L2"]


def test_status(runner, greeter_project):
    result = invoke(runner, greeter_project, "status")
    assert result.exit_code == 0
    assert "Documents:    1" in result.output
    assert "scip-typescript 0.3.14" in result.output


def test_status_not_indexed(runner, tmp_path):
    result = invoke(runner, tmp_path, "status")
    assert result.exit_code == 0
    assert "Not indexed." in result.output


def test_missing_index_exits_with_hint(runner, tmp_path):
    (tmp_path / "pyproject.toml").write_text("[project]\nname = 'x'\n")
    result = invoke(runner, tmp_path, "definition", "x")
    assert result.exit_code == 1
    assert "No SCIP index at" in result.output
    assert "scip-python index . --output .scip/index.scip" in result.output


def test_corrupted_index_exits(runner, tmp_path):
    path = tmp_path / ".scip" / "index.scip"
    path.parent.mkdir()
    path.write_bytes(b"not a scip index")
    result = invoke(runner, tmp_path, "tree")
    assert result.exit_code == 1
    assert "corrupted or outdated" in result.output


def test_index_option(runner, greeter_project, tmp_path_factory):
    elsewhere = tmp_path_factory.mktemp("elsewhere")
    moved = elsewhere / "copy.scip"
    moved.write_bytes((greeter_project / ".scip" / "index.scip").read_bytes())
    (greeter_project / ".scip" / "index.scip").unlink()

    result = invoke(runner, greeter_project, "--index", str(moved), "symbols", "src/app.ts")
    assert result.exit_code == 0
    assert "Greeter" in result.output


def test_serve_configures_server(runner, greeter_project, monkeypatch):
    calls = []
    monkeypatch.setattr(server, "run_server", lambda **kw: calls.append(kw))
    try:
        result = invoke(runner, greeter_project, "serve", "--transport", "sse", "--port", "9000")
        assert result.exit_code == 0
        assert calls == [{"transport": "sse", "port": 9000}]
        assert server._project_root == greeter_project.resolve()
    finally:
        server.configure()


def test_status_stale(runner, greeter_project):
    index_mtime = (greeter_project / ".scip" / "index.scip").stat().st_mtime
    os.utime(greeter_project / "src" / "app.ts", (index_mtime + 60, index_mtime + 60))
    result = invoke(runner, greeter_project, "status")
    assert result.exit_code == 0
    assert "STALE" in result.output


def test_missing_index_lists_every_indexer(runner, tmp_path):
    result = invoke(runner, tmp_path, "tree")
    assert result.exit_code == 1
    assert "ONE of" in result.output
    assert "scip-python index" in result.output
    assert "scip-typescript index" in result.output
