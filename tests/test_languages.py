"""Tests for language registry and project language detection."""

import json
import os
import time

import pytest

from scipnav.languages import (
    LANGUAGES,
    SUPPORTED_EXTENSIONS,
    detect_language,
    detect_languages,
    indexer_commands,
    needs_reindex,
    reindex_hint,
)


def _names(root):
    return [c.name for c in detect_languages(root)]


def test_detect_language_by_extension():
    assert detect_language("src/app.py") == "python"
    assert detect_language("src/App.TSX") == "typescript"
    assert detect_language("web/Header.vue") == "typescript"
    assert detect_language("lib/index.cjs") == "typescript"
    assert detect_language("README.md") is None
    assert detect_language("Makefile") is None


def test_supported_extensions():
    assert ".py" in SUPPORTED_EXTENSIONS
    assert ".mts" in SUPPORTED_EXTENSIONS
    assert ".rs" not in SUPPORTED_EXTENSIONS


def test_markers(tmp_path):
    (tmp_path / "pyproject.toml").write_text("[project]\nname = 'x'\n")
    (tmp_path / "tsconfig.json").write_text("{}")
    assert _names(tmp_path) == ["python", "typescript"]


def test_package_json_with_typescript_dependency(tmp_path):
    (tmp_path / "package.json").write_text(json.dumps({
        "devDependencies": {"typescript": "^5.0.0"},
    }))
    assert _names(tmp_path) == ["typescript"]


def test_package_json_with_js_main(tmp_path):
    (tmp_path / "package.json").write_text(json.dumps({"main": "dist/index.js"}))
    assert _names(tmp_path) == ["typescript"]


def test_package_json_without_hints(tmp_path):
    (tmp_path / "package.json").write_text(json.dumps({"name": "plain"}))
    assert _names(tmp_path) == []


def test_malformed_package_json_ignored(tmp_path):
    (tmp_path / "package.json").write_text("{not json")
    assert _names(tmp_path) == []


def test_fallback_source_files(tmp_path):
    pkg = tmp_path / "tools" / "scripts"
    pkg.mkdir(parents=True)
    (pkg / "run.py").write_text("print('hi')\n")
    assert _names(tmp_path) == ["python"]


def test_ignored_directories_not_walked(tmp_path):
    for d in ("node_modules", ".venv", ".hidden"):
        (tmp_path / d).mkdir()
        (tmp_path / d / "mod.py").write_text("")
        (tmp_path / d / "mod.ts").write_text("")
    assert _names(tmp_path) == []


def test_indexer_commands_for_detected_language(tmp_path):
    (tmp_path / "tsconfig.json").write_text("{}")
    assert indexer_commands(tmp_path) == [LANGUAGES["typescript"].indexer]


def test_indexer_commands_fall_back_to_all(tmp_path):
    assert indexer_commands(tmp_path) == [c.indexer for c in LANGUAGES.values()]
    assert all(".scip/index.scip" in cmd for cmd in indexer_commands(tmp_path))


def test_reindex_hint_single_language(tmp_path):
    (tmp_path / "tsconfig.json").write_text("{}")
    hint = reindex_hint(tmp_path)
    assert hint == f"Run from {tmp_path}: {LANGUAGES['typescript'].indexer}"


def test_reindex_hint_warns_commands_share_output(tmp_path):
    hint = reindex_hint(tmp_path)
    assert "ONE of" in hint
    assert "replaces any previous index" in hint
    assert all(c.indexer in hint for c in LANGUAGES.values())


# --- needs_reindex ---


def _touch(path, mtime):
    os.utime(path, (mtime, mtime))


class TestNeedsReindex:
    @pytest.fixture
    def project(self, tmp_path):
        """Python project with one source file and an index file."""
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "main.py").write_text("x = 1\n")
        index = tmp_path / ".scip" / "index.scip"
        index.parent.mkdir()
        index.write_bytes(b"")
        return tmp_path, index

    def test_missing_index(self, tmp_path):
        (tmp_path / "main.py").write_text("x = 1\n")
        assert needs_reindex(tmp_path, tmp_path / ".scip" / "index.scip") is True

    def test_source_newer_than_index(self, project):
        root, index = project
        now = time.time()
        _touch(index, now - 60)
        _touch(root / "src" / "main.py", now)
        assert needs_reindex(root, index) is True

    def test_index_newer_than_sources(self, project):
        root, index = project
        now = time.time()
        _touch(root / "src" / "main.py", now - 60)
        _touch(index, now)
        assert needs_reindex(root, index) is False

    def test_no_sources(self, tmp_path):
        index = tmp_path / ".scip" / "index.scip"
        index.parent.mkdir()
        index.write_bytes(b"")
        assert needs_reindex(tmp_path, index) is False

    def test_ignored_directories(self, project):
        root, index = project
        now = time.time()
        _touch(root / "src" / "main.py", now - 60)
        _touch(index, now)
        for rel in ("node_modules/pkg/mod.py", ".venv/lib/site.py", "build/gen.py"):
            path = root / rel
            path.parent.mkdir(parents=True)
            path.write_text("# ignored\n")
            _touch(path, now + 60)
        assert needs_reindex(root, index) is False

    def test_nested_directories(self, project):
        root, index = project
        now = time.time()
        _touch(root / "src" / "main.py", now - 60)
        _touch(index, now)
        assert needs_reindex(root, index) is False

        deep = root / "src" / "pkg" / "sub" / "deep.py"
        deep.parent.mkdir(parents=True)
        deep.write_text("# new\n")
        _touch(deep, now + 60)
        assert needs_reindex(root, index) is True

    def test_only_detected_language_sources_count(self, project):
        root, index = project
        (root / "pyproject.toml").write_text("[project]\nname = 'x'\n")
        now = time.time()
        _touch(root / "src" / "main.py", now - 60)
        _touch(index, now)
        bundle = root / "docs" / "bundle.js"
        bundle.parent.mkdir()
        bundle.write_text("")
        _touch(bundle, now + 60)
        # A lone .js file does not make this a TypeScript project
        assert needs_reindex(root, index) is False
