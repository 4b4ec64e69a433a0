from pathlib import Path

import pytest

from modgraph.path_utils import compile_glob, glob_match, matches_any, relative_posix, should_skip_path


@pytest.mark.parametrize("path, pattern", [
    ("src/components/Button.tsx", "**/components/**"),
    ("components/Button.tsx", "**/components/**"),
    ("components", "**/components/**"),
    ("src/a.test.ts", "**/*.test.*"),
    ("a.test.ts", "**/*.test.*"),
    ("src/a.ts", "src/*.ts"),
    ("src/b.ts", "src/[ab].ts"),
    ("src/c.ts", "src/?.ts"),
])
def test_glob_matches(path, pattern):
    assert glob_match(path, pattern)


@pytest.mark.parametrize("path, pattern", [
    ("src/deep/a.ts", "src/*.ts"),
    ("src/fileXts", "src/file.ts"),
    ("src/mycomponents/a.ts", "**/components/**"),
    ("src/c.ts", "src/[ab].ts"),
    ("src/ab.ts", "src/?.ts"),
])
def test_glob_does_not_match(path, pattern):
    assert not glob_match(path, pattern)


def test_malformed_glob_never_matches():
    assert compile_glob("src/[abc") is None
    assert compile_glob("") is None
    assert not glob_match("src/a", "src/[abc")
    assert not matches_any("src/a", ["src/[abc", "[]"])


def test_ignore_case():
    assert not glob_match("SRC/Components/A.tsx", "**/components/**")
    assert glob_match("SRC/Components/A.tsx", "**/components/**", ignore_case=True)


def test_should_skip_path(tmp_path):
    root = tmp_path
    assert should_skip_path(root / "node_modules", root)
    assert should_skip_path(root / "packages" / "a" / "node_modules" / "x.ts", root)
    assert should_skip_path(root / "dist" / "index.js", root)
    assert should_skip_path(Path("/elsewhere/a.ts"), root)
    assert not should_skip_path(root / "src" / "index.ts", root)


def test_relative_posix(tmp_path):
    assert relative_posix(str(tmp_path / "src" / "a.ts"), str(tmp_path)) == "src/a.ts"
