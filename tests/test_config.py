import pytest
from pydantic import ValidationError

from modgraph.config import DEFAULT_EXCLUDE_PATTERNS, AnalysisOptions, LayerRule, load_options_from_env


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("MODGRAPH_EXTENSIONS", "MODGRAPH_EXCLUDE", "MODGRAPH_INCLUDE_TESTS",
                 "MODGRAPH_TSCONFIG", "MODGRAPH_MAX_WORKERS", "MODGRAPH_ENTRY_PATHS"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults():
    options = AnalysisOptions()
    assert ".ts" in options.extensions
    assert ".tsx" in options.extensions
    assert options.exclude_patterns == DEFAULT_EXCLUDE_PATTERNS
    assert options.include_tests is False
    assert options.max_workers == 8
    assert options.layers is None


def test_extension_normalization():
    options = AnalysisOptions(extensions=["TS", ".tsx", "ts", " .js "])
    assert options.extensions == [".ts", ".tsx", ".js"]


def test_empty_extensions_rejected():
    with pytest.raises(ValidationError):
        AnalysisOptions(extensions=["", "  "])


@pytest.mark.parametrize("workers", [0, 65])
def test_max_workers_bounds(workers):
    with pytest.raises(ValidationError):
        AnalysisOptions(max_workers=workers)


def test_layers_from_dicts():
    options = AnalysisOptions(layers=[{"name": "ui", "paths": ["src/ui/**"]}])
    assert options.layers == [LayerRule(name="ui", paths=["src/ui/**"])]


def test_load_options_from_env(clean_env):
    clean_env.setenv("MODGRAPH_EXTENSIONS", "ts, tsx")
    clean_env.setenv("MODGRAPH_EXCLUDE", "**/legacy/**,")
    clean_env.setenv("MODGRAPH_INCLUDE_TESTS", "Yes")
    clean_env.setenv("MODGRAPH_MAX_WORKERS", "2")
    clean_env.setenv("MODGRAPH_ENTRY_PATHS", "src/cli.ts")

    options = load_options_from_env()
    assert options.extensions == [".ts", ".tsx"]
    assert options.exclude_patterns == ["**/legacy/**"]
    assert options.include_tests is True
    assert options.max_workers == 2
    assert options.entry_paths == ["src/cli.ts"]
    assert options.tsconfig_path is None


def test_invalid_env_value(clean_env):
    clean_env.setenv("MODGRAPH_MAX_WORKERS", "lots")
    with pytest.raises(ValidationError):
        load_options_from_env()
