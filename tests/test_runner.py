from io import StringIO

from rich.console import Console

from conftest import SCENARIO_FILES, SCENARIO_PACKAGE

import analyze
from modgraph.analyzer import analyze_repository


def test_main_success(make_project):
    root = make_project(SCENARIO_FILES, SCENARIO_PACKAGE)
    assert analyze.main([str(root)]) == 0


def test_main_missing_path(tmp_path):
    assert analyze.main([str(tmp_path / "nope")]) == 1


def test_main_without_package_json(tmp_path):
    (tmp_path / "index.ts").write_text("export const a = 1;\n", encoding="utf-8")
    assert analyze.main([str(tmp_path)]) == 1


def test_render_report(make_project):
    root = make_project({
        **SCENARIO_FILES,
        "src/a.ts": "import { b } from './b';\nexport const a = 1;\n",
        "src/b.ts": "import { a } from './a';\nexport const b = 1;\nexport const stale = 2;\n",
    }, SCENARIO_PACKAGE)
    result = analyze_repository(root)

    buffer = StringIO()
    analyze.render_report(result, Console(file=buffer, width=200))
    report = buffer.getvalue()

    assert "scenario" in report
    assert "src/a.ts → src/b.ts → src/a.ts" in report
    assert "stale" in report
    assert "getUser" in report
    assert "No layer violations" in report
