from conftest import SCENARIO_FILES, node_at

from modgraph.dependency_analyzer import (
    analyze_dependencies,
    analyze_detailed_dependency_usage,
    build_external_dependencies,
    build_insights,
    build_internal_dependencies,
    find_type_only_files,
    find_unused_exports,
    is_builtin_module,
)
from modgraph.models import DependencyInfo


def unused_names(unused):
    return {(u.file, u.export) for u in unused}


def test_namespace_import_marks_everything_used(build_graph):
    _, graph = build_graph({
        "src/main.ts": "import * as utils from './utils';\nexport const run = () => utils.a + utils.b;\n",
        "src/utils.ts": "export const a = 1;\nexport const b = 2;\n",
        "src/dead.ts": "export const neverUsed = 1;\n",
    }, entry_paths=["src/main.ts"])

    unused = unused_names(find_unused_exports(graph, graph.entry_points))
    assert unused == {("src/dead.ts", "neverUsed")}


def test_entry_barrel_and_reexports_are_exempt(build_graph):
    _, graph = build_graph({
        "src/index.ts": "export const publicThing = 1;\n",
        "src/parts/index.ts": "export { x } from './x';\nexport { y } from './y';\n",
        "src/parts/x.ts": "export const x = 1;\n",
        "src/parts/y.ts": "export const y = 1;\n",
        "src/relay.ts": "import { z } from './z';\nexport { z };\nexport const own = 1;\n",
        "src/z.ts": "export const z = 1;\n",
    }, entry_paths=["src/index.ts"])
    assert node_at(graph, "src/parts/index.ts").role == "barrel"

    unused = unused_names(find_unused_exports(graph))
    assert unused == {("src/relay.ts", "own")}


def test_default_export_usage(build_graph):
    _, graph = build_graph({
        "src/main.ts": "import App from './app';\nexport const app = App;\n",
        "src/app.ts": "export default function App() {}\nexport const helper = 1;\n",
        "src/lonely.ts": "export default 42;\n",
    }, entry_paths=["src/main.ts"])

    unused = unused_names(find_unused_exports(graph, graph.entry_points))
    assert unused == {("src/app.ts", "helper"), ("src/lonely.ts", "default")}


def test_scenario_user_is_used(build_graph):
    _, graph = build_graph(SCENARIO_FILES, entry_paths=["src/index.ts"])
    assert find_unused_exports(graph, graph.entry_points) == []


# ==========================================
# 의존성 감사
# ==========================================
DEP_FILES = {
    "src/app.ts": """
        import React from 'react';
        import { readFile } from 'node:fs';
        import path from 'path';
        import { x } from '@scope/pkg/deep';
        import { y } from 'left-pad';
        export const app = 1;
    """,
    "src/app.test.ts": """
        import { expect } from 'chai';
        import React from 'react';
        import { app } from './app';
    """,
    "vitest.config.ts": """
        import { defineConfig } from 'vitest/config';
        export default defineConfig({});
    """,
}


def test_dependency_audit(build_graph):
    _, graph = build_graph(DEP_FILES, include_tests=True)
    declared = DependencyInfo(
        production=["react", "chai", "@scope/pkg", "lodash"],
        development=["vitest", "typescript"],
        peer=["react-dom"],
    )
    audit = analyze_dependencies(graph, declared)

    assert audit.unused == ["lodash", "typescript"]
    assert audit.unlisted == ["left-pad"]
    # react 는 테스트와 프로덕션 양쪽에서 쓰이므로 misplaced 가 아님
    assert audit.misplaced == ["chai"]
    assert "react" in audit.used_production
    assert {"chai", "react", "vitest"} <= set(audit.used_development)
    assert audit.peer == ["react-dom"]


def test_dev_declared_test_only_package_is_not_misplaced(build_graph):
    _, graph = build_graph(DEP_FILES, include_tests=True)
    declared = DependencyInfo(production=["react"], development=["chai", "vitest"])
    assert analyze_dependencies(graph, declared).misplaced == []


def test_builtin_modules():
    assert is_builtin_module("fs")
    assert is_builtin_module("node:fs")
    assert is_builtin_module("fs/promises")
    assert not is_builtin_module("left-pad")


def test_external_and_detailed_usage(build_graph):
    _, graph = build_graph(DEP_FILES, include_tests=True)
    declared = DependencyInfo(production=["react", "chai"], development=["vitest"])

    external = {d.name: d for d in build_external_dependencies(graph, declared)}
    assert external["chai"].is_dev_only
    assert external["chai"].used_by == ["src/app.test.ts"]
    assert not external["react"].is_dev_only
    assert not external["left-pad"].is_declared

    usage = analyze_detailed_dependency_usage(graph, declared)
    react = usage["react"]
    assert react.declared_as == "production"
    assert react.total_imports == 2
    assert react.files_used_in == 2
    assert all(loc.is_default for loc in react.locations)
    assert usage["left-pad"].declared_as == "unlisted"
    assert usage["left-pad"].unique_symbols == ["y"]
    assert usage["vitest"].declared_as == "development"


def test_internal_dependency_edges(build_graph):
    _, graph = build_graph(SCENARIO_FILES)
    edges = {(e.source, e.target): e for e in build_internal_dependencies(graph)}
    assert set(edges) == {
        ("src/services/userService.ts", "src/domain/user.ts"),
        ("src/index.ts", "src/services/userService.ts"),
    }
    assert edges[("src/index.ts", "src/services/userService.ts")].identifiers == ["getUser"]
    assert edges[("src/index.ts", "src/services/userService.ts")].import_count == 1


# ==========================================
# 인사이트
# ==========================================
def test_insights(build_graph):
    _, graph = build_graph({
        "src/index.ts": "export { a } from './a';\nexport { b } from './b';\n",
        "src/a.ts": "import { shared } from './shared';\nexport const a = shared;\n",
        "src/b.ts": "import { shared } from './shared';\nexport const b = shared;\n",
        "src/shared.ts": "export const shared = 1;\nexport const extra = 2;\n",
        "src/orphan.ts": "export const lost = 1;\n",
        "src/types.ts": "export interface Shape { n: number }\nexport type Id = string;\n",
    }, entry_paths=["src/index.ts"])

    insights = build_insights(graph, graph.entry_points, [])
    assert insights.most_imported[0].file == "src/shared.ts"
    assert insights.most_imported[0].imported_by_count == 2
    assert set(insights.orphan_files) == {"src/orphan.ts", "src/types.ts"}
    assert insights.type_only_files == ["src/types.ts"]
    assert find_type_only_files(graph) == ["src/types.ts"]
    assert insights.largest_files[0] in ("src/index.ts", "src/shared.ts", "src/types.ts")
    assert insights.barrel_files == []  # index 는 entry 로 분류됨


def test_edges_to_files_outside_graph_are_relative(build_graph):
    _, graph = build_graph({
        "src/a.ts": "import data from './data.json';\nexport const a = data;\n",
        "src/data.json": "{}\n",
    })
    edges = [(e.source, e.target) for e in build_internal_dependencies(graph)]
    assert edges == [("src/a.ts", "src/data.json")]
