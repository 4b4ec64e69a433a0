from conftest import SCENARIO_FILES, node_at

from modgraph.export_flow import (
    build_export_flows,
    build_public_api,
    find_original_source,
    trace_export_origin,
)
from modgraph.models import ExportsCondition, ExportsMapAnalysis, ExportsPath


def test_scenario_flow(build_graph):
    _, graph = build_graph(SCENARIO_FILES, entry_paths=["src/index.ts"])
    flows = build_export_flows(graph, graph.entry_points)

    assert set(flows) == {"getUser"}
    flow = flows["getUser"]
    assert graph.relative(flow.defined_in) == "src/services/userService.ts"
    assert flow.export_type == "named"
    assert flow.reexport_chain == []
    assert flow.public_from == ["src/index.ts"]


def test_chain_through_barrels(build_graph):
    _, graph = build_graph({
        "src/x.ts": "export const thing = 1;\n",
        "src/y.ts": "export { thing } from './x';\n",
        "src/index.ts": "export { thing } from './y';\n",
    }, entry_paths=["src/index.ts"])
    flow = build_export_flows(graph, graph.entry_points)["thing"]

    assert graph.relative(flow.defined_in) == "src/x.ts"
    assert flow.reexport_chain == ["src/y.ts"]
    assert flow.public_from == ["src/index.ts"]


def test_trace_includes_starting_file(build_graph):
    _, graph = build_graph({
        "src/x.ts": "export const thing = 1;\n",
        "src/y.ts": "export { thing } from './x';\n",
    })
    flow = trace_export_origin(graph, node_at(graph, "src/y.ts").path, "thing")
    assert flow.reexport_chain == ["src/y.ts"]
    assert graph.relative(flow.defined_in) == "src/x.ts"


def test_cyclic_reexports_terminate(build_graph):
    _, graph = build_graph({
        "src/y.ts": "export { loop } from './z';\n",
        "src/z.ts": "export { loop } from './y';\n",
        "src/index.ts": "export { loop } from './y';\n",
    }, entry_paths=["src/index.ts"])
    flow = build_export_flows(graph, graph.entry_points)["loop"]

    assert flow.reexport_chain == ["src/y.ts", "src/z.ts"]
    assert find_original_source(graph, node_at(graph, "src/index.ts").path, "loop") is None


def test_aliases_imports_and_namespaces(build_graph):
    _, graph = build_graph({
        "src/impl.ts": "export function inner() {}\nexport default class Widget {}\n",
        "src/tools.ts": "export const hammer = 1;\n",
        "src/index.ts": """
            import Widget from './impl';
            export { inner as outer } from './impl';
            export * as tools from './tools';
            export default Widget;
        """,
    }, entry_paths=["src/index.ts"])
    flows = build_export_flows(graph, graph.entry_points)

    outer = flows["outer"]
    assert graph.relative(outer.defined_in) == "src/impl.ts"
    assert outer.reexport_chain == []

    tools = flows["tools"]
    assert tools.export_type == "namespace"
    assert graph.relative(tools.defined_in) == "src/tools.ts"

    default = flows["default"]
    assert default.export_type == "default"
    assert graph.relative(default.defined_in) == "src/impl.ts"


def test_multiple_entries_accumulate_public_from(build_graph):
    _, graph = build_graph({
        "src/core.ts": "export const shared = 1;\n",
        "src/index.ts": "export { shared } from './core';\n",
        "src/cli.ts": "export { shared } from './core';\nexport const run = 1;\n",
    }, entry_paths=["src/index.ts", "src/cli.ts"])
    flows = build_export_flows(graph, graph.entry_points)

    assert flows["shared"].public_from == ["src/cli.ts", "src/index.ts"]
    assert graph.relative(flows["run"].defined_in) == "src/cli.ts"


def test_explicit_roots_and_star_exports(build_graph):
    _, graph = build_graph({
        "src/a.ts": "export const fromA = 1;\n",
        "src/public.ts": "export * from './a';\n",
    })
    root = node_at(graph, "src/public.ts").path
    flows = build_export_flows(graph, {root})
    assert graph.relative(flows["fromA"].defined_in) == "src/a.ts"
    assert flows["fromA"].public_from == ["src/public.ts"]


def test_conditions_from_exports_map(build_graph):
    root, graph = build_graph({
        "src/index.ts": "export const api = 1;\n",
    }, entry_paths=["src/index.ts"])
    exports_map = ExportsMapAnalysis(paths=[ExportsPath(path=".", conditions=[
        ExportsCondition("import", "./dist/index.mjs", str(root / "dist/index.mjs")),
        ExportsCondition("types", "./dist/index.d.ts", str(root / "dist/index.d.ts")),
        ExportsCondition("browser", "./dist/browser.js", str(root / "dist/browser.js")),
    ])])

    flows = build_export_flows(graph, graph.entry_points, exports_map, excluded={"!types"})
    assert flows["api"].conditions == ["import"]


def test_public_api(build_graph):
    _, graph = build_graph({
        "src/core.ts": "export const shared = 1;\n",
        "src/index.ts": "export { shared } from './core';\nexport function start() {}\n",
    }, entry_paths=["src/index.ts"])
    api = build_public_api(graph, graph.entry_points)
    assert [entry.entry_point for entry in api] == ["src/index.ts"]
    assert [exp.name for exp in api[0].exports] == ["start"]


def test_external_reexport_is_not_credited_to_local_file(build_graph):
    _, graph = build_graph({
        "src/utils.ts": "export const helper = 1;\n",
        "src/index.ts": """
            import * as utils from './utils';
            export { useState } from 'react';
            export { missing } from './nowhere';
            export const api = utils.helper;
        """,
    }, entry_paths=["src/index.ts"])
    flows = build_export_flows(graph, graph.entry_points)

    assert graph.relative(flows["useState"].defined_in) == "src/index.ts"
    assert graph.relative(flows["missing"].defined_in) == "src/index.ts"
    index = node_at(graph, "src/index.ts").path
    assert find_original_source(graph, index, "useState") is None
    assert find_original_source(graph, index, "missing") is None
