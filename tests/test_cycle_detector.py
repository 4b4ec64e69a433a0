from conftest import SCENARIO_FILES

from modgraph.cycle_detector import find_circular_dependencies
from modgraph.models import FileImports, FileNode, ModuleGraph


def make_graph(edges: dict) -> ModuleGraph:
    """{'a': ['b'], ...} 형태로 메모리상의 그래프를 만든다"""
    graph = ModuleGraph(root_path="/repo")
    for name in edges:
        graph.nodes[f"/repo/{name}.ts"] = FileNode(path=f"/repo/{name}.ts", relative_path=f"{name}.ts")
    for name, targets in edges.items():
        node = graph.nodes[f"/repo/{name}.ts"]
        node.imports = FileImports(internal={f"/repo/{t}.ts": [] for t in targets})
    return graph


def test_three_file_cycle(build_graph):
    _, graph = build_graph({
        "src/a.ts": "import { b } from './b';\nexport const a = 1;\n",
        "src/b.ts": "import { c } from './c';\nexport const b = 1;\n",
        "src/c.ts": "import { a } from './a';\nexport const c = 1;\n",
    })
    assert find_circular_dependencies(graph) == [["src/a.ts", "src/b.ts", "src/c.ts", "src/a.ts"]]


def test_self_import(build_graph):
    _, graph = build_graph({
        "src/self.ts": "import './self';\nexport const x = 1;\n",
    })
    assert find_circular_dependencies(graph) == [["src/self.ts", "src/self.ts"]]


def test_acyclic_scenario(build_graph):
    _, graph = build_graph(SCENARIO_FILES)
    assert find_circular_dependencies(graph) == []


def test_cycles_in_separate_components():
    graph = make_graph({
        "a": ["b"], "b": ["a"],
        "x": [], "y": ["z"], "z": ["y"],
    })
    assert find_circular_dependencies(graph) == [
        ["a.ts", "b.ts", "a.ts"],
        ["y.ts", "z.ts", "y.ts"],
    ]


def test_cycle_reached_from_outside():
    # root -> a -> b -> a : root 는 순환에 포함되지 않음
    graph = make_graph({"root": ["a"], "a": ["b"], "b": ["a"]})
    assert find_circular_dependencies(graph) == [["a.ts", "b.ts", "a.ts"]]


def test_edges_to_missing_nodes_are_ignored():
    graph = make_graph({"a": ["ghost"]})
    assert find_circular_dependencies(graph) == []
