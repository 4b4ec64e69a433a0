import json
import textwrap
from pathlib import Path

import pytest

from modgraph.config import AnalysisOptions
from modgraph.graph_builder import GraphBuilder


def write_project(root: Path, files: dict, package_json: dict = None) -> Path:
    """files: 상대 경로 -> 소스 문자열. package_json 이 None 이면 기본값을 씀"""
    root.mkdir(parents=True, exist_ok=True)
    manifest = package_json if package_json is not None else {"name": "fixture", "version": "1.0.0"}
    (root / "package.json").write_text(json.dumps(manifest), encoding="utf-8")
    for rel, source in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source).lstrip(), encoding="utf-8")
    return root


@pytest.fixture
def make_project(tmp_path):
    def _make(files: dict, package_json: dict = None) -> Path:
        return write_project(tmp_path / "project", files, package_json)
    return _make


@pytest.fixture
def build_graph(make_project):
    """프로젝트를 만들고 바로 그래프까지 빌드"""
    def _build(files: dict, entry_paths=(), package_json: dict = None, **options):
        root = make_project(files, package_json)
        graph = GraphBuilder(root, AnalysisOptions(**options)).build(entry_paths)
        return root, graph
    return _build


def node_at(graph, relative_path: str):
    for node in graph.values():
        if node.relative_path == relative_path:
            return node
    raise KeyError(relative_path)


# 예제 시나리오: domain / services / index
SCENARIO_FILES = {
    "src/domain/user.ts": """
        export class User {
          id: string = "";
        }
    """,
    "src/services/userService.ts": """
        import { User } from '../domain/user';

        export function getUser(id: string): User {
          const user = new User();
          user.id = id;
          return user;
        }
    """,
    "src/index.ts": """
        export { getUser } from './services/userService';
    """,
}

SCENARIO_PACKAGE = {"name": "scenario", "version": "1.2.3", "main": "src/index.ts"}
