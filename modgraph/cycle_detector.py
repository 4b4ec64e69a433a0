"""
순환 의존성 탐지 (내부 import 엣지만 대상)
"""
from loguru import logger

from .models import ModuleGraph


def find_circular_dependencies(graph: ModuleGraph) -> list[list[str]]:
    """
    방문하지 않은 모든 노드에서 DFS 를 다시 시작합니다 (그래프는 여러 컴포넌트로 나뉠 수 있음).
    현재 재귀 스택에 있는 노드를 다시 만나면 스택의 해당 위치부터 끝까지 + 그 노드 자신이 하나의 순환.
    자기 자신을 import 하면 [a, a].
    """
    cycles: list[list[str]] = []
    visited: set[str] = set()

    for root in graph:
        if root in visited:
            continue

        # (노드, 아직 보지 않은 이웃 iterator) 스택으로 재귀 없이 DFS
        stack: list[str] = [root]
        on_stack: set[str] = {root}
        iterators = [iter(_neighbors(graph, root))]
        visited.add(root)

        while iterators:
            neighbor = next(iterators[-1], None)
            if neighbor is None:
                iterators.pop()
                on_stack.discard(stack.pop())
                continue

            if neighbor in on_stack:
                start = stack.index(neighbor)
                cycle = stack[start:] + [neighbor]
                cycles.append([graph.relative(p) for p in cycle])
            elif neighbor not in visited:
                visited.add(neighbor)
                stack.append(neighbor)
                on_stack.add(neighbor)
                iterators.append(iter(_neighbors(graph, neighbor)))

    if cycles:
        logger.info(f"🔁 Found {len(cycles)} circular dependencies")
    return cycles


def _neighbors(graph: ModuleGraph, path: str) -> list[str]:
    node = graph.get(path)
    if node is None:
        return []
    return [target for target in node.imports.internal if target in graph]
