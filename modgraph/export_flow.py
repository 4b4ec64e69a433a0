"""
Export 흐름 추적
entry point 에서 공개되는 심볼이 실제로 어디서 정의되었고 어떤 barrel 을 거쳐 왔는지 계산합니다.
"""
from typing import Optional

from loguru import logger

from .models import (
    ExportFlow,
    ExportRecord,
    ExportsMapAnalysis,
    FileNode,
    ModuleGraph,
    PublicApiEntry,
)
from .package_analyzer import target_matches


def _supplier(node: FileNode, exp: ExportRecord) -> Optional[str]:
    """re-export 된 심볼을 공급하는 내부 import 의 대상 파일 (외부 패키지 / 해석 실패면 None)"""
    # export { a } from './x' 처럼 출처가 명확한 경우
    if exp.source is not None:
        for target, records in node.imports.internal.items():
            if any(r.specifier == exp.source for r in records):
                return target
        return None

    # 출처가 없으면 같은 이름의 named import, 또는 namespace import
    for target, records in node.imports.internal.items():
        for record in records:
            if exp.lookup_name in record.identifiers or record.is_namespace:
                return target
    return None


def trace_export_origin(graph: ModuleGraph, path: str, name: str,
                        visited: Optional[set[str]] = None) -> ExportFlow:
    """
    path 파일이 export 하는 name 의 원본 위치를 재귀적으로 찾습니다.
    reexport_chain 에는 거쳐 간 파일(시작 파일 포함)의 상대 경로가 순서대로 들어갑니다.
    이미 방문한 파일을 다시 만나면 그때까지의 결과를 반환합니다.
    """
    visited = visited if visited is not None else set()
    flow = ExportFlow(defined_in=path)

    if path in visited:
        return flow
    visited.add(path)

    node = graph.get(path)
    if node is None:
        return flow
    exp = node.find_export(name)
    if exp is None:
        return flow

    if not exp.is_reexport:
        flow.export_type = "default" if exp.is_default else "named"
        return flow

    target = _supplier(node, exp)
    if target is None:
        logger.debug(f"No internal source for re-export '{name}' in {node.relative_path}")
        return flow

    if exp.is_namespace:
        # export * as ns from './x' : 모듈 전체가 하나의 심볼
        return ExportFlow(defined_in=target, export_type="namespace",
                          reexport_chain=[node.relative_path])

    origin = trace_export_origin(graph, target, exp.lookup_name, visited)
    origin.reexport_chain = [node.relative_path] + origin.reexport_chain
    return origin


def find_original_source(graph: ModuleGraph, path: str, name: str,
                         visited: Optional[set[str]] = None) -> Optional[str]:
    """원본 정의 파일 경로. 찾지 못하거나 순환이면 None"""
    visited = visited if visited is not None else set()
    if path in visited:
        return None
    visited.add(path)

    node = graph.get(path)
    if node is None:
        return None
    exp = node.find_export(name)
    if exp is None:
        return None
    if not exp.is_reexport:
        return path

    target = _supplier(node, exp)
    if target is None:
        return None
    if exp.is_namespace:
        return target
    return find_original_source(graph, target, exp.lookup_name, visited)


def _entry_files(graph: ModuleGraph, entry_points) -> list[str]:
    entries = set(entry_points or ()) | graph.entry_points
    return sorted(path for path in entries if path in graph)


def _conditions_for(relative_path: str, exports_map: Optional[ExportsMapAnalysis],
                    excluded: set[str]) -> list[str]:
    if exports_map is None:
        return []
    found = []
    for export_path in exports_map.paths:
        for cond in export_path.conditions:
            if f"!{cond.condition}" in excluded or cond.condition in found:
                continue
            if target_matches(cond.target, relative_path):
                found.append(cond.condition)
    return found


def build_export_flows(graph: ModuleGraph, entry_points=None,
                       exports_map: Optional[ExportsMapAnalysis] = None,
                       excluded: Optional[set[str]] = None) -> dict[str, ExportFlow]:
    """
    심볼 이름 -> ExportFlow.
    같은 이름을 여러 entry 가 공개하면 public_from 에 누적합니다.
    reexport_chain 에서 entry 파일 자신은 제외됩니다.
    """
    excluded = excluded or set()
    flows: dict[str, ExportFlow] = {}

    for entry in _entry_files(graph, entry_points):
        node = graph.nodes[entry]
        conditions = _conditions_for(node.relative_path, exports_map, excluded)

        for exp in node.exports:
            flow = flows.get(exp.name)
            if flow is None:
                flow = trace_export_origin(graph, entry, exp.name)
                if flow.reexport_chain and flow.reexport_chain[0] == node.relative_path:
                    flow.reexport_chain = flow.reexport_chain[1:]
                flows[exp.name] = flow

            if node.relative_path not in flow.public_from:
                flow.public_from.append(node.relative_path)
            for condition in conditions:
                if condition not in flow.conditions:
                    flow.conditions.append(condition)

    logger.info(f"🧭 Traced {len(flows)} public symbols")
    return flows


def build_public_api(graph: ModuleGraph, entry_points=None) -> list[PublicApiEntry]:
    """entry 파일별로 직접 정의한(= re-export 가 아닌) export 목록"""
    api = []
    for entry in _entry_files(graph, entry_points):
        node = graph.nodes[entry]
        api.append(PublicApiEntry(
            entry_point=node.relative_path,
            exports=[exp for exp in node.exports if not exp.is_reexport],
        ))
    return api
