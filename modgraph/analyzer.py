"""
분석 파이프라인 진입점
package.json -> 모듈 그래프 -> (순환 / 미사용 export / 의존성 / export 흐름 / 아키텍처)
"""
import os
import time
from pathlib import Path
from typing import Optional

from loguru import logger

from .architecture import detect_architecture
from .config import AnalysisOptions
from .cycle_detector import find_circular_dependencies
from .dependency_analyzer import (
    analyze_dependencies,
    analyze_detailed_dependency_usage,
    build_external_dependencies,
    build_insights,
    build_internal_dependencies,
)
from .export_flow import build_export_flows, build_public_api
from .graph_builder import GraphBuilder
from .models import AnalysisResult
from .package_analyzer import (
    ConfigError,
    analyze_exports_map,
    build_package_config,
    find_package_json_files,
    is_monorepo,
    load_manifest,
)
from .path_utils import relative_posix


def analyze_repository(root_path, options: Optional[AnalysisOptions] = None) -> AnalysisResult:
    """
    저장소 하나를 분석합니다.
    package.json 이 없거나 깨져 있으면 ConfigError (나머지 오류는 결과 안에서 처리).
    """
    started = time.perf_counter()
    root_path = os.path.abspath(root_path)
    options = options or AnalysisOptions()

    if not os.path.isdir(root_path):
        raise ConfigError(f"Not a directory: {root_path}")

    # 1. package.json (한 번만 읽음)
    package_json = Path(root_path) / "package.json"
    manifest = load_manifest(package_json)
    package = build_package_config(manifest, package_json)

    monorepo = is_monorepo(root_path, manifest)
    package_files = []
    if monorepo:
        package_files = find_package_json_files(root_path, package.workspaces)
        logger.info(f"📁 Monorepo detected with workspaces: {', '.join(package.workspaces or [])} "
                    f"({len(package_files)} package.json files)")

    # 2. 모듈 그래프
    entry_paths = list(package.entry_points.all) + list(options.entry_paths)
    graph = GraphBuilder(root_path, options).build(entry_paths)
    entry_points = graph.entry_points

    # 3. 파생 분석 (모두 그래프 읽기 전용)
    cycles = find_circular_dependencies(graph)
    insights = build_insights(graph, entry_points, cycles)
    audit = analyze_dependencies(graph, package.dependencies)
    exports_map = analyze_exports_map(manifest, root_path, graph)
    flows = build_export_flows(graph, entry_points, exports_map, package.entry_points.excluded)
    architecture = detect_architecture(graph, options.layers)

    result = AnalysisResult(
        package=package,
        graph=graph,
        entry_points=entry_points,
        dependencies=audit,
        insights=insights,
        export_flows=flows,
        architecture=architecture,
        internal_dependencies=build_internal_dependencies(graph),
        external_dependencies=build_external_dependencies(graph, package.dependencies),
        dependency_usage=analyze_detailed_dependency_usage(graph, package.dependencies),
        public_api=build_public_api(graph, entry_points),
        exports_map=exports_map,
        is_monorepo=monorepo,
        package_files=[relative_posix(p, root_path) for p in package_files],
        duration_ms=int((time.perf_counter() - started) * 1000),
    )

    logger.success(f"✅ Analysis of {package.name} finished in {result.duration_ms} ms "
                   f"({len(graph)} files, {len(cycles)} cycles, "
                   f"{len(insights.unused_exports)} unused exports)")
    return result
