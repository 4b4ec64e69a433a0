"""
아키텍처 레이어 분류 / 의존 방향 위반 탐지 / 폴더 구조 패턴 추정
"""
from typing import Optional

from loguru import logger

from .config import LayerRule
from .models import ArchitectureAnalysis, ArchitectureLayer, LayerViolation, ModuleGraph
from .path_utils import matches_any, to_posix

DEFAULT_LAYERS = [
    LayerRule(
        name="presentation",
        description="UI layer - components, pages, views",
        paths=["**/components/**", "**/pages/**", "**/views/**", "**/ui/**"],
        depends_on=["domain", "infrastructure", "shared"],
    ),
    LayerRule(
        name="domain",
        description="Business logic - domain models, entities",
        paths=["**/domain/**", "**/models/**", "**/entities/**", "**/core/**"],
        depends_on=["shared"],
    ),
    LayerRule(
        name="infrastructure",
        description="External services - APIs, repositories",
        paths=["**/services/**", "**/api/**", "**/repositories/**", "**/adapters/**"],
        depends_on=["domain", "shared"],
    ),
    LayerRule(
        name="shared",
        description="Shared utilities - types, helpers",
        paths=["**/utils/**", "**/helpers/**", "**/lib/**", "**/types/**", "**/common/**"],
        depends_on=[],
    ),
]


def _normalize(path: str) -> str:
    return to_posix(path).lower()


def layer_of(relative_path: str, layers: list[LayerRule]) -> Optional[str]:
    """첫 번째로 매칭되는 레이어 이름 (없으면 None)"""
    path = _normalize(relative_path)
    for layer in layers:
        if matches_any(path, [_normalize(p) for p in layer.paths]):
            return layer.name
    return None


def assign_layers(graph: ModuleGraph, layers: list[LayerRule]) -> list[ArchitectureLayer]:
    assigned = [
        ArchitectureLayer(
            name=rule.name,
            description=rule.description,
            paths=list(rule.paths),
            depends_on=list(rule.depends_on),
        )
        for rule in layers
    ]
    by_name = {layer.name: layer for layer in assigned}

    for node in graph.values():
        name = layer_of(node.relative_path, layers)
        if name is not None:
            by_name[name].files.append(node.relative_path)
    return assigned


def find_layer_violations(graph: ModuleGraph, layers: list[ArchitectureLayer]) -> list[LayerViolation]:
    file_layer = {path: layer.name for layer in layers for path in layer.files}
    allowed = {layer.name: {layer.name, *layer.depends_on} for layer in layers}

    violations = []
    for node in graph.values():
        source_layer = file_layer.get(node.relative_path)
        if source_layer is None:
            continue
        for target in node.imports.internal:
            target_rel = graph.relative(target)
            target_layer = file_layer.get(target_rel)
            if target_layer is None or target_layer in allowed[source_layer]:
                continue
            violations.append(LayerViolation(
                source=node.relative_path,
                target=target_rel,
                source_layer=source_layer,
                target_layer=target_layer,
            ))
    return violations


def detect_pattern(relative_paths: list[str]) -> str:
    """monorepo > feature-based > layered > flat > unknown 순서로 판정"""
    segments = [_normalize(p).split("/") for p in relative_paths]
    dirs = [set(parts[:-1]) for parts in segments]

    def any_dir(*names: str) -> bool:
        return any(d.intersection(names) for d in dirs)

    if any_dir("packages", "apps"):
        return "monorepo"
    if any_dir("features", "modules"):
        return "feature-based"
    if any_dir("components") and any_dir("services", "utils"):
        return "layered"

    src_paths = [parts for parts in segments if parts[0] == "src"]
    if src_paths and max(len(parts) for parts in src_paths) <= 3:
        return "flat"
    return "unknown"


def detect_architecture(graph: ModuleGraph, layers: Optional[list[LayerRule]] = None) -> ArchitectureAnalysis:
    layers = layers if layers is not None else DEFAULT_LAYERS

    pattern = detect_pattern([node.relative_path for node in graph.values()])
    assigned = assign_layers(graph, layers)
    violations = find_layer_violations(graph, assigned)

    for layer in assigned:
        layer.violated_by = [v.source for v in violations if v.target_layer == layer.name]

    logger.info(f"🏛️ Architecture: {pattern}, {len(violations)} layer violations")
    return ArchitectureAnalysis(
        pattern=pattern,
        layers=[layer for layer in assigned if layer.files],
        violations=violations,
    )
