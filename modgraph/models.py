# modgraph/models.py
from dataclasses import dataclass, field
from typing import Iterator, Optional

from .path_utils import relative_posix

# 네임스페이스 import (import * as ns / import('x') / require('x')) 표시용
NAMESPACE_IMPORT = "*"


@dataclass(frozen=True)
class Position:
    line: int    # 1부터 시작
    column: int  # 1부터 시작


@dataclass
class MemberInfo:
    name: str
    kind: str  # function, variable, const
    visibility: str = "public"  # public, protected, private
    is_static: bool = False
    signature: Optional[str] = None


@dataclass
class ImportRecord:
    specifier: str  # 작성된 그대로의 모듈 경로
    identifiers: list[str] = field(default_factory=list)
    resolved_path: Optional[str] = None  # 내부 import만 채워짐
    package: Optional[str] = None  # 외부 import만 채워짐 (@scope/pkg 단위)
    is_type_only: bool = False
    is_dynamic: bool = False
    position: Position = field(default_factory=lambda: Position(1, 1))

    @property
    def is_namespace(self) -> bool:
        return NAMESPACE_IMPORT in self.identifiers


@dataclass
class ExportRecord:
    name: str
    kind: str = "unknown"
    is_default: bool = False
    is_reexport: bool = False

    # re-export일 때 원본 모듈에서의 이름 (export { a as b } from ... -> "a")
    original_name: Optional[str] = None
    source: Optional[str] = None  # export ... from '<source>'
    is_namespace: bool = False    # export * as ns from ...

    members: list[MemberInfo] = field(default_factory=list)
    jsdoc: Optional[str] = None
    signature: Optional[str] = None
    release_tag: Optional[str] = None  # public, beta, alpha, internal
    position: Position = field(default_factory=lambda: Position(1, 1))

    @property
    def lookup_name(self) -> str:
        """원본 모듈에서 찾아야 할 이름"""
        return self.original_name or self.name


@dataclass
class ParsedFile:
    """파일 하나의 파싱 결과 (다른 파일 정보는 전혀 포함하지 않음)"""
    path: str
    imports: list[ImportRecord] = field(default_factory=list)
    exports: list[ExportRecord] = field(default_factory=list)
    star_exports: list[str] = field(default_factory=list)  # export * from '<spec>'
    line_count: int = 0


@dataclass
class FileImports:
    internal: dict[str, list[ImportRecord]] = field(default_factory=dict)
    external: set[str] = field(default_factory=set)
    unresolved: set[str] = field(default_factory=set)
    external_records: list[ImportRecord] = field(default_factory=list)


@dataclass
class FileNode:
    path: str
    relative_path: str
    imports: FileImports = field(default_factory=FileImports)
    exports: list[ExportRecord] = field(default_factory=list)
    imported_by: set[str] = field(default_factory=set)
    role: str = "unknown"
    line_count: int = 0

    def find_export(self, name: str) -> Optional[ExportRecord]:
        for exp in self.exports:
            if exp.name == name:
                return exp
        return None


@dataclass
class ModuleGraph:
    """절대 경로 -> FileNode. wiring 단계 이후에는 읽기 전용으로 다룬다."""
    root_path: str
    nodes: dict[str, FileNode] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[str]:
        return iter(self.nodes)

    def __contains__(self, path: object) -> bool:
        return path in self.nodes

    def get(self, path: str) -> Optional[FileNode]:
        return self.nodes.get(path)

    def items(self):
        return self.nodes.items()

    def values(self):
        return self.nodes.values()

    def relative(self, path: str) -> str:
        node = self.nodes.get(path)
        if node is not None:
            return node.relative_path
        # 그래프 밖의 파일 (.json, 파싱 실패 등)
        return relative_posix(path, self.root_path)

    @property
    def entry_points(self) -> set[str]:
        return {path for path, node in self.nodes.items() if node.role == "entry"}


# ==========================================
# package.json
# ==========================================
@dataclass
class EntryPoints:
    main: Optional[str] = None
    module: Optional[str] = None
    types: Optional[str] = None
    exports: dict[str, list[str]] = field(default_factory=dict)  # subpath -> targets
    bin: dict[str, str] = field(default_factory=dict)
    all: set[str] = field(default_factory=set)
    excluded: set[str] = field(default_factory=set)  # "!" 로 시작하는 명시적 제외


@dataclass
class DependencyInfo:
    production: list[str] = field(default_factory=list)
    development: list[str] = field(default_factory=list)
    peer: list[str] = field(default_factory=list)

    @property
    def all(self) -> set[str]:
        return set(self.production) | set(self.development) | set(self.peer)


@dataclass
class PackageConfig:
    name: str
    version: str
    entry_points: EntryPoints
    dependencies: DependencyInfo
    description: Optional[str] = None
    scripts: dict[str, str] = field(default_factory=dict)
    workspaces: Optional[list[str]] = None
    repository: Optional[str] = None
    keywords: list[str] = field(default_factory=list)


@dataclass
class ExportsCondition:
    condition: str
    target: str
    resolved: str


@dataclass
class ExportsPath:
    path: str
    conditions: list[ExportsCondition] = field(default_factory=list)


@dataclass
class ExportsMapAnalysis:
    paths: list[ExportsPath] = field(default_factory=list)
    wildcards: list[str] = field(default_factory=list)
    internal_only: list[str] = field(default_factory=list)


# ==========================================
# 분석 결과
# ==========================================
@dataclass
class ExportFlow:
    defined_in: str
    export_type: str = "named"  # named, default, namespace
    reexport_chain: list[str] = field(default_factory=list)
    public_from: list[str] = field(default_factory=list)
    conditions: list[str] = field(default_factory=list)


@dataclass
class UnusedExport:
    file: str
    export: str
    kind: str


@dataclass
class DependencyAudit:
    production: list[str] = field(default_factory=list)
    development: list[str] = field(default_factory=list)
    peer: list[str] = field(default_factory=list)
    used_production: list[str] = field(default_factory=list)
    used_development: list[str] = field(default_factory=list)
    unused: list[str] = field(default_factory=list)
    unlisted: list[str] = field(default_factory=list)
    misplaced: list[str] = field(default_factory=list)


@dataclass
class DependencyEdge:
    source: str
    target: str
    import_count: int
    identifiers: list[str] = field(default_factory=list)


@dataclass
class ExternalDependency:
    name: str
    used_by: list[str] = field(default_factory=list)
    is_declared: bool = False
    is_dev_only: bool = False


@dataclass
class DependencyUsageLocation:
    file: str
    symbols: list[str] = field(default_factory=list)
    is_namespace: bool = False
    is_default: bool = False
    is_type_only: bool = False
    is_dynamic: bool = False


@dataclass
class DependencyUsage:
    package: str
    declared_as: str  # production, development, peer, unlisted
    locations: list[DependencyUsageLocation] = field(default_factory=list)
    total_imports: int = 0
    unique_symbols: list[str] = field(default_factory=list)
    files_used_in: int = 0
    type_only_count: int = 0


@dataclass
class ArchitectureLayer:
    name: str
    description: str
    paths: list[str]
    depends_on: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)
    violated_by: list[str] = field(default_factory=list)


@dataclass
class LayerViolation:
    source: str
    target: str
    source_layer: str
    target_layer: str


@dataclass
class ArchitectureAnalysis:
    pattern: str
    layers: list[ArchitectureLayer] = field(default_factory=list)
    violations: list[LayerViolation] = field(default_factory=list)


@dataclass
class MostImportedFile:
    file: str
    imported_by_count: int


@dataclass
class GraphInsights:
    unused_exports: list[UnusedExport] = field(default_factory=list)
    circular_dependencies: list[list[str]] = field(default_factory=list)
    barrel_files: list[str] = field(default_factory=list)
    largest_files: list[str] = field(default_factory=list)
    most_imported: list[MostImportedFile] = field(default_factory=list)
    orphan_files: list[str] = field(default_factory=list)
    type_only_files: list[str] = field(default_factory=list)


@dataclass
class PublicApiEntry:
    entry_point: str
    exports: list[ExportRecord] = field(default_factory=list)


@dataclass
class AnalysisResult:
    package: PackageConfig
    graph: ModuleGraph
    entry_points: set[str]
    dependencies: DependencyAudit
    insights: GraphInsights
    export_flows: dict[str, ExportFlow]
    architecture: ArchitectureAnalysis
    internal_dependencies: list[DependencyEdge] = field(default_factory=list)
    external_dependencies: list[ExternalDependency] = field(default_factory=list)
    dependency_usage: dict[str, DependencyUsage] = field(default_factory=dict)
    public_api: list[PublicApiEntry] = field(default_factory=list)
    exports_map: Optional[ExportsMapAnalysis] = None
    is_monorepo: bool = False
    package_files: list[str] = field(default_factory=list)  # workspace 포함 package.json 상대 경로
    duration_ms: int = 0

    @property
    def cycles(self) -> list[list[str]]:
        return self.insights.circular_dependencies

    @property
    def unused_exports(self) -> list[UnusedExport]:
        return self.insights.unused_exports
