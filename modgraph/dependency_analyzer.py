"""
export 사용 여부 / 의존성 감사 / 그래프 인사이트
"""
from collections import defaultdict
from typing import Optional

from loguru import logger

from .models import (
    NAMESPACE_IMPORT,
    DependencyAudit,
    DependencyEdge,
    DependencyInfo,
    DependencyUsage,
    DependencyUsageLocation,
    ExternalDependency,
    GraphInsights,
    ModuleGraph,
    MostImportedFile,
    UnusedExport,
)

NODE_BUILTIN_MODULES = frozenset({
    "assert", "async_hooks", "buffer", "child_process", "cluster", "console",
    "constants", "crypto", "dgram", "dns", "domain", "events", "fs", "http",
    "http2", "https", "inspector", "module", "net", "os", "path", "perf_hooks",
    "process", "punycode", "querystring", "readline", "repl", "stream",
    "string_decoder", "timers", "tls", "trace_events", "tty", "url", "util",
    "v8", "vm", "wasi", "worker_threads", "zlib",
})

# 이 역할의 파일에서만 쓰이는 패키지는 devDependency 여야 함
_NON_PRODUCTION_ROLES = ("test", "config")

TOP_N = 10


def is_builtin_module(name: str) -> bool:
    if name.startswith("node:"):
        name = name[len("node:"):]
    return name.split("/", 1)[0] in NODE_BUILTIN_MODULES


# ==========================================
# 1. 사용되지 않는 export
# ==========================================
def collect_used_identifiers(graph: ModuleGraph) -> dict[str, set[str]]:
    """대상 파일 -> 다른 파일들이 가져다 쓰는 이름. namespace import 는 대상의 모든 export"""
    used: dict[str, set[str]] = defaultdict(set)
    for node in graph.values():
        for target, records in node.imports.internal.items():
            names = used[target]
            for record in records:
                for identifier in record.identifiers:
                    if identifier == NAMESPACE_IMPORT:
                        target_node = graph.get(target)
                        if target_node is not None:
                            names.update(exp.name for exp in target_node.exports)
                    else:
                        names.add(identifier)
    return used


def find_unused_exports(graph: ModuleGraph, entry_points: Optional[set[str]] = None) -> list[UnusedExport]:
    entry_points = set(entry_points or ()) | graph.entry_points
    used = collect_used_identifiers(graph)
    unused = []

    for path, node in graph.items():
        if path in entry_points or node.role == "barrel":
            continue
        used_names = used.get(path, set())
        for exp in node.exports:
            if exp.is_reexport:
                continue
            # default export 는 어디선가 default import 가 있으면 사용된 것
            if exp.name in used_names or (exp.is_default and "default" in used_names):
                continue
            unused.append(UnusedExport(file=node.relative_path, export=exp.name, kind=exp.kind))

    logger.debug(f"{len(unused)} unused exports")
    return unused


# ==========================================
# 2. 의존성 감사
# ==========================================
def _usage_by_context(graph: ModuleGraph) -> tuple[set[str], set[str]]:
    production, test = set(), set()
    for node in graph.values():
        target = test if node.role in _NON_PRODUCTION_ROLES else production
        target.update(node.imports.external)
    return production, test


def analyze_dependencies(graph: ModuleGraph, declared: DependencyInfo) -> DependencyAudit:
    used_in_production, used_in_tests = _usage_by_context(graph)
    used = used_in_production | used_in_tests
    declared_all = declared.all

    audit = DependencyAudit(
        production=list(declared.production),
        development=list(declared.development),
        peer=list(declared.peer),
        used_production=sorted(used_in_production),
        used_development=sorted(used_in_tests),
    )

    audit.unused = [dep for dep in declared.production + declared.development if dep not in used]
    audit.unlisted = sorted(
        pkg for pkg in used if pkg not in declared_all and not is_builtin_module(pkg)
    )
    # 테스트와 프로덕션 양쪽에서 쓰이면 올바른 배치로 본다
    audit.misplaced = [
        dep for dep in declared.production
        if dep in used_in_tests and dep not in used_in_production
    ]

    logger.info(f"📦 Dependencies: {len(audit.unused)} unused, {len(audit.unlisted)} unlisted, "
                f"{len(audit.misplaced)} misplaced")
    return audit


def declared_category(package: str, declared: DependencyInfo) -> str:
    if package in declared.production:
        return "production"
    if package in declared.development:
        return "development"
    if package in declared.peer:
        return "peer"
    return "unlisted"


def build_external_dependencies(graph: ModuleGraph, declared: DependencyInfo) -> list[ExternalDependency]:
    users: dict[str, list[str]] = defaultdict(list)
    roles: dict[str, list[str]] = defaultdict(list)
    for node in graph.values():
        for package in sorted(node.imports.external):
            users[package].append(node.relative_path)
            roles[package].append(node.role)

    return [
        ExternalDependency(
            name=package,
            used_by=files,
            is_declared=package in declared.all,
            is_dev_only=all(role in _NON_PRODUCTION_ROLES for role in roles[package]),
        )
        for package, files in sorted(users.items())
    ]


def analyze_detailed_dependency_usage(graph: ModuleGraph, declared: DependencyInfo) -> dict[str, DependencyUsage]:
    """패키지별로 어느 파일에서 어떤 심볼을 어떤 방식으로 가져오는지"""
    usage: dict[str, DependencyUsage] = {}

    for node in graph.values():
        for record in node.imports.external_records:
            entry = usage.get(record.package)
            if entry is None:
                entry = usage[record.package] = DependencyUsage(
                    package=record.package,
                    declared_as=declared_category(record.package, declared),
                )
            entry.locations.append(DependencyUsageLocation(
                file=node.relative_path,
                symbols=[i for i in record.identifiers if i not in (NAMESPACE_IMPORT, "default")],
                is_namespace=record.is_namespace,
                is_default="default" in record.identifiers,
                is_type_only=record.is_type_only,
                is_dynamic=record.is_dynamic,
            ))

    for entry in usage.values():
        symbols = []
        for location in entry.locations:
            for symbol in location.symbols:
                if symbol not in symbols:
                    symbols.append(symbol)
        entry.total_imports = len(entry.locations)
        entry.unique_symbols = symbols
        entry.files_used_in = len({loc.file for loc in entry.locations})
        entry.type_only_count = sum(1 for loc in entry.locations if loc.is_type_only)

    return dict(sorted(usage.items()))


def build_internal_dependencies(graph: ModuleGraph) -> list[DependencyEdge]:
    edges = []
    for node in graph.values():
        for target, records in node.imports.internal.items():
            edges.append(DependencyEdge(
                source=node.relative_path,
                target=graph.relative(target),
                import_count=len(records),
                identifiers=[i for r in records for i in r.identifiers],
            ))
    return edges


# ==========================================
# 3. 그래프 인사이트
# ==========================================
def find_barrel_files(graph: ModuleGraph) -> list[str]:
    return [node.relative_path for node in graph.values() if node.role == "barrel"]


def find_most_imported_files(graph: ModuleGraph, limit: int = TOP_N) -> list[MostImportedFile]:
    ranked = sorted(
        (node for node in graph.values() if node.imported_by),
        key=lambda n: (-len(n.imported_by), n.relative_path),
    )
    return [MostImportedFile(file=n.relative_path, imported_by_count=len(n.imported_by))
            for n in ranked[:limit]]


def find_orphan_files(graph: ModuleGraph, entry_points: Optional[set[str]] = None) -> list[str]:
    entry_points = entry_points or set()
    return [
        node.relative_path
        for path, node in graph.items()
        if not node.imported_by
        and path not in entry_points
        and node.role not in ("entry", "test", "config")
    ]


def find_type_only_files(graph: ModuleGraph) -> list[str]:
    """직접 정의한 export 가 있고, 그것이 모두 type / interface 인 파일 (re-export 만 있는 파일은 제외)"""
    type_only = []
    for node in graph.values():
        local = [exp for exp in node.exports if not exp.is_reexport]
        if local and all(exp.kind in ("type", "interface") for exp in local):
            type_only.append(node.relative_path)
    return type_only


def find_largest_files(graph: ModuleGraph, limit: int = TOP_N) -> list[str]:
    ranked = sorted(
        (node for node in graph.values() if node.exports),
        key=lambda n: (-len(n.exports), n.relative_path),
    )
    return [n.relative_path for n in ranked[:limit]]


def build_insights(graph: ModuleGraph, entry_points: set[str],
                   circular_dependencies: list[list[str]]) -> GraphInsights:
    return GraphInsights(
        unused_exports=find_unused_exports(graph, entry_points),
        circular_dependencies=circular_dependencies,
        barrel_files=find_barrel_files(graph),
        largest_files=find_largest_files(graph),
        most_imported=find_most_imported_files(graph),
        orphan_files=find_orphan_files(graph, entry_points),
        type_only_files=find_type_only_files(graph),
    )
