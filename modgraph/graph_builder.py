"""
모듈 그래프 구축 (TypeScript / JavaScript)

Phase 1: 파일별 파싱 + import specifier 해석 (스레드 풀)
Phase 2: 모든 노드가 만들어진 뒤 역방향 엣지 / export * 확장 / 역할 분류
"""
import json
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Iterable, Optional

from loguru import logger

from .config import AnalysisOptions
from .models import ExportRecord, FileImports, FileNode, ModuleGraph, ParsedFile
from .package_analyzer import target_matches
from .parser import ASTParser, ParseError
from .path_utils import TEST_PATTERNS, matches_any, relative_posix, should_skip_path

# TypeScript ESM: import './a.js' 는 실제로 './a.ts' 를 가리킬 수 있음
_ESM_SOURCE_SUFFIXES = {
    ".js": (".ts", ".tsx"),
    ".jsx": (".tsx",),
    ".mjs": (".mts",),
    ".cjs": (".cts",),
}

_CONFIG_FILES = {"tsconfig.json", "jest.config.ts", "vitest.config.ts"}


# ==========================================
# 1. Specifier 해석
# ==========================================
def candidate_paths(base: str, extensions: tuple) -> list[str]:
    """
    해석 후보 순서:
    1) 경로 그대로  2) 경로 + 확장자  3) ESM 규칙 (.js -> .ts)  4) 경로/index + 확장자
    """
    candidates = [base]
    candidates.extend(base + ext for ext in extensions)

    stem, suffix = os.path.splitext(base)
    for source_suffix in _ESM_SOURCE_SUFFIXES.get(suffix, ()):
        candidates.append(stem + source_suffix)

    candidates.extend(os.path.join(base, "index" + ext) for ext in extensions)
    return candidates


def resolve_specifier(from_dir: str, specifier: str, extensions: tuple) -> Optional[str]:
    """내부 specifier -> 실제 존재하는 파일의 절대 경로 (없으면 None)"""
    if specifier.startswith("/"):
        base = os.path.normpath(specifier)
    else:
        base = os.path.normpath(os.path.join(from_dir, specifier))

    for candidate in candidate_paths(base, extensions):
        if os.path.isfile(candidate):
            return candidate
    return None


# ==========================================
# 2. 파일 역할 분류
# ==========================================
def is_barrel_file(relative_path: str, exports: list[ExportRecord]) -> bool:
    """index.* 파일이고 re-export 가 전체 export 의 절반을 넘으면 barrel"""
    name = relative_path.rsplit("/", 1)[-1]
    if os.path.splitext(name)[0] != "index" or not exports:
        return False
    reexports = sum(1 for exp in exports if exp.is_reexport)
    return reexports > len(exports) / 2


def classify_file_role(relative_path: str, exports: list[ExportRecord], is_entry: bool = False) -> str:
    """순서가 중요함: 앞의 규칙이 먼저 이긴다"""
    if is_entry:
        return "entry"

    path = "/" + relative_path.lower()
    name = path.rsplit("/", 1)[-1]

    if ".config." in name or "rc." in name or name in _CONFIG_FILES:
        return "config"
    if any(p in path for p in (".test.", ".spec.", "__tests__", "/test/", "/tests/")):
        return "test"
    if name.endswith(".d.ts") or "/types/" in path:
        return "type"
    if is_barrel_file(relative_path, exports):
        return "barrel"
    if any(p in path for p in ("/utils/", "/util/", "/helpers/", "/lib/")):
        return "util"
    if "/components/" in path or name.endswith((".tsx", ".vue")):
        return "component"
    if any(p in path for p in ("/services/", "/service/", "service.")):
        return "service"
    return "unknown"


# ==========================================
# 3. 그래프 빌더
# ==========================================
class GraphBuilder:
    def __init__(self, root_path, options: Optional[AnalysisOptions] = None,
                 parser: Optional[ASTParser] = None):
        self.root_path = os.path.abspath(root_path)
        self.options = options or AnalysisOptions()
        self.parser = parser or ASTParser()
        self.extensions = tuple(self.options.extensions)
        self._resolve_cache: dict[tuple[str, str], Optional[str]] = {}
        self.exclude_patterns = self._build_exclude_patterns()

    def _build_exclude_patterns(self) -> list[str]:
        patterns = list(self.options.exclude_patterns)
        if not self.options.include_tests:
            patterns.extend(TEST_PATTERNS)
        patterns.extend(self._tsconfig_excludes())
        return patterns

    def _tsconfig_excludes(self) -> list[str]:
        if self.options.tsconfig_path:
            tsconfig = Path(self.options.tsconfig_path)
            if not tsconfig.is_absolute():
                tsconfig = Path(self.root_path) / tsconfig
        else:
            tsconfig = Path(self.root_path) / "tsconfig.json"
        if not tsconfig.is_file():
            return []

        try:
            config = json.loads(tsconfig.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            # 주석이 포함된 tsconfig 등은 무시하고 계속 진행
            logger.warning(f"⚠️ Ignoring unreadable tsconfig {tsconfig}: {e}")
            return []

        excludes = config.get("exclude") if isinstance(config, dict) else None
        if not isinstance(excludes, list):
            return []

        base = relative_posix(str(tsconfig.parent), self.root_path)
        patterns = []
        for pattern in excludes:
            if not isinstance(pattern, str) or not pattern:
                continue
            pattern = pattern[2:] if pattern.startswith("./") else pattern
            if base not in ("", "."):
                pattern = f"{base}/{pattern}"
            patterns.append(pattern)
            # 'dist' 처럼 디렉토리만 적은 경우 하위 전체
            if not pattern.endswith("/**"):
                patterns.append(pattern.rstrip("/") + "/**")
        return patterns

    # ------------------------------------------
    # Phase 0: 파일 탐색
    # ------------------------------------------
    def discover_files(self) -> list[str]:
        root = Path(self.root_path)
        found = []
        for current, dirs, files in os.walk(root):
            current_path = Path(current)
            dirs[:] = sorted(d for d in dirs if not should_skip_path(current_path / d, root))

            for file in sorted(files):
                if not file.lower().endswith(self.extensions):
                    continue
                file_path = current_path / file
                if should_skip_path(file_path, root):
                    continue
                if matches_any(relative_posix(str(file_path), self.root_path), self.exclude_patterns):
                    continue
                found.append(str(file_path))
        return found

    # ------------------------------------------
    # Phase 1: 파싱 (병렬)
    # ------------------------------------------
    def _resolve(self, from_dir: str, specifier: str) -> Optional[str]:
        # 빌드 단위 캐시 (워커 간 중복 계산은 허용)
        key = (from_dir, specifier)
        if key not in self._resolve_cache:
            self._resolve_cache[key] = resolve_specifier(from_dir, specifier, self.extensions)
        return self._resolve_cache[key]

    def _create_node(self, parsed: ParsedFile) -> FileNode:
        from_dir = os.path.dirname(parsed.path)
        imports = FileImports()

        for record in parsed.imports:
            if record.package is not None:
                imports.external.add(record.package)
                imports.external_records.append(record)
                continue
            resolved = self._resolve(from_dir, record.specifier)
            if resolved is None:
                imports.unresolved.add(record.specifier)
                continue
            record.resolved_path = resolved
            imports.internal.setdefault(resolved, []).append(record)

        return FileNode(
            path=parsed.path,
            relative_path=relative_posix(parsed.path, self.root_path),
            imports=imports,
            exports=list(parsed.exports),
            line_count=parsed.line_count,
        )

    def parse_all(self, files: list[str]) -> tuple[dict[str, FileNode], dict[str, list[str]]]:
        """
        워커는 FileNode 를 반환만 하고, 그래프 삽입은 호출 스레드에서만 한다.
        반환: (경로 -> FileNode, 경로 -> export * specifier 목록)
        """
        nodes: dict[str, FileNode] = {}
        star_exports: dict[str, list[str]] = {}
        failed = 0

        with ThreadPoolExecutor(max_workers=self.options.max_workers) as executor:
            future_to_path = {
                executor.submit(self._parse_with_stars, path): path for path in files
            }
            for future in as_completed(future_to_path):
                path = future_to_path[future]
                try:
                    node, stars = future.result()
                except ParseError as e:
                    failed += 1
                    logger.warning(f"⚠️ Skipping {relative_posix(path, self.root_path)}: {e}")
                    continue
                nodes[path] = node
                if stars:
                    star_exports[path] = stars

        if failed:
            logger.warning(f"{failed} file(s) could not be parsed and were excluded")
        # 파일 탐색 순서로 정렬 (결과 결정성)
        ordered = {path: nodes[path] for path in files if path in nodes}
        return ordered, star_exports

    def _parse_with_stars(self, filepath: str) -> tuple[FileNode, list[str]]:
        parsed = self.parser.parse_file(filepath)
        return self._create_node(parsed), list(parsed.star_exports)

    # ------------------------------------------
    # Phase 2: wiring
    # ------------------------------------------
    def build(self, entry_paths: Iterable[str] = ()) -> ModuleGraph:
        logger.info(f"🔍 Discovering source files in {self.root_path}")
        files = self.discover_files()
        logger.info(f"🧠 Parsing {len(files)} files ({self.options.max_workers} workers)")

        nodes, star_exports = self.parse_all(files)
        graph = ModuleGraph(root_path=self.root_path, nodes=nodes)

        self._build_reverse_edges(graph)
        self._expand_star_exports(graph, star_exports)
        entries = self.resolve_entry_points(graph, entry_paths)
        self._classify_roles(graph, entries)

        edge_count = sum(len(n.imports.internal) for n in graph.values())
        logger.success(f"✅ Module graph built: {len(graph)} files, {edge_count} internal edges, "
                       f"{len(entries)} entry points")
        return graph

    def _build_reverse_edges(self, graph: ModuleGraph):
        for path, node in graph.items():
            for target in node.imports.internal:
                target_node = graph.get(target)
                if target_node is not None:
                    target_node.imported_by.add(path)

    def _expand_star_exports(self, graph: ModuleGraph, star_exports: dict[str, list[str]]):
        """export * from './x' 를 대상 파일의 (default 제외) export 로 펼친다"""
        expanded = {
            path: self._visible_exports(graph, star_exports, path, set())
            for path in star_exports
        }
        for path, exports in expanded.items():
            graph.nodes[path].exports = exports

    def _visible_exports(self, graph: ModuleGraph, star_exports: dict[str, list[str]],
                         path: str, visited: set[str]) -> list[ExportRecord]:
        if path in visited:
            return []
        visited.add(path)

        node = graph.get(path)
        if node is None:
            return []

        result = list(node.exports)
        seen = {exp.name for exp in result}

        for specifier in star_exports.get(path, []):
            target = self._star_target(node, specifier)
            if target is None:
                continue
            for exp in self._visible_exports(graph, star_exports, target, visited):
                if exp.is_default or exp.name in seen:
                    continue
                seen.add(exp.name)
                result.append(ExportRecord(
                    name=exp.name,
                    kind=exp.kind,
                    is_reexport=True,
                    original_name=exp.name,
                    source=specifier,
                    members=exp.members,
                    jsdoc=exp.jsdoc,
                    signature=exp.signature,
                    release_tag=exp.release_tag,
                    position=self._star_position(node, specifier, exp),
                ))
        return result

    def _star_target(self, node: FileNode, specifier: str) -> Optional[str]:
        for target, records in node.imports.internal.items():
            if any(r.specifier == specifier for r in records):
                return target
        return None

    def _star_position(self, node: FileNode, specifier: str, fallback: ExportRecord):
        for records in node.imports.internal.values():
            for record in records:
                if record.specifier == specifier:
                    return record.position
        return fallback.position

    def resolve_entry_points(self, graph: ModuleGraph, entry_paths: Iterable[str]) -> set[str]:
        """package.json 의 entry 경로를 import specifier 와 같은 규칙으로 그래프 노드에 매칭"""
        entries = set()
        for entry in entry_paths:
            if not entry or entry.startswith("!") or "*" in entry:
                continue
            base = os.path.normpath(entry if os.path.isabs(entry) else os.path.join(self.root_path, entry))
            for candidate in candidate_paths(base, self.extensions):
                if candidate in graph:
                    entries.add(candidate)
                    break
            else:
                source = self._source_for_output(graph, entry)
                if source is not None:
                    entries.add(source)
                else:
                    logger.debug(f"Entry point not found in graph: {entry}")
        return entries

    def _source_for_output(self, graph: ModuleGraph, entry: str) -> Optional[str]:
        # dist/index.js, dist/index.d.ts -> src/index.ts
        for path, node in graph.items():
            if target_matches(entry, node.relative_path):
                return path
        return None

    def _classify_roles(self, graph: ModuleGraph, entries: set[str]):
        for path, node in graph.items():
            node.role = classify_file_role(node.relative_path, node.exports, path in entries)


def build_module_graph(root_path, options: Optional[AnalysisOptions] = None,
                       entry_paths: Iterable[str] = ()) -> ModuleGraph:
    return GraphBuilder(root_path, options).build(entry_paths)
