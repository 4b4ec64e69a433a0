"""
package.json 분석기
entry point / 의존성 / workspace / exports map 을 정규화합니다.
"""
import json
import os
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from .models import (
    DependencyInfo,
    EntryPoints,
    ExportsCondition,
    ExportsMapAnalysis,
    ExportsPath,
    ModuleGraph,
    PackageConfig,
)
from .path_utils import glob_match, to_posix

# 빌드 산출물 / 소스 루트로 흔히 쓰이는 최상위 폴더 (exports target <-> 소스 파일 매칭용)
_OUTPUT_ROOTS = {"src", "dist", "build", "lib", "out", "esm", "cjs", "types"}
_DECLARATION_SUFFIXES = (".d.ts", ".d.mts", ".d.cts")


class ConfigError(Exception):
    """package.json 을 읽을 수 없음 (분석 전체를 중단)"""


def load_manifest(path) -> dict:
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        manifest = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(manifest, dict):
        raise ConfigError(f"{path} must contain a JSON object")
    return manifest


def analyze_package_json(path) -> PackageConfig:
    return build_package_config(load_manifest(path), path)


def build_package_config(manifest: dict, path) -> PackageConfig:
    """이미 읽어 둔 manifest 로 PackageConfig 구성 (path 는 이름 기본값용)"""
    path = Path(path)
    config = PackageConfig(
        name=_string(manifest.get("name")) or path.resolve().parent.name,
        version=_string(manifest.get("version")) or "0.0.0",
        description=_string(manifest.get("description")),
        entry_points=get_entry_points(manifest),
        dependencies=get_dependencies(manifest),
        scripts={k: v for k, v in (manifest.get("scripts") or {}).items() if isinstance(v, str)},
        workspaces=get_workspaces(manifest),
        repository=get_repository_url(manifest),
        keywords=[k for k in manifest.get("keywords") or [] if isinstance(k, str)],
    )
    logger.info(f"📦 {config.name}@{config.version}: {len(config.entry_points.all)} entry points, "
                f"{len(config.dependencies.all)} declared dependencies")
    return config


def _string(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


# ==========================================
# 1. Entry points
# ==========================================
def collect_export_targets(value: Any, excluded: set[str], key: Optional[str] = None) -> list[str]:
    """
    exports 필드 (또는 그 일부)에서 도달 가능한 target 경로를 모두 모읍니다.

    - 문자열: 그대로 target ("!" 로 시작하면 제외 목록으로)
    - 배열: 처음으로 사용 가능한 항목 하나만
    - 객체: 조건 키마다 재귀. null 값은 "!<key>" 로 제외 목록에 기록
    """
    if isinstance(value, str):
        if value.startswith("!"):
            excluded.add(value)
            return []
        return [value] if value else []

    if isinstance(value, list):
        for item in value:
            found = collect_export_targets(item, excluded, key)
            if found:
                return found
        return []

    if isinstance(value, dict):
        targets = []
        for cond_key, cond_value in value.items():
            if cond_value is None:
                # 명시적으로 노출하지 않는 경로
                excluded.add(f"!{cond_key}")
                continue
            for target in collect_export_targets(cond_value, excluded, cond_key):
                if target not in targets:
                    targets.append(target)
        return targets

    return []


def _is_subpath_map(exports: Any) -> bool:
    return isinstance(exports, dict) and any(k.startswith(".") for k in exports)


def _subpath_entries(exports: Any) -> dict[str, Any]:
    """exports 필드를 subpath -> 값 형태로 통일 ("." 단축 표기 처리)"""
    if exports is None:
        return {}
    if _is_subpath_map(exports):
        return {k: v for k, v in exports.items() if k.startswith(".")}
    return {".": exports}


def get_entry_points(manifest: dict) -> EntryPoints:
    entry = EntryPoints(
        main=_string(manifest.get("main")),
        module=_string(manifest.get("module")),
        types=_string(manifest.get("types")) or _string(manifest.get("typings")),
    )

    for value in (entry.main, entry.module, _string(manifest.get("types")), _string(manifest.get("typings"))):
        if value:
            entry.all.add(value)

    bin_field = manifest.get("bin")
    if isinstance(bin_field, str) and bin_field:
        entry.bin[_string(manifest.get("name")) or "default"] = bin_field
    elif isinstance(bin_field, dict):
        for name, bin_path in bin_field.items():
            if isinstance(bin_path, str) and bin_path:
                entry.bin[name] = bin_path
    entry.all.update(entry.bin.values())

    for subpath, value in _subpath_entries(manifest.get("exports")).items():
        if value is None:
            entry.excluded.add(f"!{subpath}")
            continue
        targets = collect_export_targets(value, entry.excluded)
        if targets:
            entry.exports[subpath] = targets
            entry.all.update(targets)

    return entry


# ==========================================
# 2. 의존성 / workspace / repository
# ==========================================
def get_dependencies(manifest: dict) -> DependencyInfo:
    def names(key: str) -> list[str]:
        value = manifest.get(key)
        return list(value.keys()) if isinstance(value, dict) else []

    return DependencyInfo(
        production=names("dependencies"),
        development=names("devDependencies"),
        peer=names("peerDependencies"),
    )


def get_workspaces(manifest: dict) -> Optional[list[str]]:
    workspaces = manifest.get("workspaces")
    if isinstance(workspaces, list):
        return [w for w in workspaces if isinstance(w, str)]
    if isinstance(workspaces, dict) and isinstance(workspaces.get("packages"), list):
        return [w for w in workspaces["packages"] if isinstance(w, str)]
    return None


def get_repository_url(manifest: dict) -> Optional[str]:
    repository = manifest.get("repository")
    if isinstance(repository, str):
        return repository or None
    if isinstance(repository, dict):
        return _string(repository.get("url"))
    return None


def is_monorepo(root_path, manifest: Optional[dict] = None) -> bool:
    """workspaces 필드가 있으면 모노레포로 간주 (읽기 실패 시 False)"""
    if manifest is not None:
        return bool(manifest.get("workspaces"))

    package_json = Path(root_path) / "package.json"
    if not package_json.is_file():
        return False
    try:
        manifest = load_manifest(package_json)
    except ConfigError as e:
        logger.debug(f"is_monorepo: {e}")
        return False
    return bool(manifest.get("workspaces"))


def find_package_json_files(root_path, workspaces: Optional[list[str]] = None) -> list[str]:
    """루트 package.json + workspace 패턴 바로 아래 패키지들의 package.json"""
    root_path = Path(root_path)
    found = []

    root_manifest = root_path / "package.json"
    if root_manifest.is_file():
        found.append(str(root_manifest))

    for pattern in workspaces or []:
        # "packages/*" -> "packages"
        base = to_posix(pattern).split("*", 1)[0].rstrip("/")
        search_dir = root_path / base if base else root_path
        if not search_dir.is_dir():
            continue
        for child in sorted(search_dir.iterdir()):
            candidate = child / "package.json"
            if child.is_dir() and candidate.is_file() and str(candidate) not in found:
                found.append(str(candidate))

    return found


# ==========================================
# 3. exports map 분석
# ==========================================
def _condition_targets(value: Any, prefix: str = "") -> list[tuple[str, str]]:
    """조건 객체를 (조건 이름, target) 목록으로 평탄화. 중첩 조건은 'import.types' 형태"""
    if isinstance(value, str):
        return [] if value.startswith("!") else [(prefix or "default", value)]
    if isinstance(value, list):
        for item in value:
            found = _condition_targets(item, prefix)
            if found:
                return found[:1] if isinstance(item, str) else found
        return []
    if isinstance(value, dict):
        pairs = []
        for key, nested in value.items():
            if nested is None:
                continue
            pairs.extend(_condition_targets(nested, f"{prefix}.{key}" if prefix else key))
        return pairs
    return []


def module_key(relative_path: str) -> str:
    """
    소스 파일과 빌드 산출물을 비교하기 위한 키.
    'dist/utils/a.d.ts' -> 'utils/a', 'src/utils/a.ts' -> 'utils/a'
    """
    rel = to_posix(relative_path)
    while rel.startswith("./"):
        rel = rel[2:]

    for suffix in _DECLARATION_SUFFIXES:
        if rel.endswith(suffix):
            rel = rel[: -len(suffix)]
            break
    else:
        rel = os.path.splitext(rel)[0]

    parts = rel.split("/")
    if len(parts) > 1 and parts[0] in _OUTPUT_ROOTS:
        parts = parts[1:]
    return "/".join(parts)


def target_matches(target: str, relative_path: str) -> bool:
    """exports target 이 해당 소스 파일을 가리키는지 (와일드카드 포함)"""
    target_key = module_key(target)
    file_key = module_key(relative_path)
    if "*" in target_key:
        return glob_match(file_key, target_key.replace("*", "**"))
    return target_key == file_key


def analyze_exports_map(manifest: dict, root_path, graph: Optional[ModuleGraph] = None) -> Optional[ExportsMapAnalysis]:
    exports = manifest.get("exports")
    if exports is None:
        return None

    root_path = os.path.abspath(root_path)
    analysis = ExportsMapAnalysis()

    for subpath, value in _subpath_entries(exports).items():
        if "*" in subpath:
            analysis.wildcards.append(subpath)
        if value is None:
            continue

        export_path = ExportsPath(path=subpath)
        for condition, target in _condition_targets(value):
            export_path.conditions.append(ExportsCondition(
                condition=condition,
                target=target,
                resolved=os.path.normpath(os.path.join(root_path, target)),
            ))
        analysis.paths.append(export_path)

    if graph is not None:
        targets = [c.target for p in analysis.paths for c in p.conditions]
        for node in graph.values():
            if node.role in ("test", "config"):
                continue
            if not any(target_matches(t, node.relative_path) for t in targets):
                analysis.internal_only.append(node.relative_path)
        analysis.internal_only.sort()

    return analysis
