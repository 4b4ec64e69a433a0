from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class LanguageSpec:
    name: str               # tree-sitter 언어 이름
    extensions: tuple       # 파일 확장자
    declaration_types: frozenset  # export 대상이 되는 선언 노드


_JS_DECLARATIONS = frozenset({
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
    "lexical_declaration",
    "variable_declaration",
})

_TS_DECLARATIONS = _JS_DECLARATIONS | frozenset({
    "function_signature",
    "abstract_class_declaration",
    "interface_declaration",
    "type_alias_declaration",
    "enum_declaration",
    "ambient_declaration",
})

# 1. TypeScript
TYPESCRIPT_SPEC = LanguageSpec(
    name="typescript",
    extensions=(".ts", ".mts", ".cts"),
    declaration_types=_TS_DECLARATIONS,
)

# 2. TSX (JSX 문법이 섞인 TypeScript)
TSX_SPEC = LanguageSpec(
    name="tsx",
    extensions=(".tsx",),
    declaration_types=_TS_DECLARATIONS,
)

# 3. JavaScript (JSX 포함)
JAVASCRIPT_SPEC = LanguageSpec(
    name="javascript",
    extensions=(".js", ".jsx", ".mjs", ".cjs"),
    declaration_types=_JS_DECLARATIONS,
)

ALL_SPECS = (TYPESCRIPT_SPEC, TSX_SPEC, JAVASCRIPT_SPEC)

DEFAULT_EXTENSIONS = [".ts", ".tsx", ".js", ".jsx"]


def spec_for_path(path) -> Optional[LanguageSpec]:
    suffix = Path(path).suffix.lower()
    for spec in ALL_SPECS:
        if suffix in spec.extensions:
            return spec
    return None
