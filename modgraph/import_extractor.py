"""
import 관계 추출 전담 모듈
(import 선언, export ... from, import('x'), require('x'))
"""
from typing import Optional

from tree_sitter import Node

from .models import NAMESPACE_IMPORT, ImportRecord
from .source_extraction import has_child_type, node_text, position_of, string_value


def is_internal_specifier(specifier: str) -> bool:
    return specifier.startswith(".") or specifier.startswith("/")


def package_name(specifier: str) -> str:
    """'@scope/pkg/sub' -> '@scope/pkg', 'lodash/fp' -> 'lodash'"""
    parts = specifier.split("/")
    if specifier.startswith("@"):
        return "/".join(parts[:2])
    return parts[0]


def _module_export_name(node: Optional[Node]) -> str:
    # import { "a-b" as ab } 처럼 문자열 이름도 허용됨
    if node is None:
        return ""
    value = string_value(node)
    return value if value is not None else node_text(node)


class ImportExtractor:
    """
    파일 하나의 AST에서 ImportRecord 목록과
    로컬 이름 -> (원본 이름, specifier) 바인딩을 추출합니다.
    """

    def extract(self, root: Node) -> tuple[list[ImportRecord], dict[str, tuple[str, str]]]:
        records: list[ImportRecord] = []
        bindings: dict[str, tuple[str, str]] = {}

        # 1. 최상위 import / export ... from 선언
        for child in root.named_children:
            if child.type == "import_statement":
                record = self._from_import_statement(child, bindings)
            elif child.type == "export_statement":
                record = self._from_export_statement(child)
            else:
                continue
            if record is not None:
                records.append(record)

        # 2. 동적 import() 와 require() 호출 (트리 전체)
        for call in self._iter_calls(root):
            record = self._from_call(call, bindings)
            if record is not None:
                records.append(record)

        records.sort(key=lambda r: (r.position.line, r.position.column))
        return records, bindings

    # ==========================================
    # 1. 정적 import
    # ==========================================
    def _from_import_statement(self, node: Node, bindings: dict) -> Optional[ImportRecord]:
        source = string_value(node.child_by_field_name("source"))
        identifiers: list[str] = []

        if source is None:
            # import fs = require('fs')  (TypeScript)
            for child in node.named_children:
                if child.type == "import_require_clause":
                    source = string_value(child.child_by_field_name("source"))
                    alias = child.named_children[0] if child.named_children else None
                    if source is not None and alias is not None and alias.type == "identifier":
                        bindings[node_text(alias)] = (NAMESPACE_IMPORT, source)
                    identifiers.append(NAMESPACE_IMPORT)
            if source is None:
                return None

        for clause in node.named_children:
            if clause.type != "import_clause":
                continue
            for part in clause.named_children:
                if part.type == "identifier":
                    # import Foo from ...
                    identifiers.append("default")
                    bindings[node_text(part)] = ("default", source)
                elif part.type == "namespace_import":
                    identifiers.append(NAMESPACE_IMPORT)
                    local = next((c for c in part.named_children if c.type == "identifier"), None)
                    if local is not None:
                        bindings[node_text(local)] = (NAMESPACE_IMPORT, source)
                elif part.type == "named_imports":
                    for spec in part.named_children:
                        if spec.type != "import_specifier":
                            continue
                        name = _module_export_name(spec.child_by_field_name("name"))
                        alias = spec.child_by_field_name("alias")
                        identifiers.append(name)
                        bindings[node_text(alias) if alias is not None else name] = (name, source)

        return ImportRecord(
            specifier=source,
            identifiers=identifiers,
            is_type_only=has_child_type(node, "type"),
            position=position_of(node),
        )

    def _from_export_statement(self, node: Node) -> Optional[ImportRecord]:
        """export { a } from './x' / export * from './x' 도 import 관계로 취급"""
        source = string_value(node.child_by_field_name("source"))
        if source is None:
            return None

        identifiers: list[str] = []
        clause = next((c for c in node.named_children if c.type == "export_clause"), None)
        if clause is not None:
            for spec in clause.named_children:
                if spec.type == "export_specifier":
                    identifiers.append(_module_export_name(spec.child_by_field_name("name")))
        else:
            # export * from / export * as ns from
            identifiers.append(NAMESPACE_IMPORT)

        return ImportRecord(
            specifier=source,
            identifiers=identifiers,
            is_type_only=has_child_type(node, "type"),
            position=position_of(node),
        )

    # ==========================================
    # 2. 호출 형태의 import
    # ==========================================
    def _iter_calls(self, root: Node):
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "call_expression":
                yield node
            stack.extend(reversed(node.children))

    def _from_call(self, call: Node, bindings: dict) -> Optional[ImportRecord]:
        function = call.child_by_field_name("function")
        if function is None:
            return None

        is_dynamic = function.type == "import"
        is_require = function.type == "identifier" and node_text(function) == "require"
        if not (is_dynamic or is_require):
            return None

        arguments = call.child_by_field_name("arguments")
        if arguments is None or not arguments.named_children:
            return None
        specifier = string_value(arguments.named_children[0])
        if specifier is None:
            # 문자열 리터럴이 아닌 인자는 정적으로 알 수 없음
            return None

        identifiers = [NAMESPACE_IMPORT]
        if is_require:
            identifiers = self._require_bindings(call, specifier, bindings)

        return ImportRecord(
            specifier=specifier,
            identifiers=identifiers,
            is_dynamic=is_dynamic,
            position=position_of(call),
        )

    def _require_bindings(self, call: Node, specifier: str, bindings: dict) -> list[str]:
        declarator = call.parent
        if declarator is None or declarator.type != "variable_declarator":
            return [NAMESPACE_IMPORT]

        target = declarator.child_by_field_name("name")
        if target is None:
            return [NAMESPACE_IMPORT]

        if target.type == "identifier":
            bindings[node_text(target)] = (NAMESPACE_IMPORT, specifier)
            return [NAMESPACE_IMPORT]

        if target.type != "object_pattern":
            return [NAMESPACE_IMPORT]

        # const { a, b: c } = require('./x')
        names = []
        for prop in target.named_children:
            if prop.type == "shorthand_property_identifier_pattern":
                name = node_text(prop)
                names.append(name)
                bindings[name] = (name, specifier)
            elif prop.type == "pair_pattern":
                key = node_text(prop.child_by_field_name("key"))
                value = prop.child_by_field_name("value")
                names.append(key)
                if value is not None and value.type == "identifier":
                    bindings[node_text(value)] = (key, specifier)
        return names or [NAMESPACE_IMPORT]
