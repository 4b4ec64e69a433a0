import threading
from pathlib import Path
from typing import Optional

from loguru import logger
from tree_sitter import Node
from tree_sitter_language_pack import get_parser

from .import_extractor import ImportExtractor, is_internal_specifier, package_name
from .language_specs import LanguageSpec, spec_for_path
from .models import NAMESPACE_IMPORT, ExportRecord, MemberInfo, ParsedFile
from .source_extraction import (
    declaration_signature,
    extract_jsdoc,
    function_signature,
    has_child_type,
    node_text,
    position_of,
    string_value,
)

_FUNCTION_VALUES = {
    "arrow_function", "function_expression", "function",
    "generator_function", "generator_function_expression",
}

_SIMPLE_KINDS = {
    "function_declaration": "function",
    "generator_function_declaration": "function",
    "function_signature": "function",
    "class_declaration": "class",
    "abstract_class_declaration": "class",
    "interface_declaration": "interface",
    "type_alias_declaration": "type",
    "enum_declaration": "enum",
    "module": "unknown",
    "internal_module": "unknown",
}


class ParseError(Exception):
    """파일 하나를 파싱하지 못함 (그래프에서 제외되고 분석은 계속됨)"""


class ASTParser:
    def __init__(self):
        # tree-sitter Parser는 스레드 간 공유하지 않는다
        self._local = threading.local()
        self.import_extractor = ImportExtractor()

    def _parser_for(self, spec: LanguageSpec):
        parsers = getattr(self._local, "parsers", None)
        if parsers is None:
            parsers = self._local.parsers = {}
        if spec.name not in parsers:
            parsers[spec.name] = get_parser(spec.name)
        return parsers[spec.name]

    def parse_file(self, filepath: str) -> ParsedFile:
        spec = spec_for_path(filepath)
        if spec is None:
            raise ParseError(f"Unsupported file type: {filepath}")

        try:
            code_bytes = Path(filepath).read_bytes()
            code_bytes.decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ParseError(f"Cannot read {filepath}: {e}") from e

        return self.parse_source(code_bytes, filepath, spec)

    def parse_source(self, code_bytes: bytes, filepath: str,
                     spec: Optional[LanguageSpec] = None) -> ParsedFile:
        spec = spec or spec_for_path(filepath)
        if spec is None:
            raise ParseError(f"Unsupported file type: {filepath}")

        tree = self._parser_for(spec).parse(code_bytes)
        root = tree.root_node
        if root.has_error:
            raise ParseError(f"Syntax error in {filepath}")

        imports, bindings = self.import_extractor.extract(root)
        for record in imports:
            if not is_internal_specifier(record.specifier):
                record.package = package_name(record.specifier)

        exports, star_exports = self._extract_exports(root, spec, bindings)

        logger.debug(f"Parsed {filepath}: {len(imports)} imports, {len(exports)} exports")
        return ParsedFile(
            path=filepath,
            imports=imports,
            exports=exports,
            star_exports=star_exports,
            line_count=len(code_bytes.splitlines()),
        )

    # ==========================================
    # Export 추출
    # ==========================================
    def _extract_exports(self, root: Node, spec: LanguageSpec,
                         bindings: dict) -> tuple[list[ExportRecord], list[str]]:
        local_decls = self._collect_local_declarations(root, spec)
        exports: list[ExportRecord] = []
        star_exports: list[str] = []

        for statement in root.named_children:
            if statement.type != "export_statement":
                continue

            jsdoc, release_tag = extract_jsdoc(statement)
            is_default = has_child_type(statement, "default")
            declaration = statement.child_by_field_name("declaration")
            value = statement.child_by_field_name("value")
            source = string_value(statement.child_by_field_name("source"))

            if declaration is not None:
                found = self._exports_from_declaration(declaration, spec, is_default)
            elif value is not None:
                found = [self._default_value_export(value, bindings, local_decls)]
            elif source is not None:
                found = self._exports_from_source(statement, source, star_exports)
            else:
                found = self._exports_from_clause(statement, bindings, local_decls)

            for record in found:
                if record.jsdoc is None:
                    record.jsdoc = jsdoc
                if record.release_tag is None:
                    record.release_tag = release_tag
                if self._is_overload(record, exports):
                    continue
                exports.append(record)

        return exports, star_exports

    def _is_overload(self, record: ExportRecord, exports: list[ExportRecord]) -> bool:
        if record.kind != "function" or record.is_reexport:
            return False
        return any(e.name == record.name and e.kind == "function" for e in exports)

    def _collect_local_declarations(self, root: Node, spec: LanguageSpec) -> dict[str, tuple[str, Node]]:
        """파일 최상위 선언 이름 -> (kind, 노드). export { x } 의 kind 판별용"""
        decls: dict[str, tuple[str, Node]] = {}
        for statement in root.named_children:
            target = statement
            if statement.type == "export_statement":
                target = statement.child_by_field_name("declaration")
                if target is None:
                    continue
            for name, kind, node in self._declared_names(target, spec):
                decls.setdefault(name, (kind, node))
        return decls

    def _declared_names(self, decl: Node, spec: LanguageSpec) -> list[tuple[str, str, Node]]:
        """선언 노드 -> [(이름, kind, 시그니처용 노드)]"""
        if decl.type == "ambient_declaration":
            for child in decl.named_children:
                if child.type in spec.declaration_types or child.type in _SIMPLE_KINDS:
                    return self._declared_names(child, spec)
            return []

        if decl.type in _SIMPLE_KINDS:
            name = decl.child_by_field_name("name")
            if name is None:
                return []
            return [(node_text(name), _SIMPLE_KINDS[decl.type], decl)]

        if decl.type in ("lexical_declaration", "variable_declaration"):
            kind_node = decl.child_by_field_name("kind")
            is_const = kind_node is not None and node_text(kind_node) == "const"
            names = []
            for declarator in decl.named_children:
                if declarator.type != "variable_declarator":
                    continue
                value = declarator.child_by_field_name("value")
                if value is not None and value.type in _FUNCTION_VALUES:
                    kind, sig_node = "function", value
                else:
                    kind, sig_node = ("const" if is_const else "variable"), declarator
                for name in self._pattern_names(declarator.child_by_field_name("name")):
                    names.append((name, kind, sig_node))
            return names

        return []

    def _pattern_names(self, node: Optional[Node]) -> list[str]:
        if node is None:
            return []
        if node.type == "identifier":
            return [node_text(node)]
        # export const { a, b: [c] } = obj
        names = []
        stack = [node]
        while stack:
            current = stack.pop()
            if current.type in ("identifier", "shorthand_property_identifier_pattern"):
                names.append(node_text(current))
                continue
            if current.type == "pair_pattern":
                value = current.child_by_field_name("value")
                if value is not None:
                    stack.append(value)
                continue
            stack.extend(reversed(current.named_children))
        return names

    def _exports_from_declaration(self, declaration: Node, spec: LanguageSpec,
                                  is_default: bool) -> list[ExportRecord]:
        records = []
        for name, kind, node in self._declared_names(declaration, spec):
            if kind == "function" and node.type in _FUNCTION_VALUES:
                signature = function_signature(node)
            else:
                signature = declaration_signature(node, kind)
            records.append(ExportRecord(
                name="default" if is_default else name,
                kind=kind,
                is_default=is_default,
                members=self._members_of(node, kind),
                signature=signature,
                position=position_of(node),
            ))
        return records

    def _default_value_export(self, value: Node, bindings: dict,
                              local_decls: dict) -> ExportRecord:
        record = ExportRecord(name="default", kind="default", is_default=True,
                              position=position_of(value))

        if value.type in _FUNCTION_VALUES:
            record.kind = "function"
            record.signature = function_signature(value)
        elif value.type == "class":
            record.kind = "class"
            record.members = self._members_of(value, "class")
        elif value.type == "identifier":
            local = node_text(value)
            if local in bindings:
                # import Foo from './foo'; export default Foo;
                remote, source = bindings[local]
                record.is_reexport = True
                record.original_name = remote
                record.source = source
                record.is_namespace = remote == NAMESPACE_IMPORT
            elif local in local_decls:
                kind, node = local_decls[local]
                record.kind = kind
                record.members = self._members_of(node, kind)
        return record

    def _exports_from_source(self, statement: Node, source: str,
                             star_exports: list[str]) -> list[ExportRecord]:
        clause = None
        for child in statement.named_children:
            if child.type == "export_clause":
                clause = child
            elif child.type == "namespace_export":
                # export * as ns from './x'
                alias = child.named_children[-1] if child.named_children else None
                return [ExportRecord(
                    name=_export_name(alias),
                    kind="unknown",
                    is_reexport=True,
                    original_name=NAMESPACE_IMPORT,
                    source=source,
                    is_namespace=True,
                    position=position_of(statement),
                )]

        if clause is None:
            # export * from './x' -> 그래프 wiring 단계에서 확장
            star_exports.append(source)
            return []

        records = []
        for spec_node in clause.named_children:
            if spec_node.type != "export_specifier":
                continue
            original = _export_name(spec_node.child_by_field_name("name"))
            alias = spec_node.child_by_field_name("alias")
            exported = _export_name(alias) if alias is not None else original
            records.append(ExportRecord(
                name=exported,
                kind="unknown",
                is_default=exported == "default",
                is_reexport=True,
                original_name=original,
                source=source,
                position=position_of(spec_node),
            ))
        return records

    def _exports_from_clause(self, statement: Node, bindings: dict,
                             local_decls: dict) -> list[ExportRecord]:
        clause = next((c for c in statement.named_children if c.type == "export_clause"), None)
        if clause is None:
            # export = x, export as namespace X 등은 무시
            return []

        records = []
        for spec_node in clause.named_children:
            if spec_node.type != "export_specifier":
                continue
            local = _export_name(spec_node.child_by_field_name("name"))
            alias = spec_node.child_by_field_name("alias")
            exported = _export_name(alias) if alias is not None else local
            record = ExportRecord(
                name=exported,
                is_default=exported == "default",
                position=position_of(spec_node),
            )
            if local in bindings:
                # import { a } from './a'; export { a };
                remote, source = bindings[local]
                record.is_reexport = True
                record.original_name = remote
                record.source = source
                record.is_namespace = remote == NAMESPACE_IMPORT
            elif local in local_decls:
                kind, node = local_decls[local]
                record.kind = kind
                record.members = self._members_of(node, kind)
                record.signature = (function_signature(node) if node.type in _FUNCTION_VALUES
                                    else declaration_signature(node, kind))
            records.append(record)
        return records

    # ==========================================
    # 클래스 / enum 멤버
    # ==========================================
    def _members_of(self, node: Node, kind: str) -> list[MemberInfo]:
        if kind == "class":
            return self._class_members(node)
        if kind == "enum":
            return self._enum_members(node)
        return []

    def _class_members(self, node: Node) -> list[MemberInfo]:
        body = node.child_by_field_name("body")
        if body is None:
            return []

        members = []
        for member in body.named_children:
            if member.type in ("method_definition", "method_signature", "abstract_method_signature"):
                if has_child_type(member, "set"):
                    continue
                name_node = member.child_by_field_name("name")
                name = node_text(name_node)
                if name == "constructor":
                    continue
                members.append(MemberInfo(
                    name=name,
                    kind="function",
                    visibility=_visibility(member, name_node),
                    is_static=has_child_type(member, "static"),
                    signature=function_signature(member),
                ))
            elif member.type in ("public_field_definition", "field_definition"):
                name_node = member.child_by_field_name("name") or member.child_by_field_name("property")
                members.append(MemberInfo(
                    name=node_text(name_node),
                    kind="variable",
                    visibility=_visibility(member, name_node),
                    is_static=has_child_type(member, "static"),
                ))
        return members

    def _enum_members(self, node: Node) -> list[MemberInfo]:
        body = node.child_by_field_name("body")
        if body is None:
            return []

        members = []
        for member in body.named_children:
            if member.type == "enum_assignment":
                name_node = member.child_by_field_name("name")
            elif member.type in ("property_identifier", "string"):
                name_node = member
            else:
                continue
            members.append(MemberInfo(name=_export_name(name_node), kind="const", is_static=True))
        return members


def _export_name(node: Optional[Node]) -> str:
    if node is None:
        return ""
    value = string_value(node)
    return value if value is not None else node_text(node)


def _visibility(member: Node, name_node: Optional[Node]) -> str:
    for child in member.children:
        if child.type == "accessibility_modifier":
            return node_text(child)
    if name_node is not None and name_node.type == "private_property_identifier":
        return "private"
    return "public"
