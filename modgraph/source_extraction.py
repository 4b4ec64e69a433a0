"""
AST 노드에서 텍스트/위치/JSDoc/시그니처를 뽑아내는 헬퍼 모음
"""
import re
from typing import Optional

from tree_sitter import Node

from .models import Position

MAX_SIGNATURE_LENGTH = 200

_RELEASE_TAGS = ("internal", "alpha", "beta", "public")
_JSDOC_LINE_PREFIX = re.compile(r"^\s*\*\s?")


def node_text(node: Optional[Node]) -> str:
    if node is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def string_value(node: Optional[Node]) -> Optional[str]:
    """string 리터럴 노드의 값 (따옴표 제거). 템플릿 문자열 등은 None"""
    if node is None or node.type != "string":
        return None
    text = node_text(node)
    if len(text) < 2:
        return None
    return text[1:-1]


def position_of(node: Node) -> Position:
    row, column = node.start_point
    return Position(line=row + 1, column=column + 1)


def has_child_type(node: Node, child_type: str) -> bool:
    return any(child.type == child_type for child in node.children)


def _raw_jsdoc(node: Node) -> Optional[str]:
    # export 문 바로 앞의 /** ... */ 주석
    prev = node.prev_sibling
    if prev is None or prev.type != "comment":
        return None
    text = node_text(prev)
    if not text.startswith("/**"):
        return None
    return text


def extract_jsdoc(node: Node) -> tuple[Optional[str], Optional[str]]:
    """
    (설명, release tag) 반환.
    설명은 첫 번째 @태그 이전까지의 본문입니다.
    """
    raw = _raw_jsdoc(node)
    if raw is None:
        return None, None

    body = raw[3:-2] if raw.endswith("*/") else raw[3:]
    lines = [_JSDOC_LINE_PREFIX.sub("", line).rstrip() for line in body.splitlines()]

    description = []
    for line in lines:
        if line.lstrip().startswith("@"):
            break
        description.append(line.strip())
    summary = " ".join(part for part in description if part).strip() or None

    release_tag = None
    for tag in _RELEASE_TAGS:
        if re.search(rf"@{tag}\b", raw):
            release_tag = tag
            break

    return summary, release_tag


def _shorten(text: str) -> str:
    text = " ".join(text.split())
    if len(text) > MAX_SIGNATURE_LENGTH:
        return text[:MAX_SIGNATURE_LENGTH - 3] + "..."
    return text


def function_signature(node: Node) -> Optional[str]:
    """function 선언 / arrow function / function 표현식 공통"""
    params = node.child_by_field_name("parameters")
    if params is None:
        # x => x 처럼 괄호 없는 arrow function
        param = node.child_by_field_name("parameter")
        if param is None:
            return None
        params_text = f"({node_text(param)})"
    else:
        params_text = node_text(params)

    return_type = node.child_by_field_name("return_type")
    if return_type is not None:
        ret = node_text(return_type).lstrip(":").strip()
        return _shorten(f"{params_text} => {ret}")
    return _shorten(params_text)


def declaration_signature(node: Node, kind: str) -> Optional[str]:
    if kind == "function":
        return function_signature(node)
    if kind in ("class", "interface"):
        name = node.child_by_field_name("name")
        return node_text(name) if name is not None else kind
    if kind == "type":
        value = node.child_by_field_name("value")
        return _shorten(node_text(value)) if value is not None else None
    return None
