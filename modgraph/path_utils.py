import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Optional

# 항상 제외할 폴더 (node_modules, 빌드 산출물 등)
IGNORE_DIRS = {
    '.git', '.hg', '.svn', 'node_modules', 'dist', 'build', 'out',
    'coverage', '.next', '.nuxt', '.svelte-kit', '.turbo', '.cache',
    '.idea', '.vscode', '__pycache__', '.venv', 'venv',
}

# includeTests=False 일 때 추가되는 제외 패턴
TEST_PATTERNS = ('**/*.test.*', '**/*.spec.*', '**/__tests__/**')


def should_skip_path(path: Path, root_path: Path) -> bool:
    """
    분석에서 제외할 경로인지 확인하는 함수
    True를 반환하면 해당 경로는 건너뜁니다.
    """
    # 1. 파일/폴더 이름 자체가 무시 목록에 있는 경우
    if path.name in IGNORE_DIRS:
        return True

    # 2. 경로 중간에 무시할 디렉토리가 포함된 경우 (예: packages/a/node_modules/x)
    try:
        rel_path = path.relative_to(root_path)
    except ValueError:
        # root 밖의 경로
        return True

    for part in rel_path.parts[:-1]:
        if part in IGNORE_DIRS:
            return True

    return False


def to_posix(path: str) -> str:
    return path.replace("\\", "/")


def relative_posix(path: str, root_path: str) -> str:
    return to_posix(os.path.relpath(path, root_path))


# ==========================================
# Glob 매칭
# ==========================================
@lru_cache(maxsize=512)
def compile_glob(pattern: str) -> Optional[re.Pattern]:
    """
    glob 패턴을 앵커가 걸린 정규식으로 변환합니다.

    - '**'  : 구분자(/)를 포함한 임의의 문자열
    - '**/' : 0개 이상의 디렉토리
    - '*'   : 구분자를 제외한 임의의 문자열
    - '?'   : 구분자를 제외한 한 글자
    - '[..]': 문자 클래스
    그 외 문자는 모두 리터럴로 escape 합니다 ('.' 포함).
    잘못된 패턴이면 None (= 어떤 경로와도 매칭되지 않음).
    """
    if not pattern:
        return None

    pattern = to_posix(pattern)
    out = []
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "*":
            if pattern.startswith("**", i):
                i += 2
                if pattern.startswith("/", i):
                    out.append("(?:.*/)?")
                    i += 1
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "[":
            end = pattern.find("]", i + 1)
            if end == -1 or end == i + 1:
                return None
            body = pattern[i + 1:end]
            if body.startswith("!"):
                body = "^" + body[1:]
            out.append("[" + body.replace("\\", "\\\\") + "]")
            i = end + 1
            continue
        elif ch == "/" and pattern.startswith("/**", i) and i + 3 == n:
            # 끝의 '/**' 는 디렉토리 자체와 그 하위 전체
            out.append("(?:/.*)?")
            i += 3
            continue
        else:
            out.append(re.escape(ch))
        i += 1

    try:
        return re.compile("^" + "".join(out) + "$")
    except re.error:
        return None


def glob_match(path: str, pattern: str, ignore_case: bool = False) -> bool:
    if ignore_case:
        path = path.lower()
        pattern = pattern.lower()
    regex = compile_glob(pattern)
    if regex is None:
        return False
    return regex.match(to_posix(path)) is not None


def matches_any(path: str, patterns, ignore_case: bool = False) -> bool:
    return any(glob_match(path, p, ignore_case) for p in patterns)
