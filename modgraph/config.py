"""
분석 옵션 (pydantic 모델) 과 환경 변수 로딩
"""
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from .language_specs import DEFAULT_EXTENSIONS

DEFAULT_EXCLUDE_PATTERNS = [
    "**/node_modules/**",
    "**/dist/**",
    "**/build/**",
    "**/.git/**",
]


class LayerRule(BaseModel):
    """아키텍처 레이어 정의"""
    name: str
    description: str = ""
    paths: list[str] = Field(default_factory=list, description="레이어에 속하는 경로 glob (순서대로 검사)")
    depends_on: list[str] = Field(default_factory=list, description="의존해도 되는 레이어 이름")


class AnalysisOptions(BaseModel):
    """분석 실행 옵션"""
    extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXTENSIONS),
        description="분석할 파일 확장자",
    )
    exclude_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS),
        description="제외할 경로 glob (프로젝트 루트 기준)",
    )
    include_tests: bool = Field(default=False, description="테스트 파일 포함 여부")
    tsconfig_path: Optional[str] = Field(default=None, description="tsconfig.json 경로 (없으면 루트에서 탐색)")
    max_workers: int = Field(default=8, ge=1, le=64, description="파싱 워커 스레드 수")
    entry_paths: list[str] = Field(
        default_factory=list,
        description="package.json 외에 추가로 진입점으로 취급할 경로",
    )
    layers: Optional[list[LayerRule]] = Field(default=None, description="None 이면 기본 레이어 사용")

    @field_validator("extensions")
    @classmethod
    def _normalize_extensions(cls, value: list[str]) -> list[str]:
        normalized = []
        for ext in value:
            ext = ext.strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = "." + ext
            if ext not in normalized:
                normalized.append(ext)
        if not normalized:
            raise ValueError("at least one file extension is required")
        return normalized


def _split_env(name: str) -> Optional[list[str]]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return [item.strip() for item in raw.split(",") if item.strip()]


def load_options_from_env() -> AnalysisOptions:
    """
    .env / 환경 변수에서 옵션을 읽어옵니다.

    MODGRAPH_EXTENSIONS      : ".ts,.tsx"
    MODGRAPH_EXCLUDE         : "**/dist/**,**/legacy/**"
    MODGRAPH_INCLUDE_TESTS   : "1" / "true"
    MODGRAPH_TSCONFIG        : tsconfig 경로
    MODGRAPH_MAX_WORKERS     : 정수
    MODGRAPH_ENTRY_PATHS     : "src/cli.ts,src/worker.ts"
    """
    load_dotenv()

    values: dict = {}
    extensions = _split_env("MODGRAPH_EXTENSIONS")
    if extensions:
        values["extensions"] = extensions
    exclude = _split_env("MODGRAPH_EXCLUDE")
    if exclude:
        values["exclude_patterns"] = exclude
    entry_paths = _split_env("MODGRAPH_ENTRY_PATHS")
    if entry_paths:
        values["entry_paths"] = entry_paths

    include_tests = os.getenv("MODGRAPH_INCLUDE_TESTS")
    if include_tests is not None:
        values["include_tests"] = include_tests.strip().lower() in ("1", "true", "yes", "on")
    if os.getenv("MODGRAPH_TSCONFIG"):
        values["tsconfig_path"] = os.getenv("MODGRAPH_TSCONFIG")
    if os.getenv("MODGRAPH_MAX_WORKERS"):
        values["max_workers"] = os.getenv("MODGRAPH_MAX_WORKERS")

    return AnalysisOptions(**values)
