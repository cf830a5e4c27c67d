"""
语言注册表

语言标识 -> 执行配置 的只读映射，初始化后不再修改，可被并发读取。
"""
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from sandbox_stream.domain.value_objects.execution_profile import (
    CODE_ENV_VAR,
    ExecutionProfile,
    Language,
)
from sandbox_stream.shared.errors.domain import UnsupportedLanguageError

COMPILE_ERRORS_PATH = "/tmp/compile_errors.txt"
COMPILATION_ERROR_MARKER = "Compilation Error:"
RUNTIME_ERROR_MARKER = "Runtime Error:"

_DECODE = f'printf \'%s\' "${CODE_ENV_VAR}" | base64 -d > {{source}}'


def _interpreted_script(source: str, run: str) -> str:
    return f"{_DECODE.format(source=source)} && exec {run}"


def _compiled_script(source: str, compiler: str) -> str:
    """编译型语言的两阶段脚本：编译失败与运行失败分别标记"""
    binary = "/tmp/main"
    return (
        f"{_DECODE.format(source=source)}\n"
        f"if {compiler} -o {binary} {source} -lm 2> {COMPILE_ERRORS_PATH}; then\n"
        f"  {binary}\n"
        f"  status=$?\n"
        f'  if [ "$status" -ne 0 ]; then\n'
        f'    echo "{RUNTIME_ERROR_MARKER} program exited with code $status" >&2\n'
        f"  fi\n"
        f'  exit "$status"\n'
        f"else\n"
        f'  echo "{COMPILATION_ERROR_MARKER}" >&2\n'
        f"  cat {COMPILE_ERRORS_PATH} >&2\n"
        f"  exit 1\n"
        f"fi\n"
    )


DEFAULT_PROFILES: Mapping[Language, ExecutionProfile] = MappingProxyType({
    Language.PYTHON: ExecutionProfile(
        language=Language.PYTHON,
        image="python:3.11-slim",
        script=_interpreted_script("/tmp/main.py", "python -u /tmp/main.py"),
        timeout_ms=5000,
        source_path="/tmp/main.py",
    ),
    Language.JAVASCRIPT: ExecutionProfile(
        language=Language.JAVASCRIPT,
        image="node:18-slim",
        script=_interpreted_script("/tmp/main.js", "node /tmp/main.js"),
        timeout_ms=5000,
        source_path="/tmp/main.js",
    ),
    Language.C: ExecutionProfile(
        language=Language.C,
        image="gcc:13",
        script=_compiled_script("/tmp/main.c", "gcc"),
        timeout_ms=10000,
        source_path="/tmp/main.c",
        compiled=True,
    ),
    Language.CPP: ExecutionProfile(
        language=Language.CPP,
        image="gcc:13",
        script=_compiled_script("/tmp/main.cpp", "g++"),
        timeout_ms=10000,
        source_path="/tmp/main.cpp",
        compiled=True,
    ),
    Language.HTML: ExecutionProfile(
        language=Language.HTML,
        image="busybox:latest",
        script=_interpreted_script("/tmp/index.html", "echo 'HTML cannot be executed directly'"),
        timeout_ms=1000,
        source_path="/tmp/index.html",
    ),
})


class LanguageRegistry:
    """
    语言注册表

    每个 Language 成员必须恰好有一个执行配置，缺失时在构造阶段报错，
    而不是等到查询时才发现。
    """

    def __init__(self, profiles: Optional[Mapping[Language, ExecutionProfile]] = None):
        profiles = dict(DEFAULT_PROFILES if profiles is None else profiles)
        missing = [lang.value for lang in Language if lang not in profiles]
        if missing:
            raise ValueError(f"missing execution profiles for: {', '.join(missing)}")
        for lang, profile in profiles.items():
            if profile.language != lang:
                raise ValueError(f"profile for {lang.value} declares {profile.language.value}")
        self._profiles = MappingProxyType(profiles)

    def resolve(self, language_id: str) -> ExecutionProfile:
        """
        查询执行配置

        Raises:
            UnsupportedLanguageError: 语言不在注册表中
        """
        try:
            language = Language(language_id)
        except ValueError:
            raise UnsupportedLanguageError(str(language_id), self.supported_languages) from None
        return self._profiles[language]

    @property
    def supported_languages(self) -> list[str]:
        return [lang.value for lang in self._profiles]

    def with_timeout_override(self, timeout_ms: Optional[int]) -> "LanguageRegistry":
        """返回统一超时时间的新注册表"""
        if timeout_ms is None:
            return self
        return LanguageRegistry({
            lang: profile.with_timeout(timeout_ms)
            for lang, profile in self._profiles.items()
        })

    def __iter__(self) -> Iterator[ExecutionProfile]:
        return iter(self._profiles.values())
