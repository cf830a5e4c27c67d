"""
输出格式化与错误分类

- 去除输出中的 ASCII 控制字符（保留制表符与换行）
- 编译型语言的 stderr 中，将编译器/链接器的内部路径与术语改写为易读文本
- 将执行过程中的异常归类为用户可见的错误消息

改写只是尽力而为的可读性处理，未匹配的内容原样保留。
"""
import re
from enum import Enum
from typing import Optional

from sandbox_stream.domain.value_objects.execution_profile import Language
from sandbox_stream.domain.value_objects.output_frame import StreamChannel
from sandbox_stream.shared.errors.infrastructure import (
    ContainerNotFoundError,
    ImageUnavailableError,
)

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

COMPILED_LANGUAGES = frozenset({Language.C, Language.CPP})

# 按顺序应用
_TOOLCHAIN_REWRITES: list[tuple[re.Pattern, str]] = [
    (re.compile(r"collect2: error: ld returned \d+ exit status\n?"), ""),
    (re.compile(r"/usr/bin/ld: "), ""),
    (re.compile(r"/tmp/cc\w+\.o: "), ""),
    (re.compile(r"/tmp/main\.(?:c|cpp):(?=\d)"), "Line "),
    (re.compile(r"/tmp/main\.(?:c|cpp):(?=\()"), ""),
    (re.compile(r"/tmp/main\.(?:c|cpp): "), ""),
    (re.compile(r"undefined reference to"), "Undefined function/variable:"),
]


class FaultKind(str, Enum):
    """执行故障分类"""
    IMAGE_UNAVAILABLE = "image_unavailable"
    NO_SUCH_CONTAINER = "no_such_container"
    GENERIC = "generic"


def strip_control_chars(text: str) -> str:
    """去除 ASCII 控制字符，保留 \\t \\n \\r"""
    return _CONTROL_CHARS.sub("", text)


def rewrite_toolchain_errors(text: str) -> str:
    """改写编译器与链接器的错误文本"""
    for pattern, replacement in _TOOLCHAIN_REWRITES:
        text = pattern.sub(replacement, text)
    return text


def is_compiled(language: str) -> bool:
    try:
        return Language(language) in COMPILED_LANGUAGES
    except ValueError:
        return False


def format_output(text: str, channel: StreamChannel, language: str) -> str:
    """
    格式化一段输出文本

    Args:
        text: 解码后的原始输出
        channel: 输出通道
        language: 语言标识

    Returns:
        用于展示的文本
    """
    text = strip_control_chars(text)
    if channel == StreamChannel.STDERR and is_compiled(language):
        text = rewrite_toolchain_errors(text)
    return text


def classify_fault(error: BaseException) -> FaultKind:
    """将执行期间的异常归类"""
    if isinstance(error, ImageUnavailableError):
        return FaultKind.IMAGE_UNAVAILABLE
    if isinstance(error, ContainerNotFoundError):
        return FaultKind.NO_SUCH_CONTAINER

    message = str(error).lower()
    if "pull" in message:
        return FaultKind.IMAGE_UNAVAILABLE
    if "no such container" in message:
        return FaultKind.NO_SUCH_CONTAINER
    return FaultKind.GENERIC


def describe_fault(error: BaseException, kind: Optional[FaultKind] = None) -> str:
    """生成用户可见的错误描述"""
    kind = kind or classify_fault(error)
    if kind == FaultKind.IMAGE_UNAVAILABLE:
        return "Docker image unavailable"
    if kind == FaultKind.NO_SUCH_CONTAINER:
        return "Execution container is no longer available"
    message = getattr(error, "message", None) or str(error) or type(error).__name__
    return f"Execution failed: {message}"
