"""
领域错误

定义领域层的错误类型。
"""
from typing import Any, Optional


class DomainError(Exception):
    """领域错误基类"""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidRequestError(DomainError):
    """请求无效（格式错误、语言不支持、代码为空），不会创建容器"""
    pass


class UnsupportedLanguageError(InvalidRequestError):
    """不支持的语言"""

    def __init__(self, language: str, supported: list[str]):
        super().__init__(
            f"Language '{language}' not supported. "
            f"Supported languages: {', '.join(supported)}",
            details={"language": language, "supported": supported},
        )
        self.language = language
        self.supported = supported


class EmptyCodeError(InvalidRequestError):
    """代码为空"""

    def __init__(self):
        super().__init__("No code provided")


class ExecutionTimeoutError(DomainError):
    """执行超时错误"""

    def __init__(self, timeout_ms: int):
        super().__init__(
            f"Execution timed out after {timeout_ms / 1000:g}s",
            details={"timeout_ms": timeout_ms},
        )
        self.timeout_ms = timeout_ms
