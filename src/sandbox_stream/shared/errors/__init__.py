"""
错误类型包

导出领域错误与基础设施错误。
"""
from sandbox_stream.shared.errors.domain import (
    DomainError,
    InvalidRequestError,
    UnsupportedLanguageError,
    EmptyCodeError,
    ExecutionTimeoutError,
)
from sandbox_stream.shared.errors.infrastructure import (
    InfrastructureError,
    ContainerError,
    ImageUnavailableError,
    ContainerNotFoundError,
)

__all__ = [
    "DomainError",
    "InvalidRequestError",
    "UnsupportedLanguageError",
    "EmptyCodeError",
    "ExecutionTimeoutError",
    "InfrastructureError",
    "ContainerError",
    "ImageUnavailableError",
    "ContainerNotFoundError",
]
