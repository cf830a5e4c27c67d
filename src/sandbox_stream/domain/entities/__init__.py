"""实体模块"""
from sandbox_stream.domain.entities.execution_handle import ExecutionHandle

__all__ = ["ExecutionHandle"]
