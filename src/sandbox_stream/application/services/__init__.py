"""应用服务模块"""
from sandbox_stream.application.services.execution_service import ExecutionService

__all__ = ["ExecutionService"]
