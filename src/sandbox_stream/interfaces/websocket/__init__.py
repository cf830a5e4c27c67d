"""WebSocket 接口"""
from sandbox_stream.interfaces.websocket.execution_gateway import ExecutionGateway, router

__all__ = ["ExecutionGateway", "router"]
