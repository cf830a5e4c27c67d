"""
sandbox-stream

在隔离的 Docker 容器中执行代码片段，并通过 WebSocket 实时回传 stdout/stderr。
"""

__version__ = "0.1.0"
