"""
执行请求值对象

表示客户端通过 WebSocket 提交的一次代码执行请求。
"""
from dataclasses import dataclass

# base64 后约 87KiB，低于 Linux 单个环境变量 128KiB 的上限
MAX_CODE_BYTES = 64 * 1024


@dataclass(frozen=True)
class ExecutionRequest:
    """
    执行请求值对象

    接收后立即校验，派发后丢弃。
    """
    code: str
    language: str
    session_id: str
