"""
值对象模块

包含所有领域值对象。
"""
from sandbox_stream.domain.value_objects.client_message import ClientMessage, MessageType
from sandbox_stream.domain.value_objects.execution_profile import (
    CODE_ENV_VAR,
    ExecutionProfile,
    Language,
)
from sandbox_stream.domain.value_objects.execution_request import ExecutionRequest, MAX_CODE_BYTES
from sandbox_stream.domain.value_objects.execution_status import ExecutionPhase, TERMINAL_PHASES
from sandbox_stream.domain.value_objects.output_frame import OutputFrame, StreamChannel
from sandbox_stream.domain.value_objects.resource_limit import SandboxLimits

__all__ = [
    "ClientMessage",
    "MessageType",
    "CODE_ENV_VAR",
    "ExecutionProfile",
    "Language",
    "ExecutionRequest",
    "MAX_CODE_BYTES",
    "ExecutionPhase",
    "TERMINAL_PHASES",
    "OutputFrame",
    "StreamChannel",
    "SandboxLimits",
]
