"""端口接口模块"""
from sandbox_stream.domain.ports.message_sink_port import IMessageSink

__all__ = ["IMessageSink"]
