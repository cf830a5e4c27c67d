"""
客户端消息值对象

服务端发往客户端的消息信封：{type, data, timestamp?}。
程序输出属于高频消息，不携带时间戳。
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from sandbox_stream.domain.value_objects.output_frame import OutputFrame, StreamChannel


class MessageType(str, Enum):
    """消息类型枚举"""
    SYSTEM = "system"
    OUTPUT = "output"
    ERROR = "error"
    END = "end"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class ClientMessage:
    """客户端消息（不可变）"""
    type: MessageType
    data: str
    timestamp: Optional[str] = None

    @classmethod
    def system(cls, data: str, timestamp: bool = True) -> "ClientMessage":
        return cls(MessageType.SYSTEM, data, _now_iso() if timestamp else None)

    @classmethod
    def output(cls, data: str) -> "ClientMessage":
        return cls(MessageType.OUTPUT, data)

    @classmethod
    def error(cls, data: str) -> "ClientMessage":
        return cls(MessageType.ERROR, data, _now_iso())

    @classmethod
    def end(cls, data: str = "Execution completed") -> "ClientMessage":
        return cls(MessageType.END, data, _now_iso())

    @classmethod
    def from_frame(cls, frame: OutputFrame, text: str) -> "ClientMessage":
        """程序输出：stdout 为 output，stderr 为 error，均不带时间戳"""
        if frame.channel == StreamChannel.STDERR:
            return cls(MessageType.ERROR, text)
        return cls(MessageType.OUTPUT, text)

    def to_dict(self) -> dict[str, Any]:
        message: dict[str, Any] = {"type": self.type.value, "data": self.data}
        if self.timestamp is not None:
            message["timestamp"] = self.timestamp
        return message
