"""
输出帧值对象

Docker 多路复用日志流解析后得到的一段 stdout/stderr 文本。
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class StreamChannel(str, Enum):
    """输出通道枚举"""
    STDOUT = "stdout"
    STDERR = "stderr"

    @classmethod
    def from_stream_kind(cls, kind: int) -> Optional["StreamChannel"]:
        """根据帧头的 stream-kind 字节返回通道，未知类型返回 None"""
        if kind == 1:
            return cls.STDOUT
        if kind == 2:
            return cls.STDERR
        return None


@dataclass(frozen=True)
class OutputFrame:
    """输出帧（不可变）"""
    channel: StreamChannel
    text: str
