"""
共享测试工具

提供内存中的容器引擎与消息接收端，按 Docker 多路复用格式回放日志。
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, Optional

from sandbox_stream.domain.ports.message_sink_port import IMessageSink
from sandbox_stream.domain.value_objects.client_message import ClientMessage, MessageType
from sandbox_stream.domain.value_objects.output_frame import StreamChannel
from sandbox_stream.infrastructure.container_scheduler.base import (
    ContainerConfig,
    IContainerEngine,
)
from sandbox_stream.infrastructure.container_scheduler.stream_demuxer import encode_frame


def stdout(text: str) -> bytes:
    return encode_frame(StreamChannel.STDOUT, text.encode("utf-8"))


def stderr(text: str) -> bytes:
    return encode_frame(StreamChannel.STDERR, text.encode("utf-8"))


def split_every(data: bytes, size: int) -> list[bytes]:
    """按固定大小切分字节，模拟任意网络读取边界"""
    return [data[i:i + size] for i in range(0, len(data), size)]


class FakeContainerEngine(IContainerEngine):
    """
    内存容器引擎

    Args:
        chunks: attach_output 依次产出的字节块
        hang: 产出全部字节块后保持输出流打开，直到容器被停止
        stop_gate: 设置后 stop_container 在该事件触发前不返回
    """

    def __init__(
        self,
        chunks: Iterable[bytes] = (),
        hang: bool = False,
        pull_error: Optional[Exception] = None,
        create_error: Optional[Exception] = None,
        stream_error: Optional[Exception] = None,
        stop_error: Optional[Exception] = None,
        prune_error: Optional[Exception] = None,
        stop_gate: Optional[asyncio.Event] = None,
        container_id: str = "container-1",
    ):
        self.chunks = list(chunks)
        self.hang = hang
        self.pull_error = pull_error
        self.create_error = create_error
        self.stream_error = stream_error
        self.stop_error = stop_error
        self.prune_error = prune_error
        self.stop_gate = stop_gate
        self.container_id = container_id

        self.ensured_images: list[str] = []
        self.configs: list[ContainerConfig] = []
        self.started: list[str] = []
        self.stopped: list[str] = []
        self.removed: list[str] = []
        self.prune_calls = 0
        self.calls: list[str] = []
        self.closed = False
        self.streaming = asyncio.Event()
        self._stop_requested = asyncio.Event()

    async def ensure_image(self, image: str) -> None:
        self.ensured_images.append(image)
        if self.pull_error:
            raise self.pull_error

    async def create_container(self, config: ContainerConfig) -> str:
        self.configs.append(config)
        if self.create_error:
            raise self.create_error
        return self.container_id

    async def start_container(self, container_id: str) -> None:
        self.calls.append("start")
        self.started.append(container_id)

    @asynccontextmanager
    async def attach_output(self, container_id: str) -> AsyncIterator[AsyncIterator[bytes]]:
        self.calls.append("attach")
        if self.stream_error:
            raise self.stream_error
        yield self._replay()

    async def _replay(self) -> AsyncIterator[bytes]:
        self.streaming.set()
        for chunk in self.chunks:
            await asyncio.sleep(0)
            yield chunk
        if self.hang:
            await self._stop_requested.wait()

    async def stop_container(self, container_ref: str, timeout: int = 1) -> None:
        self.stopped.append(container_ref)
        self._stop_requested.set()
        if self.stop_gate is not None:
            await self.stop_gate.wait()
        if self.stop_error:
            raise self.stop_error

    async def remove_container(self, container_ref: str, force: bool = True) -> None:
        self.removed.append(container_ref)

    async def prune_images(self) -> None:
        self.prune_calls += 1
        if self.prune_error:
            raise self.prune_error

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self.closed = True


class RecordingSink(IMessageSink):
    """记录所有发出的消息；disconnected 后发送会失败"""

    def __init__(self):
        self.messages: list[ClientMessage] = []
        self.disconnected = False

    async def send(self, message: ClientMessage) -> None:
        if self.disconnected:
            raise ConnectionError("client disconnected")
        self.messages.append(message)

    @property
    def types(self) -> list[MessageType]:
        return [m.type for m in self.messages]

    def of_type(self, message_type: MessageType) -> list[ClientMessage]:
        return [m for m in self.messages if m.type == message_type]
