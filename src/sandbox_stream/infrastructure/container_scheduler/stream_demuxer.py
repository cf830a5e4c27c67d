"""
Docker 多路复用日志流解析器

非 TTY 容器的日志流由若干帧组成，每帧格式为：

    [1 字节 stream-kind][3 字节保留][4 字节大端长度][payload]

网络读取的边界与帧边界无关：一帧可能跨越多次读取，一次读取也可能包含多帧，
未解析完的字节保留到下一次 feed()。
"""
import codecs
import struct
from typing import Iterator

from sandbox_stream.domain.value_objects.output_frame import OutputFrame, StreamChannel

HEADER_SIZE = 8
_HEADER = struct.Struct(">B3xI")


class StreamDemultiplexer:
    """
    有状态的日志流解析器

    每个执行句柄独占一个实例。
    """

    def __init__(self, encoding: str = "utf-8"):
        self._buffer = bytearray()
        # 每个通道独立解码，跨帧拆分的多字节字符不会被破坏
        self._decoders = {
            channel: codecs.getincrementaldecoder(encoding)(errors="replace")
            for channel in StreamChannel
        }

    @property
    def pending(self) -> int:
        """缓冲区中尚未解析的字节数"""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> list[OutputFrame]:
        """
        追加一段字节并返回其中所有完整的帧

        零长度帧与未知 stream-kind 的帧会被消费但不产出。
        """
        if chunk:
            self._buffer.extend(chunk)
        return list(self._drain())

    def flush(self) -> list[OutputFrame]:
        """
        流结束时调用，取出解码器中残留的不完整多字节序列

        残留字节按 errors="replace" 输出为替换字符。
        """
        frames = []
        for channel, decoder in self._decoders.items():
            text = decoder.decode(b"", final=True)
            if text:
                frames.append(OutputFrame(channel=channel, text=text))
        return frames

    def _drain(self) -> Iterator[OutputFrame]:
        while len(self._buffer) >= HEADER_SIZE:
            kind, length = _HEADER.unpack_from(self._buffer)
            frame_end = HEADER_SIZE + length
            if len(self._buffer) < frame_end:
                return
            payload = bytes(self._buffer[HEADER_SIZE:frame_end])
            del self._buffer[:frame_end]

            channel = StreamChannel.from_stream_kind(kind)
            if channel is None or length == 0:
                continue
            text = self._decoders[channel].decode(payload)
            if text:
                yield OutputFrame(channel=channel, text=text)


def encode_frame(channel: StreamChannel, payload: bytes) -> bytes:
    """按 Docker 多路复用格式编码一帧"""
    kind = 1 if channel == StreamChannel.STDOUT else 2
    return _HEADER.pack(kind, len(payload)) + payload

