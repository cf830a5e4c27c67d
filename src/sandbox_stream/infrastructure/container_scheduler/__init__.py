"""
容器调度器包

提供 Docker 容器调度与日志流解析能力。
"""
from sandbox_stream.infrastructure.container_scheduler.base import (
    ContainerConfig,
    IContainerEngine,
)
from sandbox_stream.infrastructure.container_scheduler.docker_scheduler import DockerScheduler
from sandbox_stream.infrastructure.container_scheduler.stream_demuxer import StreamDemultiplexer

__all__ = [
    "ContainerConfig",
    "IContainerEngine",
    "DockerScheduler",
    "StreamDemultiplexer",
]
