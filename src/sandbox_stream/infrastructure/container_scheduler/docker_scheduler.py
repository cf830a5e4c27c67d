"""
Docker 容器调度器

使用 aiodocker 实现一次性沙箱容器的拉取、创建、输出附加、启动与清理。
"""
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import aiohttp
from aiodocker import Docker
from aiodocker.exceptions import DockerError

from sandbox_stream.infrastructure.container_scheduler.base import (
    ContainerConfig,
    IContainerEngine,
)
from sandbox_stream.infrastructure.logging import get_logger
from sandbox_stream.shared.errors.infrastructure import (
    ContainerError,
    ContainerNotFoundError,
    ImageUnavailableError,
)

logger = get_logger(__name__)

# 容器已被 AutoRemove 删除或正在删除
_GONE_STATUSES = {404, 409}


class DockerScheduler(IContainerEngine):
    """
    Docker 容器调度器

    通过 Docker socket 或 TCP 连接 Docker daemon。所有执行共享同一个
    客户端连接，除此之外不持有任何跨执行的状态。
    """

    def __init__(self, docker_url: str = "unix:///var/run/docker.sock"):
        """
        初始化 Docker 调度器

        Args:
            docker_url: Docker daemon 连接URL
                - unix:///var/run/docker.sock (Unix socket)
                - tcp://localhost:2375 (TCP)
        """
        self._docker_url = docker_url
        self._docker: Optional[Docker] = None
        self._initialized = False

    async def _ensure_docker(self) -> Docker:
        """确保 Docker 客户端已初始化"""
        if not self._initialized:
            self._docker = Docker(url=self._docker_url)
            self._initialized = True
        return self._docker

    async def close(self) -> None:
        """关闭 Docker 连接"""
        if self._docker:
            await self._docker.close()
            self._docker = None
            self._initialized = False

    async def ensure_image(self, image: str) -> None:
        """确保镜像存在，不存在时拉取"""
        docker = await self._ensure_docker()
        try:
            await docker.images.inspect(image)
            return
        except DockerError as e:
            if e.status != 404:
                logger.error("Failed to inspect image", image=image, error=e.message)
                raise ImageUnavailableError(image, e) from e

        logger.info("Pulling image", image=image)
        try:
            progress = await docker.images.pull(image)
        except DockerError as e:
            logger.error("Failed to pull image", image=image, error=e.message)
            raise ImageUnavailableError(image, e) from e

        # 拉取过程中的错误可能只出现在进度消息中
        for item in progress if isinstance(progress, list) else [progress]:
            if isinstance(item, dict) and item.get("error"):
                logger.error("Image pull reported error", image=image, error=item["error"])
                raise ImageUnavailableError(image, ContainerError(item["error"]))
        logger.info("Pulled image", image=image)

    def _build_container_config(self, config: ContainerConfig) -> Dict[str, Any]:
        """
        构建 Docker 容器配置

        容器配置：
        - Entrypoint: 执行配置中的固定命令，覆盖镜像默认 entrypoint/cmd
        - Tty: false（日志流为多路复用格式）
        - HostConfig: 内存/CPU/进程数限制、禁用网络、CAP_DROP ALL、no-new-privileges、AutoRemove
        """
        return {
            "Image": config.image,
            "Entrypoint": list(config.command),
            "Env": [f"{k}={v}" for k, v in config.env_vars.items()],
            "WorkingDir": config.working_dir,
            "Tty": False,
            "OpenStdin": False,
            "AttachStdin": False,
            "AttachStdout": True,
            "AttachStderr": True,
            "NetworkDisabled": config.limits.network_mode == "none",
            "Labels": config.labels,
            "HostConfig": config.limits.to_host_config(),
        }

    async def create_container(self, config: ContainerConfig) -> str:
        """创建 Docker 容器"""
        docker = await self._ensure_docker()
        container_config = self._build_container_config(config)
        try:
            container = await docker.containers.create(container_config, name=config.name)
        except DockerError as e:
            logger.error("Failed to create container", name=config.name, error=e.message)
            raise ContainerError(f"Failed to create container: {e.message}", e) from e
        logger.info(
            "Created container",
            container_id=container.id,
            name=config.name,
            image=config.image,
            cpus=config.limits.cpu_fraction,
        )
        return container.id

    async def start_container(self, container_id: str) -> None:
        """启动容器"""
        docker = await self._ensure_docker()
        try:
            container = docker.containers.container(container_id)
            await container.start()
        except DockerError as e:
            logger.error("Failed to start container", container_id=container_id, error=e.message)
            if e.status == 404:
                raise ContainerNotFoundError(f"No such container: {container_id}", e) from e
            raise ContainerError(f"Failed to start container: {e.message}", e) from e
        logger.info("Started container", container_id=container_id)

    @asynccontextmanager
    async def attach_output(self, container_id: str) -> AsyncIterator[AsyncIterator[bytes]]:
        """
        附加到容器输出，产出原始多路复用字节块的迭代器

        在容器启动前附加，AutoRemove 的短命容器也不会丢失输出。
        不走 DockerContainer.attach()，它自行分帧；这里直接读取原始响应体，
        由 StreamDemultiplexer 负责分帧。
        """
        docker = await self._ensure_docker()
        params = {"stream": "1", "logs": "1", "stdout": "1", "stderr": "1"}
        try:
            async with docker._query(
                f"containers/{container_id}/attach",
                method="POST",
                params=params,
                # 流的长度由执行超时决定，不受会话默认超时限制
                timeout=aiohttp.ClientTimeout(total=None),
            ) as response:
                logger.debug("Attached to container output", container_id=container_id)
                yield response.content.iter_any()
        except DockerError as e:
            logger.error("Failed to attach container output", container_id=container_id, error=e.message)
            if e.status == 404:
                raise ContainerNotFoundError(f"No such container: {container_id}", e) from e
            raise ContainerError(f"Failed to attach container output: {e.message}", e) from e

    async def stop_container(self, container_ref: str, timeout: int = 1) -> None:
        """停止容器"""
        docker = await self._ensure_docker()
        try:
            container = docker.containers.container(container_ref)
            await container.stop(t=timeout)
        except DockerError as e:
            if e.status in _GONE_STATUSES:
                raise ContainerNotFoundError(f"No such container: {container_ref}", e) from e
            raise ContainerError(f"Failed to stop container: {e.message}", e) from e
        logger.info("Stopped container", container=container_ref)

    async def remove_container(self, container_ref: str, force: bool = True) -> None:
        """删除容器"""
        docker = await self._ensure_docker()
        try:
            container = docker.containers.container(container_ref)
            await container.delete(force=force)
            logger.info("Removed container", container=container_ref)
        except DockerError as e:
            if e.status in _GONE_STATUSES:
                logger.debug("Container already removed", container=container_ref)
                return
            logger.warning("Failed to remove container", container=container_ref, error=e.message)

    async def prune_images(self) -> None:
        """清理悬空镜像"""
        docker = await self._ensure_docker()
        result = await docker._query_json(
            "images/prune",
            method="POST",
            params={"filters": json.dumps({"dangling": ["true"]})},
        )
        logger.info(
            "Pruned dangling images",
            space_reclaimed=(result or {}).get("SpaceReclaimed", 0),
        )

    async def ping(self) -> bool:
        """检查 Docker 连接状态"""
        try:
            docker = await self._ensure_docker()
            version = await docker.version()
            return version is not None
        except Exception as e:
            logger.error("Docker ping failed", error=str(e))
            return False
