"""
容器引擎接口

定义执行器对容器引擎的全部依赖。
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import AsyncContextManager, AsyncIterator, Dict, List

from sandbox_stream.domain.value_objects.resource_limit import SandboxLimits


@dataclass
class ContainerConfig:
    """容器配置"""
    image: str
    name: str
    command: List[str]
    env_vars: Dict[str, str]
    labels: Dict[str, str] = field(default_factory=dict)
    limits: SandboxLimits = field(default_factory=SandboxLimits.default)
    working_dir: str = "/tmp"


class IContainerEngine(ABC):
    """
    容器引擎接口

    定义一次性沙箱容器的生命周期操作。
    """

    @abstractmethod
    async def ensure_image(self, image: str) -> None:
        """
        确保镜像存在于本地，不存在时拉取

        Raises:
            ImageUnavailableError: 拉取失败
        """
        pass

    @abstractmethod
    async def create_container(self, config: ContainerConfig) -> str:
        """
        创建容器

        返回容器ID
        """
        pass

    @abstractmethod
    async def start_container(self, container_id: str) -> None:
        """启动容器"""
        pass

    @abstractmethod
    def attach_output(self, container_id: str) -> AsyncContextManager[AsyncIterator[bytes]]:
        """
        附加到容器的合并输出流

        必须在 start_container 之前进入，进入后返回原始多路复用字节块的迭代器，
        容器退出后迭代结束。

        Raises:
            ContainerNotFoundError: 容器不存在
        """
        pass

    @abstractmethod
    async def stop_container(self, container_ref: str, timeout: int = 1) -> None:
        """停止容器（ID 或名称）"""
        pass

    @abstractmethod
    async def remove_container(self, container_ref: str, force: bool = True) -> None:
        """删除容器（ID 或名称）"""
        pass

    @abstractmethod
    async def prune_images(self) -> None:
        """清理悬空镜像"""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """检查引擎连接状态"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """关闭引擎连接"""
        pass
