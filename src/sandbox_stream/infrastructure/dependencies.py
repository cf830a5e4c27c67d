"""
依赖注入配置

在应用启动时创建共享的容器引擎、语言注册表与执行服务，并存放在 app.state 上。
"""
from typing import Optional

from fastapi import FastAPI
from starlette.requests import HTTPConnection

from sandbox_stream.application.services.execution_service import ExecutionService
from sandbox_stream.domain.services.language_registry import LanguageRegistry
from sandbox_stream.domain.value_objects.resource_limit import SandboxLimits
from sandbox_stream.infrastructure.config.settings import Settings, get_settings
from sandbox_stream.infrastructure.container_scheduler.base import IContainerEngine
from sandbox_stream.infrastructure.container_scheduler.docker_scheduler import DockerScheduler
from sandbox_stream.infrastructure.logging import get_logger

logger = get_logger(__name__)


def initialize_dependencies(
    app: FastAPI,
    settings: Optional[Settings] = None,
    engine: Optional[IContainerEngine] = None,
) -> None:
    """
    初始化依赖项

    Args:
        app: FastAPI 应用
        settings: 应用配置，默认读取环境变量
        engine: 容器引擎，默认连接本地 Docker daemon
    """
    settings = settings or get_settings()
    if engine is None:
        logger.info("Using Docker engine", docker_host=settings.docker_host)
        engine = DockerScheduler(docker_url=settings.docker_host)

    registry = LanguageRegistry().with_timeout_override(settings.timeout_override_ms)
    app.state.engine = engine
    app.state.language_registry = registry
    app.state.execution_service = ExecutionService(
        engine=engine,
        limits=SandboxLimits.default(),
        container_name_prefix=settings.container_name_prefix,
        stop_timeout=settings.container_stop_timeout,
        prune_on_failure=settings.prune_on_failure,
    )
    logger.info("Dependencies initialized", languages=registry.supported_languages)


async def cleanup_dependencies(app: FastAPI) -> None:
    """清理依赖项"""
    service: Optional[ExecutionService] = getattr(app.state, "execution_service", None)
    if service is not None:
        await service.close()
    engine: Optional[IContainerEngine] = getattr(app.state, "engine", None)
    if engine is not None:
        await engine.close()


def get_execution_service(connection: HTTPConnection) -> ExecutionService:
    """获取执行服务（HTTP 与 WebSocket 通用）"""
    return connection.app.state.execution_service


def get_language_registry(connection: HTTPConnection) -> LanguageRegistry:
    """获取语言注册表"""
    return connection.app.state.language_registry


def get_container_engine(connection: HTTPConnection) -> IContainerEngine:
    """获取容器引擎"""
    return connection.app.state.engine
