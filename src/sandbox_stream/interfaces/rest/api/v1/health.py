"""
健康检查 REST API 路由

定义健康检查相关的 HTTP 端点。
"""
import time

from fastapi import APIRouter, Depends

from sandbox_stream import __version__
from sandbox_stream.infrastructure.container_scheduler.base import IContainerEngine
from sandbox_stream.infrastructure.dependencies import get_container_engine
from sandbox_stream.interfaces.rest.schemas.response import (
    DetailedHealthResponse,
    HealthResponse,
)

router = APIRouter(prefix="/health", tags=["health"])

# 应用启动时间
_start_time = time.time()


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    健康检查端点

    返回系统状态和运行时间。
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        uptime=time.time() - _start_time,
    )


@router.get("/detailed", response_model=DetailedHealthResponse)
async def detailed_health_check(
    engine: IContainerEngine = Depends(get_container_engine),
) -> DetailedHealthResponse:
    """
    详细健康检查

    额外检查 Docker daemon 连接。
    """
    docker_ok = await engine.ping()
    return DetailedHealthResponse(
        status="healthy" if docker_ok else "degraded",
        version=__version__,
        uptime=time.time() - _start_time,
        dependencies={"docker": "healthy" if docker_ok else "unhealthy"},
    )
